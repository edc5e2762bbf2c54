"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import Literal, NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)

StateFilter = Literal["open", "closed", "all"]
KindFilter = Literal["issue", "pr", "all"]

# The reaction kinds GitHub reports on an issue, in API order.
REACTION_KINDS: tuple[str, ...] = ("+1", "-1", "laugh", "hooray", "confused", "heart", "rocket", "eyes")


class RepositoryDict(TypedDict):
    id: int
    owner: str
    name: str
    full_name: str


class ReactionDict(TypedDict):
    reaction_type: str
    count: int


class IssueDict(TypedDict):
    id: int
    repository_id: int
    repository: str | None
    number: int
    title: str
    body: str
    created_at: ISOTimestamp
    state: str
    is_pull_request: bool
    author: str | None
    last_synced_at: ISOTimestamp | None
    url: str | None
    labels: list[str]
    reactions: list[ReactionDict]

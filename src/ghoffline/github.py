"""GitHub REST API issue source.

Fetches one page of a repository's issues and pull requests at a time over a
long-lived ``httpx.Client`` with bearer-token auth. An empty page signals the
end of the listing; there is no Link-header walking and no retry.

Reference: https://docs.github.com/en/rest/issues/issues#list-repository-issues
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from ghoffline.config import DEFAULT_API_URL
from ghoffline.errors import DecodeError, TransportError
from ghoffline.types.core import REACTION_KINDS

if TYPE_CHECKING:
    from ghoffline.config import SyncConfig

logger = logging.getLogger(__name__)

# SQLite INTEGER range.
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


@dataclass
class RemoteIssue:
    """One issue or pull request as reported by the API."""

    number: int
    title: str
    created_at: str
    state: str
    body: str | None = None
    is_pull_request: bool = False
    author: str | None = None
    labels: list[str] = field(default_factory=list)
    reactions: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> RemoteIssue:
        """Build from one element of the issues listing.

        Raises KeyError or TypeError when a required field is missing or has
        the wrong type, and ValueError when an integer does not fit a 64-bit
        column.
        """
        number = item["number"]
        title = item["title"]
        created_at = item["created_at"]
        state = item["state"]
        if not isinstance(number, int) or isinstance(number, bool):
            msg = f"issue number must be an integer, got {number!r}"
            raise TypeError(msg)
        if not _INT_MIN <= number <= _INT_MAX:
            msg = f"issue number out of range: {number}"
            raise ValueError(msg)
        for key, value in (("title", title), ("created_at", created_at), ("state", state)):
            if not isinstance(value, str):
                msg = f"{key} must be a string, got {value!r}"
                raise TypeError(msg)

        body = item.get("body")
        user = item.get("user")
        author = user.get("login") if isinstance(user, Mapping) else None

        labels: list[str] = []
        for label in item.get("labels") or []:
            label_name = label.get("name") if isinstance(label, Mapping) else label
            if isinstance(label_name, str) and label_name:
                labels.append(label_name)

        reactions: dict[str, int] = {}
        raw_reactions = item.get("reactions")
        if isinstance(raw_reactions, Mapping):
            for kind in REACTION_KINDS:
                count = raw_reactions.get(kind)
                if isinstance(count, int) and not isinstance(count, bool):
                    if not _INT_MIN <= count <= _INT_MAX:
                        msg = f"{kind} reaction count out of range: {count}"
                        raise ValueError(msg)
                    reactions[kind] = count

        return cls(
            number=number,
            title=title,
            created_at=created_at,
            state=state,
            body=body if isinstance(body, str) else None,
            is_pull_request=item.get("pull_request") is not None,
            author=author if isinstance(author, str) else None,
            labels=labels,
            reactions=reactions,
        )


class IssueSource(Protocol):
    """Anything that can page through a repository's issues."""

    def fetch_page(self, owner: str, name: str, page: int) -> list[RemoteIssue]: ...


class GitHubIssueSource:
    """Page-at-a-time reader for ``/repos/{owner}/{name}/issues``.

    Example:
        >>> with GitHubIssueSource("ghp_token") as source:
        ...     first = source.fetch_page("octo", "demo", 1)
    """

    PER_PAGE = 100
    API_VERSION = "2022-11-28"
    USER_AGENT = "gh-offline"

    CONNECT_TIMEOUT = 5.0  # seconds
    READ_TIMEOUT = 30.0  # seconds

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": self.API_VERSION,
                "User-Agent": self.USER_AGENT,
            },
            timeout=httpx.Timeout(self.READ_TIMEOUT, connect=self.CONNECT_TIMEOUT),
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: SyncConfig, *, transport: httpx.BaseTransport | None = None) -> GitHubIssueSource:
        """Build a source from config. Raises ConfigurationError if no token is set."""
        return cls(config.require_token(), base_url=config.api_url, transport=transport)

    def __enter__(self) -> GitHubIssueSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_page(self, owner: str, name: str, page: int) -> list[RemoteIssue]:
        """Return the issues on *page* (1-based), or [] once the listing is exhausted.

        Raises:
            TransportError: connection failure, timeout, or non-2xx status.
            DecodeError: the body is not a JSON array of issue objects.
        """
        path = f"/repos/{owner}/{name}/issues"
        params = {"state": "all", "per_page": str(self.PER_PAGE), "page": str(page)}
        try:
            response = self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            msg = f"Request to {path} (page {page}) failed: {exc}"
            raise TransportError(msg) from exc

        body = response.text
        if not response.is_success:
            msg = f"GitHub API returned HTTP {response.status_code} for {owner}/{name} (page {page})"
            raise TransportError(msg, status_code=response.status_code, body=body)

        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"Error decoding response: {exc}"
            raise DecodeError(msg, body=body) from exc
        if not isinstance(payload, list):
            msg = f"Error decoding response: expected a JSON array, got {type(payload).__name__}"
            raise DecodeError(msg, body=body)

        try:
            issues = [RemoteIssue.from_api(item) for item in payload]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            msg = f"Error decoding response: malformed issue ({exc})"
            raise DecodeError(msg, body=body) from exc

        logger.debug("Fetched %d issues from %s/%s page %d", len(issues), owner, name, page)
        return issues

"""TypedDicts for sync engine reports."""

from __future__ import annotations

from typing import TypedDict


class SyncReportDict(TypedDict):
    repository: str
    synced: int
    skipped: int
    pages: int


class SyncOutcomeDict(TypedDict):
    repository: str
    ok: bool
    report: SyncReportDict | None
    error: str | None
    error_kind: str | None

"""Sync engine: mirror tracked repositories' issues into the local cache.

For each tracked repository the engine walks the issue listing page by page
until an empty page comes back, asks the staleness policy whether each issue
needs writing, and stores the ones that do. Repositories are processed one
after another and pages strictly in order; nothing runs concurrently.

A failure in one repository is logged, recorded in its ``SyncOutcome`` and
does not stop the remaining repositories. Nothing is retried: the next pass
picks up whatever the staleness policy still considers stale.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ghoffline.core import IssueCache
from ghoffline.errors import ConfigurationError, GhOfflineError
from ghoffline.github import IssueSource
from ghoffline.staleness import STALENESS_WINDOW, should_sync
from ghoffline.types.sync import SyncOutcomeDict, SyncReportDict

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ProgressCallback = Callable[["SyncReport"], None]
OutcomeCallback = Callable[["SyncOutcome"], None]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class SyncReport:
    """Counts for one repository's sync pass. Advisory only."""

    owner: str
    name: str
    synced: int = 0
    skipped: int = 0
    pages: int = 0

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> SyncReportDict:
        return {"repository": self.full_name, "synced": self.synced, "skipped": self.skipped, "pages": self.pages}


@dataclass
class SyncOutcome:
    """Result of one repository within ``SyncEngine.sync_all()``."""

    owner: str
    name: str
    report: SyncReport | None = None
    error: GhOfflineError | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> SyncOutcomeDict:
        return {
            "repository": self.full_name,
            "ok": self.ok,
            "report": self.report.to_dict() if self.report else None,
            "error": str(self.error) if self.error else None,
            "error_kind": self.error.kind if self.error else None,
        }


class SyncEngine:
    """Reconcile remote issues into an ``IssueCache``.

    *clock* supplies the timestamp stamped on each written issue and used by
    the staleness check; it must return timezone-aware datetimes.
    *staleness_window* is how long a written issue counts as fresh. It is
    always ``STALENESS_WINDOW`` outside of tests; the CLI never overrides it.
    """

    def __init__(
        self,
        cache: IssueCache,
        source: IssueSource,
        *,
        clock: Clock | None = None,
        staleness_window: timedelta = STALENESS_WINDOW,
    ) -> None:
        self.cache = cache
        self.source = source
        self._clock = clock or _utc_now
        self.staleness_window = staleness_window

    def sync_repository(
        self,
        owner: str,
        name: str,
        *,
        force: bool = False,
        progress: ProgressCallback | None = None,
    ) -> SyncReport:
        """Sync one tracked repository.

        Raises:
            NotFoundError: the repository is not tracked.
            TransportError / DecodeError: a page could not be fetched.
            StoreError: an issue could not be written.
        """
        repository = self.cache.get_repository(owner, name)
        sync_index = self.cache.load_sync_index(repository.id)
        report = SyncReport(owner=owner, name=name)
        started = time.monotonic()

        page = 1
        while True:
            records = self.source.fetch_page(owner, name, page)
            report.pages += 1
            if not records:
                break

            for record in records:
                now = self._clock()
                if not should_sync(force, sync_index.get(record.number), now=now, window=self.staleness_window):
                    report.skipped += 1
                    continue
                synced_at = now.isoformat()
                self.cache.store_remote_issue(repository.id, record, synced_at)
                sync_index[record.number] = synced_at
                report.synced += 1

            logger.debug(
                "Synced page %d of %s",
                page,
                report.full_name,
                extra={"repo": report.full_name, "page": page, "synced": report.synced, "skipped": report.skipped},
            )
            if progress is not None:
                progress(report)
            page += 1

        logger.info(
            "%s: %d synced, %d skipped (cached)",
            report.full_name,
            report.synced,
            report.skipped,
            extra={
                "repo": report.full_name,
                "synced": report.synced,
                "skipped": report.skipped,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return report

    def sync_all(
        self,
        *,
        force: bool = False,
        progress: ProgressCallback | None = None,
        on_outcome: OutcomeCallback | None = None,
    ) -> list[SyncOutcome]:
        """Sync every tracked repository in (owner, name) order.

        Per-repository failures are captured in the returned outcomes, and
        *on_outcome* sees each one as soon as its repository is done.
        ConfigurationError is never swallowed here.
        """
        outcomes: list[SyncOutcome] = []
        for repository in self.cache.list_repositories():
            outcome = SyncOutcome(owner=repository.owner, name=repository.name)
            try:
                outcome.report = self.sync_repository(repository.owner, repository.name, force=force, progress=progress)
            except ConfigurationError:
                raise
            except GhOfflineError as exc:
                logger.error(
                    "Error syncing %s: %s",
                    repository.full_name,
                    exc,
                    extra={"repo": repository.full_name, "error": exc.kind},
                )
                outcome.error = exc
            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)
        return outcomes

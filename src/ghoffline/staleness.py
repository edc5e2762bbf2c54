"""Staleness policy: decide whether a cached issue must be fetched again."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

STALENESS_WINDOW = timedelta(minutes=10)


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC. None if unparseable."""
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def should_sync(
    force: bool,
    cached_last_synced_at: str | None,
    *,
    now: datetime | None = None,
    window: timedelta = STALENESS_WINDOW,
) -> bool:
    """Return True if an issue must be (re)written to the cache.

    *cached_last_synced_at* is None both for an issue never seen before and
    for a cached row with no recorded sync time; either way it is synced.
    A timestamp that cannot be parsed also syncs, so a corrupt value never
    pins an issue as fresh. Otherwise the issue is synced once
    ``STALENESS_WINDOW`` has elapsed since its last sync.

    The policy is fixed: *window* exists for tests and is never read from
    configuration or the command line.
    """
    if force or cached_last_synced_at is None:
        return True
    last_synced = parse_timestamp(cached_last_synced_at)
    if last_synced is None:
        return True
    current = now or datetime.now(UTC)
    return current - last_synced >= window

"""Tests for the sync engine against scripted issue sources."""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from ghoffline.core import IssueCache
from ghoffline.errors import ConfigurationError, DecodeError, NotFoundError, StoreError, TransportError
from ghoffline.sync import SyncEngine, SyncOutcome, SyncReport
from tests.conftest import FixedClock, ScriptedSource, break_statements, make_remote_issue


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


class TestSyncRepository:
    def test_first_sync_writes_everything(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource(
            {
                "octo/demo": [
                    [
                        make_remote_issue(1, "A", labels=["bug"], reactions={"+1": 2}),
                        make_remote_issue(2, "B"),
                    ]
                ]
            }
        )
        report = SyncEngine(cache, source, clock=clock).sync_repository("octo", "demo")

        assert (report.synced, report.skipped, report.pages) == (2, 0, 2)
        issue = cache.get_issue(1)
        assert issue.labels == ["bug"]
        assert [(r.reaction_type, r.count) for r in issue.reactions] == [("+1", 2)]
        assert issue.last_synced_at == clock.now.isoformat()

    def test_requests_pages_until_empty(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        pages = [[make_remote_issue(n)] for n in (1, 2, 3)]
        source = ScriptedSource({"octo/demo": pages})
        report = SyncEngine(cache, source, clock=clock).sync_repository("octo", "demo")

        assert source.calls == [("octo/demo", 1), ("octo/demo", 2), ("octo/demo", 3), ("octo/demo", 4)]
        assert report.pages == 4
        assert report.synced == 3

    def test_empty_repository(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource()
        report = SyncEngine(cache, source, clock=clock).sync_repository("octo", "demo")
        assert (report.synced, report.skipped, report.pages) == (0, 0, 1)

    def test_recent_issues_skipped(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1, "A")]]})
        engine = SyncEngine(cache, source, clock=clock)
        engine.sync_repository("octo", "demo")

        clock.advance(minutes=5)
        source.pages["octo/demo"] = [[make_remote_issue(1, "A edited")]]
        report = engine.sync_repository("octo", "demo")

        assert (report.synced, report.skipped) == (0, 1)
        assert cache.get_issue(1).title == "A"

    def test_stale_issues_rewritten(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1, "A")]]})
        engine = SyncEngine(cache, source, clock=clock)
        engine.sync_repository("octo", "demo")

        clock.advance(minutes=11)
        source.pages["octo/demo"] = [[make_remote_issue(1, "A edited", state="closed")]]
        report = engine.sync_repository("octo", "demo")

        assert (report.synced, report.skipped) == (1, 0)
        issue = cache.get_issue(1)
        assert issue.title == "A edited"
        assert issue.state == "closed"
        assert issue.last_synced_at == clock.now.isoformat()

    def test_force_ignores_staleness(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1), make_remote_issue(2)]]})
        engine = SyncEngine(cache, source, clock=clock)
        engine.sync_repository("octo", "demo")
        first = cache.load_sync_index(cache.get_repository("octo", "demo").id)

        clock.advance(minutes=1)
        report = engine.sync_repository("octo", "demo", force=True)

        assert (report.synced, report.skipped) == (2, 0)
        second = cache.load_sync_index(cache.get_repository("octo", "demo").id)
        assert all(second[n] > first[n] for n in (1, 2))  # type: ignore[operator]

    def test_no_duplicate_rows_across_passes(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1, labels=["bug"], reactions={"eyes": 1})]]})
        engine = SyncEngine(cache, source, clock=clock)
        engine.sync_repository("octo", "demo")
        engine.sync_repository("octo", "demo", force=True)

        for table in ("issues", "issue_labels", "issue_reactions", "labels"):
            assert cache.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 1

    def test_custom_staleness_window(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1)]]})
        engine = SyncEngine(cache, source, clock=clock, staleness_window=timedelta(minutes=1))
        engine.sync_repository("octo", "demo")

        clock.advance(minutes=2)
        report = engine.sync_repository("octo", "demo")
        assert (report.synced, report.skipped) == (1, 0)

    def test_unknown_repository(self, cache: IssueCache, clock: FixedClock) -> None:
        source = ScriptedSource()
        with pytest.raises(NotFoundError):
            SyncEngine(cache, source, clock=clock).sync_repository("octo", "missing")
        assert source.calls == []

    def test_mid_pass_failure_keeps_committed_pages(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")

        class FailsOnPageTwo(ScriptedSource):
            def fetch_page(self, owner: str, name: str, page: int) -> list:  # type: ignore[type-arg]
                if page == 2:
                    msg = "HTTP 502"
                    raise TransportError(msg, status_code=502)
                return super().fetch_page(owner, name, page)

        source = FailsOnPageTwo({"octo/demo": [[make_remote_issue(1)], [make_remote_issue(2)]]})
        with pytest.raises(TransportError):
            SyncEngine(cache, source, clock=clock).sync_repository("octo", "demo")
        assert [i.number for i in cache.list_issues()] == [1]

    def test_progress_called_per_page(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1)], [make_remote_issue(2)]]})
        seen: list[tuple[int, int]] = []

        def progress(report: SyncReport) -> None:
            seen.append((report.pages, report.synced))

        SyncEngine(cache, source, clock=clock).sync_repository("octo", "demo", progress=progress)
        assert seen == [(1, 1), (2, 2)]

    def test_logs_summary(self, cache: IssueCache, clock: FixedClock, caplog: pytest.LogCaptureFixture) -> None:
        cache.add_repository("octo", "demo")
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1)]]})
        with caplog.at_level(logging.INFO, logger="ghoffline"):
            SyncEngine(cache, source, clock=clock).sync_repository("octo", "demo")
        summary = [r for r in caplog.records if r.getMessage() == "octo/demo: 1 synced, 0 skipped (cached)"]
        assert len(summary) == 1
        assert summary[0].repo == "octo/demo"  # type: ignore[attr-defined]


class TestSyncAll:
    def test_all_repositories_in_order(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("zeta", "b")
        cache.add_repository("alpha", "a")
        source = ScriptedSource({"alpha/a": [[make_remote_issue(1)]], "zeta/b": [[make_remote_issue(1)]]})
        outcomes = SyncEngine(cache, source, clock=clock).sync_all()

        assert [o.full_name for o in outcomes] == ["alpha/a", "zeta/b"]
        assert all(o.ok for o in outcomes)

    def test_failure_isolated_per_repository(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "broken")
        cache.add_repository("octo", "demo")
        source = ScriptedSource(
            {"octo/demo": [[make_remote_issue(1)]]},
            failures={"octo/broken": DecodeError("Error decoding response", body="<html>")},
        )
        outcomes = SyncEngine(cache, source, clock=clock).sync_all()

        broken, demo = outcomes
        assert not broken.ok
        assert isinstance(broken.error, DecodeError)
        assert broken.to_dict()["error_kind"] == "decode"
        assert demo.ok
        assert demo.report is not None
        assert demo.report.synced == 1

    def test_store_read_failure_isolated_per_repository(self, cache: IssueCache, clock: FixedClock) -> None:
        broken = cache.add_repository("octo", "broken")
        cache.add_repository("octo", "demo")
        break_statements(cache, "SELECT number, last_synced_at FROM issues", params=(broken.id,))
        source = ScriptedSource({"octo/demo": [[make_remote_issue(1)]]})
        first, second = SyncEngine(cache, source, clock=clock).sync_all()

        assert isinstance(first.error, StoreError)
        assert first.to_dict()["error_kind"] == "store"
        assert second.ok
        assert cache.get_issue(1).repository.full_name == "octo/demo"  # type: ignore[union-attr]

    def test_oversized_value_isolated_per_repository(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "broken")
        cache.add_repository("octo", "demo")
        source = ScriptedSource(
            {
                "octo/broken": [[make_remote_issue(1, reactions={"+1": 10**20})]],
                "octo/demo": [[make_remote_issue(2)]],
            }
        )
        first, second = SyncEngine(cache, source, clock=clock).sync_all()

        assert isinstance(first.error, StoreError)
        assert not cache.conn.in_transaction
        assert second.ok
        assert [i.number for i in cache.list_issues()] == [2]

    def test_on_outcome_sees_each_repository(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "a")
        cache.add_repository("octo", "b")
        seen: list[SyncOutcome] = []
        SyncEngine(cache, ScriptedSource(), clock=clock).sync_all(on_outcome=seen.append)
        assert [o.full_name for o in seen] == ["octo/a", "octo/b"]

    def test_configuration_error_propagates(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "a")
        cache.add_repository("octo", "b")
        source = ScriptedSource(failures={"octo/a": ConfigurationError("GITHUB_TOKEN not set")})
        with pytest.raises(ConfigurationError):
            SyncEngine(cache, source, clock=clock).sync_all()
        assert source.calls == [("octo/a", 1)]

    def test_no_repositories(self, cache: IssueCache, clock: FixedClock) -> None:
        assert SyncEngine(cache, ScriptedSource(), clock=clock).sync_all() == []

    def test_outcome_to_dict(self, cache: IssueCache, clock: FixedClock) -> None:
        cache.add_repository("octo", "demo")
        outcomes = SyncEngine(cache, ScriptedSource({"octo/demo": [[make_remote_issue(1)]]}), clock=clock).sync_all()
        assert outcomes[0].to_dict() == {
            "repository": "octo/demo",
            "ok": True,
            "report": {"repository": "octo/demo", "synced": 1, "skipped": 0, "pages": 2},
            "error": None,
            "error_kind": None,
        }


class TestScenario:
    def test_two_passes_with_remote_edit(self, cache: IssueCache, clock: FixedClock) -> None:
        """Sync, edit remotely within the window, then again after it."""
        cache.add_repository("octo", "demo")
        source = ScriptedSource(
            {
                "octo/demo": [
                    [
                        make_remote_issue(1, "First", labels=["bug"], reactions={"+1": 1}),
                        make_remote_issue(2, "Second", is_pull_request=True),
                    ]
                ]
            }
        )
        engine = SyncEngine(cache, source, clock=clock)
        engine.sync_all()

        source.pages["octo/demo"] = [
            [
                make_remote_issue(1, "First (edited)", labels=["bug", "p1"], reactions={"+1": 4}),
                make_remote_issue(2, "Second", is_pull_request=True, state="closed"),
            ]
        ]
        clock.advance(minutes=3)
        (outcome,) = engine.sync_all()
        assert outcome.report is not None
        assert (outcome.report.synced, outcome.report.skipped) == (0, 2)
        assert cache.get_issue(1).title == "First"

        clock.advance(minutes=10)
        (outcome,) = engine.sync_all()
        assert outcome.report is not None
        assert (outcome.report.synced, outcome.report.skipped) == (2, 0)
        first = cache.get_issue(1)
        assert first.title == "First (edited)"
        assert first.labels == ["bug", "p1"]
        assert [(r.reaction_type, r.count) for r in first.reactions] == [("+1", 4)]
        assert cache.get_issue(2, pull_request=True).state == "closed"

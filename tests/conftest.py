"""Shared pytest fixtures for gh-offline tests."""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from ghoffline.core import IssueCache
from ghoffline.github import RemoteIssue

SYNCED_AT = "2024-01-01T00:00:00+00:00"


def make_remote_issue(number: int, title: str | None = None, **kwargs: object) -> RemoteIssue:
    """RemoteIssue with sensible defaults for the fields a test does not care about."""
    defaults: dict[str, object] = {
        "title": title or f"Issue {number}",
        "created_at": "2024-01-01T00:00:00Z",
        "state": "open",
        "body": "",
        "author": "octocat",
    }
    defaults.update(kwargs)
    return RemoteIssue(number=number, **defaults)  # type: ignore[arg-type]


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class ScriptedSource:
    """In-memory IssueSource serving fixed pages per repository.

    Pages past the scripted ones come back empty. An entry in *failures*
    is raised instead of serving the page for that repository.
    """

    def __init__(
        self,
        pages: dict[str, list[list[RemoteIssue]]] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.failures = failures or {}
        self.calls: list[tuple[str, int]] = []

    def fetch_page(self, owner: str, name: str, page: int) -> list[RemoteIssue]:
        full_name = f"{owner}/{name}"
        self.calls.append((full_name, page))
        if full_name in self.failures:
            raise self.failures[full_name]
        repo_pages = self.pages.get(full_name, [])
        if page <= len(repo_pages):
            return repo_pages[page - 1]
        return []


class FailingConnection:
    """Connection wrapper whose statements containing *fragment* raise.

    With *params* set, only executions bound to exactly those parameters
    fail. Everything else is delegated to the wrapped connection.
    """

    def __init__(self, conn: sqlite3.Connection, fragment: str, *, params: tuple[Any, ...] | None = None) -> None:
        self._wrapped = conn
        self.fragment = fragment
        self.params = params

    def execute(self, sql: str, parameters: Any = ()) -> sqlite3.Cursor:
        if self.fragment in sql and (self.params is None or tuple(parameters) == self.params):
            raise sqlite3.OperationalError("disk I/O error")
        return self._wrapped.execute(sql, parameters)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._wrapped, name)


def break_statements(cache: IssueCache, fragment: str, *, params: tuple[Any, ...] | None = None) -> None:
    """Make matching statements on *cache* fail with a SQLite error."""
    cache._conn = FailingConnection(cache.conn, fragment, params=params)  # type: ignore[assignment]


@pytest.fixture
def cache(tmp_path: Path) -> Generator[IssueCache, None, None]:
    """Fresh IssueCache for each test."""
    c = IssueCache(tmp_path / "repositories.db")
    c.initialize()
    yield c
    c.close()


@pytest.fixture
def populated_cache(cache: IssueCache) -> IssueCache:
    """IssueCache pre-populated with a representative issue set.

    Creates:
    - repositories octo/demo and octo/tools
    - octo/demo: #1 open issue (labels bug, ui; 3 x +1), #2 closed issue,
      #3 open pull request, #4 closed pull request
    - octo/tools: #1 open issue
    """
    demo = cache.add_repository("octo", "demo")
    tools = cache.add_repository("octo", "tools")
    cache.store_remote_issue(
        demo.id,
        make_remote_issue(1, "Crash on start", body="Steps to reproduce", labels=["bug", "ui"], reactions={"+1": 3}),
        SYNCED_AT,
    )
    cache.store_remote_issue(demo.id, make_remote_issue(2, "Old bug", state="closed"), SYNCED_AT)
    cache.store_remote_issue(demo.id, make_remote_issue(3, "Add feature", is_pull_request=True), SYNCED_AT)
    cache.store_remote_issue(
        demo.id, make_remote_issue(4, "Merged fix", state="closed", is_pull_request=True), SYNCED_AT
    )
    cache.store_remote_issue(tools.id, make_remote_issue(1, "Tools issue"), SYNCED_AT)
    return cache


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point configuration at tmp_path and run from there. Returns the database path."""
    db_path = tmp_path / "data" / "repositories.db"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GH_OFFLINE_DB", str(db_path))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_OFFLINE_API_URL", raising=False)
    return db_path

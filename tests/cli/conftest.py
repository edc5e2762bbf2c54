"""Fixtures for CLI interface tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from ghoffline.config import SyncConfig
from ghoffline.core import IssueCache
from ghoffline.github import GitHubIssueSource
from tests.conftest import SYNCED_AT, make_remote_issue

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def cli_env(isolated_env: Path, cli_runner: CliRunner) -> tuple[CliRunner, Path]:
    """A runner whose configuration points at an empty database under tmp_path."""
    return cli_runner, isolated_env


@pytest.fixture
def cli_with_issues(cli_env: tuple[CliRunner, Path]) -> tuple[CliRunner, Path]:
    """Like cli_env, with octo/demo tracked and a few issues and PRs cached."""
    runner, db_path = cli_env
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with IssueCache(db_path) as cache:
        cache.initialize()
        repo = cache.add_repository("octo", "demo")
        cache.store_remote_issue(
            repo.id,
            make_remote_issue(
                1,
                "Crash on start",
                body="Steps to reproduce",
                author="alice",
                labels=["bug", "ui"],
                reactions={"+1": 3, "heart": 1},
                created_at="2024-03-05T10:00:00Z",
            ),
            SYNCED_AT,
        )
        cache.store_remote_issue(repo.id, make_remote_issue(2, "Old bug", state="closed"), SYNCED_AT)
        cache.store_remote_issue(repo.id, make_remote_issue(10, "Add feature", is_pull_request=True), SYNCED_AT)
    return runner, db_path


def patch_github(monkeypatch: pytest.MonkeyPatch, handler: Handler) -> list[httpx.Request]:
    """Route the sync command's GitHub traffic through *handler*; returns the request log."""
    requests: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    class _Factory:
        @staticmethod
        def from_config(config: SyncConfig) -> GitHubIssueSource:
            return GitHubIssueSource.from_config(config, transport=httpx.MockTransport(recording))

    monkeypatch.setattr("ghoffline.cli_commands.sync.GitHubIssueSource", _Factory)
    return requests

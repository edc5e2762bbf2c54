"""CLI command for refreshing the cache from GitHub: sync."""

from __future__ import annotations

import json as json_mod
import sys

import click

from ghoffline.cli_common import fail, get_cache, get_config
from ghoffline.errors import ConfigurationError
from ghoffline.github import GitHubIssueSource
from ghoffline.sync import SyncEngine, SyncOutcome, SyncReport


class _ProgressPrinter:
    """Rewrites one status line per repository; errors start on a fresh line."""

    def __init__(self) -> None:
        self.line_open = False

    def progress(self, report: SyncReport) -> None:
        click.echo(
            f"\r{click.style(report.full_name, fg='cyan')}: "
            f"{report.synced} synced, {report.skipped} skipped (cached)",
            nl=False,
        )
        self.line_open = True

    def outcome(self, outcome: SyncOutcome) -> None:
        if outcome.ok and outcome.report is not None:
            self.progress(outcome.report)
            click.echo()
        else:
            if self.line_open:
                click.echo()
            click.echo(
                f"{click.style('Error', fg='red')} syncing {outcome.full_name}: {outcome.error}",
                err=True,
            )
        self.line_open = False


@click.command("sync")
@click.option("--force", "-f", is_flag=True, help="Rewrite every issue, ignoring the staleness window")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def sync(force: bool, as_json: bool) -> None:
    """Fetch issues and pull requests for every tracked repository."""
    config = get_config()
    try:
        config.require_token()
    except ConfigurationError as e:
        fail(str(e))

    with get_cache(config) as cache:
        if not cache.list_repositories():
            click.echo("No repositories to sync. Add repositories with: gh-offline repo add owner/name")
            return
        with GitHubIssueSource.from_config(config) as source:
            engine = SyncEngine(cache, source)
            if as_json:
                outcomes = engine.sync_all(force=force)
            else:
                printer = _ProgressPrinter()
                outcomes = engine.sync_all(force=force, progress=printer.progress, on_outcome=printer.outcome)

    if as_json:
        click.echo(json_mod.dumps([o.to_dict() for o in outcomes], indent=2))
    if any(not o.ok for o in outcomes):
        sys.exit(1)

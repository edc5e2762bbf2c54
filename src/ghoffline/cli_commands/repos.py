"""CLI commands for tracked repositories: repo, repo add, repo rm."""

from __future__ import annotations

import json as json_mod
import sys

import click

from ghoffline.cli_common import fail, get_cache, parse_repo_arg
from ghoffline.errors import ConflictError


@click.group(invoke_without_command=True)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def repo(ctx: click.Context, as_json: bool) -> None:
    """Repository management. Lists tracked repositories when run bare."""
    if ctx.invoked_subcommand is not None:
        return
    with get_cache() as cache:
        repos = cache.list_repositories()
    if as_json:
        click.echo(json_mod.dumps([r.to_dict() for r in repos], indent=2))
        return
    if not repos:
        click.echo("No repositories tracked. Add one with: gh-offline repo add owner/name")
        return
    for r in repos:
        click.echo(r.full_name)


@repo.command("add")
@click.argument("full_name", metavar="OWNER/NAME")
def repo_add(full_name: str) -> None:
    """Track a repository."""
    owner, name = parse_repo_arg(full_name)
    with get_cache() as cache:
        try:
            added = cache.add_repository(owner, name)
        except ConflictError as e:
            fail(str(e))
    click.echo(f"Repository '{click.style(added.full_name, fg='cyan')}' added successfully.")
    click.echo("Next: gh-offline sync")


@repo.command("rm")
@click.argument("full_name", metavar="OWNER/NAME")
def repo_rm(full_name: str) -> None:
    """Stop tracking a repository."""
    owner, name = parse_repo_arg(full_name)
    with get_cache() as cache:
        removed = cache.remove_repository(owner, name)
    if not removed:
        click.echo(f"Repository '{owner}/{name}' not found.", err=True)
        sys.exit(1)
    click.echo(f"Repository '{click.style(f'{owner}/{name}', fg='cyan')}' removed successfully.")

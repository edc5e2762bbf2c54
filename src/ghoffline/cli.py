"""CLI for gh-offline, an offline mirror of GitHub issues and pull requests.

Usage:
    gh-offline repo add owner/name       # Track a repository
    gh-offline repo rm owner/name        # Stop tracking a repository
    gh-offline repo                      # List tracked repositories
    gh-offline sync [--force]            # Refresh the cache from GitHub
    gh-offline issue                     # List open issues
    gh-offline issue 42                  # Show issue #42
    gh-offline issue --state all -t all  # Everything, issues and PRs
    gh-offline pr --state closed         # List closed pull requests
"""

from __future__ import annotations

import click

from ghoffline import __version__
from ghoffline.cli_commands.issues import issue_cmd, pr_cmd
from ghoffline.cli_commands.repos import repo
from ghoffline.cli_commands.sync import sync


@click.group()
@click.version_option(version=__version__, prog_name="gh-offline")
def cli() -> None:
    """gh-offline: browse GitHub issues without a network connection."""


cli.add_command(repo)
cli.add_command(sync)
cli.add_command(issue_cmd)
cli.add_command(pr_cmd)


if __name__ == "__main__":
    cli()

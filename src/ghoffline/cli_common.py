"""Shared CLI helpers.

Provides ``get_config()``, ``get_cache()`` and ``parse_repo_arg()`` so that
``cli.py`` and the ``cli_commands/*.py`` modules can share them without
circular imports.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from ghoffline.config import SyncConfig, load_config
from ghoffline.core import IssueCache
from ghoffline.db_repos import parse_full_name
from ghoffline.errors import GhOfflineError
from ghoffline.logging import setup_logging
from ghoffline.migrations import MigrationError


def fail(message: str) -> NoReturn:
    """Print ``Error: <message>`` to stderr and exit with status 1."""
    click.echo(f"{click.style('Error', fg='red')}: {message}", err=True)
    sys.exit(1)


def get_config() -> SyncConfig:
    """Load configuration from the environment and ./.env."""
    return load_config()


def get_cache(config: SyncConfig | None = None) -> IssueCache:
    """Open the configured cache, creating or migrating it as needed."""
    config = config or get_config()
    try:
        cache = IssueCache.from_config(config)
    except (GhOfflineError, MigrationError, ValueError) as e:
        fail(str(e))
    setup_logging(config.log_dir)
    return cache


def parse_repo_arg(value: str) -> tuple[str, str]:
    """Split an ``owner/name`` argument or exit with a usage error."""
    try:
        return parse_full_name(value)
    except ValueError:
        fail(f"Repository must be in format {click.style('owner/name', fg='yellow')}.")

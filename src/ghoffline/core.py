"""Local SQLite cache of GitHub issues and pull requests.

Single source of truth for all SQLite operations. The CLI and the sync
engine both go through ``IssueCache``; nothing else opens the database.

Covers tracked repositories, issue upserts, label and reaction
reconciliation, and the read queries used for offline browsing.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ghoffline.db_issues import IssuesMixin
from ghoffline.db_repos import RepositoriesMixin
from ghoffline.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from ghoffline.errors import StoreError
from ghoffline.types.core import ISOTimestamp, IssueDict, ReactionDict, RepositoryDict

if TYPE_CHECKING:
    from ghoffline.config import SyncConfig

logger = logging.getLogger(__name__)

WEB_URL = "https://github.com"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Repository:
    id: int
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> RepositoryDict:
        return {"id": self.id, "owner": self.owner, "name": self.name, "full_name": self.full_name}


@dataclass
class Reaction:
    reaction_type: str
    count: int

    def to_dict(self) -> ReactionDict:
        return {"reaction_type": self.reaction_type, "count": self.count}


@dataclass
class Issue:
    id: int
    repository_id: int
    number: int
    title: str
    body: str = ""
    created_at: str = ""
    state: str = "open"
    is_pull_request: bool = False
    author: str | None = None
    last_synced_at: str | None = None
    # Computed (not stored on the issues row)
    repository: Repository | None = None
    labels: list[str] = field(default_factory=list)
    reactions: list[Reaction] = field(default_factory=list)

    @property
    def url(self) -> str | None:
        if self.repository is None:
            return None
        kind = "pull" if self.is_pull_request else "issues"
        return f"{WEB_URL}/{self.repository.full_name}/{kind}/{self.number}"

    def to_dict(self) -> IssueDict:
        return {
            "id": self.id,
            "repository_id": self.repository_id,
            "repository": self.repository.full_name if self.repository else None,
            "number": self.number,
            "title": self.title,
            "body": self.body,
            "created_at": ISOTimestamp(self.created_at),
            "state": self.state,
            "is_pull_request": self.is_pull_request,
            "author": self.author,
            "last_synced_at": ISOTimestamp(self.last_synced_at) if self.last_synced_at else None,
            "url": self.url,
            "labels": self.labels,
            "reactions": [r.to_dict() for r in self.reactions],
        }


# ---------------------------------------------------------------------------
# IssueCache
# ---------------------------------------------------------------------------


class IssueCache(RepositoriesMixin, IssuesMixin):
    """Direct SQLite operations over a single connection.

    Not thread-safe: callers that ever go concurrent must serialise access.
    """

    def __init__(self, db_path: str | Path, *, check_same_thread: bool = True) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._check_same_thread = check_same_thread

    @classmethod
    def from_config(cls, config: SyncConfig) -> IssueCache:
        """Open (creating or migrating as needed) the cache configured in *config*."""
        config.ensure_data_dir()
        cache = cls(config.db_path)
        cache.initialize()
        return cache

    def __enter__(self) -> IssueCache:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(
                    str(self.db_path),
                    isolation_level="DEFERRED",
                    check_same_thread=self._check_same_thread,
                )
            except sqlite3.Error as exc:
                msg = f"Cannot open database {self.db_path}: {exc}"
                raise StoreError(msg) from exc
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA busy_timeout=5000")
        return self._conn

    def initialize(self) -> None:
        """Create tables (if new) or migrate (if existing).

        A fresh database (user_version == 0, no tables) gets SCHEMA_SQL and is
        stamped with the current version. A database written before schema
        versioning existed (user_version == 0 but an ``issues`` table present)
        is stamped v1 and migrated like any other older file.
        """
        current_version = self.get_schema_version()

        if current_version == 0 and self._has_table("issues"):
            logger.info("Unversioned database at %s; treating as schema v1", self.db_path)
            self.conn.execute("PRAGMA user_version = 1")
            current_version = 1

        if current_version == 0:
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
        elif current_version < CURRENT_SCHEMA_VERSION:
            from ghoffline.migrations import apply_pending_migrations

            apply_pending_migrations(self.conn, CURRENT_SCHEMA_VERSION)
        elif current_version > CURRENT_SCHEMA_VERSION:
            msg = (
                f"Database schema v{current_version} is newer than this version of gh-offline "
                f"(expects v{CURRENT_SCHEMA_VERSION}). Downgrade is not supported."
            )
            raise ValueError(msg)

        self.conn.commit()

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
        return result

    def _has_table(self, table: str) -> bool:
        row = self.conn.execute("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)).fetchone()
        return row is not None

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

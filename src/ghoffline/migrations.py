"""Schema migration framework for gh-offline.

Migrations are version-keyed functions that transform the database schema
from one version to the next. Each migration receives a raw sqlite3.Connection
and must be idempotent (safe to re-run, using IF NOT EXISTS / IF EXISTS).

The migration runner:
  1. Reads the current schema version via PRAGMA user_version
  2. Applies each pending migration in order
  3. Bumps user_version after each successful migration
  4. Wraps each migration in a transaction (rollback on failure)

Usage — adding a new migration:
  1. Increment CURRENT_SCHEMA_VERSION in db_schema.py
  2. Add a function here: def migrate_v<N>_to_v<N+1>(conn) -> None
  3. Register it in MIGRATIONS: N: migrate_v<N>_to_v<N+1>
  4. Update SCHEMA_SQL in db_schema.py to match the post-migration state
  5. Add a test in tests/test_migrations.py

Databases created before schema versioning existed have user_version 0 but
already hold an ``issues`` table; ``IssueCache.initialize()`` stamps those as
v1 before running the registered migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Protocol

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Migration function protocol
# ---------------------------------------------------------------------------


class MigrationFn(Protocol):
    """Protocol for migration functions."""

    def __call__(self, conn: sqlite3.Connection) -> None: ...


# ---------------------------------------------------------------------------
# Migration registry
#
# Keys are the version being migrated FROM (i.e., the current user_version).
# Values are functions that transform the schema to the next version.
# ---------------------------------------------------------------------------


def migrate_v1_to_v2(conn: sqlite3.Connection) -> None:
    """v1 → v2: Track authorship, sync freshness, labels, and reactions.

    Changes:
      - repositories: rename 'user' column to 'owner'
      - issues: add 'is_pull_request' (BOOLEAN, default 0)
      - issues: add 'author' (TEXT, nullable)
      - issues: add 'last_synced_at' (TEXT, nullable)
      - new tables 'labels', 'issue_labels', 'issue_reactions'
      - indexes for per-repository listing and label lookups
    """
    repo_columns = _table_columns(conn, "repositories")
    if "user" in repo_columns and "owner" not in repo_columns:
        rename_column(conn, "repositories", "user", "owner")

    add_column(conn, "issues", "is_pull_request", "BOOLEAN NOT NULL", "0")
    add_column(conn, "issues", "author", "TEXT", None)
    add_column(conn, "issues", "last_synced_at", "TEXT", None)

    # Use execute() not executescript(): executescript implicitly commits,
    # breaking the migration runner's per-migration transaction guarantees.
    conn.execute("""\
        CREATE TABLE IF NOT EXISTS labels (
            id    INTEGER PRIMARY KEY,
            name  TEXT NOT NULL UNIQUE
        )""")
    conn.execute("""\
        CREATE TABLE IF NOT EXISTS issue_labels (
            id        INTEGER PRIMARY KEY,
            issue_id  INTEGER NOT NULL REFERENCES issues(id),
            label_id  INTEGER NOT NULL REFERENCES labels(id),
            UNIQUE(issue_id, label_id)
        )""")
    conn.execute("""\
        CREATE TABLE IF NOT EXISTS issue_reactions (
            id             INTEGER PRIMARY KEY,
            issue_id       INTEGER NOT NULL REFERENCES issues(id),
            reaction_type  TEXT NOT NULL,
            count          INTEGER NOT NULL,
            UNIQUE(issue_id, reaction_type),
            CHECK (reaction_type IN ('+1', '-1', 'laugh', 'hooray', 'confused', 'heart', 'rocket', 'eyes'))
        )""")

    add_index(conn, "idx_issues_repo_state", "issues", ["repository_id", "state", "is_pull_request"])
    add_index(conn, "idx_issues_number", "issues", ["number"])
    add_index(conn, "idx_issue_labels_label", "issue_labels", ["label_id"])


MIGRATIONS: dict[int, MigrationFn] = {
    1: migrate_v1_to_v2,
}


# ---------------------------------------------------------------------------
# Migration runner
# ---------------------------------------------------------------------------


class MigrationError(Exception):
    """Raised when a migration fails."""

    def __init__(self, from_version: int, to_version: int, cause: Exception) -> None:
        self.from_version = from_version
        self.to_version = to_version
        self.cause = cause
        super().__init__(f"Migration v{from_version} → v{to_version} failed: {cause}")


def apply_pending_migrations(conn: sqlite3.Connection, target_version: int) -> int:
    """Apply all pending migrations from current version up to target_version.

    Args:
        conn: Open SQLite connection (must have row_factory and PRAGMAs already set).
        target_version: The CURRENT_SCHEMA_VERSION from db_schema.py.

    Returns:
        Number of migrations applied (0 if already up to date).

    Raises:
        MigrationError: If any individual migration fails (DB rolled back to
            the last successful migration).
        ValueError: If current version > target (downgrade not supported).
    """
    current: int = conn.execute("PRAGMA user_version").fetchone()[0]

    if current == target_version:
        return 0

    if current > target_version:
        msg = f"Database schema v{current} is newer than this version of gh-offline (expects v{target_version}). Downgrade is not supported."
        raise ValueError(msg)

    applied = 0
    for version in range(current, target_version):
        migration = MIGRATIONS.get(version)
        if migration is None:
            msg = (
                f"No migration registered for v{version} → v{version + 1}. "
                f"Database is at v{version}, target is v{target_version}. "
                f"Register the migration in ghoffline.migrations.MIGRATIONS."
            )
            raise MigrationError(version, version + 1, KeyError(msg))

        logger.info("Applying migration v%d → v%d ...", version, version + 1)
        try:
            conn.execute("BEGIN IMMEDIATE")
            migration(conn)
            conn.execute(f"PRAGMA user_version = {version + 1}")
            conn.commit()
            applied += 1
            logger.info("Migration v%d → v%d complete.", version, version + 1)
        except Exception as exc:
            conn.rollback()
            raise MigrationError(version, version + 1, exc) from exc

    return applied


# ---------------------------------------------------------------------------
# SQLite migration helpers
# ---------------------------------------------------------------------------


def _table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def add_column(
    conn: sqlite3.Connection,
    table: str,
    column: str,
    col_type: str = "TEXT",
    default: str | None = "''",
) -> None:
    """Add a column to a table (idempotent).

    Args:
        conn: SQLite connection.
        table: Table name.
        column: New column name.
        col_type: SQL type, optionally with constraints (e.g. "BOOLEAN NOT NULL").
        default: DEFAULT value as a SQL literal (e.g., "''" or "0" or "NULL").
                 If None, no DEFAULT clause is added.

    Note: SQLite requires a DEFAULT for ADD COLUMN with NOT NULL.
    """
    if column in _table_columns(conn, table):
        return

    default_clause = f" DEFAULT {default}" if default is not None else ""
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}{default_clause}")


def add_index(
    conn: sqlite3.Connection,
    index_name: str,
    table: str,
    columns: list[str],
    *,
    unique: bool = False,
) -> None:
    """Create an index (idempotent via IF NOT EXISTS)."""
    unique_kw = "UNIQUE " if unique else ""
    cols = ", ".join(columns)
    conn.execute(f"CREATE {unique_kw}INDEX IF NOT EXISTS {index_name} ON {table}({cols})")


def rename_column(conn: sqlite3.Connection, table: str, old_name: str, new_name: str) -> None:
    """Rename a column (SQLite >= 3.25.0, idempotent).

    Checks column existence before attempting rename.
    """
    existing = _table_columns(conn, table)
    if new_name in existing:
        return  # Already renamed
    if old_name not in existing:
        msg = f"Column {old_name!r} not found in table {table!r}"
        raise ValueError(msg)
    conn.execute(f"ALTER TABLE {table} RENAME COLUMN {old_name} TO {new_name}")

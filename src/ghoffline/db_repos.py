"""RepositoriesMixin — tracked repository CRUD.

All methods access ``self.conn`` via Python's MRO when composed into
``IssueCache``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from ghoffline.db_base import DBMixinProtocol
from ghoffline.errors import ConflictError, NotFoundError, StoreError

if TYPE_CHECKING:
    from ghoffline.core import Repository

logger = logging.getLogger(__name__)


def parse_full_name(full_name: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts. Raises ValueError on any other shape."""
    parts = full_name.split("/")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        msg = f"Repository must be in format owner/name, got {full_name!r}"
        raise ValueError(msg)
    return parts[0].strip(), parts[1].strip()


def _build_repository(row: sqlite3.Row) -> Repository:
    from ghoffline.core import Repository

    return Repository(id=row["id"], owner=row["owner"], name=row["name"])


class RepositoriesMixin(DBMixinProtocol):
    """Tracked repositories: add, list, look up, remove.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``IssueCache`` at composition time via MRO.
    """

    def add_repository(self, owner: str, name: str) -> Repository:
        try:
            self.conn.execute(
                "INSERT INTO repositories (owner, name) VALUES (?, ?)",
                (owner, name),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as exc:
            self.conn.rollback()
            msg = f"Repository {owner}/{name} is already tracked"
            raise ConflictError(msg) from exc
        except sqlite3.Error as exc:
            self.conn.rollback()
            msg = f"Failed to add repository {owner}/{name}: {exc}"
            raise StoreError(msg) from exc
        logger.info("Tracking repository %s/%s", owner, name)
        return self.get_repository(owner, name)

    def list_repositories(self) -> list[Repository]:
        try:
            rows = self.conn.execute(
                "SELECT id, owner, name FROM repositories ORDER BY owner ASC, name ASC"
            ).fetchall()
        except sqlite3.Error as exc:
            msg = f"Failed to list repositories: {exc}"
            raise StoreError(msg) from exc
        return [_build_repository(r) for r in rows]

    def get_repository(self, owner: str, name: str) -> Repository:
        try:
            row = self.conn.execute(
                "SELECT id, owner, name FROM repositories WHERE owner = ? AND name = ?",
                (owner, name),
            ).fetchone()
        except sqlite3.Error as exc:
            msg = f"Failed to look up repository {owner}/{name}: {exc}"
            raise StoreError(msg) from exc
        if row is None:
            msg = f"Repository {owner}/{name} not found"
            raise NotFoundError(msg)
        return _build_repository(row)

    def remove_repository(self, owner: str, name: str) -> bool:
        """Stop tracking a repository. Returns False if it was not tracked.

        Cached issue rows are left in place; listings only show issues of
        tracked repositories.
        """
        try:
            cursor = self.conn.execute(
                "DELETE FROM repositories WHERE owner = ? AND name = ?",
                (owner, name),
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            self.conn.rollback()
            msg = f"Failed to remove repository {owner}/{name}: {exc}"
            raise StoreError(msg) from exc
        removed = cursor.rowcount > 0
        if removed:
            logger.info("Stopped tracking repository %s/%s", owner, name)
        return removed

"""Shared Protocol for the cache's DB mixins."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ghoffline.core import Repository


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.conn,
    self.get_repository(), etc. without ``type: ignore`` on every call.
    Actual implementations are provided by IssueCache at composition time.
    """

    db_path: Path
    _conn: sqlite3.Connection | None

    @property
    def conn(self) -> sqlite3.Connection: ...

    def get_repository(self, owner: str, name: str) -> Repository: ...

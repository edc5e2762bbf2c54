"""Configuration for gh-offline.

Settings come from the process environment, with a ``.env`` file in the
current directory as a fallback source. The result is an immutable
``SyncConfig`` that callers pass explicitly to the store and the engine.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from ghoffline.errors import ConfigurationError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "gh-offline"
DB_FILENAME = "repositories.db"
DEFAULT_API_URL = "https://api.github.com"

TOKEN_VAR = "GITHUB_TOKEN"
DB_PATH_VAR = "GH_OFFLINE_DB"
API_URL_VAR = "GH_OFFLINE_API_URL"


def default_data_dir(env: Mapping[str, str | None] | None = None) -> Path:
    """Return ``$XDG_DATA_HOME/gh-offline`` (``~/.local/share/gh-offline`` if unset)."""
    env = os.environ if env is None else env
    base = env.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / APP_DIR_NAME


@dataclass(frozen=True)
class SyncConfig:
    token: str | None
    db_path: Path
    api_url: str = DEFAULT_API_URL

    @property
    def log_dir(self) -> Path:
        return self.db_path.parent

    def require_token(self) -> str:
        """Return the bearer token or raise before any network call is made."""
        if not self.token:
            msg = f"{TOKEN_VAR} not set. Export it or add it to a .env file."
            raise ConfigurationError(msg)
        return self.token

    def ensure_data_dir(self) -> Path:
        """Create the directory holding the database file."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create data directory {self.db_path.parent}: {exc}"
            raise ConfigurationError(msg) from exc
        return self.db_path.parent


def load_config(
    env: Mapping[str, str | None] | None = None,
    *,
    dotenv_path: Path | None = None,
) -> SyncConfig:
    """Build a ``SyncConfig`` from ``.env`` values overlaid by the environment.

    Values already present in *env* (default: ``os.environ``) win over the
    ``.env`` file, matching how python-dotenv's ``load_dotenv`` behaves
    without ``override=True``.
    """
    env = os.environ if env is None else env
    path = dotenv_path if dotenv_path is not None else Path.cwd() / ".env"
    merged: dict[str, str | None] = {}
    if path.is_file():
        merged.update(dotenv_values(path))
        logger.debug("Loaded settings from %s", path)
    merged.update({k: v for k, v in env.items() if v is not None})

    db_value = merged.get(DB_PATH_VAR)
    db_path = Path(db_value).expanduser() if db_value else default_data_dir(merged) / DB_FILENAME
    api_url = (merged.get(API_URL_VAR) or DEFAULT_API_URL).rstrip("/")
    return SyncConfig(token=merged.get(TOKEN_VAR) or None, db_path=db_path, api_url=api_url)

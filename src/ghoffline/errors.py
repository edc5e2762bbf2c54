"""Error taxonomy for gh-offline.

Every failure the store, the GitHub adapter, or the sync engine reports is a
``GhOfflineError`` tagged with a ``kind``. Callers branch on the subclass (or
on ``kind`` when serialising) to tell a fatal configuration problem apart
from a per-repository failure that the next sync pass will retry naturally.
"""

from __future__ import annotations

from typing import Literal

ErrorKind = Literal["configuration", "transport", "decode", "not_found", "conflict", "store"]


class GhOfflineError(Exception):
    """Base class for all gh-offline errors."""

    kind: ErrorKind = "store"
    retryable: bool = False


class ConfigurationError(GhOfflineError):
    """Missing credential or unusable storage location. Fatal to the invocation."""

    kind: ErrorKind = "configuration"


class TransportError(GhOfflineError):
    """The GitHub API could not be reached or answered with a non-success status."""

    kind: ErrorKind = "transport"
    retryable = True

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class DecodeError(GhOfflineError):
    """The GitHub API answered with a body that is not a list of issues."""

    kind: ErrorKind = "decode"
    retryable = True

    def __init__(self, message: str, *, body: str) -> None:
        self.body = body
        super().__init__(f"{message}. Response body: {body}")


class NotFoundError(GhOfflineError):
    """A repository or issue is not present in the local cache."""

    kind: ErrorKind = "not_found"


class ConflictError(GhOfflineError):
    """An explicit user action collided with a uniqueness constraint."""

    kind: ErrorKind = "conflict"


class StoreError(GhOfflineError):
    """An SQLite operation failed."""

    kind: ErrorKind = "store"

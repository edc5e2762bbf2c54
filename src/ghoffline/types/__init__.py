# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin; that would create circular imports.
"""Typed return-value contracts for the gh-offline store and sync layers."""

from __future__ import annotations

from ghoffline.types.core import (
    REACTION_KINDS,
    ISOTimestamp,
    IssueDict,
    KindFilter,
    ReactionDict,
    RepositoryDict,
    StateFilter,
)
from ghoffline.types.sync import SyncOutcomeDict, SyncReportDict

__all__ = [
    "REACTION_KINDS",
    "ISOTimestamp",
    "IssueDict",
    "KindFilter",
    "ReactionDict",
    "RepositoryDict",
    "StateFilter",
    "SyncOutcomeDict",
    "SyncReportDict",
]

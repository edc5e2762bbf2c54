"""gh-offline — offline mirror of GitHub issues and pull requests."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("gh-offline")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from ghoffline.core import Issue, IssueCache, Repository
from ghoffline.sync import SyncEngine, SyncOutcome, SyncReport

__all__ = ["Issue", "IssueCache", "Repository", "SyncEngine", "SyncOutcome", "SyncReport", "__version__"]

"""pearlarchive - curated archive of medical-education tweet threads."""

from pearlarchive.models.thread import Media, Thread, Tweet
from pearlarchive.models.overlay import DeletionRecord, EditRecord
from pearlarchive.models.principal import Principal, Role
from pearlarchive.models.view import ArchiveView, FilterState
from pearlarchive.config import ArchiveConfig
from pearlarchive.core.archive import Archive, BrowseSession
from pearlarchive.core.resolver import resolve
from pearlarchive.core.filters import filter_threads
from pearlarchive.core.ordering import SessionOrdering, SortMode

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "Archive",
    "ArchiveConfig",
    "BrowseSession",
    # Pipeline
    "resolve",
    "filter_threads",
    "SessionOrdering",
    "SortMode",
    # Models
    "Thread",
    "Tweet",
    "Media",
    "DeletionRecord",
    "EditRecord",
    "Principal",
    "Role",
    "FilterState",
    "ArchiveView",
    "__version__",
]

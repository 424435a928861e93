"""Pydantic models for pearlarchive."""

from pearlarchive.models.thread import Answer, Category, Media, MediaType, Thread, Tweet
from pearlarchive.models.overlay import (
    DeletionRecord,
    EditRecord,
    FavoriteRecord,
    ItemType,
    OverlaySnapshot,
)
from pearlarchive.models.principal import Principal, Role
from pearlarchive.models.view import (
    ALL,
    ArchiveStats,
    ArchiveView,
    Facets,
    FilterResult,
    FilterState,
    MutationResult,
)

__all__ = [
    "Answer",
    "Category",
    "Media",
    "MediaType",
    "Thread",
    "Tweet",
    "DeletionRecord",
    "EditRecord",
    "FavoriteRecord",
    "ItemType",
    "OverlaySnapshot",
    "Principal",
    "Role",
    "ALL",
    "ArchiveStats",
    "ArchiveView",
    "Facets",
    "FilterResult",
    "FilterState",
    "MutationResult",
]

"""Filter state and derived view models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pearlarchive.models.thread import Thread

ALL = "All"


class FilterState(BaseModel):
    """Live user filters applied to the resolved corpus."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    search_query: str = ""
    category: str = ALL
    year: int | Literal["All"] = ALL
    pearls_only: bool = False
    favorites_only: bool = False


class Facets(BaseModel):
    """Filter options derived from the full effective corpus."""

    categories: list[str] = []
    years: list[int] = []
    category_counts: dict[str, int] = {}


class ArchiveStats(BaseModel):
    """Header counters."""

    total_threads: int = 0
    total_tweets: int = 0
    total_pearls: int = 0
    total_with_media: int = 0
    filtered_count: int = 0


class FilterResult(BaseModel):
    """Output of the filter engine."""

    visible: list[Thread] = []
    facets: Facets = Field(default_factory=Facets)
    stats: ArchiveStats = Field(default_factory=ArchiveStats)


class ArchiveView(BaseModel):
    """Ordered, filtered view handed to the presentation layer."""

    threads: list[Thread] = []
    facets: Facets = Field(default_factory=Facets)
    stats: ArchiveStats = Field(default_factory=ArchiveStats)
    sort_mode: str = "corpus"
    overlay_version: int = 0
    stale: bool = False


class MutationResult(BaseModel):
    """Acknowledgment returned by every gateway command."""

    success: bool = True

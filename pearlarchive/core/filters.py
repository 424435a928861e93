"""Filter engine: visible threads and facets for a filter state."""

from collections.abc import Collection, Iterable

from pearlarchive.core.resolver import coerce_records, require_sequence
from pearlarchive.models.thread import Category, Thread
from pearlarchive.models.view import (
    ALL,
    ArchiveStats,
    Facets,
    FilterResult,
    FilterState,
)


def matches_search(thread: Thread, query: str) -> bool:
    """True if any tweet in the thread contains the query, ignoring case."""
    needle = query.lower()
    return any(needle in tweet.text.lower() for tweet in thread.tweets)


def is_visible(
    thread: Thread,
    state: FilterState,
    favorites: Collection[str] | None = None,
) -> bool:
    """
    Apply every active predicate to a single thread.

    The search query is stripped before matching, so surrounding spaces are
    ignored and a whitespace-only query matches every thread.
    """
    query = state.search_query.strip()
    if query and not matches_search(thread, query):
        return False

    if state.category != ALL and state.category not in thread.categories:
        return False

    if state.year != ALL and thread.year != state.year:
        return False

    if state.pearls_only and not thread.is_pearl:
        return False

    if state.favorites_only and (favorites is None or thread.id not in favorites):
        return False

    return True


def compute_facets(threads: list[Thread]) -> Facets:
    """
    Derive filter options from the full effective set.

    Category counts cover every fixed category plus any free-form label
    present, each counted as if it were the only active filter.
    """
    present = sorted({c for t in threads for c in t.categories})
    years = sorted({t.year for t in threads if t.year is not None}, reverse=True)

    counts = {ALL: len(threads)}
    for label in [c.value for c in Category] + present:
        if label not in counts:
            counts[label] = sum(1 for t in threads if label in t.categories)

    return Facets(categories=present, years=years, category_counts=counts)


def compute_stats(threads: list[Thread], filtered_count: int | None = None) -> ArchiveStats:
    return ArchiveStats(
        total_threads=len(threads),
        total_tweets=sum(t.tweet_count for t in threads),
        total_pearls=sum(1 for t in threads if t.is_pearl),
        total_with_media=sum(1 for t in threads if t.has_media),
        filtered_count=len(threads) if filtered_count is None else filtered_count,
    )


def filter_threads(
    threads: Iterable[Thread],
    state: FilterState | None = None,
    favorites: Collection[str] | None = None,
) -> FilterResult:
    """
    Filter effective threads without reordering them.

    Args:
        threads: Resolved threads in display order
        state: Active filters, defaults to showing everything
        favorites: Caller's favorite thread ids, None when anonymous

    Returns:
        FilterResult with visible threads, facets and stats
    """
    require_sequence(threads, "threads")
    state = state or FilterState()
    effective = coerce_records(threads, Thread, "thread")

    visible = [t for t in effective if is_visible(t, state, favorites)]

    return FilterResult(
        visible=visible,
        facets=compute_facets(effective),
        stats=compute_stats(effective, len(visible)),
    )

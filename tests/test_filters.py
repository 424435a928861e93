"""Unit tests for the filter engine - fixture corpus, no storage."""

import pytest

from pearlarchive.core.filters import compute_facets, filter_threads, is_visible
from pearlarchive.models.view import FilterState


def ids(threads) -> list[str]:
    return [t.id for t in threads]


class TestScenarios:
    """Worked examples of category and favorites filters."""

    def test_category_filter(self, thread_factory):
        tagged = thread_factory("T1", categories=["Pearl"])
        plain = thread_factory("T2", categories=["Echo"])
        state = FilterState(category="Pearl", year="All", search_query="")

        result = filter_threads([tagged, plain], state)

        assert ids(result.visible) == ["T1"]

    def test_favorites_only_when_anonymous_is_empty(self, corpus):
        result = filter_threads(corpus, FilterState(favorites_only=True), favorites=None)
        assert result.visible == []
        assert result.stats.filtered_count == 0


class TestPredicates:
    """Individual filter predicates."""

    def test_default_state_shows_everything(self, corpus):
        result = filter_threads(corpus)
        assert ids(result.visible) == ids(corpus)

    def test_search_is_case_insensitive(self, corpus):
        result = filter_threads(corpus, FilterState(search_query="hfpef"))
        assert ids(result.visible) == ["1001", "1003", "1005"]

    def test_search_matches_any_tweet(self, corpus):
        """A query found only in a later tweet still matches the thread."""
        result = filter_threads(corpus, FilterState(search_query="mortality"))
        assert ids(result.visible) == ["1005"]

    def test_whitespace_query_is_inactive(self, corpus):
        result = filter_threads(corpus, FilterState(search_query="   "))
        assert len(result.visible) == len(corpus)

    def test_search_query_is_stripped(self, corpus):
        result = filter_threads(corpus, FilterState(search_query="  PCWP "))
        assert ids(result.visible) == ["1003"]

    def test_is_visible_strips_query(self, corpus):
        thread = next(t for t in corpus if t.id == "1003")
        assert is_visible(thread, FilterState(search_query=" pcwp  "))
        assert is_visible(corpus[0], FilterState(search_query="\t "))

    def test_year_filter(self, corpus):
        result = filter_threads(corpus, FilterState(year=2022))
        assert ids(result.visible) == ["1002", "1005"]

    def test_year_derived_from_date(self, corpus):
        """1004 has no year field; its date supplies it."""
        result = filter_threads(corpus, FilterState(year=2021))
        assert ids(result.visible) == ["1004"]

    def test_pearls_only(self, corpus):
        result = filter_threads(corpus, FilterState(pearls_only=True))
        assert ids(result.visible) == ["1001", "1005"]

    def test_favorites_only(self, corpus):
        result = filter_threads(corpus, FilterState(favorites_only=True), favorites={"1003", "1004"})
        assert ids(result.visible) == ["1003", "1004"]

    def test_favorites_ignored_when_inactive(self, corpus):
        result = filter_threads(corpus, FilterState(), favorites=set())
        assert len(result.visible) == len(corpus)

    def test_free_form_category(self, thread_factory):
        thread = thread_factory("T1", categories=["Cardio-Oncology"])
        assert is_visible(thread, FilterState(category="Cardio-Oncology"))
        assert not is_visible(thread, FilterState(category="Pearl"))

    def test_predicates_combine_with_and(self, corpus):
        state = FilterState(search_query="hfpef", year=2023, pearls_only=True)
        result = filter_threads(corpus, state)
        assert ids(result.visible) == ["1001"]

    def test_year_accepts_string_digits(self):
        assert FilterState(year="2023").year == 2023

    def test_camel_case_input(self):
        state = FilterState.model_validate({"searchQuery": "echo", "pearlsOnly": True})
        assert state.search_query == "echo"
        assert state.pearls_only is True


class TestFilterProperties:
    """Invariants of the filter engine."""

    @pytest.mark.parametrize("state", [
        FilterState(category="Pearl"),
        FilterState(search_query="the"),
        FilterState(year=2023, pearls_only=True),
        FilterState(favorites_only=True),
    ])
    def test_visible_is_ordered_subset(self, corpus, state):
        result = filter_threads(corpus, state, favorites={"1001", "1002"})
        visible = ids(result.visible)
        positions = [ids(corpus).index(i) for i in visible]
        assert positions == sorted(positions)

    def test_adding_predicate_never_grows_result(self, corpus):
        broad = filter_threads(corpus, FilterState(year=2023))
        narrow = filter_threads(corpus, FilterState(year=2023, category="Echo"))
        assert set(ids(narrow.visible)) <= set(ids(broad.visible))

    def test_facets_ignore_active_filters(self, corpus):
        unfiltered = filter_threads(corpus)
        filtered = filter_threads(corpus, FilterState(category="Echo", year=2023))
        assert filtered.facets == unfiltered.facets

    def test_stats_cover_full_effective_set(self, corpus):
        result = filter_threads(corpus, FilterState(category="Echo"))

        assert result.stats.total_threads == 5
        assert result.stats.total_tweets == 9
        assert result.stats.total_pearls == 2
        assert result.stats.total_with_media == 3
        assert result.stats.filtered_count == 1

    def test_non_sequence_raises(self):
        with pytest.raises(TypeError):
            filter_threads(None)


class TestFacets:
    """Facet derivation."""

    def test_years_descending(self, corpus):
        assert compute_facets(corpus).years == [2023, 2022, 2021]

    def test_categories_present(self, corpus):
        facets = compute_facets(corpus)
        assert "Pearl" in facets.categories
        assert "Diagnosis" not in facets.categories

    def test_category_counts(self, corpus):
        counts = compute_facets(corpus).category_counts
        assert counts["All"] == 5
        assert counts["Pearl"] == 2
        assert counts["Echo"] == 1
        assert counts["Diagnosis"] == 0

    def test_free_form_labels_counted(self, thread_factory):
        threads = [
            thread_factory("T1", categories=["Cardio-Oncology"]),
            thread_factory("T2", categories=["Cardio-Oncology", "Pearl"]),
        ]
        counts = compute_facets(threads).category_counts
        assert counts["Cardio-Oncology"] == 2
        assert counts["Pearl"] == 1

    def test_empty_corpus(self):
        facets = compute_facets([])
        assert facets.years == []
        assert facets.category_counts["All"] == 0

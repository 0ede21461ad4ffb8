"""
Tests for keyword search
========================

Ranking: exact keyword match, then substring, then most recent first.
"""

import pytest

from casebook.incidents.search import SearchResults


def _create(store, title, keywords, root_cause="See timeline.", mitigation=""):
    return store.create_record(
        title=title,
        severity="LOW",
        timeline="",
        root_cause=root_cause,
        mitigation=mitigation,
        keywords=keywords,
    )


class TestScenario:

    def test_order_query_returns_only_matching_record(self, store):
        store.create_record(
            title="Duplicate fills",
            severity="HIGH",
            timeline="",
            root_cause="Retry loop resent the request.",
            mitigation="",
            keywords={"order", "duplication"},
        )
        store.create_record(
            title="Noisy debug output",
            severity="LOW",
            timeline="",
            root_cause="Verbose handler left enabled.",
            mitigation="",
            keywords={"logging"},
        )

        assert store.search({"order"}).ids() == ["PM-001"]


class TestRanking:

    def test_exact_before_substring(self, store):
        _create(store, "Sort issue", {"ordering"})
        _create(store, "Fill issue", {"order"})
        _create(store, "Unrelated", {"logging"})

        assert store.search({"order"}).ids() == ["PM-002", "PM-001"]

    def test_most_recent_first_within_tier(self, store):
        _create(store, "First", {"slippage"})
        _create(store, "Second", {"fees"})
        _create(store, "Third", {"slippage"})

        assert store.search({"slippage"}).ids() == ["PM-003", "PM-001"]

    def test_substring_in_free_text(self, store):
        _create(store, "Gap at open", {"data"}, root_cause="Weekend SLIPPAGE model missing.")
        _create(store, "Nothing here", {"data"})

        assert store.search({"slippage"}).ids() == ["PM-001"]

    def test_any_query_term_matches(self, store):
        _create(store, "A", {"alpha"})
        _create(store, "B", {"beta"})

        assert store.search({"alpha", "beta"}).ids() == ["PM-002", "PM-001"]

    def test_query_is_case_insensitive(self, store):
        _create(store, "A", {"order"})
        assert store.search({"  ORDER "}).ids() == ["PM-001"]

    def test_no_match(self, store):
        _create(store, "A", {"order"})
        assert store.search({"warmup"}).ids() == []

    def test_empty_query_returns_all_in_creation_order(self, store):
        for title in ("A", "B", "C"):
            _create(store, title, {title.lower()})
        assert store.search(set()).ids() == ["PM-001", "PM-002", "PM-003"]


class TestLaziness:

    def test_nothing_loaded_until_iterated(self):
        calls = []

        def loader():
            calls.append(1)
            return []

        results = SearchResults(loader, {"order"})
        assert calls == []
        list(results)
        assert calls == [1]

    def test_restartable_and_idempotent(self, store):
        _create(store, "A", {"order"})
        results = store.search({"order"})

        assert [r.id for r in results] == [r.id for r in results]
        assert list(results) == list(results)

    def test_sees_later_writes(self, store):
        results = store.search({"order"})
        assert results.first() is None

        _create(store, "A", {"order"})
        assert results.ids() == ["PM-001"]

    @pytest.mark.parametrize("keywords", [["order"], ("order",), {"order"}])
    def test_accepts_any_iterable(self, store, keywords):
        _create(store, "A", {"order"})
        assert store.search(keywords).ids() == ["PM-001"]

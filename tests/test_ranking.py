"""
ASVAB Search — Sorting and Pagination Tests.
"""

import random

from asvab_search.search.models import (
    ItemMetadata,
    ItemType,
    SearchPagination,
    SearchResultItem,
    SearchSorting,
    SortField,
    SortOrder,
)
from asvab_search.search.ranking import has_more, paginate, sort_results


def item(id_, score=0.0, difficulty=None, created_at=None, popularity=0, estimated_time=None):
    return SearchResultItem(
        id=id_,
        type=ItemType.QUESTION,
        title=id_,
        content=id_,
        difficulty=difficulty,
        relevance_score=score,
        metadata=ItemMetadata(
            created_at=created_at, popularity=popularity, estimated_time=estimated_time
        ),
    )


class TestSorting:
    def test_relevance_desc_is_non_increasing(self):
        rng = random.Random(7)
        items = [item(f"i{n}", score=rng.uniform(-1, 5)) for n in range(50)]
        ordered = sort_results(items, SearchSorting(SortField.RELEVANCE, SortOrder.DESC))
        scores = [i.relevance_score for i in ordered]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_asc_inverts(self):
        items = [item("a", 1.0), item("b", 3.0), item("c", 2.0)]
        ordered = sort_results(items, SearchSorting(SortField.RELEVANCE, SortOrder.ASC))
        assert [i.id for i in ordered] == ["a", "c", "b"]

    def test_date_desc_missing_last(self):
        items = [
            item("old", created_at="2023-01-01T00:00:00Z"),
            item("none"),
            item("new", created_at="2024-06-01T00:00:00+00:00"),
        ]
        ordered = sort_results(items, SearchSorting(SortField.DATE, SortOrder.DESC))
        assert [i.id for i in ordered] == ["new", "old", "none"]

    def test_difficulty_ordinal(self):
        items = [item("h", difficulty="HARD"), item("u", difficulty="WEIRD"), item("e", difficulty="EASY")]
        ordered = sort_results(items, SearchSorting(SortField.DIFFICULTY, SortOrder.DESC))
        assert [i.id for i in ordered] == ["e", "u", "h"]

    def test_popularity(self):
        items = [item("a", popularity=1), item("b", popularity=9), item("c")]
        ordered = sort_results(items, SearchSorting(SortField.POPULARITY, SortOrder.DESC))
        assert [i.id for i in ordered] == ["b", "a", "c"]

    def test_time_to_complete_missing_is_zero(self):
        items = [item("slow", estimated_time=300), item("none"), item("fast", estimated_time=20)]
        ordered = sort_results(items, SearchSorting(SortField.TIME_TO_COMPLETE, SortOrder.DESC))
        assert [i.id for i in ordered] == ["none", "fast", "slow"]

    def test_accuracy_falls_back_to_relevance(self):
        items = [item("a", 1.0), item("b", 2.0)]
        ordered = sort_results(items, SearchSorting(SortField.ACCURACY, SortOrder.DESC))
        assert [i.id for i in ordered] == ["b", "a"]

    def test_sort_is_stable(self):
        items = [item(f"i{n}", 1.0) for n in range(5)]
        ordered = sort_results(items, SearchSorting())
        assert [i.id for i in ordered] == [f"i{n}" for n in range(5)]


class TestPagination:
    def test_slice(self):
        items = [item(str(n)) for n in range(45)]
        page = paginate(items, SearchPagination(page=3, limit=20))
        assert [i.id for i in page] == [str(n) for n in range(40, 45)]

    def test_past_the_end(self):
        assert paginate([item("a")], SearchPagination(page=4, limit=10)) == []

    def test_has_more_matches_page_times_limit(self):
        for total in (0, 1, 19, 20, 21, 45):
            for limit in (1, 7, 20):
                for page in range(1, 6):
                    pagination = SearchPagination(page=page, limit=limit)
                    assert has_more(total, pagination) == (page * limit < total)

    def test_clamped(self):
        assert SearchPagination.clamped(0, 500, 100) == SearchPagination(page=1, limit=100)
        assert SearchPagination.clamped(None, None, 100) == SearchPagination(page=1, limit=20)
        assert SearchPagination.clamped(2, -3, 50).limit == 1

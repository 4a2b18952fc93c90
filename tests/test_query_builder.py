"""
ASVAB Search — Query Builder Tests.
"""

from asvab_search.search.models import DateRange, NumericRange, SearchFilters
from asvab_search.search.query_builder import ContentPredicate, build_predicate, text_terms


class TestTextTerms:
    def test_empty_query_has_no_text_group(self):
        assert text_terms("", ["math"]) == ()
        assert text_terms("   ") == ()

    def test_query_then_concepts_deduplicated(self):
        assert text_terms(" algebra ", ["algebra", "geometry"]) == ("algebra", "geometry")


class TestBuildPredicate:
    def test_no_filters_imposes_nothing(self):
        predicate = build_predicate(SearchFilters())
        assert predicate == ContentPredicate()
        assert predicate.active_only is True

    def test_maps_every_filter(self):
        filters = SearchFilters(
            categories=("WORD_KNOWLEDGE",),
            difficulties=("EASY", "HARD"),
            tags=("vocabulary",),
            date_range=DateRange(start="2024-01-01", end="2024-12-31"),
            score_range=NumericRange(min=30, max=60),
            branch="ARMY",
            has_explanation=True,
            time_to_complete=NumericRange(min=10, max=90),
        )
        p = build_predicate(filters, "abate", ["abate"])
        assert p.text_terms == ("abate",)
        assert p.categories == ("WORD_KNOWLEDGE",)
        assert p.difficulties == ("EASY", "HARD")
        assert p.tags == ("vocabulary",)
        assert (p.created_from, p.created_to) == ("2024-01-01", "2024-12-31")
        assert (p.score_min, p.score_max) == (30, 60)
        assert (p.time_min, p.time_max) == (10, 90)
        assert p.branch == "ARMY"
        assert p.has_explanation is True

    def test_without_text(self):
        p = build_predicate(SearchFilters(branch="NAVY"), "jobs")
        assert p.without_text().text_terms == ()
        assert p.without_text().branch == "NAVY"

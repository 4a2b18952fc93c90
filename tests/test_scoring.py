"""
ASVAB Search — Relevance Scorer Tests.
"""

import pytest

from asvab_search.search.items import ContentDocument
from asvab_search.search.models import ItemType, UserContext
from asvab_search.search.scoring import (
    array_relevance,
    basic_relevance,
    highlight_text,
    personalization_boost,
    score_document,
    score_documents,
    semantic_score,
    text_relevance,
    tokenize,
)


def make_doc(**overrides) -> ContentDocument:
    fields = dict(
        id="d1",
        type=ItemType.QUESTION,
        title="Basic math problem",
        content="Basic math problem",
        primary_text="Basic math problem",
        secondary_text=None,
        category="MATHEMATICS_KNOWLEDGE",
        difficulty="EASY",
        tags=("math",),
        popularity=0,
        created_at="2024-01-01T00:00:00Z",
        updated_at="2024-01-01T00:00:00Z",
    )
    fields.update(overrides)
    return ContentDocument(**fields)


class TestFieldRelevance:
    def test_single_occurrence(self):
        # 0.3 contains + 0.1 occurrence - 18/1000 length penalty
        assert text_relevance("Basic math problem", ["math"]) == pytest.approx(0.382)

    def test_case_insensitive(self):
        assert text_relevance("MATH", ["math"]) > 0

    def test_no_match_is_zero(self):
        assert text_relevance("History fact", ["math"]) == 0.0

    def test_clamped_to_one(self):
        assert text_relevance("math " * 20, ["math"]) == 1.0

    def test_missing_text(self):
        assert text_relevance(None, ["math"]) == 0.0
        assert text_relevance("", ["math"]) == 0.0

    def test_array_relevance_fraction_of_terms(self):
        assert array_relevance(["Math", "arithmetic"], ["math", "fractions"]) == 0.5
        assert array_relevance([], ["math"]) == 0.0

    def test_tokenize(self):
        assert tokenize("  Basic   MATH ") == ["basic", "math"]


class TestScoreDocument:
    def test_empty_query_is_uniform(self):
        for query in ("", "   "):
            score, highlights = score_document(make_doc(popularity=80), query)
            assert score == 1.0
            assert highlights == []

    def test_popularity_boost_capped_at_half(self):
        popular, _ = score_document(make_doc(popularity=200), "math")
        plain, _ = score_document(make_doc(popularity=0), "math")
        assert popular - plain == pytest.approx(0.5)

    def test_popularity_boost_below_cap(self):
        some, _ = score_document(make_doc(popularity=30), "math")
        plain, _ = score_document(make_doc(popularity=0), "math")
        assert some - plain == pytest.approx(0.3)

    def test_matching_item_beats_unrelated(self):
        math_doc = make_doc()
        history = make_doc(
            id="d2",
            title="History fact",
            content="History fact",
            primary_text="History fact",
            category="PARAGRAPH_COMPREHENSION",
            tags=(),
        )
        math_score, highlights = score_document(math_doc, "math")
        history_score, history_highlights = score_document(history, "math")
        assert math_score > history_score
        assert highlights
        assert history_highlights == []

    def test_concept_boost_stacks(self):
        doc = make_doc(title="Algebra and geometry", content="algebra geometry review")
        without, _ = score_document(doc, "review")
        with_concepts, _ = score_document(doc, "review", concepts=["algebra", "geometry"])
        assert with_concepts - without == pytest.approx(0.4)

    def test_personalization_boosts(self):
        context = UserContext(
            preferred_categories=("MATHEMATICS_KNOWLEDGE",),
            preferred_difficulties=("EASY",),
        )
        boosted, _ = score_document(make_doc(), "math", context=context)
        plain, _ = score_document(make_doc(), "math")
        assert boosted - plain == pytest.approx(0.15)

    def test_advanced_scores_are_not_clamped(self):
        doc = make_doc(title="math math math", content="math math math", popularity=500)
        score, _ = score_document(doc, "math")
        assert score > 1.0

    def test_score_documents_builds_result_items(self):
        items = score_documents([make_doc(popularity=7, estimated_time=45)], "math")
        assert items[0].id == "d1"
        assert items[0].metadata.popularity == 7
        assert items[0].metadata.estimated_time == 45
        assert items[0].user_interaction is None


class TestHighlighting:
    def test_wraps_matches(self):
        assert highlight_text("Basic math problem", ["math"]) == "Basic <mark>math</mark> problem"

    def test_preserves_original_case(self):
        assert highlight_text("MATH rocks", ["math"]) == "<mark>MATH</mark> rocks"

    def test_regex_characters_are_literal(self):
        assert highlight_text("2+2 equals 4", ["2+2"]) == "<mark>2+2</mark> equals 4"

    def test_truncates_around_first_match(self):
        text = "x" * 300 + " math " + "y" * 300
        out = highlight_text(text, ["math"], max_length=150)
        assert out.startswith("...")
        assert out.endswith("...")
        assert "<mark>math</mark>" in out
        assert len(out) == 150 + 6

    def test_head_truncation_without_match(self):
        out = highlight_text("z" * 400, ["math"], max_length=200)
        assert out == "z" * 200 + "..."

    def test_personalization_without_context(self):
        assert personalization_boost("X", "EASY", None) == 0.0


class TestSemanticScore:
    def test_full_substring_match(self):
        assert basic_relevance("Solve the algebra equation", "algebra equation") == 0.8

    def test_partial_word_match(self):
        assert basic_relevance("algebra basics", "algebra geometry") == pytest.approx(0.35)

    def test_no_significant_words(self):
        assert basic_relevance("anything", "a b") == 0.0

    def test_similarity_clamped(self):
        doc = make_doc(
            primary_text="algebra geometry arithmetic fractions decimals",
            secondary_text="percentages equations ratios",
        )
        concepts = ["algebra", "geometry", "arithmetic", "fractions", "decimals", "ratios"]
        result = semantic_score(doc, "algebra geometry", concepts)
        assert result.semantic_similarity == 1.0
        assert 0.0 <= result.relevance_score <= 1.0

    def test_explanation_carried(self):
        doc = make_doc(primary_text="Front", secondary_text="Back")
        result = semantic_score(doc, "front")
        assert result.content == "Front"
        assert result.explanation == "Back"

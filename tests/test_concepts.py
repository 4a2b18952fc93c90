"""
ASVAB Search — Concept Extraction Tests.
"""

from asvab_search.search.concepts import (
    CONCEPT_VOCABULARY,
    MATH_CONCEPTS,
    MILITARY_CONCEPTS,
    SUBJECT_CONCEPTS,
    extract_concepts,
)


class TestVocabulary:
    def test_vocabularies_are_immutable_tuples(self):
        for vocab in (MATH_CONCEPTS, MILITARY_CONCEPTS, SUBJECT_CONCEPTS, CONCEPT_VOCABULARY):
            assert isinstance(vocab, tuple)

    def test_vocabulary_size(self):
        assert 30 <= len(CONCEPT_VOCABULARY) <= 40
        assert len(set(CONCEPT_VOCABULARY)) == len(CONCEPT_VOCABULARY)


class TestExtractConcepts:
    def test_matches_vocabulary_substrings(self):
        assert extract_concepts("Algebra and GEOMETRY drills") == ["algebra", "geometry"]

    def test_multi_word_terms(self):
        assert "air force" in extract_concepts("air force jobs")
        assert "coast guard" in extract_concepts("Coast Guard careers")

    def test_order_follows_vocabulary(self):
        concepts = extract_concepts("reading about army logistics")
        assert concepts == ["army", "logistics", "reading"]

    def test_fallback_to_query_tokens(self):
        assert extract_concepts("Basic Math is fun") == ["basic", "math", "fun"]

    def test_fallback_skips_short_tokens(self):
        assert extract_concepts("an ox at bay") == ["bay"]

    def test_empty_query(self):
        assert extract_concepts("") == []

    def test_deterministic(self):
        assert extract_concepts("navy tactics") == extract_concepts("navy tactics")

# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Relevance Scorer.

Additive, field-weighted scoring over normalized content documents.
Advanced-search scores are unbounded and only meaningful for ordering
within one call; the semantic variant clamps to [0, 1].
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from asvab_search.search.items import ContentDocument
from asvab_search.search.models import (
    ItemMetadata,
    SearchResultItem,
    SemanticSearchResult,
    UserContext,
)

__all__ = [
    "array_relevance",
    "basic_relevance",
    "highlight_text",
    "personalization_boost",
    "score_document",
    "score_documents",
    "semantic_score",
    "text_relevance",
    "tokenize",
]

TITLE_WEIGHT = 3.0
CONTENT_WEIGHT = 2.0
TAG_WEIGHT = 1.5
CATEGORY_WEIGHT = 1.0

CONTAINS_BONUS = 0.3
OCCURRENCE_BONUS = 0.1
MAX_LENGTH_PENALTY = 0.1

POPULARITY_CAP = 0.5
CONCEPT_BOOST = 0.2
CATEGORY_PREFERENCE_BOOST = 0.1
DIFFICULTY_PREFERENCE_BOOST = 0.05

TITLE_HIGHLIGHT_LENGTH = 200
CONTENT_HIGHLIGHT_LENGTH = 150
HIGHLIGHT_CONTEXT = 50
MARK_OPEN = "<mark>"
MARK_CLOSE = "</mark>"

FULL_MATCH_SCORE = 0.8
PARTIAL_MATCH_WEIGHT = 0.7


def tokenize(query: str) -> list[str]:
    return query.lower().split()


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


# ─── Field Relevance ─────────────────────────────────────────────────


def text_relevance(text: Optional[str], terms: Sequence[str]) -> float:
    """Occurrence-weighted match score for one field, clamped to [0, 1]."""
    if not text or not terms:
        return 0.0
    lowered = text.lower()
    score = 0.0
    for term in terms:
        count = lowered.count(term)
        if count > 0:
            score += count * CONTAINS_BONUS + count * OCCURRENCE_BONUS
    score -= min(MAX_LENGTH_PENALTY, len(text) / 1000)
    return _clamp(score)


def array_relevance(values: Sequence[str], terms: Sequence[str]) -> float:
    """Fraction of terms matched by at least one value."""
    if not values or not terms:
        return 0.0
    lowered = [v.lower() for v in values]
    matched = sum(1 for term in terms if any(term in value for value in lowered))
    return matched / len(terms)


def popularity_boost(popularity: Optional[int]) -> float:
    return min(POPULARITY_CAP, (popularity or 0) / 100)


def concept_boost(text: str, concepts: Sequence[str]) -> float:
    lowered = text.lower()
    return sum(CONCEPT_BOOST for concept in concepts if concept.lower() in lowered)


def personalization_boost(
    category: Optional[str],
    difficulty: Optional[str],
    context: Optional[UserContext],
) -> float:
    if context is None or context.is_empty:
        return 0.0
    boost = 0.0
    if category and category in context.preferred_categories:
        boost += CATEGORY_PREFERENCE_BOOST
    if difficulty and difficulty in context.preferred_difficulties:
        boost += DIFFICULTY_PREFERENCE_BOOST
    return boost


# ─── Highlighting ────────────────────────────────────────────────────


def _term_pattern(terms: Sequence[str]) -> Optional[re.Pattern]:
    unique = sorted({t for t in terms if t}, key=len, reverse=True)
    if not unique:
        return None
    return re.compile("|".join(re.escape(t) for t in unique), re.IGNORECASE)


def highlight_text(text: str, terms: Sequence[str], max_length: int = TITLE_HIGHLIGHT_LENGTH) -> str:
    """Wrap term occurrences in mark spans, truncating around the first match."""
    pattern = _term_pattern(terms)
    highlighted = pattern.sub(lambda m: f"{MARK_OPEN}{m.group(0)}{MARK_CLOSE}", text) if pattern else text
    if len(highlighted) <= max_length:
        return highlighted

    first_mark = highlighted.find(MARK_OPEN)
    if first_mark != -1:
        start = max(0, first_mark - HIGHLIGHT_CONTEXT)
        end = min(len(highlighted), start + max_length)
        return "..." + highlighted[start:end] + "..."
    return highlighted[:max_length] + "..."


# ─── Advanced Scoring ────────────────────────────────────────────────


def score_document(
    doc: ContentDocument,
    query: str,
    concepts: Sequence[str] = (),
    context: Optional[UserContext] = None,
) -> tuple[float, list[str]]:
    """Return ``(relevance_score, highlights)`` for one document."""
    terms = tokenize(query)
    if not terms:
        return 1.0, []

    title_score = text_relevance(doc.title, terms)
    content_score = text_relevance(doc.content, terms)
    category_label = (doc.category or "").replace("_", " ")

    score = (
        title_score * TITLE_WEIGHT
        + content_score * CONTENT_WEIGHT
        + array_relevance(doc.tags, terms) * TAG_WEIGHT
        + text_relevance(category_label, terms) * CATEGORY_WEIGHT
    )
    score += popularity_boost(doc.popularity)
    score += concept_boost(f"{doc.title} {doc.content}", concepts)
    score += personalization_boost(doc.category, doc.difficulty, context)

    highlights: list[str] = []
    if title_score > 0:
        highlights.append(highlight_text(doc.title, terms, TITLE_HIGHLIGHT_LENGTH))
    if content_score > 0:
        highlights.append(highlight_text(doc.content, terms, CONTENT_HIGHLIGHT_LENGTH))
    return score, highlights


def to_result_item(doc: ContentDocument, score: float, highlights: list[str]) -> SearchResultItem:
    return SearchResultItem(
        id=doc.id,
        type=doc.type,
        title=doc.title,
        content=doc.content,
        category=doc.category,
        difficulty=doc.difficulty,
        tags=list(doc.tags),
        relevance_score=score,
        highlights=highlights,
        metadata=ItemMetadata(
            created_at=doc.created_at,
            updated_at=doc.updated_at,
            popularity=doc.popularity,
            estimated_time=doc.estimated_time,
            branch=doc.branch,
        ),
    )


def score_documents(
    docs: Sequence[ContentDocument],
    query: str,
    concepts: Sequence[str] = (),
    context: Optional[UserContext] = None,
) -> list[SearchResultItem]:
    results = []
    for doc in docs:
        score, highlights = score_document(doc, query, concepts, context)
        results.append(to_result_item(doc, score, highlights))
    return results


# ─── Semantic Scoring ────────────────────────────────────────────────


def basic_relevance(text: Optional[str], query: str) -> float:
    """Whole-query substring match, else fraction of significant words present."""
    if not text or not query.strip():
        return 0.0
    lowered = text.lower()
    query_lower = query.lower().strip()
    if query_lower in lowered:
        return FULL_MATCH_SCORE
    words = [w for w in query_lower.split() if len(w) > 2]
    if not words:
        return 0.0
    matched = sum(1 for w in words if w in lowered)
    return min(PARTIAL_MATCH_WEIGHT, matched / len(words) * PARTIAL_MATCH_WEIGHT)


def semantic_score(
    doc: ContentDocument,
    query: str,
    concepts: Sequence[str] = (),
    context: Optional[UserContext] = None,
) -> SemanticSearchResult:
    text = " ".join(t for t in (doc.primary_text, doc.secondary_text) if t)
    relevance = basic_relevance(text, query)
    similarity = _clamp(
        relevance
        + concept_boost(text, concepts)
        + personalization_boost(doc.category, doc.difficulty, context)
    )
    return SemanticSearchResult(
        id=doc.id,
        content=doc.primary_text,
        type=doc.type,
        relevance_score=relevance,
        semantic_similarity=similarity,
        category=doc.category,
        difficulty=doc.difficulty,
        explanation=doc.secondary_text,
        tags=list(doc.tags),
    )

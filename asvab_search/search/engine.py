# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Search Engines.

Advanced search:
    predicate -> concurrent retrieval -> scoring -> sort/paginate
    -> (facets || suggestions) -> enrichment

Semantic search and similar-content lookup share retrieval and concept
extraction but score into clamped ``SemanticSearchResult`` records.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from typing import Optional

from asvab_search import config
from asvab_search.exceptions import (
    ItemNotFound,
    SearchOperationFailed,
    SemanticSearchFailed,
    SimilarContentFailed,
)
from asvab_search.metrics import metrics
from asvab_search.search.concepts import extract_concepts
from asvab_search.search.context import load_user_context
from asvab_search.search.enrichment import UserInteractionEnricher
from asvab_search.search.facets import FacetGenerator
from asvab_search.search.items import ContentDocument, normalize
from asvab_search.search.models import (
    ContentType,
    ItemType,
    SearchQuery,
    SearchResult,
    SemanticSearchResult,
)
from asvab_search.search.query_builder import ContentPredicate, build_predicate, text_terms
from asvab_search.search.ranking import has_more, paginate, sort_results
from asvab_search.search.repository import ContentRepository
from asvab_search.search.retriever import MultiContentRetriever
from asvab_search.search.scoring import score_documents, semantic_score
from asvab_search.search.suggestions import SuggestionGenerator

__all__ = ["AdvancedSearchEngine", "SemanticSearchEngine"]

logger = logging.getLogger("asvab_search.search.engine")

_DB_ERRORS = (sqlite3.Error, OSError)

SEMANTIC_KIND_LIMITS = {
    ItemType.QUESTION: 100,
    ItemType.FLASHCARD: 50,
    ItemType.MILITARY_JOB: 30,
}
SIMILAR_KIND_LIMITS = {
    ItemType.QUESTION: 50,
    ItemType.FLASHCARD: 30,
}
SIMILARITY_THRESHOLD = 0.3
MIN_WORD_LENGTH = 3


def _observe(mode: str, started: float) -> float:
    elapsed = time.perf_counter() - started
    metrics.inc("asvab_search_searches_total", {"mode": mode})
    metrics.observe("asvab_search_search_duration_seconds", elapsed, {"mode": mode})
    return elapsed


class AdvancedSearchEngine:
    def __init__(
        self,
        repository: ContentRepository,
        suggestions: SuggestionGenerator,
        retriever: Optional[MultiContentRetriever] = None,
    ):
        self._repository = repository
        self._retriever = retriever or MultiContentRetriever(repository)
        self._facets = FacetGenerator(repository)
        self._suggestions = suggestions
        self._enricher = UserInteractionEnricher(repository)

    async def search(self, query: SearchQuery) -> SearchResult:
        started = time.perf_counter()
        filters = query.filters
        concepts = extract_concepts(query.query) if query.query.strip() else []
        predicate = build_predicate(filters, query.query, concepts)

        try:
            documents = await self._retriever.retrieve(predicate, filters.content_type)
            if filters.is_bookmarked is not None and query.user_id:
                bookmarks = await self._repository.bookmarked_ids(query.user_id)
                documents = [
                    d for d in documents if (d.id in bookmarks) == filters.is_bookmarked
                ]
        except _DB_ERRORS as e:
            logger.error("Advanced search failed: %s", e)
            metrics.inc("asvab_search_errors_total", {"mode": "advanced"})
            raise SearchOperationFailed() from e

        context = await load_user_context(
            self._repository, filters.personalized_for or query.user_id
        )
        ranked = sort_results(score_documents(documents, query.query, concepts, context), query.sorting)
        total = len(ranked)
        page = paginate(ranked, query.pagination)

        facets, suggestions = await asyncio.gather(
            self._facets.generate(predicate, filters.content_type),
            self._suggestions.suggest(query.query),
        )
        await self._enricher.enrich(page, query.user_id)

        elapsed = _observe("advanced", started)
        logger.info(
            "Advanced search '%s' matched %d items in %.1fms", query.query, total, elapsed * 1000
        )
        return SearchResult(
            items=page,
            total_count=total,
            facets=facets,
            suggestions=suggestions,
            search_time_ms=int(elapsed * 1000),
            has_more=has_more(total, query.pagination),
        )


class SemanticSearchEngine:
    def __init__(
        self,
        repository: ContentRepository,
        suggestions: SuggestionGenerator,
        retriever: Optional[MultiContentRetriever] = None,
    ):
        self._repository = repository
        self._retriever = retriever or MultiContentRetriever(repository)
        self._suggestions = suggestions

    async def search(
        self,
        query: str,
        user_id: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 20,
    ) -> list[SemanticSearchResult]:
        """Concept-broadened search, sorted by clamped similarity."""
        started = time.perf_counter()
        limit = max(1, min(limit, config.SEMANTIC_MAX_LIMIT))
        concepts = extract_concepts(query)
        predicate = ContentPredicate(
            text_terms=text_terms(query, concepts),
            categories=(category,) if category else (),
        )
        try:
            documents = await self._retriever.retrieve(
                predicate, ContentType.ALL, limits=SEMANTIC_KIND_LIMITS
            )
        except _DB_ERRORS as e:
            logger.error("Semantic search failed: %s", e)
            metrics.inc("asvab_search_errors_total", {"mode": "semantic"})
            raise SemanticSearchFailed() from e

        context = await load_user_context(self._repository, user_id)
        results = [semantic_score(d, query, concepts, context) for d in documents]
        results.sort(key=lambda r: r.semantic_similarity, reverse=True)
        _observe("semantic", started)
        logger.info("Semantic search for '%s' returned %d results", query, min(limit, len(results)))
        return results[:limit]

    async def suggestions(self, partial: str) -> list[str]:
        return await self._suggestions.suggest_semantic(partial)

    async def similar(
        self,
        item_id: str,
        limit: int = 10,
        threshold: float = SIMILARITY_THRESHOLD,
    ) -> list[SemanticSearchResult]:
        """Items sharing category, words or concepts with *item_id*; never the item itself."""
        started = time.perf_counter()
        limit = max(1, min(limit, config.SIMILAR_MAX_LIMIT))
        try:
            item = await self._repository.get_item(item_id)
        except _DB_ERRORS as e:
            logger.error("Find similar content failed: %s", e)
            raise SimilarContentFailed() from e
        if item is None:
            raise ItemNotFound()

        source = normalize(item)
        predicate = ContentPredicate(
            categories=(source.category,) if source.category else (),
            exclude_id=source.id,
        )
        try:
            candidates = await self._retriever.retrieve(
                predicate, ContentType.ALL, limits=SIMILAR_KIND_LIMITS
            )
        except _DB_ERRORS as e:
            logger.error("Find similar content failed: %s", e)
            raise SimilarContentFailed() from e

        features = _Features.of(source)
        results = []
        for candidate in candidates:
            if candidate.id == source.id:
                continue
            similarity = features.similarity(candidate)
            if similarity >= threshold:
                results.append(_similar_result(candidate, similarity))
        results.sort(key=lambda r: r.semantic_similarity, reverse=True)
        _observe("similar", started)
        logger.info("Found %d similar items for %s", min(limit, len(results)), item_id)
        return results[:limit]


# ─── Similarity ──────────────────────────────────────────────────────


def _document_text(doc: ContentDocument) -> str:
    return f"{doc.primary_text} {doc.secondary_text or ''}".lower()


def _significant_words(text: str) -> list[str]:
    return [w for w in text.split(" ") if len(w) >= MIN_WORD_LENGTH]


class _Features:
    __slots__ = ("words", "concepts", "category", "difficulty", "type")

    def __init__(self, words, concepts, category, difficulty, type_):
        self.words = words
        self.concepts = concepts
        self.category = category
        self.difficulty = difficulty
        self.type = type_

    @classmethod
    def of(cls, doc: ContentDocument) -> _Features:
        text = _document_text(doc)
        return cls(
            _significant_words(text), extract_concepts(text), doc.category, doc.difficulty, doc.type
        )

    def similarity(self, doc: ContentDocument) -> float:
        other = _Features.of(doc)
        score = 0.0

        other_words = set(other.words)
        denominator = max(len(self.words), len(other.words))
        if denominator:
            common = sum(1 for w in self.words if w in other_words)
            score += common / denominator * 0.4

        if self.category == other.category:
            score += 0.3
        if self.difficulty == other.difficulty:
            score += 0.1
        if self.type == other.type:
            score += 0.1

        other_concepts = set(other.concepts)
        denominator = max(len(self.concepts), len(other.concepts))
        if denominator:
            common = sum(1 for c in self.concepts if c in other_concepts)
            score += common / denominator * 0.1

        return min(1.0, score)


def _similar_result(doc: ContentDocument, similarity: float) -> SemanticSearchResult:
    return SemanticSearchResult(
        id=doc.id,
        content=doc.primary_text,
        type=doc.type,
        relevance_score=similarity,
        semantic_similarity=similarity,
        category=doc.category,
        difficulty=doc.difficulty,
        explanation=doc.secondary_text,
        tags=list(doc.tags),
    )

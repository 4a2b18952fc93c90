# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Autocomplete and related-query suggestions."""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional, Sequence

from asvab_search import config
from asvab_search.metrics import record_soft_failure
from asvab_search.search.analytics import SearchAnalyticsRecorder
from asvab_search.search.concepts import extract_concepts

logger = logging.getLogger("asvab_search.search.suggestions")

MIN_QUERY_LENGTH = 2
HISTORY_SUGGESTIONS = 5

DOMAIN_PHRASES: tuple[str, ...] = (
    "arithmetic reasoning",
    "mathematics knowledge",
    "word knowledge",
    "paragraph comprehension",
    "military jobs",
    "study groups",
)

CONCEPT_PHRASES: tuple[str, ...] = (
    "arithmetic reasoning problems",
    "mathematics knowledge questions",
    "word knowledge vocabulary",
    "paragraph comprehension reading",
    "military job requirements",
    "ASVAB practice test",
    "study guide materials",
    "flashcard review",
)


def _dedupe(values: Iterable[str], cap: int) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
        if len(seen) >= cap:
            break
    return seen


class SuggestionGenerator:
    """Combines past queries with a fixed phrase list; never raises."""

    def __init__(self, analytics: SearchAnalyticsRecorder, cap: Optional[int] = None):
        self._analytics = analytics
        self._cap = cap or config.SUGGESTION_CAP

    async def suggest(self, partial: str) -> list[str]:
        text = partial.strip()
        if len(text) < MIN_QUERY_LENGTH:
            return []

        history: list[str] = []
        try:
            history = await self._analytics.recent_matching_queries(text, HISTORY_SUGGESTIONS)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed to generate history suggestions: %s", e)
            record_soft_failure("suggestions")

        lowered = text.lower()
        static = [p for p in DOMAIN_PHRASES if lowered in p or p in lowered]
        return _dedupe([*history, *static], self._cap)

    async def suggest_semantic(self, partial: str, concepts: Optional[Sequence[str]] = None) -> list[str]:
        text = partial.strip()
        if len(text) < MIN_QUERY_LENGTH:
            return []
        if concepts is None:
            concepts = extract_concepts(text)

        lowered = text.lower()
        concept_set = {c.lower() for c in concepts}
        related = [
            phrase
            for phrase in CONCEPT_PHRASES
            if lowered in phrase.lower() or concept_set & set(phrase.lower().split())
        ]

        history: list[str] = []
        try:
            history = await self._analytics.frequent_matching_queries(text, HISTORY_SUGGESTIONS)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed to generate semantic suggestions: %s", e)
            record_soft_failure("suggestions")

        return _dedupe([*related, *history], self._cap)

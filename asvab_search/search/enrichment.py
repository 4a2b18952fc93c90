# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Attaches per-user bookmark and attempt data to search hits."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional, Sequence

from asvab_search.metrics import record_soft_failure
from asvab_search.search.models import ItemType, SearchResultItem, UserInteraction
from asvab_search.search.repository import ContentRepository

logger = logging.getLogger("asvab_search.search.enrichment")


@dataclass
class _AttemptStats:
    attempts: int = 0
    correct: int = 0
    time_spent: int = 0
    last_attempted: Optional[str] = None


class UserInteractionEnricher:
    def __init__(self, repository: ContentRepository):
        self._repository = repository

    async def enrich(self, items: Sequence[SearchResultItem], user_id: Optional[str]) -> None:
        """Set ``user_interaction`` on every item in place.

        Two bulk reads regardless of page size. On failure the items are
        left untouched and the error is logged.
        """
        if not user_id or not items:
            return
        try:
            bookmarks = await self._repository.bookmarked_ids(user_id, [i.id for i in items])
            question_ids = [i.id for i in items if i.type == ItemType.QUESTION]
            attempts = await self._repository.question_attempts(user_id, question_ids)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed to enrich results with user interactions: %s", e)
            record_soft_failure("enrichment")
            return

        stats: dict[str, _AttemptStats] = {}
        for attempt in attempts:
            s = stats.setdefault(attempt.question_id, _AttemptStats())
            s.attempts += 1
            s.correct += int(attempt.is_correct)
            s.time_spent += attempt.time_spent or 0
            if attempt.completed_at and (
                s.last_attempted is None or attempt.completed_at > s.last_attempted
            ):
                s.last_attempted = attempt.completed_at

        for item in items:
            s = stats.get(item.id) if item.type == ItemType.QUESTION else None
            item.user_interaction = UserInteraction(
                is_bookmarked=item.id in bookmarks,
                last_attempted=s.last_attempted if s else None,
                accuracy=s.correct / s.attempts if s and s.attempts else None,
                time_spent=s.time_spent if s else None,
            )

# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Content Filters.

Saved filter presets, performance-based filter recommendations and the
corpus-wide catalogue of filter values.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections import defaultdict
from typing import Any

from asvab_search.connection_pool import ConnectionPool
from asvab_search.exceptions import PresetSaveFailed
from asvab_search.metrics import record_soft_failure
from asvab_search.search.models import ItemType, SearchFilters
from asvab_search.search.query_builder import ContentPredicate
from asvab_search.search.repository import ContentRepository, FacetDimension
from asvab_search.temporal import now_iso

logger = logging.getLogger("asvab_search.search.filters")

PERFORMANCE_QUIZZES = 50
WEAK_ACCURACY = 0.7
LOW_ACCURACY = 0.6
HIGH_ACCURACY = 0.8
MAX_WEAK_CATEGORIES = 3
AVAILABLE_TAG_LIMIT = 20

_DB_ERRORS = (sqlite3.Error, OSError)


class ContentFilterService:
    def __init__(self, pool: ConnectionPool, repository: ContentRepository):
        self._pool = pool
        self._repository = repository

    # ─── Presets ─────────────────────────────────────────────────

    async def save_preset(self, user_id: str, name: str, filters: SearchFilters) -> dict[str, Any]:
        created_at = now_iso()
        try:
            async with self._pool.acquire() as conn:
                cursor = await conn.execute(
                    "INSERT INTO filter_presets (user_id, name, filters, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (user_id, name, json.dumps(filters.to_dict()), created_at),
                )
                preset_id = cursor.lastrowid
                await conn.commit()
        except _DB_ERRORS as e:
            logger.error("Failed to save filter preset: %s", e)
            raise PresetSaveFailed() from e
        logger.info("Filter preset '%s' saved for user %s", name, user_id)
        return {"id": preset_id, "name": name, "filters": filters, "createdAt": created_at}

    async def list_presets(self, user_id: str) -> list[dict[str, Any]]:
        try:
            async with self._pool.acquire() as conn:
                async with conn.execute(
                    "SELECT id, name, filters, created_at FROM filter_presets "
                    "WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                    (user_id,),
                ) as cursor:
                    rows = await cursor.fetchall()
        except _DB_ERRORS as e:
            logger.warning("Failed to get filter presets: %s", e)
            record_soft_failure("filter_presets")
            return []

        presets = []
        for row in rows:
            try:
                filters = SearchFilters.from_dict(json.loads(row["filters"]))
            except (json.JSONDecodeError, ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping unreadable preset %s: %s", row["id"], e)
                continue
            presets.append(
                {"id": row["id"], "name": row["name"], "filters": filters, "createdAt": row["created_at"]}
            )
        return presets

    # ─── Recommendations ─────────────────────────────────────────

    async def personalized_filters(self, user_id: str) -> SearchFilters:
        """Weak categories plus a difficulty band matched to overall accuracy."""
        try:
            answers = await self._repository.recent_quiz_answers(user_id, PERFORMANCE_QUIZZES)
            branch = await self._repository.selected_branch(user_id)
        except _DB_ERRORS as e:
            logger.warning("Failed to get personalized filters: %s", e)
            record_soft_failure("personalized_filters")
            return SearchFilters()

        totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        for answer in answers:
            if answer.category:
                totals[answer.category][0] += 1
                totals[answer.category][1] += int(answer.is_correct)

        if not totals:
            return SearchFilters(branch=branch)

        accuracy = {category: correct / seen for category, (seen, correct) in totals.items()}
        weak = [c for c, acc in accuracy.items() if acc < WEAK_ACCURACY][:MAX_WEAK_CATEGORIES]
        mean = sum(accuracy.values()) / len(accuracy)
        if mean < LOW_ACCURACY:
            difficulties: tuple[str, ...] = ("EASY",)
        elif mean > HIGH_ACCURACY:
            difficulties = ("MEDIUM", "HARD")
        else:
            difficulties = ("EASY", "MEDIUM")

        return SearchFilters(categories=tuple(weak), difficulties=difficulties, branch=branch)

    async def available_filters(self) -> dict[str, list[dict[str, Any]]]:
        """Corpus-wide filter values; independent of any active search."""
        everything = ContentPredicate()
        result: dict[str, list[dict[str, Any]]] = {
            "categories": [],
            "difficulties": [],
            "branches": [],
            "tags": [],
        }
        try:
            for key, kind, dimension, limit in (
                ("categories", ItemType.QUESTION, FacetDimension.CATEGORY, None),
                ("difficulties", ItemType.QUESTION, FacetDimension.DIFFICULTY, None),
                ("branches", ItemType.MILITARY_JOB, FacetDimension.BRANCH, None),
                ("tags", ItemType.QUESTION, FacetDimension.TAGS, AVAILABLE_TAG_LIMIT),
            ):
                counts = await self._repository.facet(kind, dimension, everything, limit)
                result[key] = [{"name": name, "count": count} for name, count in counts]
        except _DB_ERRORS as e:
            logger.warning("Failed to get available filters: %s", e)
            record_soft_failure("available_filters")
        return result

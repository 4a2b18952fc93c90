# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Search Analytics Recorder.

Two write paths with different contracts:
  - ``record_search`` is best-effort; failures are logged and dropped.
  - ``record_feedback`` surfaces failures to the caller.

Every reporting read returns a zeroed default instead of raising.
"""

from __future__ import annotations

import logging
import sqlite3
from collections import Counter
from typing import Any, Optional

from asvab_search import config
from asvab_search.connection_pool import ConnectionPool
from asvab_search.exceptions import FeedbackRecordingFailed
from asvab_search.metrics import metrics, record_soft_failure
from asvab_search.search.repository import ContentRepository
from asvab_search.temporal import days_ago_iso, now_iso, parse_iso

logger = logging.getLogger("asvab_search.search.analytics")

MIN_RATING = 1
MAX_RATING = 5
DEFAULT_PREFERRED_HOUR = 12
TOP_TERMS = 10
TOP_QUERIES = 5
TOP_CATEGORIES = 5
RECENT_SEARCHES = 10
TRENDING_LIMIT = 20
ZERO_RESULT_LIMIT = 50
ABANDON_THRESHOLD = 2
ABANDONED_LIMIT = 10

_DB_ERRORS = (sqlite3.Error, OSError)


def _empty_user_analytics() -> dict[str, Any]:
    return {
        "totalSearches": 0,
        "uniqueQueries": 0,
        "averageResultsClicked": 0,
        "topCategories": [],
        "topQueries": [],
        "searchSuccessRate": 0,
        "recentSearches": [],
        "searchPatterns": {
            "preferredTime": DEFAULT_PREFERRED_HOUR,
            "averageQueryLength": 0,
            "mostCommonTerms": [],
        },
    }


def _empty_trends() -> dict[str, Any]:
    return {
        "trendingQueries": [],
        "dailySearchVolume": [],
        "overallSuccessRate": 0,
        "avgResultsPerSearch": 0,
    }


def _empty_quality() -> dict[str, Any]:
    return {
        "qualityMetrics": {
            "averageRating": 0,
            "helpfulPercentage": 0,
            "totalFeedbackCount": 0,
        },
        "improvementOpportunities": {
            "zeroResultQueries": [],
            "abandonedSearchPatterns": [],
        },
    }


def _escape_like(partial: str) -> str:
    escaped = partial.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SearchAnalyticsRecorder:
    """Persists search history and feedback; derives usage reports."""

    def __init__(self, pool: ConnectionPool, repository: ContentRepository):
        self._pool = pool
        self._repository = repository

    async def _fetchall(self, sql: str, params: list[Any]) -> list:
        async with self._pool.acquire() as conn:
            async with conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())

    # ─── Writes ──────────────────────────────────────────────────

    async def record_search(self, user_id: Optional[str], query: str, result_count: int) -> None:
        """Append one history row. Anonymous searches are not recorded."""
        if not user_id:
            return
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    "INSERT INTO search_history (user_id, query, result_count, searched_at) "
                    "VALUES (?, ?, ?, ?)",
                    (user_id, query, result_count, now_iso()),
                )
                await conn.commit()
            metrics.inc("asvab_search_history_writes_total")
        except _DB_ERRORS as e:
            logger.warning("Failed to save search query for %s: %s", user_id, e)
            record_soft_failure("search_history")

    async def record_feedback(
        self,
        user_id: str,
        query: str,
        result_id: str,
        rating: int,
        was_helpful: bool,
        feedback: Optional[str] = None,
    ) -> None:
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO search_feedback
                        (user_id, query, result_id, rating, feedback, was_helpful, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, query, result_id, rating, feedback, int(was_helpful), now_iso()),
                )
                await conn.commit()
        except _DB_ERRORS as e:
            logger.error("Failed to record search feedback: %s", e)
            raise FeedbackRecordingFailed() from e
        logger.info("Search feedback recorded for user %s: %d/5", user_id, rating)

    # ─── History Reads ───────────────────────────────────────────

    async def user_history(self, user_id: str, limit: Optional[int] = None) -> list[dict[str, Any]]:
        try:
            rows = await self._fetchall(
                "SELECT query, result_count, searched_at FROM search_history "
                "WHERE user_id = ? ORDER BY searched_at DESC, id DESC LIMIT ?",
                [user_id, limit or config.HISTORY_DEFAULT_LIMIT],
            )
        except _DB_ERRORS as e:
            logger.warning("Failed to get search history: %s", e)
            record_soft_failure("search_history")
            return []
        return [
            {"query": r["query"], "resultCount": r["result_count"], "searchedAt": r["searched_at"]}
            for r in rows
        ]

    async def popular_searches(self, limit: int = 10, days: Optional[int] = None) -> list[dict[str, Any]]:
        since = days_ago_iso(days or config.ANALYTICS_WINDOW_DAYS)
        try:
            rows = await self._fetchall(
                "SELECT query, COUNT(*) AS n FROM search_history WHERE searched_at >= ? "
                "GROUP BY query ORDER BY n DESC, query LIMIT ?",
                [since, limit],
            )
        except _DB_ERRORS as e:
            logger.warning("Failed to get popular searches: %s", e)
            record_soft_failure("popular_searches")
            return []
        return [{"query": r["query"], "count": r["n"]} for r in rows]

    async def recent_matching_queries(self, partial: str, limit: int) -> list[str]:
        """Distinct past queries containing *partial*, most recent first. Raises on DB error."""
        rows = await self._fetchall(
            "SELECT query, MAX(searched_at) AS last FROM search_history "
            "WHERE query LIKE ? ESCAPE '\\' GROUP BY query ORDER BY last DESC LIMIT ?",
            [_escape_like(partial), limit],
        )
        return [r["query"] for r in rows]

    async def frequent_matching_queries(self, partial: str, limit: int) -> list[str]:
        """Distinct past queries containing *partial*, most frequent first. Raises on DB error."""
        rows = await self._fetchall(
            "SELECT query, COUNT(*) AS n FROM search_history "
            "WHERE query LIKE ? ESCAPE '\\' GROUP BY query ORDER BY n DESC, query LIMIT ?",
            [_escape_like(partial), limit],
        )
        return [r["query"] for r in rows]

    # ─── Reports ─────────────────────────────────────────────────

    async def user_analytics(self, user_id: str, days: Optional[int] = None) -> dict[str, Any]:
        since = days_ago_iso(days or config.ANALYTICS_WINDOW_DAYS)
        try:
            history = await self._fetchall(
                "SELECT query, result_count, searched_at FROM search_history "
                "WHERE user_id = ? AND searched_at >= ? ORDER BY searched_at DESC, id DESC",
                [user_id, since],
            )
            feedback_rows = await self._fetchall(
                "SELECT COUNT(*) AS n FROM search_feedback WHERE user_id = ? AND created_at >= ?",
                [user_id, since],
            )
        except _DB_ERRORS as e:
            logger.error("Failed to get user search analytics: %s", e)
            record_soft_failure("user_analytics")
            return _empty_user_analytics()

        total = len(history)
        queries = [r["query"] for r in history]
        successful = sum(1 for r in history if r["result_count"] > 0)

        words = Counter(
            word for q in queries for word in q.lower().split(" ") if len(word) > 2
        )
        hours = Counter(parse_iso(r["searched_at"]).hour for r in history)
        preferred_hour = hours.most_common(1)[0][0] if hours else DEFAULT_PREFERRED_HOUR

        return {
            "totalSearches": total,
            "uniqueQueries": len({q.lower() for q in queries}),
            "averageResultsClicked": feedback_rows[0]["n"] / max(total, 1),
            "topCategories": await self._top_categories(user_id, since),
            "topQueries": [
                {"query": q, "count": n} for q, n in Counter(queries).most_common(TOP_QUERIES)
            ],
            "searchSuccessRate": successful / total if total else 0,
            "recentSearches": [
                {
                    "query": r["query"],
                    "timestamp": r["searched_at"],
                    "resultCount": r["result_count"],
                    "wasSuccessful": r["result_count"] > 0,
                }
                for r in history[:RECENT_SEARCHES]
            ],
            "searchPatterns": {
                "preferredTime": preferred_hour,
                "averageQueryLength": sum(len(q) for q in queries) / total if total else 0,
                "mostCommonTerms": [w for w, _ in words.most_common(TOP_TERMS)],
            },
        }

    async def _top_categories(self, user_id: str, since: str) -> list[dict[str, Any]]:
        # Search history carries no category; quiz categories stand in for it.
        try:
            categories = await self._repository.quiz_categories(user_id, since)
        except _DB_ERRORS as e:
            logger.warning("Failed to get top search categories: %s", e)
            record_soft_failure("user_analytics")
            return []
        return [
            {"category": c, "count": n} for c, n in Counter(categories).most_common(TOP_CATEGORIES)
        ]

    async def global_trends(self, days: Optional[int] = None) -> dict[str, Any]:
        since = days_ago_iso(days or config.ANALYTICS_WINDOW_DAYS)
        try:
            trending = await self._fetchall(
                "SELECT query, COUNT(*) AS n FROM search_history WHERE searched_at >= ? "
                "GROUP BY query ORDER BY n DESC, query LIMIT ?",
                [since, TRENDING_LIMIT],
            )
            daily = await self._fetchall(
                "SELECT substr(searched_at, 1, 10) AS day, COUNT(*) AS n FROM search_history "
                "WHERE searched_at >= ? GROUP BY day ORDER BY day",
                [since],
            )
            totals = await self._fetchall(
                "SELECT COUNT(*) AS total, "
                "COALESCE(SUM(CASE WHEN result_count > 0 THEN 1 ELSE 0 END), 0) AS ok, "
                "COALESCE(SUM(result_count), 0) AS results "
                "FROM search_history WHERE searched_at >= ?",
                [since],
            )
        except _DB_ERRORS as e:
            logger.error("Failed to get global search trends: %s", e)
            record_soft_failure("trends")
            return _empty_trends()

        total = totals[0]["total"]
        return {
            "trendingQueries": [{"query": r["query"], "searchCount": r["n"]} for r in trending],
            "dailySearchVolume": [{"date": r["day"], "volume": r["n"]} for r in daily],
            "overallSuccessRate": totals[0]["ok"] / total if total else 0,
            "avgResultsPerSearch": totals[0]["results"] / total if total else 0,
        }

    async def quality_metrics(self, days: Optional[int] = None) -> dict[str, Any]:
        since = days_ago_iso(days or config.ANALYTICS_WINDOW_DAYS)
        try:
            feedback = await self._fetchall(
                "SELECT rating, was_helpful FROM search_feedback WHERE created_at >= ?",
                [since],
            )
            zero_result = await self._fetchall(
                "SELECT DISTINCT query FROM search_history "
                "WHERE result_count = 0 AND searched_at >= ? LIMIT ?",
                [since, ZERO_RESULT_LIMIT],
            )
            repeated = await self._fetchall(
                "SELECT query, COUNT(*) AS n FROM search_history WHERE searched_at >= ? "
                "GROUP BY query, user_id HAVING COUNT(*) > ?",
                [since, ABANDON_THRESHOLD],
            )
        except _DB_ERRORS as e:
            logger.error("Failed to get search quality metrics: %s", e)
            record_soft_failure("quality")
            return _empty_quality()

        total = len(feedback)
        avg_rating = sum(r["rating"] for r in feedback) / total if total else 0
        helpful = sum(1 for r in feedback if r["was_helpful"]) / total if total else 0

        attempts: Counter = Counter()
        for r in repeated:
            attempts[r["query"]] += r["n"]

        return {
            "qualityMetrics": {
                "averageRating": round(avg_rating, 2),
                "helpfulPercentage": round(helpful * 100),
                "totalFeedbackCount": total,
            },
            "improvementOpportunities": {
                "zeroResultQueries": [r["query"] for r in zero_result],
                "abandonedSearchPatterns": [
                    {"query": q, "attempts": n} for q, n in attempts.most_common(ABANDONED_LIMIT)
                ],
            },
        }

# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Content Repository.

``ContentRepository`` is the read surface the search core depends on.
``SqliteContentRepository`` interprets a shared ``ContentPredicate`` per
content kind, translating only the fields that kind actually has.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from asvab_search.connection_pool import ConnectionPool
from asvab_search.search.items import (
    Flashcard,
    MilitaryJob,
    Question,
    SearchableItem,
    StudyGroup,
)
from asvab_search.search.models import ItemType
from asvab_search.search.query_builder import ContentPredicate

__all__ = [
    "ContentRepository",
    "FacetDimension",
    "QuestionAttempt",
    "QuizAnswer",
    "SqliteContentRepository",
    "TIME_BUCKETS",
]

logger = logging.getLogger("asvab_search.search.repository")


class FacetDimension:
    CATEGORY = "category"
    DIFFICULTY = "difficulty"
    TAGS = "tags"
    BRANCH = "branch"
    TIME_RANGE = "time_range"


TIME_BUCKETS: tuple[str, ...] = ("< 1 min", "1-5 min", "5+ min")


@dataclass(frozen=True)
class QuestionAttempt:
    question_id: str
    is_correct: bool
    time_spent: Optional[int]
    completed_at: Optional[str]


@dataclass(frozen=True)
class QuizAnswer:
    category: Optional[str]
    difficulty: Optional[str]
    is_correct: bool


@runtime_checkable
class ContentRepository(Protocol):
    """Typed, filtered reads over content and learner activity."""

    async def find(
        self, kind: ItemType, predicate: ContentPredicate, limit: int
    ) -> list[SearchableItem]:  # pragma: no cover - Protocol only
        """Return up to *limit* active items of *kind* matching *predicate*."""

    async def count(self, kind: ItemType, predicate: ContentPredicate) -> int:  # pragma: no cover
        """Exact number of items of *kind* matching *predicate*."""

    async def facet(
        self, kind: ItemType, dimension: str, predicate: ContentPredicate, limit: Optional[int] = None
    ) -> list[tuple[str, int]]:  # pragma: no cover - Protocol only
        """Grouped counts along *dimension*; empty when *kind* lacks it."""

    async def get_item(self, item_id: str) -> Optional[SearchableItem]:  # pragma: no cover
        """Look up a question, flashcard or military job by id."""

    async def bookmarked_ids(self, user_id: str, item_ids: Sequence[str] = ()) -> set[str]:  # pragma: no cover
        """Subset of *item_ids* the user has bookmarked (all of them when empty)."""

    async def question_attempts(
        self, user_id: str, question_ids: Sequence[str]
    ) -> list[QuestionAttempt]:  # pragma: no cover - Protocol only
        """Every quiz answer the user gave for the given questions."""

    async def recent_quiz_answers(
        self, user_id: str, quiz_limit: int
    ) -> list[QuizAnswer]:  # pragma: no cover - Protocol only
        """Answers from the user's most recent completed quizzes."""

    async def quiz_categories(self, user_id: str, since: str) -> list[str]:  # pragma: no cover
        """Categories of quizzes the user completed since *since*."""

    async def selected_branch(self, user_id: str) -> Optional[str]:  # pragma: no cover
        """The user's chosen service branch, if any."""


# ─── SQLite Translation ──────────────────────────────────────────────


@dataclass(frozen=True)
class _KindTable:
    table: str
    alias: str
    columns: str
    text_columns: tuple[str, ...]
    fields: frozenset[str]


_KINDS: dict[ItemType, _KindTable] = {
    ItemType.QUESTION: _KindTable(
        table="questions",
        alias="q",
        columns=(
            "q.id, q.content, q.explanation, q.category, q.difficulty, q.tags, "
            "q.estimated_time, q.created_at, q.updated_at, "
            "(SELECT COUNT(*) FROM quiz_questions qq WHERE qq.question_id = q.id) AS popularity"
        ),
        text_columns=("q.content", "q.explanation"),
        fields=frozenset({"category", "difficulty", "tags", "explanation", "time"}),
    ),
    ItemType.FLASHCARD: _KindTable(
        table="flashcards",
        alias="f",
        columns=(
            "f.id, f.front, f.back, f.category, f.difficulty, f.tags, "
            "f.created_at, f.updated_at, "
            "(SELECT COUNT(*) FROM flashcard_reviews r WHERE r.flashcard_id = f.id) AS popularity"
        ),
        text_columns=("f.front", "f.back"),
        fields=frozenset({"category", "difficulty", "tags"}),
    ),
    ItemType.MILITARY_JOB: _KindTable(
        table="military_jobs",
        alias="j",
        columns=(
            "j.id, j.mos_code, j.title, j.description, j.branch, "
            "j.min_afqt_score, j.created_at, j.updated_at"
        ),
        text_columns=("j.title", "j.description", "j.mos_code"),
        fields=frozenset({"branch", "score"}),
    ),
    ItemType.STUDY_GROUP: _KindTable(
        table="study_groups",
        alias="g",
        columns=(
            "g.id, g.name, g.description, g.branch, g.created_at, g.updated_at, "
            "(SELECT COUNT(*) FROM study_group_members m WHERE m.group_id = g.id) AS popularity"
        ),
        text_columns=("g.name", "g.description"),
        fields=frozenset({"branch"}),
    ),
}

_FACET_FIELDS = {
    FacetDimension.CATEGORY: "category",
    FacetDimension.DIFFICULTY: "difficulty",
    FacetDimension.TAGS: "tags",
    FacetDimension.BRANCH: "branch",
    FacetDimension.TIME_RANGE: "time",
}


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" * len(values))


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _build_where(kt: _KindTable, p: ContentPredicate) -> tuple[str, list[Any]]:
    a = kt.alias
    clauses: list[str] = []
    params: list[Any] = []

    if p.active_only:
        clauses.append(f"{a}.is_active = 1")
    if p.exclude_id:
        clauses.append(f"{a}.id != ?")
        params.append(p.exclude_id)
    if p.created_from:
        clauses.append(f"{a}.created_at >= ?")
        params.append(p.created_from)
    if p.created_to:
        clauses.append(f"{a}.created_at <= ?")
        params.append(p.created_to)

    if "category" in kt.fields and p.categories:
        clauses.append(f"{a}.category IN ({_placeholders(p.categories)})")
        params.extend(p.categories)
    if "difficulty" in kt.fields and p.difficulties:
        clauses.append(f"{a}.difficulty IN ({_placeholders(p.difficulties)})")
        params.extend(p.difficulties)
    if "tags" in kt.fields and p.tags:
        clauses.append(
            f"EXISTS (SELECT 1 FROM json_each({a}.tags) jt "
            f"WHERE jt.value IN ({_placeholders(p.tags)}))"
        )
        params.extend(p.tags)
    if "explanation" in kt.fields and p.has_explanation is not None:
        if p.has_explanation:
            clauses.append(f"({a}.explanation IS NOT NULL AND {a}.explanation != '')")
        else:
            clauses.append(f"({a}.explanation IS NULL OR {a}.explanation = '')")
    if "time" in kt.fields:
        if p.time_min is not None:
            clauses.append(f"{a}.estimated_time >= ?")
            params.append(p.time_min)
        if p.time_max is not None:
            clauses.append(f"{a}.estimated_time <= ?")
            params.append(p.time_max)
    if "branch" in kt.fields and p.branch:
        clauses.append(f"{a}.branch = ?")
        params.append(p.branch)
    if "score" in kt.fields:
        if p.score_min is not None:
            clauses.append(f"{a}.min_afqt_score >= ?")
            params.append(p.score_min)
        if p.score_max is not None:
            clauses.append(f"{a}.min_afqt_score <= ?")
            params.append(p.score_max)

    if p.text_terms:
        ors = []
        for term in p.text_terms:
            for column in kt.text_columns:
                ors.append(f"{column} LIKE ? ESCAPE '\\'")
                params.append(_like_pattern(term))
        clauses.append("(" + " OR ".join(ors) + ")")

    where = " AND ".join(clauses) if clauses else "1 = 1"
    return where, params


def _tags(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return ()
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return ()
    return tuple(str(t) for t in value) if isinstance(value, list) else ()


def _row_to_item(kind: ItemType, row) -> SearchableItem:
    if kind == ItemType.QUESTION:
        return Question(
            id=row["id"],
            content=row["content"] or "",
            explanation=row["explanation"],
            category=row["category"],
            difficulty=row["difficulty"],
            tags=_tags(row["tags"]),
            estimated_time=row["estimated_time"],
            attempt_count=row["popularity"] or 0,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
    if kind == ItemType.FLASHCARD:
        return Flashcard(
            id=row["id"],
            front=row["front"] or "",
            back=row["back"] or "",
            category=row["category"],
            difficulty=row["difficulty"],
            tags=_tags(row["tags"]),
            review_count=row["popularity"] or 0,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
    if kind == ItemType.MILITARY_JOB:
        return MilitaryJob(
            id=row["id"],
            mos_code=row["mos_code"],
            title=row["title"],
            description=row["description"] or "",
            branch=row["branch"],
            min_afqt_score=row["min_afqt_score"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
    return StudyGroup(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        branch=row["branch"],
        member_count=row["popularity"] or 0,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqliteContentRepository:
    """``ContentRepository`` backed by the shared aiosqlite pool."""

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    async def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list:
        async with self._pool.acquire() as conn:
            async with conn.execute(sql, list(params)) as cursor:
                return list(await cursor.fetchall())

    # ─── Content ─────────────────────────────────────────────────

    async def find(self, kind: ItemType, predicate: ContentPredicate, limit: int) -> list[SearchableItem]:
        kt = _KINDS[kind]
        where, params = _build_where(kt, predicate)
        sql = (
            f"SELECT {kt.columns} FROM {kt.table} {kt.alias} WHERE {where} "
            f"ORDER BY {kt.alias}.created_at DESC, {kt.alias}.id LIMIT ?"
        )
        rows = await self._fetchall(sql, [*params, limit])
        return [_row_to_item(kind, row) for row in rows]

    async def count(self, kind: ItemType, predicate: ContentPredicate) -> int:
        kt = _KINDS[kind]
        where, params = _build_where(kt, predicate)
        rows = await self._fetchall(
            f"SELECT COUNT(*) FROM {kt.table} {kt.alias} WHERE {where}", params
        )
        return rows[0][0] if rows else 0

    async def facet(
        self,
        kind: ItemType,
        dimension: str,
        predicate: ContentPredicate,
        limit: Optional[int] = None,
    ) -> list[tuple[str, int]]:
        kt = _KINDS[kind]
        field_name = _FACET_FIELDS.get(dimension)
        if field_name is None or field_name not in kt.fields:
            return []
        a = kt.alias
        where, params = _build_where(kt, predicate)

        if dimension == FacetDimension.TAGS:
            sql = (
                f"SELECT ft.value AS name, COUNT(*) AS n "
                f"FROM {kt.table} {a}, json_each({a}.tags) ft WHERE {where} "
                f"GROUP BY ft.value ORDER BY n DESC, name"
            )
        elif dimension == FacetDimension.TIME_RANGE:
            sql = (
                f"SELECT CASE WHEN {a}.estimated_time < 60 THEN '{TIME_BUCKETS[0]}' "
                f"WHEN {a}.estimated_time <= 300 THEN '{TIME_BUCKETS[1]}' "
                f"ELSE '{TIME_BUCKETS[2]}' END AS name, COUNT(*) AS n "
                f"FROM {kt.table} {a} WHERE {where} AND {a}.estimated_time IS NOT NULL "
                f"GROUP BY name ORDER BY n DESC, name"
            )
        else:
            column = f"{a}.{field_name}"
            sql = (
                f"SELECT {column} AS name, COUNT(*) AS n FROM {kt.table} {a} "
                f"WHERE {where} AND {column} IS NOT NULL "
                f"GROUP BY {column} ORDER BY n DESC, name"
            )
        if limit is not None:
            sql += " LIMIT ?"
            params = [*params, limit]
        rows = await self._fetchall(sql, params)
        return [(str(row["name"]), row["n"]) for row in rows]

    async def get_item(self, item_id: str) -> Optional[SearchableItem]:
        for kind in (ItemType.QUESTION, ItemType.FLASHCARD, ItemType.MILITARY_JOB):
            kt = _KINDS[kind]
            rows = await self._fetchall(
                f"SELECT {kt.columns} FROM {kt.table} {kt.alias} WHERE {kt.alias}.id = ?",
                [item_id],
            )
            if rows:
                return _row_to_item(kind, rows[0])
        return None

    # ─── Learner Activity ────────────────────────────────────────

    async def bookmarked_ids(self, user_id: str, item_ids: Sequence[str] = ()) -> set[str]:
        if item_ids:
            rows = await self._fetchall(
                f"SELECT item_id FROM bookmarks WHERE user_id = ? "
                f"AND item_id IN ({_placeholders(item_ids)})",
                [user_id, *item_ids],
            )
        else:
            rows = await self._fetchall(
                "SELECT item_id FROM bookmarks WHERE user_id = ?", [user_id]
            )
        return {row["item_id"] for row in rows}

    async def question_attempts(self, user_id: str, question_ids: Sequence[str]) -> list[QuestionAttempt]:
        if not question_ids:
            return []
        rows = await self._fetchall(
            f"""
            SELECT qq.question_id, qq.is_correct, qq.time_spent, qz.completed_at
            FROM quiz_questions qq JOIN quizzes qz ON qz.id = qq.quiz_id
            WHERE qz.user_id = ? AND qq.question_id IN ({_placeholders(question_ids)})
            """,
            [user_id, *question_ids],
        )
        return [
            QuestionAttempt(
                question_id=row["question_id"],
                is_correct=bool(row["is_correct"]),
                time_spent=row["time_spent"],
                completed_at=row["completed_at"],
            )
            for row in rows
        ]

    async def recent_quiz_answers(self, user_id: str, quiz_limit: int) -> list[QuizAnswer]:
        rows = await self._fetchall(
            """
            SELECT qq.category, qq.difficulty, qq.is_correct
            FROM quiz_questions qq
            WHERE qq.quiz_id IN (
                SELECT id FROM quizzes
                WHERE user_id = ? AND completed_at IS NOT NULL
                ORDER BY completed_at DESC LIMIT ?
            )
            """,
            [user_id, quiz_limit],
        )
        return [
            QuizAnswer(
                category=row["category"],
                difficulty=row["difficulty"],
                is_correct=bool(row["is_correct"]),
            )
            for row in rows
        ]

    async def quiz_categories(self, user_id: str, since: str) -> list[str]:
        rows = await self._fetchall(
            "SELECT category FROM quizzes WHERE user_id = ? AND completed_at >= ? "
            "AND category IS NOT NULL",
            [user_id, since],
        )
        return [row["category"] for row in rows]

    async def selected_branch(self, user_id: str) -> Optional[str]:
        rows = await self._fetchall("SELECT selected_branch FROM users WHERE id = ?", [user_id])
        return rows[0]["selected_branch"] if rows else None

# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Searchable Content Items.

The four content kinds are modelled as separate record types and
normalized into one ``ContentDocument`` shape before scoring, so the
scorer never needs to know which table a row came from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from asvab_search.search.models import ItemType

QUESTION_TITLE_LENGTH = 100


@dataclass(frozen=True)
class Question:
    id: str
    content: str
    explanation: Optional[str]
    category: str
    difficulty: str
    tags: tuple[str, ...]
    estimated_time: Optional[int]
    attempt_count: int
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class Flashcard:
    id: str
    front: str
    back: str
    category: str
    difficulty: str
    tags: tuple[str, ...]
    review_count: int
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class MilitaryJob:
    id: str
    mos_code: str
    title: str
    description: str
    branch: str
    min_afqt_score: Optional[int]
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class StudyGroup:
    id: str
    name: str
    description: Optional[str]
    branch: Optional[str]
    member_count: int
    created_at: str
    updated_at: str


SearchableItem = Union[Question, Flashcard, MilitaryJob, StudyGroup]


@dataclass(frozen=True)
class ContentDocument:
    """Uniform view over any searchable item.

    ``title``/``content`` feed advanced scoring and highlighting.
    ``primary_text``/``secondary_text`` feed semantic matching, where a
    question's explanation or a flashcard's back is the secondary field.
    """

    id: str
    type: ItemType
    title: str
    content: str
    primary_text: str
    secondary_text: Optional[str]
    category: Optional[str]
    difficulty: Optional[str]
    tags: tuple[str, ...]
    popularity: int
    created_at: str
    updated_at: str
    branch: Optional[str] = None
    estimated_time: Optional[int] = None


def _question_title(content: str) -> str:
    if len(content) > QUESTION_TITLE_LENGTH:
        return content[:QUESTION_TITLE_LENGTH] + "..."
    return content


def normalize(item: SearchableItem) -> ContentDocument:
    """Project a content record onto the common scoring shape."""
    if isinstance(item, Question):
        return ContentDocument(
            id=item.id,
            type=ItemType.QUESTION,
            title=_question_title(item.content),
            content=item.content,
            primary_text=item.content,
            secondary_text=item.explanation,
            category=item.category,
            difficulty=item.difficulty,
            tags=item.tags,
            popularity=item.attempt_count,
            created_at=item.created_at,
            updated_at=item.updated_at,
            estimated_time=item.estimated_time,
        )
    if isinstance(item, Flashcard):
        return ContentDocument(
            id=item.id,
            type=ItemType.FLASHCARD,
            title=item.front,
            content=item.back,
            primary_text=item.front,
            secondary_text=item.back,
            category=item.category,
            difficulty=item.difficulty,
            tags=item.tags,
            popularity=item.review_count,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
    if isinstance(item, MilitaryJob):
        return ContentDocument(
            id=item.id,
            type=ItemType.MILITARY_JOB,
            title=f"{item.mos_code} - {item.title}",
            content=item.description,
            primary_text=item.title,
            secondary_text=item.description,
            category=item.branch,
            difficulty=None,
            tags=(),
            popularity=0,
            created_at=item.created_at,
            updated_at=item.updated_at,
            branch=item.branch,
        )
    if isinstance(item, StudyGroup):
        return ContentDocument(
            id=item.id,
            type=ItemType.STUDY_GROUP,
            title=item.name,
            content=item.description or "",
            primary_text=item.name,
            secondary_text=item.description,
            category=item.branch,
            difficulty=None,
            tags=(),
            popularity=item.member_count,
            created_at=item.created_at,
            updated_at=item.updated_at,
            branch=item.branch,
        )
    raise TypeError(f"Unsupported content item: {type(item).__name__}")

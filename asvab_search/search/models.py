# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Search request and result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ContentType(str, Enum):
    QUESTIONS = "QUESTIONS"
    FLASHCARDS = "FLASHCARDS"
    MILITARY_JOBS = "MILITARY_JOBS"
    STUDY_GROUPS = "STUDY_GROUPS"
    ALL = "ALL"


class ItemType(str, Enum):
    QUESTION = "QUESTION"
    FLASHCARD = "FLASHCARD"
    MILITARY_JOB = "MILITARY_JOB"
    STUDY_GROUP = "STUDY_GROUP"


class SortField(str, Enum):
    RELEVANCE = "RELEVANCE"
    DATE = "DATE"
    DIFFICULTY = "DIFFICULTY"
    POPULARITY = "POPULARITY"
    ACCURACY = "ACCURACY"
    TIME_TO_COMPLETE = "TIME_TO_COMPLETE"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# Content-type selector -> item kinds it covers, in retrieval order.
CONTENT_TYPE_KINDS: dict[ContentType, tuple[ItemType, ...]] = {
    ContentType.QUESTIONS: (ItemType.QUESTION,),
    ContentType.FLASHCARDS: (ItemType.FLASHCARD,),
    ContentType.MILITARY_JOBS: (ItemType.MILITARY_JOB,),
    ContentType.STUDY_GROUPS: (ItemType.STUDY_GROUP,),
    ContentType.ALL: (
        ItemType.QUESTION,
        ItemType.FLASHCARD,
        ItemType.MILITARY_JOB,
        ItemType.STUDY_GROUP,
    ),
}

KIND_CONTENT_TYPE: dict[ItemType, ContentType] = {
    ItemType.QUESTION: ContentType.QUESTIONS,
    ItemType.FLASHCARD: ContentType.FLASHCARDS,
    ItemType.MILITARY_JOB: ContentType.MILITARY_JOBS,
    ItemType.STUDY_GROUP: ContentType.STUDY_GROUPS,
}


# ─── Request ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DateRange:
    start: Optional[str] = None
    end: Optional[str] = None


@dataclass(frozen=True)
class NumericRange:
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class SearchFilters:
    """Optional constraints; an empty or None field imposes no constraint."""

    categories: tuple[str, ...] = ()
    difficulties: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    date_range: Optional[DateRange] = None
    score_range: Optional[NumericRange] = None
    branch: Optional[str] = None
    content_type: ContentType = ContentType.ALL
    is_bookmarked: Optional[bool] = None
    has_explanation: Optional[bool] = None
    time_to_complete: Optional[NumericRange] = None
    personalized_for: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting unconstrained fields."""
        data: dict[str, Any] = {"contentType": self.content_type.value}
        if self.categories:
            data["categories"] = list(self.categories)
        if self.difficulties:
            data["difficulties"] = list(self.difficulties)
        if self.tags:
            data["tags"] = list(self.tags)
        if self.date_range is not None:
            data["dateRange"] = {"start": self.date_range.start, "end": self.date_range.end}
        if self.score_range is not None:
            data["scoreRange"] = {"min": self.score_range.min, "max": self.score_range.max}
        if self.time_to_complete is not None:
            data["timeToComplete"] = {
                "min": self.time_to_complete.min,
                "max": self.time_to_complete.max,
            }
        for key, value in (
            ("branch", self.branch),
            ("isBookmarked", self.is_bookmarked),
            ("hasExplanation", self.has_explanation),
            ("personalizedFor", self.personalized_for),
        ):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchFilters:
        def _range(raw: Optional[dict]) -> Optional[NumericRange]:
            if raw is None:
                return None
            return NumericRange(min=raw.get("min"), max=raw.get("max"))

        date_raw = data.get("dateRange")
        return cls(
            categories=tuple(data.get("categories") or ()),
            difficulties=tuple(data.get("difficulties") or ()),
            tags=tuple(data.get("tags") or ()),
            date_range=(
                DateRange(start=date_raw.get("start"), end=date_raw.get("end"))
                if date_raw is not None
                else None
            ),
            score_range=_range(data.get("scoreRange")),
            branch=data.get("branch"),
            content_type=ContentType(data.get("contentType", ContentType.ALL.value)),
            is_bookmarked=data.get("isBookmarked"),
            has_explanation=data.get("hasExplanation"),
            time_to_complete=_range(data.get("timeToComplete")),
            personalized_for=data.get("personalizedFor"),
        )


@dataclass(frozen=True)
class SearchSorting:
    field: SortField = SortField.RELEVANCE
    order: SortOrder = SortOrder.DESC


@dataclass(frozen=True)
class SearchPagination:
    page: int = 1
    limit: int = 20

    @classmethod
    def clamped(cls, page: Optional[int], limit: Optional[int], max_limit: int) -> SearchPagination:
        """Build a pagination window with a server-enforced limit cap."""
        return cls(page=max(1, page or 1), limit=max(1, min(limit or 20, max_limit)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class SearchQuery:
    query: str
    filters: SearchFilters = field(default_factory=SearchFilters)
    sorting: SearchSorting = field(default_factory=SearchSorting)
    pagination: SearchPagination = field(default_factory=SearchPagination)
    user_id: Optional[str] = None


@dataclass(frozen=True)
class UserContext:
    """Learning profile used for personalization boosts."""

    preferred_categories: tuple[str, ...] = ()
    preferred_difficulties: tuple[str, ...] = ()
    branch: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.preferred_categories or self.preferred_difficulties)


# ─── Results ─────────────────────────────────────────────────────────


@dataclass
class ItemMetadata:
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    popularity: int = 0
    estimated_time: Optional[int] = None
    branch: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "popularity": self.popularity,
            "estimatedTime": self.estimated_time,
            "branch": self.branch,
        }


@dataclass
class UserInteraction:
    is_bookmarked: bool = False
    last_attempted: Optional[str] = None
    accuracy: Optional[float] = None
    time_spent: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "isBookmarked": self.is_bookmarked,
            "lastAttempted": self.last_attempted,
            "accuracy": self.accuracy,
            "timeSpent": self.time_spent,
        }


@dataclass
class SearchResultItem:
    """A scored search hit. Scores are only comparable within one search."""

    id: str
    type: ItemType
    title: str
    content: str
    category: Optional[str] = None
    difficulty: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    relevance_score: float = 0.0
    highlights: list[str] = field(default_factory=list)
    metadata: ItemMetadata = field(default_factory=ItemMetadata)
    user_interaction: Optional[UserInteraction] = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "difficulty": self.difficulty,
            "tags": list(self.tags),
            "relevanceScore": round(self.relevance_score, 4),
            "highlights": list(self.highlights),
            "metadata": self.metadata.to_dict(),
        }
        if self.user_interaction is not None:
            data["userInteraction"] = self.user_interaction.to_dict()
        return data


@dataclass(frozen=True)
class FacetBucket:
    name: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "count": self.count}


@dataclass
class SearchFacets:
    categories: list[FacetBucket] = field(default_factory=list)
    difficulties: list[FacetBucket] = field(default_factory=list)
    tags: list[FacetBucket] = field(default_factory=list)
    content_types: list[FacetBucket] = field(default_factory=list)
    time_ranges: list[FacetBucket] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": [b.to_dict() for b in self.categories],
            "difficulties": [b.to_dict() for b in self.difficulties],
            "tags": [b.to_dict() for b in self.tags],
            "contentTypes": [b.to_dict() for b in self.content_types],
            "timeRanges": [b.to_dict() for b in self.time_ranges],
        }


@dataclass
class SearchResult:
    items: list[SearchResultItem]
    total_count: int
    facets: SearchFacets
    suggestions: list[str]
    search_time_ms: int
    has_more: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "totalCount": self.total_count,
            "facets": self.facets.to_dict(),
            "suggestions": list(self.suggestions),
            "searchTime": self.search_time_ms,
            "hasMore": self.has_more,
        }


@dataclass
class SemanticSearchResult:
    id: str
    content: str
    type: ItemType
    relevance_score: float
    semantic_similarity: float
    category: Optional[str] = None
    difficulty: Optional[str] = None
    explanation: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "type": self.type.value,
            "relevanceScore": round(self.relevance_score, 4),
            "semanticSimilarity": round(self.semantic_similarity, 4),
            "category": self.category,
            "difficulty": self.difficulty,
            "explanation": self.explanation,
            "tags": list(self.tags),
        }

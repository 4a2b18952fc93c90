# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — API Models.
Centralized Pydantic models for request validation.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from asvab_search import config
from asvab_search.search.models import (
    ContentType,
    DateRange,
    NumericRange,
    SearchFilters,
    SearchPagination,
    SearchQuery,
    SearchSorting,
    SortField,
    SortOrder,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DateRangeModel(_CamelModel):
    start: str | None = Field(None, description="ISO 8601 lower bound (inclusive)")
    end: str | None = Field(None, description="ISO 8601 upper bound (inclusive)")


class RangeModel(_CamelModel):
    min: float | None = None
    max: float | None = None


class SearchFiltersModel(_CamelModel):
    categories: list[str] | None = None
    difficulties: list[str] | None = None
    tags: list[str] | None = None
    date_range: DateRangeModel | None = Field(None, alias="dateRange")
    score_range: RangeModel | None = Field(None, alias="scoreRange")
    branch: str | None = Field(None, max_length=50)
    content_type: ContentType = Field(ContentType.ALL, alias="contentType")
    is_bookmarked: bool | None = Field(None, alias="isBookmarked")
    has_explanation: bool | None = Field(None, alias="hasExplanation")
    time_to_complete: RangeModel | None = Field(None, alias="timeToComplete")
    personalized_for: str | None = Field(None, alias="personalizedFor")

    def to_filters(self) -> SearchFilters:
        def _range(r: RangeModel | None) -> NumericRange | None:
            return NumericRange(min=r.min, max=r.max) if r is not None else None

        return SearchFilters(
            categories=tuple(self.categories or ()),
            difficulties=tuple(self.difficulties or ()),
            tags=tuple(self.tags or ()),
            date_range=(
                DateRange(start=self.date_range.start, end=self.date_range.end)
                if self.date_range is not None
                else None
            ),
            score_range=_range(self.score_range),
            branch=self.branch,
            content_type=self.content_type,
            is_bookmarked=self.is_bookmarked,
            has_explanation=self.has_explanation,
            time_to_complete=_range(self.time_to_complete),
            personalized_for=self.personalized_for,
        )


class SortingModel(_CamelModel):
    field: SortField = SortField.RELEVANCE
    order: SortOrder = SortOrder.DESC


class AdvancedSearchRequest(_CamelModel):
    query: str = Field("", max_length=1024, description="Free-text query; empty matches on filters alone")
    filters: SearchFiltersModel | None = None
    sorting: SortingModel | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, description="Clamped server-side")

    def to_query(self, user_id: str | None) -> SearchQuery:
        sorting = self.sorting or SortingModel()
        return SearchQuery(
            query=self.query,
            filters=self.filters.to_filters() if self.filters else SearchFilters(),
            sorting=SearchSorting(field=sorting.field, order=sorting.order),
            pagination=SearchPagination.clamped(self.page, self.limit, config.ADVANCED_MAX_LIMIT),
            user_id=user_id,
        )


class FeedbackRequest(_CamelModel):
    query: str = Field(..., max_length=1024)
    result_id: str = Field(..., alias="resultId", max_length=100)
    rating: int = Field(..., description="1 (poor) to 5 (excellent)")
    feedback: str | None = Field(None, max_length=2000)
    was_helpful: bool = Field(..., alias="wasHelpful")

    @field_validator("rating")
    @classmethod
    def valid_rating(cls, v: int) -> int:
        if not 1 <= v <= 5:
            raise ValueError("Rating must be between 1 and 5")
        return v


class FeedbackResponse(BaseModel):
    success: bool
    message: str


class FilterPresetRequest(_CamelModel):
    name: str = Field(..., max_length=100)
    filters: SearchFiltersModel

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Must not be empty or whitespace only")
        return v

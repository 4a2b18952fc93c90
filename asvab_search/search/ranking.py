# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Sorting and pagination of scored results."""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Any, Callable, Sequence

from asvab_search.search.models import (
    SearchPagination,
    SearchResultItem,
    SearchSorting,
    SortField,
    SortOrder,
)
from asvab_search.temporal import parse_iso

DIFFICULTY_ORDER = MappingProxyType({"EASY": 1, "MEDIUM": 2, "HARD": 3})
DEFAULT_DIFFICULTY_RANK = 2

# field -> (key, base order is descending)
_SORT_KEYS: dict[SortField, tuple[Callable[[SearchResultItem], Any], bool]] = {
    SortField.RELEVANCE: (lambda item: item.relevance_score, True),
    SortField.DATE: (lambda item: parse_iso(item.metadata.created_at), True),
    SortField.DIFFICULTY: (
        lambda item: DIFFICULTY_ORDER.get(item.difficulty or "", DEFAULT_DIFFICULTY_RANK),
        False,
    ),
    SortField.POPULARITY: (lambda item: item.metadata.popularity or 0, True),
    SortField.TIME_TO_COMPLETE: (lambda item: item.metadata.estimated_time or 0, False),
    # Accuracy is per-user and only known after enrichment; order by relevance.
    SortField.ACCURACY: (lambda item: item.relevance_score, True),
}


def sort_results(items: Sequence[SearchResultItem], sorting: SearchSorting) -> list[SearchResultItem]:
    """Stable sort; ``order=ASC`` inverts the field's base direction."""
    key, descending = _SORT_KEYS[sorting.field]
    reverse = descending if sorting.order == SortOrder.DESC else not descending
    return sorted(items, key=key, reverse=reverse)


def paginate(items: Sequence[SearchResultItem], pagination: SearchPagination) -> list[SearchResultItem]:
    start = pagination.offset
    return list(items[start : start + pagination.limit])


def has_more(total_count: int, pagination: SearchPagination) -> bool:
    return pagination.page < math.ceil(total_count / pagination.limit)

# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Search core: retrieval, scoring, ranking, facets, suggestions, analytics."""

from asvab_search.search.concepts import extract_concepts
from asvab_search.search.models import (
    ContentType,
    ItemType,
    SearchFilters,
    SearchPagination,
    SearchQuery,
    SearchResult,
    SearchResultItem,
    SearchSorting,
    SemanticSearchResult,
    SortField,
    SortOrder,
)

__all__ = [
    "ContentType",
    "ItemType",
    "SearchFilters",
    "SearchPagination",
    "SearchQuery",
    "SearchResult",
    "SearchResultItem",
    "SearchSorting",
    "SemanticSearchResult",
    "SortField",
    "SortOrder",
    "extract_concepts",
]

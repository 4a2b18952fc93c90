# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Query Builder.

Translates a search request into a storage-agnostic ``ContentPredicate``.
The repository decides which predicate fields apply to each content kind.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from asvab_search.search.models import SearchFilters


@dataclass(frozen=True)
class ContentPredicate:
    """Per-kind read conditions plus a free-text OR group.

    ``text_terms`` are ORed across every text column of a kind; an empty
    tuple means no text constraint. All other fields are ANDed.
    """

    text_terms: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    difficulties: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    created_from: Optional[str] = None
    created_to: Optional[str] = None
    has_explanation: Optional[bool] = None
    time_min: Optional[float] = None
    time_max: Optional[float] = None
    branch: Optional[str] = None
    score_min: Optional[float] = None
    score_max: Optional[float] = None
    active_only: bool = True
    exclude_id: Optional[str] = None

    def without_text(self) -> ContentPredicate:
        return replace(self, text_terms=())


def text_terms(query: str, concepts: Sequence[str] = ()) -> tuple[str, ...]:
    """The full query string followed by each concept, deduplicated."""
    stripped = query.strip()
    if not stripped:
        return ()
    terms = [stripped]
    for concept in concepts:
        if concept and concept not in terms:
            terms.append(concept)
    return tuple(terms)


def build_predicate(
    filters: SearchFilters,
    query: str = "",
    concepts: Sequence[str] = (),
) -> ContentPredicate:
    date_range = filters.date_range
    time_range = filters.time_to_complete
    score_range = filters.score_range
    return ContentPredicate(
        text_terms=text_terms(query, concepts),
        categories=tuple(filters.categories),
        difficulties=tuple(filters.difficulties),
        tags=tuple(filters.tags),
        created_from=date_range.start if date_range else None,
        created_to=date_range.end if date_range else None,
        has_explanation=filters.has_explanation,
        time_min=time_range.min if time_range else None,
        time_max=time_range.max if time_range else None,
        branch=filters.branch,
        score_min=score_range.min if score_range else None,
        score_max=score_range.max if score_range else None,
    )

# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Facet Generator.

Facets are counted by the repository under the same predicate as the
live search (text group and filters), not from the capped in-memory
result set. Each dimension degrades to an empty list on its own.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections import Counter
from typing import Sequence

from asvab_search.metrics import record_soft_failure
from asvab_search.search.models import (
    CONTENT_TYPE_KINDS,
    KIND_CONTENT_TYPE,
    ContentType,
    FacetBucket,
    ItemType,
    SearchFacets,
)
from asvab_search.search.query_builder import ContentPredicate
from asvab_search.search.repository import TIME_BUCKETS, ContentRepository, FacetDimension

logger = logging.getLogger("asvab_search.search.facets")

TAG_FACET_LIMIT = 20
_LABELED_KINDS = (ItemType.QUESTION, ItemType.FLASHCARD)


def _merge(groups: Sequence[Sequence[tuple[str, int]]], limit: int | None = None) -> list[FacetBucket]:
    totals: Counter = Counter()
    for group in groups:
        for name, count in group:
            totals[name] += count
    ordered = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    if limit is not None:
        ordered = ordered[:limit]
    return [FacetBucket(name=name, count=count) for name, count in ordered]


class FacetGenerator:
    def __init__(self, repository: ContentRepository):
        self._repository = repository

    async def generate(self, predicate: ContentPredicate, content_type: ContentType) -> SearchFacets:
        kinds = CONTENT_TYPE_KINDS[content_type]
        labeled = [k for k in _LABELED_KINDS if k in kinds]
        categories, difficulties, tags, content_types, time_ranges = await asyncio.gather(
            self._dimension("categories", self._labels(labeled, FacetDimension.CATEGORY, predicate)),
            self._dimension("difficulties", self._labels(labeled, FacetDimension.DIFFICULTY, predicate)),
            self._dimension(
                "tags", self._labels(labeled, FacetDimension.TAGS, predicate, TAG_FACET_LIMIT)
            ),
            self._dimension("content_types", self._content_types(kinds, predicate)),
            self._dimension("time_ranges", self._time_ranges(kinds, predicate)),
        )
        return SearchFacets(
            categories=categories,
            difficulties=difficulties,
            tags=tags,
            content_types=content_types,
            time_ranges=time_ranges,
        )

    async def _dimension(self, name: str, coro) -> list[FacetBucket]:
        try:
            return await coro
        except (sqlite3.Error, OSError, ValueError) as e:
            logger.warning("Facet '%s' unavailable: %s", name, e)
            record_soft_failure("facets")
            return []

    async def _labels(
        self,
        kinds: Sequence[ItemType],
        dimension: str,
        predicate: ContentPredicate,
        limit: int | None = None,
    ) -> list[FacetBucket]:
        groups = [await self._repository.facet(kind, dimension, predicate) for kind in kinds]
        return _merge(groups, limit)

    async def _content_types(self, kinds: Sequence[ItemType], predicate: ContentPredicate) -> list[FacetBucket]:
        buckets = []
        for kind in KIND_CONTENT_TYPE:
            count = await self._repository.count(kind, predicate) if kind in kinds else 0
            buckets.append(FacetBucket(name=KIND_CONTENT_TYPE[kind].value, count=count))
        return buckets

    async def _time_ranges(self, kinds: Sequence[ItemType], predicate: ContentPredicate) -> list[FacetBucket]:
        counts: dict[str, int] = {}
        if ItemType.QUESTION in kinds:
            counts = dict(
                await self._repository.facet(ItemType.QUESTION, FacetDimension.TIME_RANGE, predicate)
            )
        return [FacetBucket(name=bucket, count=counts.get(bucket, 0)) for bucket in TIME_BUCKETS]

# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Bounded, concurrent reads across content kinds."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from asvab_search import config
from asvab_search.search.items import ContentDocument, normalize
from asvab_search.search.models import CONTENT_TYPE_KINDS, ContentType, ItemType
from asvab_search.search.query_builder import ContentPredicate
from asvab_search.search.repository import ContentRepository

logger = logging.getLogger("asvab_search.search.retriever")


class MultiContentRetriever:
    """Reads each selected kind in parallel and normalizes the union.

    Any read failure propagates; a partial result set is never returned.
    """

    def __init__(self, repository: ContentRepository, cap: Optional[int] = None):
        self._repository = repository
        self._cap = cap or config.RETRIEVAL_CAP

    async def retrieve(
        self,
        predicate: ContentPredicate,
        content_type: ContentType = ContentType.ALL,
        limits: Optional[dict[ItemType, int]] = None,
    ) -> list[ContentDocument]:
        kinds = CONTENT_TYPE_KINDS[content_type]
        if limits is not None:
            kinds = tuple(k for k in kinds if k in limits)

        tasks = [
            self._repository.find(kind, predicate, (limits or {}).get(kind, self._cap))
            for kind in kinds
        ]
        per_kind = await asyncio.gather(*tasks)

        documents: list[ContentDocument] = []
        for kind, items in zip(kinds, per_kind):
            logger.debug("Retrieved %d %s records", len(items), kind.value)
            documents.extend(normalize(item) for item in items)
        return documents

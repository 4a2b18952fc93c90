# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Service Wiring.

Builds the pool, repository and every search component once; shared by
the API lifespan and the CLI.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from asvab_search import config
from asvab_search.connection_pool import ConnectionPool
from asvab_search.search.analytics import SearchAnalyticsRecorder
from asvab_search.search.engine import AdvancedSearchEngine, SemanticSearchEngine
from asvab_search.search.filters import ContentFilterService
from asvab_search.search.repository import SqliteContentRepository
from asvab_search.search.suggestions import SuggestionGenerator

logger = logging.getLogger("asvab_search.services")


@dataclass
class SearchServices:
    pool: ConnectionPool
    repository: SqliteContentRepository
    analytics: SearchAnalyticsRecorder
    suggestions: SuggestionGenerator
    advanced: AdvancedSearchEngine
    semantic: SemanticSearchEngine
    filters: ContentFilterService

    @classmethod
    async def create(cls, db_path: Optional[str] = None) -> SearchServices:
        db_path = db_path or config.DB_PATH
        pool = ConnectionPool(
            db_path, min_connections=config.POOL_MIN_SIZE, max_connections=config.POOL_MAX_SIZE
        )
        await pool.open()

        repository = SqliteContentRepository(pool)
        analytics = SearchAnalyticsRecorder(pool, repository)
        suggestions = SuggestionGenerator(analytics)
        logger.info("Search services ready on %s", db_path)
        return cls(
            pool=pool,
            repository=repository,
            analytics=analytics,
            suggestions=suggestions,
            advanced=AdvancedSearchEngine(repository, suggestions),
            semantic=SemanticSearchEngine(repository, suggestions),
            filters=ContentFilterService(pool, repository),
        )

    async def close(self) -> None:
        await self.pool.close()


@asynccontextmanager
async def open_services(db_path: Optional[str] = None) -> AsyncIterator[SearchServices]:
    services = await SearchServices.create(db_path)
    try:
        yield services
    finally:
        await services.close()

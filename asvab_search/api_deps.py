# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — API Dependencies.
Shared dependencies for FastAPI routes.
"""

from __future__ import annotations

from fastapi import Request

from asvab_search.search.analytics import SearchAnalyticsRecorder
from asvab_search.search.engine import AdvancedSearchEngine, SemanticSearchEngine
from asvab_search.search.filters import ContentFilterService
from asvab_search.search.suggestions import SuggestionGenerator


def get_advanced_engine(request: Request) -> AdvancedSearchEngine:
    return request.app.state.services.advanced


def get_semantic_engine(request: Request) -> SemanticSearchEngine:
    return request.app.state.services.semantic


def get_suggestions(request: Request) -> SuggestionGenerator:
    return request.app.state.services.suggestions


def get_analytics(request: Request) -> SearchAnalyticsRecorder:
    """Inject the analytics recorder from app state."""
    return request.app.state.services.analytics


def get_filter_service(request: Request) -> ContentFilterService:
    return request.app.state.services.filters

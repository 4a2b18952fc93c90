# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Search Router.
"""

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query

from asvab_search import config
from asvab_search.api_deps import (
    get_advanced_engine,
    get_analytics,
    get_filter_service,
    get_semantic_engine,
    get_suggestions,
)
from asvab_search.auth import AuthResult, require_permission
from asvab_search.i18n import get_trans
from asvab_search.models import (
    AdvancedSearchRequest,
    FeedbackRequest,
    FeedbackResponse,
    FilterPresetRequest,
)
from asvab_search.search.analytics import SearchAnalyticsRecorder
from asvab_search.search.engine import AdvancedSearchEngine, SemanticSearchEngine
from asvab_search.search.filters import ContentFilterService
from asvab_search.search.suggestions import SuggestionGenerator

router = APIRouter(prefix="/search", tags=["search"])
logger = logging.getLogger("uvicorn.error")


def _preset_to_dict(preset: dict[str, Any]) -> dict[str, Any]:
    return {**preset, "filters": preset["filters"].to_dict()}


# ─── Search ──────────────────────────────────────────────────────────


@router.post("/advanced")
async def advanced_search(
    req: AdvancedSearchRequest,
    background_tasks: BackgroundTasks,
    auth: AuthResult = Depends(require_permission("read")),
    engine: AdvancedSearchEngine = Depends(get_advanced_engine),
    analytics: SearchAnalyticsRecorder = Depends(get_analytics),
) -> dict:
    """Multi-content search with facets, suggestions and personalization."""
    result = await engine.search(req.to_query(auth.user_id))
    # Runs after the response is sent; failures never reach the caller.
    background_tasks.add_task(analytics.record_search, auth.user_id, req.query, result.total_count)
    return result.to_dict()


@router.get("/semantic")
async def semantic_search(
    query: str = Query(..., min_length=1, max_length=1024),
    category: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, description="Clamped to 50"),
    auth: AuthResult = Depends(require_permission("read")),
    engine: SemanticSearchEngine = Depends(get_semantic_engine),
) -> list[dict]:
    results = await engine.search(query, user_id=auth.user_id, category=category, limit=limit)
    return [r.to_dict() for r in results]


@router.get("/similar/{item_id}")
async def similar_content(
    item_id: str,
    limit: int = Query(10, ge=1, description="Clamped to 20"),
    auth: AuthResult = Depends(require_permission("read")),
    engine: SemanticSearchEngine = Depends(get_semantic_engine),
) -> list[dict]:
    """Items related to *item_id* by category, wording and concepts."""
    results = await engine.similar(item_id, limit=limit)
    return [r.to_dict() for r in results]


# ─── Suggestions ─────────────────────────────────────────────────────


@router.get("/suggestions")
async def search_suggestions(
    query: str = Query("", max_length=256),
    suggestions: SuggestionGenerator = Depends(get_suggestions),
) -> dict:
    return {"suggestions": await suggestions.suggest(query)}


@router.get("/suggestions/semantic")
async def semantic_suggestions(
    query: str = Query("", max_length=256),
    engine: SemanticSearchEngine = Depends(get_semantic_engine),
) -> dict:
    return {"suggestions": await engine.suggestions(query)}


@router.get("/popular")
async def popular_searches(
    limit: int = Query(10, ge=1, le=50),
    analytics: SearchAnalyticsRecorder = Depends(get_analytics),
) -> list[dict]:
    """Most frequent queries over the last 30 days."""
    return await analytics.popular_searches(limit=limit)


# ─── History & Analytics ─────────────────────────────────────────────


@router.get("/history")
async def search_history(
    limit: int = Query(config.HISTORY_DEFAULT_LIMIT, ge=1, le=100),
    auth: AuthResult = Depends(require_permission("read")),
    analytics: SearchAnalyticsRecorder = Depends(get_analytics),
) -> list[dict]:
    return await analytics.user_history(auth.user_id, limit=limit)


@router.get("/analytics")
async def user_search_analytics(
    days: int = Query(config.ANALYTICS_WINDOW_DAYS, ge=1, le=365),
    auth: AuthResult = Depends(require_permission("read")),
    analytics: SearchAnalyticsRecorder = Depends(get_analytics),
) -> dict:
    return await analytics.user_analytics(auth.user_id, days=days)


@router.post("/feedback", response_model=FeedbackResponse)
async def search_feedback(
    req: FeedbackRequest,
    auth: AuthResult = Depends(require_permission("write")),
    analytics: SearchAnalyticsRecorder = Depends(get_analytics),
    accept_language: str = Header("en", alias="Accept-Language"),
) -> FeedbackResponse:
    await analytics.record_feedback(
        auth.user_id,
        req.query,
        req.result_id,
        req.rating,
        req.was_helpful,
        feedback=req.feedback,
    )
    return FeedbackResponse(success=True, message=get_trans("info_feedback_recorded", accept_language))


@router.get("/trends")
async def search_trends(
    days: int = Query(config.ANALYTICS_WINDOW_DAYS, ge=1, le=365),
    auth: AuthResult = Depends(require_permission("admin")),
    analytics: SearchAnalyticsRecorder = Depends(get_analytics),
) -> dict:
    """Global trending queries and daily volume (admin only)."""
    return await analytics.global_trends(days=days)


@router.get("/quality")
async def search_quality(
    days: int = Query(config.ANALYTICS_WINDOW_DAYS, ge=1, le=365),
    auth: AuthResult = Depends(require_permission("admin")),
    analytics: SearchAnalyticsRecorder = Depends(get_analytics),
) -> dict:
    """Feedback ratings and improvement opportunities (admin only)."""
    return await analytics.quality_metrics(days=days)


# ─── Filters ─────────────────────────────────────────────────────────


@router.post("/presets")
async def save_filter_preset(
    req: FilterPresetRequest,
    auth: AuthResult = Depends(require_permission("write")),
    service: ContentFilterService = Depends(get_filter_service),
) -> dict:
    preset = await service.save_preset(auth.user_id, req.name.strip(), req.filters.to_filters())
    logger.info("Preset '%s' saved by key '%s'", preset["name"], auth.key_name)
    return _preset_to_dict(preset)


@router.get("/presets")
async def list_filter_presets(
    auth: AuthResult = Depends(require_permission("read")),
    service: ContentFilterService = Depends(get_filter_service),
) -> list[dict]:
    return [_preset_to_dict(p) for p in await service.list_presets(auth.user_id)]


@router.get("/filters/personalized")
async def personalized_filters(
    auth: AuthResult = Depends(require_permission("read")),
    service: ContentFilterService = Depends(get_filter_service),
) -> dict:
    """Filters targeting the caller's weakest categories."""
    filters = await service.personalized_filters(auth.user_id)
    return filters.to_dict()


@router.get("/filters/available")
async def available_filters(
    auth: AuthResult = Depends(require_permission("read")),
    service: ContentFilterService = Depends(get_filter_service),
) -> dict:
    return await service.available_filters()

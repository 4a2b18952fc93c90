# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Custom Exceptions.

Typed error hierarchy so internal database details never leak
through the API boundary.
"""


class SearchError(Exception):
    """Base exception for all search errors."""

    message = "Search error"
    i18n_key = "error_unexpected"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class SearchOperationFailed(SearchError):
    """Raised when the multi-content search itself cannot complete."""

    message = "Search operation failed"
    i18n_key = "error_search_failed"


class SemanticSearchFailed(SearchError):
    message = "Semantic search operation failed"
    i18n_key = "error_semantic_search_failed"


class SimilarContentFailed(SearchError):
    message = "Similar content search failed"
    i18n_key = "error_similar_failed"


class FeedbackRecordingFailed(SearchError):
    """Raised when explicit user feedback cannot be persisted."""

    message = "Failed to record search feedback"
    i18n_key = "error_feedback_failed"


class PresetSaveFailed(SearchError):
    message = "Failed to save filter preset"
    i18n_key = "error_preset_failed"


class ItemNotFound(SearchError):
    """Raised when a content item is not found."""

    message = "Source item not found"
    i18n_key = "error_item_not_found"

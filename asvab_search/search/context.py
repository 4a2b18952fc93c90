# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Learner profile derived from recent quiz activity."""

from __future__ import annotations

import logging
import sqlite3
from collections import Counter
from typing import Optional

from asvab_search import config
from asvab_search.metrics import record_soft_failure
from asvab_search.search.models import UserContext
from asvab_search.search.repository import ContentRepository

logger = logging.getLogger("asvab_search.search.context")

TOP_CATEGORIES = 3
TOP_DIFFICULTIES = 2


async def load_user_context(
    repository: ContentRepository,
    user_id: Optional[str],
    quizzes: Optional[int] = None,
) -> Optional[UserContext]:
    """Most frequent categories and difficulties over the last N quizzes.

    Returns None for anonymous callers or when the profile can't be read.
    """
    if not user_id:
        return None
    try:
        answers = await repository.recent_quiz_answers(
            user_id, quizzes or config.PERSONALIZATION_QUIZZES
        )
        branch = await repository.selected_branch(user_id)
    except (sqlite3.Error, OSError) as e:
        logger.warning("Failed to load user context for %s: %s", user_id, e)
        record_soft_failure("user_context")
        return None

    categories = Counter(a.category for a in answers if a.category)
    difficulties = Counter(a.difficulty for a in answers if a.difficulty)
    return UserContext(
        preferred_categories=tuple(c for c, _ in categories.most_common(TOP_CATEGORIES)),
        preferred_difficulties=tuple(d for d, _ in difficulties.most_common(TOP_DIFFICULTIES)),
        branch=branch,
    )

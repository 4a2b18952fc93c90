# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Configuration.
Shared settings read from the environment.
"""

import os
from pathlib import Path

# Base Paths
DATA_DIR = Path(os.environ.get("ASVAB_SEARCH_HOME", str(Path.home() / ".asvab_search")))

# Database Configuration
DEFAULT_DB_PATH = DATA_DIR / "asvab.db"
DB_PATH = os.environ.get("ASVAB_SEARCH_DB", str(DEFAULT_DB_PATH))
POOL_MIN_SIZE = int(os.environ.get("ASVAB_SEARCH_POOL_MIN", "2"))
POOL_MAX_SIZE = int(os.environ.get("ASVAB_SEARCH_POOL_MAX", "10"))

# Security Configuration
_DEFAULT_ORIGINS = "http://localhost:3000,http://localhost:19006"


def _origins() -> list[str]:
    raw = os.environ.get("ASVAB_SEARCH_ALLOWED_ORIGINS", _DEFAULT_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


ALLOWED_ORIGINS = _origins()

# Rate Limiting
RATE_LIMIT = int(os.environ.get("ASVAB_SEARCH_RATE_LIMIT", "300"))
RATE_WINDOW = int(os.environ.get("ASVAB_SEARCH_RATE_WINDOW", "60"))

# ─── Search Limits ───────────────────────────────────────────────────
RETRIEVAL_CAP = int(os.environ.get("ASVAB_SEARCH_RETRIEVAL_CAP", "1000"))
ADVANCED_MAX_LIMIT = 100
SEMANTIC_MAX_LIMIT = 50
SIMILAR_MAX_LIMIT = 20
SUGGESTION_CAP = 8
HISTORY_DEFAULT_LIMIT = 20

# ─── Analytics ───────────────────────────────────────────────────────
ANALYTICS_WINDOW_DAYS = int(os.environ.get("ASVAB_SEARCH_ANALYTICS_DAYS", "30"))
PERSONALIZATION_QUIZZES = int(os.environ.get("ASVAB_SEARCH_PERSONALIZATION_QUIZZES", "20"))


def reload() -> None:
    """Re-read every setting from the environment."""
    global DATA_DIR, DEFAULT_DB_PATH, DB_PATH, POOL_MIN_SIZE, POOL_MAX_SIZE
    global ALLOWED_ORIGINS, RATE_LIMIT, RATE_WINDOW, RETRIEVAL_CAP
    global ANALYTICS_WINDOW_DAYS, PERSONALIZATION_QUIZZES

    DATA_DIR = Path(os.environ.get("ASVAB_SEARCH_HOME", str(Path.home() / ".asvab_search")))
    DEFAULT_DB_PATH = DATA_DIR / "asvab.db"
    DB_PATH = os.environ.get("ASVAB_SEARCH_DB", str(DEFAULT_DB_PATH))
    POOL_MIN_SIZE = int(os.environ.get("ASVAB_SEARCH_POOL_MIN", "2"))
    POOL_MAX_SIZE = int(os.environ.get("ASVAB_SEARCH_POOL_MAX", "10"))
    ALLOWED_ORIGINS = _origins()
    RATE_LIMIT = int(os.environ.get("ASVAB_SEARCH_RATE_LIMIT", "300"))
    RATE_WINDOW = int(os.environ.get("ASVAB_SEARCH_RATE_WINDOW", "60"))
    RETRIEVAL_CAP = int(os.environ.get("ASVAB_SEARCH_RETRIEVAL_CAP", "1000"))
    ANALYTICS_WINDOW_DAYS = int(os.environ.get("ASVAB_SEARCH_ANALYTICS_DAYS", "30"))
    PERSONALIZATION_QUIZZES = int(os.environ.get("ASVAB_SEARCH_PERSONALIZATION_QUIZZES", "20"))


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)

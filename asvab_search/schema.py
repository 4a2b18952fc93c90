# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — SQLite Schema Definitions.

Content tables are owned by the content service; the search subsystem
only reads them. The search_* and filter_presets tables are append-only
and owned here.
"""

SCHEMA_VERSION = "1.0.0"

# ─── Content ─────────────────────────────────────────────────────────
CREATE_QUESTIONS = """
CREATE TABLE IF NOT EXISTS questions (
    id              TEXT PRIMARY KEY,
    content         TEXT NOT NULL,
    explanation     TEXT,
    category        TEXT NOT NULL,
    difficulty      TEXT NOT NULL DEFAULT 'MEDIUM',
    tags            TEXT NOT NULL DEFAULT '[]',
    estimated_time  INTEGER,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_questions_category ON questions(category);
CREATE INDEX IF NOT EXISTS idx_questions_difficulty ON questions(difficulty);
"""

CREATE_FLASHCARDS = """
CREATE TABLE IF NOT EXISTS flashcards (
    id              TEXT PRIMARY KEY,
    front           TEXT NOT NULL,
    back            TEXT NOT NULL,
    category        TEXT NOT NULL,
    difficulty      TEXT NOT NULL DEFAULT 'MEDIUM',
    tags            TEXT NOT NULL DEFAULT '[]',
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_flashcards_category ON flashcards(category);

CREATE TABLE IF NOT EXISTS flashcard_reviews (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    flashcard_id    TEXT NOT NULL REFERENCES flashcards(id),
    user_id         TEXT NOT NULL,
    rating          INTEGER NOT NULL DEFAULT 3,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_reviews_flashcard ON flashcard_reviews(flashcard_id);
"""

CREATE_MILITARY_JOBS = """
CREATE TABLE IF NOT EXISTS military_jobs (
    id              TEXT PRIMARY KEY,
    mos_code        TEXT NOT NULL,
    title           TEXT NOT NULL,
    description     TEXT,
    branch          TEXT NOT NULL,
    min_afqt_score  INTEGER,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_jobs_branch ON military_jobs(branch);
"""

CREATE_STUDY_GROUPS = """
CREATE TABLE IF NOT EXISTS study_groups (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    branch          TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

CREATE TABLE IF NOT EXISTS study_group_members (
    group_id        TEXT NOT NULL REFERENCES study_groups(id),
    user_id         TEXT NOT NULL,
    joined_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    PRIMARY KEY (group_id, user_id)
);
"""

# ─── Learner Activity ────────────────────────────────────────────────
CREATE_ACTIVITY = """
CREATE TABLE IF NOT EXISTS users (
    id               TEXT PRIMARY KEY,
    selected_branch  TEXT
);

CREATE TABLE IF NOT EXISTS quizzes (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    category        TEXT,
    completed_at    TEXT
);
CREATE INDEX IF NOT EXISTS idx_quizzes_user ON quizzes(user_id, completed_at);

CREATE TABLE IF NOT EXISTS quiz_questions (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    quiz_id         TEXT NOT NULL REFERENCES quizzes(id),
    question_id     TEXT NOT NULL,
    category        TEXT,
    difficulty      TEXT,
    is_correct      INTEGER NOT NULL DEFAULT 0,
    time_spent      INTEGER
);
CREATE INDEX IF NOT EXISTS idx_qq_question ON quiz_questions(question_id);
CREATE INDEX IF NOT EXISTS idx_qq_quiz ON quiz_questions(quiz_id);

CREATE TABLE IF NOT EXISTS bookmarks (
    user_id         TEXT NOT NULL,
    item_id         TEXT NOT NULL,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    PRIMARY KEY (user_id, item_id)
);
"""

# ─── Search-owned (append-only) ──────────────────────────────────────
CREATE_SEARCH_HISTORY = """
CREATE TABLE IF NOT EXISTS search_history (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL,
    query           TEXT NOT NULL,
    result_count    INTEGER NOT NULL DEFAULT 0,
    searched_at     TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sh_user ON search_history(user_id, searched_at);
CREATE INDEX IF NOT EXISTS idx_sh_searched ON search_history(searched_at);
"""

CREATE_SEARCH_FEEDBACK = """
CREATE TABLE IF NOT EXISTS search_feedback (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL,
    query           TEXT NOT NULL,
    result_id       TEXT NOT NULL,
    rating          INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
    feedback        TEXT,
    was_helpful     INTEGER NOT NULL,
    created_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sf_created ON search_feedback(created_at);
"""

CREATE_FILTER_PRESETS = """
CREATE TABLE IF NOT EXISTS filter_presets (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT NOT NULL,
    name            TEXT NOT NULL,
    filters         TEXT NOT NULL,
    created_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_fp_user ON filter_presets(user_id);
"""

ALL_SCHEMA = [
    CREATE_QUESTIONS,
    CREATE_FLASHCARDS,
    CREATE_MILITARY_JOBS,
    CREATE_STUDY_GROUPS,
    CREATE_ACTIVITY,
    CREATE_SEARCH_HISTORY,
    CREATE_SEARCH_FEEDBACK,
    CREATE_FILTER_PRESETS,
]

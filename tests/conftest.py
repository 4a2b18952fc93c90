import sqlite3

import pytest
import pytest_asyncio

from asvab_search import config
from asvab_search.metrics import metrics
from asvab_search.services import SearchServices

# Small corpus shared by the engine, filter and API tests.
# q4 is inactive; user-1 has one completed quiz, two bookmarks and a branch.
SEED_SQL = """
INSERT INTO questions (id, content, explanation, category, difficulty, tags, estimated_time, is_active, created_at, updated_at) VALUES
    ('q1', 'Basic math problem: what is 2 + 2?', 'Add the numbers.', 'MATHEMATICS_KNOWLEDGE', 'EASY', '["math", "arithmetic"]', 45, 1, '2024-01-01T00:00:00.000Z', '2024-01-01T00:00:00.000Z'),
    ('q2', 'History fact about early America', NULL, 'PARAGRAPH_COMPREHENSION', 'MEDIUM', '["reading"]', 120, 1, '2024-02-01T00:00:00.000Z', '2024-02-01T00:00:00.000Z'),
    ('q3', 'Solve the algebra equation 3x = 12', 'Divide both sides by 3.', 'MATHEMATICS_KNOWLEDGE', 'HARD', '["algebra", "equations"]', 400, 1, '2024-03-01T00:00:00.000Z', '2024-03-01T00:00:00.000Z'),
    ('q4', 'Inactive geometry question about math', NULL, 'MATHEMATICS_KNOWLEDGE', 'EASY', '[]', 30, 0, '2024-03-05T00:00:00.000Z', '2024-03-05T00:00:00.000Z');

INSERT INTO flashcards (id, front, back, category, difficulty, tags, is_active, created_at, updated_at) VALUES
    ('f1', 'Vocabulary: abate', 'To lessen in intensity', 'WORD_KNOWLEDGE', 'EASY', '["vocabulary"]', 1, '2024-01-15T00:00:00.000Z', '2024-01-15T00:00:00.000Z'),
    ('f2', 'Fractions refresher', 'A fraction represents part of a whole in math', 'ARITHMETIC_REASONING', 'MEDIUM', '["fractions", "math"]', 1, '2024-02-15T00:00:00.000Z', '2024-02-15T00:00:00.000Z');

INSERT INTO flashcard_reviews (flashcard_id, user_id, rating) VALUES
    ('f1', 'user-1', 4), ('f1', 'user-2', 3), ('f1', 'user-3', 5);

INSERT INTO military_jobs (id, mos_code, title, description, branch, min_afqt_score, is_active, created_at, updated_at) VALUES
    ('j1', '11B', 'Infantryman', 'Army combat infantry operations', 'ARMY', 31, 1, '2024-01-10T00:00:00.000Z', '2024-01-10T00:00:00.000Z'),
    ('j2', '35F', 'Intelligence Analyst', 'Analyze military intelligence data', 'ARMY', 55, 1, '2024-01-11T00:00:00.000Z', '2024-01-11T00:00:00.000Z'),
    ('j3', 'AO', 'Aviation Ordnanceman', 'Handle naval aviation weapons', 'NAVY', 35, 1, '2024-01-12T00:00:00.000Z', '2024-01-12T00:00:00.000Z');

INSERT INTO study_groups (id, name, description, branch, is_active, created_at, updated_at) VALUES
    ('g1', 'Math Study Squad', 'Weekly math practice', 'ARMY', 1, '2024-01-20T00:00:00.000Z', '2024-01-20T00:00:00.000Z');

INSERT INTO study_group_members (group_id, user_id) VALUES ('g1', 'user-1'), ('g1', 'user-2');

INSERT INTO users (id, selected_branch) VALUES ('user-1', 'ARMY');

INSERT INTO quizzes (id, user_id, category, completed_at) VALUES
    ('quiz-1', 'user-1', 'MATHEMATICS_KNOWLEDGE', strftime('%Y-%m-%dT%H:%M:%fZ', 'now'));

INSERT INTO quiz_questions (quiz_id, question_id, category, difficulty, is_correct, time_spent) VALUES
    ('quiz-1', 'q1', 'MATHEMATICS_KNOWLEDGE', 'EASY', 1, 30),
    ('quiz-1', 'q1', 'MATHEMATICS_KNOWLEDGE', 'EASY', 0, 50),
    ('quiz-1', 'q3', 'MATHEMATICS_KNOWLEDGE', 'HARD', 0, 100);

INSERT INTO bookmarks (user_id, item_id) VALUES ('user-1', 'q3'), ('user-1', 'f1');
"""


@pytest.fixture(autouse=True)
def reset_search_state():
    """Reset global state and config between every test."""
    import asvab_search.auth

    asvab_search.auth._auth_manager = None
    metrics.reset()
    config.reload()

    yield

    asvab_search.auth._auth_manager = None
    config.reload()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "search.db")


@pytest_asyncio.fixture
async def services(db_path):
    """Fully wired services over an empty schema."""
    svc = await SearchServices.create(db_path)
    yield svc
    await svc.close()


@pytest_asyncio.fixture
async def seeded(services):
    """Services over the shared sample corpus."""
    async with services.pool.acquire() as conn:
        await conn.executescript(SEED_SQL)
        await conn.commit()
    return services


@pytest.fixture
def seed_db():
    """Seed a database file synchronously (for the API and CLI tests)."""

    def _seed(path: str) -> None:
        conn = sqlite3.connect(path)
        try:
            conn.executescript(SEED_SQL)
            conn.commit()
        finally:
            conn.close()

    return _seed


@pytest.fixture
def row_count():
    async def _count(services, table: str) -> int:
        async with services.pool.acquire() as conn:
            async with conn.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
                row = await cursor.fetchone()
        return row[0]

    return _count

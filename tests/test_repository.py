"""
ASVAB Search — Content Repository Tests.

Predicate translation per content kind against the sample corpus.
"""

import inspect

import pytest

from asvab_search.search.items import Flashcard, MilitaryJob, Question
from asvab_search.search.models import ItemType
from asvab_search.search.query_builder import ContentPredicate
from asvab_search.search.repository import (
    ContentRepository,
    FacetDimension,
    SqliteContentRepository,
)
from asvab_search.temporal import days_ago_iso


@pytest.fixture
def repo(seeded):
    return seeded.repository


def ids(items):
    return [i.id for i in items]


@pytest.mark.asyncio
class TestFind:
    async def test_protocol_conformance(self, repo):
        assert isinstance(repo, SqliteContentRepository)
        assert isinstance(repo, ContentRepository)

    async def test_bookmarked_ids_item_filter_is_optional(self, repo):
        for cls in (ContentRepository, SqliteContentRepository):
            param = inspect.signature(cls.bookmarked_ids).parameters["item_ids"]
            assert param.default == ()

    async def test_active_only_newest_first(self, repo):
        items = await repo.find(ItemType.QUESTION, ContentPredicate(), 1000)
        assert ids(items) == ["q3", "q2", "q1"]
        assert all(isinstance(i, Question) for i in items)

    async def test_cap(self, repo):
        assert len(await repo.find(ItemType.QUESTION, ContentPredicate(), 2)) == 2

    async def test_popularity_counts(self, repo):
        questions = {q.id: q for q in await repo.find(ItemType.QUESTION, ContentPredicate(), 10)}
        assert questions["q1"].attempt_count == 2
        assert questions["q2"].attempt_count == 0
        flashcards = {f.id: f for f in await repo.find(ItemType.FLASHCARD, ContentPredicate(), 10)}
        assert flashcards["f1"].review_count == 3

    async def test_text_is_case_insensitive_substring(self, repo):
        items = await repo.find(ItemType.QUESTION, ContentPredicate(text_terms=("MATH",)), 10)
        assert ids(items) == ["q1"]

    async def test_text_matches_explanation(self, repo):
        items = await repo.find(ItemType.QUESTION, ContentPredicate(text_terms=("divide",)), 10)
        assert ids(items) == ["q3"]

    async def test_text_terms_are_ored(self, repo):
        predicate = ContentPredicate(text_terms=("algebra", "history"))
        items = await repo.find(ItemType.QUESTION, predicate, 10)
        assert set(ids(items)) == {"q2", "q3"}

    async def test_like_wildcards_are_literal(self, repo):
        assert await repo.find(ItemType.QUESTION, ContentPredicate(text_terms=("%",)), 10) == []
        assert await repo.find(ItemType.QUESTION, ContentPredicate(text_terms=("_",)), 10) == []

    async def test_job_code_is_searchable(self, repo):
        items = await repo.find(ItemType.MILITARY_JOB, ContentPredicate(text_terms=("11b",)), 10)
        assert ids(items) == ["j1"]
        assert isinstance(items[0], MilitaryJob)

    async def test_tag_membership(self, repo):
        items = await repo.find(ItemType.QUESTION, ContentPredicate(tags=("algebra",)), 10)
        assert ids(items) == ["q3"]
        assert items[0].tags == ("algebra", "equations")

    async def test_explanation_presence(self, repo):
        without = await repo.find(ItemType.QUESTION, ContentPredicate(has_explanation=False), 10)
        assert ids(without) == ["q2"]
        with_ = await repo.find(ItemType.QUESTION, ContentPredicate(has_explanation=True), 10)
        assert set(ids(with_)) == {"q1", "q3"}

    async def test_time_range(self, repo):
        items = await repo.find(ItemType.QUESTION, ContentPredicate(time_min=60, time_max=300), 10)
        assert ids(items) == ["q2"]

    async def test_date_range(self, repo):
        predicate = ContentPredicate(created_from="2024-01-15", created_to="2024-02-28")
        assert ids(await repo.find(ItemType.QUESTION, predicate, 10)) == ["q2"]

    async def test_branch_and_score(self, repo):
        navy = await repo.find(ItemType.MILITARY_JOB, ContentPredicate(branch="NAVY"), 10)
        assert ids(navy) == ["j3"]
        strict = await repo.find(ItemType.MILITARY_JOB, ContentPredicate(score_min=50), 10)
        assert ids(strict) == ["j2"]

    async def test_irrelevant_fields_ignored_per_kind(self, repo):
        # Jobs have no category; groups have no difficulty.
        jobs = await repo.find(ItemType.MILITARY_JOB, ContentPredicate(categories=("X",)), 10)
        assert len(jobs) == 3
        groups = await repo.find(ItemType.STUDY_GROUP, ContentPredicate(difficulties=("HARD",)), 10)
        assert ids(groups) == ["g1"]

    async def test_exclude_id(self, repo):
        items = await repo.find(ItemType.QUESTION, ContentPredicate(exclude_id="q1"), 10)
        assert "q1" not in ids(items)


@pytest.mark.asyncio
class TestAggregates:
    async def test_count(self, repo):
        assert await repo.count(ItemType.FLASHCARD, ContentPredicate()) == 2
        assert await repo.count(ItemType.QUESTION, ContentPredicate(text_terms=("math",))) == 1

    async def test_category_facet(self, repo):
        counts = await repo.facet(ItemType.QUESTION, FacetDimension.CATEGORY, ContentPredicate())
        assert counts == [("MATHEMATICS_KNOWLEDGE", 2), ("PARAGRAPH_COMPREHENSION", 1)]

    async def test_unsupported_dimension_is_empty(self, repo):
        assert await repo.facet(ItemType.MILITARY_JOB, FacetDimension.CATEGORY, ContentPredicate()) == []

    async def test_tag_facet(self, repo):
        counts = dict(await repo.facet(ItemType.QUESTION, FacetDimension.TAGS, ContentPredicate()))
        assert counts == {"math": 1, "arithmetic": 1, "reading": 1, "algebra": 1, "equations": 1}

    async def test_time_buckets(self, repo):
        counts = dict(await repo.facet(ItemType.QUESTION, FacetDimension.TIME_RANGE, ContentPredicate()))
        assert counts == {"< 1 min": 1, "1-5 min": 1, "5+ min": 1}

    async def test_branch_facet_with_limit(self, repo):
        counts = await repo.facet(ItemType.MILITARY_JOB, FacetDimension.BRANCH, ContentPredicate(), 1)
        assert counts == [("ARMY", 2)]


@pytest.mark.asyncio
class TestLookupsAndActivity:
    async def test_get_item(self, repo):
        assert isinstance(await repo.get_item("f2"), Flashcard)
        assert await repo.get_item("g1") is None
        assert await repo.get_item("missing") is None

    async def test_bookmarks(self, repo):
        assert await repo.bookmarked_ids("user-1", ["q1", "q3"]) == {"q3"}
        assert await repo.bookmarked_ids("user-1") == {"q3", "f1"}
        assert await repo.bookmarked_ids("nobody") == set()

    async def test_question_attempts(self, repo):
        attempts = await repo.question_attempts("user-1", ["q1", "q3"])
        assert len(attempts) == 3
        assert await repo.question_attempts("user-1", []) == []

    async def test_recent_quiz_answers(self, repo):
        answers = await repo.recent_quiz_answers("user-1", 20)
        assert len(answers) == 3
        assert sum(a.is_correct for a in answers) == 1

    async def test_profile_reads(self, repo):
        assert await repo.selected_branch("user-1") == "ARMY"
        assert await repo.selected_branch("nobody") is None
        assert await repo.quiz_categories("user-1", days_ago_iso(30)) == ["MATHEMATICS_KNOWLEDGE"]

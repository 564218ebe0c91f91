"""
Test suite for the SQLAlchemy repositories.

These tests run the question, assessment and attempt repositories against
a temporary SQLite database through aiosqlite, checking child-row ordering,
the one-attempt-per-student constraint and the optimistic attempt lock.
"""

import logging
from datetime import timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from thinkpro.assessments.database_models import NotificationORM
from thinkpro.assessments.models import (
    AssessmentQuestion,
    AssessmentStatus,
    Attempt,
    AttemptStatus
)
from thinkpro.assessments.notifications import Notification, SqlNotificationSink
from thinkpro.assessments.repositories import ConcurrentModificationError, DuplicateAttemptError
from thinkpro.assessments.sql_repositories import SqlAssessmentRepository, SqlAttemptRepository
from thinkpro.database.init_db import create_all_tables, create_session_factory, get_engine_kwargs
from thinkpro.domain.questions.sql_repository import SqlQuestionRepository

from conftest import NOW


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Create a fresh SQLite schema for each test."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'thinkpro-test.db'}"
    engine = create_async_engine(url, **get_engine_kwargs(url))
    await create_all_tables(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def question_repo(session_factory, questions):
    repo = SqlQuestionRepository(session_factory)
    for question in questions:
        await repo.save(question)
    return repo


@pytest.fixture
def assessment_repo(session_factory):
    return SqlAssessmentRepository(session_factory)


@pytest.fixture
def attempt_repo(session_factory):
    return SqlAttemptRepository(session_factory)


class TestSqlQuestionRepository:
    @pytest.mark.asyncio
    async def test_round_trip_keeps_choices_in_order(self, question_repo):
        question = await question_repo.get_by_id("q-2")

        assert [c.text for c in question.choices] == ["Option 0", "Option 1", "Option 2", "Option 3"]
        assert [c.is_correct for c in question.choices] == [True, False, True, False]
        assert question.correct_answers == [0, 2]
        assert question.approved_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_find_active_approved_filters(self, question_repo):
        found = await question_repo.find_active_approved(["q-1", "q-draft", "q-retired", "q-missing"])

        assert [q.question_id for q in found] == ["q-1"]

    @pytest.mark.asyncio
    async def test_approve(self, question_repo):
        approved = await question_repo.approve("q-draft", "lead-1", NOW)

        assert approved.is_approved
        found = await question_repo.find_active_approved(["q-draft"])
        assert len(found) == 1

    @pytest.mark.asyncio
    async def test_search_by_grade(self, question_repo):
        found = await question_repo.search(grade="Grade 7")

        assert sorted(q.question_id for q in found) == ["q-1", "q-2", "q-3"]
        assert await question_repo.search(grade="Grade 2") == []


class TestSqlAssessmentRepository:
    @pytest.mark.asyncio
    async def test_round_trip(self, question_repo, assessment_repo, make_assessment):
        # Arrange
        assessment = make_assessment(questions=[
            AssessmentQuestion(question_id="q-3", order=1, marks=2),
            AssessmentQuestion(question_id="q-1", order=2, marks=1),
        ])

        # Act
        await assessment_repo.save(assessment)
        loaded = await assessment_repo.get_by_id("asmt-1")

        # Assert
        assert [q.question_id for q in loaded.questions] == ["q-3", "q-1"]
        assert loaded.total_marks == 3
        assert loaded.target_students[0].sections == ["A"]
        assert loaded.status == AssessmentStatus.PUBLISHED
        assert loaded.start_date == assessment.start_date
        assert loaded.start_date.tzinfo == timezone.utc

    @pytest.mark.asyncio
    async def test_save_replaces_child_rows(self, question_repo, assessment_repo, make_assessment):
        assessment = make_assessment()
        await assessment_repo.save(assessment)

        assessment.questions = [AssessmentQuestion(question_id="q-2", order=1, marks=4)]
        assessment.title = "Shorter"
        await assessment_repo.save(assessment)
        loaded = await assessment_repo.get_by_id("asmt-1")

        assert loaded.title == "Shorter"
        assert [(q.question_id, q.marks) for q in loaded.questions] == [("q-2", 4)]

    @pytest.mark.asyncio
    async def test_list_scopes_filters_and_counts(self, question_repo, assessment_repo, make_assessment):
        # Arrange
        for i in range(3):
            await assessment_repo.save(make_assessment(
                assessment_id=f"asmt-{i}",
                created_at=NOW + timedelta(minutes=i),
            ))
        await assessment_repo.save(make_assessment(assessment_id="asmt-other", school_id="school-2"))
        await assessment_repo.save(make_assessment(assessment_id="asmt-draft", status=AssessmentStatus.DRAFT))
        await assessment_repo.save(make_assessment(assessment_id="asmt-gone", is_active=False))

        # Act
        page, total = await assessment_repo.list(
            school_ids=["school-1"], status=AssessmentStatus.PUBLISHED, offset=0, limit=2
        )

        # Assert
        assert total == 3
        assert [a.assessment_id for a in page] == ["asmt-2", "asmt-1"]

    @pytest.mark.asyncio
    async def test_list_open(self, question_repo, assessment_repo, make_assessment):
        await assessment_repo.save(make_assessment(assessment_id="asmt-open"))
        await assessment_repo.save(make_assessment(
            assessment_id="asmt-future", start_date=NOW + timedelta(days=1), end_date=NOW + timedelta(days=2)
        ))
        await assessment_repo.save(make_assessment(assessment_id="asmt-draft", status=AssessmentStatus.DRAFT))

        open_now = await assessment_repo.list_open("school-1", NOW)

        assert [a.assessment_id for a in open_now] == ["asmt-open"]


class TestSqlAttemptRepository:
    @pytest.mark.asyncio
    async def test_create_and_load(self, question_repo, assessment_repo, attempt_repo, published_assessment):
        await assessment_repo.save(published_assessment)

        created = await attempt_repo.create(Attempt.start(published_assessment, "stu-1", NOW))
        loaded = await attempt_repo.get_for_student("asmt-1", "stu-1")

        assert created.version == 1
        assert loaded.attempt_id == created.attempt_id
        assert loaded.version == 1
        assert [a.question_id for a in loaded.answers] == ["q-1", "q-2", "q-3"]
        assert loaded.end_time == NOW + timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_second_attempt_for_same_student_is_refused(self, question_repo, assessment_repo, attempt_repo,
                                                              published_assessment, caplog):
        await assessment_repo.save(published_assessment)
        await attempt_repo.create(Attempt.start(published_assessment, "stu-1", NOW))

        with caplog.at_level(logging.WARNING, logger="thinkpro"):
            with pytest.raises(DuplicateAttemptError):
                await attempt_repo.create(Attempt.start(published_assessment, "stu-1", NOW))

        assert await attempt_repo.count_by_assessment("asmt-1") == 1
        # an expected race, not a storage failure
        records = [r for r in caplog.records if r.name.startswith("thinkpro")]
        assert any("DuplicateAttemptError" in r.getMessage() for r in records)
        assert all(r.levelno < logging.ERROR for r in records)

    @pytest.mark.asyncio
    async def test_save_bumps_version_and_stores_answers(self, question_repo, assessment_repo, attempt_repo,
                                                         published_assessment):
        await assessment_repo.save(published_assessment)
        attempt = await attempt_repo.create(Attempt.start(published_assessment, "stu-1", NOW))

        slot = attempt.find_answer("q-2")
        slot.selected_answers = [2, 0]
        slot.is_correct = True
        slot.marks_obtained = 1
        attempt.recompute_total()
        await attempt_repo.save(attempt)
        loaded = await attempt_repo.get_by_id(attempt.attempt_id)

        assert attempt.version == 2
        assert loaded.version == 2
        assert loaded.total_marks_obtained == 1
        assert loaded.find_answer("q-2").selected_answers == [2, 0]

    @pytest.mark.asyncio
    async def test_stale_save_is_refused(self, question_repo, assessment_repo, attempt_repo, published_assessment):
        # Arrange: two readers of the same version
        await assessment_repo.save(published_assessment)
        created = await attempt_repo.create(Attempt.start(published_assessment, "stu-1", NOW))
        first = await attempt_repo.get_by_id(created.attempt_id)
        second = await attempt_repo.get_by_id(created.attempt_id)

        # Act
        first.find_answer("q-1").marks_obtained = 1
        first.recompute_total()
        await attempt_repo.save(first)
        second.find_answer("q-3").marks_obtained = 1
        second.recompute_total()

        # Assert
        with pytest.raises(ConcurrentModificationError):
            await attempt_repo.save(second)
        loaded = await attempt_repo.get_by_id(created.attempt_id)
        assert loaded.find_answer("q-1").marks_obtained == 1
        assert loaded.find_answer("q-3").marks_obtained == 0

    @pytest.mark.asyncio
    async def test_list_by_student_orders_newest_first(self, question_repo, assessment_repo, attempt_repo,
                                                       make_assessment):
        # Arrange
        for assessment_id in ("asmt-a", "asmt-b", "asmt-c"):
            await assessment_repo.save(make_assessment(assessment_id=assessment_id))
        older = await attempt_repo.create(Attempt.start(make_assessment(assessment_id="asmt-a"), "stu-1", NOW))
        newer = await attempt_repo.create(Attempt.start(make_assessment(assessment_id="asmt-b"), "stu-1", NOW))
        await attempt_repo.create(Attempt.start(make_assessment(assessment_id="asmt-c"), "stu-1", NOW))
        for attempt, minutes in ((older, 5), (newer, 10)):
            attempt.status = AttemptStatus.SUBMITTED
            attempt.submitted_at = NOW + timedelta(minutes=minutes)
            await attempt_repo.save(attempt)

        # Act
        finished = await attempt_repo.list_by_student(
            "stu-1", statuses=(AttemptStatus.SUBMITTED, AttemptStatus.TIMEOUT)
        )
        everything = await attempt_repo.list_by_student("stu-1")

        # Assert
        assert [a.attempt_id for a in finished] == [newer.attempt_id, older.attempt_id]
        assert len(everything) == 3

    @pytest.mark.asyncio
    async def test_delete_removes_attempt_and_answers(self, question_repo, assessment_repo, attempt_repo,
                                                      published_assessment):
        await assessment_repo.save(published_assessment)
        attempt = await attempt_repo.create(Attempt.start(published_assessment, "stu-1", NOW))

        assert await attempt_repo.delete(attempt.attempt_id) is True
        assert await attempt_repo.get_by_id(attempt.attempt_id) is None
        assert await attempt_repo.delete(attempt.attempt_id) is False


@pytest.mark.asyncio
async def test_notification_sink_persists_record(session_factory, question_repo, assessment_repo,
                                                 published_assessment):
    await assessment_repo.save(published_assessment)
    notification = Notification.for_assessment(published_assessment, "Starts today", "mentor-1", NOW)

    await SqlNotificationSink(session_factory).notify(notification)

    async with session_factory() as session:
        rows = (await session.execute(select(NotificationORM))).scalars().all()
    assert len(rows) == 1
    assert rows[0].title == "New Assessment: Fractions checkpoint"
    assert rows[0].target_audience == [{"grade": "Grade 7", "sections": ["A"], "school": "school-1"}]

"""
Tests for the attempt state machine.

Covers start/resume, per-question answers, final submission, lazy
timeouts, the one-attempt-per-student guarantee and versioned writes.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from thinkpro.assessments.attempt_engine import AttemptEngine
from thinkpro.assessments.memory_repositories import MemoryAttemptRepository
from thinkpro.assessments.models import AssessmentQuestion, AssessmentStatus, Attempt, AttemptStatus
from thinkpro.assessments.repositories import ConcurrentModificationError
from thinkpro.common.error_handling import (
    AttemptExpiredError,
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    StateError,
    ValidationError
)

from conftest import NOW


class ConflictingAttemptRepository(MemoryAttemptRepository):
    """Fails the first ``conflicts`` saves as if another writer got there first."""

    def __init__(self, conflicts: int):
        super().__init__()
        self.conflicts = conflicts
        self.save_calls = 0

    async def save(self, attempt):
        self.save_calls += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            raise ConcurrentModificationError(attempt.attempt_id, attempt.version)
        return await super().save(attempt)


async def _start(engine, actor, assessment_id="asmt-1"):
    result = await engine.start_or_resume(assessment_id, actor)
    return result["attempt"]["id"]


class TestStartOrResume:
    @pytest.mark.asyncio
    async def test_start_creates_attempt_with_empty_slots(self, engine, student, published_assessment):
        # Act
        result = await engine.start_or_resume("asmt-1", student)

        # Assert
        attempt = result["attempt"]
        assert attempt["status"] == "in_progress"
        assert attempt["student"] == "stu-user-s1"
        assert [a["questionId"] for a in attempt["answers"]] == ["q-1", "q-2", "q-3"]
        assert all(a["selectedAnswers"] == [] for a in attempt["answers"])
        assert attempt["endTime"] == (NOW + timedelta(minutes=30)).isoformat()
        assert result["timeRemaining"] == 1800

    @pytest.mark.asyncio
    async def test_student_view_hides_answer_key(self, engine, student, published_assessment):
        result = await engine.start_or_resume("asmt-1", student)

        question = result["assessment"]["questions"][0]["question"]
        assert "correctAnswers" not in question
        assert all("isCorrect" not in choice for choice in question["answerChoices"])

    @pytest.mark.asyncio
    async def test_second_start_resumes_same_attempt(self, engine, clock, student, attempt_repository,
                                                     published_assessment):
        first = await engine.start_or_resume("asmt-1", student)
        clock.advance(minutes=5)

        second = await engine.start_or_resume("asmt-1", student)

        assert second["attempt"]["id"] == first["attempt"]["id"]
        assert second["timeRemaining"] == 1500
        assert await attempt_repository.count_by_assessment("asmt-1") == 1

    @pytest.mark.asyncio
    async def test_unknown_assessment_is_not_found(self, engine, student):
        with pytest.raises(NotFoundError) as exc_info:
            await engine.start_or_resume("missing", student)

        assert exc_info.value.code == ErrorCode.ASSESSMENT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unpublished_assessment_is_not_available(self, engine, student, make_assessment,
                                                           assessment_repository):
        await assessment_repository.save(make_assessment(status=AssessmentStatus.DRAFT))

        with pytest.raises(NotFoundError) as exc_info:
            await engine.start_or_resume("asmt-1", student)

        assert exc_info.value.code == ErrorCode.ASSESSMENT_NOT_AVAILABLE

    @pytest.mark.asyncio
    async def test_other_school_is_not_found(self, engine, student_other_school, published_assessment):
        with pytest.raises(NotFoundError):
            await engine.start_or_resume("asmt-1", student_other_school)

    @pytest.mark.asyncio
    async def test_outside_window_is_rejected(self, engine, clock, student, published_assessment):
        clock.set(published_assessment.start_date - timedelta(seconds=1))

        with pytest.raises(StateError) as exc_info:
            await engine.start_or_resume("asmt-1", student)
        assert exc_info.value.code == ErrorCode.ASSESSMENT_NOT_AVAILABLE

        clock.set(published_assessment.end_date + timedelta(seconds=1))
        with pytest.raises(StateError):
            await engine.start_or_resume("asmt-1", student)

    @pytest.mark.asyncio
    async def test_window_bounds_are_inclusive(self, engine, clock, student, published_assessment):
        clock.set(published_assessment.end_date)

        result = await engine.start_or_resume("asmt-1", student)

        assert result["attempt"]["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_ineligible_section_is_forbidden(self, engine, student_section_b, published_assessment):
        with pytest.raises(AuthorizationError) as exc_info:
            await engine.start_or_resume("asmt-1", student_section_b)

        assert exc_info.value.code == ErrorCode.NOT_ELIGIBLE

    @pytest.mark.asyncio
    async def test_student_without_section_may_start(self, engine, student_without_section, published_assessment):
        result = await engine.start_or_resume("asmt-1", student_without_section)

        assert result["attempt"]["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_staff_cannot_start(self, engine, mentor, published_assessment):
        with pytest.raises(AuthorizationError):
            await engine.start_or_resume("asmt-1", mentor)

    @pytest.mark.asyncio
    async def test_completed_attempt_cannot_be_restarted(self, engine, student, published_assessment):
        attempt_id = await _start(engine, student)
        await engine.submit(attempt_id, student)

        with pytest.raises(ConflictError) as exc_info:
            await engine.start_or_resume("asmt-1", student)

        assert exc_info.value.code == ErrorCode.ALREADY_COMPLETED

    @pytest.mark.asyncio
    async def test_timed_out_attempt_resumes_with_no_time_left(self, engine, clock, student, published_assessment):
        attempt_id = await _start(engine, student)
        clock.advance(minutes=31)
        with pytest.raises(AttemptExpiredError):
            await engine.submit_answer(attempt_id, student, "q-1", [1])

        result = await engine.start_or_resume("asmt-1", student)

        assert result["attempt"]["status"] == "timeout"
        assert result["timeRemaining"] == 0

    @pytest.mark.asyncio
    async def test_concurrent_start_returns_existing_attempt(self, engine, student, attempt_repository,
                                                             published_assessment):
        # Arrange: another request created the attempt between our lookup and insert
        existing = await attempt_repository.create(
            Attempt.start(published_assessment, student.student.student_id, NOW)
        )
        lookup = AsyncMock(side_effect=[None, existing])

        # Act
        with patch.object(attempt_repository, "get_for_student", lookup):
            result = await engine.start_or_resume("asmt-1", student)

        # Assert
        assert result["attempt"]["id"] == existing.attempt_id
        assert lookup.await_count == 2
        assert await attempt_repository.count_by_assessment("asmt-1") == 1


class TestSubmitAnswer:
    @pytest.mark.asyncio
    async def test_correct_answer_reveals_key_and_marks(self, engine, student, attempt_repository,
                                                        published_assessment):
        attempt_id = await _start(engine, student)

        result = await engine.submit_answer(attempt_id, student, "q-1", [1], time_spent=12)

        assert result == {"isCorrect": True, "marksObtained": 1, "correctAnswers": [1]}
        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.total_marks_obtained == 1
        assert stored.find_answer("q-1").time_spent == 12

    @pytest.mark.asyncio
    async def test_checkbox_answer_is_order_independent(self, engine, student, published_assessment):
        attempt_id = await _start(engine, student)

        result = await engine.submit_answer(attempt_id, student, "q-2", [2, 0])

        assert result["isCorrect"] is True

    @pytest.mark.asyncio
    async def test_resubmitting_overwrites_and_recomputes_total(self, engine, student, attempt_repository,
                                                                published_assessment):
        attempt_id = await _start(engine, student)
        await engine.submit_answer(attempt_id, student, "q-1", [1])

        result = await engine.submit_answer(attempt_id, student, "q-1", [0])

        assert result["isCorrect"] is False
        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.total_marks_obtained == 0
        assert stored.find_answer("q-1").selected_answers == [0]

    @pytest.mark.asyncio
    async def test_configured_marks_are_awarded(self, engine, student, make_assessment, assessment_repository):
        assessment = make_assessment()
        assessment.questions[1].marks = 5
        await assessment_repository.save(assessment)
        attempt_id = await _start(engine, student)

        result = await engine.submit_answer(attempt_id, student, "q-2", [0, 2])

        assert result["marksObtained"] == 5

    @pytest.mark.asyncio
    async def test_question_outside_assessment_is_rejected(self, engine, student, attempt_repository,
                                                           published_assessment):
        attempt_id = await _start(engine, student)
        before = await attempt_repository.get_by_id(attempt_id)

        with pytest.raises(ValidationError) as exc_info:
            await engine.submit_answer(attempt_id, student, "q-draft", [0])

        assert exc_info.value.code == ErrorCode.QUESTION_NOT_IN_ASSESSMENT
        after = await attempt_repository.get_by_id(attempt_id)
        assert after.version == before.version

    @pytest.mark.asyncio
    async def test_other_students_attempt_is_not_found(self, engine, student, student_without_section,
                                                       published_assessment):
        attempt_id = await _start(engine, student)

        with pytest.raises(NotFoundError):
            await engine.submit_answer(attempt_id, student_without_section, "q-1", [1])

    @pytest.mark.asyncio
    async def test_answer_after_submit_is_rejected(self, engine, student, published_assessment):
        attempt_id = await _start(engine, student)
        await engine.submit(attempt_id, student)

        with pytest.raises(StateError):
            await engine.submit_answer(attempt_id, student, "q-1", [1])

    @pytest.mark.asyncio
    async def test_answer_at_exact_end_time_is_accepted(self, engine, clock, student, published_assessment):
        attempt_id = await _start(engine, student)
        clock.advance(minutes=30)

        result = await engine.submit_answer(attempt_id, student, "q-1", [1])

        assert result["isCorrect"] is True


class TestTimeout:
    @pytest.mark.asyncio
    async def test_late_answer_times_out_attempt(self, engine, clock, student, attempt_repository,
                                                 published_assessment):
        # Arrange
        attempt_id = await _start(engine, student)
        await engine.submit_answer(attempt_id, student, "q-1", [1])
        clock.advance(minutes=30, seconds=61)

        # Act
        with pytest.raises(AttemptExpiredError) as exc_info:
            await engine.submit_answer(attempt_id, student, "q-2", [0, 2])

        # Assert
        assert exc_info.value.code == ErrorCode.TIME_EXPIRED
        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.status == AttemptStatus.TIMEOUT
        assert stored.auto_submitted is True
        assert stored.is_submitted is False
        assert stored.find_answer("q-2").selected_answers == []
        assert stored.total_marks_obtained == 1
        assert stored.percentage == 33.33
        assert stored.grade == "D"
        assert stored.time_spent == 1800
        assert stored.submitted_at == clock.now()

    @pytest.mark.asyncio
    async def test_timed_out_attempt_rejects_further_answers(self, engine, clock, student, published_assessment):
        attempt_id = await _start(engine, student)
        clock.advance(minutes=31)
        with pytest.raises(AttemptExpiredError):
            await engine.submit_answer(attempt_id, student, "q-1", [1])

        with pytest.raises(StateError) as exc_info:
            await engine.submit_answer(attempt_id, student, "q-1", [1])

        assert not isinstance(exc_info.value, AttemptExpiredError)

    @pytest.mark.asyncio
    async def test_late_submit_times_out_attempt(self, engine, clock, student, attempt_repository,
                                                 published_assessment):
        attempt_id = await _start(engine, student)
        clock.advance(minutes=45)

        with pytest.raises(AttemptExpiredError):
            await engine.submit(attempt_id, student)

        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.status == AttemptStatus.TIMEOUT
        assert stored.is_submitted is False

    @pytest.mark.asyncio
    async def test_submit_after_timeout_is_rejected(self, engine, clock, student, published_assessment):
        attempt_id = await _start(engine, student)
        clock.advance(minutes=31)
        with pytest.raises(AttemptExpiredError):
            await engine.submit(attempt_id, student)

        with pytest.raises(StateError) as exc_info:
            await engine.submit(attempt_id, student)

        assert not isinstance(exc_info.value, AttemptExpiredError)
        assert exc_info.value.code == ErrorCode.TIME_EXPIRED


class TestSubmit:
    @pytest.mark.asyncio
    async def test_one_of_three_correct(self, engine, clock, student, attempt_repository, published_assessment):
        # Arrange
        attempt_id = await _start(engine, student)
        await engine.submit_answer(attempt_id, student, "q-1", [1])
        await engine.submit_answer(attempt_id, student, "q-2", [0])
        await engine.submit_answer(attempt_id, student, "q-3", [0])
        clock.advance(minutes=10)

        # Act
        result = await engine.submit(attempt_id, student)

        # Assert
        assert result == {
            "totalMarks": 3,
            "obtainedMarks": 1,
            "percentage": 33.33,
            "grade": "D",
            "timeSpent": 600,
        }
        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.status == AttemptStatus.SUBMITTED
        assert stored.is_submitted is True
        assert stored.auto_submitted is False
        assert stored.submitted_at == clock.now()

    @pytest.mark.asyncio
    async def test_all_correct_is_a_plus(self, engine, student, published_assessment):
        attempt_id = await _start(engine, student)
        await engine.submit_answer(attempt_id, student, "q-1", [1])
        await engine.submit_answer(attempt_id, student, "q-2", [0, 2])
        await engine.submit_answer(attempt_id, student, "q-3", [3])

        result = await engine.submit(attempt_id, student)

        assert result["percentage"] == 100.0
        assert result["grade"] == "A+"

    @pytest.mark.asyncio
    async def test_empty_submission_is_f(self, engine, student, published_assessment):
        attempt_id = await _start(engine, student)

        result = await engine.submit(attempt_id, student)

        assert result["obtainedMarks"] == 0
        assert result["grade"] == "F"

    @pytest.mark.asyncio
    async def test_double_submit_is_a_conflict(self, engine, student, published_assessment):
        attempt_id = await _start(engine, student)
        await engine.submit(attempt_id, student)

        with pytest.raises(ConflictError) as exc_info:
            await engine.submit(attempt_id, student)

        assert exc_info.value.code == ErrorCode.ALREADY_SUBMITTED

    @pytest.mark.asyncio
    async def test_legacy_completed_status_counts_as_submitted(self, engine, student, attempt_repository,
                                                               published_assessment):
        attempt_id = await _start(engine, student)
        attempt = await attempt_repository.get_by_id(attempt_id)
        attempt.status = AttemptStatus.COMPLETED
        await attempt_repository.save(attempt)

        with pytest.raises(ConflictError):
            await engine.submit(attempt_id, student)


class TestTwoQuestionAssessment:
    @pytest.fixture
    def short_assessment(self, make_assessment, assessment_repository):
        assessment = make_assessment(
            duration=1,
            questions=[
                AssessmentQuestion(question_id="q-1", order=1, marks=1),
                AssessmentQuestion(question_id="q-2", order=2, marks=2),
            ],
        )
        assessment_repository._assessments[assessment.assessment_id] = assessment
        return assessment

    @pytest.mark.asyncio
    async def test_one_right_one_wrong(self, engine, clock, student, attempt_repository, short_assessment):
        # Arrange
        assert short_assessment.total_marks == 3
        attempt_id = await _start(engine, student)

        # Act
        first = await engine.submit_answer(attempt_id, student, "q-1", [1])
        second = await engine.submit_answer(attempt_id, student, "q-2", [0])
        clock.advance(seconds=30)
        result = await engine.submit(attempt_id, student)

        # Assert
        assert (first["marksObtained"], second["marksObtained"]) == (1, 0)
        assert result["totalMarks"] == 3
        assert result["obtainedMarks"] == 1
        assert result["percentage"] == 33.33
        assert result["grade"] == "D"
        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.total_marks_obtained == 1
        assert stored.status == AttemptStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_answer_after_one_minute_times_out(self, engine, clock, student, attempt_repository,
                                                     short_assessment):
        # Arrange
        attempt_id = await _start(engine, student)
        clock.advance(seconds=61)

        # Act
        with pytest.raises(AttemptExpiredError):
            await engine.submit_answer(attempt_id, student, "q-1", [1])

        # Assert
        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.status == AttemptStatus.TIMEOUT
        assert stored.auto_submitted is True
        assert stored.total_marks_obtained == 0
        assert stored.time_spent == 60


class TestVersionedWrites:
    @pytest.mark.asyncio
    async def test_write_retries_after_concurrent_modification(self, question_repository, assessment_repository,
                                                               clock, student, published_assessment):
        attempts = ConflictingAttemptRepository(conflicts=1)
        engine = AttemptEngine(assessment_repository, attempts, question_repository, clock, write_retries=3)
        attempt_id = await _start(engine, student)

        result = await engine.submit_answer(attempt_id, student, "q-1", [1])

        assert result["isCorrect"] is True
        assert attempts.save_calls == 2
        stored = await attempts.get_by_id(attempt_id)
        assert stored.total_marks_obtained == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_conflict(self, question_repository, assessment_repository, clock,
                                                    student, published_assessment):
        attempts = ConflictingAttemptRepository(conflicts=5)
        engine = AttemptEngine(assessment_repository, attempts, question_repository, clock, write_retries=2)
        attempt_id = await _start(engine, student)

        with pytest.raises(ConflictError):
            await engine.submit_answer(attempt_id, student, "q-1", [1])

        assert attempts.save_calls == 2

    @pytest.mark.asyncio
    async def test_stale_write_is_refused(self, engine, student, attempt_repository, published_assessment):
        # Arrange: a copy read before another answer landed
        attempt_id = await _start(engine, student)
        stale = await attempt_repository.get_by_id(attempt_id)
        await engine.submit_answer(attempt_id, student, "q-1", [1])

        # Act / Assert
        stale.find_answer("q-2").marks_obtained = 1
        with pytest.raises(ConcurrentModificationError):
            await attempt_repository.save(stale)

        stored = await attempt_repository.get_by_id(attempt_id)
        assert stored.total_marks_obtained == 1
        assert stored.find_answer("q-2").marks_obtained == 0


class TestListings:
    @pytest.mark.asyncio
    async def test_available_lists_open_eligible_assessments(self, engine, clock, student, make_assessment,
                                                             assessment_repository):
        # Arrange
        await assessment_repository.save(make_assessment(
            assessment_id="asmt-late", start_date=NOW - timedelta(minutes=10)
        ))
        await assessment_repository.save(make_assessment(
            assessment_id="asmt-early", start_date=NOW - timedelta(hours=3)
        ))
        await assessment_repository.save(make_assessment(
            assessment_id="asmt-draft", status=AssessmentStatus.DRAFT
        ))
        await assessment_repository.save(make_assessment(
            assessment_id="asmt-future", start_date=NOW + timedelta(days=1), end_date=NOW + timedelta(days=2)
        ))
        await assessment_repository.save(make_assessment(
            assessment_id="asmt-deleted", is_active=False
        ))

        # Act
        available = await engine.list_available(student)

        # Assert
        assert [a["id"] for a in available] == ["asmt-early", "asmt-late"]
        assert available[0]["attemptStatus"] == "not_attempted"
        assert available[0]["hasAttempted"] is False
        assert available[0]["canRetake"] is False
        assert available[0]["questionCount"] == 3
        assert "questions" not in available[0]

    @pytest.mark.asyncio
    async def test_available_reports_attempt_status(self, engine, student, published_assessment):
        await _start(engine, student)

        available = await engine.list_available(student)

        assert available[0]["attemptStatus"] == "in_progress"
        assert available[0]["hasAttempted"] is True

    @pytest.mark.asyncio
    async def test_available_hides_other_cohorts(self, engine, student_section_b, student_grade_8,
                                                 published_assessment):
        assert await engine.list_available(student_section_b) == []
        assert await engine.list_available(student_grade_8) == []

    @pytest.mark.asyncio
    async def test_results_list_terminal_attempts_newest_first(self, engine, clock, student, make_assessment,
                                                               assessment_repository):
        # Arrange
        await assessment_repository.save(make_assessment(assessment_id="asmt-a", title="First"))
        await assessment_repository.save(make_assessment(assessment_id="asmt-b", title="Second"))
        await assessment_repository.save(make_assessment(assessment_id="asmt-c", title="Open"))
        first = await _start(engine, student, "asmt-a")
        await engine.submit(first, student)
        clock.advance(minutes=1)
        second = await _start(engine, student, "asmt-b")
        await engine.submit(second, student)
        await _start(engine, student, "asmt-c")

        # Act
        results = await engine.list_results(student)

        # Assert
        assert [r["id"] for r in results] == [second, first]
        assert results[0]["assessment"]["title"] == "Second"
        assert results[0]["assessment"]["totalMarks"] == 3

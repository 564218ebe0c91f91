"""
Attempt Engine

The per-student attempt state machine:

    in_progress -> submitted   (explicit submit)
    in_progress -> timeout     (first write after end_time)

``completed`` is accepted as a legacy synonym of ``submitted``.

Timeouts are detected lazily. There is no sweeper: every mutating call
first checks ``is_expired`` and, if the attempt's time is up, moves it to
``timeout`` (scoring what was answered), persists that, and fails the call
with AttemptExpiredError. That is the only error path that changes state.

All attempt writes are read-modify-write cycles guarded by the attempt
version; a lost race re-reads and retries a bounded number of times.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from thinkpro.assessments.eligibility import is_eligible
from thinkpro.assessments.models import (
    Assessment,
    AssessmentStatus,
    Attempt,
    AttemptStatus
)
from thinkpro.assessments.repositories import (
    AssessmentRepository,
    AttemptRepository,
    ConcurrentModificationError,
    DuplicateAttemptError
)
from thinkpro.assessments.scoring import answers_match, score
from thinkpro.common.auth.user import Actor, Capability, StudentProfile
from thinkpro.common.clock import Clock
from thinkpro.common.error_handling import (
    AttemptExpiredError,
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    StateError,
    ValidationError
)
from thinkpro.common.logger import LoggerAdapter, get_logger
from thinkpro.domain.questions.repository import QuestionRepository

logger = get_logger(__name__)

T = TypeVar("T")

RESULT_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.COMPLETED, AttemptStatus.TIMEOUT)


def is_expired(attempt: Attempt, now: datetime) -> bool:
    """Whether an in-progress attempt has run past its end time."""
    return attempt.status == AttemptStatus.IN_PROGRESS and now > attempt.end_time


def finalize_scores(attempt: Attempt, assessment: Assessment, now: datetime) -> None:
    """Fill in the derived result fields of an attempt being closed at ``now``."""
    attempt.recompute_total()
    attempt.percentage, attempt.grade = score(attempt.total_marks_obtained, assessment.total_marks)
    closed_at = min(now, attempt.end_time)
    attempt.time_spent = max(0, int((closed_at - attempt.start_time).total_seconds()))
    attempt.submitted_at = now
    attempt.updated_at = now


def apply_timeout(attempt: Attempt, assessment: Assessment, now: datetime) -> None:
    attempt.status = AttemptStatus.TIMEOUT
    attempt.auto_submitted = True
    finalize_scores(attempt, assessment, now)


class AttemptEngine:
    """
    Student-facing attempt operations.

    Args:
        assessments: Assessment definition store
        attempts: Attempt store
        questions: Question bank, read-only ground truth for correctness
        clock: Time source
        write_retries: Attempts at a versioned write before giving up
    """

    def __init__(
        self,
        assessments: AssessmentRepository,
        attempts: AttemptRepository,
        questions: QuestionRepository,
        clock: Clock,
        write_retries: int = 3
    ):
        self.assessments = assessments
        self.attempts = attempts
        self.questions = questions
        self.clock = clock
        self.write_retries = max(1, write_retries)

    # --- Helpers ---

    @staticmethod
    def _student(actor: Actor) -> StudentProfile:
        actor.require(Capability.TAKE_ASSESSMENTS, "Access denied. Student role required.")
        if actor.student is None:
            raise NotFoundError("Student not found")
        return actor.student

    async def _get_assessment(self, assessment_id: str) -> Assessment:
        assessment = await self.assessments.get_by_id(assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment not found", code=ErrorCode.ASSESSMENT_NOT_FOUND)
        return assessment

    async def _load_own_attempt(self, attempt_id: str, student: StudentProfile) -> Attempt:
        attempt = await self.attempts.get_by_id(attempt_id)
        if attempt is None or attempt.student_id != student.student_id:
            raise NotFoundError("Assessment attempt not found", code=ErrorCode.ATTEMPT_NOT_FOUND)
        return attempt

    async def _student_view(self, assessment: Assessment) -> Dict[str, Any]:
        """Assessment payload for students: question content without the answer key."""
        data = assessment.to_dict()
        questions = []
        for placement in assessment.ordered_questions:
            question = await self.questions.get_by_id(placement.question_id)
            entry = placement.to_dict()
            entry["question"] = question.to_dict(include_answers=False) if question else None
            questions.append(entry)
        data["questions"] = questions
        return data

    async def _write(
        self,
        attempt_id: str,
        student: StudentProfile,
        mutate: Callable[[Attempt, Assessment, datetime], Awaitable[T]]
    ) -> T:
        """
        Run a versioned read-modify-write cycle on an attempt.

        The expiry check runs before ``mutate``; an expired attempt is timed
        out and persisted instead, and the call fails.
        """
        for retry in range(self.write_retries):
            attempt = await self._load_own_attempt(attempt_id, student)
            assessment = await self._get_assessment(attempt.assessment_id)
            now = self.clock.now()
            log = LoggerAdapter(logger, {"attempt": attempt_id, "student": student.student_id})

            expired = is_expired(attempt, now)
            if expired:
                apply_timeout(attempt, assessment, now)
                result = None
            else:
                result = await mutate(attempt, assessment, now)

            try:
                await self.attempts.save(attempt)
            except ConcurrentModificationError:
                log.warning(f"Concurrent write detected, retrying ({retry + 1}/{self.write_retries})")
                continue

            if expired:
                log.info(
                    f"Attempt timed out with {attempt.total_marks_obtained} marks "
                    f"({attempt.percentage}%, grade {attempt.grade})"
                )
                raise AttemptExpiredError(attempt_id)
            return result

        raise ConflictError(
            "The attempt was modified concurrently, please retry",
            details={"attempt_id": attempt_id}
        )

    # --- Operations ---

    async def list_available(self, actor: Actor) -> List[Dict[str, Any]]:
        """
        List open assessments the student is eligible for, annotated with attempt status.

        Returns:
            Assessment summaries sorted by start date ascending
        """
        student = self._student(actor)
        now = self.clock.now()

        open_assessments = await self.assessments.list_open(student.school_id, now)
        own_attempts = {
            a.assessment_id: a for a in await self.attempts.list_by_student(student.student_id)
        }

        available = []
        for assessment in open_assessments:
            if not is_eligible(student, assessment):
                continue
            attempt = own_attempts.get(assessment.assessment_id)
            data = assessment.to_dict()
            data.pop("questions")
            data["questionCount"] = len(assessment.questions)
            data["attemptStatus"] = attempt.status.value if attempt else "not_attempted"
            data["hasAttempted"] = attempt is not None
            data["canRetake"] = False
            available.append(data)

        available.sort(key=lambda d: d["startDate"])
        return available

    async def start_or_resume(self, assessment_id: str, actor: Actor) -> Dict[str, Any]:
        """
        Start an attempt, or resume the student's existing one.

        Returns:
            ``{assessment, attempt, timeRemaining}`` where the assessment carries
            no answer key

        Raises:
            NotFoundError: Unknown, inactive, unpublished or other-school assessment
            StateError: Outside the assessment window
            AuthorizationError: Student outside the target cohorts
            ConflictError: The student already finished this assessment
        """
        student = self._student(actor)
        assessment = await self.assessments.get_by_id(assessment_id)
        if (assessment is None or not assessment.is_active
                or assessment.school_id != student.school_id):
            raise NotFoundError("Assessment not found", code=ErrorCode.ASSESSMENT_NOT_FOUND)
        if assessment.status != AssessmentStatus.PUBLISHED:
            raise NotFoundError("Assessment not available", code=ErrorCode.ASSESSMENT_NOT_AVAILABLE)

        now = self.clock.now()
        if not assessment.is_open(now):
            raise StateError(
                "Assessment is not currently available",
                code=ErrorCode.ASSESSMENT_NOT_AVAILABLE,
                details={
                    "startDate": assessment.start_date.isoformat(),
                    "endDate": assessment.end_date.isoformat(),
                }
            )
        if not is_eligible(student, assessment):
            raise AuthorizationError("You are not eligible for this assessment", code=ErrorCode.NOT_ELIGIBLE)

        attempt = await self.attempts.get_for_student(assessment_id, student.student_id)
        if attempt is None:
            try:
                attempt = await self.attempts.create(Attempt.start(assessment, student.student_id, now))
                logger.info(
                    f"Attempt {attempt.attempt_id} started by student {student.student_id} "
                    f"on assessment {assessment_id}"
                )
            except DuplicateAttemptError:
                attempt = await self.attempts.get_for_student(assessment_id, student.student_id)
                if attempt is None:
                    raise
                logger.info(f"Concurrent start for assessment {assessment_id}; returning existing attempt")
        else:
            logger.info(f"Attempt {attempt.attempt_id} resumed by student {student.student_id}")

        if attempt.status.is_done:
            raise ConflictError("You have already completed this assessment", code=ErrorCode.ALREADY_COMPLETED)

        return {
            "assessment": await self._student_view(assessment),
            "attempt": attempt.to_dict(),
            "timeRemaining": attempt.time_remaining(now),
        }

    async def submit_answer(
        self,
        attempt_id: str,
        actor: Actor,
        question_id: str,
        selected_answers: List[int],
        time_spent: int = 0
    ) -> Dict[str, Any]:
        """
        Record the answer to one question, overwriting any earlier answer.

        Returns:
            ``{isCorrect, marksObtained, correctAnswers}``

        Raises:
            AttemptExpiredError: The attempt ran out of time (it is now ``timeout``)
            StateError: The attempt is no longer in progress
            ValidationError: The question is not part of the assessment
        """
        student = self._student(actor)

        async def mutate(attempt: Attempt, assessment: Assessment, now: datetime) -> Dict[str, Any]:
            if attempt.is_terminal:
                raise StateError(
                    "Assessment attempt is not in progress",
                    details={"status": attempt.status.value}
                )

            placement = assessment.find_question(question_id)
            slot = attempt.find_answer(question_id)
            if placement is None or slot is None:
                raise ValidationError(
                    "Question not found in assessment",
                    code=ErrorCode.QUESTION_NOT_IN_ASSESSMENT,
                    details={"question_id": question_id}
                )

            question = await self.questions.get_by_id(question_id)
            if question is None:
                raise ValidationError("Question not found", details={"question_id": question_id})

            is_correct = answers_match(selected_answers, question.correct_answers)
            slot.selected_answers = list(selected_answers)
            slot.is_correct = is_correct
            slot.marks_obtained = placement.marks if is_correct else 0
            slot.time_spent = max(0, time_spent or 0)
            attempt.recompute_total()
            attempt.updated_at = now

            return {
                "isCorrect": is_correct,
                "marksObtained": slot.marks_obtained,
                "correctAnswers": list(question.correct_answers),
            }

        return await self._write(attempt_id, student, mutate)

    async def submit(self, attempt_id: str, actor: Actor) -> Dict[str, Any]:
        """
        Finalize an attempt and compute its result.

        Returns:
            ``{totalMarks, obtainedMarks, percentage, grade, timeSpent}``

        Raises:
            AttemptExpiredError: The attempt ran out of time (it is now ``timeout``)
            StateError: The attempt already timed out
            ConflictError: The attempt was already submitted
        """
        student = self._student(actor)

        async def mutate(attempt: Attempt, assessment: Assessment, now: datetime) -> Dict[str, Any]:
            if attempt.status == AttemptStatus.TIMEOUT:
                raise StateError("Time is up for this assessment", code=ErrorCode.TIME_EXPIRED)
            if attempt.status.is_done:
                raise ConflictError("Assessment already submitted", code=ErrorCode.ALREADY_SUBMITTED)

            attempt.status = AttemptStatus.SUBMITTED
            attempt.is_submitted = True
            finalize_scores(attempt, assessment, now)
            logger.info(
                f"Attempt {attempt.attempt_id} submitted: {attempt.total_marks_obtained}/"
                f"{assessment.total_marks} ({attempt.percentage}%, grade {attempt.grade})"
            )
            return {
                "totalMarks": assessment.total_marks,
                "obtainedMarks": attempt.total_marks_obtained,
                "percentage": attempt.percentage,
                "grade": attempt.grade,
                "timeSpent": attempt.time_spent,
            }

        return await self._write(attempt_id, student, mutate)

    async def list_results(self, actor: Actor) -> List[Dict[str, Any]]:
        """
        List the student's finished attempts, newest first, with assessment summaries.
        """
        student = self._student(actor)
        attempts = await self.attempts.list_by_student(student.student_id, statuses=RESULT_STATUSES)

        summaries: Dict[str, Optional[Dict[str, Any]]] = {}
        results = []
        for attempt in attempts:
            if attempt.assessment_id not in summaries:
                assessment = await self.assessments.get_by_id(attempt.assessment_id)
                summaries[attempt.assessment_id] = assessment.summary() if assessment else None
            data = attempt.to_dict()
            data["assessment"] = summaries[attempt.assessment_id]
            results.append(data)
        return results

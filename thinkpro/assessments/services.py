"""
Assessment Definition Service

This module implements the assessment definition lifecycle: creation with
question validation, publishing (with an optional announcement), guarded
updates, soft deletion and role-scoped listing.

Authorization follows one policy throughout:
- an actor without the capability an operation needs gets AuthorizationError
- an assessment outside the actor's school scope is reported as not found
- an assessment the actor can see but may not manage gets AuthorizationError
"""

import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from thinkpro.assessments.models import (
    ADMINISTRATIVE_STATUSES,
    GRADE_LEVELS,
    Assessment,
    AssessmentQuestion,
    AssessmentStatus,
    TargetCohort
)
from thinkpro.assessments.notifications import Notification, Notifier, emit_safely
from thinkpro.assessments.repositories import AssessmentRepository, AttemptRepository
from thinkpro.common.auth.user import Actor, Capability, UserRole
from thinkpro.common.clock import Clock, ensure_utc
from thinkpro.common.error_handling import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    StateError,
    ValidationError
)
from thinkpro.common.logger import get_logger
from thinkpro.domain.questions.model import Question
from thinkpro.domain.questions.repository import QuestionRepository

logger = get_logger(__name__)

REQUIRED_FIELDS = ("title", "grade", "subject", "start_date", "end_date", "duration", "questions")
STRUCTURAL_FIELDS = (
    "title", "instructions", "grade", "subject", "modules",
    "start_date", "end_date", "duration", "questions", "target_students",
)


def _validate_grade(grade: Any, field_name: str = "grade") -> str:
    if grade not in GRADE_LEVELS:
        raise ValidationError(
            f"Invalid {field_name}: {grade}",
            details={"field": field_name, "allowed": list(GRADE_LEVELS)}
        )
    return grade


def _validate_duration(duration: Any) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < 1:
        raise ValidationError("Duration must be a positive number of minutes", details={"field": "duration"})
    return duration


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def build_question_placements(items: Iterable[Any]) -> List[AssessmentQuestion]:
    """
    Turn raw question entries into ordered placements.

    ``order`` defaults to the 1-based position and ``marks`` to 1.

    Raises:
        ValidationError: On an empty list, bad marks or duplicate references
    """
    placements = []
    seen = set()
    for position, item in enumerate(items or [], start=1):
        question_id = _field(item, "question_id")
        if not question_id:
            raise ValidationError("Each question needs a question_id", details={"position": position})
        if question_id in seen:
            raise ValidationError(
                "Duplicate question in assessment",
                details={"duplicate_question_id": question_id}
            )
        seen.add(question_id)

        marks = _field(item, "marks")
        marks = 1 if marks is None else marks
        if isinstance(marks, bool) or not isinstance(marks, int) or marks < 1:
            raise ValidationError(
                "Question marks must be a positive integer",
                details={"question_id": question_id}
            )

        order = _field(item, "order")
        placements.append(AssessmentQuestion(
            question_id=str(question_id),
            order=position if order is None else int(order),
            marks=marks,
        ))

    if not placements:
        raise ValidationError("At least one question is required", details={"field": "questions"})
    return placements


def build_target_cohorts(items: Optional[Iterable[Any]], default_grade: str) -> List[TargetCohort]:
    """Build target cohorts, defaulting to every section of the assessment grade."""
    cohorts = [
        TargetCohort(
            grade=_validate_grade(_field(item, "grade"), "targetStudents.grade"),
            sections=list(_field(item, "sections") or []),
        )
        for item in items or []
    ]
    return cohorts or [TargetCohort(grade=default_grade)]


class AssessmentService:
    """
    Lifecycle operations on assessment definitions.

    Args:
        assessments: Assessment definition store
        attempts: Attempt store (consulted by the delete guard)
        questions: Question bank
        notifier: Receiver of publish announcements
        clock: Time source
        default_page_size: Page size when the caller gives none
        max_page_size: Upper bound on the page size
    """

    def __init__(
        self,
        assessments: AssessmentRepository,
        attempts: AttemptRepository,
        questions: QuestionRepository,
        notifier: Notifier,
        clock: Clock,
        default_page_size: int = 10,
        max_page_size: int = 100
    ):
        self.assessments = assessments
        self.attempts = attempts
        self.questions = questions
        self.notifier = notifier
        self.clock = clock
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # --- Authorization helpers ---

    async def _load_visible(self, assessment_id: str, actor: Actor) -> Assessment:
        actor.require(Capability.VIEW_ASSESSMENTS, "Access denied. Staff role required.")
        assessment = await self.assessments.get_by_id(assessment_id)
        if assessment is None or not assessment.is_active or not actor.can_see_school(assessment.school_id):
            raise NotFoundError("Assessment not found", code=ErrorCode.ASSESSMENT_NOT_FOUND)
        return assessment

    @staticmethod
    def can_manage(actor: Actor, assessment: Assessment) -> bool:
        """Creator, school-scoped manager or top-level role."""
        return (
            actor.role == UserRole.SUPERADMIN
            or assessment.created_by == actor.id
            or actor.can_manage_school(assessment.school_id)
        )

    def _authorize_manage(self, actor: Actor, assessment: Assessment) -> None:
        if not self.can_manage(actor, assessment):
            raise AuthorizationError("You don't have permission to modify this assessment")

    def _resolve_school(self, actor: Actor, school: Optional[str]) -> str:
        if actor.is_privileged:
            if not school:
                raise ValidationError("School is required", details={"field": "school"})
            return school
        if not actor.school_ids:
            raise AuthorizationError("You are not assigned to any school")
        return actor.school_ids[0]

    async def _validate_questions(self, placements: List[AssessmentQuestion]) -> List[Question]:
        ids = [p.question_id for p in placements]
        found = await self.questions.find_active_approved(ids)
        if len(found) != len(ids):
            found_ids = {q.question_id for q in found}
            invalid = [qid for qid in ids if qid not in found_ids]
            raise ValidationError(
                "Some questions are invalid or not approved",
                details={"invalid_question_ids": invalid}
            )
        return found

    # --- Lifecycle operations ---

    async def create(self, data: Dict[str, Any], actor: Actor) -> Assessment:
        """
        Create a draft assessment.

        Args:
            data: Assessment fields (snake_case keys)
            actor: The creator

        Returns:
            The persisted draft

        Raises:
            AuthorizationError: If the actor cannot create assessments or has no school
            ValidationError: On missing fields, bad dates or invalid questions
        """
        actor.require(Capability.CREATE_ASSESSMENTS, "You don't have permission to create assessments")

        missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "", [])]
        if missing:
            raise ValidationError("Missing required fields", details={"missing": missing})

        now = self.clock.now()
        grade = _validate_grade(data["grade"])
        duration = _validate_duration(data["duration"])
        start_date = ensure_utc(data["start_date"])
        end_date = ensure_utc(data["end_date"])
        if end_date <= start_date:
            raise ValidationError("End date must be after start date")
        if start_date <= now:
            raise ValidationError("Start date must be in the future")

        school_id = self._resolve_school(actor, data.get("school"))
        placements = build_question_placements(data["questions"])
        await self._validate_questions(placements)

        assessment = Assessment(
            assessment_id=Assessment.new_id(),
            title=str(data["title"]).strip(),
            instructions=data.get("instructions") or "",
            grade=grade,
            subject=data["subject"],
            modules=list(data.get("modules") or []),
            start_date=start_date,
            end_date=end_date,
            duration=duration,
            questions=placements,
            target_students=build_target_cohorts(data.get("target_students"), grade),
            school_id=school_id,
            created_by=actor.id,
            status=AssessmentStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        await self.assessments.save(assessment)
        logger.info(
            f"Assessment {assessment.assessment_id} created by {actor.id} for school {school_id} "
            f"({len(placements)} questions, {assessment.total_marks} marks)"
        )
        return assessment

    async def get(self, assessment_id: str, actor: Actor) -> Assessment:
        return await self._load_visible(assessment_id, actor)

    async def get_detail(self, assessment_id: str, actor: Actor) -> Dict[str, Any]:
        """Fetch an assessment with its question details and answer key."""
        assessment = await self._load_visible(assessment_id, actor)
        data = assessment.to_dict()
        questions = []
        for placement in assessment.ordered_questions:
            question = await self.questions.get_by_id(placement.question_id)
            entry = placement.to_dict()
            entry["question"] = question.to_dict(include_answers=True) if question else None
            questions.append(entry)
        data["questions"] = questions
        return data

    async def update(self, assessment_id: str, actor: Actor, patch: Dict[str, Any]) -> Assessment:
        """
        Apply a partial update.

        Structural edits are refused once a published assessment has started.
        A status-only patch is an administrative transition to ``completed``
        or ``cancelled``.

        Raises:
            StateError: On a structural edit of a started published assessment
                or a status change out of completed/cancelled
            ValidationError: On invalid field values
        """
        assessment = await self._load_visible(assessment_id, actor)
        self._authorize_manage(actor, assessment)

        patch = {k: v for k, v in patch.items() if v is not None and (k in STRUCTURAL_FIELDS or k == "status")}
        if not patch:
            raise ValidationError("No fields to update")

        now = self.clock.now()
        structural = [k for k in patch if k in STRUCTURAL_FIELDS]
        if structural and assessment.status == AssessmentStatus.PUBLISHED and assessment.has_started(now):
            raise StateError(
                "Cannot modify an assessment that has already started",
                code=ErrorCode.ASSESSMENT_LOCKED,
                details={"fields": structural}
            )

        if "status" in patch:
            self._apply_status(assessment, patch["status"])

        if "title" in patch:
            assessment.title = str(patch["title"]).strip()
        if "instructions" in patch:
            assessment.instructions = patch["instructions"]
        if "subject" in patch:
            assessment.subject = patch["subject"]
        if "modules" in patch:
            assessment.modules = list(patch["modules"])
        if "grade" in patch:
            assessment.grade = _validate_grade(patch["grade"])
        if "duration" in patch:
            assessment.duration = _validate_duration(patch["duration"])
        if "start_date" in patch:
            assessment.start_date = ensure_utc(patch["start_date"])
        if "end_date" in patch:
            assessment.end_date = ensure_utc(patch["end_date"])
        if assessment.end_date <= assessment.start_date:
            raise ValidationError("End date must be after start date")

        if "questions" in patch:
            placements = build_question_placements(patch["questions"])
            await self._validate_questions(placements)
            assessment.questions = placements
        if "target_students" in patch:
            assessment.target_students = build_target_cohorts(patch["target_students"], assessment.grade)

        assessment.updated_at = now
        await self.assessments.save(assessment)
        logger.info(f"Assessment {assessment_id} updated by {actor.id}: {sorted(patch)}")
        return assessment

    @staticmethod
    def _apply_status(assessment: Assessment, value: Any) -> None:
        try:
            new_status = value if isinstance(value, AssessmentStatus) else AssessmentStatus(value)
        except ValueError:
            raise ValidationError(f"Invalid status: {value}", details={"field": "status"})

        if new_status == assessment.status:
            return
        if assessment.status in ADMINISTRATIVE_STATUSES:
            raise StateError(f"Assessment is already {assessment.status.value}")
        if new_status not in ADMINISTRATIVE_STATUSES:
            raise ValidationError(
                "Status can only be changed to completed or cancelled; use publish to publish",
                details={"field": "status"}
            )
        assessment.status = new_status

    async def publish(
        self,
        assessment_id: str,
        actor: Actor,
        notification_message: Optional[str] = None
    ) -> Tuple[Assessment, bool]:
        """
        Publish an assessment and optionally announce it.

        Returns:
            The published assessment and whether a notification was emitted
        """
        assessment = await self._load_visible(assessment_id, actor)
        self._authorize_manage(actor, assessment)

        if assessment.status not in (AssessmentStatus.DRAFT, AssessmentStatus.PUBLISHED):
            raise StateError(f"Cannot publish a {assessment.status.value} assessment")

        now = self.clock.now()
        assessment.status = AssessmentStatus.PUBLISHED
        assessment.updated_at = now
        await self.assessments.save(assessment)
        logger.info(f"Assessment {assessment_id} published by {actor.id}")

        notified = False
        if notification_message and notification_message.strip():
            notification = Notification.for_assessment(
                assessment, notification_message.strip(), actor.id, now
            )
            notified = await emit_safely(self.notifier, notification)
        return assessment, notified

    async def delete(self, assessment_id: str, actor: Actor) -> None:
        """
        Soft-delete an assessment that nobody has attempted.

        Raises:
            ConflictError: If attempts exist
        """
        assessment = await self._load_visible(assessment_id, actor)
        self._authorize_manage(actor, assessment)

        attempt_count = await self.attempts.count_by_assessment(assessment_id)
        if attempt_count > 0:
            raise ConflictError(
                "Cannot delete assessment with existing attempts",
                code=ErrorCode.HAS_ATTEMPTS,
                details={"attempts": attempt_count}
            )

        assessment.is_active = False
        assessment.updated_at = self.clock.now()
        await self.assessments.save(assessment)
        logger.info(f"Assessment {assessment_id} deleted by {actor.id}")

    async def list(
        self,
        actor: Actor,
        status: Optional[AssessmentStatus] = None,
        grade: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None
    ) -> Tuple[List[Assessment], Dict[str, int]]:
        """
        List the assessments visible to the actor, newest first.

        Returns:
            The page of assessments and ``{page, limit, pages, total}``
        """
        actor.require(Capability.VIEW_ASSESSMENTS, "Access denied. Staff role required.")

        page = max(1, page or 1)
        limit = min(max(1, limit or self.default_page_size), self.max_page_size)
        school_ids = None if actor.is_privileged else list(actor.school_ids)

        items, total = await self.assessments.list(
            school_ids=school_ids,
            status=status,
            grade=grade,
            offset=(page - 1) * limit,
            limit=limit
        )
        pagination = {
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if total else 0,
            "total": total,
        }
        return items, pagination

    async def list_question_candidates(
        self,
        actor: Actor,
        grade: Optional[str] = None,
        subject: Optional[str] = None,
        modules: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
        limit: int = 100
    ) -> List[Question]:
        """List approved, active questions that can be placed in an assessment."""
        if not (actor.has_capability(Capability.CREATE_ASSESSMENTS)
                or actor.has_capability(Capability.MANAGE_ASSESSMENTS)):
            raise AuthorizationError("You don't have permission to build assessments")
        return await self.questions.search(
            grade=grade,
            subject=subject,
            modules=modules,
            difficulty=difficulty,
            limit=min(limit, self.max_page_size)
        )

"""
Assessment Models

This module defines the domain entities of the assessment core:
assessment definitions with their ordered questions and target cohorts,
and student attempts with one answer slot per assessment question.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from thinkpro.common.clock import utcnow
from thinkpro.domain.questions.model import GRADE_LEVELS


class AssessmentStatus(enum.Enum):
    """Lifecycle status of an assessment definition."""
    DRAFT = "draft"
    PUBLISHED = "published"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AttemptStatus(enum.Enum):
    """
    Status of a student attempt.

    ``completed`` is kept for older records and is treated exactly like
    ``submitted``.
    """
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SUBMITTED = "submitted"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.IN_PROGRESS

    @property
    def is_done(self) -> bool:
        """Terminal and finished by the student (not timed out)."""
        return self in (AttemptStatus.COMPLETED, AttemptStatus.SUBMITTED)


ADMINISTRATIVE_STATUSES = (AssessmentStatus.COMPLETED, AssessmentStatus.CANCELLED)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def normalize_sections(sections: Optional[List[str]]) -> List[str]:
    """Trim section labels and drop blanks; an empty result means all sections."""
    result = []
    for section in sections or []:
        if section is None:
            continue
        label = str(section).strip()
        if label and label not in result:
            result.append(label)
    return result


@dataclass
class AssessmentQuestion:
    """A question placed in an assessment."""
    question_id: str
    order: int
    marks: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"questionId": self.question_id, "order": self.order, "marks": self.marks}


@dataclass
class TargetCohort:
    """
    A (grade, sections) targeting rule.

    An empty ``sections`` list targets every section of the grade.
    """
    grade: str
    sections: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.sections = normalize_sections(self.sections)

    @property
    def all_sections(self) -> bool:
        return not self.sections

    def to_dict(self) -> Dict[str, Any]:
        return {"grade": self.grade, "sections": list(self.sections)}


@dataclass
class Assessment:
    """
    A scheduled, timed assessment definition.

    Attributes:
        assessment_id: Unique identifier
        title: Assessment title
        grade: Grade level label
        subject: Subject name
        start_date: Opening time (UTC)
        end_date: Closing time (UTC)
        duration: Time allowed per attempt, in minutes
        questions: Ordered question placements
        target_students: Cohorts allowed to take the assessment
        school_id: Owning school
        created_by: Creator user id
        instructions: Free-text instructions
        modules: Module names covered
        status: Lifecycle status
        is_active: False once soft-deleted
        created_at: Creation time
        updated_at: Last modification time
    """
    assessment_id: str
    title: str
    grade: str
    subject: str
    start_date: datetime
    end_date: datetime
    duration: int
    questions: List[AssessmentQuestion]
    target_students: List[TargetCohort]
    school_id: str
    created_by: str
    instructions: str = ""
    modules: List[str] = field(default_factory=list)
    status: AssessmentStatus = AssessmentStatus.DRAFT
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    @property
    def total_marks(self) -> int:
        return sum(q.marks for q in self.questions)

    @property
    def ordered_questions(self) -> List[AssessmentQuestion]:
        return sorted(self.questions, key=lambda q: q.order)

    def has_started(self, now: datetime) -> bool:
        return now >= self.start_date

    def is_open(self, now: datetime) -> bool:
        return self.start_date <= now <= self.end_date

    def find_question(self, question_id: str) -> Optional[AssessmentQuestion]:
        return next((q for q in self.questions if q.question_id == question_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.assessment_id,
            "title": self.title,
            "instructions": self.instructions,
            "grade": self.grade,
            "subject": self.subject,
            "modules": list(self.modules),
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "duration": self.duration,
            "questions": [q.to_dict() for q in self.ordered_questions],
            "totalMarks": self.total_marks,
            "targetStudents": [t.to_dict() for t in self.target_students],
            "status": self.status.value,
            "school": self.school_id,
            "createdBy": self.created_by,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.assessment_id,
            "title": self.title,
            "grade": self.grade,
            "subject": self.subject,
            "modules": list(self.modules),
            "totalMarks": self.total_marks,
        }


@dataclass
class AttemptAnswer:
    """A student's answer slot for one assessment question."""
    question_id: str
    selected_answers: List[int] = field(default_factory=list)
    is_correct: bool = False
    marks_obtained: int = 0
    time_spent: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "selectedAnswers": list(self.selected_answers),
            "isCorrect": self.is_correct,
            "marksObtained": self.marks_obtained,
            "timeSpent": self.time_spent,
        }


@dataclass
class Attempt:
    """
    One student's attempt at an assessment.

    ``version`` is the optimistic lock counter maintained by the repositories;
    every successful write increments it.
    """
    attempt_id: str
    assessment_id: str
    student_id: str
    start_time: datetime
    end_time: datetime
    answers: List[AttemptAnswer] = field(default_factory=list)
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    total_marks_obtained: int = 0
    percentage: float = 0.0
    grade: Optional[str] = None
    time_spent: int = 0
    submitted_at: Optional[datetime] = None
    is_submitted: bool = False
    auto_submitted: bool = False
    version: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def start(cls, assessment: Assessment, student_id: str, now: datetime) -> 'Attempt':
        """
        Open a new attempt with an empty answer slot per assessment question.

        Args:
            assessment: The assessment being attempted
            student_id: The student starting it
            now: Start time

        Returns:
            A new in-progress Attempt
        """
        return cls(
            attempt_id=str(uuid.uuid4()),
            assessment_id=assessment.assessment_id,
            student_id=student_id,
            start_time=now,
            end_time=now + timedelta(minutes=assessment.duration),
            answers=[AttemptAnswer(question_id=q.question_id) for q in assessment.ordered_questions],
            created_at=now,
            updated_at=now,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def find_answer(self, question_id: str) -> Optional[AttemptAnswer]:
        return next((a for a in self.answers if a.question_id == question_id), None)

    def recompute_total(self) -> int:
        self.total_marks_obtained = sum(a.marks_obtained for a in self.answers)
        return self.total_marks_obtained

    def time_remaining(self, now: datetime) -> int:
        """Whole seconds left before ``end_time``, never negative."""
        return max(0, int((self.end_time - now).total_seconds()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.attempt_id,
            "assessment": self.assessment_id,
            "student": self.student_id,
            "answers": [a.to_dict() for a in self.answers],
            "status": self.status.value,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "totalMarksObtained": self.total_marks_obtained,
            "percentage": self.percentage,
            "grade": self.grade,
            "timeSpent": self.time_spent,
            "submittedAt": _iso(self.submitted_at),
            "isSubmitted": self.is_submitted,
            "autoSubmitted": self.auto_submitted,
        }


__all__ = [
    "GRADE_LEVELS",
    "ADMINISTRATIVE_STATUSES",
    "AssessmentStatus",
    "AttemptStatus",
    "AssessmentQuestion",
    "TargetCohort",
    "Assessment",
    "AttemptAnswer",
    "Attempt",
    "normalize_sections",
]

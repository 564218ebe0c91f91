"""
Shared fixtures for the ThinkPro assessment tests.

Services and the attempt engine run against the in-memory repositories and
a frozen clock, so every time-window and expiry check is deterministic.
"""

from datetime import datetime, timedelta, timezone

import pytest

from thinkpro.assessments.attempt_engine import AttemptEngine
from thinkpro.assessments.memory_repositories import (
    MemoryAssessmentRepository,
    MemoryAttemptRepository
)
from thinkpro.assessments.models import (
    Assessment,
    AssessmentQuestion,
    AssessmentStatus,
    TargetCohort
)
from thinkpro.assessments.notifications import MemoryNotifier
from thinkpro.assessments.services import AssessmentService
from thinkpro.common.auth.user import Actor, StudentProfile, UserRole
from thinkpro.common.clock import FrozenClock
from thinkpro.domain.questions.memory_repository import MemoryQuestionRepository
from thinkpro.domain.questions.model import AnswerType, Choice, Question

NOW = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
SCHOOL_ID = "school-1"
OTHER_SCHOOL_ID = "school-2"


def _question(question_id, correct, answer_type=AnswerType.RADIO, approved=True, active=True):
    choices = [Choice(text=f"Option {i}", is_correct=i in correct, order=i) for i in range(4)]
    return Question(
        question_id=question_id,
        text=f"Question {question_id}",
        grade="Grade 7",
        subject="Mathematics",
        module="Fractions",
        choices=choices,
        correct_answers=list(correct),
        answer_type=answer_type,
        is_active=active,
        created_by="mentor-1",
        approved_by="lead-1" if approved else None,
        approved_at=NOW - timedelta(days=1) if approved else None,
    )


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def questions():
    """Three approved questions, one draft question and one retired question."""
    return [
        _question("q-1", [1]),
        _question("q-2", [0, 2], answer_type=AnswerType.CHECKBOX),
        _question("q-3", [3]),
        _question("q-draft", [0], approved=False),
        _question("q-retired", [0], active=False),
    ]


@pytest.fixture
def question_repository(questions):
    return MemoryQuestionRepository(questions)


@pytest.fixture
def assessment_repository():
    return MemoryAssessmentRepository()


@pytest.fixture
def attempt_repository():
    return MemoryAttemptRepository()


@pytest.fixture
def notifier():
    return MemoryNotifier()


@pytest.fixture
def service(assessment_repository, attempt_repository, question_repository, notifier, clock):
    return AssessmentService(
        assessments=assessment_repository,
        attempts=attempt_repository,
        questions=question_repository,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def engine(assessment_repository, attempt_repository, question_repository, clock):
    return AttemptEngine(
        assessments=assessment_repository,
        attempts=attempt_repository,
        questions=question_repository,
        clock=clock,
    )


# Actors

@pytest.fixture
def superadmin():
    return Actor(id="admin-1", role=UserRole.SUPERADMIN)


@pytest.fixture
def leadmentor():
    return Actor(
        id="lead-1",
        role=UserRole.LEADMENTOR,
        permissions=["create_assessments", "manage_assessments"],
    )


@pytest.fixture
def schooladmin():
    return Actor(id="principal-1", role=UserRole.SCHOOLADMIN, school_ids=[SCHOOL_ID])


@pytest.fixture
def mentor():
    return Actor(id="mentor-1", role=UserRole.MENTOR, school_ids=[SCHOOL_ID, OTHER_SCHOOL_ID])


@pytest.fixture
def other_mentor():
    return Actor(id="mentor-2", role=UserRole.MENTOR, school_ids=[SCHOOL_ID])


@pytest.fixture
def foreign_mentor():
    return Actor(id="mentor-3", role=UserRole.MENTOR, school_ids=[OTHER_SCHOOL_ID])


def _student(user_id, section="A", grade="Grade 7", school_id=SCHOOL_ID):
    return Actor(
        id=user_id,
        role=UserRole.STUDENT,
        school_ids=[school_id],
        student=StudentProfile(student_id=f"stu-{user_id}", school_id=school_id, grade=grade, section=section),
    )


@pytest.fixture
def student():
    return _student("user-s1", section="A")


@pytest.fixture
def student_section_b():
    return _student("user-s2", section="B")


@pytest.fixture
def student_without_section():
    return _student("user-s3", section=None)


@pytest.fixture
def student_other_school():
    return _student("user-s4", section="A", school_id=OTHER_SCHOOL_ID)


@pytest.fixture
def student_grade_8():
    return _student("user-s5", section="A", grade="Grade 8")


# Assessments

@pytest.fixture
def make_assessment():
    """Factory for an open, published three-question assessment targeting Grade 7 section A."""
    def factory(**overrides):
        data = dict(
            assessment_id="asmt-1",
            title="Fractions checkpoint",
            grade="Grade 7",
            subject="Mathematics",
            start_date=NOW - timedelta(hours=1),
            end_date=NOW + timedelta(hours=2),
            duration=30,
            questions=[
                AssessmentQuestion(question_id="q-1", order=1, marks=1),
                AssessmentQuestion(question_id="q-2", order=2, marks=1),
                AssessmentQuestion(question_id="q-3", order=3, marks=1),
            ],
            target_students=[TargetCohort(grade="Grade 7", sections=["A"])],
            school_id=SCHOOL_ID,
            created_by="mentor-1",
            modules=["Fractions"],
            status=AssessmentStatus.PUBLISHED,
            created_at=NOW - timedelta(days=2),
            updated_at=NOW - timedelta(days=2),
        )
        data.update(overrides)
        return Assessment(**data)
    return factory


@pytest.fixture
def published_assessment(make_assessment, assessment_repository):
    assessment = make_assessment()
    assessment_repository._assessments[assessment.assessment_id] = assessment
    return assessment


@pytest.fixture
def assessment_payload():
    """Create payload in the snake_case shape the service receives."""
    return {
        "title": "Fractions checkpoint",
        "instructions": "Answer every question.",
        "grade": "Grade 7",
        "subject": "Mathematics",
        "modules": ["Fractions"],
        "start_date": NOW + timedelta(days=1),
        "end_date": NOW + timedelta(days=1, hours=2),
        "duration": 30,
        "questions": [
            {"question_id": "q-1"},
            {"question_id": "q-2", "marks": 2},
            {"question_id": "q-3", "marks": 3},
        ],
        "target_students": [{"grade": "Grade 7", "sections": ["A"]}],
    }

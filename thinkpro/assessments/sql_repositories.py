"""
SQL Assessment Repositories

SQLAlchemy async implementations of the assessment and attempt
repositories. Each operation runs in its own session; nested documents
(questions, target cohorts, answers) live in child tables ordered by a
``position`` column.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select, delete as sql_delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from thinkpro.assessments.database_models import (
    AssessmentORM,
    AssessmentQuestionORM,
    AssessmentTargetORM,
    AttemptAnswerORM,
    AttemptORM
)
from thinkpro.assessments.models import (
    Assessment,
    AssessmentQuestion,
    AssessmentStatus,
    Attempt,
    AttemptAnswer,
    AttemptStatus,
    TargetCohort
)
from thinkpro.assessments.repositories import (
    AssessmentRepository,
    AttemptRepository,
    ConcurrentModificationError,
    DuplicateAttemptError
)
from thinkpro.common.logger import get_logger
from thinkpro.database.repository import RepositoryError, SqlRepository

logger = get_logger(__name__)


class SqlAssessmentRepository(SqlRepository, AssessmentRepository):
    """Assessment repository backed by ``assessments`` and its child tables."""

    @staticmethod
    def _map_orm_to_domain(orm: AssessmentORM) -> Assessment:
        return Assessment(
            assessment_id=orm.assessment_id,
            title=orm.title,
            instructions=orm.instructions or "",
            grade=orm.grade,
            subject=orm.subject,
            modules=list(orm.modules or []),
            start_date=orm.start_date,
            end_date=orm.end_date,
            duration=orm.duration,
            questions=[
                AssessmentQuestion(question_id=q.question_id, order=q.display_order, marks=q.marks)
                for q in orm.questions
            ],
            target_students=[
                TargetCohort(grade=t.grade, sections=list(t.sections or []))
                for t in orm.targets
            ],
            school_id=orm.school_id,
            created_by=orm.created_by,
            status=AssessmentStatus(orm.status),
            is_active=orm.is_active,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    @staticmethod
    def _apply_domain(orm: AssessmentORM, assessment: Assessment) -> None:
        orm.title = assessment.title
        orm.instructions = assessment.instructions
        orm.grade = assessment.grade
        orm.subject = assessment.subject
        orm.modules = list(assessment.modules)
        orm.start_date = assessment.start_date
        orm.end_date = assessment.end_date
        orm.duration = assessment.duration
        orm.total_marks = assessment.total_marks
        orm.status = assessment.status.value
        orm.school_id = assessment.school_id
        orm.created_by = assessment.created_by
        orm.is_active = assessment.is_active
        orm.updated_at = assessment.updated_at
        orm.questions = [
            AssessmentQuestionORM(
                position=i,
                question_id=q.question_id,
                display_order=q.order,
                marks=q.marks
            )
            for i, q in enumerate(assessment.questions)
        ]
        orm.targets = [
            AssessmentTargetORM(position=i, grade=t.grade, sections=list(t.sections))
            for i, t in enumerate(assessment.target_students)
        ]

    async def get_by_id(self, assessment_id: str) -> Optional[Assessment]:
        try:
            async with self.async_session() as session:
                result = await session.execute(
                    select(AssessmentORM).where(AssessmentORM.assessment_id == assessment_id)
                )
                orm = result.scalar_one_or_none()
                return self._map_orm_to_domain(orm) if orm else None
        except Exception as e:
            raise RepositoryError(f"Database error retrieving assessment {assessment_id}", original_exception=e)

    async def save(self, assessment: Assessment) -> Assessment:
        try:
            async with self.async_session() as session:
                async with session.begin():
                    result = await session.execute(
                        select(AssessmentORM).where(AssessmentORM.assessment_id == assessment.assessment_id)
                    )
                    orm = result.scalar_one_or_none()
                    if orm is None:
                        orm = AssessmentORM(
                            assessment_id=assessment.assessment_id,
                            created_at=assessment.created_at
                        )
                        session.add(orm)
                    self._apply_domain(orm, assessment)
            return assessment
        except Exception as e:
            raise RepositoryError(f"Failed to save assessment {assessment.assessment_id}", original_exception=e)

    @staticmethod
    def _filtered(stmt, school_ids, status, grade):
        stmt = stmt.where(AssessmentORM.is_active.is_(True))
        if school_ids is not None:
            stmt = stmt.where(AssessmentORM.school_id.in_(list(school_ids)))
        if status is not None:
            stmt = stmt.where(AssessmentORM.status == status.value)
        if grade:
            stmt = stmt.where(AssessmentORM.grade == grade)
        return stmt

    async def list(
        self,
        school_ids: Optional[Sequence[str]] = None,
        status: Optional[AssessmentStatus] = None,
        grade: Optional[str] = None,
        offset: int = 0,
        limit: int = 10
    ) -> Tuple[List[Assessment], int]:
        count_stmt = self._filtered(
            select(func.count()).select_from(AssessmentORM), school_ids, status, grade
        )
        page_stmt = self._filtered(select(AssessmentORM), school_ids, status, grade)\
            .order_by(AssessmentORM.created_at.desc())\
            .offset(offset)\
            .limit(limit)

        try:
            async with self.async_session() as session:
                total = (await session.execute(count_stmt)).scalar_one()
                result = await session.execute(page_stmt)
                return [self._map_orm_to_domain(orm) for orm in result.scalars().all()], total
        except Exception as e:
            raise RepositoryError("Database error listing assessments", original_exception=e)

    async def list_open(self, school_id: str, now: datetime) -> List[Assessment]:
        stmt = select(AssessmentORM).where(
            AssessmentORM.is_active.is_(True),
            AssessmentORM.status == AssessmentStatus.PUBLISHED.value,
            AssessmentORM.school_id == school_id,
            AssessmentORM.start_date <= now,
            AssessmentORM.end_date >= now,
        ).order_by(AssessmentORM.start_date.asc())

        try:
            async with self.async_session() as session:
                result = await session.execute(stmt)
                return [self._map_orm_to_domain(orm) for orm in result.scalars().all()]
        except Exception as e:
            raise RepositoryError(f"Database error listing open assessments for school {school_id}", original_exception=e)


class SqlAttemptRepository(SqlRepository, AttemptRepository):
    """
    Attempt repository backed by ``assessment_attempts`` and ``attempt_answers``.

    Uniqueness of (assessment, student) is a table constraint; writes are
    guarded by the ``version`` column.
    """

    @staticmethod
    def _map_orm_to_domain(orm: AttemptORM) -> Attempt:
        return Attempt(
            attempt_id=orm.attempt_id,
            assessment_id=orm.assessment_id,
            student_id=orm.student_id,
            start_time=orm.start_time,
            end_time=orm.end_time,
            answers=[
                AttemptAnswer(
                    question_id=a.question_id,
                    selected_answers=list(a.selected_answers or []),
                    is_correct=a.is_correct,
                    marks_obtained=a.marks_obtained,
                    time_spent=a.time_spent,
                )
                for a in orm.answers
            ],
            status=AttemptStatus(orm.status),
            total_marks_obtained=orm.total_marks_obtained,
            percentage=orm.percentage,
            grade=orm.grade,
            time_spent=orm.time_spent,
            submitted_at=orm.submitted_at,
            is_submitted=orm.is_submitted,
            auto_submitted=orm.auto_submitted,
            version=orm.version,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    @staticmethod
    def _apply_domain(orm: AttemptORM, attempt: Attempt) -> None:
        orm.status = attempt.status.value
        orm.start_time = attempt.start_time
        orm.end_time = attempt.end_time
        orm.total_marks_obtained = attempt.total_marks_obtained
        orm.percentage = attempt.percentage
        orm.grade = attempt.grade
        orm.time_spent = attempt.time_spent
        orm.submitted_at = attempt.submitted_at
        orm.is_submitted = attempt.is_submitted
        orm.auto_submitted = attempt.auto_submitted
        orm.updated_at = attempt.updated_at

        if len(orm.answers) == len(attempt.answers):
            for row, answer in zip(orm.answers, attempt.answers):
                row.question_id = answer.question_id
                row.selected_answers = list(answer.selected_answers)
                row.is_correct = answer.is_correct
                row.marks_obtained = answer.marks_obtained
                row.time_spent = answer.time_spent
        else:
            orm.answers = [
                AttemptAnswerORM(
                    position=i,
                    question_id=a.question_id,
                    selected_answers=list(a.selected_answers),
                    is_correct=a.is_correct,
                    marks_obtained=a.marks_obtained,
                    time_spent=a.time_spent,
                )
                for i, a in enumerate(attempt.answers)
            ]

    async def get_by_id(self, attempt_id: str) -> Optional[Attempt]:
        try:
            async with self.async_session() as session:
                result = await session.execute(
                    select(AttemptORM).where(AttemptORM.attempt_id == attempt_id)
                )
                orm = result.scalar_one_or_none()
                return self._map_orm_to_domain(orm) if orm else None
        except Exception as e:
            raise RepositoryError(f"Database error retrieving attempt {attempt_id}", original_exception=e)

    async def get_for_student(self, assessment_id: str, student_id: str) -> Optional[Attempt]:
        try:
            async with self.async_session() as session:
                result = await session.execute(
                    select(AttemptORM).where(
                        AttemptORM.assessment_id == assessment_id,
                        AttemptORM.student_id == student_id,
                    )
                )
                orm = result.scalar_one_or_none()
                return self._map_orm_to_domain(orm) if orm else None
        except Exception as e:
            raise RepositoryError(
                f"Database error retrieving attempt of student {student_id} for assessment {assessment_id}",
                original_exception=e
            )

    async def create(self, attempt: Attempt) -> Attempt:
        orm = AttemptORM(
            attempt_id=attempt.attempt_id,
            assessment_id=attempt.assessment_id,
            student_id=attempt.student_id,
            version=1,
            created_at=attempt.created_at,
            answers=[],
        )
        self._apply_domain(orm, attempt)

        try:
            async with self.async_session() as session:
                async with session.begin():
                    session.add(orm)
        except IntegrityError as e:
            raise DuplicateAttemptError(attempt.assessment_id, attempt.student_id, original_exception=e)
        except Exception as e:
            raise RepositoryError(f"Failed to create attempt {attempt.attempt_id}", original_exception=e)

        attempt.version = 1
        return attempt

    async def save(self, attempt: Attempt) -> Attempt:
        try:
            async with self.async_session() as session:
                async with session.begin():
                    result = await session.execute(
                        select(AttemptORM).where(AttemptORM.attempt_id == attempt.attempt_id)
                    )
                    orm = result.scalar_one_or_none()
                    if orm is None or orm.version != attempt.version:
                        raise ConcurrentModificationError(attempt.attempt_id, attempt.version)
                    self._apply_domain(orm, attempt)
                    orm.version = attempt.version + 1
        except ConcurrentModificationError:
            raise
        except StaleDataError as e:
            raise ConcurrentModificationError(attempt.attempt_id, attempt.version, original_exception=e)
        except Exception as e:
            raise RepositoryError(f"Failed to save attempt {attempt.attempt_id}", original_exception=e)

        attempt.version += 1
        return attempt

    async def list_by_assessment(self, assessment_id: str) -> List[Attempt]:
        try:
            async with self.async_session() as session:
                result = await session.execute(
                    select(AttemptORM)
                    .where(AttemptORM.assessment_id == assessment_id)
                    .order_by(AttemptORM.created_at.asc())
                )
                return [self._map_orm_to_domain(orm) for orm in result.scalars().all()]
        except Exception as e:
            raise RepositoryError(f"Database error listing attempts for assessment {assessment_id}", original_exception=e)

    async def count_by_assessment(self, assessment_id: str) -> int:
        try:
            async with self.async_session() as session:
                result = await session.execute(
                    select(func.count())
                    .select_from(AttemptORM)
                    .where(AttemptORM.assessment_id == assessment_id)
                )
                return result.scalar_one()
        except Exception as e:
            raise RepositoryError(f"Database error counting attempts for assessment {assessment_id}", original_exception=e)

    async def list_by_student(
        self,
        student_id: str,
        statuses: Optional[Sequence[AttemptStatus]] = None
    ) -> List[Attempt]:
        stmt = select(AttemptORM).where(AttemptORM.student_id == student_id)
        if statuses is not None:
            stmt = stmt.where(AttemptORM.status.in_([s.value for s in statuses]))
        stmt = stmt.order_by(func.coalesce(AttemptORM.submitted_at, AttemptORM.created_at).desc())

        try:
            async with self.async_session() as session:
                result = await session.execute(stmt)
                return [self._map_orm_to_domain(orm) for orm in result.scalars().all()]
        except Exception as e:
            raise RepositoryError(f"Database error listing attempts for student {student_id}", original_exception=e)

    async def delete(self, attempt_id: str) -> bool:
        try:
            async with self.async_session() as session:
                async with session.begin():
                    await session.execute(
                        sql_delete(AttemptAnswerORM).where(AttemptAnswerORM.attempt_id == attempt_id)
                    )
                    result = await session.execute(
                        sql_delete(AttemptORM).where(AttemptORM.attempt_id == attempt_id)
                    )
                    return result.rowcount > 0
        except Exception as e:
            raise RepositoryError(f"Failed to delete attempt {attempt_id}", original_exception=e)

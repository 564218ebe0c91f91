"""
SQL Question Repository Module

SQLAlchemy async implementation of the QuestionRepository interface.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select

from thinkpro.common.logger import get_logger
from thinkpro.database.repository import RepositoryError, SqlRepository
from .database_models import QuestionChoiceORM, QuestionORM
from .model import AnswerType, Choice, Difficulty, Question
from .repository import QuestionRepository

logger = get_logger(__name__)


class SqlQuestionRepository(SqlRepository, QuestionRepository):
    """Question repository backed by the ``questions`` and ``question_choices`` tables."""

    @staticmethod
    def _map_orm_to_domain(orm: QuestionORM) -> Question:
        return Question(
            question_id=orm.question_id,
            text=orm.text,
            grade=orm.grade,
            subject=orm.subject,
            module=orm.module,
            choices=[
                Choice(text=c.text, is_correct=c.is_correct, order=c.display_order)
                for c in orm.choices
            ],
            correct_answers=list(orm.correct_answers or []),
            answer_type=AnswerType(orm.answer_type),
            difficulty=Difficulty(orm.difficulty),
            is_active=orm.is_active,
            created_by=orm.created_by,
            approved_by=orm.approved_by,
            approved_at=orm.approved_at,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    @staticmethod
    def _apply_domain(orm: QuestionORM, question: Question) -> None:
        orm.text = question.text
        orm.grade = question.grade
        orm.subject = question.subject
        orm.module = question.module
        orm.answer_type = question.answer_type.value
        orm.correct_answers = list(question.correct_answers)
        orm.difficulty = question.difficulty.value
        orm.is_active = question.is_active
        orm.created_by = question.created_by
        orm.approved_by = question.approved_by
        orm.approved_at = question.approved_at
        orm.choices = [
            QuestionChoiceORM(position=i, text=c.text, is_correct=c.is_correct, display_order=c.order)
            for i, c in enumerate(question.choices)
        ]

    async def get_by_id(self, question_id: str) -> Optional[Question]:
        if not question_id:
            logger.warning("Attempted to get question with empty ID")
            return None
        try:
            async with self.async_session() as session:
                result = await session.execute(
                    select(QuestionORM).where(QuestionORM.question_id == question_id)
                )
                orm = result.scalar_one_or_none()
                return self._map_orm_to_domain(orm) if orm else None
        except Exception as e:
            raise RepositoryError(f"Database error retrieving question {question_id}", original_exception=e)

    async def find_active_approved(self, question_ids: Iterable[str]) -> List[Question]:
        ids = list(dict.fromkeys(question_ids))
        if not ids:
            return []
        try:
            async with self.async_session() as session:
                result = await session.execute(
                    select(QuestionORM).where(
                        QuestionORM.question_id.in_(ids),
                        QuestionORM.is_active.is_(True),
                        QuestionORM.approved_by.isnot(None),
                    )
                )
                return [self._map_orm_to_domain(orm) for orm in result.scalars().all()]
        except Exception as e:
            raise RepositoryError("Database error resolving questions", original_exception=e)

    async def search(
        self,
        grade: Optional[str] = None,
        subject: Optional[str] = None,
        modules: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
        limit: int = 100
    ) -> List[Question]:
        stmt = select(QuestionORM).where(
            QuestionORM.is_active.is_(True),
            QuestionORM.approved_by.isnot(None),
        )
        if grade:
            stmt = stmt.where(QuestionORM.grade == grade)
        if subject:
            stmt = stmt.where(QuestionORM.subject == subject)
        if modules:
            stmt = stmt.where(QuestionORM.module.in_(modules))
        if difficulty:
            stmt = stmt.where(QuestionORM.difficulty == difficulty)
        stmt = stmt.order_by(QuestionORM.created_at.desc()).limit(limit)

        try:
            async with self.async_session() as session:
                result = await session.execute(stmt)
                return [self._map_orm_to_domain(orm) for orm in result.scalars().all()]
        except Exception as e:
            raise RepositoryError("Database error searching questions", original_exception=e)

    async def save(self, question: Question) -> Question:
        try:
            async with self.async_session() as session:
                async with session.begin():
                    result = await session.execute(
                        select(QuestionORM).where(QuestionORM.question_id == question.question_id)
                    )
                    orm = result.scalar_one_or_none()
                    if orm is None:
                        orm = QuestionORM(question_id=question.question_id, created_at=question.created_at)
                        session.add(orm)
                    self._apply_domain(orm, question)
            return question
        except Exception as e:
            raise RepositoryError(f"Failed to save question {question.question_id}", original_exception=e)

    async def approve(self, question_id: str, approver_id: str, at: datetime) -> Optional[Question]:
        try:
            async with self.async_session() as session:
                async with session.begin():
                    result = await session.execute(
                        select(QuestionORM).where(QuestionORM.question_id == question_id)
                    )
                    orm = result.scalar_one_or_none()
                    if orm is None:
                        return None
                    orm.approved_by = approver_id
                    orm.approved_at = at
                    orm.updated_at = at
                    await session.flush()
                    return self._map_orm_to_domain(orm)
        except Exception as e:
            raise RepositoryError(f"Failed to approve question {question_id}", original_exception=e)

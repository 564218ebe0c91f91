"""
SQLAlchemy ORM models for the question bank.

This module defines:
- QuestionORM: a question bank item
- QuestionChoiceORM: an answer choice, ordered by ``position``
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, String, Text, Index
from sqlalchemy.orm import relationship

from thinkpro.common.clock import utcnow
from thinkpro.database.base import ModelBase, UTCDateTime


class QuestionORM(ModelBase):
    """Model for question bank items."""
    __tablename__ = 'questions'

    question_id = Column(String(64), primary_key=True)
    text = Column(Text, nullable=False)
    grade = Column(String(20), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    module = Column(String(255), nullable=False)
    answer_type = Column(String(20), nullable=False, default="radio")
    correct_answers = Column(JSON, nullable=False, default=list)
    difficulty = Column(String(20), nullable=False, default="Medium")
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(64), nullable=True)
    approved_by = Column(String(64), nullable=True)
    approved_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    choices = relationship(
        "QuestionChoiceORM",
        order_by="QuestionChoiceORM.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index('idx_questions_grade_subject', grade, subject),
    )


class QuestionChoiceORM(ModelBase):
    """Model for answer choices of a question."""
    __tablename__ = 'question_choices'

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(
        String(64),
        ForeignKey('questions.question_id', ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)

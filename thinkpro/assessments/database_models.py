"""
SQLAlchemy ORM models for assessments.

This module defines the database models for the assessment core:
- AssessmentORM: an assessment definition (soft-deleted via ``is_active``)
- AssessmentQuestionORM: ordered question placements with marks
- AssessmentTargetORM: ordered target cohorts
- AttemptORM: one row per (assessment, student), optimistic-locked by ``version``
- AttemptAnswerORM: ordered answer slots of an attempt
- NotificationORM: notification records emitted on publish
"""

from sqlalchemy import (
    Boolean, Column, Float, ForeignKey, Index, Integer, JSON, String, Text
)
from sqlalchemy.orm import relationship
from sqlalchemy.schema import UniqueConstraint

from thinkpro.common.clock import utcnow
from thinkpro.database.base import ModelBase, UTCDateTime


class AssessmentORM(ModelBase):
    """Model for assessment definitions."""
    __tablename__ = 'assessments'

    assessment_id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    instructions = Column(Text, nullable=False, default="")
    grade = Column(String(20), nullable=False)
    subject = Column(String(255), nullable=False)
    modules = Column(JSON, nullable=False, default=list)
    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=False)
    duration = Column(Integer, nullable=False)
    total_marks = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="draft", index=True)
    school_id = Column(String(64), nullable=False, index=True)
    created_by = Column(String(64), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    questions = relationship(
        "AssessmentQuestionORM",
        order_by="AssessmentQuestionORM.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    targets = relationship(
        "AssessmentTargetORM",
        order_by="AssessmentTargetORM.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index('idx_assessments_school_created', school_id, created_at),
        Index('idx_assessments_open_window', status, start_date, end_date),
    )


class AssessmentQuestionORM(ModelBase):
    """Model for question placements within an assessment."""
    __tablename__ = 'assessment_questions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    assessment_id = Column(
        String(64),
        ForeignKey('assessments.assessment_id', ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False)
    question_id = Column(String(64), ForeignKey('questions.question_id'), nullable=False)
    display_order = Column(Integer, nullable=False)
    marks = Column(Integer, nullable=False, default=1)


class AssessmentTargetORM(ModelBase):
    """Model for target cohorts of an assessment."""
    __tablename__ = 'assessment_targets'

    id = Column(Integer, primary_key=True, autoincrement=True)
    assessment_id = Column(
        String(64),
        ForeignKey('assessments.assessment_id', ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False)
    grade = Column(String(20), nullable=False)
    sections = Column(JSON, nullable=False, default=list)


class AttemptORM(ModelBase):
    """
    Model for student attempts.

    The version counter is managed by the repository (no generator), so an
    answer-only write still bumps it and issues a guarded UPDATE.
    """
    __tablename__ = 'assessment_attempts'

    attempt_id = Column(String(64), primary_key=True)
    assessment_id = Column(
        String(64),
        ForeignKey('assessments.assessment_id'),
        nullable=False
    )
    student_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="in_progress", index=True)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    total_marks_obtained = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0.0)
    grade = Column(String(4), nullable=True)
    time_spent = Column(Integer, nullable=False, default=0)
    submitted_at = Column(UTCDateTime, nullable=True, index=True)
    is_submitted = Column(Boolean, nullable=False, default=False)
    auto_submitted = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    answers = relationship(
        "AttemptAnswerORM",
        order_by="AttemptAnswerORM.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint('assessment_id', 'student_id'),
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }


class AttemptAnswerORM(ModelBase):
    """Model for the answer slots of an attempt."""
    __tablename__ = 'attempt_answers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(
        String(64),
        ForeignKey('assessment_attempts.attempt_id', ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False)
    question_id = Column(String(64), nullable=False)
    selected_answers = Column(JSON, nullable=False, default=list)
    is_correct = Column(Boolean, nullable=False, default=False)
    marks_obtained = Column(Integer, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0)


class NotificationORM(ModelBase):
    """Model for notification records."""
    __tablename__ = 'notifications'

    notification_id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    target_audience = Column(JSON, nullable=False, default=list)
    related_assessment_id = Column(
        String(64),
        ForeignKey('assessments.assessment_id'),
        nullable=True,
        index=True
    )
    sent_by = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default="draft")
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

"""Initial assessment schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Question bank
    op.create_table(
        'questions',
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('grade', sa.String(20), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('module', sa.String(255), nullable=False),
        sa.Column('answer_type', sa.String(20), nullable=False),
        sa.Column('correct_answers', sa.JSON(), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('approved_by', sa.String(64), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('question_id', name='pk_questions'),
    )
    op.create_index('ix_questions_grade', 'questions', ['grade'])
    op.create_index('idx_questions_grade_subject', 'questions', ['grade', 'subject'])

    op.create_table(
        'question_choices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ['question_id'], ['questions.question_id'],
            name='fk_question_choices_question_id_questions', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_question_choices'),
    )
    op.create_index('ix_question_choices_question_id', 'question_choices', ['question_id'])

    # Assessment definitions
    op.create_table(
        'assessments',
        sa.Column('assessment_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=False),
        sa.Column('grade', sa.String(20), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('modules', sa.JSON(), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('total_marks', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('school_id', sa.String(64), nullable=False),
        sa.Column('created_by', sa.String(64), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('assessment_id', name='pk_assessments'),
    )
    op.create_index('ix_assessments_status', 'assessments', ['status'])
    op.create_index('ix_assessments_school_id', 'assessments', ['school_id'])
    op.create_index('ix_assessments_created_by', 'assessments', ['created_by'])
    op.create_index('idx_assessments_school_created', 'assessments', ['school_id', 'created_at'])
    op.create_index('idx_assessments_open_window', 'assessments', ['status', 'start_date', 'end_date'])

    op.create_table(
        'assessment_questions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('assessment_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('marks', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ['assessment_id'], ['assessments.assessment_id'],
            name='fk_assessment_questions_assessment_id_assessments', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['question_id'], ['questions.question_id'],
            name='fk_assessment_questions_question_id_questions'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_assessment_questions'),
    )
    op.create_index('ix_assessment_questions_assessment_id', 'assessment_questions', ['assessment_id'])

    op.create_table(
        'assessment_targets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('assessment_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('grade', sa.String(20), nullable=False),
        sa.Column('sections', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(
            ['assessment_id'], ['assessments.assessment_id'],
            name='fk_assessment_targets_assessment_id_assessments', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_assessment_targets'),
    )
    op.create_index('ix_assessment_targets_assessment_id', 'assessment_targets', ['assessment_id'])

    # Attempts
    op.create_table(
        'assessment_attempts',
        sa.Column('attempt_id', sa.String(64), nullable=False),
        sa.Column('assessment_id', sa.String(64), nullable=False),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_marks_obtained', sa.Integer(), nullable=False),
        sa.Column('percentage', sa.Float(), nullable=False),
        sa.Column('grade', sa.String(4), nullable=True),
        sa.Column('time_spent', sa.Integer(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_submitted', sa.Boolean(), nullable=False),
        sa.Column('auto_submitted', sa.Boolean(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['assessment_id'], ['assessments.assessment_id'],
            name='fk_assessment_attempts_assessment_id_assessments'
        ),
        sa.PrimaryKeyConstraint('attempt_id', name='pk_assessment_attempts'),
        sa.UniqueConstraint('assessment_id', 'student_id', name='uq_assessment_attempts_assessment_id'),
    )
    op.create_index('ix_assessment_attempts_student_id', 'assessment_attempts', ['student_id'])
    op.create_index('ix_assessment_attempts_status', 'assessment_attempts', ['status'])
    op.create_index('ix_assessment_attempts_submitted_at', 'assessment_attempts', ['submitted_at'])

    op.create_table(
        'attempt_answers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('attempt_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('selected_answers', sa.JSON(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('marks_obtained', sa.Integer(), nullable=False),
        sa.Column('time_spent', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ['attempt_id'], ['assessment_attempts.attempt_id'],
            name='fk_attempt_answers_attempt_id_assessment_attempts', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_attempt_answers'),
    )
    op.create_index('ix_attempt_answers_attempt_id', 'attempt_answers', ['attempt_id'])

    # Notifications
    op.create_table(
        'notifications',
        sa.Column('notification_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(20), nullable=False),
        sa.Column('target_audience', sa.JSON(), nullable=False),
        sa.Column('related_assessment_id', sa.String(64), nullable=True),
        sa.Column('sent_by', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['related_assessment_id'], ['assessments.assessment_id'],
            name='fk_notifications_related_assessment_id_assessments'
        ),
        sa.PrimaryKeyConstraint('notification_id', name='pk_notifications'),
    )
    op.create_index('ix_notifications_related_assessment_id', 'notifications', ['related_assessment_id'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('attempt_answers')
    op.drop_table('assessment_attempts')
    op.drop_table('assessment_targets')
    op.drop_table('assessment_questions')
    op.drop_table('assessments')
    op.drop_table('question_choices')
    op.drop_table('questions')

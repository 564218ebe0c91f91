"""
FastAPI dependency wiring for the assessment services.

Every collaborator is its own dependency so tests can swap in memory
repositories and a frozen clock through ``app.dependency_overrides``.
"""

from fastapi import Depends

from thinkpro.assessments.analytics import AnalyticsAggregator
from thinkpro.assessments.attempt_engine import AttemptEngine
from thinkpro.assessments.notifications import Notifier, SqlNotificationSink
from thinkpro.assessments.repositories import AssessmentRepository, AttemptRepository
from thinkpro.assessments.services import AssessmentService
from thinkpro.assessments.sql_repositories import SqlAssessmentRepository, SqlAttemptRepository
from thinkpro.common.clock import Clock, SystemClock
from thinkpro.config import settings
from thinkpro.domain.questions.repository import QuestionRepository
from thinkpro.domain.questions.sql_repository import SqlQuestionRepository

_clock = SystemClock()


def get_clock() -> Clock:
    return _clock


def get_question_repository() -> QuestionRepository:
    return SqlQuestionRepository()


def get_assessment_repository() -> AssessmentRepository:
    return SqlAssessmentRepository()


def get_attempt_repository() -> AttemptRepository:
    return SqlAttemptRepository()


def get_notifier() -> Notifier:
    return SqlNotificationSink()


def get_assessment_service(
    assessments: AssessmentRepository = Depends(get_assessment_repository),
    attempts: AttemptRepository = Depends(get_attempt_repository),
    questions: QuestionRepository = Depends(get_question_repository),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock)
) -> AssessmentService:
    return AssessmentService(
        assessments=assessments,
        attempts=attempts,
        questions=questions,
        notifier=notifier,
        clock=clock,
        default_page_size=settings.DEFAULT_PAGE_SIZE,
        max_page_size=settings.MAX_PAGE_SIZE,
    )


def get_attempt_engine(
    assessments: AssessmentRepository = Depends(get_assessment_repository),
    attempts: AttemptRepository = Depends(get_attempt_repository),
    questions: QuestionRepository = Depends(get_question_repository),
    clock: Clock = Depends(get_clock)
) -> AttemptEngine:
    return AttemptEngine(
        assessments=assessments,
        attempts=attempts,
        questions=questions,
        clock=clock,
        write_retries=settings.ATTEMPT_WRITE_RETRIES,
    )


def get_analytics_aggregator(
    attempts: AttemptRepository = Depends(get_attempt_repository)
) -> AnalyticsAggregator:
    return AnalyticsAggregator(attempts)

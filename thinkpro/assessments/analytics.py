"""
Assessment Analytics

Attempt statistics for one assessment: counts per outcome, average score
and percentage, completion rate and letter grade distribution.

Averages are taken over every attempt, with in-progress attempts counting
as zero. Timed-out attempts count toward the completion-rate denominator
but not toward completed attempts.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from thinkpro.assessments.models import Assessment, Attempt, AttemptStatus
from thinkpro.assessments.repositories import AttemptRepository
from thinkpro.assessments.scoring import GRADE_SCALE, compute_percentage
from thinkpro.common.logger import get_logger, log_execution_time

logger = get_logger(__name__)

UNGRADED = "ungraded"


@dataclass
class AssessmentAnalytics:
    """Aggregated attempt statistics for an assessment."""
    total_attempts: int = 0
    completed_attempts: int = 0
    timed_out_attempts: int = 0
    in_progress_attempts: int = 0
    average_score: float = 0.0
    average_percentage: float = 0.0
    completion_rate: float = 0.0
    grade_distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAttempts": self.total_attempts,
            "completedAttempts": self.completed_attempts,
            "timedOutAttempts": self.timed_out_attempts,
            "inProgressAttempts": self.in_progress_attempts,
            "averageScore": self.average_score,
            "averagePercentage": self.average_percentage,
            "completionRate": self.completion_rate,
            "gradeDistribution": dict(self.grade_distribution),
        }


def _unrounded_percentage(attempt: Attempt, total_marks: float) -> float:
    if attempt.status == AttemptStatus.IN_PROGRESS:
        return 0.0
    return compute_percentage(attempt.total_marks_obtained, total_marks)


def summarize(attempts: Iterable[Attempt], total_marks: float) -> AssessmentAnalytics:
    """
    Aggregate a set of attempts.

    Percentages are recomputed from the obtained marks so the mean is taken
    over unrounded values and rounded once.

    Args:
        attempts: Every attempt of one assessment
        total_marks: The assessment's total marks

    Returns:
        The aggregated statistics
    """
    attempts = list(attempts)
    total = len(attempts)
    if total == 0:
        return AssessmentAnalytics()

    completed = sum(1 for a in attempts if a.status.is_done)
    timed_out = sum(1 for a in attempts if a.status == AttemptStatus.TIMEOUT)
    in_progress = sum(1 for a in attempts if a.status == AttemptStatus.IN_PROGRESS)

    tally = Counter(a.grade or UNGRADED for a in attempts)
    distribution = {grade: tally[grade] for grade in GRADE_SCALE if tally[grade]}
    if tally[UNGRADED]:
        distribution[UNGRADED] = tally[UNGRADED]

    return AssessmentAnalytics(
        total_attempts=total,
        completed_attempts=completed,
        timed_out_attempts=timed_out,
        in_progress_attempts=in_progress,
        average_score=round(sum(a.total_marks_obtained for a in attempts) / total, 2),
        average_percentage=round(sum(_unrounded_percentage(a, total_marks) for a in attempts) / total, 2),
        completion_rate=round(completed / total * 100, 2),
        grade_distribution=distribution,
    )


class AnalyticsAggregator:
    """Computes analytics by scanning the stored attempts of an assessment."""

    def __init__(self, attempts: AttemptRepository):
        self.attempts = attempts

    @log_execution_time(logger)
    async def analyze(self, assessment: Assessment) -> AssessmentAnalytics:
        attempts = await self.attempts.list_by_assessment(assessment.assessment_id)
        return summarize(attempts, assessment.total_marks)

"""
Assessment core for ThinkPro.

Assessment definitions and their lifecycle, cohort eligibility, the
per-student attempt state machine, scoring and analytics.
"""

from thinkpro.assessments.models import (
    Assessment,
    AssessmentQuestion,
    AssessmentStatus,
    Attempt,
    AttemptAnswer,
    AttemptStatus,
    TargetCohort
)
from thinkpro.assessments.eligibility import is_eligible
from thinkpro.assessments.scoring import grade_for_percentage

__all__ = [
    'Assessment',
    'AssessmentQuestion',
    'AssessmentStatus',
    'Attempt',
    'AttemptAnswer',
    'AttemptStatus',
    'TargetCohort',
    'is_eligible',
    'grade_for_percentage',
]

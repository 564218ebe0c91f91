"""
Eligibility Resolver

Single source of truth for whether a student may see and attempt an
assessment. Both the availability listing and attempt creation call
``is_eligible``.
"""

from typing import Optional

from thinkpro.assessments.models import Assessment, TargetCohort
from thinkpro.common.auth.user import StudentProfile


def matching_cohort(student: StudentProfile, assessment: Assessment) -> Optional[TargetCohort]:
    """
    Find the target cohort that admits the student.

    A cohort admits a student when the grades match and either the cohort
    lists no sections, the student has no section, or the student's section
    is listed.

    Returns:
        The first admitting cohort, or None
    """
    section = (student.section or "").strip()
    for cohort in assessment.target_students:
        if cohort.grade != student.grade:
            continue
        if cohort.all_sections or not section or section in cohort.sections:
            return cohort
    return None


def is_eligible(student: StudentProfile, assessment: Assessment) -> bool:
    """
    Decide whether a student may attempt an assessment.

    Args:
        student: The student's cohort coordinates
        assessment: The assessment

    Returns:
        True if the student belongs to the owning school and a target cohort
    """
    if student.school_id != assessment.school_id:
        return False
    return matching_cohort(student, assessment) is not None

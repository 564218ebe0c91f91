"""
Memory Assessment Repositories

In-memory implementations of the assessment and attempt repositories for
development and testing. They honour the same guarantees as the SQL
implementations: one attempt per (assessment, student) and version-checked
attempt writes.
"""

import copy
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from thinkpro.assessments.models import Assessment, AssessmentStatus, Attempt, AttemptStatus
from thinkpro.assessments.repositories import (
    AssessmentRepository,
    AttemptRepository,
    ConcurrentModificationError,
    DuplicateAttemptError
)


class MemoryAssessmentRepository(AssessmentRepository):
    """Dictionary-backed assessment repository."""

    def __init__(self, initial_data: Optional[List[Assessment]] = None):
        self._assessments: Dict[str, Assessment] = {}
        for assessment in initial_data or []:
            self._assessments[assessment.assessment_id] = copy.deepcopy(assessment)

    async def get_by_id(self, assessment_id: str) -> Optional[Assessment]:
        assessment = self._assessments.get(assessment_id)
        return copy.deepcopy(assessment) if assessment else None

    async def save(self, assessment: Assessment) -> Assessment:
        self._assessments[assessment.assessment_id] = copy.deepcopy(assessment)
        return assessment

    async def list(
        self,
        school_ids: Optional[Sequence[str]] = None,
        status: Optional[AssessmentStatus] = None,
        grade: Optional[str] = None,
        offset: int = 0,
        limit: int = 10
    ) -> Tuple[List[Assessment], int]:
        matches = [
            a for a in self._assessments.values()
            if a.is_active
            and (school_ids is None or a.school_id in school_ids)
            and (status is None or a.status == status)
            and (grade is None or a.grade == grade)
        ]
        matches.sort(key=lambda a: a.created_at, reverse=True)
        page = matches[offset:offset + limit]
        return [copy.deepcopy(a) for a in page], len(matches)

    async def list_open(self, school_id: str, now: datetime) -> List[Assessment]:
        matches = [
            a for a in self._assessments.values()
            if a.is_active
            and a.status == AssessmentStatus.PUBLISHED
            and a.school_id == school_id
            and a.is_open(now)
        ]
        matches.sort(key=lambda a: a.start_date)
        return [copy.deepcopy(a) for a in matches]


class MemoryAttemptRepository(AttemptRepository):
    """Dictionary-backed attempt repository."""

    def __init__(self):
        self._attempts: Dict[str, Attempt] = {}

    def _find(self, assessment_id: str, student_id: str) -> Optional[Attempt]:
        return next(
            (a for a in self._attempts.values()
             if a.assessment_id == assessment_id and a.student_id == student_id),
            None
        )

    async def get_by_id(self, attempt_id: str) -> Optional[Attempt]:
        attempt = self._attempts.get(attempt_id)
        return copy.deepcopy(attempt) if attempt else None

    async def get_for_student(self, assessment_id: str, student_id: str) -> Optional[Attempt]:
        attempt = self._find(assessment_id, student_id)
        return copy.deepcopy(attempt) if attempt else None

    async def create(self, attempt: Attempt) -> Attempt:
        if self._find(attempt.assessment_id, attempt.student_id) is not None:
            raise DuplicateAttemptError(attempt.assessment_id, attempt.student_id)
        attempt.version = 1
        self._attempts[attempt.attempt_id] = copy.deepcopy(attempt)
        return attempt

    async def save(self, attempt: Attempt) -> Attempt:
        stored = self._attempts.get(attempt.attempt_id)
        if stored is None or stored.version != attempt.version:
            raise ConcurrentModificationError(attempt.attempt_id, attempt.version)
        attempt.version += 1
        self._attempts[attempt.attempt_id] = copy.deepcopy(attempt)
        return attempt

    async def list_by_assessment(self, assessment_id: str) -> List[Attempt]:
        return [
            copy.deepcopy(a) for a in self._attempts.values()
            if a.assessment_id == assessment_id
        ]

    async def count_by_assessment(self, assessment_id: str) -> int:
        return sum(1 for a in self._attempts.values() if a.assessment_id == assessment_id)

    async def list_by_student(
        self,
        student_id: str,
        statuses: Optional[Sequence[AttemptStatus]] = None
    ) -> List[Attempt]:
        matches = [
            a for a in self._attempts.values()
            if a.student_id == student_id and (statuses is None or a.status in statuses)
        ]
        matches.sort(key=lambda a: a.submitted_at or a.created_at, reverse=True)
        return [copy.deepcopy(a) for a in matches]

    async def delete(self, attempt_id: str) -> bool:
        return self._attempts.pop(attempt_id, None) is not None

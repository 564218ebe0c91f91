"""
Assessment Repositories

This module defines the repository interfaces for assessment definitions
and student attempts, plus the storage-level errors the services translate.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from thinkpro.assessments.models import Assessment, AssessmentStatus, Attempt, AttemptStatus
from thinkpro.database.repository import RepositoryError


class DuplicateAttemptError(RepositoryError):
    """An attempt already exists for the (assessment, student) pair."""

    log_level = logging.WARNING

    def __init__(self, assessment_id: str, student_id: str, original_exception: Optional[Exception] = None):
        super().__init__(
            f"Attempt already exists for assessment {assessment_id} and student {student_id}",
            original_exception=original_exception
        )
        self.assessment_id = assessment_id
        self.student_id = student_id


class ConcurrentModificationError(RepositoryError):
    """The attempt was written by someone else since it was read."""

    log_level = logging.WARNING

    def __init__(self, attempt_id: str, expected_version: int, original_exception: Optional[Exception] = None):
        super().__init__(
            f"Attempt {attempt_id} was modified concurrently (expected version {expected_version})",
            original_exception=original_exception
        )
        self.attempt_id = attempt_id
        self.expected_version = expected_version


class AssessmentRepository(ABC):
    """
    Abstract repository interface for assessment definitions.

    Child collections (questions, target cohorts) are stored and loaded with
    their parent and keep their order.
    """

    @abstractmethod
    async def get_by_id(self, assessment_id: str) -> Optional[Assessment]:
        """
        Retrieve an assessment by its ID, active or not.

        Args:
            assessment_id: Unique identifier of the assessment

        Returns:
            The assessment if found, None otherwise
        """
        pass

    @abstractmethod
    async def save(self, assessment: Assessment) -> Assessment:
        """
        Create or replace an assessment together with its child rows.

        Args:
            assessment: The assessment to persist

        Returns:
            The persisted assessment
        """
        pass

    @abstractmethod
    async def list(
        self,
        school_ids: Optional[Sequence[str]] = None,
        status: Optional[AssessmentStatus] = None,
        grade: Optional[str] = None,
        offset: int = 0,
        limit: int = 10
    ) -> Tuple[List[Assessment], int]:
        """
        List active assessments, newest first.

        Args:
            school_ids: Restrict to these schools; None means every school
            status: Optional status filter
            grade: Optional grade filter
            offset: Number of rows to skip
            limit: Maximum number of rows to return

        Returns:
            The page of assessments and the total matching count
        """
        pass

    @abstractmethod
    async def list_open(self, school_id: str, now: datetime) -> List[Assessment]:
        """
        List published, active assessments of a school whose window contains ``now``,
        ordered by start date ascending.
        """
        pass


class AttemptRepository(ABC):
    """Abstract repository interface for student attempts."""

    @abstractmethod
    async def get_by_id(self, attempt_id: str) -> Optional[Attempt]:
        pass

    @abstractmethod
    async def get_for_student(self, assessment_id: str, student_id: str) -> Optional[Attempt]:
        """
        Retrieve the attempt of a student for an assessment.

        Returns:
            The attempt if one exists, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, attempt: Attempt) -> Attempt:
        """
        Insert a new attempt.

        Args:
            attempt: The attempt to insert

        Returns:
            The stored attempt with its initial version

        Raises:
            DuplicateAttemptError: If the student already has an attempt for the assessment
        """
        pass

    @abstractmethod
    async def save(self, attempt: Attempt) -> Attempt:
        """
        Write an attempt back if nobody else has written it since it was read.

        Args:
            attempt: The modified attempt, carrying the version it was read at

        Returns:
            The stored attempt with its new version

        Raises:
            ConcurrentModificationError: If the stored version differs
        """
        pass

    @abstractmethod
    async def list_by_assessment(self, assessment_id: str) -> List[Attempt]:
        pass

    @abstractmethod
    async def count_by_assessment(self, assessment_id: str) -> int:
        pass

    @abstractmethod
    async def list_by_student(
        self,
        student_id: str,
        statuses: Optional[Sequence[AttemptStatus]] = None
    ) -> List[Attempt]:
        """
        List a student's attempts, most recently submitted first.

        Args:
            student_id: The student
            statuses: Optional status filter

        Returns:
            Matching attempts
        """
        pass

    @abstractmethod
    async def delete(self, attempt_id: str) -> bool:
        """
        Remove an attempt (administrative cleanup).

        Returns:
            True if the attempt was deleted, False if it did not exist
        """
        pass

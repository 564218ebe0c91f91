"""
Question Repository Module

This module defines the repository interface for accessing and storing
Question entities.
"""

import abc
from datetime import datetime
from typing import Iterable, List, Optional

from .model import Question


class QuestionRepository(abc.ABC):
    """
    Abstract base class for question repositories.

    This interface defines the contract for accessing and storing Question entities.
    """

    @abc.abstractmethod
    async def get_by_id(self, question_id: str) -> Optional[Question]:
        """
        Get a question by its ID.

        Args:
            question_id: The ID of the question to retrieve

        Returns:
            The Question entity if found, None otherwise
        """
        pass

    @abc.abstractmethod
    async def find_active_approved(self, question_ids: Iterable[str]) -> List[Question]:
        """
        Resolve ids to questions that are both active and approved.

        Unknown, inactive and unapproved ids are silently left out, so the
        caller can compare cardinalities to detect invalid references.

        Args:
            question_ids: IDs to resolve

        Returns:
            The matching questions
        """
        pass

    @abc.abstractmethod
    async def search(
        self,
        grade: Optional[str] = None,
        subject: Optional[str] = None,
        modules: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
        limit: int = 100
    ) -> List[Question]:
        """
        List active, approved questions matching the filters, newest first.

        Args:
            grade: Grade level filter
            subject: Subject filter
            modules: Module names, any of which may match
            difficulty: Difficulty label filter
            limit: Maximum number of questions to return

        Returns:
            List of matching Question entities
        """
        pass

    @abc.abstractmethod
    async def save(self, question: Question) -> Question:
        """
        Save a question.

        If the question doesn't exist, it will be created.
        If it already exists, it will be updated.

        Args:
            question: The Question entity to save

        Returns:
            The saved Question entity
        """
        pass

    @abc.abstractmethod
    async def approve(self, question_id: str, approver_id: str, at: datetime) -> Optional[Question]:
        """
        Mark a question as approved.

        Args:
            question_id: The question to approve
            approver_id: The approving user
            at: Approval time

        Returns:
            The updated question, or None if it does not exist
        """
        pass

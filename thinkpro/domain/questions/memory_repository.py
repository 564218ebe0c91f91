"""
Memory Question Repository Module

This module provides an in-memory implementation of the QuestionRepository
interface for development and testing purposes.
"""

import copy
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .model import Question
from .repository import QuestionRepository


class MemoryQuestionRepository(QuestionRepository):
    """
    In-memory implementation of the QuestionRepository.

    This implementation stores questions in memory and is intended for
    development and testing purposes only. Entities are copied on the way in
    and out so callers cannot mutate stored state.
    """

    def __init__(self, initial_data: Optional[List[Question]] = None):
        """
        Initialize the repository with optional initial data.

        Args:
            initial_data: Optional list of Question entities to initialize with
        """
        self._questions: Dict[str, Question] = {}

        if initial_data:
            for question in initial_data:
                self._questions[question.question_id] = copy.deepcopy(question)

    async def get_by_id(self, question_id: str) -> Optional[Question]:
        question = self._questions.get(question_id)
        return copy.deepcopy(question) if question else None

    async def find_active_approved(self, question_ids: Iterable[str]) -> List[Question]:
        result = []
        for question_id in dict.fromkeys(question_ids):
            question = self._questions.get(question_id)
            if question and question.is_usable:
                result.append(copy.deepcopy(question))
        return result

    async def search(
        self,
        grade: Optional[str] = None,
        subject: Optional[str] = None,
        modules: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
        limit: int = 100
    ) -> List[Question]:
        result = [
            question for question in self._questions.values()
            if question.is_usable
            and (grade is None or question.grade == grade)
            and (subject is None or question.subject == subject)
            and (not modules or question.module in modules)
            and (difficulty is None or question.difficulty.value == difficulty)
        ]
        result.sort(key=lambda q: q.created_at, reverse=True)
        return [copy.deepcopy(q) for q in result[:limit]]

    async def save(self, question: Question) -> Question:
        self._questions[question.question_id] = copy.deepcopy(question)
        return question

    async def approve(self, question_id: str, approver_id: str, at: datetime) -> Optional[Question]:
        question = self._questions.get(question_id)
        if question is None:
            return None
        question.approve(approver_id, at)
        return copy.deepcopy(question)

    def get_all(self) -> List[Question]:
        """
        Get all questions.

        This method is specific to the memory implementation and not part of
        the QuestionRepository interface.
        """
        return [copy.deepcopy(q) for q in self._questions.values()]

    def clear(self) -> None:
        self._questions.clear()

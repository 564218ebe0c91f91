"""
Question domain module for ThinkPro.

This module contains the domain model and repositories for the question
bank the assessment engine scores against.
"""

from .model import GRADE_LEVELS, AnswerType, Choice, Difficulty, Question
from .repository import QuestionRepository
from .memory_repository import MemoryQuestionRepository

__all__ = [
    'GRADE_LEVELS',
    'AnswerType',
    'Choice',
    'Difficulty',
    'Question',
    'QuestionRepository',
    'MemoryQuestionRepository',
]

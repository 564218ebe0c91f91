"""
Question Domain Model Module

This module defines the question bank entities the assessment engine
scores against. Questions are read-only ground truth for correctness
checks; an assessment may only reference questions that are active and
approved.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from thinkpro.common.clock import ensure_utc, utcnow

GRADE_LEVELS = tuple(f"Grade {n}" for n in range(1, 11))


class AnswerType(enum.Enum):
    """How a question is answered in the client."""
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    MULTICHOICE = "multichoice"


class Difficulty(enum.Enum):
    """Difficulty label of a question."""
    EASY = "Easy"
    MEDIUM = "Medium"
    TOUGH = "Tough"


@dataclass
class Choice:
    """A single answer choice."""
    text: str
    is_correct: bool = False
    order: int = 0

    def to_dict(self, include_answers: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {"text": self.text, "order": self.order}
        if include_answers:
            data["isCorrect"] = self.is_correct
        return data


@dataclass
class Question:
    """
    Represents a question in the ThinkPro question bank.

    Attributes:
        question_id: Unique identifier for the question
        text: The question text
        grade: Grade level label
        subject: Subject name
        module: Module (topic) name within the subject
        answer_type: How the question is answered
        choices: Answer choices in display order
        correct_answers: Indices into ``choices`` that form the correct answer
        difficulty: Difficulty label
        is_active: Inactive questions are never offered or accepted
        created_by: Creator user id
        approved_by: Approver user id; a question is approved iff this is set
        approved_at: When the question was approved
        created_at: When the question was created
        updated_at: When the question was last updated
    """
    question_id: str
    text: str
    grade: str
    subject: str
    module: str
    choices: List[Choice]
    correct_answers: List[int]
    answer_type: AnswerType = AnswerType.RADIO
    difficulty: Difficulty = Difficulty.MEDIUM
    is_active: bool = True
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls,
               text: str,
               grade: str,
               subject: str,
               module: str,
               choices: List[Choice],
               correct_answers: List[int],
               answer_type: AnswerType = AnswerType.RADIO,
               difficulty: Difficulty = Difficulty.MEDIUM,
               created_by: Optional[str] = None) -> 'Question':
        """
        Create a new, unapproved question with a generated ID.

        Args:
            text: The question text
            grade: Grade level label
            subject: Subject name
            module: Module name
            choices: Answer choices
            correct_answers: Indices of the correct choices
            answer_type: How the question is answered
            difficulty: Difficulty label
            created_by: Creator user id

        Returns:
            A new Question instance
        """
        return cls(
            question_id=str(uuid.uuid4()),
            text=text,
            grade=grade,
            subject=subject,
            module=module,
            choices=choices,
            correct_answers=correct_answers,
            answer_type=answer_type,
            difficulty=difficulty,
            created_by=created_by,
        )

    @property
    def is_approved(self) -> bool:
        return self.approved_by is not None

    @property
    def is_usable(self) -> bool:
        """Whether the question may be placed in an assessment."""
        return self.is_active and self.is_approved

    def approve(self, approver_id: str, at: Optional[datetime] = None) -> None:
        self.approved_by = approver_id
        self.approved_at = ensure_utc(at) if at else utcnow()
        self.updated_at = self.approved_at

    def to_dict(self, include_answers: bool = True) -> Dict[str, Any]:
        """
        Convert the question to a dictionary.

        Args:
            include_answers: Whether to include the answer key

        Returns:
            Dictionary representation of the question
        """
        data = {
            'questionId': self.question_id,
            'questionText': self.text,
            'grade': self.grade,
            'subject': self.subject,
            'module': self.module,
            'answerType': self.answer_type.value,
            'answerChoices': [c.to_dict(include_answers) for c in self.choices],
            'difficulty': self.difficulty.value,
        }
        if include_answers:
            data.update({
                'correctAnswers': list(self.correct_answers),
                'isActive': self.is_active,
                'createdBy': self.created_by,
                'approvedBy': self.approved_by,
                'approvedAt': self.approved_at.isoformat() if self.approved_at else None,
            })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """
        Create a Question from a snake_case dictionary (e.g. a seed file).

        Args:
            data: Dictionary containing question data

        Returns:
            A Question instance
        """
        choices = [
            Choice(text=c['text'], is_correct=c.get('is_correct', False), order=c.get('order', i))
            for i, c in enumerate(data.get('choices', []))
        ]
        correct = data.get('correct_answers')
        if correct is None:
            correct = [i for i, c in enumerate(choices) if c.is_correct]

        return cls(
            question_id=data.get('question_id') or str(uuid.uuid4()),
            text=data['text'],
            grade=data['grade'],
            subject=data.get('subject', ''),
            module=data.get('module', ''),
            choices=choices,
            correct_answers=list(correct),
            answer_type=AnswerType(data.get('answer_type', AnswerType.RADIO.value)),
            difficulty=Difficulty(data.get('difficulty', Difficulty.MEDIUM.value)),
            is_active=data.get('is_active', True),
            created_by=data.get('created_by'),
            approved_by=data.get('approved_by'),
            approved_at=ensure_utc(data.get('approved_at')),
        )

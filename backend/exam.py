"""Practice exam session.

Answers stay editable until submission; submission needs an answer for
every question and freezes the result. Score is an exact-match count with
no partial credit.
"""

from __future__ import annotations

from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from backend.errors import IncompleteExam
from backend.models import ExamQuestion

OptionStatus = Literal["correct", "incorrect", "unselected"]


class ExamSession(BaseModel):
    """One attempt at a generated exam"""
    questions: List[ExamQuestion] = Field(default_factory=list)
    answers: Dict[int, int] = Field(default_factory=dict)  # question id -> option index
    phase: Literal["in_progress", "submitted"] = "in_progress"

    @property
    def submitted(self) -> bool:
        return self.phase == "submitted"

    @property
    def total(self) -> int:
        return len(self.questions)

    def _question(self, question_id: int) -> ExamQuestion:
        for question in self.questions:
            if question.id == question_id:
                return question
        raise ValueError(f"Unknown question id: {question_id}")

    def select(self, question_id: int, option_index: int) -> None:
        """Record an answer; re-selection overwrites, ignored once submitted."""
        if self.submitted:
            return
        question = self._question(question_id)
        if not 0 <= option_index < len(question.options):
            raise ValueError(f"Option {option_index} out of range for question {question_id}")
        self.answers[question_id] = option_index

    @property
    def can_submit(self) -> bool:
        if self.submitted or not self.questions:
            return False
        return all(q.id in self.answers for q in self.questions)

    def submit(self) -> int:
        """Freeze answers and return the score."""
        if self.submitted:
            return self.score
        if not self.can_submit:
            unanswered = self.total - len(self.answers)
            raise IncompleteExam(f"{unanswered} question(s) still need an answer")
        self.phase = "submitted"
        return self.score

    @property
    def score(self) -> int:
        return sum(1 for q in self.questions if self.answers.get(q.id) == q.correct_answer_index)

    def option_status(self, question_id: int, option_index: int) -> OptionStatus:
        """Annotation shown for an option after submission."""
        question = self._question(question_id)
        if option_index == question.correct_answer_index:
            return "correct"
        if self.answers.get(question_id) == option_index:
            return "incorrect"
        return "unselected"

"""Quiz data model: questions, batches, answer submissions and grades."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, MutableMapping, Sequence

from ..errors import InputValidationError

__all__ = [
    "QuestionKind",
    "Difficulty",
    "Question",
    "QuizBatch",
    "AnswerSubmission",
    "GradeResult",
    "GradeReport",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionKind(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FREE_TEXT = "free_text"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value: "Difficulty | str | None") -> "Difficulty":
        """Coerce user input into a difficulty or reject it."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InputValidationError(
                f"Invalid difficulty level '{value}'. "
                "Choose easy, medium or hard."
            ) from None


@dataclass(frozen=True)
class Question:
    """A single quiz question.

    Multiple-choice questions always carry at least two options and a
    ``correct_answer`` that is one of them verbatim.
    """

    text: str
    kind: QuestionKind
    options: tuple[str, ...] = ()
    correct_answer: str = ""

    @classmethod
    def multiple_choice(
        cls, text: str, options: Sequence[str], correct_answer: str
    ) -> "Question":
        stem = text.strip()
        choices = tuple(options)
        if not stem:
            raise ValueError("question text must be non-empty")
        if len(choices) < 2:
            raise ValueError("multiple-choice questions need >= 2 options")
        if correct_answer not in choices:
            raise ValueError("correct answer must be one of the options")
        return cls(stem, QuestionKind.MULTIPLE_CHOICE, choices, correct_answer)

    @classmethod
    def free_text(cls, text: str, reference_answer: str = "") -> "Question":
        stem = text.strip()
        if not stem:
            raise ValueError("question text must be non-empty")
        return cls(stem, QuestionKind.FREE_TEXT, (), reference_answer)

    def to_dict(self) -> MutableMapping[str, Any]:
        payload: MutableMapping[str, Any] = {
            "question": self.text,
            "type": self.kind.value,
            "correctAnswer": self.correct_answer,
        }
        if self.kind is QuestionKind.MULTIPLE_CHOICE:
            payload["options"] = list(self.options)
        return payload


@dataclass
class QuizBatch:
    """One generated quiz, graded in place by ``grade_batch``."""

    difficulty: Difficulty
    questions: list[Question]
    requested_count: int
    created_at: datetime = field(default_factory=utcnow)
    score: int | None = None
    taken_at: datetime | None = None

    @property
    def achieved_count(self) -> int:
        return len(self.questions)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "difficulty": self.difficulty.value,
            "quiz": [question.to_dict() for question in self.questions],
            "requestedCount": self.requested_count,
            "questionCount": self.achieved_count,
            "createdAt": self.created_at.isoformat(),
            "score": self.score,
            "takenAt": self.taken_at.isoformat() if self.taken_at else None,
        }


@dataclass(frozen=True)
class AnswerSubmission:
    question_index: int
    kind: QuestionKind
    value: str | None = None


@dataclass(frozen=True)
class GradeResult:
    index: int
    is_correct: bool
    feedback: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "questionId": self.index,
            "isCorrect": self.is_correct,
            "feedback": self.feedback,
        }


@dataclass(frozen=True)
class GradeReport:
    results: tuple[GradeResult, ...]
    score: int

    @property
    def correct_count(self) -> int:
        return sum(1 for result in self.results if result.is_correct)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "score": self.score,
        }

"""Quiz data model, response parsing, generation and grading."""

from .models import (
    AnswerSubmission,
    Difficulty,
    GradeReport,
    GradeResult,
    Question,
    QuestionKind,
    QuizBatch,
)
from .parser import parse_quiz_response
from .grading import grade_batch
from .generator import GenerationSettings, QuizGenerator

__all__ = [
    "AnswerSubmission",
    "Difficulty",
    "GenerationSettings",
    "GradeReport",
    "GradeResult",
    "Question",
    "QuestionKind",
    "QuizBatch",
    "QuizGenerator",
    "grade_batch",
    "parse_quiz_response",
]

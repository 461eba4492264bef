"""Study notes and resilient AI quiz generation."""

from .errors import (
    CompletionTimeoutError,
    ConfigError,
    ExhaustedGenerationError,
    FatalProviderError,
    InputValidationError,
    ProviderError,
    QuizlystError,
    RecoverableProviderError,
)
from .quiz import (
    AnswerSubmission,
    Difficulty,
    GenerationSettings,
    GradeReport,
    Question,
    QuestionKind,
    QuizBatch,
    QuizGenerator,
    grade_batch,
    parse_quiz_response,
)
from .session import Session, SessionStore
from .service import NotesResult, StudyService

__version__ = "0.1.0"

__all__ = [
    "AnswerSubmission",
    "CompletionTimeoutError",
    "ConfigError",
    "Difficulty",
    "ExhaustedGenerationError",
    "FatalProviderError",
    "GenerationSettings",
    "GradeReport",
    "InputValidationError",
    "NotesResult",
    "ProviderError",
    "Question",
    "QuestionKind",
    "QuizBatch",
    "QuizGenerator",
    "QuizlystError",
    "RecoverableProviderError",
    "Session",
    "SessionStore",
    "StudyService",
    "grade_batch",
    "parse_quiz_response",
]

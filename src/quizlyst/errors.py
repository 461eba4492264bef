"""Error taxonomy shared by the quizlyst service, orchestrator and CLI."""

from __future__ import annotations

__all__ = [
    "QuizlystError",
    "InputValidationError",
    "ConfigError",
    "ProviderError",
    "RecoverableProviderError",
    "CompletionTimeoutError",
    "FatalProviderError",
    "ExhaustedGenerationError",
]


class QuizlystError(RuntimeError):
    """Base class for user-visible quizlyst failures.

    ``category`` lets callers tell bad input apart from an unavailable
    upstream and from a run that produced no usable output.
    """

    category = "error"


class InputValidationError(QuizlystError, ValueError):
    """Raised before any provider call when request input is unusable."""

    category = "bad_input"


class ConfigError(QuizlystError):
    """Raised when configuration parsing or validation fails."""

    category = "config"


class ProviderError(QuizlystError):
    """Raised when a completion backend fails."""

    category = "upstream"

    def __init__(self, message: str, *, status_hint: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_hint = status_hint


class RecoverableProviderError(ProviderError):
    """Rate limits, overloads, transient 5xx and connection failures."""


class CompletionTimeoutError(RecoverableProviderError):
    """The backend did not answer within the request timeout."""


class FatalProviderError(ProviderError):
    """Authentication failures; never retried against the same backend."""


class ExhaustedGenerationError(QuizlystError):
    """No valid quiz questions were produced after all attempts."""

    category = "generation"

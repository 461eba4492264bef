"""Quiz generation orchestration: retries, batching and result merging."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from ..core.config import QuizConfig
from ..errors import (
    ExhaustedGenerationError,
    FatalProviderError,
    InputValidationError,
    ProviderError,
)
from ..prompts import QUIZ_SYSTEM_PROMPT, build_quiz_prompt
from .models import Difficulty, Question, QuizBatch
from .parser import parse_quiz_response

__all__ = [
    "CompletionClient",
    "GenerationSettings",
    "QuizGenerator",
]

logger = logging.getLogger(__name__)

_LARGE_REQUEST_WARNING = 100


class CompletionClient(Protocol):
    def complete(
        self,
        prompt: str,
        system_instruction: str = "",
        timeout: Optional[float] = None,
    ) -> str: ...


@dataclass(frozen=True)
class GenerationSettings:
    """Retry and batching policy for quiz generation."""

    batch_threshold: int = 20
    batch_size: int = 15
    max_attempts: int = 3
    acceptance_floor: int = 5
    batch_delay_seconds: float = 1.0
    request_timeout: Optional[float] = None

    @classmethod
    def from_config(
        cls, quiz: QuizConfig, *, request_timeout: Optional[float] = None
    ) -> "GenerationSettings":
        return cls(
            batch_threshold=quiz.batch_threshold,
            batch_size=quiz.batch_size,
            max_attempts=quiz.max_attempts,
            acceptance_floor=quiz.acceptance_floor,
            batch_delay_seconds=quiz.batch_delay_seconds,
            request_timeout=request_timeout,
        )


class QuizGenerator:
    """Collect up to ``requested_count`` valid questions from a completion
    client that may be slow, rate-limited or produce malformed text.

    Small requests use a retry loop that keeps the best attempt; large ones
    are split into sequential batches with a pause between calls. Shortfalls
    are accepted; only a run with zero questions is an error.
    """

    def __init__(
        self,
        client: CompletionClient,
        settings: GenerationSettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._settings = settings or GenerationSettings()
        self._sleep = sleep

    @property
    def settings(self) -> GenerationSettings:
        return self._settings

    def generate(
        self,
        notes_lines: Sequence[str],
        difficulty: Difficulty | str,
        requested_count: int,
    ) -> QuizBatch:
        level = Difficulty.parse(difficulty)
        if (
            isinstance(requested_count, bool)
            or not isinstance(requested_count, int)
            or requested_count < 1
        ):
            raise InputValidationError("Question count must be at least 1.")
        if requested_count > _LARGE_REQUEST_WARNING:
            logger.warning(
                "Large question count requested; generation may be slow",
                extra={"requested_count": requested_count},
            )

        logger.info(
            "Generating quiz",
            extra={
                "difficulty": level.value,
                "requested_count": requested_count,
            },
        )
        if requested_count > self._settings.batch_threshold:
            questions = self._generate_batched(
                notes_lines, level, requested_count
            )
        else:
            questions = self._generate_with_retries(
                notes_lines, level, requested_count
            )

        if not questions:
            logger.error(
                "No quiz questions could be parsed after all attempts",
                extra={"requested_count": requested_count},
            )
            raise ExhaustedGenerationError(
                "Could not generate quiz: no valid questions were produced. "
                "Try again or use different content."
            )
        if len(questions) > requested_count:
            questions = questions[:requested_count]
        if len(questions) < requested_count:
            logger.warning(
                "Generated fewer questions than requested",
                extra={
                    "requested_count": requested_count,
                    "achieved_count": len(questions),
                },
            )
        return QuizBatch(
            difficulty=level,
            questions=list(questions),
            requested_count=requested_count,
        )

    def _complete(self, prompt: str) -> str:
        return self._client.complete(
            prompt,
            QUIZ_SYSTEM_PROMPT,
            self._settings.request_timeout,
        )

    def _generate_with_retries(
        self,
        notes_lines: Sequence[str],
        difficulty: Difficulty,
        requested_count: int,
    ) -> List[Question]:
        prompt = build_quiz_prompt(notes_lines, difficulty, requested_count)
        target = min(requested_count, self._settings.acceptance_floor)
        attempts = self._settings.max_attempts
        best: List[Question] = []
        errors = 0
        last_error: ProviderError | None = None

        for attempt in range(1, attempts + 1):
            logger.info(
                "Quiz generation attempt",
                extra={"attempt": attempt, "max_attempts": attempts},
            )
            try:
                response = self._complete(prompt)
            except FatalProviderError:
                raise
            except ProviderError as exc:
                errors += 1
                last_error = exc
                logger.warning(
                    "Quiz generation attempt failed",
                    extra={"attempt": attempt, "error": str(exc)},
                )
                continue

            parsed = parse_quiz_response(response, requested_count)
            logger.info(
                "Parsed quiz attempt",
                extra={
                    "attempt": attempt,
                    "parsed_count": len(parsed),
                    "requested_count": requested_count,
                },
            )
            if len(parsed) > len(best):
                best = parsed
            if len(best) >= target:
                break

        if errors == attempts and last_error is not None:
            raise last_error
        return best

    def _generate_batched(
        self,
        notes_lines: Sequence[str],
        difficulty: Difficulty,
        requested_count: int,
    ) -> List[Question]:
        batch_size = self._settings.batch_size
        total_batches = math.ceil(requested_count / batch_size)
        collected: List[Question] = []

        for index in range(total_batches):
            remaining = requested_count - len(collected)
            if remaining <= 0:
                break
            size = min(batch_size, remaining)
            logger.info(
                "Generating quiz batch",
                extra={
                    "batch": index + 1,
                    "total_batches": total_batches,
                    "batch_size": size,
                },
            )
            try:
                response = self._complete(
                    build_quiz_prompt(notes_lines, difficulty, size)
                )
            except FatalProviderError:
                raise
            except ProviderError as exc:
                logger.warning(
                    "Quiz batch failed; continuing with next batch",
                    extra={"batch": index + 1, "error": str(exc)},
                )
            else:
                parsed = parse_quiz_response(response, size)
                collected.extend(parsed)
                logger.info(
                    "Added quiz batch",
                    extra={
                        "batch": index + 1,
                        "parsed_count": len(parsed),
                        "total": len(collected),
                    },
                )
            if index < total_batches - 1 and len(collected) < requested_count:
                self._sleep(self._settings.batch_delay_seconds)

        return collected

"""Study service: notes, quizzes and grading keyed by session id."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, MutableMapping, Optional, Sequence

from .errors import ExhaustedGenerationError, InputValidationError
from .prompts import (
    build_notes_prompt,
    build_regenerate_prompt,
    build_summary_prompt,
)
from .quiz.generator import (
    CompletionClient,
    GenerationSettings,
    QuizGenerator,
)
from .quiz.grading import grade_batch
from .quiz.models import AnswerSubmission, Difficulty, GradeReport, QuizBatch
from .session import SessionStore, require_session_id

__all__ = ["NOTES_MODES", "NotesResult", "StudyService", "split_notes"]

logger = logging.getLogger(__name__)

NOTES_MODES = ("simple", "custom")
DEFAULT_CHANGE_DIFFICULTY_COUNT = 5


@dataclass(frozen=True)
class NotesResult:
    session_id: str
    notes_lines: List[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "sessionId": self.session_id,
            "notes": list(self.notes_lines),
            "summary": self.summary,
        }


def split_notes(text: str) -> List[str]:
    """Notes are kept as their non-blank lines, in order."""

    return [line.rstrip() for line in text.splitlines() if line.strip()]


class StudyService:
    """Entry points used by the CLI; every call names its session.

    Sessions never share state: ingesting a new source replaces only the
    caller's session, and quiz generation and grading hold that session's
    lock so a grade always targets the batch generated for it.
    """

    def __init__(
        self,
        client: CompletionClient,
        store: Optional[SessionStore] = None,
        generator_settings: Optional[GenerationSettings] = None,
        *,
        change_difficulty_count: int = DEFAULT_CHANGE_DIFFICULTY_COUNT,
        generator: Optional[QuizGenerator] = None,
    ) -> None:
        self._client = client
        self._store = store if store is not None else SessionStore()
        self._generator = generator or QuizGenerator(
            client, generator_settings
        )
        self._change_difficulty_count = change_difficulty_count

    @property
    def store(self) -> SessionStore:
        return self._store

    def generate_notes(
        self,
        session_id: str,
        source_text: str,
        mode: str = "simple",
        custom_instructions: Optional[str] = None,
        source_label: Optional[str] = None,
    ) -> NotesResult:
        require_session_id(session_id)
        if mode not in NOTES_MODES:
            raise InputValidationError(
                f"Unknown notes mode '{mode}'. Choose simple or custom."
            )
        if not isinstance(source_text, str) or not source_text.strip():
            raise InputValidationError("Source text must not be empty.")
        instructions = (custom_instructions or "").strip()
        if mode == "custom" and not instructions:
            raise InputValidationError(
                "Custom mode requires instructions for the notes."
            )
        label = source_label or "the provided source"

        system, prompt = build_notes_prompt(
            source_text,
            custom_instructions=instructions if mode == "custom" else None,
            source_label=label,
        )
        logger.info(
            "Generating notes",
            extra={"session_id": session_id, "mode": mode},
        )
        notes_text = self._client.complete(prompt, system)
        notes_lines = split_notes(notes_text)
        if not notes_lines:
            raise ExhaustedGenerationError(
                "The AI service returned empty notes for this content."
            )

        logger.info(
            "Generating summary",
            extra={"session_id": session_id, "notes_lines": len(notes_lines)},
        )
        system, prompt = build_summary_prompt("\n".join(notes_lines))
        summary = self._client.complete(prompt, system).strip()

        session = self._store.replace(
            session_id,
            source_label=label,
            notes_lines=notes_lines,
            summary=summary,
        )
        return NotesResult(
            session_id=session.session_id,
            notes_lines=list(session.notes_lines),
            summary=session.summary,
        )

    def regenerate_notes(
        self, session_id: str, instructions: str
    ) -> NotesResult:
        """Rewrite the session's notes; summary and quiz history are kept."""

        text = (instructions or "").strip()
        if not text:
            raise InputValidationError(
                "Regeneration instructions are required."
            )
        with self._store.locked(session_id) as session:
            system, prompt = build_regenerate_prompt(
                session.source_label, session.notes_lines, text
            )
            logger.info(
                "Regenerating notes", extra={"session_id": session_id}
            )
            notes_lines = split_notes(self._client.complete(prompt, system))
            if not notes_lines:
                raise ExhaustedGenerationError(
                    "The AI service returned empty notes; keeping the "
                    "previous version."
                )
            session.notes_lines = notes_lines
            return NotesResult(
                session_id=session.session_id,
                notes_lines=list(notes_lines),
                summary=session.summary,
            )

    def generate_quiz(
        self,
        session_id: str,
        difficulty: Difficulty | str,
        requested_count: int,
    ) -> QuizBatch:
        level = Difficulty.parse(difficulty)
        _require_count(requested_count)
        with self._store.locked(session_id) as session:
            batch = self._generator.generate(
                session.notes_lines, level, requested_count
            )
            session.record_batch(batch)
            logger.info(
                "Stored quiz batch",
                extra={
                    "session_id": session_id,
                    "achieved_count": batch.achieved_count,
                    "history": len(session.quiz_history),
                },
            )
            return batch

    def change_difficulty(
        self, session_id: str, difficulty: Difficulty | str
    ) -> QuizBatch:
        """Generate a fresh short quiz at a new difficulty."""

        return self.generate_quiz(
            session_id, difficulty, self._change_difficulty_count
        )

    def regrade_batch(
        self, session_id: str, answers: Sequence[AnswerSubmission]
    ) -> GradeReport:
        with self._store.locked(session_id) as session:
            batch = session.current_batch
            if batch is None:
                raise InputValidationError(
                    "No quiz found for this session. Generate a quiz first."
                )
            return grade_batch(batch, answers)


def _require_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InputValidationError("Question count must be at least 1.")
    return value

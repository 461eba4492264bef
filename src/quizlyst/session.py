"""Per-caller study sessions held in memory."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence

from .errors import InputValidationError
from .quiz.models import QuizBatch, utcnow

__all__ = ["Session", "SessionStore", "require_session_id"]


@dataclass
class Session:
    """Notes, summary and quiz history produced for one ingested source."""

    session_id: str
    source_label: str
    notes_lines: List[str]
    summary: str
    quiz_history: List[QuizBatch] = field(default_factory=list)
    processed_at: datetime = field(default_factory=utcnow)

    @property
    def current_batch(self) -> Optional[QuizBatch]:
        return self.quiz_history[-1] if self.quiz_history else None

    def record_batch(self, batch: QuizBatch) -> None:
        self.quiz_history.append(batch)


class SessionStore:
    """Thread-safe map from session id to ``Session``.

    Each session owns a re-entrant lock so that concurrent callers working on
    different sessions never block or overwrite each other, while calls on
    the same session are serialised.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def __contains__(self, session_id: object) -> bool:
        with self._guard:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def replace(
        self,
        session_id: str,
        *,
        source_label: str,
        notes_lines: Sequence[str],
        summary: str,
    ) -> Session:
        """Install a fresh session, discarding any earlier state for the id."""

        key = require_session_id(session_id)
        session = Session(
            session_id=key,
            source_label=source_label,
            notes_lines=list(notes_lines),
            summary=summary,
        )
        with self._lock_for(key):
            with self._guard:
                self._sessions[key] = session
        return session

    def get(self, session_id: str) -> Session:
        key = require_session_id(session_id)
        with self._guard:
            session = self._sessions.get(key)
        if session is None:
            raise _unknown_session(key)
        return session

    @contextmanager
    def locked(self, session_id: str) -> Iterator[Session]:
        """Hold the session's lock while the caller mutates it.

        Locks exist only for stored sessions; unknown ids are rejected
        without allocating one.
        """

        key = require_session_id(session_id)
        with self._guard:
            if key not in self._sessions:
                raise _unknown_session(key)
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield self.get(key)

    def discard(self, session_id: str) -> None:
        key = require_session_id(session_id)
        with self._guard:
            self._sessions.pop(key, None)
            self._locks.pop(key, None)

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(key, threading.RLock())


def require_session_id(session_id: str) -> str:
    """Return the normalised id, rejecting blanks and non-strings."""

    if not isinstance(session_id, str) or not session_id.strip():
        raise InputValidationError("Session id must be a non-empty string.")
    return session_id.strip()


def _unknown_session(key: str) -> InputValidationError:
    return InputValidationError(
        f"No study session '{key}'. Generate notes first."
    )

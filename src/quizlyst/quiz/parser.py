"""Turn free-form model output into validated quiz questions.

Two strategies run in order:

1. Structured: find the outermost ``[`` ... ``]`` span and read it as a JSON
   array of question objects. Any surviving question short-circuits the
   text heuristics.
2. Line-oriented: classify every non-blank line (question start, option,
   answer marker, other) with an ordered set of matchers and assemble
   questions from the resulting stream.

Malformed entries are dropped rather than emitted with placeholders; an empty
result is the signal that nothing usable was found. The parser never raises
for text input.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .models import Question

__all__ = [
    "LineKind",
    "LineMatch",
    "PrefixMatcher",
    "QUESTION_MATCHERS",
    "OPTION_MATCHER",
    "ANSWER_MATCHER",
    "classify_line",
    "parse_quiz_response",
    "parse_structured_questions",
    "parse_question_lines",
]

logger = logging.getLogger(__name__)

_FREE_TEXT_TYPES = {"free_text", "text", "open", "short_answer", "essay"}


class LineKind(str, Enum):
    QUESTION_START = "question_start"
    OPTION = "option"
    ANSWER_MARKER = "answer_marker"
    OTHER = "other"


@dataclass(frozen=True)
class LineMatch:
    """Classification of one response line.

    ``payload`` is the line with its recognised prefix removed; ``label``
    names the matcher that fired (or the option letter for options).
    """

    kind: LineKind
    payload: str
    label: str = ""


@dataclass(frozen=True)
class PrefixMatcher:
    """A named regex that recognises one line prefix."""

    label: str
    kind: LineKind
    pattern: "re.Pattern[str]"

    def match(self, line: str) -> Optional[LineMatch]:
        found = self.pattern.match(line)
        if not found:
            return None
        label = found.groupdict().get("letter") or self.label
        return LineMatch(self.kind, line[found.end():].strip(), label)


QUESTION_MATCHERS: tuple[PrefixMatcher, ...] = (
    PrefixMatcher(
        "question-word",
        LineKind.QUESTION_START,
        re.compile(r"^question\s*\d+\s*:", re.IGNORECASE),
    ),
    PrefixMatcher(
        "number-dot", LineKind.QUESTION_START, re.compile(r"^\d+\.")
    ),
    PrefixMatcher(
        "q-number",
        LineKind.QUESTION_START,
        re.compile(r"^q\d+\s*:", re.IGNORECASE),
    ),
    PrefixMatcher(
        "number-paren", LineKind.QUESTION_START, re.compile(r"^\d+\)")
    ),
)

OPTION_MATCHER = PrefixMatcher(
    "option",
    LineKind.OPTION,
    re.compile(r"^(?P<letter>[A-D])[).:]"),
)

ANSWER_MATCHER = PrefixMatcher(
    "answer",
    LineKind.ANSWER_MARKER,
    re.compile(r"^(?:correct\s+answer|answer|correct)\s*:", re.IGNORECASE),
)

_MATCHERS: tuple[PrefixMatcher, ...] = (
    *QUESTION_MATCHERS,
    OPTION_MATCHER,
    ANSWER_MATCHER,
)

_ANSWER_LETTER = re.compile(r"^\(?(?P<letter>[A-Da-d])\)?(?=$|[\s.):,;-])")
_EMPHASIS = re.compile(r"\*\*")


def classify_line(line: str) -> LineMatch:
    """Return the first matcher result for ``line`` or an OTHER match."""

    for matcher in _MATCHERS:
        result = matcher.match(line)
        if result is not None:
            return result
    return LineMatch(LineKind.OTHER, line)


def parse_quiz_response(
    response: str, expected_count: int
) -> List[Question]:
    """Recover up to ``expected_count`` questions from ``response``."""

    if expected_count <= 0 or not isinstance(response, str):
        return []
    if not response.strip():
        return []

    structured = parse_structured_questions(response, expected_count)
    if structured:
        logger.debug(
            "Parsed structured quiz payload",
            extra={"parsed_count": len(structured)},
        )
        return structured

    questions = parse_question_lines(response, expected_count)
    logger.debug(
        "Parsed quiz questions from text",
        extra={
            "parsed_count": len(questions),
            "expected_count": expected_count,
        },
    )
    return questions


# ---------------------------------------------------------------------------
# Structured (JSON) path


def parse_structured_questions(
    response: str, expected_count: int
) -> List[Question]:
    """Read a JSON array embedded in ``response``.

    Returns an empty list when no array is present, the array does not
    decode, or none of its entries is a valid question.
    """

    span = re.search(r"\[[\s\S]*\]", response)
    if not span:
        return []
    try:
        data = json.loads(span.group(0))
    except (ValueError, RecursionError):
        logger.debug("Structured quiz payload did not decode; using text")
        return []
    if not isinstance(data, list) or not data:
        return []

    questions: List[Question] = []
    seen: set[str] = set()
    for record in data:
        question = _question_from_record(record)
        if question is None:
            continue
        if not _remember(question.text, seen):
            continue
        questions.append(question)
        if len(questions) >= expected_count:
            break
    return questions[:expected_count]


def _question_from_record(record: Any) -> Optional[Question]:
    if not isinstance(record, Mapping):
        return None
    text = _first_text(record, ("question", "text", "stem", "prompt"))
    if not text:
        return None
    raw_options = _first_present(record, ("options", "choices"))
    options = _normalize_options(raw_options)
    raw_type = str(record.get("type", "")).strip().lower()
    if raw_type in _FREE_TEXT_TYPES and not options:
        reference = _first_present(
            record, ("correctAnswer", "correct_answer", "answer")
        )
        return Question.free_text(text, str(reference or "").strip())

    raw_answer = _first_present(
        record, ("correctAnswer", "correct_answer", "answer", "correct")
    )
    answer = _resolve_record_answer(raw_answer, options)
    if answer is None:
        return None
    try:
        return Question.multiple_choice(text, options, answer)
    except ValueError:
        return None


def _first_present(record: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _first_text(record: Mapping[str, Any], keys: Iterable[str]) -> str:
    value = _first_present(record, keys)
    return value.strip() if isinstance(value, str) else ""


def _normalize_options(raw: Any) -> List[str]:
    if isinstance(raw, Mapping):
        items: Iterable[Any] = (raw[key] for key in sorted(raw))
    elif isinstance(raw, list):
        items = raw
    else:
        return []
    options: List[str] = []
    for item in items:
        if isinstance(item, Mapping):
            text = str(item.get("text", "")).strip()
        else:
            text = str(item).strip()
            letter = OPTION_MATCHER.match(text)
            if letter is not None and letter.payload:
                text = letter.payload
        if text:
            options.append(text)
    return options


def _resolve_record_answer(
    raw: Any, options: Sequence[str]
) -> Optional[str]:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return options[raw] if 0 <= raw < len(options) else None
    if isinstance(raw, Mapping):
        raw = raw.get("text", "")
    return _resolve_answer_text(str(raw), options)


def _resolve_answer_text(raw: str, options: Sequence[str]) -> Optional[str]:
    """Map an answer given as option text or as a letter onto an option."""

    candidate = raw.strip()
    if not candidate:
        return None
    if candidate in options:
        return candidate
    letter = _ANSWER_LETTER.match(candidate)
    if letter is None:
        return None
    index = ord(letter.group("letter").upper()) - ord("A")
    if 0 <= index < len(options):
        return options[index]
    return None


# ---------------------------------------------------------------------------
# Line-oriented path


@dataclass
class _Draft:
    text: str
    options: List[str] = field(default_factory=list)
    answer: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.text) and len(self.options) >= 2 and bool(self.answer)

    def build(self) -> Question:
        if self.answer is None:
            raise ValueError("question draft has no correct answer")
        return Question.multiple_choice(self.text, self.options, self.answer)


def parse_question_lines(
    response: str, expected_count: int
) -> List[Question]:
    """Assemble questions from the canonical text format and its variants."""

    questions: List[Question] = []
    seen: set[str] = set()
    draft: Optional[_Draft] = None

    def emit(candidate: Optional[_Draft]) -> None:
        if candidate is None or not candidate.is_complete():
            return
        if not _remember(candidate.text, seen):
            logger.debug(
                "Skipped duplicate question", extra={"text": candidate.text}
            )
            return
        questions.append(candidate.build())

    for line in _clean_lines(response):
        match = classify_line(line)
        if match.kind is LineKind.QUESTION_START:
            emit(draft)
            draft = _Draft(text=match.payload)
        elif match.kind is LineKind.OPTION:
            if draft is not None and match.payload:
                draft.options.append(match.payload)
        elif match.kind is LineKind.ANSWER_MARKER:
            if draft is not None:
                resolved = _resolve_answer_text(match.payload, draft.options)
                if resolved is not None:
                    draft.answer = resolved
        elif draft is not None and not draft.text and not draft.options:
            # "Question 1:" on its own line, stem on the next one.
            draft.text = match.payload

        if len(questions) >= expected_count:
            break

    if len(questions) < expected_count:
        emit(draft)

    return questions[:expected_count]


def _clean_lines(response: str) -> List[str]:
    lines: List[str] = []
    for raw in response.splitlines():
        line = _EMPHASIS.sub("", raw.strip()).strip()
        if line:
            lines.append(line)
    return lines


def _remember(text: str, seen: set[str]) -> bool:
    key = " ".join(text.casefold().split())
    if key in seen:
        return False
    seen.add(key)
    return True

"""Local text sources: read, normalise and bound study content."""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from .core.config import ContentConfig
from .errors import InputValidationError

__all__ = [
    "SourceText",
    "STDIN_SOURCE",
    "clean_text",
    "prepare_content",
    "load_source",
]

logger = logging.getLogger(__name__)

STDIN_SOURCE = "-"
TEXT_EXTENSIONS = {"txt", "md", "markdown", "text"}

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class SourceText:
    """Content ready to be sent to the notes prompt."""

    label: str
    text: str
    truncated: bool = False


def clean_text(raw: str) -> str:
    """Collapse runs of whitespace into single spaces."""

    return _WHITESPACE.sub(" ", raw).strip()


def prepare_content(
    raw: str, limits: ContentConfig, *, label: str = "text"
) -> SourceText:
    """Validate length bounds and truncate oversized content."""

    text = clean_text(raw or "")
    if len(text) < limits.min_chars:
        raise InputValidationError(
            f"Content from {label} is too short ({len(text)} characters); "
            f"at least {limits.min_chars} are required."
        )
    truncated = len(text) > limits.max_chars
    if truncated:
        logger.info(
            "Truncating source content",
            extra={
                "source": label,
                "chars": len(text),
                "max_chars": limits.max_chars,
            },
        )
        text = text[: limits.max_chars] + "..."
    return SourceText(label=label, text=text, truncated=truncated)


def load_source(
    source: str,
    limits: ContentConfig,
    *,
    stdin: Optional[TextIO] = None,
) -> SourceText:
    """Read ``source`` (a path, or ``-`` for stdin) into a ``SourceText``."""

    if source == STDIN_SOURCE:
        stream = stdin if stdin is not None else sys.stdin
        return prepare_content(stream.read(), limits, label="stdin")

    path = Path(source).expanduser()
    if not path.exists():
        raise InputValidationError(f"Input not found: {path}")
    if not path.is_file():
        raise InputValidationError(f"Input is not a file: {path}")
    suffix = path.suffix.lower().lstrip(".")
    if suffix and suffix not in TEXT_EXTENSIONS:
        raise InputValidationError(
            f"Unsupported source type '.{suffix}'. Provide a text or "
            "Markdown file."
        )
    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InputValidationError(
            f"Could not decode {path} as UTF-8 text."
        ) from exc
    logger.debug(
        "Loaded source file", extra={"path": str(path), "chars": len(raw)}
    )
    return prepare_content(raw, limits, label=path.name)

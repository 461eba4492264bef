"""Logging helpers for quizlyst: JSON-lines file output plus a Rich console."""

from __future__ import annotations

import json
import logging
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

__all__ = [
    "LOGGER_NAME",
    "JsonLogFormatter",
    "configure_logger",
    "close_handlers",
]

LOGGER_NAME = "quizlyst"

_FILE_MARKER = "_quizlyst_file"
_CONSOLE_MARKER = "_quizlyst_console"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JsonLogFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RESERVED
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=True)


def configure_logger(
    *,
    log_dir: Path,
    name: str = LOGGER_NAME,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
    console: Console | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach quizlyst's file (and optionally console) handlers.

    Child loggers such as ``quizlyst.quiz.generator`` propagate into the
    configured logger, so modules only ever call ``logging.getLogger``.
    Calling this twice reuses the existing handlers.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    file_level = logging.DEBUG if verbose else _level_from_name(level)
    handler, log_path = _file_handler(
        logger,
        log_dir=log_dir,
        filename=f"{name.rsplit('.', 1)[-1]}.log",
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    handler.setLevel(file_level)

    _drop_console_handler(logger)
    if verbose:
        rich_handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
        )
        rich_handler.setLevel(logging.DEBUG)
        setattr(rich_handler, _CONSOLE_MARKER, True)
        logger.addHandler(rich_handler)

    return logger, log_path


def close_handlers(name: str = LOGGER_NAME) -> None:
    """Detach and close every handler on the quizlyst logger."""

    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _level_from_name(level: str) -> int:
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _file_handler(
    logger: logging.Logger,
    *,
    log_dir: Path,
    filename: str,
    max_bytes: int,
    backup_count: int,
) -> tuple[RotatingFileHandler, Path]:
    wanted = (log_dir / filename).resolve()
    for existing in list(logger.handlers):
        if not getattr(existing, _FILE_MARKER, False):
            continue
        current = Path(existing.baseFilename)  # type: ignore[attr-defined]
        if current == wanted:
            return existing, current  # type: ignore[return-value]
        logger.removeHandler(existing)
        existing.close()

    for directory in (log_dir, _fallback_dir()):
        path = directory / filename
        try:
            directory.mkdir(parents=True, exist_ok=True)
            _chmod_quietly(directory, 0o700)
            handler = RotatingFileHandler(
                path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except PermissionError:
            continue
        _chmod_quietly(path, 0o600)
        handler.setFormatter(JsonLogFormatter())
        setattr(handler, _FILE_MARKER, True)
        logger.addHandler(handler)
        return handler, path
    raise PermissionError(f"No writable log directory for {filename}")


def _drop_console_handler(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _CONSOLE_MARKER, False):
            logger.removeHandler(handler)
            handler.close()


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return repr(value)


def _chmod_quietly(path: Path, mode: int) -> None:
    try:
        path.chmod(mode)
    except (PermissionError, NotImplementedError):  # pragma: no cover
        pass


def _fallback_dir() -> Path:
    return Path(tempfile.gettempdir()) / "quizlyst-logs"

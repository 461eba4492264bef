"""Core shared helpers for quizlyst: configuration, workspace and logging."""

from __future__ import annotations

from .config import (
    CONFIG_FILENAME,
    QuizlystConfig,
    default_config,
    load_config,
    resolve_config_path,
    write_template,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "CONFIG_FILENAME",
    "QuizlystConfig",
    "default_config",
    "load_config",
    "resolve_config_path",
    "write_template",
    "JsonLogFormatter",
    "configure_logger",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]

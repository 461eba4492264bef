"""Text completion backends and the fallback client the core calls."""

from __future__ import annotations

from .backends import (
    CohereBackend,
    CompletionBackend,
    OpenAICompatibleBackend,
    error_for_status,
)
from .client import FallbackCompletionClient, build_backends, build_client

__all__ = [
    "CompletionBackend",
    "OpenAICompatibleBackend",
    "CohereBackend",
    "error_for_status",
    "FallbackCompletionClient",
    "build_backends",
    "build_client",
]

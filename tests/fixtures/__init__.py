"""Test helpers for quizlyst."""

from .completion import (
    Reply,
    ScriptedClient,
    StubBackend,
    canonical_block,
    numbered_replies,
    requested_count,
)

__all__ = [
    "Reply",
    "ScriptedClient",
    "StubBackend",
    "canonical_block",
    "numbered_replies",
    "requested_count",
]

from __future__ import annotations

import threading

import pytest

from quizlyst.errors import InputValidationError
from quizlyst.quiz.models import Difficulty, QuizBatch
from quizlyst.session import SessionStore


def _batch(count: int = 0) -> QuizBatch:
    return QuizBatch(
        difficulty=Difficulty.EASY, questions=[], requested_count=count or 1
    )


def test_replace_installs_fresh_session():
    store = SessionStore()
    first = store.replace(
        "alice", source_label="a.md", notes_lines=["one"], summary="s1"
    )
    first.record_batch(_batch())

    second = store.replace(
        "alice", source_label="b.md", notes_lines=["two"], summary="s2"
    )

    assert store.get("alice") is second
    assert second.quiz_history == []
    assert second.current_batch is None
    assert len(store) == 1


def test_sessions_are_isolated():
    store = SessionStore()
    store.replace("alice", source_label="a", notes_lines=["a"], summary="")
    store.replace("bob", source_label="b", notes_lines=["b"], summary="")

    with store.locked("alice") as session:
        session.record_batch(_batch(3))

    assert store.get("alice").current_batch.requested_count == 3
    assert store.get("bob").current_batch is None
    assert "alice" in store and "bob" in store


def test_current_batch_is_most_recent():
    store = SessionStore()
    session = store.replace(
        "s", source_label="x", notes_lines=[], summary=""
    )
    session.record_batch(_batch(1))
    session.record_batch(_batch(2))

    assert session.current_batch.requested_count == 2
    assert len(session.quiz_history) == 2


@pytest.mark.parametrize("session_id", ["missing", "", "   "])
def test_unknown_or_blank_ids_rejected(session_id):
    store = SessionStore()

    with pytest.raises(InputValidationError):
        store.get(session_id)


def test_locked_serialises_same_session():
    store = SessionStore()
    store.replace("s", source_label="x", notes_lines=[], summary="")
    entered = threading.Event()
    release = threading.Event()
    order = []

    def holder():
        with store.locked("s"):
            entered.set()
            release.wait(timeout=5)
            order.append("holder")

    def waiter():
        with store.locked("s"):
            order.append("waiter")

    first = threading.Thread(target=holder)
    first.start()
    assert entered.wait(timeout=5)
    second = threading.Thread(target=waiter)
    second.start()
    second.join(timeout=0.1)
    assert order == []
    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert order == ["holder", "waiter"]


def test_lock_on_one_session_does_not_block_another():
    store = SessionStore()
    store.replace("a", source_label="x", notes_lines=[], summary="")
    store.replace("b", source_label="y", notes_lines=[], summary="")
    done = threading.Event()

    def other():
        with store.locked("b"):
            done.set()

    with store.locked("a"):
        thread = threading.Thread(target=other)
        thread.start()
        assert done.wait(timeout=5)
    thread.join(timeout=5)


def test_locked_is_reentrant():
    store = SessionStore()
    store.replace("s", source_label="x", notes_lines=[], summary="")

    with store.locked("s") as outer:
        with store.locked("s") as inner:
            assert outer is inner


def test_discard_removes_session():
    store = SessionStore()
    store.replace("s", source_label="x", notes_lines=[], summary="")

    store.discard("s")

    assert "s" not in store


def test_unknown_ids_do_not_allocate_locks():
    store = SessionStore()

    for index in range(50):
        with pytest.raises(InputValidationError):
            with store.locked(f"stranger-{index}"):
                pass

    assert store._locks == {}


def test_discard_releases_the_session_lock():
    store = SessionStore()
    store.replace("s", source_label="x", notes_lines=[], summary="")
    with store.locked("s"):
        pass

    store.discard("s")

    assert "s" not in store._locks
    with pytest.raises(InputValidationError):
        with store.locked("s"):
            pass

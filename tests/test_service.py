from __future__ import annotations

import pytest

from fixtures import ScriptedClient, canonical_block, requested_count
from quizlyst.errors import (
    ExhaustedGenerationError,
    InputValidationError,
    RecoverableProviderError,
)
from quizlyst.prompts import (
    CUSTOM_NOTES_SYSTEM_PROMPT,
    NOTES_SYSTEM_PROMPT,
    REGENERATE_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
)
from quizlyst.quiz.generator import GenerationSettings
from quizlyst.quiz.models import AnswerSubmission, Difficulty, QuestionKind
from quizlyst.service import StudyService, split_notes

SOURCE = "Photosynthesis converts light energy into chemical energy. " * 3
NOTES = (
    "## Photosynthesis\n"
    "\n"
    "* Plants convert light energy into chemical energy.\n"
    "   \n"
    "* Chlorophyll absorbs mostly blue and red light.\n"
)


def _service(client, **kwargs):
    return StudyService(
        client,
        generator_settings=GenerationSettings(batch_delay_seconds=0),
        **kwargs,
    )


def _with_notes(client_replies, **kwargs):
    client = ScriptedClient([NOTES, "A short summary.", *client_replies])
    service = _service(client, **kwargs)
    service.generate_notes("s1", SOURCE)
    return service, client


def test_split_notes_drops_blank_lines():
    assert split_notes(NOTES) == [
        "## Photosynthesis",
        "* Plants convert light energy into chemical energy.",
        "* Chlorophyll absorbs mostly blue and red light.",
    ]


def test_generate_notes_then_summary():
    client = ScriptedClient([NOTES, "  A short summary.  "])
    service = _service(client)

    result = service.generate_notes("s1", SOURCE, source_label="bio.md")

    assert len(result.notes_lines) == 3
    assert result.summary == "A short summary."
    assert client.calls[0]["system"] == NOTES_SYSTEM_PROMPT
    assert SOURCE.strip() in client.calls[0]["prompt"]
    assert client.calls[1]["system"] == SUMMARY_SYSTEM_PROMPT
    assert result.notes_lines[1] in client.calls[1]["prompt"]
    session = service.store.get("s1")
    assert session.source_label == "bio.md"
    assert session.notes_lines == result.notes_lines


def test_custom_mode_embeds_instructions():
    client = ScriptedClient([NOTES, "summary"])
    service = _service(client)

    service.generate_notes(
        "s1",
        SOURCE,
        mode="custom",
        custom_instructions="Focus on pigments",
    )

    assert client.calls[0]["system"] == CUSTOM_NOTES_SYSTEM_PROMPT
    assert "Focus on pigments" in client.calls[0]["prompt"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"mode": "fancy"},
        {"mode": "custom"},
        {"mode": "custom", "custom_instructions": "   "},
    ],
)
def test_generate_notes_validates_before_calling(kwargs):
    client = ScriptedClient()
    service = _service(client)

    with pytest.raises(InputValidationError):
        service.generate_notes("s1", SOURCE, **kwargs)

    assert client.calls == []


def test_empty_notes_response_is_generation_error():
    client = ScriptedClient(["\n  \n"])
    service = _service(client)

    with pytest.raises(ExhaustedGenerationError):
        service.generate_notes("s1", SOURCE)

    assert "s1" not in service.store


def test_end_to_end_generate_and_grade():
    service, _ = _with_notes([canonical_block(4)])

    batch = service.generate_quiz("s1", "easy", 4)

    assert batch.achieved_count == 4
    assert batch.difficulty is Difficulty.EASY
    answers = [
        AnswerSubmission(i, QuestionKind.MULTIPLE_CHOICE, q.correct_answer)
        for i, q in enumerate(batch.questions)
    ]
    report = service.regrade_batch("s1", answers)
    assert report.score == 100
    assert batch.score == 100


def test_generate_quiz_validates_before_any_call():
    service, client = _with_notes([])
    calls_before = len(client.calls)

    with pytest.raises(InputValidationError):
        service.generate_quiz("s1", "impossible", 4)
    with pytest.raises(InputValidationError):
        service.generate_quiz("s1", "easy", 0)
    with pytest.raises(InputValidationError):
        service.generate_quiz("unknown", "easy", 4)

    assert len(client.calls) == calls_before


def test_quiz_history_appends_and_grading_targets_latest():
    service, _ = _with_notes([canonical_block(2), canonical_block(3)])

    first = service.generate_quiz("s1", "easy", 2)
    second = service.generate_quiz("s1", "hard", 3)

    session = service.store.get("s1")
    assert session.quiz_history == [first, second]
    answers = [
        AnswerSubmission(i, QuestionKind.MULTIPLE_CHOICE, None)
        for i in range(3)
    ]
    report = service.regrade_batch("s1", answers)
    assert report.score == 0
    assert second.score == 0
    assert first.score is None


def test_grading_with_stale_answer_count_is_rejected():
    service, _ = _with_notes([canonical_block(2), canonical_block(3)])
    service.generate_quiz("s1", "easy", 2)
    service.generate_quiz("s1", "easy", 3)
    answers = [
        AnswerSubmission(i, QuestionKind.MULTIPLE_CHOICE, "x")
        for i in range(2)
    ]

    with pytest.raises(InputValidationError):
        service.regrade_batch("s1", answers)


def test_regrade_without_quiz_is_rejected():
    service, _ = _with_notes([])

    with pytest.raises(InputValidationError):
        service.regrade_batch("s1", [])


def test_change_difficulty_requests_five_questions():
    service, client = _with_notes([canonical_block(5)])

    batch = service.change_difficulty("s1", "hard")

    assert batch.difficulty is Difficulty.HARD
    assert batch.requested_count == 5
    assert requested_count(client.calls[-1]["prompt"]) == 5
    assert "synthesis" in client.calls[-1]["prompt"]


def test_change_difficulty_count_is_configurable():
    service, _ = _with_notes(
        [canonical_block(3)], change_difficulty_count=3
    )

    batch = service.change_difficulty("s1", "medium")

    assert batch.requested_count == 3


def test_regenerate_notes_keeps_summary_and_history():
    service, client = _with_notes(
        [canonical_block(2), "## Rewritten\n* Shorter notes."]
    )
    service.generate_quiz("s1", "easy", 2)

    result = service.regenerate_notes("s1", "Make it shorter")

    assert result.notes_lines == ["## Rewritten", "* Shorter notes."]
    assert result.summary == "A short summary."
    call = client.calls[-1]
    assert call["system"] == REGENERATE_SYSTEM_PROMPT
    assert "Make it shorter" in call["prompt"]
    assert "* Plants convert light energy" in call["prompt"]
    session = service.store.get("s1")
    assert session.notes_lines == result.notes_lines
    assert len(session.quiz_history) == 1


def test_regenerate_requires_instructions_and_session():
    service, _ = _with_notes([])

    with pytest.raises(InputValidationError):
        service.regenerate_notes("s1", "  ")
    with pytest.raises(InputValidationError):
        service.regenerate_notes("nobody", "shorter")


def test_sessions_do_not_clobber_each_other():
    client = ScriptedClient(
        [
            "## Alice notes",
            "alice summary",
            "## Bob notes",
            "bob summary",
            canonical_block(2),
        ]
    )
    service = _service(client)
    service.generate_notes("alice", SOURCE)
    service.generate_notes("bob", SOURCE)

    service.generate_quiz("alice", "easy", 2)

    assert service.store.get("alice").notes_lines == ["## Alice notes"]
    assert service.store.get("bob").summary == "bob summary"
    assert service.store.get("bob").current_batch is None
    assert "## Alice notes" in client.calls[-1]["prompt"]


def test_provider_failure_surfaces_from_generate_quiz():
    failure = RecoverableProviderError("down", status_hint=503)
    service, _ = _with_notes([failure, failure, failure])

    with pytest.raises(RecoverableProviderError):
        service.generate_quiz("s1", "easy", 3)

    assert service.store.get("s1").quiz_history == []


@pytest.mark.parametrize("session_id", ["", "   "])
def test_blank_session_id_rejected_before_any_call(session_id):
    client = ScriptedClient([NOTES, "summary"])
    service = _service(client)

    with pytest.raises(InputValidationError):
        service.generate_notes(session_id, SOURCE)

    assert client.calls == []

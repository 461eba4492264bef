from __future__ import annotations

import json

import pytest

from fixtures import canonical_block
from quizlyst.quiz.models import QuestionKind
from quizlyst.quiz.parser import (
    LineKind,
    _Draft,
    classify_line,
    parse_question_lines,
    parse_quiz_response,
    parse_structured_questions,
)


def test_parses_canonical_block():
    questions = parse_quiz_response(canonical_block(3), 3)

    assert [q.text for q in questions] == [
        "What is fact number 1?",
        "What is fact number 2?",
        "What is fact number 3?",
    ]
    assert all(q.kind is QuestionKind.MULTIPLE_CHOICE for q in questions)
    assert questions[0].options == (
        "Wrong 1a",
        "Right 1",
        "Wrong 1c",
        "Wrong 1d",
    )
    assert [q.correct_answer for q in questions] == [
        "Right 1",
        "Right 2",
        "Right 3",
    ]


def test_parses_mixed_question_and_option_styles():
    response = "\n".join(
        [
            "1. What is H2O?",
            "A. Water",
            "B. Salt",
            "Answer: A",
            "",
            "Q2: What is the capital of France?",
            "A: Paris",
            "B: Rome",
            "C: Madrid",
            "Correct: Paris",
            "",
            "3) Which planet is red?",
            "A) Venus",
            "B) Mars",
            "Correct Answer: (B)",
            "",
            "Question 4: Which number is largest?",
            "A) 1",
            "B) 2",
            "C) 3",
            "D) 4",
            "Correct Answer: D",
        ]
    )

    questions = parse_quiz_response(response, 4)

    assert [q.correct_answer for q in questions] == [
        "Water",
        "Paris",
        "Mars",
        "4",
    ]


def test_markdown_emphasis_is_ignored():
    response = (
        "**Question 1:** What gas do plants absorb?\n"
        "A) Oxygen\n"
        "B) Carbon dioxide\n"
        "**Correct Answer:** B\n"
    )

    questions = parse_quiz_response(response, 1)

    assert len(questions) == 1
    assert questions[0].text == "What gas do plants absorb?"
    assert questions[0].correct_answer == "Carbon dioxide"


def test_answer_matching_option_text_wins_over_letter():
    response = "\n".join(
        [
            "Question 1: Which grade is highest?",
            "A) B",
            "B) A",
            "C) C",
            "Correct Answer: A",
        ]
    )

    questions = parse_quiz_response(response, 1)

    assert questions[0].correct_answer == "A"
    assert questions[0].options.index("A") == 1


def test_stem_on_following_line():
    response = "Question 1:\nWhat is X?\nA) a\nB) b\nAnswer: B\n"

    questions = parse_quiz_response(response, 1)

    assert questions[0].text == "What is X?"
    assert questions[0].correct_answer == "b"


def test_discards_incomplete_and_unresolvable_questions():
    response = "\n".join(
        [
            "Question 1: Only one option?",
            "A) Lonely",
            "Correct Answer: A",
            "",
            "Question 2: Answer letter out of range?",
            "A) x",
            "B) y",
            "Correct Answer: E",
            "",
            "Question 3: Missing answer?",
            "A) x",
            "B) y",
            "",
            "Question 4: Valid?",
            "A) yes",
            "B) no",
            "Correct Answer: A",
        ]
    )

    questions = parse_quiz_response(response, 4)

    assert [q.text for q in questions] == ["Valid?"]
    assert questions[0].correct_answer == "yes"


def test_fewer_than_four_options_are_accepted():
    response = "Question 1: True or false?\nA) True\nB) False\nAnswer: B"

    questions = parse_quiz_response(response, 1)

    assert questions[0].options == ("True", "False")


def test_truncates_to_expected_count():
    questions = parse_quiz_response(canonical_block(5), 3)

    assert len(questions) == 3
    assert questions[-1].text == "What is fact number 3?"


def test_duplicate_questions_are_skipped():
    response = canonical_block(1) + "\n\n" + canonical_block(1)

    questions = parse_quiz_response(response, 2)

    assert len(questions) == 1


def test_line_parser_stops_once_expected_count_reached():
    response = canonical_block(2) + "\n\nQuestion 3: Dangling?\nA) a\nB) b"

    questions = parse_question_lines(response, 2)

    assert len(questions) == 2


@pytest.mark.parametrize(
    "response",
    ["", "   \n\t", "no questions here at all", "[[[[", "1.\n2.\n3."],
)
def test_unparseable_input_yields_empty_list(response):
    assert parse_quiz_response(response, 5) == []


def test_non_string_and_non_positive_count_yield_empty_list():
    assert parse_quiz_response(None, 5) == []  # type: ignore[arg-type]
    assert parse_quiz_response(canonical_block(2), 0) == []
    assert parse_quiz_response(canonical_block(2), -1) == []


def test_structured_array_short_circuits_line_parsing():
    payload = [
        {
            "question": "2 + 2?",
            "options": ["3", "4", "5", "6"],
            "correctAnswer": "B",
        },
        {"question": "Sky colour?", "options": ["Blue", "Green"],
         "answer": "Blue"},
        {"question": "Index answer?", "choices": ["x", "y"], "correct": 1},
        {"question": "", "options": ["a", "b"], "answer": "a"},
    ]
    response = "Here is your quiz:\n" + json.dumps(payload) + "\nEnjoy!"

    questions = parse_quiz_response(response, 10)

    assert [q.correct_answer for q in questions] == ["4", "Blue", "y"]


def test_structured_free_text_question():
    response = json.dumps(
        [{"question": "Explain osmosis.", "type": "free_text"}]
    )

    questions = parse_structured_questions(response, 1)

    assert questions[0].kind is QuestionKind.FREE_TEXT
    assert questions[0].options == ()


def test_structured_letter_prefixed_options_are_normalised():
    response = json.dumps(
        [
            {
                "question": "Largest planet?",
                "options": ["A) Mars", "B) Jupiter"],
                "answer": "B",
            }
        ]
    )

    questions = parse_quiz_response(response, 1)

    assert questions[0].options == ("Mars", "Jupiter")
    assert questions[0].correct_answer == "Jupiter"


def test_invalid_json_falls_back_to_lines():
    response = "[not json]\n" + canonical_block(2)

    questions = parse_quiz_response(response, 2)

    assert len(questions) == 2


def test_structured_array_without_valid_entries_falls_back_to_lines():
    response = '[{"foo": 1}]\n' + canonical_block(1)

    questions = parse_quiz_response(response, 1)

    assert questions[0].text == "What is fact number 1?"


def test_classify_line_kinds():
    assert classify_line("Q3: hi").kind is LineKind.QUESTION_START
    assert classify_line("Q3: hi").payload == "hi"
    option = classify_line("B) Paris")
    assert option.kind is LineKind.OPTION
    assert option.label == "B"
    assert option.payload == "Paris"
    answer = classify_line("Correct Answer: C")
    assert answer.kind is LineKind.ANSWER_MARKER
    assert answer.payload == "C"
    assert classify_line("a) lowercase").kind is LineKind.OTHER
    assert classify_line("Just prose.").kind is LineKind.OTHER


def test_draft_without_answer_refuses_to_build():
    draft = _Draft("Which is largest?", ["Sun", "Moon"])

    assert draft.is_complete() is False
    with pytest.raises(ValueError):
        draft.build()

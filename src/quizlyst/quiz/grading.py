"""Grade answer submissions against a generated quiz batch."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ..errors import InputValidationError
from .models import (
    AnswerSubmission,
    GradeReport,
    GradeResult,
    Question,
    QuestionKind,
    QuizBatch,
    utcnow,
)

__all__ = ["grade_batch", "grade_answer", "score_percentage"]

logger = logging.getLogger(__name__)

CORRECT_FEEDBACK = "Correct! Well done."
INCORRECT_FEEDBACK = "Incorrect. The right answer is: {answer}"
FREE_TEXT_ACCEPTED = "Good answer! You've demonstrated understanding."
FREE_TEXT_TOO_BRIEF = "Your answer seems too brief. Try to elaborate more."

# Placeholder heuristic: any free-text answer longer than this is accepted.
_FREE_TEXT_MIN_CHARS = 10


def score_percentage(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up."""

    if total <= 0:
        return 0
    return int(math.floor(100 * correct / total + 0.5))


def grade_answer(question: Question, answer: AnswerSubmission) -> GradeResult:
    value = answer.value
    if question.kind is QuestionKind.MULTIPLE_CHOICE:
        if value is not None and value == question.correct_answer:
            return GradeResult(answer.question_index, True, CORRECT_FEEDBACK)
        return GradeResult(
            answer.question_index,
            False,
            INCORRECT_FEEDBACK.format(answer=question.correct_answer),
        )

    if value is not None and len(value.strip()) > _FREE_TEXT_MIN_CHARS:
        return GradeResult(answer.question_index, True, FREE_TEXT_ACCEPTED)
    return GradeResult(answer.question_index, False, FREE_TEXT_TOO_BRIEF)


def grade_batch(
    batch: QuizBatch, answers: Sequence[AnswerSubmission]
) -> GradeReport:
    """Grade ``answers`` positionally and record the score on ``batch``.

    There must be exactly one submission per question and submission ``i``
    must refer to question ``i``. Unanswered questions (``value=None``) count
    as incorrect. Re-grading overwrites the previous score.
    """

    questions = batch.questions
    if not questions:
        raise InputValidationError("Quiz has no questions to grade.")
    if len(answers) != len(questions):
        raise InputValidationError(
            f"Expected {len(questions)} answers, got {len(answers)}."
        )
    for position, answer in enumerate(answers):
        if answer.question_index != position:
            raise InputValidationError(
                f"Answer {position} refers to question "
                f"{answer.question_index}; answers must be in question order."
            )
        question = questions[position]
        if answer.kind != question.kind:
            raise InputValidationError(
                f"Answer {position} does not match the kind of question "
                f"{position}."
            )

    results = tuple(
        grade_answer(question, answer)
        for question, answer in zip(questions, answers)
    )
    correct = sum(1 for result in results if result.is_correct)
    score = score_percentage(correct, len(answers))

    batch.score = score
    batch.taken_at = utcnow()
    logger.info(
        "Graded quiz",
        extra={
            "correct": correct,
            "total": len(answers),
            "score": score,
        },
    )
    return GradeReport(results=results, score=score)

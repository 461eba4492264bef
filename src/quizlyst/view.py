"""Rich rendering for notes, quizzes and grade reports.

The answer loop is synchronous and reads commands from an injectable
``input_provider`` so the CLI can drive it from ``input`` and tests from a
scripted iterator.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .quiz.models import (
    AnswerSubmission,
    GradeReport,
    Question,
    QuestionKind,
    QuizBatch,
)
from .service import NotesResult

__all__ = [
    "InputProvider",
    "AnswerSheet",
    "SessionCommand",
    "parse_session_command",
    "collect_answers",
    "render_notes",
    "render_quiz",
    "render_grade_report",
]

InputProvider = Callable[[], str]
ExitAction = Literal["submitted", "quit"]

# A choice is one letter, optionally written as "b)" or "b.".
_CHOICE_KEY = re.compile(r"([A-Za-z])[).]?")


def option_key(index: int) -> str:
    return chr(ord("A") + index)


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["next", "prev", "submit", "quit", "answer"]
    value: Optional[str] = None


@dataclass
class AnswerSheet:
    """Answers collected so far, keyed by question position."""

    questions: Sequence[Question]
    index: int = 0
    values: dict[int, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> Question:
        return self.questions[self.index]

    def answered_count(self) -> int:
        return len(self.values)

    def answer(self, raw: str) -> bool:
        question = self.current
        if question.kind is QuestionKind.FREE_TEXT:
            text = raw.strip()
            if not text:
                return False
            self.values[self.index] = text
            return True
        found = _CHOICE_KEY.fullmatch(raw.strip())
        if found is None:
            return False
        position = ord(found.group(1).upper()) - ord("A")
        if not 0 <= position < len(question.options):
            return False
        self.values[self.index] = question.options[position]
        return True

    def next(self) -> None:
        if self.index + 1 < self.total:
            self.index += 1

    def previous(self) -> None:
        if self.index > 0:
            self.index -= 1

    def submissions(self) -> list[AnswerSubmission]:
        return [
            AnswerSubmission(
                question_index=position,
                kind=question.kind,
                value=self.values.get(position),
            )
            for position, question in enumerate(self.questions)
        ]


def parse_session_command(raw: Optional[str]) -> Optional[SessionCommand]:
    """Parse raw user input into a structured command."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if lowered in {"submit", "s"}:
        return SessionCommand("submit")
    if lowered in {"quit", "q", "exit"}:
        return SessionCommand("quit")
    return SessionCommand("answer", text)


def collect_answers(
    batch: QuizBatch,
    console: Console,
    input_provider: InputProvider,
) -> Optional[list[AnswerSubmission]]:
    """Walk the user through ``batch``; ``None`` means they quit.

    Answering a question moves on to the next one. Questions left blank at
    submission are sent as unanswered.
    """

    sheet = AnswerSheet(batch.questions)
    if not sheet.total:
        console.print(
            Panel(
                "Quiz has no questions.", title="Quiz", border_style="yellow"
            )
        )
        return None

    while True:
        _render_question(console, sheet)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return None
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        action = _apply_command(command, sheet, console)
        if action == "quit":
            return None
        if action == "submitted":
            return sheet.submissions()


def _apply_command(
    command: SessionCommand, sheet: AnswerSheet, console: Console
) -> Optional[ExitAction]:
    if command.type == "answer" and command.value:
        if sheet.answer(command.value):
            if sheet.index + 1 < sheet.total:
                sheet.next()
            else:
                console.print(
                    "All questions visited. Type [bold]submit[/] to grade."
                )
        else:
            console.print(
                Text.assemble(
                    (f"'{command.value}'", "red"),
                    (" is not a valid answer for this question.", "red"),
                )
            )
        return None
    if command.type == "next":
        sheet.next()
        return None
    if command.type == "prev":
        sheet.previous()
        return None
    if command.type == "quit":
        console.print("\n[bold yellow]Ending session without submission.[/]")
        return "quit"
    if command.type == "submit":
        return "submitted"
    return None


def _render_question(console: Console, sheet: AnswerSheet) -> None:
    question = sheet.current
    header = Text.assemble(
        (f"Question {sheet.index + 1}", "bold cyan"),
        (f" / {sheet.total}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.text, style="bold"))

    selected = sheet.values.get(sheet.index)
    if question.kind is QuestionKind.FREE_TEXT:
        if selected:
            console.print(Text(f"Your answer: {selected}", style="green"))
        hint = "Type your answer, or n (next), p (prev), submit, quit"
    else:
        console.print(_options_table(question, selected))
        keys = ", ".join(
            option_key(i) for i in range(len(question.options))
        )
        hint = f"Commands: choices [{keys}], n (next), p (prev), submit, quit"
    console.print(
        Text(
            f"Answered {sheet.answered_count()}/{sheet.total} | {hint}",
            style="dim",
        )
    )


def _options_table(question: Question, selected: Optional[str]) -> Table:
    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")
    for position, option in enumerate(question.options):
        chosen = option == selected
        row_text = Text("• " if chosen else "  ")
        choice_text = Text(option)
        if chosen:
            choice_text.stylize("bold green")
        row_text += choice_text
        table.add_row(option_key(position), row_text)
    return table


def render_notes(console: Console, result: NotesResult) -> None:
    console.rule(Text("Study Notes", style="bold magenta"))
    console.print(Markdown("\n".join(result.notes_lines)))
    if result.summary:
        console.print(
            Panel(
                Markdown(result.summary), title="Summary", border_style="cyan"
            )
        )


def render_quiz(
    console: Console, batch: QuizBatch, *, show_answers: bool = False
) -> None:
    """Print every question, optionally with the correct answer marked."""

    title = (
        f"{batch.difficulty.value.title()} quiz: "
        f"{batch.achieved_count} of {batch.requested_count} questions"
    )
    console.rule(Text(title, style="bold magenta"))
    for position, question in enumerate(batch.questions, start=1):
        console.print(Text(f"{position}. {question.text}", style="bold"))
        if question.kind is QuestionKind.FREE_TEXT:
            console.print(Text("   (free text)", style="dim"))
        for index, option in enumerate(question.options):
            correct = show_answers and option == question.correct_answer
            marker = "*" if correct else " "
            style = "green" if correct else ""
            console.print(
                Text(f" {marker} {option_key(index)}) {option}", style=style)
            )
        console.print()


def render_grade_report(
    console: Console,
    batch: QuizBatch,
    answers: Sequence[AnswerSubmission],
    report: GradeReport,
) -> None:
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Total questions", str(len(report.results)))
    overview.add_row(
        "Answered",
        str(sum(1 for answer in answers if answer.value is not None)),
    )
    overview.add_row("Correct", str(report.correct_count))
    overview.add_row("Score", f"{report.score}%")
    console.print(overview)

    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer", overflow="fold")
    responses.add_column("Result", justify="center")
    responses.add_column("Feedback", overflow="fold")
    for result, answer, question in zip(
        report.results, answers, batch.questions
    ):
        responses.add_row(
            str(result.index + 1),
            question.text,
            answer.value or "-",
            "✅" if result.is_correct else "❌",
            result.feedback,
        )
    console.print(responses)

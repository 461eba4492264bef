"""Command line entry point for quizlyst."""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from importlib import metadata
from pathlib import Path
from typing import Mapping, Optional, Sequence

from rich.console import Console
from rich.text import Text

from .completion import build_client
from .content import load_source
from .core.config import (
    QuizlystConfig,
    load_config,
    resolve_config_path,
    write_template,
)
from .core.logging import configure_logger
from .core.workspace import ensure_workspace
from .errors import QuizlystError
from .quiz.generator import GenerationSettings
from .quiz.models import QuizBatch
from .service import NOTES_MODES, StudyService
from .view import (
    InputProvider,
    collect_answers,
    render_grade_report,
    render_notes,
    render_quiz,
)

logger = logging.getLogger(__name__)

EXIT_CODES: Mapping[str, int] = {
    "bad_input": 2,
    "config": 2,
    "upstream": 3,
    "generation": 4,
}


def _version() -> str:
    try:
        return metadata.version("quizlyst")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="quizlyst",
        description="Generate study notes and quizzes from text sources",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("-V", "--version", action="version", version=_version())
    p.add_argument("--config", type=Path, help="Path to quizlyst.toml")
    p.add_argument(
        "--workspace",
        type=Path,
        help="Workspace directory (defaults to $QUIZLYST_HOME or ~/.quizlyst)",
    )
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured file log level",
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Also log to the console",
    )
    sub = p.add_subparsers(dest="command", required=True)

    def add_source_args(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "source", help="Text or Markdown file to study, or - for stdin"
        )
        parser.add_argument("--mode", choices=NOTES_MODES, default="simple")
        parser.add_argument(
            "--instructions", help="Custom note instructions (custom mode)"
        )

    sp_notes = sub.add_parser("notes", help="Generate notes and a summary")
    add_source_args(sp_notes)

    sp_quiz = sub.add_parser("quiz", help="Generate notes, then take a quiz")
    add_source_args(sp_quiz)
    sp_quiz.add_argument(
        "--difficulty",
        choices=["easy", "medium", "hard"],
        help="Quiz difficulty (defaults to quiz.default_difficulty)",
    )
    sp_quiz.add_argument(
        "--count",
        type=int,
        help="Number of questions (defaults to quiz.default_count)",
    )
    sp_quiz.add_argument(
        "--no-interactive",
        dest="interactive",
        action="store_false",
        help="Print the quiz with answers instead of running a session",
    )
    sp_quiz.add_argument(
        "--show-notes",
        action="store_true",
        help="Print the generated notes before the quiz",
    )

    sp_config = sub.add_parser("config", help="Manage quizlyst.toml")
    config_sub = sp_config.add_subparsers(dest="action", required=True)
    sp_init = config_sub.add_parser("init", help="Write the config template")
    sp_init.add_argument(
        "--force", action="store_true", help="Overwrite an existing file"
    )
    config_sub.add_parser("validate", help="Validate the active config")
    config_sub.add_parser("path", help="Print the active config path")
    return p


def _cmd_config(args: argparse.Namespace, console: Console) -> int:
    path = resolve_config_path(
        explicit_path=args.config, workspace_path=args.workspace
    )
    if args.action == "path":
        console.print(str(path), markup=False, highlight=False)
        return 0
    if args.action == "init":
        if args.config is None:
            ensure_workspace(path=args.workspace)
        written = write_template(path, overwrite=args.force)
        console.print(f"Created template {written}", markup=False)
        return 0
    config = load_config(
        explicit_path=args.config, workspace_path=args.workspace
    )
    if config.source is None:
        console.print(
            f"No config at {path}; built-in defaults are valid.", markup=False
        )
    else:
        console.print(f"Config OK: {config.source}", markup=False)
    return 0


def _setup(args: argparse.Namespace) -> QuizlystConfig:
    layout = ensure_workspace(path=args.workspace)
    config = load_config(
        explicit_path=args.config, workspace_path=args.workspace
    )
    _, log_path = configure_logger(
        log_dir=layout.path_for("logs"),
        level=args.log_level or config.logging.level,
        verbose=bool(args.verbose or config.logging.verbose),
    )
    logger.debug(
        "Configured quizlyst",
        extra={
            "command": args.command,
            "config": str(config.source) if config.source else None,
            "log_path": str(log_path),
        },
    )
    return config


def _build_service(config: QuizlystConfig) -> StudyService:
    client = build_client(config.providers)
    return StudyService(
        client,
        generator_settings=GenerationSettings.from_config(config.quiz),
        change_difficulty_count=config.quiz.change_difficulty_count,
    )


def _cmd_notes(
    args: argparse.Namespace, config: QuizlystConfig, console: Console
) -> int:
    source = load_source(args.source, config.content)
    service = _build_service(config)
    with console.status("Generating notes..."):
        result = service.generate_notes(
            uuid.uuid4().hex,
            source.text,
            mode=args.mode,
            custom_instructions=args.instructions,
            source_label=source.label,
        )
    render_notes(console, result)
    return 0


def _cmd_quiz(
    args: argparse.Namespace,
    config: QuizlystConfig,
    console: Console,
    input_provider: InputProvider,
) -> int:
    source = load_source(args.source, config.content)
    service = _build_service(config)
    session_id = uuid.uuid4().hex
    difficulty = args.difficulty or config.quiz.default_difficulty
    count = args.count if args.count is not None else config.quiz.default_count

    with console.status("Generating notes..."):
        notes = service.generate_notes(
            session_id,
            source.text,
            mode=args.mode,
            custom_instructions=args.instructions,
            source_label=source.label,
        )
    if args.show_notes:
        render_notes(console, notes)
    with console.status(f"Generating {count} {difficulty} question(s)..."):
        batch = service.generate_quiz(session_id, difficulty, count)
    _report_shortfall(console, batch)

    if not args.interactive:
        render_quiz(console, batch, show_answers=True)
        return 0

    answers = collect_answers(batch, console, input_provider)
    if answers is None:
        console.print("No answers submitted.")
        return 0
    report = service.regrade_batch(session_id, answers)
    render_grade_report(console, batch, answers, report)
    return 0


def _report_shortfall(console: Console, batch: QuizBatch) -> None:
    if batch.achieved_count < batch.requested_count:
        console.print(
            f"[yellow]Only {batch.achieved_count} of "
            f"{batch.requested_count} questions could be generated.[/]"
        )


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    out = console or Console()
    err = console or Console(stderr=True)

    try:
        if args.command == "config":
            return _cmd_config(args, out)
        config = _setup(args)
        if args.command == "notes":
            return _cmd_notes(args, config, out)
        if args.command == "quiz":
            return _cmd_quiz(
                args,
                config,
                out,
                input_provider or (lambda: out.input("> ")),
            )
    except QuizlystError as exc:
        logger.error(
            "Command failed",
            extra={"command": args.command, "category": exc.category},
            exc_info=exc.category not in ("bad_input", "config"),
        )
        err.print(Text.assemble(("Error: ", "bold red"), str(exc)))
        return EXIT_CODES.get(exc.category, 1)

    parser.print_help()  # pragma: no cover - subparsers are required
    return 2


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main(sys.argv[1:]))

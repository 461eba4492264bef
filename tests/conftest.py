from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator, List

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from quizlyst.core.logging import LOGGER_NAME, close_handlers  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_quizlyst_logger() -> Iterator[None]:
    yield
    close_handlers()
    logging.getLogger(LOGGER_NAME).propagate = True


@pytest.fixture(autouse=True)
def _isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("QUIZLYST_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("QUIZLYST_CONFIG", raising=False)


@pytest.fixture
def notes_lines() -> List[str]:
    return [
        "## Photosynthesis",
        "* Plants convert light energy into chemical energy.",
        "* Chlorophyll absorbs mostly blue and red light.",
    ]

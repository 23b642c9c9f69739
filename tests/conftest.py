from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from fakes import ComposeRecorder, make_settings
import pytest

from ragup.config.settings import StackSettings
from ragup.utils.log_utils import logger


@pytest.fixture
def settings(tmp_path: Path) -> StackSettings:
    return make_settings(tmp_path)


@pytest.fixture
def compose_recorder(monkeypatch: pytest.MonkeyPatch) -> ComposeRecorder:
    recorder = ComposeRecorder()
    monkeypatch.setattr("ragup.utils.docker.compose.subprocess.run", recorder)
    return recorder


@pytest.fixture
def log_lines() -> Iterator[list[str]]:
    """Collect ``"LEVEL message"`` lines emitted through the shared logger."""
    lines: list[str] = []
    handler_id = logger.add(
        lambda message: lines.append(message.rstrip("\n")),
        level="DEBUG",
        format="{level} {message}",
    )
    yield lines
    logger.remove(handler_id)

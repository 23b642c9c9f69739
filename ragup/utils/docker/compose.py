"""Docker Compose command resolution and invocation.

Two functionally identical compose front-ends exist on hosts: the standalone
``docker-compose`` binary and the ``docker compose`` CLI plugin. The variant is
probed once per run and every later action goes through the same
``ComposeDriver``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
import shutil
import subprocess

from ragup.utils.log_utils import logger

from .errors import CommandFailed, ToolMissing


__all__ = [
    "ComposeCommand",
    "ComposeDriver",
    "compose_plugin_available",
    "resolve_compose_command",
]


class ComposeCommand(Enum):
    STANDALONE = ("docker-compose",)
    PLUGIN = ("docker", "compose")

    @property
    def argv(self) -> list[str]:
        return list(self.value)

    @property
    def display(self) -> str:
        return " ".join(self.value)


def compose_plugin_available() -> bool:
    """Return True if ``docker compose version`` succeeds."""
    if shutil.which("docker") is None:
        return False
    try:
        result = subprocess.run(
            ["docker", "compose", "version"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        return False
    return result.returncode == 0


def resolve_compose_command() -> ComposeCommand:
    """Pick the compose variant for this run, preferring the standalone binary."""
    if shutil.which("docker-compose") is not None:
        return ComposeCommand.STANDALONE
    if compose_plugin_available():
        return ComposeCommand.PLUGIN
    raise ToolMissing("Docker Compose", "Please install Docker Compose first.")


@dataclass(slots=True)
class ComposeDriver:
    """Issue compose actions with a fixed command variant.

    Attributes:
        command: The compose variant chosen for this run.
        project_dir: Working directory for every invocation.
        compose_file: Optional compose file passed with ``-f``.
    """

    command: ComposeCommand
    project_dir: Path
    compose_file: Path | None = None

    @property
    def display(self) -> str:
        """Human-readable prefix for suggested follow-up commands."""
        return self.command.display

    def build_argv(self, *args: str) -> list[str]:
        argv = self.command.argv
        if self.compose_file is not None:
            argv += ["-f", str(self.compose_file)]
        argv += list(args)
        return argv

    def run(self, args: Sequence[str], *, capture: bool = False) -> str:
        """Run one compose action and raise CommandFailed on a non-zero exit.

        With ``capture`` the combined output is returned instead of streamed to
        the terminal.
        """
        argv = self.build_argv(*args)
        logger.debug(f"Running: {' '.join(argv)} (cwd={self.project_dir})")
        try:
            result = subprocess.run(
                argv,
                cwd=self.project_dir,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.STDOUT if capture else None,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise ToolMissing(argv[0]) from e
        if result.returncode != 0:
            if capture and result.stdout:
                logger.debug(result.stdout)
            raise CommandFailed(argv, result.returncode)
        return result.stdout or ""

    def up(self, service: str, *, build: bool = False, detach: bool = True) -> None:
        args = ["up"]
        if build:
            args.append("--build")
        if detach:
            args.append("-d")
        args.append(service)
        self.run(args)

    def logs(self, service: str | None = None) -> str:
        """Return a snapshot of service logs (never follows)."""
        args = ["logs", "--no-color"]
        if service:
            args.append(service)
        return self.run(args, capture=True)

    def ps(self) -> str:
        return self.run(["ps"], capture=True)

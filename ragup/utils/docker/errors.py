"""Custom exception types for Docker and compose helpers."""

from __future__ import annotations

from collections.abc import Sequence


class DockerError(RuntimeError):
    """Raised when Docker SDK operations fail.

    This includes SDK import issues, daemon connectivity and permission
    problems on the Docker socket.
    """

    pass


class StackError(RuntimeError):
    """Base class for conditions that end a bring-up run.

    ``exit_code`` is the process exit code the CLI reports for the condition.
    """

    exit_code: int = 1


class ToolMissing(StackError):
    """A required host tool (container runtime or compose) is not installed."""

    def __init__(self, tool: str, hint: str | None = None) -> None:
        message = f"{tool} is not installed."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)
        self.tool = tool
        self.hint = hint


class PortInUse(StackError):
    """A host port the stack needs already has a listener."""

    def __init__(self, port: int) -> None:
        super().__init__(f"Port {port} is already in use!")
        self.port = port


class ReadinessTimeout(StackError):
    """A health endpoint did not report success within the polling bound."""

    def __init__(self, url: str, timeout: float, attempts: int) -> None:
        super().__init__(
            f"Timed out after {timeout:g}s ({attempts} probes) waiting for {url}"
        )
        self.url = url
        self.timeout = timeout
        self.attempts = attempts


class CommandFailed(StackError):
    """An external command exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int) -> None:
        joined = " ".join(command)
        super().__init__(f"Command failed with exit code {returncode}: {joined}")
        self.command = list(command)
        self.returncode = returncode
        self.exit_code = returncode or 1


__all__ = [
    "CommandFailed",
    "DockerError",
    "PortInUse",
    "ReadinessTimeout",
    "StackError",
    "ToolMissing",
]

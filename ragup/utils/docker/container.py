"""Dataclass wrapper for a Docker container instance."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from docker.errors import APIError

from .errors import DockerError
from .sdk import find_container


@dataclass(slots=True)
class DockerContainer:
    """A lightweight handle to an existing Docker container.

    Attributes:
        id: Container ID (hash string).
        name: Container name.
        image: Image reference the container runs.
    """

    id: str
    name: str
    image: str
    _container: Any = field(repr=False)

    @classmethod
    def lookup(cls, client: Any, name: str) -> DockerContainer | None:
        """Return a handle for the running container ``name`` or None."""
        container = find_container(client, name)
        if container is None:
            return None
        image = getattr(container, "image", None)
        tags = getattr(image, "tags", None) or []
        return cls(
            id=getattr(container, "id", ""),
            name=getattr(container, "name", name) or name,
            image=tags[0] if tags else "",
            _container=container,
        )

    def exec(
        self,
        command: Sequence[str] | str,
        *,
        user: str | None = None,
        workdir: str | None = None,
        environment: Mapping[str, str] | None = None,
    ) -> tuple[int, str]:
        """Execute a command inside the container and return (exit_code, output)."""
        try:
            res = self._container.exec_run(
                cmd=command,
                user=user or "",
                workdir=workdir,
                environment=dict(environment) if environment else None,
            )
        except APIError as e:
            raise DockerError("Failed to exec inside Docker container.") from e

        exit_code, output = res.exit_code, res.output
        if isinstance(output, bytes | bytearray):
            text = output.decode("utf-8", errors="replace")
        else:
            text = str(output)
        return exit_code if exit_code is not None else 1, text


__all__ = ["DockerContainer"]

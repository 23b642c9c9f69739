"""Low-level Docker SDK access and container state queries (internal).

Container and volume state belongs to the Docker daemon. Everything here is a
narrow query or a single mutation against it, so higher-level code can be
mocked in tests by swapping the client.
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import docker
from docker.errors import APIError, DockerException, NotFound

from ragup.utils.log_utils import logger

from .errors import DockerError


if TYPE_CHECKING:  # pragma: no cover - typing only
    from docker import DockerClient
    from docker.models.containers import Container


def ensure_docker_sdk() -> DockerClient:
    """Return connected Docker client or raise DockerError with guidance."""
    try:
        client = docker.from_env()
        client.ping()
        return client
    except FileNotFoundError as e:  # pragma: no cover
        raise DockerError(
            "Could not find the Docker socket. Is the Docker daemon running? "
            "Start it (e.g., 'systemctl start docker' or 'colima start' / 'docker desktop') and retry."
        ) from e
    except PermissionError as e:  # pragma: no cover
        raise DockerError(
            "Permission denied accessing the Docker socket. Add your user to the 'docker' group or run with appropriate permissions."
        ) from e
    except DockerException as e:  # pragma: no cover
        raise DockerError(
            "Failed to connect to Docker daemon via SDK. Ensure the daemon is running."
        ) from e


def find_container(client: DockerClient, name: str, *, all: bool = False) -> Container | None:
    """Return the container whose name is exactly ``name``, if any.

    The daemon's ``name`` filter matches substrings (``rag-ollama`` also
    matches ``rag-ollama-setup``), so results are narrowed to an exact match.
    """
    for container in client.containers.list(all=all, filters={"name": name}):
        if getattr(container, "name", "") == name:
            return container
    return None


def is_container_running(client: DockerClient, name: str) -> bool:
    """Return True if a container named ``name`` is in the running set."""
    return find_container(client, name) is not None


def remove_container(client: DockerClient, name: str, *, stop_timeout: int = 10) -> bool:
    """Stop and remove the container named ``name``.

    Absence (or a failure to stop/remove) is not an error. Returns True when a
    container was found.
    """
    container = find_container(client, name, all=True)
    if container is None:
        logger.debug(f"No container named '{name}' to remove")
        return False
    with contextlib.suppress(APIError):
        logger.debug(f"Stopping container '{name}'")
        container.stop(timeout=stop_timeout)
    with contextlib.suppress(APIError):
        logger.debug(f"Removing container '{name}'")
        container.remove(force=True)
    return True


def remove_volumes_matching(client: DockerClient, fragment: str) -> list[str]:
    """Remove every volume whose name contains ``fragment``.

    Volumes still in use by a container cannot be removed; those failures are
    logged and skipped. Returns the names that were removed.
    """
    removed: list[str] = []
    try:
        volumes = client.volumes.list()
    except APIError as e:
        logger.warning(f"Could not list Docker volumes: {e}")
        return removed
    for volume in volumes:
        name = getattr(volume, "name", "")
        if fragment not in name:
            continue
        try:
            volume.remove(force=True)
        except NotFound:
            continue
        except APIError as e:
            logger.warning(f"Could not remove volume '{name}': {e}")
            continue
        removed.append(name)
    return removed


__all__ = [
    "ensure_docker_sdk",
    "find_container",
    "is_container_running",
    "remove_container",
    "remove_volumes_matching",
]

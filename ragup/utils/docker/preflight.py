"""Host checks that must pass before any container is touched."""

from __future__ import annotations

import shutil
import socket

from ragup.utils.log_utils import logger

from .compose import compose_plugin_available
from .errors import PortInUse, ToolMissing


__all__ = ["LOOPBACK_HOSTS", "ensure_port_free", "port_in_use", "require_tools"]

DOCKER_INSTALL_HINT = "Please install Docker first. Visit: https://docs.docker.com/get-docker/"
COMPOSE_INSTALL_HINT = "Please install Docker Compose first."


def require_tools() -> None:
    """Fail fast unless a container runtime and a compose command are available.

    Raises:
        ToolMissing: ``docker`` is not on PATH, or neither ``docker-compose``
            nor the ``docker compose`` plugin works.
    """
    if shutil.which("docker") is None:
        raise ToolMissing("Docker", DOCKER_INSTALL_HINT)
    if shutil.which("docker-compose") is None and not compose_plugin_available():
        raise ToolMissing("Docker Compose", COMPOSE_INSTALL_HINT)
    logger.debug("Found docker and a compose command")


LOOPBACK_HOSTS: tuple[str, ...] = ("127.0.0.1", "::1")


def port_in_use(
    port: int,
    hosts: tuple[str, ...] = LOOPBACK_HOSTS,
    timeout: float = 0.5,
) -> bool:
    """Return True if something accepts TCP connections on ``port`` at any of ``hosts``."""
    for host in hosts:
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        try:
            with socket.socket(family, socket.SOCK_STREAM) as sock:
                sock.settimeout(timeout)
                if sock.connect_ex((host, port)) == 0:
                    return True
        except OSError as e:
            # Hosts without IPv6 cannot open the ::1 socket at all.
            logger.debug(f"Skipping port check on {host}: {e}")
    return False


def ensure_port_free(port: int) -> None:
    if port_in_use(port):
        raise PortInUse(port)

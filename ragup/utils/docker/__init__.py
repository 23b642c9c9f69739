"""High-level Docker utilities package.

This package provides structured helpers for:
    * Checking the host for ``docker`` and a compose command, and for free
        ports (``require_tools`` / ``ensure_port_free``)
    * Resolving the compose variant once and issuing compose actions through
        it (``resolve_compose_command`` / ``ComposeDriver``)
    * Reconciling a service against the daemon's running set
        (``ensure_service_running``)
    * Polling an HTTP health endpoint with a fixed interval and a fixed bound
        (``wait_for_http_ready``)

Principles:
    * Keep low-level SDK usage encapsulated (see ``sdk.py``) so higher-level
        code can be easily mocked in tests.
    * Avoid side effects at import time (no client construction until needed).

Public API (re-exported):
        - StackError, ToolMissing, PortInUse, ReadinessTimeout, CommandFailed
        - DockerError
        - DockerContainer
        - ComposeCommand, ComposeDriver, resolve_compose_command
        - require_tools, ensure_port_free
        - ensure_service_running, ensure_model_available, wait_for_http_ready
"""

from .compose import ComposeCommand, ComposeDriver, resolve_compose_command
from .container import DockerContainer
from .errors import (
    CommandFailed,
    DockerError,
    PortInUse,
    ReadinessTimeout,
    StackError,
    ToolMissing,
)
from .operations import (
    ReconcileOutcome,
    ensure_model_available,
    ensure_service_running,
    http_probe,
    wait_for_http_ready,
)
from .preflight import ensure_port_free, require_tools


__all__ = [
    "CommandFailed",
    "ComposeCommand",
    "ComposeDriver",
    "DockerContainer",
    "DockerError",
    "PortInUse",
    "ReadinessTimeout",
    "ReconcileOutcome",
    "StackError",
    "ToolMissing",
    "ensure_model_available",
    "ensure_port_free",
    "ensure_service_running",
    "http_probe",
    "require_tools",
    "resolve_compose_command",
    "wait_for_http_ready",
]

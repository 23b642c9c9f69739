"""Core bring-up operations: reconcile service state, wait for readiness."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from functools import partial
import time
from typing import TYPE_CHECKING

import httpx
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from ragup.config.settings import ServiceSettings, StackSettings
from ragup.utils.log_utils import logger

from .compose import ComposeDriver
from .container import DockerContainer
from .errors import DockerError, ReadinessTimeout
from .logging_utils import log_multiline
from .sdk import is_container_running


if TYPE_CHECKING:  # pragma: no cover - typing only
    from docker import DockerClient


__all__ = [
    "ReconcileOutcome",
    "ensure_model_available",
    "ensure_service_running",
    "http_probe",
    "wait_for_http_ready",
]

Probe = Callable[[str], bool]

PROBE_TIMEOUT = 5.0


class ReconcileOutcome(str, Enum):
    ALREADY_RUNNING = "already_running"
    STARTED = "started"


def ensure_service_running(
    client: DockerClient,
    compose: ComposeDriver,
    service: ServiceSettings,
) -> ReconcileOutcome:
    """Start ``service`` through compose unless its container is already running.

    The running check looks for the service's container name in the daemon's
    running set; when it is present no compose command is issued at all.
    """
    if is_container_running(client, service.container_name):
        logger.info(f"'{service.service}' is already running ({service.container_name}).")
        return ReconcileOutcome.ALREADY_RUNNING

    logger.info(f"Starting '{service.service}' service...")
    compose.up(service.service, build=True, detach=True)
    return ReconcileOutcome.STARTED


def http_probe(url: str, timeout: float = PROBE_TIMEOUT) -> bool:
    """Return True if a GET on ``url`` answers with a status below 400."""
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=False)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug(f"Probe {url} failed: {e}")
        return False
    return response.status_code < 400


def wait_for_http_ready(
    url: str,
    *,
    timeout: float = 60.0,
    interval: float = 2.0,
    probe: Probe | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Block until ``probe(url)`` succeeds or the polling bound is exhausted.

    Polling stops after ``timeout / interval`` probes or once ``timeout``
    seconds have elapsed, whichever comes first.

    Args:
        url: Health endpoint to probe.
        timeout: Polling bound in seconds.
        interval: Fixed delay between probes. There is no backoff or jitter.
        probe: Callable returning True once the endpoint is healthy. Defaults
            to ``http_probe`` with a request timeout no longer than ``interval``.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The number of probes issued, including the successful one.

    Raises:
        ReadinessTimeout: If every probe within the bound failed.
    """
    if probe is None:
        probe = partial(http_probe, timeout=min(PROBE_TIMEOUT, interval))
    attempts = max(1, int(timeout // interval))
    probes = 0

    def _counted_probe(target: str) -> bool:
        nonlocal probes
        probes += 1
        return probe(target)

    def _log_progress(retry_state: RetryCallState) -> None:
        elapsed = (retry_state.attempt_number - 1) * interval
        logger.info(f"   Waiting... ({elapsed:g}/{timeout:g} seconds)")

    retrying = Retrying(
        retry=retry_if_result(lambda ok: not ok),
        stop=stop_after_attempt(attempts) | stop_after_delay(timeout),
        wait=wait_fixed(interval),
        before_sleep=_log_progress,
        sleep=sleep,
    )
    try:
        retrying(_counted_probe, url)
    except RetryError as e:
        raise ReadinessTimeout(url, timeout, probes) from e
    return probes


def ensure_model_available(
    client: DockerClient,
    compose: ComposeDriver,
    settings: StackSettings,
) -> bool:
    """Download the configured model unless the inference server already has it.

    Models are listed with ``ollama list`` inside the inference container. A
    missing container or a failing exec counts as "not downloaded". The setup
    service runs in the foreground so its progress reaches the terminal.

    Returns:
        True if the setup service was run.
    """
    model = settings.model
    logger.info(f"Checking for {model.name} model...")

    listing = ""
    container = DockerContainer.lookup(client, settings.inference.container_name)
    if container is not None:
        try:
            code, output = container.exec(["ollama", "list"])
        except DockerError as e:
            logger.debug(f"Could not list models: {e}")
        else:
            if code == 0:
                listing = output
                log_multiline(output, "[ollama]", level="debug")

    if model.name in listing:
        logger.info(f"{model.name} model already downloaded.")
        return False

    logger.info(f"Downloading {model.name} model...")
    logger.info("   This may take 5-15 minutes depending on your internet connection...")
    compose.up(model.setup_service, detach=False)
    return True

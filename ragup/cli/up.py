from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
import time
from typing import Any

from docker.errors import DockerException

from ragup.config.settings import StackSettings
from ragup.utils.docker.compose import ComposeCommand, ComposeDriver, resolve_compose_command
from ragup.utils.docker.errors import (
    CommandFailed,
    DockerError,
    PortInUse,
    ReadinessTimeout,
    StackError,
)
from ragup.utils.docker.logging_utils import log_multiline
from ragup.utils.docker.operations import (
    ReconcileOutcome,
    ensure_model_available,
    ensure_service_running,
    wait_for_http_ready,
)
from ragup.utils.docker.preflight import ensure_port_free, require_tools
from ragup.utils.docker.sdk import ensure_docker_sdk, remove_container, remove_volumes_matching
from ragup.utils.log_utils import logger


WIPE_PROMPT = "Do you want to remove existing Ollama data (models will be re-downloaded)?"
RULE = "=" * 50
PORT_HINT = "Please stop the service using this port or choose a different port."


@dataclass(slots=True)
class UpOptions:
    settings: StackSettings
    confirm: Callable[[str], bool]
    probe: Callable[[str], bool] | None = None
    sleep: Callable[[float], None] = time.sleep


@dataclass(slots=True)
class BringupReport:
    """What a bring-up run did and where the services can be reached."""

    exit_code: int = 0
    compose_command: ComposeCommand | None = None
    inference_outcome: ReconcileOutcome | None = None
    inference_ready: bool = False
    model_pulled: bool = False
    app_ready: bool = False
    access_urls: list[str] = field(default_factory=list)


def _create_work_dirs(settings: StackSettings) -> list[Path]:
    logger.info("Creating necessary directories...")
    created: list[Path] = []
    for name in settings.work_dirs:
        path = settings.project_dir / name
        path.mkdir(parents=True, exist_ok=True)
        created.append(path)
    return created


def _wipe_model_data(client: Any, settings: StackSettings) -> None:
    logger.info("Removing existing Ollama data...")
    # Volumes attached to a container cannot be removed.
    remove_container(client, settings.inference.container_name)
    removed = remove_volumes_matching(client, settings.data_volume_match)
    if removed:
        logger.info(f"Removed volumes: {', '.join(removed)}")
    else:
        logger.info("No matching volumes found.")


def _dump_logs(compose: ComposeDriver, service: str, *, level: str = "error") -> None:
    try:
        output = compose.logs(service)
    except CommandFailed as e:
        logger.warning(f"Could not collect logs for '{service}': {e}")
        return
    log_multiline(output, f"[{service}]", level=level)


def _wait_for_inference(options: UpOptions, compose: ComposeDriver) -> None:
    settings = options.settings
    service = settings.inference
    logger.info(f"Waiting for '{service.service}' to be ready...")
    try:
        wait_for_http_ready(
            service.health_url,
            timeout=settings.readiness.timeout,
            interval=settings.readiness.interval,
            probe=options.probe,
            sleep=options.sleep,
        )
    except ReadinessTimeout:
        logger.error(f"Timeout waiting for '{service.service}' to start")
        _dump_logs(compose, service.service)
        raise
    logger.info(f"'{service.service}' is ready!")


def _wait_for_app(options: UpOptions, compose: ComposeDriver) -> bool:
    """Poll the application; a timeout is reported but does not fail the run."""
    settings = options.settings
    app = settings.app
    logger.info("Waiting for RAG application to be ready...")
    try:
        wait_for_http_ready(
            app.health_url,
            timeout=settings.readiness.timeout,
            interval=settings.readiness.interval,
            probe=options.probe,
            sleep=options.sleep,
        )
    except ReadinessTimeout:
        logger.warning("Application might still be initializing...")
        _dump_logs(compose, app.service, level="warning")
        logger.warning(f"   Check the logs: {compose.display} logs {app.service}")
        logger.warning(f"   Or try accessing: {app.base_url}")
        return False
    logger.info("RAG Application is ready!")
    logger.info(f"Open your browser to: {app.base_url}")
    logger.info(f"The app includes the {settings.model.name} model for local inference")
    return True


def _log_summary(settings: StackSettings, compose: ComposeDriver, report: BringupReport) -> None:
    cmd = compose.display
    logger.info("")
    logger.info("RAG System is starting up!")
    logger.info(RULE)
    logger.info("Service Status:")
    log_multiline(compose.ps())
    logger.info("")
    logger.info("Access your application at:")
    for url in report.access_urls:
        logger.info(f"   {url}")
    logger.info("")
    logger.info("Useful commands:")
    logger.info(f"   View logs:           {cmd} logs -f")
    logger.info(f"   View app logs:       {cmd} logs -f {settings.app.service}")
    logger.info(f"   View ollama logs:    {cmd} logs -f {settings.inference.service}")
    logger.info(f"   Stop services:       {cmd} down")
    logger.info(f"   Restart app:         {cmd} restart {settings.app.service}")
    logger.info(
        f"   Update models:       docker exec {settings.inference.container_name} "
        f"ollama pull {settings.model.tag}"
    )
    logger.info("")


def _log_companions(settings: StackSettings) -> None:
    if not settings.companion_services:
        return
    logger.info("")
    logger.info("Note: Your other services remain running:")
    for label, url in settings.companion_services:
        logger.info(f"   - {label}: {url}")


def _bring_up(options: UpOptions, report: BringupReport) -> None:
    settings = options.settings

    require_tools()
    _create_work_dirs(settings)

    client = ensure_docker_sdk()
    logger.info("Stopping any existing RAG containers...")
    for name in settings.stale_containers:
        remove_container(client, name)

    ensure_port_free(settings.app.port)

    if options.confirm(WIPE_PROMPT):
        _wipe_model_data(client, settings)

    command = resolve_compose_command()
    report.compose_command = command
    compose = ComposeDriver(
        command=command,
        project_dir=settings.project_dir,
        compose_file=settings.compose_file,
    )
    logger.debug(f"Using compose command: {compose.display}")

    report.inference_outcome = ensure_service_running(client, compose, settings.inference)
    if report.inference_outcome is ReconcileOutcome.STARTED:
        _wait_for_inference(options, compose)
    report.inference_ready = True

    report.model_pulled = ensure_model_available(client, compose, settings)

    logger.info("Building and starting RAG application...")
    compose.up(settings.app.service, build=True, detach=True)

    report.access_urls = [settings.app.base_url, settings.inference.base_url]
    _log_summary(settings, compose, report)

    report.app_ready = _wait_for_app(options, compose)
    _log_companions(settings)


def run(options: UpOptions) -> BringupReport:
    """Bring the stack up and report the outcome.

    Terminal conditions are logged and turned into ``report.exit_code``; the
    application's readiness timeout only downgrades to a warning.
    """
    report = BringupReport()
    logger.info(f"Starting RAG System with Ollama and {options.settings.model.name}...")
    logger.info(RULE)
    try:
        _bring_up(options, report)
    except PortInUse as e:
        logger.error(str(e))
        logger.error(PORT_HINT)
        report.exit_code = e.exit_code
    except StackError as e:
        logger.error(str(e))
        report.exit_code = e.exit_code
    except (DockerError, DockerException) as e:
        logger.error(str(e))
        report.exit_code = 1
    return report

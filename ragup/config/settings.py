"""Centralised environment configuration for ragup.

This module ensures `.env` loading happens in one place and exposes a
typed snapshot of project paths, service ports, and readiness timing.
Downstream modules call `get_settings()` instead of touching `os.environ`
directly, making it easier to validate values and override behaviour in
tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv


_DEFAULT_ENV_NAME = ".env"

DEFAULT_HOST = "localhost"
DEFAULT_OLLAMA_PORT = 11435
DEFAULT_APP_PORT = 8503
DEFAULT_READY_TIMEOUT = 60.0
DEFAULT_READY_INTERVAL = 2.0
DEFAULT_MODEL_NAME = "deepseek-r1"
DEFAULT_MODEL_TAG = "deepseek-r1:8b"

WORK_DIRS: tuple[str, ...] = ("data", "embeddings", "static", "tmp", "vector_store")
COMPANION_SERVICES: tuple[tuple[str, str], ...] = (
    ("eScriptorium", "http://localhost:8501"),
    ("Flower", "http://localhost:5555"),
    ("Pandore", "http://localhost:8550"),
)


def _coerce_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _coerce_port(value: str | None, default: int) -> int:
    port = _coerce_int(value, default)
    return port if 0 < port < 65536 else default


def _coerce_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True)
class ServiceSettings:
    """A compose service the stack waits on."""

    service: str
    container_name: str
    port: int
    health_path: str
    host: str = DEFAULT_HOST

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def health_url(self) -> str:
        return f"{self.base_url}{self.health_path}"


@dataclass(frozen=True)
class ModelSettings:
    name: str
    tag: str
    setup_service: str = "ollama-setup"
    setup_container: str = "rag-ollama-setup"


@dataclass(frozen=True)
class ReadinessSettings:
    timeout: float = DEFAULT_READY_TIMEOUT
    interval: float = DEFAULT_READY_INTERVAL


@dataclass(frozen=True)
class StackSettings:
    """Top-level snapshot of configuration values."""

    env_file: Path
    project_dir: Path
    compose_file: Path | None
    inference: ServiceSettings
    app: ServiceSettings
    model: ModelSettings
    readiness: ReadinessSettings
    data_volume_match: str = "ollama"
    work_dirs: tuple[str, ...] = WORK_DIRS
    companion_services: tuple[tuple[str, str], ...] = COMPANION_SERVICES

    @property
    def stale_containers(self) -> tuple[str, ...]:
        """Containers removed before bring-up so compose can recreate them."""
        return (self.app.container_name, self.model.setup_container)


def _resolve_env_path(env_file: os.PathLike[str] | str | None) -> Path:
    if env_file is None:
        return (Path.cwd() / _DEFAULT_ENV_NAME).resolve()
    return Path(env_file).resolve()


@lru_cache(maxsize=4)
def _load_settings(env_path: Path) -> StackSettings:
    # Existing environment variables take precedence over `.env` defaults.
    load_dotenv(dotenv_path=env_path, override=False)

    project_dir = Path(os.getenv("RAG_PROJECT_DIR") or Path.cwd()).expanduser().resolve()
    compose_raw = os.getenv("RAG_COMPOSE_FILE")
    compose_file: Path | None = None
    if compose_raw:
        compose_file = Path(compose_raw).expanduser()
        if not compose_file.is_absolute():
            compose_file = project_dir / compose_file

    host = os.getenv("RAG_HOST") or DEFAULT_HOST

    inference = ServiceSettings(
        service="ollama",
        container_name="rag-ollama",
        port=_coerce_port(os.getenv("RAG_OLLAMA_PORT"), DEFAULT_OLLAMA_PORT),
        health_path="/api/tags",
        host=host,
    )
    app = ServiceSettings(
        service="rag-app",
        container_name="rag-streamlit-app",
        port=_coerce_port(os.getenv("RAG_APP_PORT"), DEFAULT_APP_PORT),
        health_path="/_stcore/health",
        host=host,
    )

    model = ModelSettings(
        name=os.getenv("RAG_MODEL_NAME") or DEFAULT_MODEL_NAME,
        tag=os.getenv("RAG_MODEL_TAG") or DEFAULT_MODEL_TAG,
    )

    readiness = ReadinessSettings(
        timeout=_coerce_float(os.getenv("RAG_READY_TIMEOUT"), DEFAULT_READY_TIMEOUT),
        interval=_coerce_float(os.getenv("RAG_READY_INTERVAL"), DEFAULT_READY_INTERVAL),
    )

    return StackSettings(
        env_file=env_path,
        project_dir=project_dir,
        compose_file=compose_file,
        inference=inference,
        app=app,
        model=model,
        readiness=readiness,
    )


def get_settings(
    env_file: os.PathLike[str] | str | None = None,
    *,
    reload: bool = False,
) -> StackSettings:
    """Return the cached settings snapshot.

    Args:
        env_file: Optional explicit path to a `.env` file. When omitted the
            `.env` file in the current directory is used (if present).
        reload: When True the cached snapshot is cleared before loading.
    """
    env_path = _resolve_env_path(env_file)
    if reload:
        _load_settings.cache_clear()
    return _load_settings(env_path)

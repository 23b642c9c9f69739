"""End-to-end tests of the bring-up sequence against a faked host."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

from fakes import ComposeRecorder, FakeContainer, FakeDockerClient, FakeVolume
import pytest

from ragup.cli import up
from ragup.config.settings import StackSettings
from ragup.utils.docker.compose import ComposeCommand
from ragup.utils.docker.errors import PortInUse, ToolMissing
from ragup.utils.docker.operations import ReconcileOutcome


MODEL_LISTING = b"NAME               ID          SIZE\ndeepseek-r1:8b     28f8fd6cdc67 4.9 GB\n"


@pytest.fixture
def stack(
    monkeypatch: pytest.MonkeyPatch,
    settings: StackSettings,
    compose_recorder: ComposeRecorder,
) -> SimpleNamespace:
    client = FakeDockerClient()
    monkeypatch.setattr(up, "require_tools", lambda: None)
    monkeypatch.setattr(up, "ensure_port_free", lambda port: None)
    monkeypatch.setattr(up, "ensure_docker_sdk", lambda: client)
    monkeypatch.setattr(up, "resolve_compose_command", lambda: ComposeCommand.PLUGIN)
    return SimpleNamespace(client=client, compose=compose_recorder, settings=settings)


def _options(
    settings: StackSettings,
    *,
    probe: Callable[[str], bool] | None = None,
    confirm: bool = False,
    sleeps: list[float] | None = None,
) -> up.UpOptions:
    recorded = sleeps if sleeps is not None else []
    return up.UpOptions(
        settings=settings,
        confirm=lambda _message: confirm,
        probe=probe or (lambda _url: True),
        sleep=recorded.append,
    )


def test_fresh_host_brings_up_both_services(
    stack: SimpleNamespace, tmp_path: Path, log_lines: list[str]
) -> None:
    report = up.run(_options(stack.settings))

    assert report.exit_code == 0
    assert report.compose_command is ComposeCommand.PLUGIN
    assert report.inference_outcome is ReconcileOutcome.STARTED
    assert report.inference_ready is True
    assert report.app_ready is True
    assert report.model_pulled is True
    assert report.access_urls == ["http://localhost:8503", "http://localhost:11435"]
    assert stack.compose.actions() == [
        ["up", "--build", "-d", "ollama"],
        ["up", "ollama-setup"],
        ["up", "--build", "-d", "rag-app"],
        ["ps"],
    ]
    assert all(cwd == tmp_path for cwd in stack.compose.cwds)

    access = log_lines.index("INFO Access your application at:")
    assert log_lines[access + 1 : access + 3] == [
        "INFO    http://localhost:8503",
        "INFO    http://localhost:11435",
    ]
    assert "INFO RAG Application is ready!" in log_lines
    note = log_lines.index("INFO Note: Your other services remain running:")
    assert log_lines[note + 1 :] == [
        "INFO    - eScriptorium: http://localhost:8501",
        "INFO    - Flower: http://localhost:5555",
        "INFO    - Pandore: http://localhost:8550",
    ]


def test_work_dirs_are_created(stack: SimpleNamespace, tmp_path: Path) -> None:
    up.run(_options(stack.settings))

    for name in ("data", "embeddings", "static", "tmp", "vector_store"):
        assert (tmp_path / name).is_dir()


def test_running_inference_service_is_not_started_again(stack: SimpleNamespace) -> None:
    stack.client.containers.items.append(
        FakeContainer("rag-ollama", exec_output=MODEL_LISTING)
    )
    probed: list[str] = []

    def probe(url: str) -> bool:
        probed.append(url)
        return True

    report = up.run(_options(stack.settings, probe=probe))

    assert report.exit_code == 0
    assert report.inference_outcome is ReconcileOutcome.ALREADY_RUNNING
    assert report.model_pulled is False
    assert ["up", "--build", "-d", "ollama"] not in stack.compose.actions()
    assert stack.compose.actions() == [["up", "--build", "-d", "rag-app"], ["ps"]]
    assert probed == ["http://localhost:8503/_stcore/health"]


def test_inference_timeout_fails_run_and_dumps_logs(stack: SimpleNamespace) -> None:
    sleeps: list[float] = []
    probed: list[str] = []

    def never_ready(url: str) -> bool:
        probed.append(url)
        return False

    report = up.run(_options(stack.settings, probe=never_ready, sleeps=sleeps))

    assert report.exit_code == 1
    assert report.inference_ready is False
    assert len(probed) == 30
    assert set(probed) == {"http://localhost:11435/api/tags"}
    assert sleeps == [2.0] * 29
    assert stack.compose.actions() == [
        ["up", "--build", "-d", "ollama"],
        ["logs", "--no-color", "ollama"],
    ]


def test_app_timeout_only_warns(stack: SimpleNamespace, log_lines: list[str]) -> None:
    report = up.run(_options(stack.settings, probe=lambda url: "11435" in url))

    assert report.exit_code == 0
    assert report.inference_ready is True
    assert report.app_ready is False
    assert ["up", "--build", "-d", "rag-app"] in stack.compose.actions()
    assert ["logs", "--no-color", "rag-app"] in stack.compose.actions()
    assert report.access_urls == ["http://localhost:8503", "http://localhost:11435"]
    warnings = [line for line in log_lines if line.startswith("WARNING ")]
    assert "WARNING Application might still be initializing..." in warnings
    assert "WARNING    Check the logs: docker compose logs rag-app" in warnings
    assert "WARNING    Or try accessing: http://localhost:8503" in warnings
    assert not any(line.startswith("ERROR ") for line in log_lines)
    assert "INFO    - Pandore: http://localhost:8550" in log_lines


def test_missing_tools_stop_before_any_container_action(
    stack: SimpleNamespace, monkeypatch: pytest.MonkeyPatch
) -> None:
    def missing() -> None:
        raise ToolMissing("Docker", "Please install Docker first.")

    def no_daemon() -> None:
        pytest.fail("Docker daemon must not be contacted when tools are missing")

    monkeypatch.setattr(up, "require_tools", missing)
    monkeypatch.setattr(up, "ensure_docker_sdk", no_daemon)

    report = up.run(_options(stack.settings))

    assert report.exit_code == 1
    assert stack.compose.calls == []


def test_port_in_use_stops_before_compose(
    stack: SimpleNamespace, monkeypatch: pytest.MonkeyPatch, log_lines: list[str]
) -> None:
    def bound(port: int) -> None:
        raise PortInUse(port)

    def confirm(_message: str) -> bool:
        pytest.fail("prompt must not be shown when the port is taken")

    monkeypatch.setattr(up, "ensure_port_free", bound)
    options = _options(stack.settings)
    options.confirm = confirm

    report = up.run(options)

    assert report.exit_code == 1
    assert stack.compose.calls == []
    errors = [line for line in log_lines if line.startswith("ERROR ")]
    assert errors == [
        "ERROR Port 8503 is already in use!",
        "ERROR Please stop the service using this port or choose a different port.",
    ]


def test_stale_containers_are_removed(stack: SimpleNamespace) -> None:
    app = FakeContainer("rag-streamlit-app")
    setup = FakeContainer("rag-ollama-setup", running=False)
    stack.client.containers.items.extend([app, setup])

    up.run(_options(stack.settings))

    assert app.stopped and app.removed
    assert setup.removed


def test_confirmed_wipe_removes_model_volumes(stack: SimpleNamespace) -> None:
    ollama = FakeContainer("rag-ollama", exec_output=MODEL_LISTING)
    model_volume = FakeVolume("rag_ollama_data")
    other_volume = FakeVolume("rag_vector_store")
    stack.client.containers.items.append(ollama)
    stack.client.volumes.items.extend([model_volume, other_volume])

    report = up.run(_options(stack.settings, confirm=True))

    assert report.exit_code == 0
    assert ollama.stopped and ollama.removed
    assert model_volume.removed is True
    assert other_volume.removed is False
    assert report.inference_outcome is ReconcileOutcome.STARTED


def test_declined_wipe_keeps_volumes(stack: SimpleNamespace) -> None:
    model_volume = FakeVolume("rag_ollama_data")
    stack.client.volumes.items.append(model_volume)

    up.run(_options(stack.settings, confirm=False))

    assert model_volume.removed is False


def test_failing_compose_command_aborts_with_its_exit_code(stack: SimpleNamespace) -> None:
    stack.compose.fail_on("up", 3)

    report = up.run(_options(stack.settings))

    assert report.exit_code == 3
    assert stack.compose.actions() == [["up", "--build", "-d", "ollama"]]

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import typer

from ragup.config import get_settings
from ragup.utils.log_utils import logger

from . import up


app = typer.Typer(
    help="Bring up the local RAG stack (Ollama inference server and Streamlit app).",
    add_completion=False,
)


_P = ParamSpec("_P")
_T = TypeVar("_T")


def _interruptible(handler: Callable[_P, _T]) -> Callable[_P, _T]:
    @wraps(handler)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _T:
        try:
            return handler(*args, **kwargs)
        except KeyboardInterrupt as err:
            logger.info("Interrupted by user")
            raise typer.Exit(code=130) from err

    return wrapper


def _confirm(message: str) -> bool:
    return typer.confirm(message, default=False)


@app.callback()
def main() -> None:
    """Local RAG stack bring-up."""


@app.command("up")
@_interruptible
def up_command() -> int:
    """Start Ollama and the RAG application, waiting for both to become healthy."""
    options = up.UpOptions(settings=get_settings(), confirm=_confirm)
    report = up.run(options)
    if report.exit_code != 0:
        raise typer.Exit(code=report.exit_code)
    return report.exit_code


def run() -> None:
    app()

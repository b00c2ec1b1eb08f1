"""
Run commands for the taskweave CLI.
"""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from taskweave.core.context import TaskContext
from taskweave.core.errors import ConfigResolutionError
from taskweave.core.formatting import format_usage_stats
from taskweave.core.orchestrator import TaskOrchestrator
from taskweave.core.resolver import parse_provider_model
from taskweave.cli.ui.progress import TaskProgress
from taskweave.models.config import TaskweaveConfig
from taskweave.models.results import TaskResponse
from taskweave.models.tasks import ThinkingLevel
from taskweave.utils.logger import get_logger, setup_logging


console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

# Abort signal and loop of the call in progress, for the signal handler
_current_abort: asyncio.Event | None = None
_current_loop: asyncio.AbstractEventLoop | None = None
_shutdown_requested = False


def _signal_handler(signum, frame):
    """Handle SIGINT/SIGTERM by aborting running tasks."""
    global _shutdown_requested

    if _shutdown_requested:
        err_console.print("\n[red]Forced exit[/]")
        sys.exit(130)

    _shutdown_requested = True
    err_console.print("\n[yellow]Aborting running tasks (Ctrl+C again to force)[/]")

    if _current_abort is not None and _current_loop is not None:
        _current_loop.call_soon_threadsafe(_current_abort.set)


def _setup_signal_handlers() -> dict:
    """Set up signal handlers for graceful abort, returning the previous ones."""
    global _shutdown_requested
    _shutdown_requested = False

    signums = [signal.SIGINT]
    if sys.platform != "win32":
        signums.append(signal.SIGTERM)

    previous = {}
    for signum in signums:
        previous[signum] = signal.signal(signum, _signal_handler)
    return previous


def load_request(source: str) -> Any:
    """
    Read a JSON request from a file path or ``-`` for stdin.

    Raises:
        typer.Exit: If the file is missing or not valid JSON
    """
    try:
        if source == "-":
            raw = sys.stdin.read()
        else:
            raw = Path(source).read_text(encoding="utf-8")
    except OSError as e:
        err_console.print(f"[red]Cannot read request: {e}[/]")
        raise typer.Exit(1)

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Request is not valid JSON: {e}[/]")
        raise typer.Exit(1)


def load_config(config_file: str | None) -> TaskweaveConfig:
    try:
        return TaskweaveConfig.load(config_file)
    except FileNotFoundError as e:
        err_console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    except Exception as e:
        err_console.print(f"[red]Error loading config: {e}[/]")
        raise typer.Exit(1)


def build_context(
    config: TaskweaveConfig,
    session_file: str | None,
    model: str | None,
    thinking: str,
    tools: list[str] | None,
    skills_dirs: list[str] | None,
) -> TaskContext:
    """
    Build the caller context from CLI options.

    Raises:
        typer.Exit: If the session model or thinking level is invalid
    """
    session_model = None
    if model:
        try:
            session_model = parse_provider_model(model)
        except ConfigResolutionError as e:
            err_console.print(f"[red]{e.message}[/]")
            raise typer.Exit(1)

    try:
        inherited = ThinkingLevel(thinking)
    except ValueError:
        valid = ", ".join(level.value for level in ThinkingLevel)
        err_console.print(f"[red]Invalid thinking level: {thinking}. Expected one of {valid}.[/]")
        raise typer.Exit(1)

    dirs = list(skills_dirs) if skills_dirs else config.skill_dirs()
    kwargs: dict[str, Any] = {
        "cwd": Path.cwd(),
        "session_file": Path(session_file) if session_file else None,
        "session_model": session_model,
        "inherited_thinking": inherited,
    }
    if tools:
        kwargs["active_tools"] = list(tools)
    return TaskContext.with_skill_dirs(dirs, **kwargs)


async def run_request(
    request: Any,
    context: TaskContext,
    config: TaskweaveConfig,
    timeout: float | None = None,
    show_progress: bool = True,
) -> TaskResponse:
    """
    Execute a request with a live progress view.

    Ctrl+C and the optional timeout both set the abort signal, so running
    tasks are terminated and their partial results still returned.
    """
    global _current_abort, _current_loop

    loop = asyncio.get_running_loop()
    abort = asyncio.Event()
    _current_abort = abort
    _current_loop = loop
    previous_handlers = _setup_signal_handlers()

    timer = None
    if timeout:
        def on_timeout() -> None:
            logger.warning(f"Timed out after {timeout}s, aborting")
            abort.set()

        timer = loop.call_later(timeout, on_timeout)

    orchestrator = TaskOrchestrator(config)
    progress = TaskProgress(err_console, max_tool_calls=config.display.collapsed_item_count)

    try:
        if show_progress:
            with progress.live():
                return await orchestrator.execute(request, context, abort, progress.update)
        return await orchestrator.execute(request, context, abort)
    finally:
        if timer is not None:
            timer.cancel()
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
        _current_abort = None
        _current_loop = None


def print_response(response: TaskResponse, as_json: bool) -> None:
    """Print the final response to stdout."""
    if as_json:
        typer.echo(response.model_dump_json(indent=2))
        return

    style = "red" if response.is_error else None
    console.print(response.text, style=style, markup=False, highlight=False, soft_wrap=True)

    usage = response.details.total_usage
    usage_line = format_usage_stats(usage)
    if usage_line:
        err_console.print(f"[dim]Total: {usage_line}[/]")


def execute_command(
    request: Any,
    config_file: str | None,
    session_file: str | None,
    model: str | None,
    thinking: str,
    tools: list[str] | None,
    skills_dirs: list[str] | None,
    timeout: float | None,
    as_json: bool,
    quiet: bool,
    debug: bool,
) -> None:
    """Shared body of the ``run`` and ``skill`` commands."""
    config = load_config(config_file)
    setup_logging(
        level="debug" if debug else config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
    )
    context = build_context(config, session_file, model, thinking, tools, skills_dirs)

    response = asyncio.run(
        run_request(request, context, config, timeout=timeout, show_progress=not quiet)
    )
    print_response(response, as_json)

    if response.is_error:
        raise typer.Exit(1)

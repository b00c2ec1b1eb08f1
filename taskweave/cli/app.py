"""
Main CLI application.

This module defines the main Typer application and entry point.
"""

from __future__ import annotations

import os
from typing import Optional

import typer
from rich.console import Console

from taskweave import __version__
from taskweave.cli.commands import config

# Create the main app
app = typer.Typer(
    name="taskweave",
    help="Run agent subprocess tasks in single, chain or parallel mode",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.add_typer(config.app, name="config", help="Configuration management")

console = Console()


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]taskweave[/] v{__version__}")
        raise typer.Exit()


class CLIState:
    """Global CLI state for options like quiet, debug, color."""

    quiet: bool = False
    debug: bool = False
    no_color: bool = False


cli_state = CLIState()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Hide the live progress view",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
):
    """
    taskweave - subprocess task orchestration for coding agents

    Runs isolated agent invocations one at a time, as a chain that threads
    each step's output into the next, or in parallel with bounded concurrency.
    """
    cli_state.quiet = quiet
    cli_state.debug = debug
    cli_state.no_color = no_color

    if no_color:
        os.environ["NO_COLOR"] = "1"


@app.command()
def run(
    request: str = typer.Argument(..., help="JSON request file, or - for stdin"),
    session_file: Optional[str] = typer.Option(
        None,
        "--session-file",
        "-s",
        help="Session log that forked tasks start from",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Current session model (provider/modelId), used when tasks set none",
    ),
    thinking: str = typer.Option(
        "medium",
        "--thinking",
        "-t",
        help="Thinking level that 'inherit' resolves to",
    ),
    tool: Optional[list[str]] = typer.Option(
        None,
        "--tool",
        help="Active tool (repeatable); defaults to all built-in tools",
    ),
    skills_dir: Optional[list[str]] = typer.Option(
        None,
        "--skills-dir",
        help="Skill directory (repeatable); defaults to skills.paths from config",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Abort running tasks after this many seconds",
    ),
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file path",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the full response as JSON",
    ),
):
    """
    Run a task request.

    The request is a JSON object with a type (single, chain or parallel)
    and a list of tasks.

    Example:
        taskweave run request.json
        echo '{"type": "single", "tasks": [{"prompt": "hi", "fork": false}]}' | taskweave run -
    """
    from taskweave.cli.commands.run import execute_command, load_request

    execute_command(
        load_request(request),
        config_file=config_file,
        session_file=session_file,
        model=model,
        thinking=thinking,
        tools=tool,
        skills_dirs=skills_dir,
        timeout=timeout,
        as_json=as_json,
        quiet=cli_state.quiet,
        debug=cli_state.debug,
    )


@app.command()
def skill(
    command: str = typer.Argument(..., help='Skill command, e.g. "/skill:review check the parser"'),
    session_file: Optional[str] = typer.Option(
        None,
        "--session-file",
        "-s",
        help="Session log for skills that fork context",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Current session model (provider/modelId)",
    ),
    thinking: str = typer.Option(
        "medium",
        "--thinking",
        "-t",
        help="Thinking level that 'inherit' resolves to",
    ),
    skills_dir: Optional[list[str]] = typer.Option(
        None,
        "--skills-dir",
        help="Skill directory (repeatable)",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Abort the task after this many seconds",
    ),
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file path",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the full response as JSON",
    ),
):
    """
    Run one skill as an isolated task.

    Fork, model and thinking settings come from the skill's front-matter
    (metadata.pi.forkContext, model, thinkingLevel).
    """
    from taskweave.cli.commands.run import execute_command, load_config
    from taskweave.cli.commands.skill import build_skill_request

    request = build_skill_request(command, load_config(config_file), skills_dir)

    execute_command(
        request,
        config_file=config_file,
        session_file=session_file,
        model=model,
        thinking=thinking,
        tools=None,
        skills_dirs=skills_dir,
        timeout=timeout,
        as_json=as_json,
        quiet=cli_state.quiet,
        debug=cli_state.debug,
    )


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

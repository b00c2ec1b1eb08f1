"""
Configuration commands for the taskweave CLI.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from taskweave.models.config import TaskweaveConfig

app = typer.Typer(help="Configuration management")
console = Console()


@app.command("show")
def config_show(
    config_file: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file to show",
    ),
):
    """Show current configuration."""
    try:
        config = TaskweaveConfig.load(config_file)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/]")
        raise typer.Exit(1)

    skill_paths = "\n".join(f"    {path}" for path in config.skills.paths) or "    (none)"
    console.print(
        Panel.fit(
            f"[bold]Runner:[/]\n"
            f"  Command: {' '.join(config.runner.command)}\n"
            f"  Max Tasks: {config.runner.max_parallel_tasks}\n"
            f"  Max Concurrency: {config.runner.max_concurrency}\n"
            f"  Kill Grace: {config.runner.kill_grace_seconds}s\n"
            f"  Temp Prefix: {config.runner.temp_prefix}\n"
            f"\n[bold]Display:[/]\n"
            f"  Skill List Limit: {config.display.skill_list_limit}\n"
            f"  Preview Length: {config.display.preview_length}\n"
            f"  Tool Calls Shown: {config.display.collapsed_item_count}\n"
            f"\n[bold]Skills:[/]\n"
            f"  Paths:\n{skill_paths}\n"
            f"\n[bold]Logging:[/]\n"
            f"  Level: {config.logging.level}\n"
            f"  File: {config.logging.file or '-'}",
            title="[bold blue]taskweave Configuration[/]",
        )
    )


@app.command("init")
def config_init(
    config_file: str = typer.Option(
        "taskweave.yaml",
        "--output",
        "-o",
        help="Output file path",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing file without asking",
    ),
):
    """Initialize a new configuration file."""
    init_config(config_file, force)


def init_config(config_file: str, force: bool = False) -> None:
    """Write the default configuration to a YAML file."""
    config_path = Path(config_file)

    if config_path.exists() and not force:
        overwrite = typer.confirm(f"{config_file} already exists. Overwrite?")
        if not overwrite:
            console.print("[yellow]Cancelled[/]")
            return

    TaskweaveConfig().save(config_path)

    console.print(f"[green]Configuration saved to {config_file}[/]")
    console.print("\n[bold]Next steps:[/]")
    console.print("1. Point runner.command at your agent executable if it is not on PATH as 'pi'")
    console.print("\n2. Run a request:")
    console.print("   [dim]taskweave run request.json[/]")

"""
Skill commands for the taskweave CLI.
"""

from __future__ import annotations

from typing import Any

import typer
from rich.console import Console

from taskweave.core.skills import (
    SkillMetadata,
    build_skill_task_request,
    load_skill_metadata,
    load_skills_from_dirs,
    parse_skill_command,
)
from taskweave.models.config import TaskweaveConfig


err_console = Console(stderr=True)


def build_skill_request(command: str, config: TaskweaveConfig, skills_dirs: list[str] | None) -> dict[str, Any]:
    """
    Turn ``/skill:NAME prompt`` into a single-task request.

    Fork, model and thinking come from the skill's front-matter metadata when
    the skill is found; otherwise defaults apply and the orchestrator reports
    the unknown skill.

    Raises:
        typer.Exit: If the text is not a skill command
    """
    parsed = parse_skill_command(command)
    if parsed is None:
        err_console.print('[red]Expected a skill command like "/skill:NAME prompt".[/]')
        raise typer.Exit(1)

    name, prompt = parsed
    dirs = list(skills_dirs) if skills_dirs else config.skill_dirs()
    skill = next((s for s in load_skills_from_dirs(dirs) if s.name == name), None)
    metadata = load_skill_metadata(skill) if skill else SkillMetadata()

    return build_skill_task_request(name, prompt, metadata)

"""
Caller context.

Everything the orchestrator needs from its host: where to run, which session
to fork from, the host's current model, tools and thinking level, and where
skills come from.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from taskweave.core.resolver import BUILT_IN_TOOLS
from taskweave.core.skills import Skill, load_skills_from_dirs
from taskweave.models.tasks import ProviderModel, ThinkingLevel


SkillProvider = Callable[[], list[Skill]]


def _no_skills() -> list[Skill]:
    return []


@dataclass
class TaskContext:
    """Collaborators supplied by the host for one top-level call."""

    cwd: Path = field(default_factory=Path.cwd)
    session_file: Path | None = None
    session_model: ProviderModel | None = None
    active_tools: list[str] = field(default_factory=lambda: list(BUILT_IN_TOOLS))
    inherited_thinking: ThinkingLevel = ThinkingLevel.MEDIUM
    skill_provider: SkillProvider = _no_skills

    def get_session_file(self) -> Path | None:
        """The persisted session log, or None when it does not exist on disk."""
        if self.session_file is None:
            return None
        return self.session_file if os.path.isfile(self.session_file) else None

    def load_skills(self) -> list[Skill]:
        return list(self.skill_provider())

    @classmethod
    def with_skill_dirs(cls, dirs: list[str | Path], **kwargs) -> "TaskContext":
        """Build a context whose skills are discovered from directories on each call."""
        paths = list(dirs)
        return cls(skill_provider=lambda: load_skills_from_dirs(paths), **kwargs)

"""
Skill prompt building.

A skill is a markdown file (``SKILL.md``) whose body is prepended to a task
prompt. Skill records come from a provider; this module looks them up by
name, loads and caches their bodies, and wraps the user's prompt.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import BaseModel, ConfigDict

from taskweave.core.errors import SkillResolutionError
from taskweave.models.tasks import TaskWorkItem
from taskweave.utils.logger import get_logger


logger = get_logger(__name__)

SKILL_FILENAME = "SKILL.md"
SKILL_COMMAND_PREFIX = "/skill:"
DEFAULT_SKILL_LIST_LIMIT = 30

FRONTMATTER_PATTERN = re.compile(r"^---\n[\s\S]*?\n---\n")
FRONTMATTER_CAPTURE = re.compile(r"^---\n([\s\S]*?)\n---(?:\n|$)")


class Skill(BaseModel):
    """A discoverable skill definition."""

    model_config = ConfigDict(frozen=True)

    name: str
    source: str
    file_path: str
    base_dir: str


class SkillMetadata(BaseModel):
    """Execution hints read from a skill's front-matter."""

    model_config = ConfigDict(frozen=True)

    fork_context: bool = False
    model: str | None = None
    thinking_level: str | None = None


class SkillPromptState:
    """
    Skill lookup table plus a per-call body cache.

    The cache is keyed by skill name and lives for one top-level call, so a
    skill edited on disk mid-call keeps its first-loaded body.
    """

    def __init__(self, skills: Iterable[Skill]):
        self.skills: list[Skill] = list(skills)
        self.by_name: dict[str, Skill] = {}
        for skill in self.skills:
            self.by_name.setdefault(skill.name, skill)
        self.base_cache: dict[str, str] = {}

    def get(self, name: str) -> Skill | None:
        return self.by_name.get(name)


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def strip_frontmatter(content: str) -> str:
    """Remove a leading YAML front-matter block and surrounding whitespace."""
    return FRONTMATTER_PATTERN.sub("", normalize_line_endings(content), count=1).strip()


def format_available_skills(skills: list[Skill], limit: int = DEFAULT_SKILL_LIST_LIMIT) -> str:
    """
    Format skill names for error messages.

    Args:
        skills: Known skills
        limit: Maximum names to list before summarizing the rest

    Returns:
        ``name (source), ...`` with ``, ... +N more`` when truncated, or ``none``
    """
    if not skills:
        return "none"
    listed = skills[:limit]
    text = ", ".join(f"{skill.name} ({skill.source})" for skill in listed)
    remaining = len(skills) - len(listed)
    if remaining > 0:
        text += f", ... +{remaining} more"
    return text


def load_skill_base(skill: Skill) -> str:
    """Read a skill file and build the header and body preceding the user prompt."""
    content = Path(skill.file_path).read_text(encoding="utf-8")
    header = f"Skill location: {skill.file_path}\nReferences are relative to {skill.base_dir}."
    return f"{header}\n\n{strip_frontmatter(content)}"


def build_subprocess_prompt(
    item: TaskWorkItem,
    state: SkillPromptState,
    skill_list_limit: int = DEFAULT_SKILL_LIST_LIMIT,
) -> str:
    """
    Produce the final prompt sent to the agent for one item.

    Args:
        item: Work item, possibly naming a skill
        state: Skill lookup and cache for the current call
        skill_list_limit: Names listed in the unknown-skill error

    Returns:
        The item prompt, wrapped with the skill body when a skill is named

    Raises:
        SkillResolutionError: If the skill is unknown or its file cannot be read
    """
    if not item.skill:
        return item.prompt

    skill = state.get(item.skill)
    if skill is None:
        raise SkillResolutionError(
            f"Unknown skill: {item.skill}\n"
            f"Available skills: {format_available_skills(state.skills, skill_list_limit)}",
            item.skill,
        )

    base = state.base_cache.get(skill.name)
    if base is None:
        try:
            base = load_skill_base(skill)
        except (OSError, UnicodeDecodeError) as e:
            raise SkillResolutionError(
                f'Failed to load skill "{skill.name}": {e}', skill.name
            ) from e
        state.base_cache[skill.name] = base
        logger.debug(f"Loaded skill {skill.name} from {skill.file_path}")

    return f"{base}\n\n---\n\nUser: {item.prompt}"


def parse_frontmatter(content: str) -> dict[str, Any]:
    """Parse the leading YAML front-matter of a document; empty when absent or invalid."""
    match = FRONTMATTER_CAPTURE.match(normalize_line_endings(content))
    if not match:
        return {}
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring malformed front-matter: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def _optional_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def parse_skill_metadata(content: str) -> SkillMetadata:
    """Read ``metadata.pi`` execution hints from skill front-matter."""
    metadata = parse_frontmatter(content).get("metadata")
    pi = metadata.get("pi") if isinstance(metadata, dict) else None
    if not isinstance(pi, dict):
        return SkillMetadata()

    return SkillMetadata(
        fork_context=pi.get("forkContext") is True,
        model=_optional_string(pi.get("model")),
        thinking_level=_optional_string(pi.get("thinkingLevel")),
    )


def load_skill_metadata(skill: Skill) -> SkillMetadata:
    """Metadata for a skill file; defaults when the file cannot be read."""
    try:
        content = Path(skill.file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read metadata for skill {skill.name}: {e}")
        return SkillMetadata()
    return parse_skill_metadata(content)


def parse_skill_command(text: str) -> tuple[str, str] | None:
    """
    Parse ``/skill:NAME rest of prompt``.

    Returns:
        (name, prompt) with whitespace runs in the prompt collapsed, or None
        when the text is not a skill command
    """
    trimmed = text.lstrip()
    if not trimmed.startswith(SKILL_COMMAND_PREFIX):
        return None

    parts = trimmed[len(SKILL_COMMAND_PREFIX):].split()
    if not parts:
        return None
    return parts[0], " ".join(parts[1:])


def build_skill_task_request(name: str, prompt: str, metadata: SkillMetadata) -> dict[str, Any]:
    """Build a single-mode request that runs one skill with its metadata hints."""
    request: dict[str, Any] = {
        "type": "single",
        "tasks": [{"skill": name, "prompt": prompt.strip(), "fork": metadata.fork_context}],
    }
    if metadata.model:
        request["model"] = metadata.model
    if metadata.thinking_level:
        request["thinking"] = metadata.thinking_level
    return request


def load_skills_from_dirs(dirs: Iterable[str | Path]) -> list[Skill]:
    """
    Discover skills under each directory.

    Both ``<dir>/<name>/SKILL.md`` and ``<dir>/<name>.md`` are recognized.
    Earlier directories win on name collisions.

    Args:
        dirs: Directories to scan; missing ones are skipped

    Returns:
        Skills sorted by name within each directory
    """
    skills: list[Skill] = []
    seen: set[str] = set()

    for directory in dirs:
        root = Path(directory).expanduser()
        if not root.is_dir():
            continue
        source = str(directory)

        candidates: list[tuple[str, Path]] = []
        for entry in sorted(root.iterdir()):
            if entry.is_dir() and (entry / SKILL_FILENAME).is_file():
                candidates.append((entry.name, entry / SKILL_FILENAME))
            elif entry.is_file() and entry.suffix == ".md" and entry.name != SKILL_FILENAME:
                candidates.append((entry.stem, entry))

        for name, file_path in candidates:
            if name in seen:
                continue
            seen.add(name)
            skills.append(
                Skill(
                    name=name,
                    source=source,
                    file_path=str(file_path.resolve()),
                    base_dir=str(file_path.resolve().parent),
                )
            )

    return skills

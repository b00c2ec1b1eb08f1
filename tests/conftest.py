"""
Test configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest

from taskweave.core.context import TaskContext
from taskweave.core.orchestrator import TaskOrchestrator
from taskweave.core.runner import TaskRunner
from taskweave.core.skills import Skill
from taskweave.models.config import DisplayConfig, RunnerConfig, TaskweaveConfig
from taskweave.models.tasks import (
    PreparedExecution,
    ResolvedTaskConfig,
    TaskWorkItem,
    ThinkingLevel,
)


FIXTURES = Path(__file__).parent / "fixtures"
FAKE_AGENT = FIXTURES / "fake_agent.py"


@pytest.fixture
def agent_command():
    """Command that runs the fake agent with the current interpreter."""
    return [sys.executable, str(FAKE_AGENT)]


@pytest.fixture
def config(agent_command):
    """Configuration pointing the runner at the fake agent."""
    return TaskweaveConfig(
        runner=RunnerConfig(command=agent_command, kill_grace_seconds=1.0),
        display=DisplayConfig(),
    )


@pytest.fixture
def runner(agent_command):
    """TaskRunner for the fake agent with a short kill grace window."""
    return TaskRunner(command=agent_command, kill_grace_seconds=1.0)


@pytest.fixture
def orchestrator(config):
    """Orchestrator wired to the fake agent."""
    return TaskOrchestrator(config)


@pytest.fixture
def session_file(tmp_path):
    """A persisted session log."""
    path = tmp_path / "session.jsonl"
    path.write_text('{"type": "session", "id": "abc"}\n', encoding="utf-8")
    return path


@pytest.fixture
def skills_dir(tmp_path):
    """Directory with two skills."""
    root = tmp_path / "skills"
    review = root / "review"
    review.mkdir(parents=True)
    (review / "SKILL.md").write_text(
        "---\n"
        "name: review\n"
        "metadata:\n"
        "  pi:\n"
        "    forkContext: true\n"
        "    model: acme/reviewer-1\n"
        "    thinkingLevel: high\n"
        "---\n"
        "Review the change carefully.\n",
        encoding="utf-8",
    )
    (root / "summarize.md").write_text("Summarize the input.\n", encoding="utf-8")
    return root


@pytest.fixture
def context(tmp_path, session_file, skills_dir):
    """Caller context with a session log and skills."""
    return TaskContext.with_skill_dirs(
        [skills_dir],
        cwd=tmp_path,
        session_file=session_file,
        inherited_thinking=ThinkingLevel.LOW,
    )


@pytest.fixture
def make_skill(tmp_path):
    """Factory for Skill records with files on disk."""

    def _make(name: str, body: str = "Do the thing.", source: str = "user") -> Skill:
        directory = tmp_path / "made-skills" / name
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / "SKILL.md"
        file_path.write_text(body, encoding="utf-8")
        return Skill(name=name, source=source, file_path=str(file_path), base_dir=str(directory))

    return _make


def _make_execution(
    prompt: str,
    fork: bool = False,
    args: tuple[str, ...] = ("--mode", "json", "-p", "--no-session", "--no-extensions"),
    thinking: ThinkingLevel = ThinkingLevel.LOW,
    model_label: str | None = None,
    skill: str | None = None,
) -> PreparedExecution:
    """Build a PreparedExecution whose subprocess prompt is ``prompt``."""
    item = TaskWorkItem(prompt=prompt, fork=fork, skill=skill)
    return PreparedExecution(
        item=item,
        subprocess_prompt=prompt,
        config=ResolvedTaskConfig(
            thinking_level=thinking,
            subprocess_args=args,
            model_label=model_label,
        ),
    )


@pytest.fixture
def make_execution():
    """Factory for PreparedExecution objects."""
    return _make_execution


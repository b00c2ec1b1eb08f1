"""
Task request models.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


MAX_PARALLEL_TASKS = 8


class TaskMode(str, Enum):
    """Execution strategy for a set of work items."""

    SINGLE = "single"
    CHAIN = "chain"
    PARALLEL = "parallel"


class ThinkingLevel(str, Enum):
    """Reasoning effort forwarded to the agent."""

    OFF = "off"
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    XHIGH = "xhigh"


INHERIT_THINKING = "inherit"

VALID_THINKING_LEVELS: tuple[str, ...] = tuple(level.value for level in ThinkingLevel)
VALID_THINKING_OPTIONS: tuple[str, ...] = (INHERIT_THINKING, *VALID_THINKING_LEVELS)


class TaskWorkItem(BaseModel):
    """One prompt executed by one isolated subprocess."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(default="", description="Task prompt")
    skill: str | None = Field(default=None, description="Optional skill name")
    model: str | None = Field(default=None, description="Model override (provider/modelId)")
    thinking: str | None = Field(default=None, description="Thinking override or 'inherit'")
    fork: bool = Field(default=True, description="Fork context from the current session")

    def with_prompt(self, prompt: str) -> "TaskWorkItem":
        """Derive a new item with a substituted prompt."""
        return self.model_copy(update={"prompt": prompt})


class NormalizedParams(BaseModel):
    """A validated, mode-tagged request."""

    model_config = ConfigDict(frozen=True)

    mode: TaskMode
    model: str | None = None
    thinking: str = INHERIT_THINKING
    items: tuple[TaskWorkItem, ...]

    @property
    def requires_fork(self) -> bool:
        """Whether any item asks for forked session context."""
        return any(item.fork for item in self.items)


class ProviderModel(BaseModel):
    """A provider-qualified model reference."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: str
    model_id: str

    @property
    def label(self) -> str:
        """Display label in provider/modelId form."""
        return f"{self.provider}/{self.model_id}"


class ResolvedTaskConfig(BaseModel):
    """Effective configuration for one subprocess invocation."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    thinking_level: ThinkingLevel
    subprocess_args: tuple[str, ...]
    model_label: str | None = None


class PreparedExecution(BaseModel):
    """A work item with its final subprocess prompt and resolved configuration."""

    model_config = ConfigDict(frozen=True)

    item: TaskWorkItem
    subprocess_prompt: str
    config: ResolvedTaskConfig

"""
Task result models.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from taskweave.models.events import AgentMessage, MessageUsage
from taskweave.models.tasks import TaskMode


EXIT_PENDING = -2
EXIT_RUNNING = -1

STOP_ERROR = "error"
STOP_ABORTED = "aborted"
FAILURE_STOP_REASONS = (STOP_ERROR, STOP_ABORTED)


class TaskStatus(str, Enum):
    """Lifecycle state of one task, derived from its exit code."""

    PENDING = "Pending"
    RUNNING = "Running"
    DONE = "Done"
    FAILED = "Failed"

    @property
    def is_finished(self) -> bool:
        return self in (TaskStatus.DONE, TaskStatus.FAILED)


class UsageStats(BaseModel):
    """Accumulated token and cost usage for one or more tasks."""

    model_config = ConfigDict(frozen=True)

    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0
    cost: float = 0.0
    context_tokens: int = 0
    turns: int = 0

    def add_message(self, usage: MessageUsage | None) -> "UsageStats":
        """Return new stats with one assistant turn applied."""
        usage = usage or MessageUsage()
        return UsageStats(
            input=self.input + max(0, usage.input),
            output=self.output + max(0, usage.output),
            cache_read=self.cache_read + max(0, usage.cache_read),
            cache_write=self.cache_write + max(0, usage.cache_write),
            cost=self.cost + max(0.0, usage.cost.total),
            context_tokens=usage.total_tokens,
            turns=self.turns + 1,
        )

    def __add__(self, other: "UsageStats") -> "UsageStats":
        return UsageStats(
            input=self.input + other.input,
            output=self.output + other.output,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
            cost=self.cost + other.cost,
            context_tokens=self.context_tokens + other.context_tokens,
            turns=self.turns + other.turns,
        )


class SingleResult(BaseModel):
    """
    Snapshot of one task execution.

    exit_code doubles as the lifecycle marker: -2 pending, -1 running,
    0 success, >0 failure.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    skill: str | None = None
    index: int | None = None
    exit_code: int = EXIT_RUNNING
    messages: tuple[AgentMessage, ...] = ()
    stderr: str = ""
    usage: UsageStats = Field(default_factory=UsageStats)
    model: str | None = None
    thinking: str | None = None
    fork: bool | None = None
    stop_reason: str | None = None
    error_message: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.exit_code == EXIT_PENDING

    @property
    def is_running(self) -> bool:
        return self.exit_code == EXIT_RUNNING

    @property
    def is_error(self) -> bool:
        """Failed classification: nonzero exit or an error/aborted stop reason."""
        return self.exit_code > 0 or self.stop_reason in FAILURE_STOP_REASONS

    @property
    def was_aborted(self) -> bool:
        return self.stop_reason == STOP_ABORTED

    @property
    def status(self) -> TaskStatus:
        if self.is_pending:
            return TaskStatus.PENDING
        if self.is_running:
            return TaskStatus.RUNNING
        return TaskStatus.FAILED if self.is_error else TaskStatus.DONE


def aggregate_usage(results: Iterable[SingleResult]) -> UsageStats:
    """
    Sum usage across results, field by field.

    Args:
        results: Task results to aggregate

    Returns:
        Combined UsageStats (all zeros for no results)
    """
    total = UsageStats()
    for result in results:
        total = total + result.usage
    return total


class TaskToolDetails(BaseModel):
    """Structured detail attached to every progress update and response."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    mode: TaskMode
    model_override: str | None = None
    results: tuple[SingleResult, ...] = ()

    @property
    def total_usage(self) -> UsageStats:
        return aggregate_usage(self.results)


class TaskResponse(BaseModel):
    """User-visible outcome (or progress update) of a top-level call."""

    model_config = ConfigDict(frozen=True)

    text: str
    details: TaskToolDetails
    is_error: bool = False

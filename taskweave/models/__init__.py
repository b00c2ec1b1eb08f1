"""taskweave models package."""

from taskweave.models.config import (
    TaskweaveConfig,
    RunnerConfig,
    DisplayConfig,
    SkillsConfig,
    LoggingConfig,
)
from taskweave.models.events import (
    AgentMessage,
    MessageUsage,
    MessageEndEvent,
    ToolResultEndEvent,
    IgnoredEvent,
    decode_event,
)
from taskweave.models.results import (
    EXIT_PENDING,
    EXIT_RUNNING,
    SingleResult,
    TaskResponse,
    TaskStatus,
    TaskToolDetails,
    UsageStats,
    aggregate_usage,
)
from taskweave.models.tasks import (
    MAX_PARALLEL_TASKS,
    NormalizedParams,
    PreparedExecution,
    ProviderModel,
    ResolvedTaskConfig,
    TaskMode,
    TaskWorkItem,
    ThinkingLevel,
)

__all__ = [
    # Config
    "TaskweaveConfig",
    "RunnerConfig",
    "DisplayConfig",
    "SkillsConfig",
    "LoggingConfig",
    # Events
    "AgentMessage",
    "MessageUsage",
    "MessageEndEvent",
    "ToolResultEndEvent",
    "IgnoredEvent",
    "decode_event",
    # Results
    "EXIT_PENDING",
    "EXIT_RUNNING",
    "SingleResult",
    "TaskResponse",
    "TaskStatus",
    "TaskToolDetails",
    "UsageStats",
    "aggregate_usage",
    # Tasks
    "MAX_PARALLEL_TASKS",
    "NormalizedParams",
    "PreparedExecution",
    "ProviderModel",
    "ResolvedTaskConfig",
    "TaskMode",
    "TaskWorkItem",
    "ThinkingLevel",
]

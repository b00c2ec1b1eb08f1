"""Core orchestration components."""

from taskweave.core.context import TaskContext
from taskweave.core.errors import (
    ConfigResolutionError,
    ForkPrerequisiteError,
    SkillResolutionError,
    SubprocessRuntimeError,
    SubprocessSpawnError,
    TaskweaveError,
    ValidationError,
)
from taskweave.core.orchestrator import TaskOrchestrator
from taskweave.core.params import normalize_task_params
from taskweave.core.runner import TaskRunner
from taskweave.core.scheduler import map_with_concurrency_limit

__all__ = [
    "TaskContext",
    "TaskOrchestrator",
    "TaskRunner",
    "normalize_task_params",
    "map_with_concurrency_limit",
    # Errors
    "TaskweaveError",
    "ValidationError",
    "ConfigResolutionError",
    "SkillResolutionError",
    "ForkPrerequisiteError",
    "SubprocessSpawnError",
    "SubprocessRuntimeError",
]

"""
Error taxonomy for taskweave.

Every error carries a readable message that the orchestrator surfaces to
the caller verbatim. Errors raised before any subprocess spawns terminate
the whole call; subprocess-level errors are recovered per task.
"""

from __future__ import annotations


class TaskweaveError(Exception):
    """Base class for all taskweave errors."""

    def __init__(self, message: str):
        """Initialize with a readable message."""
        super().__init__(message)
        self.message = message


class ValidationError(TaskweaveError):
    """Raised when a request has a malformed shape or task count."""

    def __init__(self, message: str, field: str | None = None):
        """Initialize with message and optional field name."""
        super().__init__(message)
        self.field = field


class ConfigResolutionError(TaskweaveError):
    """Raised when a task's model or thinking level cannot be resolved."""


class SkillResolutionError(TaskweaveError):
    """Raised for unknown skills or unreadable skill files."""

    def __init__(self, message: str, skill: str | None = None):
        super().__init__(message)
        self.skill = skill


class ForkPrerequisiteError(TaskweaveError):
    """Raised when a forked task is requested without a persisted session log."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Forked tasks require a persisted session file. "
            "Set fork: false or start the agent with sessions enabled."
        )


class SubprocessSpawnError(TaskweaveError):
    """Raised when the agent executable cannot be started."""

    def __init__(self, message: str, command: str | None = None):
        super().__init__(message)
        self.command = command


class SubprocessRuntimeError(TaskweaveError):
    """A task exited nonzero or reported an error/aborted stop reason."""

    def __init__(self, message: str, exit_code: int, stop_reason: str | None = None):
        super().__init__(message)
        self.exit_code = exit_code
        self.stop_reason = stop_reason

"""
taskweave - subprocess task orchestration for coding agents

Runs isolated invocations of an agent executable in single, chain and
parallel modes, streaming progress and aggregating token usage.
"""

__version__ = "0.1.0"
__author__ = "taskweave Team"
__license__ = "MIT"

from taskweave.core.context import TaskContext
from taskweave.core.orchestrator import TaskOrchestrator
from taskweave.models.config import TaskweaveConfig

__all__ = [
    "__version__",
    "TaskContext",
    "TaskOrchestrator",
    "TaskweaveConfig",
]

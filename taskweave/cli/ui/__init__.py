"""
CLI UI components for taskweave.

This module provides rich terminal UI components including:
- Live task progress
- Status rendering
"""

from taskweave.cli.ui.progress import TaskProgress, overall_status, status_text

__all__ = [
    "TaskProgress",
    "overall_status",
    "status_text",
]

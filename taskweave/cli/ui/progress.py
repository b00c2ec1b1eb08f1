"""
Progress tracking for the taskweave CLI.

Provides a live-updating table of task states using Rich.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Generator

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from taskweave.core.formatting import (
    failure_tag,
    format_task_config,
    format_usage_stats,
    get_task_output_text,
    get_task_summary_label,
    get_tool_call_lines,
    overall_chain_status,
    overall_parallel_status,
)
from taskweave.models.results import SingleResult, TaskResponse, TaskStatus
from taskweave.models.tasks import TaskMode
from taskweave.utils.helpers import format_duration, single_line, truncate_string


STATUS_STYLES = {
    TaskStatus.PENDING: ("·", "dim"),
    TaskStatus.RUNNING: ("⏳", "yellow"),
    TaskStatus.DONE: ("✓", "green"),
    TaskStatus.FAILED: ("✗", "red"),
}


def status_text(result: SingleResult) -> Text:
    """Icon, status name and failure tag for one result."""
    status = result.status
    icon, style = STATUS_STYLES[status]
    text = Text(f"{icon} {status.value}", style=style)
    tag = failure_tag(result)
    if tag:
        text.append(f" {tag}", style="bold red" if tag == "[error]" else "magenta")
    return text


def overall_status(response: TaskResponse) -> TaskStatus:
    results = response.details.results
    if response.details.mode == TaskMode.CHAIN:
        if response.is_error:
            return TaskStatus.FAILED
        return overall_chain_status(results)
    if not results:
        return TaskStatus.FAILED if response.is_error else TaskStatus.DONE
    return overall_parallel_status(results)


class TaskProgress:
    """
    Real-time view of a running call.

    Shows one row per task with its status, configuration, the most recent
    tool calls and usage, plus the latest progress text.

    Example:
        >>> progress = TaskProgress(console)
        >>> with progress.live():
        ...     await orchestrator.execute(request, context, on_update=progress.update)
    """

    def __init__(
        self,
        console: Console | None = None,
        max_tool_calls: int = 10,
        prompt_width: int = 48,
    ):
        """
        Initialize the progress tracker.

        Args:
            console: Rich console to use (creates new if not provided)
            max_tool_calls: Tool calls listed per task
            prompt_width: Characters of each prompt shown
        """
        self.console = console or Console(stderr=True)
        self.max_tool_calls = max_tool_calls
        self.prompt_width = prompt_width

        self._response: TaskResponse | None = None
        self._started_at: datetime = datetime.now()
        self._live: Live | None = None

    @contextmanager
    def live(self) -> Generator[None, None, None]:
        """Context manager for live display."""
        self._started_at = datetime.now()

        with Live(
            self._render(),
            console=self.console,
            refresh_per_second=4,
            transient=True,
        ) as live:
            self._live = live
            try:
                yield
            finally:
                self._live = None

    def update(self, response: TaskResponse) -> None:
        """Record the latest progress response and redraw."""
        self._response = response
        self._refresh()

    def _refresh(self) -> None:
        """Refresh the live display if active."""
        if self._live:
            self._live.update(self._render())

    def render_results(self, response: TaskResponse) -> Table:
        """Table of task rows for a response."""
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("#", style="dim", width=3)
        table.add_column("Task", style="cyan")
        table.add_column("Status")
        table.add_column("Activity")
        table.add_column("Usage", style="dim")

        for position, result in enumerate(response.details.results, 1):
            prompt = truncate_string(single_line(result.prompt), self.prompt_width)
            label = get_task_summary_label(result)
            task_cell = Text(label, style="bold cyan")
            if prompt and prompt != label:
                task_cell.append(f"\n{prompt}", style="default")
            config = format_task_config(result)
            if config:
                task_cell.append(f"\n{config}", style="dim")

            tools = get_tool_call_lines(result.messages, self.max_tool_calls)
            activity = Text("\n".join(f"→ {line}" for line in tools), style="magenta")
            if result.status.is_finished:
                output = truncate_string(single_line(get_task_output_text(result)), self.prompt_width)
                style = "red" if result.is_error else "default"
                activity.append(f"\n{output}" if tools else output, style=style)

            table.add_row(
                str(result.index or position),
                task_cell,
                status_text(result),
                activity,
                format_usage_stats(result.usage),
            )
        return table

    def _render(self) -> Panel:
        """Render the progress display."""
        content = []

        elapsed = (datetime.now() - self._started_at).total_seconds()
        header = Text()
        header.append("Elapsed: ", style="dim")
        header.append(format_duration(elapsed), style="yellow")

        if self._response is None:
            header.append("  |  Starting...", style="dim")
            content.append(header)
        else:
            mode = self._response.details.mode.value
            header.append("  |  Mode: ", style="dim")
            header.append(mode, style="bold cyan")
            content.append(header)
            content.append(Text())
            content.append(self.render_results(self._response))
            content.append(Text())
            content.append(Text(truncate_string(single_line(self._response.text), 200), style="dim"))

        return Panel(
            Group(*content),
            title="[bold blue]taskweave[/]",
            border_style="blue",
        )

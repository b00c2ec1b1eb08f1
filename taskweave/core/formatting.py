"""
Result text helpers.

Derives user-visible text from task results: final output, error text,
labels, status tags and usage lines.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from taskweave.core.errors import SubprocessRuntimeError
from taskweave.models.events import AgentMessage
from taskweave.models.results import SingleResult, TaskStatus, UsageStats
from taskweave.utils.helpers import preview_text


NO_OUTPUT = "(no output)"
RUNNING_OUTPUT = "(running...)"


def get_final_output(messages: Sequence[AgentMessage]) -> str:
    """First text block of the most recent assistant message that has one."""
    for message in reversed(messages):
        if not message.is_assistant:
            continue
        parts = message.text_parts()
        if parts:
            return parts[0]
    return ""


def get_task_error_text(result: SingleResult) -> str:
    """Error message, else stderr, else final output, else ``(no output)``."""
    return (
        result.error_message
        or result.stderr
        or get_final_output(result.messages)
        or NO_OUTPUT
    )


def get_task_output_text(result: SingleResult) -> str:
    text = get_task_error_text(result) if result.is_error else get_final_output(result.messages)
    return text.strip() or NO_OUTPUT


def check_result(result: SingleResult) -> SingleResult:
    """
    Return the result unchanged if it succeeded.

    Raises:
        SubprocessRuntimeError: For a nonzero exit or an error/aborted stop reason
    """
    if result.is_error:
        raise SubprocessRuntimeError(
            get_task_error_text(result), result.exit_code, result.stop_reason
        )
    return result


def get_task_summary_label(result: SingleResult) -> str:
    skill = (result.skill or "").strip()
    if skill:
        return skill
    if result.index:
        return f"task {result.index}"
    return "task"


def failure_tag(result: SingleResult) -> str | None:
    """``[aborted]`` or ``[error]`` for failed results, None otherwise."""
    if not result.is_error:
        return None
    return "[aborted]" if result.was_aborted else "[error]"


def get_context_label(result: SingleResult) -> str | None:
    if result.fork is None:
        return None
    return "fork" if result.fork else "fresh"


def format_task_config(result: SingleResult) -> str | None:
    """``model thinking:LEVEL context:fork|fresh`` for the parts that are known."""
    parts = []
    if result.model:
        parts.append(result.model)
    if result.thinking:
        parts.append(f"thinking:{result.thinking}")
    context = get_context_label(result)
    if context:
        parts.append(f"context:{context}")
    return " ".join(parts) if parts else None


def format_tokens(count: int) -> str:
    """Compact token count: 999, 1.2k, 45k, 1.3M."""
    if count < 1000:
        return str(count)
    if count < 10000:
        return f"{count / 1000:.1f}k"
    if count < 1000000:
        # half rounds up
        return f"{int(count / 1000 + 0.5)}k"
    return f"{count / 1000000:.1f}M"


def format_usage_stats(
    usage: UsageStats,
    model: str | None = None,
    thinking: str | None = None,
) -> str:
    """
    One-line usage summary.

    Example:
        >>> format_usage_stats(UsageStats(input=1200, output=300, turns=2, cost=0.0123))
        '2 turns ↑1.2k ↓300 $0.0123'
    """
    parts = []
    if usage.turns:
        parts.append(f"{usage.turns} turn{'s' if usage.turns > 1 else ''}")
    if usage.input:
        parts.append(f"↑{format_tokens(usage.input)}")
    if usage.output:
        parts.append(f"↓{format_tokens(usage.output)}")
    if usage.cache_read:
        parts.append(f"R{format_tokens(usage.cache_read)}")
    if usage.cache_write:
        parts.append(f"W{format_tokens(usage.cache_write)}")
    if usage.cost:
        parts.append(f"${usage.cost:.4f}")
    if usage.context_tokens > 0:
        parts.append(f"ctx:{format_tokens(usage.context_tokens)}")
    if model:
        parts.append(model)
    if thinking:
        parts.append(f"thinking:{thinking}")
    return " ".join(parts)


def get_tool_call_lines(messages: Iterable[AgentMessage], limit: int | None = None) -> list[str]:
    """``name args`` lines for the tool calls made so far, most recent ``limit`` only."""
    lines = []
    for message in messages:
        if not message.is_assistant:
            continue
        for name, args in message.tool_calls():
            if name == "bash" and isinstance(args.get("command"), str):
                lines.append(f"$ {preview_text(args['command'], 60)}")
                continue
            path = args.get("file_path") or args.get("path")
            if isinstance(path, str):
                lines.append(f"{name} {path}")
                continue
            rendered = " ".join(f"{key}={value}" for key, value in args.items())
            lines.append(f"{name} {preview_text(rendered, 50)}".rstrip())
    if limit is not None and limit < len(lines):
        return lines[-limit:]
    return lines


def count_finished(results: Iterable[SingleResult]) -> int:
    return sum(1 for result in results if result.status.is_finished)


def overall_parallel_status(results: Sequence[SingleResult]) -> TaskStatus:
    if any(result.is_running for result in results):
        return TaskStatus.RUNNING
    return TaskStatus.FAILED if any(result.is_error for result in results) else TaskStatus.DONE


def overall_chain_status(results: Sequence[SingleResult]) -> TaskStatus:
    if any(result.is_error for result in results):
        return TaskStatus.FAILED
    if any(result.is_running or result.is_pending for result in results):
        return TaskStatus.RUNNING
    return TaskStatus.DONE


def format_parallel_summary(results: Sequence[SingleResult], preview_length: int = 100) -> str:
    """
    Final text for a parallel call.

    Returns:
        ``Parallel: S/N succeeded`` followed by one ``[label] completed|failed: preview``
        block per task
    """
    succeeded = sum(1 for result in results if not result.is_error)
    summaries = []
    for result in results:
        preview = preview_text(get_final_output(result.messages), preview_length) or NO_OUTPUT
        state = "failed" if result.is_error else "completed"
        summaries.append(f"[{get_task_summary_label(result)}] {state}: {preview}")
    return f"Parallel: {succeeded}/{len(results)} succeeded\n\n" + "\n\n".join(summaries)

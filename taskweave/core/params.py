"""
Request normalization.

Turns an untyped request object into ``NormalizedParams`` or raises a
``ValidationError`` whose message is shown to the caller verbatim. The first
violation wins; nothing is partially collected.
"""

from __future__ import annotations

from typing import Any, Mapping

from taskweave.core.errors import ValidationError
from taskweave.models.tasks import (
    INHERIT_THINKING,
    MAX_PARALLEL_TASKS,
    VALID_THINKING_OPTIONS,
    NormalizedParams,
    TaskMode,
    TaskWorkItem,
)


PREFIX = "Invalid parameters: "


def _normalize_model(value: Any, label: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{PREFIX}{label} must be a string.", label)
    return value.strip() or None


def _normalize_thinking(value: Any, label: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{PREFIX}{label} must be a string.", label)
    trimmed = value.strip()
    if not trimmed:
        return None
    if trimmed not in VALID_THINKING_OPTIONS:
        raise ValidationError(
            f"{PREFIX}{label} must be one of {', '.join(VALID_THINKING_OPTIONS)}.",
            label,
        )
    return trimmed


def _normalize_fork(value: Any, label: str) -> bool:
    if value is None:
        return True
    # 0 and 1 are rejected
    if not isinstance(value, bool):
        raise ValidationError(f"{PREFIX}{label} must be a boolean.", label)
    return value


def _parse_items(raw_tasks: list[Any]) -> tuple[TaskWorkItem, ...]:
    items = []
    for index, entry in enumerate(raw_tasks):
        if not isinstance(entry, Mapping):
            raise ValidationError("Invalid task item: expected an object.", f"tasks[{index}]")

        prompt = entry.get("prompt")
        prompt = prompt.strip() if isinstance(prompt, str) else ""
        skill = entry.get("skill")
        skill = skill.strip() if isinstance(skill, str) else None
        if not prompt and not skill:
            raise ValidationError(
                'Invalid task item: provide a non-empty "prompt" or "skill".',
                f"tasks[{index}]",
            )

        items.append(
            TaskWorkItem(
                prompt=prompt,
                skill=skill or None,
                model=_normalize_model(entry.get("model"), f'"tasks[{index}].model"'),
                thinking=_normalize_thinking(entry.get("thinking"), f'"tasks[{index}].thinking"'),
                fork=_normalize_fork(entry.get("fork"), f'"tasks[{index}].fork"'),
            )
        )
    return tuple(items)


def normalize_task_params(
    params: Any,
    max_parallel_tasks: int = MAX_PARALLEL_TASKS,
) -> NormalizedParams:
    """
    Validate a raw request and return its normalized form.

    Args:
        params: Untyped request, usually decoded JSON
        max_parallel_tasks: Upper bound on items for chain and parallel

    Returns:
        NormalizedParams with trimmed prompts and skills

    Raises:
        ValidationError: On the first shape, type or count violation
    """
    if not isinstance(params, Mapping):
        raise ValidationError(f"{PREFIX}expected an object.")

    mode = params.get("type")
    if not isinstance(mode, str):
        raise ValidationError(f'{PREFIX}"type" must be a string.', "type")

    model = _normalize_model(params.get("model"), '"model"')
    thinking = _normalize_thinking(params.get("thinking"), '"thinking"') or INHERIT_THINKING

    raw_tasks = params.get("tasks")
    if not isinstance(raw_tasks, list):
        raw_tasks = []

    if mode == TaskMode.SINGLE.value:
        if len(raw_tasks) != 1:
            raise ValidationError(
                f'{PREFIX}type="single" requires exactly one task in "tasks".', "tasks"
            )
    elif mode in (TaskMode.PARALLEL.value, TaskMode.CHAIN.value):
        if not raw_tasks:
            raise ValidationError(
                f'{PREFIX}type="{mode}" requires a non-empty "tasks" array.', "tasks"
            )
        if len(raw_tasks) > max_parallel_tasks:
            raise ValidationError(
                f"Too many {mode} tasks ({len(raw_tasks)}). Max is {max_parallel_tasks}.",
                "tasks",
            )
    else:
        raise ValidationError(
            f'{PREFIX}"type" must be "single", "chain", or "parallel".', "type"
        )

    return NormalizedParams(
        mode=TaskMode(mode),
        model=model,
        thinking=thinking,
        items=_parse_items(raw_tasks),
    )

"""
Per-task configuration resolution.

Computes the effective model, thinking level and agent argument vector for
one work item from its overrides, the request defaults and the caller's
session state.
"""

from __future__ import annotations

from typing import Iterable

from taskweave.core.errors import ConfigResolutionError
from taskweave.models.tasks import (
    INHERIT_THINKING,
    ProviderModel,
    ResolvedTaskConfig,
    TaskWorkItem,
    ThinkingLevel,
)


BUILT_IN_TOOLS: tuple[str, ...] = ("read", "bash", "edit", "write", "grep", "find", "ls")

BASE_ARGS: tuple[str, ...] = ("--mode", "json", "-p", "--no-session", "--no-extensions")


def get_built_in_tools(active_tools: Iterable[str]) -> list[str]:
    """Filter active tool names to known built-ins, keeping their order."""
    return [tool for tool in active_tools if tool in BUILT_IN_TOOLS]


def parse_provider_model(value: str) -> ProviderModel:
    """
    Parse a ``provider/modelId`` string.

    The split happens at the first slash, so model ids may contain slashes.

    Raises:
        ConfigResolutionError: If either side of the slash is empty
    """
    trimmed = value.strip()
    slash = trimmed.find("/")
    if slash <= 0 or slash == len(trimmed) - 1:
        raise ConfigResolutionError(
            f'Invalid model format: "{value}". Expected provider/modelId.'
        )
    return ProviderModel(provider=trimmed[:slash], model_id=trimmed[slash + 1:])


def resolve_model(
    model_override: str | None,
    session_model: ProviderModel | None,
) -> ProviderModel | None:
    """Explicit override when given, else the caller's session model, else None."""
    if model_override:
        return parse_provider_model(model_override)
    return session_model


def resolve_thinking(thinking: str, inherited: ThinkingLevel | str) -> ThinkingLevel:
    """Map ``inherit`` to the caller's active level."""
    if thinking == INHERIT_THINKING:
        return ThinkingLevel(inherited)
    try:
        return ThinkingLevel(thinking)
    except ValueError as e:
        raise ConfigResolutionError(f'Invalid thinking level: "{thinking}".') from e


def build_subprocess_args(
    model: ProviderModel | None,
    thinking_level: ThinkingLevel,
    built_in_tools: list[str],
) -> list[str]:
    """
    Build the agent argument vector (without the prompt).

    Args:
        model: Resolved model, or None to let the agent choose
        thinking_level: Effective thinking level
        built_in_tools: Built-in tools to enable; empty disables all tools

    Returns:
        Argument list in a fixed order
    """
    args = list(BASE_ARGS)

    if model is not None:
        args.extend(["--provider", model.provider, "--model", model.model_id])

    args.extend(["--thinking", thinking_level.value])

    if built_in_tools:
        args.extend(["--tools", ",".join(built_in_tools)])
    else:
        args.append("--no-tools")

    return args


def resolve_task_config(
    item: TaskWorkItem,
    default_model: str | None,
    default_thinking: str,
    inherited_thinking: ThinkingLevel | str,
    session_model: ProviderModel | None,
    built_in_tools: list[str],
) -> ResolvedTaskConfig:
    """
    Resolve the effective configuration for one work item.

    Model precedence is item override, then request default, then the
    caller's session model. Thinking precedence is item override, then
    request default, with ``inherit`` mapped to ``inherited_thinking``.

    Raises:
        ConfigResolutionError: If a model string is not provider/modelId
    """
    model = resolve_model(item.model or default_model, session_model)
    thinking = resolve_thinking(item.thinking or default_thinking, inherited_thinking)

    return ResolvedTaskConfig(
        thinking_level=thinking,
        subprocess_args=tuple(build_subprocess_args(model, thinking, built_in_tools)),
        model_label=model.label if model else None,
    )

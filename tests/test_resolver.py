"""
Tests for per-task configuration resolution.
"""

import pytest

from taskweave.core.errors import ConfigResolutionError
from taskweave.core.resolver import (
    BUILT_IN_TOOLS,
    build_subprocess_args,
    get_built_in_tools,
    parse_provider_model,
    resolve_task_config,
)
from taskweave.models.tasks import ProviderModel, TaskWorkItem, ThinkingLevel


SESSION_MODEL = ProviderModel(provider="host", model_id="current")


def resolve(item, default_model=None, default_thinking="inherit", session_model=SESSION_MODEL, tools=None):
    return resolve_task_config(
        item,
        default_model=default_model,
        default_thinking=default_thinking,
        inherited_thinking=ThinkingLevel.MEDIUM,
        session_model=session_model,
        built_in_tools=list(BUILT_IN_TOOLS) if tools is None else tools,
    )


class TestParseProviderModel:
    """Tests for provider/modelId parsing."""

    def test_valid(self):
        model = parse_provider_model("anthropic/claude-x")
        assert model.provider == "anthropic"
        assert model.model_id == "claude-x"
        assert model.label == "anthropic/claude-x"

    def test_splits_at_first_slash(self):
        model = parse_provider_model("openrouter/meta/llama")
        assert model.provider == "openrouter"
        assert model.model_id == "meta/llama"

    @pytest.mark.parametrize("value", ["acme", "/model", "acme/", ""])
    def test_invalid(self, value):
        with pytest.raises(ConfigResolutionError) as exc:
            parse_provider_model(value)
        assert exc.value.message == f'Invalid model format: "{value}". Expected provider/modelId.'


class TestModelPrecedence:
    """Item override > shared default > inherited session model."""

    def test_item_override_wins(self):
        config = resolve(TaskWorkItem(prompt="x", model="item/m"), default_model="shared/m")
        assert config.model_label == "item/m"

    def test_shared_default_next(self):
        config = resolve(TaskWorkItem(prompt="x"), default_model="shared/m")
        assert config.model_label == "shared/m"

    def test_session_model_last(self):
        config = resolve(TaskWorkItem(prompt="x"))
        assert config.model_label == "host/current"

    def test_no_model(self):
        config = resolve(TaskWorkItem(prompt="x"), session_model=None)
        assert config.model_label is None
        assert "--provider" not in config.subprocess_args
        assert "--model" not in config.subprocess_args

    def test_bad_format_is_terminal(self):
        with pytest.raises(ConfigResolutionError):
            resolve(TaskWorkItem(prompt="x", model="acme"))


class TestThinking:
    """Tests for thinking resolution."""

    def test_inherit_uses_caller_level(self):
        config = resolve(TaskWorkItem(prompt="x"))
        assert config.thinking_level == ThinkingLevel.MEDIUM

    def test_item_override(self):
        config = resolve(TaskWorkItem(prompt="x", thinking="high"), default_thinking="off")
        assert config.thinking_level == ThinkingLevel.HIGH

    def test_shared_default(self):
        config = resolve(TaskWorkItem(prompt="x"), default_thinking="minimal")
        assert config.thinking_level == ThinkingLevel.MINIMAL

    def test_item_inherit_overrides_shared(self):
        config = resolve(TaskWorkItem(prompt="x", thinking="inherit"), default_thinking="off")
        assert config.thinking_level == ThinkingLevel.MEDIUM


class TestSubprocessArgs:
    """Tests for the agent argument vector."""

    def test_full_vector(self):
        args = build_subprocess_args(
            ProviderModel(provider="p", model_id="m"), ThinkingLevel.HIGH, ["read", "bash"]
        )
        assert args == [
            "--mode", "json", "-p", "--no-session", "--no-extensions",
            "--provider", "p", "--model", "m",
            "--thinking", "high",
            "--tools", "read,bash",
        ]

    def test_no_tools(self):
        args = build_subprocess_args(None, ThinkingLevel.OFF, [])
        assert args[-3:] == ["--thinking", "off", "--no-tools"]

    def test_filters_to_built_ins_in_active_order(self):
        assert get_built_in_tools(["ls", "task", "read", "web_search", "bash"]) == ["ls", "read", "bash"]

    def test_resolved_args_use_filtered_tools(self):
        config = resolve(TaskWorkItem(prompt="x"), tools=get_built_in_tools(["grep", "custom"]))
        assert config.subprocess_args[-2:] == ("--tools", "grep")

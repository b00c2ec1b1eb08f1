"""
Agent event stream models.

The agent subprocess writes one JSON object per line. Only two event kinds
matter to the runner: a completed message and a completed tool result.
Everything else decodes to an explicit ``IgnoredEvent``.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError


MESSAGE_END = "message_end"
TOOL_RESULT_END = "tool_result_end"


def _coerce_number(value: Any) -> float:
    """Usage numbers fall back to 0 when null, non-numeric or not finite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return value


class MessageCost(BaseModel):
    """Cost breakdown reported with a message."""

    model_config = ConfigDict(extra="allow")

    total: float = 0.0

    @field_validator("total", mode="before")
    @classmethod
    def _lenient_total(cls, value: Any) -> float:
        return float(_coerce_number(value))


class MessageUsage(BaseModel):
    """Token usage reported with an assistant message."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    input: int = 0
    output: int = 0
    cache_read: int = Field(default=0, alias="cacheRead")
    cache_write: int = Field(default=0, alias="cacheWrite")
    total_tokens: int = Field(default=0, alias="totalTokens")
    cost: MessageCost = Field(default_factory=MessageCost)

    @field_validator("input", "output", "cache_read", "cache_write", "total_tokens", mode="before")
    @classmethod
    def _lenient_counts(cls, value: Any) -> int:
        return int(_coerce_number(value))

    @field_validator("cost", mode="before")
    @classmethod
    def _lenient_cost(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


class AgentMessage(BaseModel):
    """A conversation message emitted by the agent."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    role: Literal["assistant", "user", "toolResult"]
    content: Any = None
    output: Any = None
    summary: Any = None
    usage: MessageUsage | None = None
    model: str | None = None
    stop_reason: str | None = Field(default=None, alias="stopReason")
    error_message: str | None = Field(default=None, alias="errorMessage")

    # Only role decides acceptance; malformed optional fields are dropped.
    @field_validator("usage", mode="before")
    @classmethod
    def _lenient_usage(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, MessageUsage)) else None

    @field_validator("model", "stop_reason", "error_message", mode="before")
    @classmethod
    def _lenient_text(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @property
    def is_assistant(self) -> bool:
        return self.role == "assistant"

    def text_parts(self) -> list[str]:
        """Text blocks of the message content, in order."""
        if isinstance(self.content, str):
            return [self.content]
        if not isinstance(self.content, list):
            return []
        return [
            part["text"]
            for part in self.content
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
        ]

    def tool_calls(self) -> list[tuple[str, dict[str, Any]]]:
        """(name, arguments) for each tool call block in the content."""
        if not isinstance(self.content, list):
            return []
        calls = []
        for part in self.content:
            if not isinstance(part, dict) or part.get("type") != "toolCall":
                continue
            args = part.get("arguments")
            calls.append((str(part.get("name", "")), args if isinstance(args, dict) else {}))
        return calls


class MessageEndEvent(BaseModel):
    """A message finished streaming."""

    type: Literal["message_end"]
    message: AgentMessage


class ToolResultEndEvent(BaseModel):
    """A tool result finished streaming."""

    type: Literal["tool_result_end"]
    message: AgentMessage


class IgnoredEvent(BaseModel):
    """Any event the runner does not act on."""

    type: Literal["ignored"] = "ignored"
    raw_type: str | None = None
    reason: str = "unrecognized"


AcceptedEvent = Annotated[
    Union[MessageEndEvent, ToolResultEndEvent],
    Field(discriminator="type"),
]
StreamEvent = Union[MessageEndEvent, ToolResultEndEvent, IgnoredEvent]

_accepted_adapter: TypeAdapter[MessageEndEvent | ToolResultEndEvent] = TypeAdapter(AcceptedEvent)


def decode_event(raw: dict[str, Any]) -> StreamEvent:
    """
    Decode a parsed JSON object into a stream event.

    Args:
        raw: A JSON object read from one line of agent output

    Returns:
        MessageEndEvent or ToolResultEndEvent for recognized events carrying
        a message with a known role, otherwise IgnoredEvent
    """
    type_value = raw.get("type")
    raw_type = type_value if isinstance(type_value, str) else None
    if raw_type not in (MESSAGE_END, TOOL_RESULT_END):
        return IgnoredEvent(raw_type=raw_type)

    try:
        return _accepted_adapter.validate_python(raw)
    except PydanticValidationError as e:
        return IgnoredEvent(raw_type=raw_type, reason=f"invalid message: {e.error_count()} error(s)")

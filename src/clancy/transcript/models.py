"""Transcript models for a single assistant task execution."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

NO_SUMMARY = "(no summary available)"
SUMMARY_LIMIT = 200


class SystemInit(BaseModel):
    """Session metadata announced by the assistant at startup."""

    model: str | None = None
    session_id: str | None = None
    claude_code_version: str | None = None
    cwd: str | None = None


class TextMessage(BaseModel):
    """Prose emitted by the assistant."""

    type: Literal["text"] = "text"
    text: str


class ToolUseMessage(BaseModel):
    """A tool invocation made by the assistant."""

    type: Literal["tool_use"] = "tool_use"
    tool_name: str = "unknown"
    tool_id: str = ""
    input: Any = None


class ToolResultMessage(BaseModel):
    """Output returned to the assistant for an earlier tool invocation.

    ``tool_id`` refers back to a ``ToolUseMessage`` but the reference is
    never checked.
    """

    type: Literal["tool_result"] = "tool_result"
    tool_id: str = ""
    output: str = ""
    is_error: bool = False


Message = Annotated[
    Union[TextMessage, ToolUseMessage, ToolResultMessage],
    Field(discriminator="type"),
]


class TokenUsage(BaseModel):
    """Token counts reported for a task. ``None`` means the count was not reported."""

    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_read_tokens: int | None = None
    cache_creation_tokens: int | None = None


class TaskResult(BaseModel):
    """Terminal outcome of a task execution."""

    success: bool = False
    result_text: str | None = None
    duration_ms: int | None = None
    total_cost_usd: float | None = None
    usage: TokenUsage | None = None


class Transcript(BaseModel):
    """Normalized record of one task execution."""

    init: SystemInit | None = None
    messages: list[Message] = Field(default_factory=list)
    result: TaskResult | None = None

    def succeeded(self) -> bool:
        """Return True only when a result is present and reports success."""

        return self.result is not None and self.result.success

    def generate_summary(self) -> str:
        """Return a one-paragraph summary suitable for context injection.

        The final result text is preferred, then the first assistant text.
        Long values are cut at a fixed character count with ``...`` appended.
        """

        if self.result is not None and self.result.result_text:
            return _clip(self.result.result_text)

        for message in self.messages:
            if isinstance(message, TextMessage):
                return _clip(message.text) or NO_SUMMARY

        return NO_SUMMARY

    def tools_used(self) -> list[str]:
        return [message.tool_name for message in self.messages if isinstance(message, ToolUseMessage)]

    def total_cost(self) -> float | None:
        return self.result.total_cost_usd if self.result is not None else None

    def duration_ms(self) -> int | None:
        return self.result.duration_ms if self.result is not None else None

    def model_id(self) -> str | None:
        return self.init.model if self.init is not None else None


def _clip(text: str) -> str:
    if len(text) > SUMMARY_LIMIT:
        return text[:SUMMARY_LIMIT] + "..."
    return text


__all__ = [
    "Message",
    "NO_SUMMARY",
    "SystemInit",
    "TaskResult",
    "TextMessage",
    "TokenUsage",
    "ToolResultMessage",
    "ToolUseMessage",
    "Transcript",
]

"""Parse ``stream-json`` output from the assistant CLI into a Transcript.

Every line is treated as one independent event. Lines that are not JSON
objects, or that lack a string ``type``, are skipped without affecting the
lines that follow, since the producing process may die mid-stream.
"""

from __future__ import annotations

import json
from typing import Any

from .models import (
    Message,
    SystemInit,
    TaskResult,
    TextMessage,
    TokenUsage,
    ToolResultMessage,
    ToolUseMessage,
    Transcript,
)


def parse_transcript(output: str) -> Transcript:
    """Return the Transcript described by ``output``. Never raises."""

    transcript = Transcript()

    for line in output.split("\n"):
        event = _decode(line)
        if event is None:
            continue

        event_type = event.get("type")
        if event_type == "system":
            if event.get("subtype") == "init" and transcript.init is None:
                transcript.init = SystemInit(
                    model=_as_str(event.get("model")),
                    session_id=_as_str(event.get("session_id")),
                    claude_code_version=_as_str(event.get("claude_code_version")),
                    cwd=_as_str(event.get("cwd")),
                )
        elif event_type == "assistant":
            for item in _content_items(event):
                message = _assistant_message(item)
                if message is not None:
                    transcript.messages.append(message)
        elif event_type == "user":
            for item in _content_items(event):
                if item.get("type") == "tool_result":
                    transcript.messages.append(
                        ToolResultMessage(
                            tool_id=_as_str(item.get("tool_use_id")) or "",
                            output=_tool_output(item.get("content")),
                            is_error=_as_bool(item.get("is_error")) or False,
                        )
                    )
        elif event_type == "result":
            transcript.result = _task_result(event)

    return transcript


def render_stream_line(line: str) -> str | None:
    """Return the text worth echoing to a user for one raw stream line."""

    event = _decode(line)
    if event is None:
        return None

    event_type = event.get("type")
    if event_type == "assistant":
        texts = [item["text"] for item in _content_items(event) if isinstance(item.get("text"), str)]
        return "".join(texts) or None
    if event_type == "content_block_delta":
        delta = event.get("delta")
        if isinstance(delta, dict):
            return _as_str(delta.get("text"))
        return None
    if event_type == "result":
        text = _as_str(event.get("result"))
        return f"\n{text}\n" if text is not None else None
    return None


def _decode(line: str) -> dict[str, Any] | None:
    line = line.strip()
    if not line:
        return None
    try:
        event = json.loads(line)
    except (ValueError, RecursionError):
        return None
    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        return None
    return event


def _content_items(event: dict[str, Any]) -> list[dict[str, Any]]:
    message = event.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if not isinstance(content, list):
        return []
    return [item for item in content if isinstance(item, dict)]


def _assistant_message(item: dict[str, Any]) -> Message | None:
    item_type = item.get("type")
    if item_type == "text":
        text = _as_str(item.get("text"))
        return TextMessage(text=text) if text is not None else None
    if item_type == "tool_use":
        return ToolUseMessage(
            tool_name=_as_str(item.get("name")) or "unknown",
            tool_id=_as_str(item.get("id")) or "",
            input=item.get("input"),
        )
    return None


def _tool_output(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            block["text"]
            for block in content
            if isinstance(block, dict) and isinstance(block.get("text"), str)
        ]
        return "\n".join(parts)
    return ""


def _task_result(event: dict[str, Any]) -> TaskResult:
    usage: TokenUsage | None = None
    raw_usage = event.get("usage")
    if isinstance(raw_usage, dict):
        usage = TokenUsage(
            input_tokens=_as_count(raw_usage.get("input_tokens")),
            output_tokens=_as_count(raw_usage.get("output_tokens")),
            cache_read_tokens=_as_count(raw_usage.get("cache_read_input_tokens")),
            cache_creation_tokens=_as_count(raw_usage.get("cache_creation_input_tokens")),
        )

    return TaskResult(
        success=event.get("subtype") == "success",
        result_text=_as_str(event.get("result")),
        duration_ms=_as_count(event.get("duration_ms")),
        total_cost_usd=_as_float(event.get("total_cost_usd")),
        usage=usage,
    )


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _as_count(value: Any) -> int | None:
    # bool is an int subclass; counts must be non-negative integers
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


__all__ = ["parse_transcript", "render_stream_line"]

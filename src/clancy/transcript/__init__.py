"""Transcript models and the stream-json parser."""

from .models import (
    NO_SUMMARY,
    Message,
    SystemInit,
    TaskResult,
    TextMessage,
    TokenUsage,
    ToolResultMessage,
    ToolUseMessage,
    Transcript,
)
from .parser import parse_transcript, render_stream_line

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
    "parse_transcript",
    "render_stream_line",
]

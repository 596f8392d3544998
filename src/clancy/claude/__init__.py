"""Claude CLI orchestration utilities."""

from .runner import (
    ClaudeExecutionResult,
    ClaudeNotFoundError,
    ClaudeRunner,
    ClaudeRunnerError,
    FakeClaudeRunner,
)

__all__ = [
    "ClaudeRunner",
    "ClaudeExecutionResult",
    "ClaudeRunnerError",
    "ClaudeNotFoundError",
    "FakeClaudeRunner",
]

"""Context compilation and size budgeting."""

from .compiler import (
    CONTEXT_PATH,
    TRUNCATION_MARKER,
    CompiledContext,
    ContextCompiler,
    ContextWriteError,
    enforce_budget,
    estimate_tokens,
    render_context,
    render_history,
)

__all__ = [
    "CONTEXT_PATH",
    "CompiledContext",
    "ContextCompiler",
    "ContextWriteError",
    "TRUNCATION_MARKER",
    "enforce_budget",
    "estimate_tokens",
    "render_context",
    "render_history",
]

"""Tool registration for the Clancy MCP server."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastmcp import Context, FastMCP

from ..context import ContextCompiler
from ..notes import KnowledgeCategory
from ..pipeline import TaskPipeline
from ..plan import DEFAULT_PLAN_FILE, Phase, load_phases
from ..session import Session
from ..transcript import render_stream_line


@dataclass(slots=True)
class ToolHandles:
    run_task: Any
    compile_context: Any
    set_mode: Any
    compact_session: Any
    task_history: Any
    read_notes: Any
    list_phases: Any
    run_phase: Any
    session: Session


def register_tools(
    server: FastMCP,
    *,
    session: Session,
    pipeline: TaskPipeline | None,
    compiler: ContextCompiler,
) -> ToolHandles:
    """Register Clancy's MCP tools on the server."""

    # One task at a time per session: history and notes are read-modify-write.
    task_lock = asyncio.Lock()

    def _require_pipeline() -> TaskPipeline:
        if pipeline is None:
            raise RuntimeError("Claude runner is unavailable; cannot run tasks")
        return pipeline

    def _plan_path(plan_file: str | None) -> Path:
        path = Path(plan_file or DEFAULT_PLAN_FILE)
        if not path.is_absolute():
            path = Path(session.working_dir) / path
        return path

    def _load_plan(plan_file: str | None) -> tuple[Path, list[Phase]]:
        path = _plan_path(plan_file)
        if not path.is_file():
            raise ValueError(f"Plan file not found: {path}")
        return path, load_phases(path)

    async def _run_task(prompt: str, context: Context | None = None) -> dict[str, Any]:
        """Run a task with compiled context and fold the results into project notes."""

        if not prompt.strip():
            raise ValueError("Prompt must not be empty")

        runner_pipeline = _require_pipeline()

        def _on_line(line: str) -> None:
            text = render_stream_line(line)
            if text and text.strip():
                _emit_log(context, "info", text.strip(), extra={"stream": True})

        async with task_lock:
            outcome = await runner_pipeline.run_task(session, prompt, on_line=_on_line)

        payload = outcome.to_dict()
        payload["result_preview"] = outcome.transcript.generate_summary()
        _emit_log(
            context,
            "info" if outcome.success else "warning",
            "Task finished",
            extra={
                "task_number": outcome.task_number,
                "success": outcome.success,
                "extraction_error": outcome.extraction_error,
            },
        )
        return payload

    def _compile_context(context: Context | None = None) -> dict[str, Any]:
        """Recompile .claude/context.md for the current session."""

        compiled = compiler.compile(session)
        _emit_log(
            context,
            "debug",
            "Compiled context",
            extra={"path": str(compiled.path), "estimated_tokens": compiled.estimated_tokens},
        )
        return {
            "path": str(compiled.path),
            "estimated_tokens": compiled.estimated_tokens,
            "max_tokens": compiler.max_tokens,
            "mode": session.mode.value,
        }

    def _set_mode(mode: str, context: Context | None = None) -> dict[str, Any]:
        """Switch how much session history is injected before each task."""

        previous = session.mode
        current = session.set_mode(mode)
        _emit_log(
            context,
            "info",
            "Continuity mode changed",
            extra={"previous": previous.value, "mode": current.value},
        )
        return {"previous": previous.value, "mode": current.value}

    def _compact_session(context: Context | None = None) -> dict[str, Any]:
        """Collapse the session history into a single summary entry."""

        compacted = session.compact()
        _emit_log(context, "info", "Compacted session", extra={"compacted": compacted})
        return {"compacted": compacted, "mode": session.mode.value, "history": len(session.history)}

    def _task_history(context: Context | None = None) -> list[dict[str, Any]]:
        """List the tasks remembered by the current session."""

        history = [
            {"number": record.number, "prompt": record.prompt, "summary": record.summary}
            for record in session.history
        ]
        _emit_log(context, "debug", "Listing task history", extra={"count": len(history)})
        return history

    def _read_notes(category: str | None = None, context: Context | None = None) -> dict[str, str]:
        """Return the project's knowledge notes, optionally a single category."""

        notes = session.project.notes
        if category is not None:
            selected = KnowledgeCategory.parse(category)
            return {selected.value: notes.read(selected)}
        snapshot = notes.snapshot()
        _emit_log(context, "debug", "Read notes", extra={"project": session.project.name})
        return {key.value: value for key, value in snapshot.items()}

    def _list_phases(plan_file: str | None = None, context: Context | None = None) -> dict[str, Any]:
        """List the phases declared in the plan document."""

        path, phases = _load_plan(plan_file)
        _emit_log(context, "debug", "Listed plan phases", extra={"path": str(path), "count": len(phases)})
        return {
            "plan_file": str(path),
            "phases": [
                {"index": index, "title": phase.title, "description": phase.description}
                for index, phase in enumerate(phases, start=1)
            ],
        }

    async def _run_phase(
        index: int,
        plan_file: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Run one plan phase (1-based) as a task."""

        path, phases = _load_plan(plan_file)
        if not 1 <= index <= len(phases):
            raise ValueError(f"Phase {index} out of range; {path} declares {len(phases)} phases")

        phase = phases[index - 1]
        _emit_log(context, "info", "Running plan phase", extra={"index": index, "title": phase.title})
        payload = await _run_task(phase.prompt, context=context)
        payload["phase"] = {"index": index, "title": phase.title}
        return payload

    tool_run_task = server.tool(
        name="run_task",
        description=(
            "Run a single-shot Claude task in the project working directory. Context from "
            "project notes and session history is injected first; afterwards the transcript "
            "is analyzed and durable knowledge is merged into the notes."
        ),
    )(_run_task)

    tool_compile = server.tool(
        name="compile_context",
        description="Recompile .claude/context.md from the current notes and session history.",
    )(_compile_context)

    tool_set_mode = server.tool(
        name="set_mode",
        description="Set the continuity mode: fresh, summary, or full.",
    )(_set_mode)

    tool_compact = server.tool(
        name="compact_session",
        description="Collapse the session history into one summary entry and switch to summary mode.",
    )(_compact_session)

    tool_history = server.tool(
        name="task_history",
        description="List the tasks completed in this session with their one-line summaries.",
    )(_task_history)

    tool_notes = server.tool(
        name="read_notes",
        description="Read the project's notes (architecture, decisions, failures, plan).",
    )(_read_notes)

    tool_list_phases = server.tool(
        name="list_phases",
        description=f"List phases from a markdown plan (defaults to {DEFAULT_PLAN_FILE} in the working directory).",
    )(_list_phases)

    tool_run_phase = server.tool(
        name="run_phase",
        description="Run a plan phase as a task, selected by its 1-based index.",
    )(_run_phase)

    return ToolHandles(
        run_task=tool_run_task,
        compile_context=tool_compile,
        set_mode=tool_set_mode,
        compact_session=tool_compact,
        task_history=tool_history,
        read_notes=tool_notes,
        list_phases=tool_list_phases,
        run_phase=tool_run_phase,
        session=session,
    )


__all__ = ["register_tools", "ToolHandles"]

logger = logging.getLogger(__name__)


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)

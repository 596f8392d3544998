from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from clancy.claude import ClaudeExecutionResult, FakeClaudeRunner
from clancy.context import ContextCompiler
from clancy.extraction import NoteExtractor
from clancy.notes import KnowledgeCategory
from clancy.pipeline import TaskPipeline
from clancy.projects import ProjectLoader
from clancy.session import ContinuityMode, Session
from clancy.tools import register_tools


class StubTool:
    def __init__(self, fn, name):
        self.fn = fn
        self.name = name


class StubServer:
    def __init__(self) -> None:
        self._tools: dict[str, StubTool] = {}

    def tool(self, *args, **kwargs):
        provided_name = None
        if args and isinstance(args[0], str):
            provided_name = args[0]
        provided_name = kwargs.get("name", provided_name)

        def decorator(fn):
            tool_name = provided_name or fn.__name__
            tool = StubTool(fn, tool_name)
            self._tools[tool_name] = tool
            return tool

        return decorator


class StubAnalyzer:
    async def analyze(self, prompt: str) -> str:
        return "### DECISIONS\n- [2025-01-01] Chose tools over REPL because MCP\n### PLAN\n- next"


class RecordingLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def info(self, message: str, extra: dict[str, Any] | None = None) -> None:
        self.records.append(("info", message, extra or {}))

    def debug(self, message: str, extra: dict[str, Any] | None = None) -> None:
        self.records.append(("debug", message, extra or {}))

    def warning(self, message: str, extra: dict[str, Any] | None = None) -> None:
        self.records.append(("warning", message, extra or {}))


class StubContext:
    def __init__(self) -> None:
        self.logger = RecordingLogger()


def _stream(result_text: str) -> str:
    return json.dumps({"type": "result", "subtype": "success", "result": result_text})


@pytest.fixture()
def workspace(tmp_path: Path):
    loader = ProjectLoader(tmp_path / "projects")
    project = loader.create("demo")
    workdir = tmp_path / "work"
    workdir.mkdir()
    session = Session(project=project, working_dir=workdir)
    runner = FakeClaudeRunner(
        [
            ClaudeExecutionResult(
                args=("claude",),
                returncode=0,
                stdout=_stream(f"Completed step number {index} of the plan successfully."),
                stderr="",
            )
            for index in range(1, 4)
        ]
    )
    compiler = ContextCompiler(loader)
    pipeline = TaskPipeline(runner, NoteExtractor(StubAnalyzer()), compiler)
    server = StubServer()
    handles = register_tools(server, session=session, pipeline=pipeline, compiler=compiler)
    return server, handles, session, runner


def test_register_tools_exposes_all_tools(workspace) -> None:
    server, _, _, _ = workspace

    assert set(server._tools) == {
        "run_task",
        "compile_context",
        "set_mode",
        "compact_session",
        "task_history",
        "read_notes",
        "list_phases",
        "run_phase",
    }


def test_run_task_tool_updates_history_and_notes(workspace) -> None:
    _, handles, session, runner = workspace
    context = StubContext()

    payload = asyncio.run(handles.run_task.fn("Build the exporter", context=context))

    assert payload["task_number"] == 1
    assert payload["success"] is True
    assert payload["updated_notes"] == ["decisions", "plan"]
    assert payload["result_preview"] == "Completed step number 1 of the plan successfully."
    assert runner.invocations[0][0] == "-p"
    assert context.logger.records[-1][1] == "Task finished"

    history = handles.task_history.fn()
    assert history == [
        {
            "number": 1,
            "prompt": "Build the exporter",
            "summary": "Completed step number 1 of the plan successfully.",
        }
    ]

    notes = handles.read_notes.fn()
    assert notes["plan"] == "- next"
    assert handles.read_notes.fn(category="DECISIONS") == {
        "decisions": "- [2025-01-01] Chose tools over REPL because MCP"
    }


def test_run_task_rejects_empty_prompt(workspace) -> None:
    _, handles, _, _ = workspace

    with pytest.raises(ValueError):
        asyncio.run(handles.run_task.fn("   "))


def test_mode_and_compact_tools(workspace) -> None:
    _, handles, session, _ = workspace

    assert handles.set_mode.fn("full") == {"previous": "summary", "mode": "full"}
    with pytest.raises(ValueError):
        handles.set_mode.fn("everything")

    asyncio.run(handles.run_task.fn("First"))
    asyncio.run(handles.run_task.fn("Second"))
    result = handles.compact_session.fn()

    assert result == {"compacted": 2, "mode": "summary", "history": 1}
    assert session.history[0].number == 0
    assert session.mode is ContinuityMode.SUMMARY


def test_compile_context_tool(workspace) -> None:
    _, handles, session, _ = workspace
    session.project.notes.write(KnowledgeCategory.ARCHITECTURE, "Layered")

    payload = handles.compile_context.fn()

    path = Path(payload["path"])
    assert path == session.working_dir / ".claude" / "context.md"
    assert "Layered" in path.read_text(encoding="utf-8")
    assert payload["max_tokens"] == 12000
    assert payload["mode"] == "summary"


def test_phase_tools(workspace) -> None:
    _, handles, session, runner = workspace
    (session.working_dir / "PLAN.md").write_text(
        "## Phase 1: Setup\nCreate it.\n\n## Notes\nignore\n\n## 2. Build\nBuild it.\n",
        encoding="utf-8",
    )

    listing = handles.list_phases.fn()
    assert [phase["title"] for phase in listing["phases"]] == ["Setup", "Build"]

    payload = asyncio.run(handles.run_phase.fn(2))
    assert payload["phase"] == {"index": 2, "title": "Build"}
    assert runner.invocations[0][1] == "Build\n\nBuild it."

    with pytest.raises(ValueError, match="out of range"):
        asyncio.run(handles.run_phase.fn(3))
    with pytest.raises(ValueError, match="Plan file not found"):
        handles.list_phases.fn(plan_file="missing.md")


def test_run_task_without_runner(tmp_path: Path) -> None:
    loader = ProjectLoader(tmp_path / "projects")
    session = Session(project=loader.create("demo"), working_dir=tmp_path)
    handles = register_tools(StubServer(), session=session, pipeline=None, compiler=ContextCompiler(loader))

    with pytest.raises(RuntimeError, match="unavailable"):
        asyncio.run(handles.run_task.fn("anything"))
    assert handles.task_history.fn() == []


def test_run_task_streams_assistant_text_to_context(tmp_path: Path) -> None:
    loader = ProjectLoader(tmp_path / "projects")
    project = loader.create("demo")
    workdir = tmp_path / "work"
    workdir.mkdir()
    session = Session(project=project, working_dir=workdir)
    stdout = "\n".join(
        [
            json.dumps({"type": "system", "subtype": "init"}),
            json.dumps(
                {
                    "type": "assistant",
                    "message": {"content": [{"type": "text", "text": "Reading the exporter module"}]},
                }
            ),
            _stream("Exporter rewritten and all tests pass now."),
        ]
    )
    runner = FakeClaudeRunner([ClaudeExecutionResult(args=("claude",), returncode=0, stdout=stdout, stderr="")])
    compiler = ContextCompiler(loader)
    pipeline = TaskPipeline(runner, NoteExtractor(StubAnalyzer()), compiler)
    handles = register_tools(StubServer(), session=session, pipeline=pipeline, compiler=compiler)
    context = StubContext()

    asyncio.run(handles.run_task.fn("Rewrite the exporter", context=context))

    streamed = [message for _, message, extra in context.logger.records if extra.get("stream")]
    assert streamed == ["Reading the exporter module", "Exporter rewritten and all tests pass now."]
    assert context.logger.records[-1][1] == "Task finished"

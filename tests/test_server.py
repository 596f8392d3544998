from __future__ import annotations

import json
from pathlib import Path

import pytest

from clancy.claude import ClaudeExecutionResult, ClaudeNotFoundError, FakeClaudeRunner
from clancy.config import ClancySettings
from clancy import server as server_module


class StubTool:
    def __init__(self, fn, name):
        self.fn = fn
        self.name = name


class StubFastMCP:
    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs
        self.tools: dict[str, StubTool] = {}
        self.resources: dict[str, object] = {}

    def tool(self, *args, **kwargs):
        def decorator(fn):
            tool = StubTool(fn, kwargs.get("name", fn.__name__))
            self.tools[tool.name] = tool
            return tool

        return decorator

    def resource(self, uri, **kwargs):
        def decorator(fn):
            self.resources[uri] = fn
            return fn

        return decorator

    def run(self):  # pragma: no cover - not used in tests
        return None


class StubAnalyzer:
    async def analyze(self, prompt: str) -> str:
        return "### PLAN\nNO_UPDATES"


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ClancySettings:
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.setenv("CLANCY_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("CLANCY_PROJECT", "demo")
    monkeypatch.setenv("CLANCY_WORKING_DIR", str(workdir))
    monkeypatch.setenv("CLANCY_CONVERSATION_MODE", "full")
    monkeypatch.setattr(server_module, "FastMCP", StubFastMCP)
    return ClancySettings()


def test_create_server_bootstraps_session(settings: ClancySettings) -> None:
    runner = FakeClaudeRunner(
        [ClaudeExecutionResult(args=("--version",), returncode=0, stdout="1.0.0 (Claude Code)\n", stderr="")]
    )

    server = server_module.create_server(settings, runner=runner, analyzer=StubAnalyzer())

    project_dir = settings.home / "projects" / "demo"
    assert (project_dir / "project.yaml").exists()
    assert server.session.mode.value == "full"
    assert server.session.project.metadata.stats.total_sessions == 1
    assert server.initial_context.path == settings.working_dir / ".claude" / "context.md"
    assert server.initial_context.path.exists()
    assert set(server.tools) >= {"run_task", "compile_context", "run_phase"}
    assert server.claude_metadata == {"available": True, "version": "1.0.0 (Claude Code)", "error": None}

    status = json.loads(server.resources["resource://clancy/status"](None))
    assert status["project"]["name"] == "demo"
    assert status["project"]["next_task_number"] == 1
    assert status["session"]["mode"] == "full"
    assert status["claude"]["available"] is True


def test_create_server_reuses_existing_project(settings: ClancySettings) -> None:
    server_module.create_server(settings, runner=FakeClaudeRunner(), analyzer=StubAnalyzer())
    server = server_module.create_server(settings, runner=FakeClaudeRunner(), analyzer=StubAnalyzer())

    assert server.session.project.metadata.stats.total_sessions == 2


def test_create_server_without_claude(settings: ClancySettings, monkeypatch: pytest.MonkeyPatch) -> None:
    def missing(*_args, **_kwargs):
        raise ClaudeNotFoundError("Failed to start claude. Is it installed and in PATH?")

    monkeypatch.setattr(server_module, "ClaudeRunner", missing)

    server = server_module.create_server(settings, analyzer=StubAnalyzer())

    assert server.pipeline is None
    assert server.claude_metadata["available"] is False
    assert "PATH" in server.claude_metadata["error"]


def test_create_server_requires_project(settings: ClancySettings) -> None:
    settings.project = None

    with pytest.raises(ValueError, match="CLANCY_PROJECT"):
        server_module.create_server(settings, runner=FakeClaudeRunner(), analyzer=StubAnalyzer())

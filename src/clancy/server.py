"""FastMCP server bootstrap for Clancy."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .claude import ClaudeNotFoundError, ClaudeRunner
from .config import ClancySettings, get_settings
from .context import ContextCompiler
from .extraction import Analyzer, AnthropicAnalyzer, NoteExtractor
from .pipeline import TaskPipeline
from .projects import ProjectLoader
from .session import ContinuityMode, Session
from .tools import register_tools

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the Clancy server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _run_sync(coro):
    """Execute an async coroutine on a dedicated event loop."""

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def create_server(
    settings: Optional[ClancySettings] = None,
    runner: ClaudeRunner | None = None,
    analyzer: Analyzer | None = None,
) -> FastMCP:
    """Open the configured project, start a session, and register tools."""

    settings = settings or get_settings()
    if not settings.project:
        raise ValueError("CLANCY_PROJECT must name the project to work on")

    projects = ProjectLoader(settings.projects_dir)
    project = projects.open_or_create(settings.project)
    project.record_session_start()

    session = Session(
        project=project,
        working_dir=Path(settings.working_dir),
        mode=ContinuityMode.parse(settings.conversation_mode),
    )
    compiler = ContextCompiler(
        projects,
        max_tokens=settings.max_context_tokens,
        include_parent_notes=settings.include_parent_notes,
    )

    claude_metadata = {
        "available": False,
        "version": None,
        "error": None,
    }
    if runner is None:
        try:
            runner = ClaudeRunner(Path(settings.claude_path) if settings.claude_path else None)
        except ClaudeNotFoundError as exc:
            claude_metadata["error"] = str(exc)

    if runner is not None:
        claude_metadata["available"] = True
        version_result = _run_sync(runner.version())
        if version_result.ok:
            claude_metadata["version"] = version_result.stdout.strip() or None
        else:
            claude_metadata["error"] = (
                version_result.stderr.strip() or "Claude version command failed with exit code"
            )

    analyzer = analyzer or AnthropicAnalyzer.from_settings(settings)
    pipeline = TaskPipeline(runner, NoteExtractor(analyzer), compiler) if runner is not None else None

    initial_context = compiler.compile(session)

    server = FastMCP(
        name="Clancy MCP",
        version=__version__,
        instructions=(
            "Clancy runs single-shot Claude tasks with persistent project memory. Each task "
            "receives compiled notes and session history, and what it learns is merged back "
            "into the project's architecture, decisions, failures, and plan notes."
        ),
    )

    handles = register_tools(server, session=session, pipeline=pipeline, compiler=compiler)

    @server.resource(
        "resource://clancy/status",
        name="clancy_status",
        description="Provides the current runtime status for the Clancy MCP server.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing the session and project state."""

        parent = projects.parent_of(project)
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "project": {
                "name": project.name,
                "path": str(project.path),
                "parent": parent.name if parent is not None else None,
                "total_sessions": project.metadata.stats.total_sessions,
                "total_tasks": project.metadata.stats.total_tasks,
                "next_task_number": project.next_task_number(),
            },
            "session": {
                "mode": session.mode.value,
                "history": len(session.history),
                "working_dir": str(session.working_dir),
            },
            "claude": {
                "path": settings.claude_path,
                **claude_metadata,
            },
            "extraction": {
                "model": settings.extraction_model,
                "max_tokens": settings.extraction_max_tokens,
                "api_key_env": settings.api_key_env,
            },
            "context": {
                "max_tokens": compiler.max_tokens,
                "include_parent_notes": settings.include_parent_notes,
            },
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "projects", projects)
    setattr(server, "session", session)
    setattr(server, "claude_runner", runner)
    setattr(server, "claude_metadata", claude_metadata)
    setattr(server, "pipeline", pipeline)
    setattr(server, "initial_context", initial_context)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the Clancy MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logger.info(
        "Launching Clancy MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "project": settings.project,
            "claude_available": getattr(server, "claude_metadata", {}).get("available"),
        },
    )
    server.run()


if __name__ == "__main__":
    main()

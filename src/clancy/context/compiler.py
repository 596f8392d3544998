"""Compile notes and session history into the injected context document."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from ..notes import KnowledgeCategory
from ..projects import ProjectLoader
from ..session import ContinuityMode, Session, TaskRecord
from ..transcript import TextMessage, ToolUseMessage, parse_transcript

logger = logging.getLogger(__name__)

CONTEXT_PATH = Path(".claude") / "context.md"
CHARS_PER_TOKEN = 4
SECTION_BOUNDARY = "\n## "
TRUNCATION_MARKER = "[Context truncated due to token limit]"
FOOTER = "---\nWhen you complete work or encounter a problem, state it clearly for continuity.\n"

NOTE_HEADINGS: dict[KnowledgeCategory, str] = {
    KnowledgeCategory.ARCHITECTURE: "Architectural Context",
    KnowledgeCategory.DECISIONS: "Key Decisions",
    KnowledgeCategory.FAILURES: "Known Pitfalls",
    KnowledgeCategory.PLAN: "Current Plan",
}


class ContextWriteError(RuntimeError):
    """Raised when the compiled context cannot be written to disk."""


@dataclass(slots=True)
class CompiledContext:
    path: Path
    content: str
    estimated_tokens: int


def estimate_tokens(content: str) -> int:
    """Approximate token count; not a tokenizer."""

    return len(content) // CHARS_PER_TOKEN


def render_history(history: Sequence[TaskRecord], mode: ContinuityMode) -> str:
    if not history or mode is ContinuityMode.FRESH:
        return ""

    upcoming = len(history) + 1
    if mode is ContinuityMode.SUMMARY:
        lines = [
            "## Session Context\n\n",
            f"This is task {upcoming} of an ongoing session. Prior tasks:\n",
        ]
        lines.extend(f"{task.number}. {task.prompt} — {task.summary}\n" for task in history)
        lines.append("\n")
        return "".join(lines)

    parts = [
        "## Full Conversation History\n\n",
        f"This is task {upcoming} of an ongoing session. Full prior conversation:\n\n",
    ]
    for task in history:
        parts.append(f"### Task {task.number}: {task.prompt}\n\n")
        # Records keep raw output only, so each compile re-parses it.
        for message in parse_transcript(task.raw_output).messages:
            if isinstance(message, TextMessage):
                parts.append(f"{message.text}\n\n")
            elif isinstance(message, ToolUseMessage):
                parts.append(f"[Used tool: {message.tool_name}]\n\n")
    return "".join(parts)


def render_context(
    *,
    project_name: str,
    history: Sequence[TaskRecord],
    mode: ContinuityMode,
    notes: Mapping[KnowledgeCategory, str],
    parent_name: str | None = None,
    parent_architecture: str | None = None,
) -> str:
    """Assemble the full, unbudgeted context document."""

    parts = [
        "<!-- CLANCY CONTEXT — AUTO-GENERATED -->\n",
        f"<!-- Project: {project_name} | Task: {len(history) + 1} -->\n\n",
        render_history(history, mode),
    ]

    if parent_name and parent_architecture and parent_architecture.strip():
        parts.append(f"## Inherited Context (from {parent_name})\n\n{parent_architecture}\n\n")

    for category in KnowledgeCategory:
        content = notes.get(category, "")
        if content.strip():
            parts.append(f"## {NOTE_HEADINGS[category]}\n\n{content}\n\n")

    parts.append(FOOTER)
    return "".join(parts)


def enforce_budget(content: str, max_tokens: int) -> str:
    """Cut ``content`` back to the last whole section that fits ``max_tokens``.

    When no section heading precedes the cut point the document is returned
    unchanged and unmarked.
    """

    if estimate_tokens(content) <= max_tokens:
        return content

    max_chars = max_tokens * CHARS_PER_TOKEN
    boundary = content.rfind(SECTION_BOUNDARY, 0, max_chars)
    if boundary == -1:
        logger.warning(
            "Context exceeds budget but has no section boundary to cut at",
            extra={"chars": len(content), "max_tokens": max_tokens},
        )
        return content

    return f"{content[:boundary]}\n\n{TRUNCATION_MARKER}\n"


class ContextCompiler:
    """Renders a session's context and writes it under the working directory."""

    def __init__(
        self,
        projects: ProjectLoader | None = None,
        *,
        max_tokens: int = 12000,
        include_parent_notes: bool = True,
    ) -> None:
        self._projects = projects
        self._max_tokens = max_tokens
        self._include_parent_notes = include_parent_notes

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def render(self, session: Session) -> str:
        project = session.project
        parent_name: str | None = None
        parent_architecture: str | None = None
        if self._include_parent_notes and self._projects is not None:
            parent = self._projects.parent_of(project)
            if parent is not None:
                parent_name = parent.name
                parent_architecture = parent.notes.read(KnowledgeCategory.ARCHITECTURE)

        content = render_context(
            project_name=project.name,
            history=session.history,
            mode=session.mode,
            notes=project.notes.snapshot(),
            parent_name=parent_name,
            parent_architecture=parent_architecture,
        )
        return enforce_budget(content, self._max_tokens)

    def compile(self, session: Session) -> CompiledContext:
        """Render the context and overwrite ``.claude/context.md`` with it."""

        content = self.render(session)
        path = Path(session.working_dir) / CONTEXT_PATH
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ContextWriteError(f"Failed to write context file: {path}: {exc}") from exc

        compiled = CompiledContext(path=path, content=content, estimated_tokens=estimate_tokens(content))
        logger.info(
            "Compiled context",
            extra={
                "project": session.project.name,
                "mode": session.mode.value,
                "history": len(session.history),
                "estimated_tokens": compiled.estimated_tokens,
            },
        )
        return compiled


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

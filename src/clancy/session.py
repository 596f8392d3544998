"""Session state: continuity mode and in-memory task history."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .projects import Project
from .transcript import NO_SUMMARY, Transcript


class ContinuityMode(str, Enum):
    """How much of the session history is re-injected before each task."""

    FRESH = "fresh"
    SUMMARY = "summary"
    FULL = "full"

    @classmethod
    def parse(cls, value: str | ContinuityMode) -> ContinuityMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown continuity mode '{value}'. Use fresh, summary, or full.") from exc


@dataclass(slots=True)
class TaskRecord:
    """A completed task as remembered by the current session."""

    number: int
    prompt: str
    summary: str
    raw_output: str = ""


@dataclass
class Session:
    """Everything the compiler and pipeline need to know about one session.

    History is kept in memory only and is discarded with the session; what
    survives is whatever the merge step wrote into the project's notes.
    """

    project: Project
    working_dir: Path
    mode: ContinuityMode = ContinuityMode.SUMMARY
    history: list[TaskRecord] = field(default_factory=list)

    @property
    def next_index(self) -> int:
        return len(self.history) + 1

    def set_mode(self, mode: str | ContinuityMode) -> ContinuityMode:
        self.mode = ContinuityMode.parse(mode)
        return self.mode

    def record_task(
        self,
        number: int,
        prompt: str,
        transcript: Transcript,
        raw_output: str,
    ) -> TaskRecord:
        record = TaskRecord(
            number=number,
            prompt=truncate_string(prompt, 60),
            summary=summarize_task(prompt, transcript),
            raw_output=raw_output,
        )
        self.history.append(record)
        return record

    def compact(self) -> int:
        """Collapse the history into one summary record and switch to summary mode.

        Returns the number of records compacted; an empty history is left alone.
        """

        count = len(self.history)
        if not count:
            return 0

        combined = "\n".join(
            f"- Task {task.number}: {task.prompt} → {task.summary}" for task in self.history
        )
        self.history = [
            TaskRecord(number=0, prompt=f"(compacted {count} tasks)", summary=combined)
        ]
        self.mode = ContinuityMode.SUMMARY
        return count


def summarize_task(prompt: str, transcript: Transcript) -> str:
    """Return the one-line history summary for a finished task."""

    if not transcript.succeeded():
        return f"(failed) {truncate_string(prompt, 70)}"

    summary = transcript.generate_summary()
    if len(summary) > 20 and summary != NO_SUMMARY:
        return truncate_string(summary, 80)
    return truncate_string(prompt, 80)


def truncate_string(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return f"{text[: max_len - 3]}..."


__all__ = [
    "ContinuityMode",
    "Session",
    "TaskRecord",
    "summarize_task",
    "truncate_string",
]

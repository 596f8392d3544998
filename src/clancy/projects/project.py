"""On-disk project: metadata, notes, and task logs."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import yaml

from ..notes import NoteStore
from ..transcript import Transcript
from .models import ProjectMetadata

METADATA_FILE = "project.yaml"

_TASK_LOG_PATTERN = re.compile(r"^(\d+)-")


class ProjectStoreError(RuntimeError):
    """Raised when project metadata or task logs cannot be written."""


class Project:
    """A project directory holding ``project.yaml``, ``notes/`` and ``tasks/``."""

    def __init__(
        self,
        path: Path,
        metadata: ProjectMetadata,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.path = Path(path)
        self.metadata = metadata
        self.notes = NoteStore(self.path / "notes")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def metadata_path(self) -> Path:
        return self.path / METADATA_FILE

    @property
    def tasks_path(self) -> Path:
        return self.path / "tasks"

    def save_metadata(self) -> None:
        document = self.metadata.model_dump(mode="json")
        try:
            self.metadata_path.write_text(
                yaml.safe_dump(document, sort_keys=False), encoding="utf-8"
            )
        except OSError as exc:
            raise ProjectStoreError(
                f"Failed to write project metadata: {self.metadata_path}: {exc}"
            ) from exc

    def record_session_start(self) -> None:
        self.metadata.stats.total_sessions += 1
        self.save_metadata()

    def record_task(self) -> None:
        self.metadata.last_task = self._clock()
        self.metadata.stats.total_tasks += 1
        self.save_metadata()

    def next_task_number(self) -> int:
        """Return one past the highest ``NNN-`` prefix found in ``tasks/``."""

        if not self.tasks_path.exists():
            return 1

        highest = 0
        for entry in self.tasks_path.iterdir():
            match = _TASK_LOG_PATTERN.match(entry.name)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest + 1

    def task_logs(self) -> list[Path]:
        if not self.tasks_path.exists():
            return []
        return sorted(path for path in self.tasks_path.glob("*.json") if _TASK_LOG_PATTERN.match(path.name))

    def save_task_log(
        self,
        task_number: int,
        prompt: str,
        raw_output: str,
        transcript: Transcript,
    ) -> Path:
        """Write the task log once. An existing log for the same name is never overwritten."""

        path = self.tasks_path / f"{task_number:03d}-{create_slug(prompt)}.json"
        document = {
            "task_number": task_number,
            "prompt": prompt,
            "timestamp": self._clock().isoformat(),
            "success": transcript.succeeded(),
            "duration_ms": transcript.duration_ms(),
            "cost_usd": transcript.total_cost(),
            "tools_used": transcript.tools_used(),
            "summary": transcript.generate_summary(),
            "transcript": transcript.model_dump(mode="json"),
            "raw_output": raw_output,
        }
        try:
            self.tasks_path.mkdir(parents=True, exist_ok=True)
            with path.open("x", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, ensure_ascii=False)
        except OSError as exc:
            raise ProjectStoreError(f"Failed to write task log: {path}: {exc}") from exc
        return path


def create_slug(text: str) -> str:
    """Return a filename-safe slug built from the first 30 characters of ``text``."""

    slug = "".join(char.lower() if char.isalnum() else "-" for char in text[:30])
    return slug.strip("-")


__all__ = ["METADATA_FILE", "Project", "ProjectStoreError", "create_slug"]

"""File-backed knowledge notes for a project."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class NoteStoreError(RuntimeError):
    """Raised when a notes file cannot be read or written."""


class KnowledgeCategory(str, Enum):
    """The fixed set of note categories kept per project."""

    ARCHITECTURE = "architecture"
    DECISIONS = "decisions"
    FAILURES = "failures"
    PLAN = "plan"

    @classmethod
    def parse(cls, value: str | KnowledgeCategory) -> KnowledgeCategory:
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            valid = ", ".join(category.value for category in cls)
            raise ValueError(f"Invalid category '{value}'. Valid: {valid}") from exc


class NoteStore:
    """Reads and writes one UTF-8 markdown file per knowledge category.

    Every write replaces the whole file. A missing file reads as empty.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, category: KnowledgeCategory | str) -> Path:
        return self._directory / f"{KnowledgeCategory.parse(category).value}.md"

    def initialize(self) -> None:
        """Create the notes directory and an empty file for each category."""

        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            for category in KnowledgeCategory:
                path = self.path_for(category)
                if not path.exists():
                    path.write_text("", encoding="utf-8")
        except OSError as exc:
            raise NoteStoreError(f"Failed to create notes in {self._directory}: {exc}") from exc

    def read(self, category: KnowledgeCategory | str) -> str:
        path = self.path_for(category)
        if not path.exists():
            return ""
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise NoteStoreError(f"Failed to read notes: {path}: {exc}") from exc

    def write(self, category: KnowledgeCategory | str, content: str) -> None:
        path = self.path_for(category)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise NoteStoreError(f"Failed to write notes: {path}: {exc}") from exc

    def append(self, category: KnowledgeCategory | str, content: str) -> None:
        """Append ``content`` on a new line after the existing notes."""

        existing = self.read(category)
        if existing:
            content = f"{existing.rstrip()}\n{content}"
        self.write(category, content)

    def snapshot(self) -> dict[KnowledgeCategory, str]:
        return {category: self.read(category) for category in KnowledgeCategory}


__all__ = ["KnowledgeCategory", "NoteStore", "NoteStoreError"]

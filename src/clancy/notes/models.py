"""Extraction update model shared by the extractor and the merge step."""

from __future__ import annotations

from dataclasses import dataclass

from .store import KnowledgeCategory


@dataclass(slots=True)
class ExtractionUpdate:
    """New note content per category. ``None`` means "leave untouched"."""

    architecture: str | None = None
    decisions: str | None = None
    failures: str | None = None
    plan: str | None = None

    def get(self, category: KnowledgeCategory) -> str | None:
        return getattr(self, category.value)

    def set(self, category: KnowledgeCategory, content: str | None) -> None:
        setattr(self, category.value, content)

    def updated_categories(self) -> list[KnowledgeCategory]:
        return [category for category in KnowledgeCategory if self.get(category) is not None]

    def has_updates(self) -> bool:
        return bool(self.updated_categories())

    def summary(self) -> str:
        names = [category.value for category in self.updated_categories()]
        return ", ".join(names) if names else "no updates"


__all__ = ["ExtractionUpdate"]

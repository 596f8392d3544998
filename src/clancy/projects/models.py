"""Project metadata models."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class ProjectStats(BaseModel):
    """Running counters for a project."""

    total_sessions: int = Field(default=0, ge=0)
    total_tasks: int = Field(default=0, ge=0)


class ProjectMetadata(BaseModel):
    """Metadata persisted alongside a project's notes and task logs."""

    name: str = Field(..., description="Unique project name; also the directory name.")
    created: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the project was first created.",
    )
    last_task: datetime | None = Field(default=None, description="When the latest task finished.")
    parent: str | None = Field(
        default=None,
        description="Parent project whose architecture notes are inherited.",
    )
    branch: str | None = Field(default=None, description="Informational git branch name.")
    status: str = Field(default="active", description="Either active or archived.")
    stats: ProjectStats = Field(default_factory=ProjectStats)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Project name must not be empty")
        if "/" in normalized or "\\" in normalized or normalized in {".", ".."}:
            raise ValueError(f"Project name '{normalized}' is not a valid directory name")
        return normalized

    @field_validator("parent")
    @classmethod
    def _normalize_parent(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


__all__ = ["ProjectMetadata", "ProjectStats"]

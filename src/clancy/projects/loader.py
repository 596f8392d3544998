"""Project loading utilities."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import ProjectMetadata
from .project import METADATA_FILE, Project, ProjectStoreError

logger = logging.getLogger(__name__)


class ProjectLoadError(RuntimeError):
    """Raised when a project cannot be found, parsed, or linked."""


class ProjectLoader:
    """Opens and creates projects stored under a single root directory."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: str) -> Path:
        return self._root / name

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_dir()

    def open(self, name: str) -> Project:
        """Open an existing project.

        A project directory without metadata gets default metadata, which is
        written on the next save.
        """

        path = self.path_for(name)
        if not path.is_dir():
            raise ProjectLoadError(f"Project '{name}' not found")

        metadata_path = path / METADATA_FILE
        if not metadata_path.exists():
            return Project(path, ProjectMetadata(name=name))

        try:
            document = yaml.safe_load(metadata_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ProjectLoadError(f"Failed to read project metadata: {metadata_path}: {exc}") from exc
        except yaml.YAMLError as exc:  # pragma: no cover - library type
            raise ProjectLoadError(f"Failed to parse YAML in {metadata_path}: {exc}") from exc

        if document is None:
            document = {"name": name}

        try:
            metadata = ProjectMetadata.model_validate(document)
        except ValidationError as exc:
            raise ProjectLoadError(f"Project metadata validation error in {metadata_path}: {exc}") from exc

        return Project(path, metadata)

    def create(self, name: str) -> Project:
        """Create a project with empty notes and an empty task log directory."""

        try:
            metadata = ProjectMetadata(name=name)
        except ValidationError as exc:
            raise ProjectLoadError(f"Invalid project name '{name}': {exc}") from exc

        path = self.path_for(metadata.name)
        if path.exists():
            raise ProjectLoadError(f"Project '{name}' already exists")

        try:
            (path / "tasks").mkdir(parents=True)
        except OSError as exc:
            raise ProjectStoreError(f"Failed to create project directory: {path}: {exc}") from exc

        project = Project(path, metadata)
        project.notes.initialize()
        project.save_metadata()
        logger.info("Created project", extra={"project": metadata.name, "path": str(path)})
        return project

    def open_or_create(self, name: str) -> Project:
        if self.exists(name):
            return self.open(name)
        return self.create(name)

    def list_projects(self) -> list[Project]:
        """Return every readable project, sorted by directory name."""

        if not self._root.exists():
            return []

        projects: list[Project] = []
        for path in sorted(entry for entry in self._root.iterdir() if entry.is_dir()):
            try:
                projects.append(self.open(path.name))
            except ProjectLoadError as exc:
                logger.warning("Skipping unreadable project", extra={"path": str(path), "error": str(exc)})
        return projects

    def parent_of(self, project: Project) -> Project | None:
        """Return the linked parent project, or None when unlinked or missing."""

        parent_name = project.metadata.parent
        if not parent_name:
            return None
        try:
            return self.open(parent_name)
        except ProjectLoadError as exc:
            logger.warning(
                "Parent project unavailable",
                extra={"project": project.name, "parent": parent_name, "error": str(exc)},
            )
            return None

    def link(self, child_name: str, parent_name: str) -> Project:
        """Link ``child_name`` to ``parent_name`` so it inherits architecture notes."""

        if child_name == parent_name:
            raise ProjectLoadError("Cannot link a project to itself")

        self.open(parent_name)
        child = self.open(child_name)

        # Walk the parent's ancestry; meeting the child would close a cycle.
        current: str | None = parent_name
        seen: set[str] = set()
        while current and current not in seen:
            if current == child_name:
                raise ProjectLoadError(
                    f"Cannot link: would create circular reference ({child_name} -> ... -> {parent_name})"
                )
            seen.add(current)
            try:
                current = self.open(current).metadata.parent
            except ProjectLoadError:
                break

        child.metadata.parent = parent_name
        child.save_metadata()
        return child

    def unlink(self, name: str) -> str | None:
        """Remove the parent link and return the previous parent name."""

        project = self.open(name)
        previous = project.metadata.parent
        if previous is None:
            return None
        project.metadata.parent = None
        project.save_metadata()
        return previous

    def archive(self, name: str) -> Project:
        """Mark a project archived. Its notes and task logs are kept."""

        project = self.open(name)
        project.metadata.status = "archived"
        project.save_metadata()
        logger.info("Archived project", extra={"project": project.name})
        return project


__all__ = ["ProjectLoadError", "ProjectLoader"]

"""Project metadata models, loader, and task log exports."""

from .loader import ProjectLoadError, ProjectLoader
from .models import ProjectMetadata, ProjectStats
from .project import Project, ProjectStoreError, create_slug

__all__ = [
    "Project",
    "ProjectLoadError",
    "ProjectLoader",
    "ProjectMetadata",
    "ProjectStats",
    "ProjectStoreError",
    "create_slug",
]

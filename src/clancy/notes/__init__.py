"""Knowledge notes: storage, update model, and merge rules."""

from .merge import MERGE_RULES, MergeRule, apply_update
from .models import ExtractionUpdate
from .store import KnowledgeCategory, NoteStore, NoteStoreError

__all__ = [
    "ExtractionUpdate",
    "KnowledgeCategory",
    "MERGE_RULES",
    "MergeRule",
    "NoteStore",
    "NoteStoreError",
    "apply_update",
]

"""Apply extracted updates to a project's notes."""

from __future__ import annotations

import logging
from enum import Enum

from .models import ExtractionUpdate
from .store import KnowledgeCategory, NoteStore

logger = logging.getLogger(__name__)


class MergeRule(str, Enum):
    APPEND = "append"
    REPLACE = "replace"


# The plan is a snapshot of current state; everything else is a log.
MERGE_RULES: dict[KnowledgeCategory, MergeRule] = {
    KnowledgeCategory.ARCHITECTURE: MergeRule.APPEND,
    KnowledgeCategory.DECISIONS: MergeRule.APPEND,
    KnowledgeCategory.FAILURES: MergeRule.APPEND,
    KnowledgeCategory.PLAN: MergeRule.REPLACE,
}


def apply_update(store: NoteStore, update: ExtractionUpdate) -> list[KnowledgeCategory]:
    """Merge ``update`` into ``store`` and return the categories that changed.

    Callers embedding this in concurrent code must serialize calls per
    project: appends are read-then-write.
    """

    applied: list[KnowledgeCategory] = []
    for category in KnowledgeCategory:
        content = update.get(category)
        if content is None:
            continue

        if MERGE_RULES[category] is MergeRule.APPEND:
            store.append(category, content)
        else:
            store.write(category, content)
        applied.append(category)

    logger.debug(
        "Applied note update",
        extra={"categories": [category.value for category in applied], "directory": str(store.directory)},
    )
    return applied


__all__ = ["MERGE_RULES", "MergeRule", "apply_update"]

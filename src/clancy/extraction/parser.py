"""Parse the analysis reply into an ExtractionUpdate."""

from __future__ import annotations

from ..notes import ExtractionUpdate, KnowledgeCategory

NO_UPDATES = "NO_UPDATES"

SECTION_HEADERS: tuple[tuple[str, KnowledgeCategory], ...] = (
    ("### ARCHITECTURE", KnowledgeCategory.ARCHITECTURE),
    ("### DECISIONS", KnowledgeCategory.DECISIONS),
    ("### FAILURES", KnowledgeCategory.FAILURES),
    ("### PLAN", KnowledgeCategory.PLAN),
)


def parse_extraction_response(response: str) -> ExtractionUpdate:
    """Split ``response`` on the fixed section headers.

    Each header is located by its first occurrence. Its section ends where
    the first of the later headers (in header order) appears after it, or at
    the end of the text. A missing header means no update for that category.
    """

    update = ExtractionUpdate()

    for index, (header, category) in enumerate(SECTION_HEADERS):
        start = response.find(header)
        if start == -1:
            continue
        content_start = start + len(header)

        end = len(response)
        for later_header, _ in SECTION_HEADERS[index + 1 :]:
            position = response.find(later_header, content_start)
            if position != -1:
                end = position
                break

        content = response[content_start:end].strip()
        if _is_update(content):
            update.set(category, content)

    return update


def _is_update(content: str) -> bool:
    if not content:
        return False
    return content.upper() != NO_UPDATES and not content.startswith(NO_UPDATES)


__all__ = ["NO_UPDATES", "SECTION_HEADERS", "parse_extraction_response"]

"""Parse ordered work phases out of a markdown plan document."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PLAN_FILE = "PLAN.md"

_PHASE_HEADER = "## "
_TITLE_NOISE = "0123456789.: "
_HEADING = re.compile(r"^#{1,2}(?:\s|$)")


@dataclass(slots=True)
class Phase:
    title: str
    description: str

    @property
    def prompt(self) -> str:
        """Task prompt used when the phase is submitted as a task."""

        return f"{self.title}\n\n{self.description}"


def parse_phases(document: str) -> list[Phase]:
    """Return the phases declared by ``## Phase N: Title`` or ``## N. Title`` headers.

    Other second-level headings (``## Notes``) end the current phase without
    starting a new one, so their content is not attributed to any phase.
    """

    phases: list[Phase] = []
    title: str | None = None
    description: list[str] = []

    for line in document.split("\n"):
        line = line.rstrip("\r")
        if line.startswith(_PHASE_HEADER):
            if title is not None:
                phases.append(Phase(title=title, description="\n".join(description).strip()))
            title = None
            description = []

            header = _strip_header_marker(line)
            if _is_phase_header(header):
                title = _clean_title(header)
        elif title is not None and not _HEADING.match(line):
            if line.strip() or description:
                description.append(line)

    if title is not None:
        phases.append(Phase(title=title, description="\n".join(description).strip()))

    return phases


def load_phases(path: Path) -> list[Phase]:
    return parse_phases(Path(path).read_text(encoding="utf-8"))


def _strip_header_marker(line: str) -> str:
    while line.startswith(_PHASE_HEADER):
        line = line[len(_PHASE_HEADER) :]
    return line.strip()


def _is_phase_header(header: str) -> bool:
    return "phase" in header.lower() or (header[:1].isascii() and header[:1].isdigit())


def _clean_title(header: str) -> str:
    title = header.lstrip(_TITLE_NOISE)
    while title.startswith("Phase"):
        title = title[len("Phase") :]
    title = title.lstrip(_TITLE_NOISE)
    return title or header


__all__ = ["DEFAULT_PLAN_FILE", "Phase", "load_phases", "parse_phases"]

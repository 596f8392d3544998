"""Prompt construction for note extraction."""

from __future__ import annotations

import json
from typing import Mapping

from ..notes import KnowledgeCategory
from ..transcript import TextMessage, ToolResultMessage, ToolUseMessage, Transcript

EMPTY_NOTES_PLACEHOLDER = "(empty)"
MAX_TOOL_INPUT_CHARS = 500
MAX_TOOL_ERROR_CHARS = 500
MAX_TOOL_RESULT_CHARS = 200

EXTRACTION_TEMPLATE = """You are extracting structured notes from a coding task transcript.
The developer will use these notes to maintain context across tasks and sessions.

Analyze the transcript and produce updates to four note categories.
For each category, output ONLY new information not already present in existing notes.
If nothing new was learned for a category, output "NO_UPDATES".

## Categories

### ARCHITECTURE
Patterns, conventions, and structural knowledge about the codebase.
Examples: "Uses repository pattern", "Handlers follow extract-validate-execute",
"Tests use TestDb harness from tests/common/".

### DECISIONS
Choices made during this task with rationale.
Format: "- [YYYY-MM-DD] Chose X over Y because Z"
Include rejected alternatives when discussed.

### FAILURES
Things that didn't work, error messages encountered, dead ends.
Format: "- Don't try X: causes Y because Z"
This is critical for avoiding repeated mistakes.

### PLAN
Current state of the work, immediate next steps, open questions.
This REPLACES (not appends to) the previous plan.
Format as a brief status + bullet list of TODOs.

---

## Existing Notes

<architecture>
{architecture}
</architecture>

<decisions>
{decisions}
</decisions>

<failures>
{failures}
</failures>

<plan>
{plan}
</plan>

---

## Task Transcript

<transcript>
{transcript}
</transcript>

---

Output format (use exactly these headers):

### ARCHITECTURE
[new items only, or NO_UPDATES]

### DECISIONS
[new items only, or NO_UPDATES]

### FAILURES
[new items only, or NO_UPDATES]

### PLAN
[full replacement content]"""


def build_extraction_prompt(
    notes: Mapping[KnowledgeCategory, str],
    transcript: Transcript,
    task_prompt: str,
) -> str:
    """Render the extraction prompt from existing notes and a transcript."""

    existing = {
        category.value: notes.get(category, "") or EMPTY_NOTES_PLACEHOLDER
        for category in KnowledgeCategory
    }
    return EXTRACTION_TEMPLATE.format(
        transcript=format_transcript(transcript, task_prompt),
        **existing,
    )


def format_transcript(transcript: Transcript, task_prompt: str) -> str:
    """Render a transcript for the extraction prompt.

    Long successful tool output is dropped rather than truncated; it is
    usually bulk file content that would dilute the signal.
    """

    parts = [f"Task: {task_prompt}\n\n"]

    model = transcript.model_id()
    if model:
        parts.append(f"Model: {model}\n")
    parts.append("---\n\n")

    for message in transcript.messages:
        if isinstance(message, TextMessage):
            parts.append(f"Assistant:\n{message.text}\n\n")
        elif isinstance(message, ToolUseMessage):
            parts.append(f"Tool: {message.tool_name}\n")
            encoded = json.dumps(message.input, indent=2, ensure_ascii=False, default=str)
            if len(encoded) < MAX_TOOL_INPUT_CHARS:
                parts.append(f"Input: {encoded}\n")
            parts.append("\n")
        elif isinstance(message, ToolResultMessage):
            if message.is_error:
                parts.append(f"Error: {message.output[:MAX_TOOL_ERROR_CHARS]}\n\n")
            elif len(message.output) < MAX_TOOL_RESULT_CHARS:
                parts.append(f"Result: {message.output}\n\n")

    result = transcript.result
    if result is not None and result.result_text is not None:
        parts.append(f"---\n\nFinal result: {result.result_text}\n")
    if not transcript.succeeded():
        parts.append("(Task failed)\n")

    return "".join(parts)


__all__ = [
    "EMPTY_NOTES_PLACEHOLDER",
    "EXTRACTION_TEMPLATE",
    "build_extraction_prompt",
    "format_transcript",
]

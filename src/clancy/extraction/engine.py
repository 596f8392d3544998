"""Extract note updates from a finished task."""

from __future__ import annotations

import logging
from typing import Mapping

from ..notes import ExtractionUpdate, KnowledgeCategory
from ..transcript import Transcript
from .client import Analyzer
from .parser import parse_extraction_response
from .prompts import build_extraction_prompt

logger = logging.getLogger(__name__)


class NoteExtractor:
    """Builds the extraction prompt, calls the analyzer, and parses its reply.

    Failures surface as :class:`~clancy.extraction.client.ExtractionError`;
    nothing is written here, so a failed call leaves the notes untouched.
    """

    def __init__(self, analyzer: Analyzer) -> None:
        self._analyzer = analyzer

    async def extract(
        self,
        notes: Mapping[KnowledgeCategory, str],
        transcript: Transcript,
        task_prompt: str,
    ) -> ExtractionUpdate:
        prompt = build_extraction_prompt(notes, transcript, task_prompt)
        logger.debug("Requesting note extraction", extra={"prompt_chars": len(prompt)})
        response = await self._analyzer.analyze(prompt)
        update = parse_extraction_response(response)
        logger.info("Extracted notes", extra={"updated": update.summary()})
        return update


__all__ = ["NoteExtractor"]

"""Note extraction: prompt building, analysis client, and reply parsing."""

from .client import (
    AnalysisRateLimitedError,
    AnalysisServerError,
    AnalysisStatusError,
    AnalysisTransportError,
    AnalysisUnauthorizedError,
    Analyzer,
    AnthropicAnalyzer,
    EmptyResponseError,
    ExtractionError,
    MalformedResponseError,
    MissingCredentialError,
)
from .engine import NoteExtractor
from .parser import NO_UPDATES, parse_extraction_response
from .prompts import build_extraction_prompt, format_transcript

__all__ = [
    "AnalysisRateLimitedError",
    "AnalysisServerError",
    "AnalysisStatusError",
    "AnalysisTransportError",
    "AnalysisUnauthorizedError",
    "Analyzer",
    "AnthropicAnalyzer",
    "EmptyResponseError",
    "ExtractionError",
    "MalformedResponseError",
    "MissingCredentialError",
    "NO_UPDATES",
    "NoteExtractor",
    "build_extraction_prompt",
    "format_transcript",
    "parse_extraction_response",
]

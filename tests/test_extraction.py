from __future__ import annotations

import asyncio
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from clancy.extraction import (
    AnalysisRateLimitedError,
    AnalysisServerError,
    AnalysisStatusError,
    AnalysisTransportError,
    AnalysisUnauthorizedError,
    AnthropicAnalyzer,
    EmptyResponseError,
    MalformedResponseError,
    MissingCredentialError,
    NoteExtractor,
    build_extraction_prompt,
    format_transcript,
    parse_extraction_response,
)
from clancy.notes import KnowledgeCategory
from clancy.transcript import (
    SystemInit,
    TaskResult,
    TextMessage,
    ToolResultMessage,
    ToolUseMessage,
    Transcript,
)

API_URL = "https://api.anthropic.com/v1/messages"


def _transcript(**overrides) -> Transcript:
    values = {
        "init": SystemInit(model="claude-test"),
        "messages": [
            TextMessage(text="Reading the module."),
            ToolUseMessage(tool_name="Read", tool_id="t1", input={"file_path": "app.py"}),
            ToolResultMessage(tool_id="t1", output="short output"),
            ToolResultMessage(tool_id="t2", output="x" * 300),
            ToolResultMessage(tool_id="t3", output="boom" * 200, is_error=True),
        ],
        "result": TaskResult(success=True, result_text="All done."),
    }
    values.update(overrides)
    return Transcript(**values)


# --- prompt -----------------------------------------------------------------


def test_format_transcript_includes_signal_and_drops_bulk() -> None:
    rendered = format_transcript(_transcript(), "Fix the bug")

    assert rendered.startswith("Task: Fix the bug\n\nModel: claude-test\n---\n\n")
    assert "Assistant:\nReading the module.\n\n" in rendered
    assert "Tool: Read\nInput: {\n  \"file_path\": \"app.py\"\n}\n" in rendered
    assert "Result: short output\n\n" in rendered
    assert "x" * 300 not in rendered
    assert f"Error: {('boom' * 200)[:500]}\n\n" in rendered
    assert rendered.endswith("---\n\nFinal result: All done.\n")
    assert "(Task failed)" not in rendered


def test_format_transcript_marks_failures() -> None:
    failed = _transcript(result=TaskResult(success=False, result_text="Gave up."))
    missing = _transcript(result=None)

    assert format_transcript(failed, "p").endswith("Final result: Gave up.\n(Task failed)\n")
    assert format_transcript(missing, "p").endswith("(Task failed)\n")


def test_format_transcript_omits_large_tool_input() -> None:
    transcript = _transcript(
        messages=[ToolUseMessage(tool_name="Write", input={"content": "y" * 600})],
    )

    rendered = format_transcript(transcript, "p")

    assert "Tool: Write\n\n" in rendered
    assert "Input:" not in rendered


def test_build_prompt_uses_placeholder_for_empty_notes() -> None:
    notes = {
        KnowledgeCategory.ARCHITECTURE: "Uses repository pattern",
        KnowledgeCategory.DECISIONS: "",
        KnowledgeCategory.FAILURES: "",
        KnowledgeCategory.PLAN: "",
    }

    prompt = build_extraction_prompt(notes, _transcript(), "Fix the bug")

    assert "<architecture>\nUses repository pattern\n</architecture>" in prompt
    assert "<decisions>\n(empty)\n</decisions>" in prompt
    assert "<plan>\n(empty)\n</plan>" in prompt
    assert "<transcript>\nTask: Fix the bug" in prompt
    assert prompt.rstrip().endswith("[full replacement content]")


# --- response parsing -------------------------------------------------------


def test_parse_response_sections() -> None:
    response = (
        "### ARCHITECTURE\nUses X\n\n"
        "### DECISIONS\nNO_UPDATES\n\n"
        "### FAILURES\n- Don't try Y\n\n"
        "### PLAN\n- Step 1"
    )

    update = parse_extraction_response(response)

    assert update.architecture == "Uses X"
    assert update.decisions is None
    assert update.failures == "- Don't try Y"
    assert update.plan == "- Step 1"
    assert update.summary() == "architecture, failures, plan"


def test_parse_response_missing_headers_and_variants() -> None:
    update = parse_extraction_response("### PLAN\nno_updates")
    assert not update.has_updates()
    assert update.summary() == "no updates"

    update = parse_extraction_response("### DECISIONS\nNO_UPDATES - nothing new\n### PLAN\n\n")
    assert update.decisions is None
    assert update.plan is None

    assert not parse_extraction_response("").has_updates()
    assert not parse_extraction_response("free-form reply with no headers").has_updates()


def test_parse_response_out_of_order_headers() -> None:
    response = "### PLAN\nnew plan\n### ARCHITECTURE\narch notes"

    update = parse_extraction_response(response)

    assert update.architecture == "arch notes"
    assert update.plan == "new plan\n### ARCHITECTURE\narch notes"


# --- analyzer ---------------------------------------------------------------


class StubMessages:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class StubClient:
    def __init__(self, messages: StubMessages) -> None:
        self.messages = messages


def _analyzer(messages: StubMessages, environ=None) -> AnthropicAnalyzer:
    return AnthropicAnalyzer(
        model="claude-test",
        max_tokens=128,
        client_factory=lambda api_key: StubClient(messages),
        environ={"ANTHROPIC_API_KEY": "sk-test"} if environ is None else environ,
    )


def _text_response(*texts: str):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text) for text in texts])


def _status_error(cls, status: int):
    request = httpx.Request("POST", API_URL)
    response = httpx.Response(status, request=request, json={"error": {"message": "nope"}})
    return cls("nope", response=response, body=None)


def test_analyzer_joins_text_blocks() -> None:
    messages = StubMessages(response=_text_response("### PLAN\n", "- next"))

    text = asyncio.run(_analyzer(messages).analyze("prompt"))

    assert text == "### PLAN\n- next"
    call = messages.calls[0]
    assert call["model"] == "claude-test"
    assert call["max_tokens"] == 128
    assert call["messages"] == [{"role": "user", "content": "prompt"}]


def test_analyzer_requires_credential() -> None:
    analyzer = _analyzer(StubMessages(response=_text_response("x")), environ={})

    with pytest.raises(MissingCredentialError, match="ANTHROPIC_API_KEY"):
        asyncio.run(analyzer.analyze("prompt"))


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (_status_error(anthropic.AuthenticationError, 401), AnalysisUnauthorizedError),
        (_status_error(anthropic.PermissionDeniedError, 403), AnalysisUnauthorizedError),
        (_status_error(anthropic.RateLimitError, 429), AnalysisRateLimitedError),
        (_status_error(anthropic.InternalServerError, 503), AnalysisServerError),
        (_status_error(anthropic.BadRequestError, 400), AnalysisStatusError),
        (anthropic.APIConnectionError(request=httpx.Request("POST", API_URL)), AnalysisTransportError),
    ],
)
def test_analyzer_maps_api_errors(error: Exception, expected: type[Exception]) -> None:
    analyzer = _analyzer(StubMessages(error=error))

    with pytest.raises(expected):
        asyncio.run(analyzer.analyze("prompt"))


def test_analyzer_rejects_empty_and_malformed_replies() -> None:
    with pytest.raises(EmptyResponseError):
        asyncio.run(_analyzer(StubMessages(response=_text_response())).analyze("prompt"))

    tool_only = SimpleNamespace(content=[SimpleNamespace(type="tool_use", id="x")])
    with pytest.raises(EmptyResponseError):
        asyncio.run(_analyzer(StubMessages(response=tool_only)).analyze("prompt"))

    with pytest.raises(MalformedResponseError):
        asyncio.run(_analyzer(StubMessages(response=SimpleNamespace(content=None))).analyze("prompt"))


# --- engine -----------------------------------------------------------------


class StubAnalyzer:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def analyze(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


def test_note_extractor_round_trip() -> None:
    analyzer = StubAnalyzer("### ARCHITECTURE\nNO_UPDATES\n### PLAN\n- ship it")
    extractor = NoteExtractor(analyzer)
    notes = {category: "" for category in KnowledgeCategory}

    update = asyncio.run(extractor.extract(notes, _transcript(), "Fix the bug"))

    assert update.architecture is None
    assert update.plan == "- ship it"
    assert "Task: Fix the bug" in analyzer.prompts[0]

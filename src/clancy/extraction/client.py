"""Analysis service client used for note extraction."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Mapping, Protocol

import anthropic

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """Base class for recoverable note extraction failures."""


class MissingCredentialError(ExtractionError):
    """Raised when the API key environment variable is not set."""


class AnalysisUnauthorizedError(ExtractionError):
    """Raised when the analysis service rejects the credentials."""


class AnalysisRateLimitedError(ExtractionError):
    """Raised when the analysis service rate limits the request."""


class AnalysisServerError(ExtractionError):
    """Raised when the analysis service fails with a 5xx status."""


class AnalysisStatusError(ExtractionError):
    """Raised for any other non-success status."""


class AnalysisTransportError(ExtractionError):
    """Raised when the analysis service cannot be reached."""


class MalformedResponseError(ExtractionError):
    """Raised when the reply does not have the expected shape."""


class EmptyResponseError(ExtractionError):
    """Raised when the reply carries no text."""


class Analyzer(Protocol):
    """Anything that turns an extraction prompt into raw reply text."""

    async def analyze(self, prompt: str) -> str:
        ...


class AnthropicAnalyzer:
    """Send extraction prompts to the Anthropic Messages API."""

    def __init__(
        self,
        *,
        model: str,
        api_key_env: str = "ANTHROPIC_API_KEY",
        max_tokens: int = 2048,
        timeout: float = 60.0,
        max_retries: int = 0,
        client_factory: Callable[[str], Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._model = model
        self._api_key_env = api_key_env
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._max_retries = max_retries
        self._client_factory = client_factory or self._default_client_factory
        self._environ = environ if environ is not None else os.environ
        self._client: Any | None = None

    @classmethod
    def from_settings(cls, settings) -> AnthropicAnalyzer:
        return cls(
            model=settings.extraction_model,
            api_key_env=settings.api_key_env,
            max_tokens=settings.extraction_max_tokens,
            timeout=settings.analysis_timeout,
            max_retries=settings.analysis_max_retries,
        )

    @property
    def model(self) -> str:
        return self._model

    def _default_client_factory(self, api_key: str) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )

    def _ensure_client(self) -> Any:
        if self._client is None:
            api_key = self._environ.get(self._api_key_env)
            if not api_key:
                raise MissingCredentialError(
                    f"API key not found. Set {self._api_key_env} environment variable."
                )
            self._client = self._client_factory(api_key)
        return self._client

    async def analyze(self, prompt: str) -> str:
        client = self._ensure_client()
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            raise AnalysisUnauthorizedError(
                f"Claude API error ({exc.status_code}) (check your API key): {exc.message}"
            ) from exc
        except anthropic.RateLimitError as exc:
            raise AnalysisRateLimitedError(
                f"Claude API error ({exc.status_code}) (rate limited, try again later): {exc.message}"
            ) from exc
        except anthropic.APIStatusError as exc:
            if exc.status_code >= 500:
                raise AnalysisServerError(
                    f"Claude API error ({exc.status_code}) (API server error, try again later): {exc.message}"
                ) from exc
            raise AnalysisStatusError(f"Claude API error ({exc.status_code}): {exc.message}") from exc
        except anthropic.APIConnectionError as exc:
            raise AnalysisTransportError(
                f"Failed to connect to Claude API (check network connection): {exc}"
            ) from exc
        except anthropic.APIResponseValidationError as exc:
            raise MalformedResponseError(f"Failed to parse Claude API response: {exc}") from exc

        text = _response_text(response)
        logger.debug("Analysis reply received", extra={"model": self._model, "chars": len(text)})
        return text


def _response_text(response: Any) -> str:
    content = getattr(response, "content", None)
    if not isinstance(content, list):
        raise MalformedResponseError("Failed to parse Claude API response: missing content blocks")

    texts = [
        block.text
        for block in content
        if getattr(block, "type", None) == "text" and isinstance(getattr(block, "text", None), str)
    ]
    text = "".join(texts)
    if not text:
        raise EmptyResponseError("Claude API returned empty response")
    return text


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
]

"""Configuration management for Clancy."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONVERSATION_MODES = {"fresh", "summary", "full"}


class ClancySettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    home: Path = Field(default=Path("~/.config/clancy"), validation_alias="CLANCY_HOME")
    project: str | None = Field(default=None, validation_alias="CLANCY_PROJECT")
    working_dir: Path = Field(default=Path("."), validation_alias="CLANCY_WORKING_DIR")
    claude_path: str | None = Field(default=None, validation_alias="CLAUDE_PATH")
    api_key_env: str = Field(default="ANTHROPIC_API_KEY", validation_alias="CLANCY_API_KEY_ENV")
    extraction_model: str = Field(
        default="claude-sonnet-4-20250514", validation_alias="CLANCY_EXTRACTION_MODEL"
    )
    extraction_max_tokens: int = Field(default=2048, validation_alias="CLANCY_EXTRACTION_MAX_TOKENS")
    analysis_timeout: float = Field(default=60.0, validation_alias="CLANCY_ANALYSIS_TIMEOUT")
    analysis_max_retries: int = Field(default=0, validation_alias="CLANCY_ANALYSIS_MAX_RETRIES")
    max_context_tokens: int = Field(default=12000, validation_alias="CLANCY_MAX_CONTEXT_TOKENS")
    include_parent_notes: bool = Field(default=True, validation_alias="CLANCY_INCLUDE_PARENT_NOTES")
    conversation_mode: str = Field(default="summary", validation_alias="CLANCY_CONVERSATION_MODE")
    log_level: str = Field(default="INFO", validation_alias="CLANCY_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "CLANCY_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("conversation_mode")
    @classmethod
    def _normalize_conversation_mode(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in CONVERSATION_MODES:
            raise ValueError("CLANCY_CONVERSATION_MODE must be one of fresh, summary, full")
        return normalized

    @field_validator("max_context_tokens", "extraction_max_tokens")
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Token budgets must be >= 1")
        return value

    @field_validator("analysis_max_retries")
    @classmethod
    def _validate_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("CLANCY_ANALYSIS_MAX_RETRIES must be >= 0")
        return value

    @property
    def projects_dir(self) -> Path:
        return self.home / "projects"


@lru_cache(maxsize=1)
def get_settings() -> ClancySettings:
    """Return cached settings instance."""

    settings = ClancySettings()
    settings.home = settings.home.expanduser().resolve()
    settings.working_dir = settings.working_dir.expanduser().resolve()
    return settings


__all__ = ["CONVERSATION_MODES", "ClancySettings", "get_settings"]

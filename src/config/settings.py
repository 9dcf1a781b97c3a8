from __future__ import annotations

from pathlib import Path
from typing import Self

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env once at module import so every BaseSettings subclass sees the env vars
load_dotenv()


class OpenAISettings(BaseSettings):
    """LLM gateway settings (any OpenAI-compatible endpoint). Env vars prefixed with OPENAI_."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str  # required, fail fast if missing
    model: str = "gpt-4o-mini"
    base_url: str | None = None
    max_retries: int = Field(3, ge=0, le=10)
    temperature: float | None = None

    @field_validator("temperature")
    @classmethod
    def _validate_temperature(cls, v: float | None) -> float | None:
        if v is not None and not (0.0 <= v <= 2.0):
            raise ValueError(f"OPENAI_TEMPERATURE must be in [0.0, 2.0], got {v}")
        return v


class GatewaySettings(BaseSettings):
    """Gateway server settings. Env vars prefixed with GATEWAY_."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_")

    host: str = "0.0.0.0"
    port: int = 8787
    # Single-user deployment: the connected client is the signed-in owner.
    assume_authenticated: bool = True


class LoggingSettings(BaseSettings):
    """Log output settings. Env vars prefixed with LOG_."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    json_output: bool = False
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            msg = f"LOG_LEVEL must be one of {sorted(allowed)} (got '{v}')"
            raise ValueError(msg)
        return v.upper()


class MemorySettings(BaseSettings):
    """Memory extraction and memory bank settings. Env vars prefixed with MEMORY_."""

    model_config = SettingsConfigDict(env_prefix="MEMORY_")

    bank_filename: str = "memory_bank.json"
    max_memories: int = Field(100, gt=0)
    max_history: int = Field(50, gt=0)
    retention_days: int = Field(90, gt=0)
    min_confidence: float = 0.75  # extracted memories must score strictly above this
    duplicate_threshold: float = 0.7  # token-Jaccard above this collapses candidates
    auto_extract: bool = True

    @model_validator(mode="after")
    def _validate(self) -> Self:
        if not (0.0 <= self.min_confidence < 1.0):
            raise ValueError(
                f"min_confidence must be in [0.0, 1.0), got {self.min_confidence}"
            )
        if not (0.0 < self.duplicate_threshold <= 1.0):
            raise ValueError(
                f"duplicate_threshold must be in (0.0, 1.0], got {self.duplicate_threshold}"
            )
        return self


class MentorSettings(BaseSettings):
    """Mentor persona, profile and workspace data file settings. Env vars prefixed with MENTOR_."""

    model_config = SettingsConfigDict(env_prefix="MENTOR_")

    persona_file: str = "PERSONA.md"
    profile_file: str = "profile.json"
    tasks_file: str = "tasks.json"
    habits_file: str = "habits.json"
    conversations_file: str = "conversations.json"
    max_context_messages: int = Field(40, gt=0)  # transcript tail sent to the LLM


class Settings(BaseSettings):
    """Root settings composing all sub-configurations."""

    model_config = SettingsConfigDict(extra="ignore")

    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    mentor: MentorSettings = Field(default_factory=MentorSettings)
    workspace_dir: Path = Path("workspace")


def get_settings() -> Settings:
    """Load and validate settings. Raises ValidationError on missing required fields."""
    return Settings()

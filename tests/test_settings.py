"""Tests for settings groups and their validators."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config.settings import (
    GatewaySettings,
    LoggingSettings,
    MemorySettings,
    MentorSettings,
    OpenAISettings,
    get_settings,
)


class TestOpenAISettings:
    def test_api_key_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValidationError):
            OpenAISettings()

    def test_defaults(self) -> None:
        s = OpenAISettings(api_key="k")
        assert s.model == "gpt-4o-mini"
        assert s.base_url is None
        assert s.max_retries == 3
        assert s.temperature is None

    def test_temperature_range(self) -> None:
        assert OpenAISettings(api_key="k", temperature=0.7).temperature == 0.7
        with pytest.raises(ValidationError, match="OPENAI_TEMPERATURE must be in"):
            OpenAISettings(api_key="k", temperature=2.5)

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        monkeypatch.setenv("OPENAI_MODEL", "gemini-2.0-flash")
        s = OpenAISettings()
        assert s.api_key == "from-env"
        assert s.model == "gemini-2.0-flash"


class TestLoggingSettings:
    def test_level_normalized(self) -> None:
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_invalid_level_rejected(self) -> None:
        with pytest.raises(ValidationError, match="LOG_LEVEL must be one of"):
            LoggingSettings(level="verbose")


class TestMemorySettings:
    def test_defaults(self) -> None:
        s = MemorySettings()
        assert s.min_confidence == 0.75
        assert s.duplicate_threshold == 0.7
        assert s.max_memories == 100
        assert s.auto_extract is True

    @pytest.mark.parametrize("value", [-0.1, 1.0])
    def test_min_confidence_range(self, value: float) -> None:
        with pytest.raises(ValidationError, match="min_confidence"):
            MemorySettings(min_confidence=value)

    @pytest.mark.parametrize("value", [0.0, 1.5])
    def test_duplicate_threshold_range(self, value: float) -> None:
        with pytest.raises(ValidationError, match="duplicate_threshold"):
            MemorySettings(duplicate_threshold=value)

    def test_caps_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            MemorySettings(max_memories=0)


class TestRootSettings:
    def test_composes_groups(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "k")
        monkeypatch.setenv("GATEWAY_PORT", "9000")
        monkeypatch.setenv("MENTOR_TASKS_FILE", "todo.json")
        s = get_settings()
        assert s.gateway.port == 9000
        assert s.mentor.tasks_file == "todo.json"
        assert s.workspace_dir == Path("workspace")

    def test_group_defaults(self) -> None:
        assert GatewaySettings().assume_authenticated is True
        assert MentorSettings().max_context_messages == 40
        assert MentorSettings().habits_file == "habits.json"
        assert MentorSettings().conversations_file == "conversations.json"

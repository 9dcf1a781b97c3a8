"""Tests for PromptBuilder layers."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from src.agent.prompt_builder import DEFAULT_PERSONA, PromptBuilder
from src.session.models import RoleModel, UserProfile


class TestPromptBuilder:
    def _make_builder(self, tmp_path: Path) -> PromptBuilder:
        return PromptBuilder(tmp_path)

    def test_default_persona_without_file(self, tmp_path: Path) -> None:
        prompt = self._make_builder(tmp_path).build(UserProfile())
        assert prompt.startswith(DEFAULT_PERSONA)

    def test_persona_file_used(self, tmp_path: Path) -> None:
        (tmp_path / "PERSONA.md").write_text("# Coach Kim\nBe blunt.", encoding="utf-8")
        prompt = self._make_builder(tmp_path).build(UserProfile())
        assert prompt.startswith("# Coach Kim\nBe blunt.")
        assert DEFAULT_PERSONA not in prompt

    def test_blank_persona_file_falls_back(self, tmp_path: Path) -> None:
        (tmp_path / "PERSONA.md").write_text("  \n", encoding="utf-8")
        prompt = self._make_builder(tmp_path).build(UserProfile())
        assert prompt.startswith(DEFAULT_PERSONA)

    def test_profile_layer(self, tmp_path: Path) -> None:
        profile = UserProfile(
            name="Sam",
            goals=["launch the app"],
            challenges=["time management"],
            role_models=[RoleModel(name="Ada Lovelace", reason="curiosity"), "Marie Curie"],
            communication_style="direct",
        )
        prompt = self._make_builder(tmp_path).build(profile)
        assert "## ABOUT Sam" in prompt
        assert "- Goals: launch the app" in prompt
        assert "- Current Challenges: time management" in prompt
        assert "Ada Lovelace (curiosity), Marie Curie" in prompt
        assert "Skip the fluff." in prompt

    def test_empty_profile_placeholders(self, tmp_path: Path) -> None:
        prompt = self._make_builder(tmp_path).build(UserProfile())
        assert "- Name: Not yet specified" in prompt
        assert "- Goals: To be defined" in prompt

    def test_memory_layer_only_when_present(self, tmp_path: Path) -> None:
        builder = self._make_builder(tmp_path)
        assert "YOUR MEMORY" not in builder.build(UserProfile(), "  ")

        prompt = builder.build(UserProfile(name="Sam"), "KEY GOALS:\n- run a marathon")
        assert "## YOUR MEMORY ABOUT Sam" in prompt
        assert "KEY GOALS:\n- run a marathon" in prompt

    def test_date_layer(self, tmp_path: Path) -> None:
        now = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)
        prompt = self._make_builder(tmp_path).build(UserProfile(), now=now)
        assert prompt.endswith("Current date: 2026-03-14")

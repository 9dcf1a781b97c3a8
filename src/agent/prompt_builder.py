from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import structlog

from src.session.models import UserProfile

logger = structlog.get_logger()

DEFAULT_PERSONA = (
    "You are a personal mentor: honest, strategic and supportive. "
    "Listen closely, ask sharp follow-up questions, challenge assumptions, "
    "and end with concrete next steps."
)

_STYLE_GUIDANCE = {
    "direct": "Be direct, concise, and action-oriented. Skip the fluff.",
    "supportive": "Be warm, encouraging, and nurturing. Celebrate wins, soften challenges.",
    "balanced": "Balance support with challenge. Encourage but also push.",
}


class PromptBuilder:
    """Assembles the mentor system prompt from layers.

    Layers:
    1. Persona (workspace persona file, or a built-in fallback)
    2. Mentee profile (name, goals, challenges, role models, style)
    3. Memory (memory bank summary, only when non-empty)
    4. Date
    """

    def __init__(self, workspace_dir: Path, persona_file: str = "PERSONA.md") -> None:
        self._persona_path = workspace_dir / persona_file

    def build(
        self,
        profile: UserProfile,
        memory_summary: str = "",
        *,
        now: datetime | None = None,
    ) -> str:
        layers = [
            self._layer_persona(),
            self._layer_profile(profile),
            self._layer_memory(profile, memory_summary),
            self._layer_date(now),
        ]
        return "\n\n".join(layer for layer in layers if layer)

    def _layer_persona(self) -> str:
        if self._persona_path.is_file():
            text = self._persona_path.read_text(encoding="utf-8").strip()
            if text:
                return text
        return DEFAULT_PERSONA

    def _layer_profile(self, profile: UserProfile) -> str:
        role_models = ", ".join(
            f"{rm.name} ({rm.reason})" if rm.reason else rm.name
            for rm in profile.role_models
        )
        lines = [
            f"## ABOUT {profile.name or 'YOUR MENTEE'}",
            f"- Name: {profile.name or 'Not yet specified'}",
            f"- Goals: {', '.join(profile.goals) or 'To be defined'}",
            f"- Current Challenges: {', '.join(profile.challenges) or 'To be discussed'}",
            f"- Role Models & Inspiration: {role_models or 'Visionaries and leaders'}",
            f"- Communication style: {_STYLE_GUIDANCE[profile.communication_style]}",
        ]
        return "\n".join(lines)

    def _layer_memory(self, profile: UserProfile, memory_summary: str) -> str:
        if not memory_summary.strip():
            return ""
        who = profile.name or "this person"
        return (
            f"## YOUR MEMORY ABOUT {profile.name or 'THEM'}\n"
            f"Here's what you remember about {who}'s journey:\n"
            f"{memory_summary.strip()}\n\n"
            "Use this memory to reference past conversations, track commitments "
            "and build on earlier advice."
        )

    def _layer_date(self, now: datetime | None) -> str:
        current = now or datetime.now(UTC)
        return f"Current date: {current.date().isoformat()}"

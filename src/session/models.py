"""Conversation state and user profile.

ConversationState is immutable: each turn takes one in and hands a new one
back, so a single turn can be tested in isolation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.commands.confirmation import PendingTaskAction
from src.infra.errors import ConfigError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    local: bool = False  # task-command exchange; never sent to the LLM


@dataclass(frozen=True)
class ConversationState:
    messages: tuple[ChatMessage, ...] = ()
    pending: PendingTaskAction | None = None

    def append(self, *messages: ChatMessage) -> ConversationState:
        return replace(self, messages=(*self.messages, *messages))

    def with_pending(self, pending: PendingTaskAction | None) -> ConversationState:
        return replace(self, pending=pending)

    def transport_messages(self, limit: int | None = None) -> list[dict[str, str]]:
        """Non-local messages in OpenAI chat format, oldest first, last `limit` only."""
        visible = [{"role": m.role, "content": m.content} for m in self.messages if not m.local]
        if limit is not None:
            visible = visible[-limit:]
        return visible


class RoleModel(BaseModel):
    name: str
    reason: str = ""


class UserProfile(BaseModel):
    """Mentee profile collected during onboarding."""

    name: str = ""
    goals: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    role_models: list[RoleModel] = Field(default_factory=list)
    communication_style: Literal["direct", "supportive", "balanced"] = "balanced"
    onboarding_complete: bool = False

    @field_validator("role_models", mode="before")
    @classmethod
    def _coerce_role_models(cls, v: Any) -> Any:
        # Older profiles store role models as plain names.
        if isinstance(v, list):
            return [
                {"name": item.strip()} if isinstance(item, str) else item
                for item in v
                if not (isinstance(item, str) and not item.strip())
            ]
        return v


def load_profile(path: Path) -> UserProfile:
    """Load the profile JSON; a missing file yields an empty profile.

    Raises ConfigError when the file exists but is not a valid profile.
    """
    if not path.exists():
        logger.info("profile_missing", path=str(path))
        return UserProfile()
    try:
        return UserProfile.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        raise ConfigError(f"Invalid profile file {path}: {e}", code="PROFILE_INVALID") from e

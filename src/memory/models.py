"""Memory types: transient extraction candidates and persisted bank entries.

- ExtractedMemory: produced per (user message, assistant reply) pair, never
  persisted by the extractor itself.
- MemoryEntry / MemoryBankDocument: what the memory bank stores on disk.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class MemoryCategory(StrEnum):
    goal = "goal"
    challenge = "challenge"
    breakthrough = "breakthrough"
    insight = "insight"
    decision = "decision"
    lesson = "lesson"
    progress = "progress"


@dataclass(frozen=True)
class ExtractedMemory:
    """Memory candidate found in a conversation turn.

    confidence is in (0, 1]; only candidates above the configured minimum
    leave the extractor.
    """

    type: MemoryCategory
    content: str
    confidence: float
    context: str | None = None


class MemoryEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    category: MemoryCategory
    content: str
    context: str | None = None


class MemoryBankDocument(BaseModel):
    """On-disk layout of a memory bank file (newest entries first)."""

    user_id: str = "main"
    memories: list[MemoryEntry] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    conversation_history: list[str] = Field(default_factory=list)

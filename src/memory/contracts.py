"""Memory-side contract consumed by the mentor loop.

Memory layer owns this interface. Zero dependency on src.agent.*.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.memory.models import MemoryCategory, MemoryEntry


class MemoryStore(ABC):
    """Destination for accepted memories.

    Fire-and-forget from the caller's perspective: a failed add raises
    MemoryStoreError but never rolls back the conversation turn.
    """

    @abstractmethod
    async def add(
        self,
        category: MemoryCategory,
        content: str,
        context: str | None = None,
    ) -> MemoryEntry:
        ...

    async def add_to_conversation_history(self, line: str) -> None:
        """Record a one-line note about a conversational turn. No-op by default."""

    def summary(self) -> str:
        """Text block describing what is remembered, injected into the system prompt."""
        return ""

"""Memory bank: the user's accumulated memories in a workspace JSON file.

Responsibilities:
- Keep entries newest first, capped at max_memories
- Keep a short conversation history log, capped at max_history
- Query by text, category and recency
- Edit, recategorize, delete, prune old entries
- Render the summary block used in the mentor's system prompt
- UTF-8 JSON writes; a corrupt file loads as an empty bank
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from src.infra.errors import MemoryStoreError
from src.memory.contracts import MemoryStore
from src.memory.models import MemoryBankDocument, MemoryCategory, MemoryEntry

if TYPE_CHECKING:
    from src.config.settings import MemorySettings

logger = structlog.get_logger()

# (category, heading, limit) blocks rendered by summary(), in order
_SUMMARY_SECTIONS = [
    (MemoryCategory.goal, "KEY GOALS", 3),
    (MemoryCategory.challenge, "ONGOING CHALLENGES", 3),
    (MemoryCategory.insight, "PAST INSIGHTS", 3),
    (MemoryCategory.progress, "RECENT PROGRESS", 2),
]


class MemoryBank(MemoryStore):
    """File-backed memory store for a single user."""

    def __init__(
        self,
        workspace_path: Path,
        settings: MemorySettings,
        *,
        user_id: str = "main",
    ) -> None:
        self._path = workspace_path / settings.bank_filename
        self._settings = settings
        self._doc = self._load(user_id)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def memories(self) -> list[MemoryEntry]:
        return list(self._doc.memories)

    @property
    def conversation_history(self) -> list[str]:
        return list(self._doc.conversation_history)

    async def add(
        self,
        category: MemoryCategory,
        content: str,
        context: str | None = None,
    ) -> MemoryEntry:
        """Prepend a new entry; the oldest entries fall off past max_memories."""
        entry = MemoryEntry(category=category, content=content.strip(), context=context)
        self._commit(
            memories=[entry, *self._doc.memories][: self._settings.max_memories]
        )
        logger.info("memory_added", memory_id=entry.id, category=category.value)
        return entry

    async def add_to_conversation_history(self, line: str) -> None:
        self._commit(
            conversation_history=[
                line, *self._doc.conversation_history
            ][: self._settings.max_history]
        )

    def get_relevant(self, query: str, limit: int = 10) -> list[MemoryEntry]:
        """Entries whose content or context contains query (case-insensitive)."""
        needle = query.lower()
        return [
            m for m in self._doc.memories
            if needle in m.content.lower() or (m.context and needle in m.context.lower())
        ][:limit]

    def get_by_category(self, category: MemoryCategory, limit: int = 5) -> list[MemoryEntry]:
        return [m for m in self._doc.memories if m.category == category][:limit]

    def get_recent(
        self, days: int = 7, limit: int = 10, *, now: datetime | None = None
    ) -> list[MemoryEntry]:
        cutoff = (now or datetime.now(UTC)) - timedelta(days=days)
        return [m for m in self._doc.memories if m.date >= cutoff][:limit]

    async def clear_old(self, days: int | None = None, *, now: datetime | None = None) -> int:
        """Drop entries older than days (default: retention_days). Returns count removed."""
        cutoff = (now or datetime.now(UTC)) - timedelta(
            days=days if days is not None else self._settings.retention_days
        )
        kept = [m for m in self._doc.memories if m.date >= cutoff]
        removed = len(self._doc.memories) - len(kept)
        if removed:
            self._commit(memories=kept)
            logger.info("memories_pruned", removed=removed)
        return removed

    async def delete(self, memory_id: str) -> bool:
        kept = [m for m in self._doc.memories if m.id != memory_id]
        if len(kept) == len(self._doc.memories):
            return False
        self._commit(memories=kept)
        logger.info("memory_deleted", memory_id=memory_id)
        return True

    async def update_content(self, memory_id: str, content: str) -> MemoryEntry | None:
        """Replace an entry's content and bump its date. None if id is unknown."""
        return self._replace(
            memory_id, {"content": content.strip(), "date": datetime.now(UTC)}
        )

    async def update_category(
        self, memory_id: str, category: MemoryCategory
    ) -> MemoryEntry | None:
        return self._replace(memory_id, {"category": category})

    async def clear_all(self) -> None:
        self._commit(memories=[], conversation_history=[])
        logger.info("memory_bank_cleared")

    def summary(self) -> str:
        blocks = []
        for category, heading, limit in _SUMMARY_SECTIONS:
            entries = self.get_by_category(category, limit)
            if entries:
                lines = "\n".join(f"- {m.content}" for m in entries)
                blocks.append(f"{heading}:\n{lines}")
        return "\n\n".join(blocks)

    def export_json(self) -> str:
        return self._doc.model_dump_json(indent=2)

    def _replace(self, memory_id: str, update: dict) -> MemoryEntry | None:
        for i, m in enumerate(self._doc.memories):
            if m.id == memory_id:
                updated = m.model_copy(update=update)
                memories = list(self._doc.memories)
                memories[i] = updated
                self._commit(memories=memories)
                logger.info("memory_updated", memory_id=memory_id, fields=sorted(update))
                return updated
        return None

    def _load(self, user_id: str) -> MemoryBankDocument:
        if not self._path.exists():
            return MemoryBankDocument(user_id=user_id)
        try:
            return MemoryBankDocument.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError) as e:
            logger.warning("memory_bank_load_failed", path=str(self._path), error=str(e))
            return MemoryBankDocument(user_id=user_id)

    def _commit(self, **changes: object) -> None:
        """Write the updated document, then make it current. A failed write changes nothing."""
        doc = self._doc.model_copy(update={**changes, "last_updated": datetime.now(UTC)})
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(doc.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("memory_bank_write_failed", path=str(self._path), error=str(e))
            raise MemoryStoreError(f"Could not save memory bank: {e}") from e
        self._doc = doc

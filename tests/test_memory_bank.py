"""Tests for MemoryBank: persistence, caps, queries, edits, summary."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from src.config.settings import MemorySettings
from src.infra.errors import MemoryStoreError
from src.memory.bank import MemoryBank
from src.memory.models import MemoryBankDocument, MemoryCategory, MemoryEntry


def _make_bank(tmp_path: Path, **overrides) -> MemoryBank:
    return MemoryBank(tmp_path, MemorySettings(**overrides))


class TestAddAndPersist:
    @pytest.mark.asyncio
    async def test_add_prepends_and_persists(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        first = await bank.add(MemoryCategory.goal, "run a marathon")
        second = await bank.add(MemoryCategory.challenge, "  fear of failure  ", "ctx")
        assert [m.id for m in bank.memories] == [second.id, first.id]
        assert second.content == "fear of failure"

        reloaded = _make_bank(tmp_path)
        assert [m.content for m in reloaded.memories] == ["fear of failure", "run a marathon"]
        assert reloaded.memories[0].context == "ctx"

    @pytest.mark.asyncio
    async def test_cap_drops_oldest(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path, max_memories=2)
        for content in ("one thing", "two things", "three things"):
            await bank.add(MemoryCategory.insight, content)
        assert [m.content for m in bank.memories] == ["three things", "two things"]

    @pytest.mark.asyncio
    async def test_conversation_history_capped(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path, max_history=2)
        for line in ("a", "b", "c"):
            await bank.add_to_conversation_history(line)
        assert bank.conversation_history == ["c", "b"]

    def test_corrupt_file_loads_empty(self, tmp_path: Path) -> None:
        (tmp_path / "memory_bank.json").write_text("{not json", encoding="utf-8")
        bank = _make_bank(tmp_path)
        assert bank.memories == []

    @pytest.mark.asyncio
    async def test_write_failure_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        bank = MemoryBank(blocker, MemorySettings())
        with pytest.raises(MemoryStoreError):
            await bank.add(MemoryCategory.goal, "run a marathon")

    @pytest.mark.asyncio
    async def test_failed_write_leaves_bank_unchanged(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        kept = await bank.add(MemoryCategory.goal, "run a marathon")
        await bank.add_to_conversation_history("talked about training")
        before = bank.export_json()

        # Writes now fail: the bank file is replaced by a directory.
        bank.path.unlink()
        bank.path.mkdir()

        with pytest.raises(MemoryStoreError):
            await bank.add(MemoryCategory.goal, "ship the beta by friday")
        with pytest.raises(MemoryStoreError):
            await bank.add_to_conversation_history("another line")
        with pytest.raises(MemoryStoreError):
            await bank.delete(kept.id)
        with pytest.raises(MemoryStoreError):
            await bank.update_content(kept.id, "run two marathons")
        with pytest.raises(MemoryStoreError):
            await bank.update_category(kept.id, MemoryCategory.decision)
        with pytest.raises(MemoryStoreError):
            await bank.clear_old(days=0, now=datetime.now(UTC) + timedelta(days=1))
        with pytest.raises(MemoryStoreError):
            await bank.clear_all()

        assert bank.export_json() == before
        assert bank.summary() == "KEY GOALS:\n- run a marathon"

    def test_export_json_round_trips(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        doc = MemoryBankDocument.model_validate_json(bank.export_json())
        assert doc.user_id == "main"


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_relevant_matches_content_and_context(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        await bank.add(MemoryCategory.goal, "Launch the podcast")
        await bank.add(MemoryCategory.insight, "Ship weekly", context="podcast advice")
        await bank.add(MemoryCategory.goal, "Read more books")
        result = bank.get_relevant("PODCAST")
        assert [m.content for m in result] == ["Ship weekly", "Launch the podcast"]

    @pytest.mark.asyncio
    async def test_get_by_category_limit(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        for i in range(4):
            await bank.add(MemoryCategory.goal, f"goal number {i}")
        await bank.add(MemoryCategory.challenge, "a challenge here")
        result = bank.get_by_category(MemoryCategory.goal, limit=2)
        assert [m.content for m in result] == ["goal number 3", "goal number 2"]

    @pytest.mark.asyncio
    async def test_get_recent_and_clear_old(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path, retention_days=30)
        now = datetime(2026, 6, 1, tzinfo=UTC)
        await bank.add(MemoryCategory.goal, "recent goal here")
        await bank.add(MemoryCategory.goal, "ancient goal here")
        # Backdate via the persisted document
        bank._doc.memories = [
            bank._doc.memories[0].model_copy(update={"date": now - timedelta(days=100)}),
            bank._doc.memories[1].model_copy(update={"date": now - timedelta(days=2)}),
        ]

        assert [m.content for m in bank.get_recent(days=7, now=now)] == ["recent goal here"]

        removed = await bank.clear_old(now=now)
        assert removed == 1
        assert [m.content for m in bank.memories] == ["recent goal here"]


class TestEdits:
    @pytest.mark.asyncio
    async def test_update_content_bumps_date(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        entry = await bank.add(MemoryCategory.goal, "old text here")
        updated = await bank.update_content(entry.id, " new text here ")
        assert updated is not None
        assert updated.content == "new text here"
        assert updated.date >= entry.date

    @pytest.mark.asyncio
    async def test_update_category(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        entry = await bank.add(MemoryCategory.goal, "shipped the MVP")
        updated = await bank.update_category(entry.id, MemoryCategory.progress)
        assert updated is not None
        assert bank.memories[0].category is MemoryCategory.progress

    @pytest.mark.asyncio
    async def test_unknown_id(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        assert await bank.update_content("missing", "x") is None
        assert await bank.delete("missing") is False

    @pytest.mark.asyncio
    async def test_delete_and_clear_all(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        entry = await bank.add(MemoryCategory.goal, "first goal here")
        await bank.add(MemoryCategory.goal, "second goal here")
        assert await bank.delete(entry.id) is True
        assert len(bank.memories) == 1

        await bank.add_to_conversation_history("line")
        await bank.clear_all()
        assert bank.memories == []
        assert bank.conversation_history == []


class TestSummary:
    def test_empty_summary(self, tmp_path: Path) -> None:
        assert _make_bank(tmp_path).summary() == ""

    @pytest.mark.asyncio
    async def test_sections_in_order(self, tmp_path: Path) -> None:
        bank = _make_bank(tmp_path)
        await bank.add(MemoryCategory.insight, "consistency beats intensity")
        await bank.add(MemoryCategory.goal, "run a marathon")
        await bank.add(MemoryCategory.decision, "not part of the summary")
        assert bank.summary() == (
            "KEY GOALS:\n- run a marathon\n\nPAST INSIGHTS:\n- consistency beats intensity"
        )


class TestEntryModel:
    def test_defaults(self) -> None:
        entry = MemoryEntry(category=MemoryCategory.goal, content="x")
        assert entry.id
        assert entry.date.tzinfo is not None

"""Shared pytest fixtures for mentor core tests.

Everything runs in-process: task and memory stores live in memory or under
tmp_path, and the LLM is replaced by FakeModelClient.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from src.agent.agent import MentorLoop
from src.agent.model_client import ModelClient
from src.agent.prompt_builder import PromptBuilder
from src.config.settings import MemorySettings
from src.memory.bank import MemoryBank
from src.session.auth import StaticAuthContext
from src.tasks.store import InMemoryTaskStore


class FakeModelClient(ModelClient):
    """Streams pre-configured chunks, then optionally raises."""

    def __init__(self, chunks: list[str] | None = None, *, error: Exception | None = None):
        self.chunks = chunks if chunks is not None else ["Hello", " there."]
        self.error = error
        self.reply = ""
        self.calls: list[list[dict[str, Any]]] = []

    async def chat(
        self, messages: list[dict[str, Any]], model: str, temperature: float | None = None
    ) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply

    async def chat_stream(
        self,
        messages: list[dict[str, Any]],
        model: str,
        *,
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        self.calls.append(messages)
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


@pytest.fixture()
def memory_settings() -> MemorySettings:
    return MemorySettings()


@pytest.fixture()
def fake_model() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture()
def task_store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture()
def memory_bank(tmp_path: Path, memory_settings: MemorySettings) -> MemoryBank:
    return MemoryBank(tmp_path, memory_settings)


@pytest.fixture()
def mentor_loop(
    tmp_path: Path,
    fake_model: FakeModelClient,
    task_store: InMemoryTaskStore,
    memory_bank: MemoryBank,
    memory_settings: MemorySettings,
) -> MentorLoop:
    return MentorLoop(
        model_client=fake_model,
        task_store=task_store,
        memory_store=memory_bank,
        auth=StaticAuthContext(),
        model="test-model",
        prompt_builder=PromptBuilder(tmp_path),
        memory_settings=memory_settings,
    )

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import structlog

from src.agent.events import (
    AgentEvent,
    CommandReply,
    MemoryProposal,
    MemorySaved,
    TasksDetected,
    TextChunk,
    TransportFailure,
    TurnComplete,
)
from src.agent.model_client import ModelClient
from src.agent.prompt_builder import PromptBuilder
from src.commands.handler import CommandResult, TaskCommandHandler
from src.commands.interpreter import parse_command
from src.config.settings import MemorySettings
from src.infra.errors import LLMError, MemoryStoreError
from src.memory.contracts import MemoryStore
from src.memory.extractor import MemoryExtractor, explicit_memory, is_memory_request
from src.memory.models import ExtractedMemory, MemoryEntry
from src.session.auth import AuthContext
from src.session.models import ChatMessage, ConversationState, UserProfile
from src.tasks.detector import extract_tasks_from_text
from src.tasks.store import TaskStore

logger = structlog.get_logger()

_HISTORY_LINE_LIMIT = 200


class MentorLoop:
    """One conversational turn: task command interception, or a streamed mentor reply.

    Flow: pending confirmation → reply handling
          recognised task command → local reply (never sent to the LLM)
          otherwise → build prompt → stream LLM → memories → detected tasks

    State is passed in and handed back in the final TurnComplete event; the loop
    itself keeps no per-conversation state.
    """

    def __init__(
        self,
        model_client: ModelClient,
        task_store: TaskStore,
        memory_store: MemoryStore,
        auth: AuthContext,
        *,
        model: str,
        prompt_builder: PromptBuilder,
        profile: UserProfile | None = None,
        memory_settings: MemorySettings | None = None,
        extractor: MemoryExtractor | None = None,
        max_context_messages: int = 40,
        temperature: float | None = None,
    ) -> None:
        self._model_client = model_client
        self._memory_store = memory_store
        self._commands = TaskCommandHandler(task_store, auth)
        self._model = model
        self._prompt_builder = prompt_builder
        self._profile = profile or UserProfile()
        self._extractor = extractor or MemoryExtractor(memory_settings)
        self._auto_extract = memory_settings.auto_extract if memory_settings else True
        self._max_context_messages = max_context_messages
        self._temperature = temperature

    @property
    def profile(self) -> UserProfile:
        return self._profile

    async def handle_message(
        self, state: ConversationState, content: str
    ) -> AsyncIterator[AgentEvent]:
        """Handle one user message and yield turn events.

        The last event is always TurnComplete carrying the new state. Transport
        failures are reported as TransportFailure and never raised.
        """
        text = content.strip()
        if not text:
            yield TurnComplete(state)
            return

        # 1. A pending confirmation consumes every input
        if state.pending is not None:
            result = await self._commands.handle_reply(state.pending, text)
            for event in self._command_events(state, text, result):
                yield event
            return

        # 2. Task command interception
        command = parse_command(text)
        if command.is_command:
            result = await self._commands.handle(command)
            for event in self._command_events(state, text, result):
                yield event
            return

        # 3. Conversational path
        state = state.append(ChatMessage(role="user", content=text))
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self._system_prompt()},
            *state.transport_messages(limit=self._max_context_messages),
        ]

        parts: list[str] = []
        try:
            async for chunk in self._model_client.chat_stream(
                messages, self._model, temperature=self._temperature
            ):
                parts.append(chunk)
                yield TextChunk(content=chunk)
        except LLMError as e:
            # Partial reply is dropped; the user message stays in the transcript.
            logger.warning("mentor_reply_failed", code=e.code, error=str(e))
            yield TransportFailure(message=str(e), code=e.code)
            yield TurnComplete(state)
            return

        reply = "".join(parts)
        state = state.append(ChatMessage(role="assistant", content=reply))
        logger.info("mentor_reply_complete", chars=len(reply))
        await self._record_turn(text)

        # 4. Memories
        if is_memory_request(text):
            proposal = explicit_memory(text)
            if proposal is not None:
                logger.info("memory_proposed", chars=len(proposal.content))
                yield MemoryProposal(memory=proposal)
        elif self._auto_extract:
            for memory in self._extractor.extract(text, reply):
                entry = await self._save_memory(memory)
                if entry is not None:
                    yield MemorySaved(memory=memory, memory_id=entry.id)

        # 5. Task suggestions
        detected = extract_tasks_from_text(text)
        if detected:
            logger.info("tasks_detected", count=len(detected))
            yield TasksDetected(tasks=detected)

        yield TurnComplete(state)

    async def confirm_memory(self, proposal: ExtractedMemory) -> MemoryEntry:
        """Save a memory the user accepted. Raises MemoryStoreError on failure."""
        entry = await self._memory_store.add(
            proposal.type, proposal.content, proposal.context
        )
        logger.info("memory_confirmed", memory_id=entry.id, category=proposal.type.value)
        return entry

    def _system_prompt(self) -> str:
        return self._prompt_builder.build(self._profile, self._memory_store.summary())

    async def _save_memory(self, memory: ExtractedMemory) -> MemoryEntry | None:
        try:
            entry = await self._memory_store.add(memory.type, memory.content, memory.context)
        except MemoryStoreError as e:
            logger.warning(
                "memory_auto_save_failed", category=memory.type.value, error=str(e)
            )
            return None
        logger.info("memory_auto_saved", memory_id=entry.id, category=memory.type.value)
        return entry

    async def _record_turn(self, text: str) -> None:
        line = text
        if len(line) > _HISTORY_LINE_LIMIT:
            line = line[: _HISTORY_LINE_LIMIT - 3] + "..."
        try:
            await self._memory_store.add_to_conversation_history(line)
        except MemoryStoreError as e:
            logger.warning("conversation_history_save_failed", error=str(e))

    @staticmethod
    def _command_events(
        state: ConversationState, text: str, result: CommandResult
    ) -> list[AgentEvent]:
        new_state = state.append(
            ChatMessage(role="user", content=text, local=True),
            ChatMessage(role="assistant", content=result.reply, local=True),
        ).with_pending(result.pending)
        return [
            CommandReply(
                content=result.reply, awaiting_confirmation=result.pending is not None
            ),
            TurnComplete(new_state),
        ]

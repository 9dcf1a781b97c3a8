from __future__ import annotations

from dataclasses import dataclass, field

from src.memory.models import ExtractedMemory
from src.session.models import ConversationState
from src.tasks.detector import DetectedTask


@dataclass
class TextChunk:
    """A chunk of text content from the mentor's streamed response."""

    content: str


@dataclass
class CommandReply:
    """Locally generated reply to a task command or confirmation."""

    content: str
    awaiting_confirmation: bool = False


@dataclass
class TransportFailure:
    """The LLM call failed; shown as a notification, not as a transcript message."""

    message: str
    code: str = "LLM_ERROR"


@dataclass
class MemorySaved:
    """A memory was extracted from the turn and stored automatically."""

    memory: ExtractedMemory
    memory_id: str | None = None


@dataclass
class MemoryProposal:
    """The user asked to remember something; awaiting their confirmation to save."""

    memory: ExtractedMemory


@dataclass
class TasksDetected:
    """Task-like statements found in the user's message (suggestions only)."""

    tasks: list[DetectedTask] = field(default_factory=list)


@dataclass
class TurnComplete:
    """Always the last event of a turn; carries the conversation state after it."""

    state: ConversationState


AgentEvent = (
    TextChunk
    | CommandReply
    | TransportFailure
    | MemorySaved
    | MemoryProposal
    | TasksDetected
    | TurnComplete
)

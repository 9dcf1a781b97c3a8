from __future__ import annotations

import json
import uuid
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.memory.models import MemoryCategory


class ChatSendParams(BaseModel):
    content: str
    session_id: str = "main"


class SessionParams(BaseModel):
    """Params for chat.history and chat.clear."""

    session_id: str = "main"


class MemoryListParams(BaseModel):
    category: MemoryCategory | None = None
    query: str | None = None
    days: int | None = Field(None, ge=1)
    limit: int = Field(20, ge=1, le=100)


class MemoryConfirmParams(BaseModel):
    """A memory proposal the user accepted, echoed back by the client."""

    category: MemoryCategory
    content: str
    context: str | None = None

    @field_validator("content")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("content must not be empty")
        return v


class MemoryIdParams(BaseModel):
    """Params for memory.delete."""

    id: str


class MemoryUpdateParams(BaseModel):
    id: str
    content: str | None = None
    category: MemoryCategory | None = None

    @field_validator("content")
    @classmethod
    def _non_empty(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("content must not be empty")
        return v


class HabitCreateParams(BaseModel):
    title: str
    description: str | None = None
    color: str | None = None


class HabitIdParams(BaseModel):
    id: str


class HabitToggleParams(BaseModel):
    """Check or un-check one habit on one calendar day (YYYY-MM-DD)."""

    habit_id: str
    checked_date: date


class RPCRequest(BaseModel):
    """Generic RPC request. method determines which params to expect."""

    type: Literal["request"] = "request"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    method: str
    params: dict[str, Any] = Field(default_factory=dict)


class StreamChunkData(BaseModel):
    content: str
    done: bool


class RPCStreamChunk(BaseModel):
    type: Literal["stream_chunk"] = "stream_chunk"
    id: str
    data: StreamChunkData


class CommandReplyData(BaseModel):
    content: str
    awaiting_confirmation: bool = False


class RPCCommandReply(BaseModel):
    type: Literal["command_reply"] = "command_reply"
    id: str
    data: CommandReplyData


class NotificationData(BaseModel):
    level: Literal["info", "error"] = "error"
    code: str
    message: str


class RPCNotification(BaseModel):
    type: Literal["notification"] = "notification"
    id: str
    data: NotificationData


class MemoryData(BaseModel):
    id: str | None = None
    category: MemoryCategory
    content: str
    confidence: float
    context: str | None = None


class RPCMemorySaved(BaseModel):
    type: Literal["memory_saved"] = "memory_saved"
    id: str
    data: MemoryData


class RPCMemoryProposal(BaseModel):
    type: Literal["memory_proposal"] = "memory_proposal"
    id: str
    data: MemoryData


class DetectedTaskData(BaseModel):
    title: str
    priority: str


class TasksDetectedData(BaseModel):
    tasks: list[DetectedTaskData]


class RPCTasksDetected(BaseModel):
    type: Literal["tasks_detected"] = "tasks_detected"
    id: str
    data: TasksDetectedData


class RPCResponse(BaseModel):
    type: Literal["response"] = "response"
    id: str
    data: dict[str, Any]


class RPCErrorData(BaseModel):
    code: str
    message: str


class RPCError(BaseModel):
    type: Literal["error"] = "error"
    id: str
    error: RPCErrorData


def parse_rpc_request(raw: str) -> RPCRequest:
    """Parse a raw JSON string into an RPCRequest.

    Raises GatewayError(code="PARSE_ERROR") on invalid JSON or schema mismatch.
    """
    from src.infra.errors import GatewayError

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise GatewayError(f"Invalid JSON: {e}", code="PARSE_ERROR") from e
    try:
        return RPCRequest.model_validate(data)
    except ValidationError as e:
        raise GatewayError(f"Invalid RPC request: {e}", code="PARSE_ERROR") from e

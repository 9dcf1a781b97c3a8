from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TypeVar

import structlog
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from src.agent.agent import MentorLoop
from src.agent.events import (
    AgentEvent,
    CommandReply,
    MemoryProposal,
    MemorySaved,
    TasksDetected,
    TextChunk,
    TransportFailure,
)
from src.agent.model_client import OpenAICompatModelClient
from src.agent.motivation import get_motivation
from src.agent.prompt_builder import PromptBuilder
from src.config.settings import get_settings
from src.gateway.dispatch import dispatch_chat
from src.gateway.protocol import (
    ChatSendParams,
    CommandReplyData,
    DetectedTaskData,
    HabitCreateParams,
    HabitIdParams,
    HabitToggleParams,
    MemoryConfirmParams,
    MemoryData,
    MemoryIdParams,
    MemoryListParams,
    MemoryUpdateParams,
    NotificationData,
    RPCCommandReply,
    RPCError,
    RPCErrorData,
    RPCMemoryProposal,
    RPCMemorySaved,
    RPCNotification,
    RPCResponse,
    RPCStreamChunk,
    RPCTasksDetected,
    SessionParams,
    StreamChunkData,
    TasksDetectedData,
    parse_rpc_request,
)
from src.habits.store import FileHabitStore, HabitStore
from src.infra.errors import GatewayError, MentorError
from src.infra.logging import setup_logging
from src.memory.bank import MemoryBank
from src.memory.extractor import EXPLICIT_REQUEST_CONTEXT, MemoryExtractor
from src.memory.models import ExtractedMemory
from src.session.auth import AuthContext, StaticAuthContext
from src.session.manager import ConversationManager
from src.session.models import load_profile
from src.tasks.store import FileTaskStore

logger = structlog.get_logger()

P = TypeVar("P", bound=BaseModel)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize shared state on startup."""
    settings = get_settings()
    setup_logging(json_output=settings.logging.json_output, log_level=settings.logging.level)

    workspace = settings.workspace_dir
    workspace.mkdir(parents=True, exist_ok=True)

    # Invalid profile aborts startup
    profile = load_profile(workspace / settings.mentor.profile_file)

    memory_bank = MemoryBank(workspace, settings.memory)
    expired = await memory_bank.clear_old()
    if expired:
        logger.info(
            "memories_expired", count=expired, retention_days=settings.memory.retention_days
        )

    task_store = FileTaskStore(workspace / settings.mentor.tasks_file)
    habit_store = FileHabitStore(workspace / settings.mentor.habits_file)
    conversation_manager = ConversationManager(workspace / settings.mentor.conversations_file)
    auth = StaticAuthContext(settings.gateway.assume_authenticated)

    model_client = OpenAICompatModelClient(
        api_key=settings.openai.api_key,
        base_url=settings.openai.base_url,
        max_retries=settings.openai.max_retries,
    )

    mentor_loop = MentorLoop(
        model_client=model_client,
        task_store=task_store,
        memory_store=memory_bank,
        auth=auth,
        model=settings.openai.model,
        prompt_builder=PromptBuilder(workspace, settings.mentor.persona_file),
        profile=profile,
        memory_settings=settings.memory,
        extractor=MemoryExtractor(settings.memory),
        max_context_messages=settings.mentor.max_context_messages,
        temperature=settings.openai.temperature,
    )

    app.state.mentor_loop = mentor_loop
    app.state.conversation_manager = conversation_manager
    app.state.memory_bank = memory_bank
    app.state.habit_store = habit_store
    app.state.auth = auth
    app.state.model_client = model_client
    app.state.model = settings.openai.model
    logger.info(
        "gateway_started",
        host=settings.gateway.host,
        port=settings.gateway.port,
        model=settings.openai.model,
        workspace=str(workspace),
    )

    yield

    logger.info("gateway_stopped")


app = FastAPI(title="Mentor Gateway", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    logger.info("ws_connected")
    try:
        while True:
            raw = await websocket.receive_text()
            await _handle_rpc_message(websocket, raw)
    except WebSocketDisconnect:
        logger.info("ws_disconnected")


async def _handle_rpc_message(websocket: WebSocket, raw: str) -> None:
    """Parse RPC request, route by method, send frames back."""
    request_id = "unknown"
    try:
        request = parse_rpc_request(raw)
        request_id = request.id

        handler = _METHODS.get(request.method)
        if handler is None:
            error = RPCError(
                id=request_id,
                error=RPCErrorData(
                    code="METHOD_NOT_FOUND",
                    message=f"Unknown method: {request.method}",
                ),
            )
            await websocket.send_text(error.model_dump_json())
            return
        await handler(websocket, request_id, request.params)

    except MentorError as e:
        logger.warning("request_error", code=e.code, error=str(e), request_id=request_id)
        error = RPCError(
            id=request_id,
            error=RPCErrorData(code=e.code, message=str(e)),
        )
        await websocket.send_text(error.model_dump_json())
    except Exception:
        logger.exception("unhandled_error", request_id=request_id)
        error = RPCError(
            id=request_id,
            error=RPCErrorData(code="INTERNAL_ERROR", message="An internal error occurred"),
        )
        await websocket.send_text(error.model_dump_json())


def _parse_params(model: type[P], params: dict) -> P:
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise GatewayError(str(e), code="INVALID_PARAMS") from e


def _memory_data(memory: ExtractedMemory, memory_id: str | None = None) -> MemoryData:
    return MemoryData(
        id=memory_id,
        category=memory.type,
        content=memory.content,
        confidence=memory.confidence,
        context=memory.context,
    )


def _event_frame(request_id: str, event: AgentEvent) -> BaseModel | None:
    """Map a turn event to its wire frame; TurnComplete has none."""
    if isinstance(event, TextChunk):
        return RPCStreamChunk(
            id=request_id, data=StreamChunkData(content=event.content, done=False)
        )
    if isinstance(event, CommandReply):
        return RPCCommandReply(
            id=request_id,
            data=CommandReplyData(
                content=event.content, awaiting_confirmation=event.awaiting_confirmation
            ),
        )
    if isinstance(event, TransportFailure):
        return RPCNotification(
            id=request_id, data=NotificationData(code=event.code, message=event.message)
        )
    if isinstance(event, MemorySaved):
        return RPCMemorySaved(id=request_id, data=_memory_data(event.memory, event.memory_id))
    if isinstance(event, MemoryProposal):
        return RPCMemoryProposal(id=request_id, data=_memory_data(event.memory))
    if isinstance(event, TasksDetected):
        return RPCTasksDetected(
            id=request_id,
            data=TasksDetectedData(
                tasks=[
                    DetectedTaskData(title=t.title, priority=t.priority.value)
                    for t in event.tasks
                ]
            ),
        )
    return None


async def _handle_chat_send(websocket: WebSocket, request_id: str, params: dict) -> None:
    """Handle chat.send: delegate to dispatch_chat, stream events over WebSocket."""
    parsed = _parse_params(ChatSendParams, params)

    async for event in dispatch_chat(
        manager=websocket.app.state.conversation_manager,
        mentor_loop=websocket.app.state.mentor_loop,
        session_id=parsed.session_id,
        content=parsed.content,
    ):
        frame = _event_frame(request_id, event)
        if frame is not None:
            await websocket.send_text(frame.model_dump_json())

    done_chunk = RPCStreamChunk(
        id=request_id,
        data=StreamChunkData(content="", done=True),
    )
    await websocket.send_text(done_chunk.model_dump_json())


async def _handle_chat_history(websocket: WebSocket, request_id: str, params: dict) -> None:
    parsed = _parse_params(SessionParams, params)
    manager: ConversationManager = websocket.app.state.conversation_manager
    history = manager.get_history_for_display(parsed.session_id)
    response = RPCResponse(id=request_id, data={"messages": history})
    await websocket.send_text(response.model_dump_json())


async def _handle_chat_clear(websocket: WebSocket, request_id: str, params: dict) -> None:
    parsed = _parse_params(SessionParams, params)
    manager: ConversationManager = websocket.app.state.conversation_manager
    manager.clear(parsed.session_id)
    response = RPCResponse(id=request_id, data={"cleared": True})
    await websocket.send_text(response.model_dump_json())


async def _handle_memory_list(websocket: WebSocket, request_id: str, params: dict) -> None:
    """Handle memory.list: query match, then category, then age window, else newest first."""
    parsed = _parse_params(MemoryListParams, params)
    bank: MemoryBank = websocket.app.state.memory_bank

    if parsed.query:
        entries = bank.get_relevant(parsed.query, limit=parsed.limit)
    elif parsed.category is not None:
        entries = bank.get_by_category(parsed.category, limit=parsed.limit)
    elif parsed.days is not None:
        entries = bank.get_recent(parsed.days, limit=parsed.limit)
    else:
        entries = bank.memories[: parsed.limit]

    response = RPCResponse(
        id=request_id,
        data={"memories": [e.model_dump(mode="json") for e in entries]},
    )
    await websocket.send_text(response.model_dump_json())


async def _handle_memory_confirm(websocket: WebSocket, request_id: str, params: dict) -> None:
    """Handle memory.confirm: save a proposal the user accepted."""
    parsed = _parse_params(MemoryConfirmParams, params)
    mentor_loop: MentorLoop = websocket.app.state.mentor_loop

    entry = await mentor_loop.confirm_memory(
        ExtractedMemory(
            type=parsed.category,
            content=parsed.content,
            confidence=1.0,
            context=parsed.context or EXPLICIT_REQUEST_CONTEXT,
        )
    )
    response = RPCResponse(id=request_id, data={"memory": entry.model_dump(mode="json")})
    await websocket.send_text(response.model_dump_json())


async def _handle_memory_delete(websocket: WebSocket, request_id: str, params: dict) -> None:
    parsed = _parse_params(MemoryIdParams, params)
    bank: MemoryBank = websocket.app.state.memory_bank
    deleted = await bank.delete(parsed.id)
    response = RPCResponse(id=request_id, data={"deleted": deleted})
    await websocket.send_text(response.model_dump_json())


async def _handle_memory_update(websocket: WebSocket, request_id: str, params: dict) -> None:
    """Handle memory.update: new content and/or category for one entry."""
    parsed = _parse_params(MemoryUpdateParams, params)
    if parsed.content is None and parsed.category is None:
        raise GatewayError("Nothing to update: give content or category", code="INVALID_PARAMS")
    bank: MemoryBank = websocket.app.state.memory_bank

    entry = None
    if parsed.content is not None:
        entry = await bank.update_content(parsed.id, parsed.content)
    if parsed.category is not None:
        entry = await bank.update_category(parsed.id, parsed.category)
    if entry is None:
        raise GatewayError(f"Memory {parsed.id} not found", code="MEMORY_NOT_FOUND")

    response = RPCResponse(id=request_id, data={"memory": entry.model_dump(mode="json")})
    await websocket.send_text(response.model_dump_json())


async def _handle_memory_export(websocket: WebSocket, request_id: str, params: dict) -> None:
    bank: MemoryBank = websocket.app.state.memory_bank
    response = RPCResponse(id=request_id, data={"export": bank.export_json()})
    await websocket.send_text(response.model_dump_json())


async def _handle_memory_clear(websocket: WebSocket, request_id: str, params: dict) -> None:
    """Handle memory.clear: forget every memory and the conversation history log."""
    bank: MemoryBank = websocket.app.state.memory_bank
    await bank.clear_all()
    response = RPCResponse(id=request_id, data={"cleared": True})
    await websocket.send_text(response.model_dump_json())


def _require_auth(websocket: WebSocket) -> None:
    auth: AuthContext = websocket.app.state.auth
    if not auth.is_authenticated:
        raise GatewayError("Please sign in to manage your habits.", code="AUTH_REQUIRED")


async def _handle_habits_list(websocket: WebSocket, request_id: str, params: dict) -> None:
    store: HabitStore = websocket.app.state.habit_store
    response = RPCResponse(
        id=request_id,
        data={
            "habits": [h.model_dump(mode="json") for h in store.list_habits()],
            "checks": [c.model_dump(mode="json") for c in store.list_checks()],
        },
    )
    await websocket.send_text(response.model_dump_json())


async def _handle_habits_create(websocket: WebSocket, request_id: str, params: dict) -> None:
    parsed = _parse_params(HabitCreateParams, params)
    _require_auth(websocket)
    store: HabitStore = websocket.app.state.habit_store
    habit = await store.create(parsed.title, parsed.description, parsed.color)
    response = RPCResponse(id=request_id, data={"habit": habit.model_dump(mode="json")})
    await websocket.send_text(response.model_dump_json())


async def _handle_habits_delete(websocket: WebSocket, request_id: str, params: dict) -> None:
    parsed = _parse_params(HabitIdParams, params)
    _require_auth(websocket)
    store: HabitStore = websocket.app.state.habit_store
    await store.delete(parsed.id)
    response = RPCResponse(id=request_id, data={"deleted": True})
    await websocket.send_text(response.model_dump_json())


async def _handle_habits_toggle(websocket: WebSocket, request_id: str, params: dict) -> None:
    """Handle habits.toggle: flip one day's check mark, report whether it is now checked."""
    parsed = _parse_params(HabitToggleParams, params)
    _require_auth(websocket)
    store: HabitStore = websocket.app.state.habit_store
    checked = await store.toggle_check(parsed.habit_id, parsed.checked_date)
    response = RPCResponse(id=request_id, data={"checked": checked})
    await websocket.send_text(response.model_dump_json())


async def _handle_motivation_get(websocket: WebSocket, request_id: str, params: dict) -> None:
    motivation = await get_motivation(
        websocket.app.state.model_client, websocket.app.state.model
    )
    response = RPCResponse(id=request_id, data=motivation.model_dump())
    await websocket.send_text(response.model_dump_json())


_METHODS = {
    "chat.send": _handle_chat_send,
    "chat.history": _handle_chat_history,
    "chat.clear": _handle_chat_clear,
    "memory.list": _handle_memory_list,
    "memory.confirm": _handle_memory_confirm,
    "memory.delete": _handle_memory_delete,
    "memory.update": _handle_memory_update,
    "memory.export": _handle_memory_export,
    "memory.clear": _handle_memory_clear,
    "habits.list": _handle_habits_list,
    "habits.create": _handle_habits_create,
    "habits.delete": _handle_habits_delete,
    "habits.toggle": _handle_habits_toggle,
    "motivation.get": _handle_motivation_get,
}

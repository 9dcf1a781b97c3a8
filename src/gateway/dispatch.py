"""Core dispatch: session claim → handle_message → store state → release.

Kept apart from the WebSocket handler so other transports can run turns the
same way. SESSION_BUSY propagates as GatewayError.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import structlog

from src.agent.agent import MentorLoop
from src.agent.events import AgentEvent, TurnComplete
from src.infra.errors import GatewayError
from src.infra.logging import bind_turn_context
from src.session.manager import ConversationManager

logger = structlog.get_logger()


async def dispatch_chat(
    *,
    manager: ConversationManager,
    mentor_loop: MentorLoop,
    session_id: str,
    content: str,
) -> AsyncIterator[AgentEvent]:
    """Run one turn for session_id and yield its events.

    The state carried by TurnComplete is stored before the event is yielded.
    Raises GatewayError(SESSION_BUSY) if another turn holds the session.
    """
    lock_token = manager.try_claim(session_id)
    if lock_token is None:
        raise GatewayError(
            "Session is being processed by another request. Please try again.",
            code="SESSION_BUSY",
        )

    try:
        state = manager.get(session_id)
        turn = sum(1 for m in state.messages if m.role == "user") + 1
        bind_turn_context(session_id=session_id, turn=turn)

        async for event in mentor_loop.handle_message(state, content):
            if isinstance(event, TurnComplete):
                manager.put(session_id, event.state, lock_token=lock_token)
            yield event

    finally:
        manager.release(session_id, lock_token)
        logger.debug("session_released", session_id=session_id)

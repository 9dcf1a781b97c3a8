from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

import structlog
from pydantic import TypeAdapter, ValidationError

from src.infra.errors import SessionError
from src.session.models import ConversationState

logger = structlog.get_logger()

_CONVERSATIONS = TypeAdapter(dict[str, ConversationState])


class ConversationManager:
    """Conversation states keyed by session id, optionally saved to a JSON file.

    A session is claimed for the duration of one turn; a second turn on the same
    session while the first is in flight is refused, so pending confirmations
    and transcript order are never interleaved.

    With a path, a stored or cleared state is written to disk before it becomes
    current, and saved conversations are read back on construction.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._states: dict[str, ConversationState] = self._load()
        self._claims: dict[str, str] = {}

    def get(self, session_id: str) -> ConversationState:
        """Current state, creating an empty conversation on first use."""
        if session_id not in self._states:
            logger.info("conversation_created", session_id=session_id)
            self._states[session_id] = ConversationState()
        return self._states[session_id]

    def put(self, session_id: str, state: ConversationState, *, lock_token: str) -> None:
        """Store the state returned by a turn. Only the claim holder may write."""
        if self._claims.get(session_id) != lock_token:
            raise SessionError(
                f"Session {session_id} is not claimed by this turn", code="SESSION_FENCED"
            )
        self._commit({**self._states, session_id: state})

    def try_claim(self, session_id: str) -> str | None:
        """Claim a session for one turn. Returns a lock token, or None if busy."""
        if session_id in self._claims:
            logger.info("session_claim_rejected", session_id=session_id)
            return None
        token = str(uuid.uuid4())
        self._claims[session_id] = token
        return token

    def release(self, session_id: str, lock_token: str) -> None:
        if self._claims.get(session_id) == lock_token:
            del self._claims[session_id]

    def clear(self, session_id: str) -> None:
        """Forget the transcript and any pending confirmation."""
        if session_id in self._claims:
            raise SessionError(
                "Session is being processed by another request. Please try again.",
                code="SESSION_BUSY",
            )
        self._commit({k: v for k, v in self._states.items() if k != session_id})
        logger.info("conversation_cleared", session_id=session_id)

    def get_history_for_display(self, session_id: str) -> list[dict[str, Any]]:
        state = self._states.get(session_id)
        if state is None:
            return []
        return [
            {
                "role": m.role,
                "content": m.content,
                "timestamp": m.timestamp.isoformat(),
                "local": m.local,
            }
            for m in state.messages
        ]

    def _load(self) -> dict[str, ConversationState]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            return _CONVERSATIONS.validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as e:
            raise SessionError(
                f"Cannot read conversation file {self._path}: {e}", code="SESSION_LOAD_FAILED"
            ) from e

    def _commit(self, states: dict[str, ConversationState]) -> None:
        if self._path is not None:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._path.write_bytes(_CONVERSATIONS.dump_json(states, indent=2))
            except OSError as e:
                logger.warning(
                    "conversation_file_write_failed", path=str(self._path), error=str(e)
                )
                raise SessionError(
                    f"Could not save conversation: {e}", code="SESSION_SAVE_FAILED"
                ) from e
        self._states = states

"""Tests for conversation state, profile loading and ConversationManager."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.commands.confirmation import PendingTaskAction, TaskAction
from src.infra.errors import ConfigError, SessionError
from src.session.auth import StaticAuthContext
from src.session.manager import ConversationManager
from src.session.models import ChatMessage, ConversationState, UserProfile, load_profile
from src.tasks.models import Task

# ---------------------------------------------------------------------------
# ConversationState
# ---------------------------------------------------------------------------


class TestConversationState:
    def test_append_returns_new_state(self) -> None:
        state = ConversationState()
        new = state.append(ChatMessage(role="user", content="hi"))
        assert state.messages == ()
        assert len(new.messages) == 1

    def test_with_pending(self) -> None:
        pending = PendingTaskAction(
            type=TaskAction.delete, candidates=(Task(title="Gym"),), original_payload="gym"
        )
        state = ConversationState().with_pending(pending)
        assert state.pending is pending
        assert state.with_pending(None).pending is None

    def test_transport_messages_skip_local_and_limit(self) -> None:
        state = ConversationState().append(
            ChatMessage(role="user", content="one"),
            ChatMessage(role="assistant", content="two"),
            ChatMessage(role="user", content="show my tasks", local=True),
            ChatMessage(role="assistant", content="You have no open tasks.", local=True),
            ChatMessage(role="user", content="three"),
        )
        assert state.transport_messages() == [
            {"role": "user", "content": "one"},
            {"role": "assistant", "content": "two"},
            {"role": "user", "content": "three"},
        ]
        assert [m["content"] for m in state.transport_messages(limit=2)] == ["two", "three"]


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class TestProfile:
    def test_missing_file_gives_empty_profile(self, tmp_path: Path) -> None:
        assert load_profile(tmp_path / "profile.json") == UserProfile()

    def test_role_models_accept_strings(self, tmp_path: Path) -> None:
        path = tmp_path / "profile.json"
        path.write_text(
            '{"name": "Sam", "role_models": ["Ada Lovelace", "", {"name": "Marie Curie"}]}',
            encoding="utf-8",
        )
        profile = load_profile(path)
        assert [rm.name for rm in profile.role_models] == ["Ada Lovelace", "Marie Curie"]
        assert profile.communication_style == "balanced"

    def test_invalid_profile_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "profile.json"
        path.write_text('{"communication_style": "shouty"}', encoding="utf-8")
        with pytest.raises(ConfigError) as exc_info:
            load_profile(path)
        assert exc_info.value.code == "PROFILE_INVALID"


# ---------------------------------------------------------------------------
# ConversationManager
# ---------------------------------------------------------------------------


class TestConversationManager:
    def test_get_creates_empty_state(self) -> None:
        mgr = ConversationManager()
        assert mgr.get("main") == ConversationState()

    def test_claim_is_exclusive(self) -> None:
        mgr = ConversationManager()
        token = mgr.try_claim("main")
        assert token is not None
        assert mgr.try_claim("main") is None
        assert mgr.try_claim("other") is not None

        mgr.release("main", token)
        assert mgr.try_claim("main") is not None

    def test_release_with_wrong_token_is_ignored(self) -> None:
        mgr = ConversationManager()
        mgr.try_claim("main")
        mgr.release("main", "not-the-token")
        assert mgr.try_claim("main") is None

    def test_put_requires_claim(self) -> None:
        mgr = ConversationManager()
        state = ConversationState().append(ChatMessage(role="user", content="hi"))
        with pytest.raises(SessionError) as exc_info:
            mgr.put("main", state, lock_token="nope")
        assert exc_info.value.code == "SESSION_FENCED"

        token = mgr.try_claim("main")
        mgr.put("main", state, lock_token=token)
        assert mgr.get("main") is state

    def test_history_for_display(self) -> None:
        mgr = ConversationManager()
        assert mgr.get_history_for_display("main") == []
        token = mgr.try_claim("main")
        mgr.put(
            "main",
            ConversationState().append(
                ChatMessage(role="user", content="show my tasks", local=True)
            ),
            lock_token=token,
        )
        [entry] = mgr.get_history_for_display("main")
        assert entry["content"] == "show my tasks"
        assert entry["local"] is True
        assert "timestamp" in entry

    def test_clear(self) -> None:
        mgr = ConversationManager()
        token = mgr.try_claim("main")
        mgr.put(
            "main",
            ConversationState().append(ChatMessage(role="user", content="hi")),
            lock_token=token,
        )
        with pytest.raises(SessionError, match="being processed"):
            mgr.clear("main")

        mgr.release("main", token)
        mgr.clear("main")
        assert mgr.get_history_for_display("main") == []


class TestConversationPersistence:
    def _put(self, mgr: ConversationManager, state: ConversationState) -> None:
        token = mgr.try_claim("main")
        try:
            mgr.put("main", state, lock_token=token)
        finally:
            mgr.release("main", token)

    def test_reloads_messages_and_pending(self, tmp_path: Path) -> None:
        path = tmp_path / "conversations.json"
        pending = PendingTaskAction(
            type=TaskAction.delete, candidates=(Task(title="Gym"),), original_payload="gym"
        )
        state = (
            ConversationState()
            .append(
                ChatMessage(role="user", content="delete gym", local=True),
                ChatMessage(role="assistant", content='Delete "Gym"?', local=True),
            )
            .with_pending(pending)
        )
        self._put(ConversationManager(path), state)

        reloaded = ConversationManager(path).get("main")
        assert reloaded == state
        assert reloaded.pending.candidates[0].title == "Gym"

    def test_clear_is_persisted(self, tmp_path: Path) -> None:
        path = tmp_path / "conversations.json"
        mgr = ConversationManager(path)
        self._put(mgr, ConversationState().append(ChatMessage(role="user", content="hi")))
        mgr.clear("main")
        assert ConversationManager(path).get_history_for_display("main") == []

    def test_failed_write_keeps_previous_state(self, tmp_path: Path) -> None:
        path = tmp_path / "conversations.json"
        mgr = ConversationManager(path)
        first = ConversationState().append(ChatMessage(role="user", content="hi"))
        self._put(mgr, first)

        path.unlink()
        path.mkdir()

        with pytest.raises(SessionError) as exc_info:
            self._put(mgr, first.append(ChatMessage(role="assistant", content="hello")))
        assert exc_info.value.code == "SESSION_SAVE_FAILED"
        with pytest.raises(SessionError):
            mgr.clear("main")
        assert mgr.get("main") == first

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "conversations.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(SessionError) as exc_info:
            ConversationManager(path)
        assert exc_info.value.code == "SESSION_LOAD_FAILED"


class TestAuth:
    def test_static_auth(self) -> None:
        assert StaticAuthContext().is_authenticated
        assert not StaticAuthContext(False).is_authenticated

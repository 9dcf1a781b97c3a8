"""Custom exception hierarchy for the mentor core.

All application-specific exceptions inherit from MentorError,
which carries an error code for RPC error frame mapping.
"""

from __future__ import annotations


class MentorError(Exception):
    """Base exception for all mentor errors."""

    def __init__(self, message: str, *, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class GatewayError(MentorError):
    """Errors in the Gateway / WebSocket layer."""

    def __init__(self, message: str, *, code: str = "GATEWAY_ERROR") -> None:
        super().__init__(message, code=code)


class SessionError(MentorError):
    """Errors in conversation state management."""

    def __init__(self, message: str, *, code: str = "SESSION_ERROR") -> None:
        super().__init__(message, code=code)


class ConfigError(MentorError):
    """Invalid workspace configuration (profile, persona, data files)."""

    def __init__(self, message: str, *, code: str = "CONFIG_ERROR") -> None:
        super().__init__(message, code=code)


class AgentError(MentorError):
    """Errors in the mentor runtime."""

    def __init__(self, message: str, *, code: str = "AGENT_ERROR") -> None:
        super().__init__(message, code=code)


class LLMError(AgentError):
    """Errors from LLM API calls (timeouts, rate limits, failures)."""

    def __init__(self, message: str, *, code: str = "LLM_ERROR") -> None:
        super().__init__(message, code=code)


class TaskStoreError(MentorError):
    """A task store rejected a create/delete/toggle request.

    str(error) is the reason text shown to the user.
    """

    def __init__(self, message: str, *, code: str = "TASK_STORE_ERROR") -> None:
        super().__init__(message, code=code)


class TaskNotFoundError(TaskStoreError):
    """Mutation addressed a task id that no longer exists."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found", code="TASK_NOT_FOUND")
        self.task_id = task_id


class MemoryStoreError(MentorError):
    """Memory bank could not be read or written."""

    def __init__(self, message: str, *, code: str = "MEMORY_STORE_ERROR") -> None:
        super().__init__(message, code=code)


class HabitStoreError(MentorError):
    """A habit store rejected a create/delete/check request."""

    def __init__(self, message: str, *, code: str = "HABIT_STORE_ERROR") -> None:
        super().__init__(message, code=code)


class HabitNotFoundError(HabitStoreError):
    def __init__(self, habit_id: str) -> None:
        super().__init__(f"Habit {habit_id} not found", code="HABIT_NOT_FOUND")
        self.habit_id = habit_id

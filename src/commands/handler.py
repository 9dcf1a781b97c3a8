"""Execute classified task commands against the task store.

Every outcome, including auth and store failures, is an inline reply; the
pending action is returned explicitly so the caller owns conversation state.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

import structlog

from src.commands.confirmation import (
    OutcomeKind,
    PendingTaskAction,
    TaskAction,
    begin_task_action,
    resolve_confirmation,
)
from src.commands.interpreter import CommandType, ParsedCommand
from src.infra.errors import TaskStoreError
from src.session.auth import AuthContext
from src.tasks.models import Task, TaskPriority
from src.tasks.store import TaskStore

logger = structlog.get_logger()

AUTH_REQUIRED_MESSAGE = "You need to be signed in to manage your tasks."


@dataclass(frozen=True)
class CommandResult:
    reply: str
    pending: PendingTaskAction | None = None


def _describe(task: Task) -> str:
    details = []
    if task.priority is not TaskPriority.normal:
        details.append(f"{task.priority.value} priority")
    if task.deadline is not None:
        details.append(f"due {task.deadline.date().isoformat()}")
    suffix = f" ({', '.join(details)})" if details else ""
    return f"{task.title}{suffix}"


class TaskCommandHandler:
    """Runs list/add/delete/complete commands and confirmation replies."""

    def __init__(
        self,
        task_store: TaskStore,
        auth: AuthContext,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = task_store
        self._auth = auth
        self._today = today

    async def handle(self, command: ParsedCommand) -> CommandResult:
        """Handle a freshly classified command (no confirmation pending)."""
        match command.type:
            case CommandType.list:
                return CommandResult(self._list(today_only=False))
            case CommandType.list_today:
                return CommandResult(self._list(today_only=True))
            case CommandType.add:
                return CommandResult(await self._add(command.payload or ""))
            case CommandType.delete:
                return self._begin(TaskAction.delete, command.payload or "")
            case CommandType.complete:
                return self._begin(TaskAction.complete, command.payload or "")
        raise ValueError(f"Not a task command: {command.type}")

    async def handle_reply(self, pending: PendingTaskAction, reply: str) -> CommandResult:
        """Interpret a reply to a pending confirmation and apply the selection."""
        outcome = resolve_confirmation(pending, reply)
        if outcome.kind is OutcomeKind.reprompt:
            return CommandResult(outcome.message, pending=pending)
        if outcome.kind is OutcomeKind.cancelled or outcome.task is None:
            logger.info("task_action_cancelled", action=pending.type.value)
            return CommandResult(outcome.message)

        if not self._auth.is_authenticated:
            logger.info("task_action_unauthenticated", action=pending.type.value)
            return CommandResult(AUTH_REQUIRED_MESSAGE)
        return CommandResult(await self._apply(pending.type, outcome.task))

    def _list(self, *, today_only: bool) -> str:
        open_tasks = [t for t in self._store.list_tasks() if not t.completed]
        if today_only:
            day = self._today()
            open_tasks = [t for t in open_tasks if t.is_due_on(day)]
            if not open_tasks:
                return "You have no tasks due today."
            header = "Here are your tasks for today:"
        else:
            if not open_tasks:
                return "You have no open tasks."
            header = "Here are your open tasks:"
        lines = [f"{i}. {_describe(t)}" for i, t in enumerate(open_tasks, start=1)]
        return "\n".join([header, *lines])

    async def _add(self, title: str) -> str:
        if not self._auth.is_authenticated:
            return AUTH_REQUIRED_MESSAGE
        try:
            task = await self._store.create(title=title, priority=TaskPriority.normal)
        except TaskStoreError as e:
            logger.warning("task_create_failed", error=str(e))
            return f"I couldn't add that task: {e}"
        return f'Added "{task.title}" to your tasks.'

    def _begin(self, action: TaskAction, payload: str) -> CommandResult:
        pending, prompt = begin_task_action(action, payload, self._store.list_tasks())
        logger.info(
            "task_action_started",
            action=action.value,
            candidates=len(pending.candidates) if pending else 0,
        )
        return CommandResult(prompt, pending=pending)

    async def _apply(self, action: TaskAction, task: Task) -> str:
        try:
            if action is TaskAction.delete:
                await self._store.delete(task.id)
            else:
                await self._store.set_completed(task.id, True)
        except TaskStoreError as e:
            # Stale snapshots surface here; reported, not retried.
            logger.warning(
                "task_action_failed", action=action.value, task_id=task.id, error=str(e)
            )
            verb = "delete" if action is TaskAction.delete else "complete"
            return f'I couldn\'t {verb} "{task.title}": {e}'

        logger.info("task_action_applied", action=action.value, task_id=task.id)
        if action is TaskAction.delete:
            return f'Deleted "{task.title}".'
        return f'Marked "{task.title}" as complete. Nice work!'

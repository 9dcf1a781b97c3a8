"""Multi-turn confirmation for destructive or ambiguous task actions.

A delete/complete command that resolves to at least one candidate creates a
PendingTaskAction. While it is pending, every user turn is a reply to it:
"cancel"/"no" drops it, a 1-based number or "yes" selects a task, anything
else re-prompts and keeps it alive.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from src.commands.resolver import find_candidates
from src.tasks.models import Task


class TaskAction(StrEnum):
    delete = "delete"
    complete = "complete"


class OutcomeKind(StrEnum):
    selected = "selected"
    cancelled = "cancelled"
    reprompt = "reprompt"


_VERBS = {TaskAction.delete: "delete", TaskAction.complete: "mark as complete"}

_CANCEL_REPLIES = {"cancel", "no"}
_YES_REPLIES = {"yes", "y"}
_INTEGER = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class PendingTaskAction:
    type: TaskAction
    candidates: tuple[Task, ...]
    original_payload: str

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError("PendingTaskAction requires at least one candidate")


@dataclass(frozen=True)
class ConfirmationOutcome:
    kind: OutcomeKind
    message: str = ""
    task: Task | None = None

    def __post_init__(self) -> None:
        if (self.kind is OutcomeKind.selected) != (self.task is not None):
            raise ValueError("Only a selected outcome carries a task")


def _numbered(tasks: Sequence[Task]) -> str:
    return "\n".join(f"{i}. {t.title}" for i, t in enumerate(tasks, start=1))


def begin_task_action(
    action: TaskAction, payload: str, tasks: Sequence[Task]
) -> tuple[PendingTaskAction | None, str]:
    """Resolve payload against tasks and open a confirmation if anything matched.

    Returns (pending action or None, prompt to show the user).
    """
    candidates = find_candidates(payload, tasks)
    verb = _VERBS[action]
    if not candidates:
        return None, f'I couldn\'t find a task matching "{payload}".'

    pending = PendingTaskAction(
        type=action, candidates=tuple(candidates), original_payload=payload
    )
    if len(candidates) == 1:
        return pending, f'Do you want to {verb} "{candidates[0].title}"? Reply yes or no.'

    prompt = (
        f'I found {len(candidates)} tasks matching "{payload}":\n'
        f"{_numbered(candidates)}\n"
        f'Reply with the number of the task to {verb}, or "cancel".'
    )
    return pending, prompt


def resolve_confirmation(pending: PendingTaskAction, reply: str) -> ConfirmationOutcome:
    """Interpret a reply to a pending action. Never raises."""
    answer = reply.strip().lower()
    count = len(pending.candidates)

    if answer in _CANCEL_REPLIES:
        return ConfirmationOutcome(OutcomeKind.cancelled, "Okay, cancelled. No changes made.")

    if _INTEGER.match(answer):
        index = int(answer)
        if 1 <= index <= count:
            return ConfirmationOutcome(OutcomeKind.selected, task=pending.candidates[index - 1])
        return ConfirmationOutcome(
            OutcomeKind.reprompt,
            f'Please reply with a number between 1 and {count}, or "cancel".',
        )

    if answer in _YES_REPLIES:
        if count == 1:
            return ConfirmationOutcome(OutcomeKind.selected, task=pending.candidates[0])
        return ConfirmationOutcome(
            OutcomeKind.reprompt,
            f'There are {count} matching tasks. Reply with a number between 1 and {count}, '
            'or "cancel".',
        )

    return ConfirmationOutcome(
        OutcomeKind.reprompt,
        'Please reply with a task number, "yes" to confirm, or "cancel".',
    )

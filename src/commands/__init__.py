"""Task command interception: classification, candidate resolution, confirmation."""

from src.commands.confirmation import (
    ConfirmationOutcome,
    OutcomeKind,
    PendingTaskAction,
    TaskAction,
    begin_task_action,
    resolve_confirmation,
)
from src.commands.handler import CommandResult, TaskCommandHandler
from src.commands.interpreter import CommandType, ParsedCommand, parse_command
from src.commands.resolver import find_candidates

__all__ = [
    "CommandResult",
    "CommandType",
    "ConfirmationOutcome",
    "OutcomeKind",
    "ParsedCommand",
    "PendingTaskAction",
    "TaskAction",
    "TaskCommandHandler",
    "begin_task_action",
    "find_candidates",
    "parse_command",
    "resolve_confirmation",
]

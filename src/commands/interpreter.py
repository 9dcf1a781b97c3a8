"""Classify a raw chat utterance as a task command or ordinary conversation.

Pure classification: no side effects, never raises. Anything that is not a
recognised command comes back as CommandType.none and flows to the mentor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

import structlog

logger = structlog.get_logger()


class CommandType(StrEnum):
    list = "list"
    list_today = "list:today"
    add = "add"
    delete = "delete"
    complete = "complete"
    none = "none"


@dataclass(frozen=True)
class ParsedCommand:
    type: CommandType
    payload: str | None = None

    @property
    def is_command(self) -> bool:
        return self.type is not CommandType.none


NO_COMMAND = ParsedCommand(CommandType.none)

_LIST = re.compile(r"^(?:what|show|list)\b[\w\s']*?\btasks?\b[\w\s']*[?.!]*$", re.IGNORECASE)
_TODAY = re.compile(r"\btoday\b", re.IGNORECASE)

# Evaluated in order; the first pattern that matches decides the command.
_PAYLOAD_RULES: list[tuple[CommandType, re.Pattern[str]]] = [
    (
        CommandType.add,
        re.compile(r"^(?:add|create)\s+(?:a\s+)?(?:new\s+)?task[:\s]+(.+)$", re.IGNORECASE),
    ),
    (
        CommandType.add,
        re.compile(r"^(?:please\s+)?remind\s+me\s+to\s+(.+)$", re.IGNORECASE),
    ),
    (
        CommandType.delete,
        re.compile(r"^(?:delete|remove)\s+(?:tasks?\b)?[:\s]*(.+)$", re.IGNORECASE),
    ),
    (
        CommandType.complete,
        re.compile(r"^(?:complete|done|finish)\s+(?:tasks?\b)?[:\s]*(.+)$", re.IGNORECASE),
    ),
    (
        CommandType.complete,
        re.compile(
            r"^mark\s+(.+?)\s+as\s+(?:done|complete|completed|finished)[.!]*$",
            re.IGNORECASE,
        ),
    ),
]

_BARE_KEYWORDS = {"task", "tasks"}


def _clean_payload(raw: str) -> str:
    return raw.strip().lstrip(":").strip().rstrip(".!?").strip()


def parse_command(text: str) -> ParsedCommand:
    """Classify text; first matching rule wins, unmatched input is CommandType.none."""
    stripped = text.strip()
    if not stripped:
        return NO_COMMAND

    if _LIST.match(stripped):
        kind = CommandType.list_today if _TODAY.search(stripped) else CommandType.list
        logger.debug("task_command_parsed", command=kind.value)
        return ParsedCommand(kind)

    for kind, pattern in _PAYLOAD_RULES:
        m = pattern.match(stripped)
        if not m:
            continue
        payload = _clean_payload(m.group(1))
        if not payload or payload.lower() in _BARE_KEYWORDS:
            # Looks like a command but names nothing: treat as conversation.
            return NO_COMMAND
        logger.debug("task_command_parsed", command=kind.value)
        return ParsedCommand(kind, payload)

    return NO_COMMAND

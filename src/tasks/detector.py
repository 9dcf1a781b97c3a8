"""Heuristic task detection in free text.

Finds TODO-style lines, explicit "remind me to" / "I need to" statements and
imperative sentences that start with a known action verb. Results are
suggestions only; nothing here creates tasks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.tasks.models import TaskPriority

_CHECKBOX = re.compile(r"[-*]\s*\[.?\]\s*(.+)")
_TODO_MARKER = re.compile(r"(?:todo|fixme)[:\-]\s*(.+)", re.IGNORECASE)
_REMIND = re.compile(
    r"(?:remind me to|remember to|don'?t forget to)\s+([^.!?\n]+)", re.IGNORECASE
)
_NEED = re.compile(
    r"\b(?:i need to|i should|i must|i have to|i'll|i will)\s+([^.!?\n]+)", re.IGNORECASE
)
_IMPERATIVE = re.compile(
    r"(?:^|\.|\n)\s*([A-Z][a-z]+\s+[a-zA-Z0-9\s\-:,]{3,100}?)\s*(?=\.|\n|$)"
)

_ACTION_VERBS = (
    "schedule", "call", "write", "email", "follow up", "research", "create",
    "book", "prepare", "review", "finish", "complete", "deploy", "build",
    "design", "test",
)

_MAX_IMPERATIVE_LENGTH = 140


@dataclass(frozen=True)
class DetectedTask:
    title: str
    priority: TaskPriority = TaskPriority.normal


def extract_tasks_from_text(text: str) -> list[DetectedTask]:
    """Return detected tasks in discovery order, one per distinct title."""
    if not text:
        return []

    found: list[DetectedTask] = []
    seen: set[str] = set()

    def _add(title: str) -> None:
        if title and title not in seen:
            seen.add(title)
            found.append(DetectedTask(title=title))

    for m in _CHECKBOX.finditer(text):
        _add(m.group(1).strip())

    for m in _TODO_MARKER.finditer(text):
        _add(m.group(1).strip())

    for m in _REMIND.finditer(text):
        _add(re.sub(r"[\"'`]+", "", m.group(1).strip()))

    for m in _NEED.finditer(text):
        title = m.group(1).strip()
        if len(title) > 3:
            _add(title)

    for m in _IMPERATIVE.finditer(text):
        candidate = m.group(1).strip()
        lowered = candidate.lower()
        if len(candidate) < _MAX_IMPERATIVE_LENGTH and lowered.startswith(_ACTION_VERBS):
            _add(candidate)

    return found

"""Habit store contract and local implementations.

Same shape as the task stores: mutations write first and only then replace
the live collection, so a failed save leaves the store as it was.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path

import structlog
from pydantic import ValidationError

from src.habits.models import Habit, HabitBook, HabitCheck
from src.infra.errors import HabitNotFoundError, HabitStoreError

logger = structlog.get_logger()


class HabitStore(ABC):
    """Habits with per-day check marks.

    Mutations raise HabitStoreError (message = user-facing reason) on rejection.
    """

    @abstractmethod
    def list_habits(self) -> list[Habit]:
        """Habits, newest first."""
        ...

    @abstractmethod
    def list_checks(self, habit_id: str | None = None) -> list[HabitCheck]:
        """Checks, most recent day first, optionally for one habit."""
        ...

    @abstractmethod
    async def create(
        self, title: str, description: str | None = None, color: str | None = None
    ) -> Habit:
        ...

    @abstractmethod
    async def delete(self, habit_id: str) -> None:
        """Remove a habit together with all of its checks."""
        ...

    @abstractmethod
    async def toggle_check(self, habit_id: str, day: date) -> bool:
        """Check the habit off on day, or un-check it if it already was.

        Returns True when the day is checked afterwards.
        """
        ...


class InMemoryHabitStore(HabitStore):
    def __init__(self, book: HabitBook | None = None) -> None:
        self._book = book or HabitBook()

    def list_habits(self) -> list[Habit]:
        return list(self._book.habits)

    def list_checks(self, habit_id: str | None = None) -> list[HabitCheck]:
        checks = [c for c in self._book.checks if habit_id is None or c.habit_id == habit_id]
        return sorted(checks, key=lambda c: c.checked_date, reverse=True)

    async def create(
        self, title: str, description: str | None = None, color: str | None = None
    ) -> Habit:
        title = title.strip()
        if not title:
            raise HabitStoreError("Habit title must not be empty")
        habit = Habit(title=title, description=description or None, color=color or None)
        self._commit(HabitBook(habits=[habit, *self._book.habits], checks=self._book.checks))
        logger.info("habit_created", habit_id=habit.id)
        return habit

    async def delete(self, habit_id: str) -> None:
        self._require(habit_id)
        self._commit(
            HabitBook(
                habits=[h for h in self._book.habits if h.id != habit_id],
                checks=[c for c in self._book.checks if c.habit_id != habit_id],
            )
        )
        logger.info("habit_deleted", habit_id=habit_id)

    async def toggle_check(self, habit_id: str, day: date) -> bool:
        self._require(habit_id)
        rest = [
            c for c in self._book.checks
            if not (c.habit_id == habit_id and c.checked_date == day)
        ]
        checked = len(rest) == len(self._book.checks)
        if checked:
            rest.append(HabitCheck(habit_id=habit_id, checked_date=day))
        self._commit(HabitBook(habits=self._book.habits, checks=rest))
        logger.info(
            "habit_check_toggled", habit_id=habit_id, day=day.isoformat(), checked=checked
        )
        return checked

    def _require(self, habit_id: str) -> None:
        if not any(h.id == habit_id for h in self._book.habits):
            raise HabitNotFoundError(habit_id)

    def _commit(self, book: HabitBook) -> None:
        self._persist(book)
        self._book = book

    def _persist(self, book: HabitBook) -> None:
        """Hook for subclasses that keep the habits on disk."""


class FileHabitStore(InMemoryHabitStore):
    """Habits and checks persisted as one JSON document in the workspace."""

    def __init__(self, path: Path) -> None:
        self._path = path
        super().__init__(self._load())

    def _load(self) -> HabitBook:
        if not self._path.exists():
            return HabitBook()
        try:
            return HabitBook.model_validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as e:
            raise HabitStoreError(f"Cannot read habit file {self._path}: {e}") from e

    def _persist(self, book: HabitBook) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(book.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("habit_file_write_failed", path=str(self._path), error=str(e))
            raise HabitStoreError(f"Could not save habits: {e}") from e

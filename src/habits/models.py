"""Habit entities: a habit and the days it was checked off."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict, Field


class Habit(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str | None = None
    color: str | None = None  # display accent, e.g. "#22c55e"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class HabitCheck(BaseModel):
    """One habit checked off on one calendar day."""

    model_config = ConfigDict(frozen=True)

    habit_id: str
    checked_date: date
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class HabitBook(BaseModel):
    """On-disk document: every habit plus its checks."""

    habits: list[Habit] = Field(default_factory=list)
    checks: list[HabitCheck] = Field(default_factory=list)

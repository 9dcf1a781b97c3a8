"""Task entity as exposed by task stores.

The command core only reads these and issues mutations by id.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class TaskPriority(StrEnum):
    low = "low"
    normal = "normal"
    high = "high"


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str | None = None
    deadline: datetime | None = None
    priority: TaskPriority = TaskPriority.normal
    completed: bool = False
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def is_due_on(self, day: date) -> bool:
        return self.deadline is not None and self.deadline.date() == day

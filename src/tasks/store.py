"""Task store contract and local implementations.

The hosted task backend is an external collaborator; these stores give the
gateway and tests something concrete behind the same four operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from src.infra.errors import TaskNotFoundError, TaskStoreError
from src.tasks.models import Task, TaskPriority

logger = structlog.get_logger()

_TASK_LIST = TypeAdapter(list[Task])


class TaskStore(ABC):
    """Abstract task collection with create/delete/toggle mutations.

    Mutations raise TaskStoreError (message = user-facing reason) on rejection.
    """

    @abstractmethod
    def list_tasks(self) -> list[Task]:
        """Current snapshot of the collection, in store order."""
        ...

    @abstractmethod
    async def create(
        self,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.normal,
        deadline: datetime | None = None,
    ) -> Task:
        ...

    @abstractmethod
    async def delete(self, task_id: str) -> None:
        ...

    @abstractmethod
    async def set_completed(self, task_id: str, completed: bool) -> Task:
        ...


class InMemoryTaskStore(TaskStore):
    """Process-local task collection, newest first."""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self._tasks: list[Task] = list(tasks or [])

    def list_tasks(self) -> list[Task]:
        return list(self._tasks)

    async def create(
        self,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.normal,
        deadline: datetime | None = None,
    ) -> Task:
        title = title.strip()
        if not title:
            raise TaskStoreError("Task title must not be empty")
        task = Task(
            title=title,
            description=description or None,
            priority=priority,
            deadline=deadline,
        )
        self._commit([task, *self._tasks])
        logger.info("task_created", task_id=task.id, priority=task.priority.value)
        return task

    async def delete(self, task_id: str) -> None:
        index = self._index_of(task_id)
        self._commit(self._tasks[:index] + self._tasks[index + 1:])
        logger.info("task_deleted", task_id=task_id)

    async def set_completed(self, task_id: str, completed: bool) -> Task:
        index = self._index_of(task_id)
        updated = self._tasks[index].model_copy(
            update={
                "completed": completed,
                "completed_at": datetime.now(UTC) if completed else None,
            }
        )
        tasks = list(self._tasks)
        tasks[index] = updated
        self._commit(tasks)
        logger.info("task_completion_set", task_id=task_id, completed=completed)
        return updated

    def _index_of(self, task_id: str) -> int:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        raise TaskNotFoundError(task_id)

    def _commit(self, tasks: list[Task]) -> None:
        # The live collection only changes once the new one is stored.
        self._persist(tasks)
        self._tasks = tasks

    def _persist(self, tasks: list[Task]) -> None:
        """Hook for subclasses that keep the collection on disk."""


class FileTaskStore(InMemoryTaskStore):
    """Task collection persisted as a JSON array in the workspace."""

    def __init__(self, path: Path) -> None:
        self._path = path
        super().__init__(self._load())

    def _load(self) -> list[Task]:
        if not self._path.exists():
            return []
        try:
            return _TASK_LIST.validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as e:
            raise TaskStoreError(f"Cannot read task file {self._path}: {e}") from e

    def _persist(self, tasks: list[Task]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_bytes(_TASK_LIST.dump_json(tasks, indent=2))
        except OSError as e:
            logger.warning("task_file_write_failed", path=str(self._path), error=str(e))
            raise TaskStoreError(f"Could not save tasks: {e}") from e

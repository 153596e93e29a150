"""
boardroom.orchestration.task_queue - Per-Organization Task Queue
==================================================================

The backlog of Pending tasks waiting for a dispatch worker. Each
organization has its own FIFO; organizations never see each other's work.

    enqueue(task)                 dequeue_ready(org, is_ready)
         │                                   │
         v                                   v
    ┌─────────────────────────────────────────────────┐
    │ org-1: [ t1 ][ t2 ][ t3 ][ t4 ]                 │  ← first ready
    │ org-2: [ t7 ]                                   │    entry wins
    └─────────────────────────────────────────────────┘

Readiness:
    The queue does not know about workflows. The caller supplies an
    ``is_ready`` predicate (the Workflow Tracker's) that says whether a
    queued task may run now: still Pending, prerequisites Succeeded, and
    its workflow not paused. Entries that are not ready keep their place.

At-Most-Once:
    Scanning and removing happen under one per-organization asyncio.Lock,
    so any number of concurrent dequeuers never receive the same entry.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

import structlog

from boardroom.core.models import Task

logger = structlog.get_logger()

ReadyPredicate = Callable[[Task], Awaitable[bool]]


class TaskQueue(ABC):
    """Abstract per-organization task queue."""

    @abstractmethod
    async def enqueue(self, task: Task) -> None:
        """Append a task to its organization's FIFO."""

    @abstractmethod
    async def dequeue_ready(
        self,
        organization_id: str,
        is_ready: Optional[ReadyPredicate] = None,
    ) -> Optional[Task]:
        """Remove and return the first ready task, or None.

        Args:
            organization_id: Whose backlog to scan.
            is_ready: Readiness check; every entry is ready when omitted.
        """

    @abstractmethod
    async def remove(self, task_id: str) -> bool:
        """Drop a queued task. Returns True if it was queued."""

    @abstractmethod
    def pending_count(self, organization_id: Optional[str] = None) -> int:
        """Number of queued entries, for one organization or all."""

    @abstractmethod
    def organizations(self) -> list[str]:
        """Organizations that have ever enqueued, in first-seen order."""


class InMemoryTaskQueue(TaskQueue):
    """List-backed implementation of TaskQueue.

    Example:
        >>> queue = InMemoryTaskQueue()
        >>> await queue.enqueue(task)
        >>> await queue.dequeue_ready("org-1")
    """

    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._logger = logger.bind(component="task_queue")

    def _lock_for(self, organization_id: str) -> asyncio.Lock:
        lock = self._locks.get(organization_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[organization_id] = lock
        return lock

    async def enqueue(self, task: Task) -> None:
        async with self._lock_for(task.organization_id):
            self._queues.setdefault(task.organization_id, []).append(task)
        self._logger.debug(
            "task_enqueued",
            task_id=task.task_id,
            workflow_id=task.workflow_id,
            organization_id=task.organization_id,
        )

    async def dequeue_ready(
        self,
        organization_id: str,
        is_ready: Optional[ReadyPredicate] = None,
    ) -> Optional[Task]:
        async with self._lock_for(organization_id):
            queue = self._queues.get(organization_id)
            if not queue:
                return None

            for index, task in enumerate(queue):
                if is_ready is None or await is_ready(task):
                    del queue[index]
                    self._logger.debug(
                        "task_dequeued",
                        task_id=task.task_id,
                        organization_id=organization_id,
                        remaining=len(queue),
                    )
                    return task
        return None

    async def remove(self, task_id: str) -> bool:
        for organization_id, queue in list(self._queues.items()):
            async with self._lock_for(organization_id):
                for index, task in enumerate(queue):
                    if task.task_id == task_id:
                        del queue[index]
                        self._logger.debug("task_removed", task_id=task_id)
                        return True
        return False

    def pending_count(self, organization_id: Optional[str] = None) -> int:
        if organization_id is not None:
            return len(self._queues.get(organization_id, []))
        return sum(len(queue) for queue in self._queues.values())

    def organizations(self) -> list[str]:
        return list(self._queues)

"""
boardroom.orchestration.event_sink - External Event Sink
==========================================================

The caller-owned listener that learns about task and workflow transitions.

Two callback slots:

    on_task_complete(task_id, outcome: TaskOutcome)
        Exactly once per task, when it first reaches SUCCEEDED or FAILED.
        Automatic and operator retries do not produce a second call.

    on_workflow_update(snapshot: WorkflowSnapshot)
        When a task's terminal transition changed the workflow state. The
        snapshot is the latest state, not a delta.

Delivery Contract:
    The orchestrator calls the sink through ``EventDispatcher``, which
    awaits coroutine callbacks, calls plain ones directly, and logs and
    swallows anything a callback raises. A broken sink can never change
    task or workflow state.

Usage:
    >>> sink = CallbackEventSink(
    ...     on_task_complete=lambda task_id, outcome: print(task_id, outcome.state),
    ...     on_workflow_update=push_to_dashboard,   # may be async
    ... )
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from boardroom.core.models import TaskOutcome, WorkflowSnapshot

logger = structlog.get_logger()

TaskCompleteCallback = Callable[[str, TaskOutcome], Union[None, Awaitable[None]]]
WorkflowUpdateCallback = Callable[[WorkflowSnapshot], Union[None, Awaitable[None]]]


class EventSink(ABC):
    """Listener interface implemented by callers."""

    @abstractmethod
    def on_task_complete(self, task_id: str, outcome: TaskOutcome) -> Any:
        """A task run reached a terminal state. May be a coroutine."""

    @abstractmethod
    def on_workflow_update(self, snapshot: WorkflowSnapshot) -> Any:
        """A workflow changed state. May be a coroutine."""


class NullEventSink(EventSink):
    """Discards every event."""

    def on_task_complete(self, task_id: str, outcome: TaskOutcome) -> None:
        return None

    def on_workflow_update(self, snapshot: WorkflowSnapshot) -> None:
        return None


class CallbackEventSink(EventSink):
    """Adapts two plain or async callables to the EventSink interface.

    Either slot may be left empty.
    """

    def __init__(
        self,
        on_task_complete: Optional[TaskCompleteCallback] = None,
        on_workflow_update: Optional[WorkflowUpdateCallback] = None,
    ) -> None:
        self._on_task_complete = on_task_complete
        self._on_workflow_update = on_workflow_update

    def on_task_complete(self, task_id: str, outcome: TaskOutcome) -> Any:
        if self._on_task_complete is not None:
            return self._on_task_complete(task_id, outcome)
        return None

    def on_workflow_update(self, snapshot: WorkflowSnapshot) -> Any:
        if self._on_workflow_update is not None:
            return self._on_workflow_update(snapshot)
        return None


# =============================================================================
# EventDispatcher
# =============================================================================
# The orchestrator-side boundary around a sink. It delivers each task's
# completion once, whatever its retry count, and isolates sink failures.
# =============================================================================
class EventDispatcher:
    """Delivers events to an EventSink safely.

    Attributes:
        _notified: Delivered task ids, grouped by workflow id. A group is
            dropped by ``forget`` once its workflow is closed.
    """

    def __init__(self, sink: Optional[EventSink] = None) -> None:
        self._sink = sink or NullEventSink()
        self._notified: dict[str, set[str]] = {}
        self._delivery_errors = 0
        self._logger = logger.bind(component="event_dispatcher")

    @property
    def sink(self) -> EventSink:
        return self._sink

    @property
    def delivery_errors(self) -> int:
        return self._delivery_errors

    @property
    def tracked_workflows(self) -> int:
        return len(self._notified)

    async def task_completed(self, outcome: TaskOutcome) -> bool:
        """Deliver a task outcome unless the task was already delivered.

        Returns:
            True if the sink was called.
        """
        delivered = self._notified.setdefault(outcome.workflow_id, set())
        if outcome.task_id in delivered:
            self._logger.debug(
                "task_completion_already_delivered",
                task_id=outcome.task_id,
                revision=outcome.revision,
            )
            return False
        delivered.add(outcome.task_id)

        await self._invoke(
            "on_task_complete",
            self._sink.on_task_complete,
            outcome.task_id,
            outcome,
            task_id=outcome.task_id,
        )
        return True

    async def workflow_updated(self, snapshot: WorkflowSnapshot) -> None:
        await self._invoke(
            "on_workflow_update",
            self._sink.on_workflow_update,
            snapshot,
            workflow_id=snapshot.workflow_id,
        )

    def forget(self, workflow_id: str) -> None:
        """Drop delivery bookkeeping for a closed workflow."""
        self._notified.pop(workflow_id, None)

    async def _invoke(
        self,
        slot: str,
        callback: Callable[..., Any],
        *args: Any,
        **log_context: Any,
    ) -> None:
        try:
            returned = callback(*args)
            if inspect.isawaitable(returned):
                await returned
        except Exception as exc:
            self._delivery_errors += 1
            self._logger.error(
                "event_sink_callback_error",
                slot=slot,
                error=str(exc),
                error_type=type(exc).__name__,
                **log_context,
            )

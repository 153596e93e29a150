"""
boardroom.orchestration.dispatcher - Dispatch Workers and Task Execution
==========================================================================

Moves tasks from the queue onto agents and reports their outcomes.

Execution Flow (one task run):

    TaskQueue.dequeue_ready(org, tracker.is_ready)
        │
        v
    PENDING ──→ ASSIGNED ──── AgentRuntime.resolve(org, selector)
                    │                   │
                    │          NotFoundError ──→ FAILED (not retried)
                    v
                 RUNNING ──┐  (each attempt first waits out an OPEN circuit)
                    │      │  attempt n raises AgentError
                    │      │      │
                    │      │  ErrorHandler.decide()
                    │      │      ├── RETRY → wait_before_retry(n) ──┐
                    │      │      └── FAIL ──→ FAILED                │
                    │      └─────────────────────────────────────────┘
                    v
                SUCCEEDED

    Every terminal transition then:
        1. on_task_complete(task_id, outcome)   for the task (and for
           dependents failed with it)
        2. on_workflow_update(snapshot)         if the workflow state changed

Workers:
    ``start(org, count)`` launches ``count`` background loops for one
    organization. A loop dequeues one ready task at a time and launches its
    execution as a separate asyncio task, so scanning continues while agents
    work. ``max_concurrent_tasks`` bounds launched executions per worker.
    With zero workers, ``run_pending(org)`` drains the queue inline.

Ordering:
    A terminal transition and its notifications happen under one
    per-workflow lock. A task's completion therefore always reaches the
    sink before the workflow-update its transition caused. Once a workflow
    closes, its lock and delivery bookkeeping are released.

Cancellation:
    ``cancel_workflow`` fails every non-terminal task, drops queued entries
    and cancels in-flight executions (including retry backoffs). Cancelled
    executions never record another attempt or outcome.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Optional

import structlog

from boardroom.core.config import DispatchConfig
from boardroom.core.enums import TaskState
from boardroom.core.exceptions import (
    AgentError,
    ExecutionError,
    NotFoundError,
    StateError,
    WorkflowClosedError,
)
from boardroom.core.models import Task, TaskOutcome
from boardroom.orchestration.error_handler import ErrorAction, ErrorHandler
from boardroom.orchestration.event_sink import EventDispatcher
from boardroom.orchestration.task_queue import TaskQueue
from boardroom.orchestration.workflow_tracker import Transition, WorkflowTracker

if TYPE_CHECKING:
    from boardroom.agents.runtime import AgentRuntime

logger = structlog.get_logger()


class Dispatcher:
    """Runs queued tasks on agents, with retries and sink notification.

    Attributes:
        _inflight: Launched executions keyed by task_id.
        _workers: Background worker loops per organization.
        _wakeups: One event per organization, set when new work may be ready.
        _notify_locks: Per-workflow locks around transition + notification,
            dropped when the workflow closes.
    """

    def __init__(
        self,
        queue: TaskQueue,
        tracker: WorkflowTracker,
        runtime: AgentRuntime,
        error_handler: ErrorHandler,
        events: EventDispatcher,
        config: Optional[DispatchConfig] = None,
    ) -> None:
        self._queue = queue
        self._tracker = tracker
        self._runtime = runtime
        self._error_handler = error_handler
        self._events = events
        self._config = config or DispatchConfig()

        self._inflight: dict[str, asyncio.Task] = {}
        self._workers: dict[str, list[asyncio.Task]] = {}
        self._wakeups: dict[str, asyncio.Event] = {}
        self._notify_locks: dict[str, asyncio.Lock] = {}
        self._logger = logger.bind(component="dispatcher")

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    @property
    def tracked_workflows(self) -> int:
        return len(self._notify_locks)

    def worker_count(self, organization_id: Optional[str] = None) -> int:
        if organization_id is not None:
            return len(self._workers.get(organization_id, []))
        return sum(len(workers) for workers in self._workers.values())

    def _wakeup_for(self, organization_id: str) -> asyncio.Event:
        event = self._wakeups.get(organization_id)
        if event is None:
            event = asyncio.Event()
            self._wakeups[organization_id] = event
        return event

    def _notify_lock(self, workflow_id: str) -> asyncio.Lock:
        lock = self._notify_locks.get(workflow_id)
        if lock is None:
            lock = asyncio.Lock()
            self._notify_locks[workflow_id] = lock
        return lock

    def _discard_inflight(self, task_id: str, execution: asyncio.Task) -> None:
        # A rerun launched after an operator retry may already own the slot.
        if self._inflight.get(task_id) is execution:
            del self._inflight[task_id]

    def _release(self, workflow_id: str) -> None:
        """Drop per-workflow bookkeeping once the workflow is closed."""
        self._notify_locks.pop(workflow_id, None)
        self._events.forget(workflow_id)

    # =========================================================================
    # Scanning
    # =========================================================================
    async def dispatch_once(self, organization_id: str) -> Optional[asyncio.Task]:
        """Dequeue one ready task and launch its execution.

        Returns:
            The launched asyncio task, or None if nothing was ready.
        """
        task = await self._queue.dequeue_ready(organization_id, self._tracker.is_ready)
        if task is None:
            return None

        try:
            transition = await self._tracker.transition_task(task.task_id, TaskState.ASSIGNED)
        except (WorkflowClosedError, StateError) as e:
            # Lost a race with cancel or another transition; drop the entry.
            self._logger.info(
                "dispatch_skipped",
                task_id=task.task_id,
                reason=e.error_code,
            )
            return None

        assigned = transition.task
        execution = asyncio.create_task(
            self._run(assigned), name=f"boardroom-task-{assigned.task_id}"
        )
        self._inflight[assigned.task_id] = execution
        execution.add_done_callback(
            lambda done: self._discard_inflight(assigned.task_id, done)
        )

        self._logger.info(
            "task_dispatched",
            task_id=assigned.task_id,
            workflow_id=assigned.workflow_id,
            organization_id=organization_id,
            attempt_budget=self._error_handler.retry_policy.max_attempts,
        )
        return execution

    async def run_pending(self, organization_id: str) -> int:
        """Dispatch and await ready tasks until none are left.

        Tasks that become ready because a prerequisite finished are picked
        up in the next round.

        Returns:
            Number of task runs executed.
        """
        executed = 0
        while True:
            launched: list[asyncio.Task] = []
            while True:
                execution = await self.dispatch_once(organization_id)
                if execution is None:
                    break
                launched.append(execution)
            if not launched:
                return executed
            await asyncio.gather(*launched, return_exceptions=True)
            executed += len(launched)

    # =========================================================================
    # Workers
    # =========================================================================
    def start(self, organization_id: str, count: Optional[int] = None) -> int:
        """Launch background workers for an organization.

        Args:
            organization_id: Whose queue the workers drain.
            count: Worker loops to add; defaults to
                ``workers_per_organization``.

        Returns:
            Workers now running for the organization.
        """
        count = self._config.workers_per_organization if count is None else count
        workers = self._workers.setdefault(organization_id, [])
        for _ in range(count):
            index = len(workers)
            workers.append(asyncio.create_task(
                self._worker_loop(organization_id, index),
                name=f"boardroom-worker-{organization_id}-{index}",
            ))
        if count:
            self._logger.info(
                "workers_started",
                organization_id=organization_id,
                count=count,
                total=len(workers),
            )
        return len(workers)

    def notify(self, organization_id: str) -> None:
        """Wake the organization's workers: new work may be ready."""
        self._wakeup_for(organization_id).set()

    async def _worker_loop(self, organization_id: str, index: int) -> None:
        wakeup = self._wakeup_for(organization_id)
        slots = asyncio.Semaphore(max(self._config.max_concurrent_tasks, 1))
        log = self._logger.bind(organization_id=organization_id, worker=index)
        log.debug("worker_loop_started")

        while True:
            await slots.acquire()
            try:
                execution = await self.dispatch_once(organization_id)
            except asyncio.CancelledError:
                slots.release()
                raise
            except Exception as e:
                slots.release()
                log.error("worker_scan_error", error=str(e), error_type=type(e).__name__)
                await asyncio.sleep(self._config.idle_poll_interval)
                continue

            if execution is not None:
                execution.add_done_callback(lambda _: slots.release())
                continue

            slots.release()
            wakeup.clear()
            try:
                await asyncio.wait_for(wakeup.wait(), timeout=self._config.idle_poll_interval)
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        """Cancel workers and in-flight executions.

        Interrupted tasks keep their current non-terminal state.
        """
        pending = [w for workers in self._workers.values() for w in workers]
        pending.extend(self._inflight.values())
        for item in pending:
            item.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._workers.clear()
        self._inflight.clear()
        self._logger.info("dispatcher_stopped", cancelled=len(pending))

    # =========================================================================
    # Execution
    # =========================================================================
    async def _run(self, task: Task) -> None:
        """Execute one task run to a terminal state."""
        log = self._logger.bind(task_id=task.task_id, workflow_id=task.workflow_id)
        try:
            try:
                handle = await self._runtime.resolve(task.organization_id, task.agent_selector)
            except NotFoundError as e:
                log.warning("agent_unresolved", selector=str(task.agent_selector))
                await self._finish(task, TaskState.FAILED, error=e.to_dict())
                return

            await self._tracker.transition_task(
                task.task_id, TaskState.RUNNING, agent_id=handle.agent_id
            )

            while True:
                await self._error_handler.wait_for_agent(handle.agent_id, task.task_id)
                current = await self._tracker.start_attempt(task.task_id, handle.agent_id)
                try:
                    result = await self._runtime.execute(handle, current)
                except AgentError as e:
                    await self._tracker.finish_attempt(task.task_id, error=e.to_dict())
                    action = await self._error_handler.decide(e, {
                        "agent_id": handle.agent_id,
                        "task_id": task.task_id,
                        "workflow_id": task.workflow_id,
                        "attempt": current.attempt,
                    })
                    if action == ErrorAction.RETRY:
                        await self._error_handler.wait_before_retry(
                            task.task_id, current.attempt
                        )
                        continue
                    await self._finish(task, TaskState.FAILED, error=e.to_dict())
                    return

                await self._tracker.finish_attempt(task.task_id)
                await self._error_handler.record_success(handle.agent_id)
                await self._finish(task, TaskState.SUCCEEDED, result=result)
                return

        except asyncio.CancelledError:
            log.info("task_execution_cancelled")
            raise
        except WorkflowClosedError:
            log.info("task_execution_abandoned", reason="workflow_closed")
        except Exception as e:
            log.error(
                "task_execution_crashed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            error = ExecutionError(
                message=f"Unexpected dispatcher failure: {e}",
                agent_id="orchestrator",
                task_id=task.task_id,
            )
            try:
                await self._finish(task, TaskState.FAILED, error=error.to_dict())
            except (WorkflowClosedError, StateError) as closed:
                log.info("task_failure_not_recorded", reason=closed.error_code)

    async def _finish(
        self,
        task: Task,
        state: TaskState,
        *,
        result: Any = None,
        error: Optional[dict[str, Any]] = None,
    ) -> Transition:
        async with self._notify_lock(task.workflow_id):
            try:
                transition = await self._tracker.transition_task(
                    task.task_id, state, result=result, error=error
                )
            except WorkflowClosedError:
                self._release(task.workflow_id)
                raise
            await self.publish(transition)

        for dependent in transition.tasks[1:]:
            await self._queue.remove(dependent.task_id)
        self.notify(task.organization_id)

        self._logger.info(
            "task_finished",
            task_id=task.task_id,
            workflow_id=task.workflow_id,
            state=state.value,
            attempt=transition.task.attempt,
            workflow_state=transition.workflow.state.value,
        )
        return transition

    async def publish(self, transition: Transition) -> None:
        """Send the sink events a terminal-path transition produced.

        A closed workflow's bookkeeping is released after its final events.
        """
        workflow_id = transition.workflow.workflow_id
        for changed in transition.terminal_tasks:
            await self._events.task_completed(TaskOutcome.from_task(changed))
        if transition.state_changed:
            snapshot = await self._tracker.snapshot(workflow_id)
            await self._events.workflow_updated(snapshot)
        if transition.workflow.is_closed:
            self._release(workflow_id)

    # =========================================================================
    # Operator Actions
    # =========================================================================
    async def cancel_workflow(self, workflow_id: str, reason: str = "Cancelled by operator") -> Transition:
        """Cancel a workflow and every execution belonging to it.

        Raises:
            NotFoundError: Unknown workflow.
            WorkflowClosedError: The workflow is already terminal.
        """
        async with self._notify_lock(workflow_id):
            try:
                transition = await self._tracker.cancel(workflow_id, reason)
            except WorkflowClosedError:
                self._release(workflow_id)
                raise

            interrupted: list[asyncio.Task] = []
            for cancelled in transition.tasks:
                await self._queue.remove(cancelled.task_id)
                execution = self._inflight.get(cancelled.task_id)
                if execution is not None and not execution.done():
                    execution.cancel()
                    interrupted.append(execution)

            await self.publish(transition)

        if interrupted:
            await asyncio.gather(*interrupted, return_exceptions=True)

        self._logger.info(
            "workflow_cancel_completed",
            workflow_id=workflow_id,
            cancelled_tasks=len(transition.tasks),
            interrupted=len(interrupted),
        )
        return transition

    async def requeue(self, transition: Transition) -> None:
        """Enqueue tasks an operator retry reopened."""
        for task in transition.tasks:
            await self._queue.enqueue(task)
        if transition.tasks:
            self.notify(transition.workflow.organization_id)

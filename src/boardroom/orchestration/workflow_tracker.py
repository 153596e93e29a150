"""
boardroom.orchestration.workflow_tracker - Workflow State Machine
===================================================================

Groups tasks into workflows, applies task transitions and derives each
workflow's state from its member tasks.

Task Lifecycle (monotonic):

    PENDING ──→ ASSIGNED ──→ RUNNING ──→ SUCCEEDED
       │            │           │
       └────────────┴───────────┴──────→ FAILED

    Retries inside the attempt budget stay in RUNNING (``attempt`` grows).
    An operator retry reopens a FAILED task as PENDING under a new
    ``revision``; the attempt history is kept.

Workflow State (derived, never set by callers):

    ┌──────────────────────────────────────┬──────────────────┐
    │ member task states                   │ workflow state   │
    ├──────────────────────────────────────┼──────────────────┤
    │ no tasks                             │ COMPLETED        │
    │ all PENDING                          │ PENDING          │
    │ any non-terminal                     │ RUNNING          │
    │ all SUCCEEDED                        │ COMPLETED        │
    │ all FAILED                           │ FAILED           │
    │ mixed, fail-fast-all                 │ FAILED           │
    │ mixed, best-effort                   │ PARTIALLY_FAILED │
    └──────────────────────────────────────┴──────────────────┘

    COMPLETED, FAILED and PARTIALLY_FAILED are terminal: any later task
    mutation raises WorkflowClosedError.

    A workflow that has started (``started_at`` set) reports RUNNING
    rather than PENDING, even when an operator retry reopens every task.

Concurrency:
    Every mutation of a workflow (task transition, cancel, retry, pause)
    runs under that workflow's asyncio.Lock, so recomputation always sees a
    consistent snapshot regardless of completion order. The lock is
    dropped once the workflow closes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import structlog

from boardroom.core.enums import FailurePolicy, TaskState, WorkflowState
from boardroom.core.exceptions import (
    DependencyFailedError,
    NotFoundError,
    StateError,
    TaskCancelledError,
    WorkflowClosedError,
)
from boardroom.core.models import (
    Task,
    TaskAttempt,
    Workflow,
    WorkflowSnapshot,
    WorkflowSpec,
)
from boardroom.orchestration.state_store import StateStore

logger = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Derivation
# =============================================================================
def derive_workflow_state(
    task_states: Iterable[TaskState],
    failure_policy: FailurePolicy,
) -> WorkflowState:
    """Compute a workflow's state from its member task states.

    Pure and order independent: the same multiset of states always yields
    the same result.
    """
    states = list(task_states)
    if not states:
        return WorkflowState.COMPLETED

    if all(s == TaskState.PENDING for s in states):
        return WorkflowState.PENDING
    if any(not s.is_terminal for s in states):
        return WorkflowState.RUNNING

    succeeded = sum(1 for s in states if s == TaskState.SUCCEEDED)
    if succeeded == len(states):
        return WorkflowState.COMPLETED
    if succeeded == 0 or failure_policy == FailurePolicy.FAIL_FAST_ALL:
        return WorkflowState.FAILED
    return WorkflowState.PARTIALLY_FAILED


# =============================================================================
# Transition Results
# =============================================================================
@dataclass
class Transition:
    """What one tracker mutation changed.

    Attributes:
        workflow: The workflow after the mutation.
        previous_state: Workflow state before the mutation.
        tasks: Tasks that changed, primary task first. For a terminal
            failure this includes dependents failed along with it.
    """

    workflow: Workflow
    previous_state: WorkflowState
    tasks: list[Task] = field(default_factory=list)

    @property
    def task(self) -> Task:
        return self.tasks[0]

    @property
    def state_changed(self) -> bool:
        return self.workflow.state != self.previous_state

    @property
    def terminal_tasks(self) -> list[Task]:
        return [t for t in self.tasks if t.is_terminal]


class WorkflowTracker:
    """Owns Task and Workflow state.

    Example:
        >>> tracker = WorkflowTracker(InMemoryStateStore())
        >>> workflow, tasks = await tracker.create_workflow("org-1", spec)
        >>> await tracker.transition_task(tasks[0].task_id, TaskState.ASSIGNED)
    """

    def __init__(
        self,
        state_store: StateStore,
        default_failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST_ALL,
    ) -> None:
        self._store = state_store
        self._default_failure_policy = default_failure_policy
        self._locks: dict[str, asyncio.Lock] = {}
        self._logger = logger.bind(component="workflow_tracker")

    def _lock_for(self, workflow_id: str) -> asyncio.Lock:
        lock = self._locks.get(workflow_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[workflow_id] = lock
        return lock

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    # =========================================================================
    # Reads
    # =========================================================================
    async def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = await self._store.get_workflow(workflow_id)
        if workflow is None:
            raise NotFoundError(entity="workflow", key=workflow_id)
        return workflow

    async def get_task(self, task_id: str) -> Task:
        task = await self._store.get_task(task_id)
        if task is None:
            raise NotFoundError(entity="task", key=task_id)
        return task

    async def list_workflows(self, organization_id: str) -> list[Workflow]:
        return await self._store.list_workflows(organization_id)

    async def list_tasks(self, workflow_id: str) -> list[Task]:
        """Member tasks in submission order."""
        workflow = await self.get_workflow(workflow_id)
        tasks = {t.task_id: t for t in await self._store.list_tasks(workflow_id)}
        return [tasks[task_id] for task_id in workflow.task_ids if task_id in tasks]

    async def snapshot(self, workflow_id: str) -> WorkflowSnapshot:
        workflow = await self.get_workflow(workflow_id)
        return self._snapshot(workflow, await self.list_tasks(workflow_id))

    @staticmethod
    def _snapshot(workflow: Workflow, tasks: list[Task]) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            workflow_id=workflow.workflow_id,
            organization_id=workflow.organization_id,
            name=workflow.name,
            state=workflow.state,
            member_task_states={t.task_id: t.state for t in tasks},
            paused=workflow.paused,
        )

    async def is_ready(self, task: Task) -> bool:
        """True if the queued ``task`` may be dispatched now.

        Ready means: still PENDING in the same revision, its workflow open
        and not paused, and every ``depends_on`` task SUCCEEDED.
        """
        current = await self._store.get_task(task.task_id)
        if current is None or current.state != TaskState.PENDING:
            return False
        if current.revision != task.revision:
            return False

        workflow = await self._store.get_workflow(current.workflow_id)
        if workflow is None or workflow.is_closed or workflow.paused:
            return False

        for dependency_id in current.depends_on:
            dependency = await self._store.get_task(dependency_id)
            if dependency is None or dependency.state != TaskState.SUCCEEDED:
                return False
        return True

    # =========================================================================
    # Creation
    # =========================================================================
    async def create_workflow(
        self, organization_id: str, spec: WorkflowSpec
    ) -> tuple[Workflow, list[Task]]:
        """Create a workflow and its tasks from a submission.

        A workflow without tasks is COMPLETED immediately.

        Raises:
            StateError: A task_id is already in use.
        """
        for task_spec in spec.tasks:
            if await self._store.get_task(task_spec.task_id) is not None:
                raise StateError(
                    message=f"Task id '{task_spec.task_id}' is already in use",
                    details={"task_id": task_spec.task_id},
                )

        policy = spec.failure_policy or self._default_failure_policy
        workflow = Workflow(
            organization_id=organization_id,
            name=spec.name,
            task_ids=[t.task_id for t in spec.tasks],
            failure_policy=policy,
            metadata=dict(spec.metadata),
        )
        tasks = [
            Task(
                task_id=t.task_id,
                workflow_id=workflow.workflow_id,
                organization_id=organization_id,
                name=t.name,
                agent_selector=t.agent_selector,
                payload=dict(t.payload),
                depends_on=list(t.depends_on),
            )
            for t in spec.tasks
        ]

        state = derive_workflow_state((t.state for t in tasks), policy)
        if state.is_terminal:
            workflow = workflow.model_copy(update={"state": state, "completed_at": _now()})

        for task in tasks:
            await self._store.save_task(task)
        await self._store.save_workflow(workflow)

        self._logger.info(
            "workflow_created",
            workflow_id=workflow.workflow_id,
            organization_id=organization_id,
            task_count=len(tasks),
            failure_policy=policy.value,
            state=workflow.state.value,
        )
        return workflow, tasks

    # =========================================================================
    # Task Transitions
    # =========================================================================
    async def transition_task(
        self,
        task_id: str,
        new_state: TaskState,
        *,
        result: Any = None,
        error: Optional[dict[str, Any]] = None,
        agent_id: Optional[str] = None,
    ) -> Transition:
        """Move a task forward and recompute its workflow.

        Args:
            task_id: Task to move.
            new_state: Target state; must be later in the lifecycle.
            result: Output, for SUCCEEDED.
            error: Serialized error, for FAILED.
            agent_id: Handle assigned, for ASSIGNED / RUNNING.

        Raises:
            NotFoundError: Unknown task.
            WorkflowClosedError: The workflow is already terminal.
            StateError: The move is not forward in the lifecycle.
        """
        task = await self.get_task(task_id)
        async with self._lock_for(task.workflow_id):
            workflow, task = await self._load_open(task_id)

            if new_state.rank <= task.state.rank:
                raise StateError(
                    message=(
                        f"Illegal transition for task '{task_id}': "
                        f"{task.state.value} -> {new_state.value}"
                    ),
                    details={"task_id": task_id, "from": task.state.value, "to": new_state.value},
                )

            updated = self._apply(task, new_state, result=result, error=error, agent_id=agent_id)
            changed = [updated]
            members = await self._members(workflow)
            members[task_id] = updated

            if new_state == TaskState.FAILED:
                for dependent in self._fail_dependents(task_id, members):
                    members[dependent.task_id] = dependent
                    changed.append(dependent)

            for item in changed:
                await self._store.save_task(item)
            return await self._recompute(workflow, members, changed)

    async def start_attempt(self, task_id: str, agent_id: str) -> Task:
        """Count a new execution attempt of a RUNNING task."""
        task = await self.get_task(task_id)
        async with self._lock_for(task.workflow_id):
            _, task = await self._load_open(task_id)
            if task.state != TaskState.RUNNING:
                raise StateError(
                    message=f"Task '{task_id}' is {task.state.value}, not running",
                    details={"task_id": task_id},
                )
            attempt = task.attempt + 1
            task = task.model_copy(update={
                "attempt": attempt,
                "attempts": [
                    *task.attempts,
                    TaskAttempt(attempt=attempt, revision=task.revision, agent_id=agent_id),
                ],
                "updated_at": _now(),
            })
            await self._store.save_task(task)
            return task

    async def finish_attempt(
        self, task_id: str, *, error: Optional[dict[str, Any]] = None
    ) -> Task:
        """Close the latest attempt record as succeeded (no error) or failed."""
        task = await self.get_task(task_id)
        async with self._lock_for(task.workflow_id):
            task = await self.get_task(task_id)
            if not task.attempts:
                return task
            last = task.attempts[-1].model_copy(update={
                "finished_at": _now(),
                "succeeded": error is None,
                "error": error,
            })
            task = task.model_copy(update={"attempts": [*task.attempts[:-1], last]})
            await self._store.save_task(task)
            return task

    # =========================================================================
    # Operator Actions
    # =========================================================================
    async def cancel(self, workflow_id: str, reason: str = "Cancelled by operator") -> Transition:
        """Fail every non-terminal task with a cancellation error.

        Raises:
            WorkflowClosedError: The workflow is already terminal.
        """
        async with self._lock_for(workflow_id):
            workflow = await self.get_workflow(workflow_id)
            self._ensure_open(workflow)

            members = await self._members(workflow)
            changed = []
            for task_id, task in members.items():
                if task.is_terminal:
                    continue
                error = TaskCancelledError(message=reason, task_id=task_id).to_dict()
                cancelled = self._apply(task, TaskState.FAILED, error=error)
                members[task_id] = cancelled
                changed.append(cancelled)
                await self._store.save_task(cancelled)

            self._logger.info(
                "workflow_cancelled",
                workflow_id=workflow_id,
                cancelled_tasks=len(changed),
            )
            return await self._recompute(workflow, members, changed)

    async def retry_task(self, task_id: str) -> Transition:
        """Reopen a FAILED task as PENDING under a new revision.

        Dependents that were failed only because this task failed are
        reopened as well.

        Raises:
            WorkflowClosedError: The workflow is already terminal.
            StateError: The task is not FAILED.
        """
        task = await self.get_task(task_id)
        async with self._lock_for(task.workflow_id):
            workflow, task = await self._load_open(task_id)
            if task.state != TaskState.FAILED:
                raise StateError(
                    message=f"Only failed tasks can be retried; '{task_id}' is {task.state.value}",
                    details={"task_id": task_id},
                )

            members = await self._members(workflow)
            reopened = [self._reopen(task)]
            members[task_id] = reopened[0]

            # Reopen dependents failed because of a reopened task.
            pending_ids = {task_id}
            progress = True
            while progress:
                progress = False
                for member in members.values():
                    error = member.error or {}
                    if (
                        member.state == TaskState.FAILED
                        and error.get("error_code") == "DEPENDENCY_FAILED"
                        and error.get("details", {}).get("dependency_id") in pending_ids
                    ):
                        revived = self._reopen(member)
                        members[member.task_id] = revived
                        reopened.append(revived)
                        pending_ids.add(member.task_id)
                        progress = True

            for item in reopened:
                await self._store.save_task(item)

            self._logger.info(
                "task_retry_requested",
                task_id=task_id,
                revision=reopened[0].revision,
                reopened=len(reopened),
            )
            return await self._recompute(workflow, members, reopened)

    async def set_paused(self, workflow_id: str, paused: bool) -> Workflow:
        """Pause or resume dispatch of a workflow's Pending tasks.

        Running tasks are not interrupted.

        Raises:
            WorkflowClosedError: The workflow is already terminal.
        """
        async with self._lock_for(workflow_id):
            workflow = await self.get_workflow(workflow_id)
            self._ensure_open(workflow)
            workflow = workflow.model_copy(update={"paused": paused})
            await self._store.save_workflow(workflow)
        self._logger.info(
            "workflow_paused" if paused else "workflow_resumed",
            workflow_id=workflow_id,
        )
        return workflow

    # =========================================================================
    # Internal Helpers
    # =========================================================================
    async def _load_open(self, task_id: str) -> tuple[Workflow, Task]:
        task = await self.get_task(task_id)
        workflow = await self.get_workflow(task.workflow_id)
        self._ensure_open(workflow)
        return workflow, task

    def _ensure_open(self, workflow: Workflow) -> None:
        if workflow.is_closed:
            self._locks.pop(workflow.workflow_id, None)
            raise WorkflowClosedError(
                message=(
                    f"Workflow '{workflow.workflow_id}' is closed "
                    f"({workflow.state.value})"
                ),
                workflow_id=workflow.workflow_id,
            )

    async def _members(self, workflow: Workflow) -> dict[str, Task]:
        tasks = {t.task_id: t for t in await self._store.list_tasks(workflow.workflow_id)}
        return {task_id: tasks[task_id] for task_id in workflow.task_ids if task_id in tasks}

    @staticmethod
    def _apply(
        task: Task,
        new_state: TaskState,
        *,
        result: Any = None,
        error: Optional[dict[str, Any]] = None,
        agent_id: Optional[str] = None,
    ) -> Task:
        now = _now()
        update: dict[str, Any] = {"state": new_state, "updated_at": now}
        if agent_id is not None:
            update["assigned_agent"] = agent_id
        if new_state == TaskState.RUNNING and task.started_at is None:
            update["started_at"] = now
        if new_state.is_terminal:
            update["finished_at"] = now
            update["result"] = result if new_state == TaskState.SUCCEEDED else None
            update["error"] = error if new_state == TaskState.FAILED else None
        return task.model_copy(update=update)

    @staticmethod
    def _reopen(task: Task) -> Task:
        return task.model_copy(update={
            "state": TaskState.PENDING,
            "revision": task.revision + 1,
            "attempt": 0,
            "result": None,
            "error": None,
            "assigned_agent": None,
            "started_at": None,
            "finished_at": None,
            "updated_at": _now(),
        })

    def _fail_dependents(self, failed_id: str, members: dict[str, Task]) -> list[Task]:
        """Fail PENDING tasks that (transitively) depend on ``failed_id``."""
        failed: list[Task] = []
        frontier = [failed_id]
        while frontier:
            current = frontier.pop(0)
            for member in members.values():
                if member.state == TaskState.PENDING and current in member.depends_on:
                    error = DependencyFailedError(member.task_id, current).to_dict()
                    dependent = self._apply(member, TaskState.FAILED, error=error)
                    members[member.task_id] = dependent
                    failed.append(dependent)
                    frontier.append(member.task_id)
        return failed

    async def _recompute(
        self,
        workflow: Workflow,
        members: dict[str, Task],
        changed: list[Task],
    ) -> Transition:
        previous = workflow.state
        state = derive_workflow_state(
            (t.state for t in members.values()), workflow.failure_policy
        )

        if state == WorkflowState.PENDING and workflow.started_at is not None:
            state = WorkflowState.RUNNING

        update: dict[str, Any] = {"state": state}
        if state != WorkflowState.PENDING and workflow.started_at is None:
            update["started_at"] = _now()
        if state.is_terminal:
            update["completed_at"] = _now()
        workflow = workflow.model_copy(update=update)
        await self._store.save_workflow(workflow)
        if state.is_terminal:
            # Callers still holding the lock keep their reference.
            self._locks.pop(workflow.workflow_id, None)

        if state != previous:
            self._logger.info(
                "workflow_state_changed",
                workflow_id=workflow.workflow_id,
                previous=previous.value,
                state=state.value,
            )
        return Transition(workflow=workflow, previous_state=previous, tasks=changed)

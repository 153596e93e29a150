"""
boardroom.facade - Orchestrator Top-Level Facade
==================================================

The single entry point callers use: configure executives, submit workflows,
observe and steer them.

Architecture Context:

    ┌────────────────────────────────────────────────────┐
    │                Orchestrator (Facade)                │
    │                                                     │
    │  submit / cancel / retry_task / pause / resume      │
    │  get_workflow / list_workflows / get_metrics        │
    │                         │                           │
    │  ┌──────────────────────▼────────────────────────┐  │
    │  │               Dispatcher                       │  │
    │  │  TaskQueue ─→ AgentRuntime ─→ ErrorHandler     │  │
    │  │       │              │              │          │  │
    │  │       └──── WorkflowTracker ────────┘          │  │
    │  │                      │                         │  │
    │  │               EventDispatcher ─→ EventSink     │  │
    │  └──────────────────────┬────────────────────────┘  │
    │                         │                           │
    │  ┌──────────────────────▼────────────────────────┐  │
    │  │  StateStore  (agent configs, workflows, tasks) │  │
    │  └───────────────────────────────────────────────┘  │
    └────────────────────────────────────────────────────┘

Usage:
    >>> async with Orchestrator(event_sink=my_sink) as boardroom:
    ...     await boardroom.upsert_agent_config(AgentConfig(
    ...         organization_id="org-1",
    ...         template_id="finance_cfo",
    ...         name="Finance CFO",
    ...     ))
    ...     workflow_id = await boardroom.submit("org-1", WorkflowSpec(tasks=[...]))
    ...     snapshot = await boardroom.wait_for_workflow(workflow_id)

Dispatch Modes:
    With ``dispatch.workers_per_organization`` > 0 (the default), background
    workers start for an organization on its first submission. With 0, work
    only runs when ``run_pending(organization_id)`` is awaited.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

import structlog

from boardroom.agents.registry import TemplateRegistry
from boardroom.agents.runtime import AgentRuntime
from boardroom.core.config import BoardroomConfig
from boardroom.core.enums import TaskState
from boardroom.core.models import AgentConfig, Task, WorkflowSnapshot, WorkflowSpec
from boardroom.core.state import AgentPerformance, OrchestrationMetrics
from boardroom.integrations.llm.base import BaseLLMProvider
from boardroom.integrations.llm.factory import create_llm_provider
from boardroom.orchestration.config_store import AgentConfigStore
from boardroom.orchestration.dispatcher import Dispatcher
from boardroom.orchestration.error_handler import ErrorHandler, RetryPolicy
from boardroom.orchestration.event_sink import EventDispatcher, EventSink
from boardroom.orchestration.state_store import InMemoryStateStore, StateStore
from boardroom.orchestration.task_queue import InMemoryTaskQueue, TaskQueue
from boardroom.orchestration.workflow_tracker import WorkflowTracker

logger = structlog.get_logger()


def configure_logging(log_level: str) -> None:
    """Filter structlog output below ``log_level`` ("DEBUG", "INFO", ...)."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


class Orchestrator:
    """Top-level facade of the Boardroom orchestrator.

    Lifecycle:
        1. ``Orchestrator(config)``: build every component
        2. ``await initialize()``: connect the state store
        3. ``await upsert_agent_config(...)`` / ``await submit(...)``
        4. ``await shutdown()``: stop workers, disconnect

    Attributes:
        _config: Orchestrator configuration.
        _state_store: Persistence for configs, workflows and tasks.
        _config_store: Agent configuration access.
        _runtime: Agent instantiation and execution.
        _tracker: Task and workflow state machine.
        _queue: Pending task backlog.
        _error_handler: Retry decisions and dead letters.
        _events: Safe delivery to the caller's event sink.
        _dispatcher: Dispatch workers and task execution.
    """

    def __init__(
        self,
        config: Optional[BoardroomConfig] = None,
        *,
        state_store: Optional[StateStore] = None,
        task_queue: Optional[TaskQueue] = None,
        llm_provider: Optional[BaseLLMProvider] = None,
        event_sink: Optional[EventSink] = None,
        registry: Optional[TemplateRegistry] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        self._config = config or BoardroomConfig()
        configure_logging(self._config.log_level)

        # --- Persistence ---
        self._state_store = state_store or InMemoryStateStore()
        self._config_store = AgentConfigStore(self._state_store)

        # --- Agents ---
        self._llm = llm_provider or create_llm_provider(self._config.capability)
        self._runtime = AgentRuntime(self._config_store, self._llm, registry)

        # --- Orchestration ---
        self._tracker = WorkflowTracker(
            self._state_store, self._config.default_failure_policy
        )
        self._queue = task_queue or InMemoryTaskQueue()
        self._error_handler = error_handler or ErrorHandler(
            retry_policy=RetryPolicy.from_config(self._config.retry),
            breaker_config=self._config.circuit_breaker,
        )
        self._events = EventDispatcher(event_sink)
        self._dispatcher = Dispatcher(
            queue=self._queue,
            tracker=self._tracker,
            runtime=self._runtime,
            error_handler=self._error_handler,
            events=self._events,
            config=self._config.dispatch,
        )

        self._initialized = False
        self._logger = logger.bind(component="orchestrator")

    # =========================================================================
    # Properties
    # =========================================================================
    @property
    def config(self) -> BoardroomConfig:
        return self._config

    @property
    def state_store(self) -> StateStore:
        return self._state_store

    @property
    def config_store(self) -> AgentConfigStore:
        return self._config_store

    @property
    def runtime(self) -> AgentRuntime:
        return self._runtime

    @property
    def tracker(self) -> WorkflowTracker:
        return self._tracker

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    @property
    def error_handler(self) -> ErrorHandler:
        return self._error_handler

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # Lifecycle Management
    # =========================================================================
    async def initialize(self) -> None:
        """Connect the state store. Idempotent."""
        if self._initialized:
            self._logger.debug("orchestrator_already_initialized")
            return

        await self._state_store.connect()
        self._initialized = True
        self._logger.info(
            "orchestrator_initialized",
            environment=self._config.environment,
            provider=self._config.capability.provider,
            workers_per_organization=self._config.dispatch.workers_per_organization,
        )

    async def shutdown(self) -> None:
        """Stop dispatch workers and disconnect the state store. Idempotent.

        Tasks interrupted by shutdown keep their non-terminal state.
        """
        if not self._initialized:
            self._logger.debug("orchestrator_not_initialized_skipping_shutdown")
            return

        await self._dispatcher.stop()
        await self._state_store.disconnect()
        self._initialized = False
        self._logger.info("orchestrator_shutdown_complete")

    async def __aenter__(self) -> Orchestrator:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # =========================================================================
    # Agent Configuration
    # =========================================================================
    async def upsert_agent_config(self, config: AgentConfig) -> AgentConfig:
        """Create or replace an executive's configuration.

        Live handles are not refreshed; see ``AgentRuntime.evict``.
        """
        self._ensure_initialized()
        return await self._config_store.upsert(config)

    async def get_agent_config(self, organization_id: str, template_id: str) -> AgentConfig:
        self._ensure_initialized()
        return await self._config_store.get(organization_id, template_id)

    async def list_agent_configs(self, organization_id: str) -> list[AgentConfig]:
        self._ensure_initialized()
        return await self._config_store.list(organization_id)

    async def delete_agent_config(self, organization_id: str, template_id: str) -> bool:
        """Remove a configuration and drop its live handle."""
        self._ensure_initialized()
        removed = await self._config_store.delete(organization_id, template_id)
        self._runtime.evict(organization_id, template_id)
        return removed

    def list_agents(self, organization_id: str) -> list[AgentPerformance]:
        """Performance of every instantiated agent of an organization."""
        self._ensure_initialized()
        return [handle.performance for handle in self._runtime.handles(organization_id)]

    # =========================================================================
    # Workflow Submission and Control
    # =========================================================================
    async def submit(
        self,
        organization_id: str,
        spec: Union[WorkflowSpec, dict[str, Any]],
    ) -> str:
        """Create a workflow, enqueue its tasks and return without waiting.

        Args:
            organization_id: Trusted organization of the caller.
            spec: The workflow, as a WorkflowSpec or its dict form.

        Returns:
            The new workflow_id.

        Raises:
            StateError: A task_id is already in use.
        """
        self._ensure_initialized()
        if isinstance(spec, dict):
            spec = WorkflowSpec.model_validate(spec)

        workflow, tasks = await self._tracker.create_workflow(organization_id, spec)

        if workflow.is_closed:
            await self._events.workflow_updated(
                await self._tracker.snapshot(workflow.workflow_id)
            )
            return workflow.workflow_id

        for task in tasks:
            await self._queue.enqueue(task)

        if (
            self._config.dispatch.workers_per_organization > 0
            and self._dispatcher.worker_count(organization_id) == 0
        ):
            self._dispatcher.start(organization_id)
        self._dispatcher.notify(organization_id)

        self._logger.info(
            "workflow_submitted",
            workflow_id=workflow.workflow_id,
            organization_id=organization_id,
            task_count=len(tasks),
        )
        return workflow.workflow_id

    async def cancel(self, workflow_id: str) -> WorkflowSnapshot:
        """Fail every non-terminal task of a workflow as cancelled.

        Raises:
            NotFoundError: Unknown workflow.
            WorkflowClosedError: The workflow already finished.
        """
        self._ensure_initialized()
        await self._dispatcher.cancel_workflow(workflow_id)
        return await self._tracker.snapshot(workflow_id)

    async def retry_task(self, task_id: str) -> Task:
        """Run a Failed task again in its still-open workflow.

        Dependents that failed because of it are reopened too.

        Raises:
            WorkflowClosedError: The workflow already finished.
            StateError: The task is not Failed.
        """
        self._ensure_initialized()
        transition = await self._tracker.retry_task(task_id)
        await self._dispatcher.requeue(transition)
        return transition.task

    async def pause(self, workflow_id: str) -> WorkflowSnapshot:
        """Stop dispatching the workflow's Pending tasks. Running ones finish."""
        self._ensure_initialized()
        await self._tracker.set_paused(workflow_id, True)
        return await self._tracker.snapshot(workflow_id)

    async def resume(self, workflow_id: str) -> WorkflowSnapshot:
        self._ensure_initialized()
        workflow = await self._tracker.set_paused(workflow_id, False)
        self._dispatcher.notify(workflow.organization_id)
        return await self._tracker.snapshot(workflow_id)

    async def run_pending(self, organization_id: str) -> int:
        """Execute ready work inline until nothing is ready. Returns task runs."""
        self._ensure_initialized()
        return await self._dispatcher.run_pending(organization_id)

    # =========================================================================
    # Queries
    # =========================================================================
    async def get_workflow(self, workflow_id: str) -> WorkflowSnapshot:
        self._ensure_initialized()
        return await self._tracker.snapshot(workflow_id)

    async def get_workflow_tasks(self, workflow_id: str) -> list[Task]:
        self._ensure_initialized()
        return await self._tracker.list_tasks(workflow_id)

    async def get_task(self, task_id: str) -> Task:
        self._ensure_initialized()
        return await self._tracker.get_task(task_id)

    async def list_workflows(self, organization_id: str) -> list[WorkflowSnapshot]:
        self._ensure_initialized()
        return [
            await self._tracker.snapshot(workflow.workflow_id)
            for workflow in await self._tracker.list_workflows(organization_id)
        ]

    async def wait_for_workflow(
        self,
        workflow_id: str,
        timeout: Optional[float] = None,
        poll_interval: float = 0.01,
    ) -> WorkflowSnapshot:
        """Block until the workflow reaches a terminal state.

        Raises:
            asyncio.TimeoutError: ``timeout`` elapsed first.
        """
        self._ensure_initialized()

        async def _poll() -> WorkflowSnapshot:
            while True:
                snapshot = await self._tracker.snapshot(workflow_id)
                if snapshot.state.is_terminal:
                    return snapshot
                await asyncio.sleep(poll_interval)

        return await asyncio.wait_for(_poll(), timeout=timeout)

    async def get_metrics(self, organization_id: str) -> OrchestrationMetrics:
        """Summarize an organization's workflows, tasks and agents."""
        self._ensure_initialized()
        workflows = await self._tracker.list_workflows(organization_id)
        finished = [w for w in workflows if w.is_closed]

        succeeded = terminal = total = 0
        for workflow in workflows:
            for task in await self._tracker.list_tasks(workflow.workflow_id):
                total += 1
                if task.is_terminal:
                    terminal += 1
                    succeeded += task.state == TaskState.SUCCEEDED

        durations = [w.duration_seconds for w in finished if w.duration_seconds is not None]
        agents = self.list_agents(organization_id)

        return OrchestrationMetrics(
            organization_id=organization_id,
            active_workflows=len(workflows) - len(finished),
            completed_workflows=len(finished),
            total_tasks=total,
            success_rate=succeeded / terminal if terminal else 1.0,
            avg_workflow_duration=sum(durations) / len(durations) if durations else 0.0,
            agent_utilization=(
                sum(1 for a in agents if a.is_busy) / len(agents) if agents else 0.0
            ),
        )

    def get_dead_letters(self) -> list[dict[str, Any]]:
        self._ensure_initialized()
        return self._error_handler.get_dead_letters()

    # =========================================================================
    # Internal Helpers
    # =========================================================================
    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "Orchestrator has not been initialized. "
                "Call await orchestrator.initialize() or use "
                "'async with Orchestrator() as orchestrator:'"
            )

    def __repr__(self) -> str:
        return (
            f"Orchestrator(initialized={self._initialized}, "
            f"agents={len(self._runtime.handles())}, "
            f"workers={self._dispatcher.worker_count()})"
        )

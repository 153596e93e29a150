"""
End-to-End Integration Tests for Boardroom
============================================

These tests exercise the full pipeline from the Orchestrator facade down
through the tracker, queue, dispatcher, agent runtime and event sink.
Unlike unit tests, nothing is wired by hand: every component is the one the
facade builds.

Test Scenarios:
    1. Three-task workflow, every agent succeeds
    2. Fail-fast workflow where one task exhausts its retry budget
    3. Best-effort workflow with one failing task
    4. Cancellation while a task is running and another is still Pending
    5. Dependency chain across three executives
    6. Multiple organizations running side by side
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from boardroom.agents.base import BaseAgent
from boardroom.agents.registry import TemplateRegistry
from boardroom.core.config import BoardroomConfig, DispatchConfig, RetryConfig
from boardroom.core.enums import Capability, FailurePolicy, TaskState, WorkflowState
from boardroom.core.exceptions import ExecutionError
from boardroom.core.models import AgentSelector, Task, TaskSpec, WorkflowSnapshot, WorkflowSpec
from boardroom.facade import Orchestrator
from tests.conftest import ORG, RecordingEventSink, make_agent_config


# =============================================================================
# Helpers
# =============================================================================
class FailingRiskOfficer(BaseAgent):
    """Executive whose every attempt fails."""

    template_id = "risk_officer"
    role = "Chief Risk Officer"
    capabilities = frozenset({Capability.ANALYSIS})

    async def _validate_task(self, task: Task) -> bool:
        return True

    async def _execute(self, task: Task) -> dict[str, Any]:
        raise ExecutionError(
            message="Risk model did not converge",
            agent_id=self.agent_id,
            task_id=task.task_id,
        )


def _task(task_id: str, template: str, depends_on: list[str] | None = None) -> TaskSpec:
    return TaskSpec(
        task_id=task_id,
        agent_selector=AgentSelector.template(template),
        payload={"objective": f"Board item {task_id}"},
        depends_on=depends_on or [],
    )


async def _wait_for_state(boardroom: Orchestrator, task_id: str, state: TaskState) -> None:
    async def _poll() -> None:
        while (await boardroom.get_task(task_id)).state != state:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=2.0)


async def _finished(
    boardroom: Orchestrator, sink: RecordingEventSink, workflow_id: str
) -> WorkflowSnapshot:
    """Wait for the terminal state and for the sink to hear about it."""
    snapshot = await boardroom.wait_for_workflow(workflow_id, timeout=5.0)

    async def _delivered() -> None:
        while not any(s.workflow_id == workflow_id for s in sink.workflow_updates):
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_delivered(), timeout=2.0)
    return snapshot


# =============================================================================
# Fixtures
# =============================================================================
@pytest.fixture
def registry():
    registry = TemplateRegistry.default()
    registry.register(FailingRiskOfficer)
    return registry


@pytest.fixture
async def boardroom(mock_llm_provider, recording_sink, registry):
    """Background-dispatch Orchestrator with CEO, CFO, CMO and a failing CRO."""
    config = BoardroomConfig(
        retry=RetryConfig(max_attempts=2, initial_delay=0.001, max_delay=0.01),
        dispatch=DispatchConfig(workers_per_organization=2, idle_poll_interval=0.01),
    )
    orchestrator = Orchestrator(
        config,
        llm_provider=mock_llm_provider,
        event_sink=recording_sink,
        registry=registry,
    )
    await orchestrator.initialize()
    for template_id, name in (
        ("generic_strategic", "Strategic CEO"),
        ("finance_cfo", "Finance CFO"),
        ("marketing_cmo", "Marketing CMO"),
        ("risk_officer", "Risk Officer"),
    ):
        await orchestrator.upsert_agent_config(make_agent_config(template_id, name=name))
    yield orchestrator
    await orchestrator.shutdown()


# =============================================================================
# Scenarios
# =============================================================================
class TestEndToEnd:
    async def test_three_tasks_succeed(self, boardroom, recording_sink) -> None:
        workflow_id = await boardroom.submit(ORG, WorkflowSpec(
            name="Quarterly review",
            tasks=[
                _task("strategy", "generic_strategic"),
                _task("budget", "finance_cfo"),
                _task("campaign", "marketing_cmo"),
            ],
        ))

        snapshot = await _finished(boardroom, recording_sink, workflow_id)

        assert snapshot.state == WorkflowState.COMPLETED
        assert sorted(recording_sink.completed_ids()) == ["budget", "campaign", "strategy"]
        assert all(o.succeeded for _, o in recording_sink.task_completions)
        assert recording_sink.workflow_states() == [WorkflowState.COMPLETED]
        assert recording_sink.events[-1] == ("workflow", "completed")

    async def test_fail_fast_with_exhausted_retries(self, boardroom, recording_sink) -> None:
        workflow_id = await boardroom.submit(ORG, WorkflowSpec(
            tasks=[_task("risk", "risk_officer"), _task("budget", "finance_cfo")],
            failure_policy=FailurePolicy.FAIL_FAST_ALL,
        ))

        snapshot = await _finished(boardroom, recording_sink, workflow_id)

        risk = await boardroom.get_task("risk")
        assert risk.state == TaskState.FAILED
        assert risk.attempt == 2
        assert [a.succeeded for a in risk.attempts] == [False, False]
        assert risk.error["error_code"] == "EXECUTION_ERROR"
        assert (await boardroom.get_task("budget")).state == TaskState.SUCCEEDED

        assert snapshot.state == WorkflowState.FAILED
        assert recording_sink.outcome("risk").state == TaskState.FAILED
        assert recording_sink.outcome("risk").attempt == 2
        assert recording_sink.workflow_states() == [WorkflowState.FAILED]
        assert len(boardroom.get_dead_letters()) == 1

    async def test_best_effort_partial_failure(self, boardroom, recording_sink) -> None:
        workflow_id = await boardroom.submit(ORG, WorkflowSpec(
            tasks=[_task("risk", "risk_officer"), _task("budget", "finance_cfo")],
            failure_policy=FailurePolicy.BEST_EFFORT,
        ))

        snapshot = await _finished(boardroom, recording_sink, workflow_id)

        assert snapshot.state == WorkflowState.PARTIALLY_FAILED
        assert recording_sink.workflow_states() == [WorkflowState.PARTIALLY_FAILED]

    async def test_cancel_with_pending_task(
        self, boardroom, mock_llm_provider, recording_sink
    ) -> None:
        mock_llm_provider.set_latency(10.0)
        workflow_id = await boardroom.submit(ORG, WorkflowSpec(
            tasks=[
                _task("budget", "finance_cfo"),
                _task("announcement", "marketing_cmo", depends_on=["budget"]),
            ],
        ))
        await _wait_for_state(boardroom, "budget", TaskState.RUNNING)

        snapshot = await boardroom.cancel(workflow_id)

        assert snapshot.state == WorkflowState.FAILED
        announcement = await boardroom.get_task("announcement")
        assert announcement.state == TaskState.FAILED
        assert announcement.error["error_code"] == "CANCELLED"
        assert announcement.attempt == 0
        assert sorted(recording_sink.completed_ids()) == ["announcement", "budget"]
        assert recording_sink.workflow_states() == [WorkflowState.FAILED]
        assert boardroom.dispatcher.inflight_count == 0

    async def test_dependency_chain(self, boardroom, recording_sink) -> None:
        workflow_id = await boardroom.submit(ORG, WorkflowSpec(
            tasks=[
                _task("launch", "marketing_cmo", depends_on=["budget"]),
                _task("budget", "finance_cfo", depends_on=["strategy"]),
                _task("strategy", "generic_strategic"),
            ],
        ))

        snapshot = await _finished(boardroom, recording_sink, workflow_id)

        assert snapshot.state == WorkflowState.COMPLETED
        assert recording_sink.completed_ids() == ["strategy", "budget", "launch"]

    async def test_organizations_are_independent(
        self, boardroom, recording_sink
    ) -> None:
        await boardroom.upsert_agent_config(
            make_agent_config("finance_cfo", organization_id="org-2", name="Lean CFO")
        )
        first = await boardroom.submit(ORG, WorkflowSpec(tasks=[_task("a", "finance_cfo")]))
        second = await boardroom.submit("org-2", WorkflowSpec(tasks=[_task("b", "finance_cfo")]))

        await boardroom.wait_for_workflow(first, timeout=5.0)
        await boardroom.wait_for_workflow(second, timeout=5.0)

        assert (await boardroom.get_task("a")).assigned_agent == "org-1/finance_cfo"
        assert (await boardroom.get_task("b")).assigned_agent == "org-2/finance_cfo"
        assert boardroom.dispatcher.worker_count("org-2") == 2

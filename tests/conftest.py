"""
Shared Test Fixtures for Boardroom
=====================================

Reusable pytest fixtures used across the test suite, organized by layer:

    1. Configuration fixtures (fast retries, inline or background dispatch)
    2. Orchestration fixtures (StateStore, ConfigStore, Tracker, Queue, ...)
    3. Integration fixtures (mock capability provider)
    4. Agent fixtures (executive configs and live agents)
    5. Event sink fixtures (RecordingEventSink)
    6. Facade fixtures (Orchestrator)
"""

from __future__ import annotations

from typing import Any, Optional

import pytest

from boardroom.agents.executives import FinanceAgent, StrategyAgent
from boardroom.agents.runtime import AgentRuntime
from boardroom.core.config import BoardroomConfig, DispatchConfig, RetryConfig
from boardroom.core.enums import WorkflowState
from boardroom.core.models import (
    AgentConfig,
    AgentSelector,
    Task,
    TaskOutcome,
    WorkflowSnapshot,
)
from boardroom.facade import Orchestrator
from boardroom.integrations.llm.mock import MockLLMProvider
from boardroom.orchestration.config_store import AgentConfigStore
from boardroom.orchestration.error_handler import ErrorHandler, RetryPolicy
from boardroom.orchestration.event_sink import EventSink
from boardroom.orchestration.state_store import InMemoryStateStore
from boardroom.orchestration.task_queue import InMemoryTaskQueue
from boardroom.orchestration.workflow_tracker import WorkflowTracker

ORG = "org-1"


# =============================================================================
# Helpers
# =============================================================================
def make_agent_config(
    template_id: str = "generic_strategic",
    organization_id: str = ORG,
    name: Optional[str] = None,
    **fields: Any,
) -> AgentConfig:
    return AgentConfig(
        organization_id=organization_id,
        template_id=template_id,
        name=name or template_id.replace("_", " ").title(),
        **fields,
    )


def make_task(
    task_id: str = "task-1",
    workflow_id: str = "wf-1",
    organization_id: str = ORG,
    template_id: str = "generic_strategic",
    **fields: Any,
) -> Task:
    fields.setdefault("payload", {"objective": "Plan the next quarter"})
    return Task(
        task_id=task_id,
        workflow_id=workflow_id,
        organization_id=organization_id,
        agent_selector=AgentSelector.template(template_id),
        **fields,
    )


class RecordingEventSink(EventSink):
    """Event sink that keeps every callback in arrival order."""

    def __init__(self) -> None:
        self.task_completions: list[tuple[str, TaskOutcome]] = []
        self.workflow_updates: list[WorkflowSnapshot] = []
        self.events: list[tuple[str, str]] = []

    async def on_task_complete(self, task_id: str, outcome: TaskOutcome) -> None:
        self.task_completions.append((task_id, outcome))
        self.events.append(("task", task_id))

    async def on_workflow_update(self, snapshot: WorkflowSnapshot) -> None:
        self.workflow_updates.append(snapshot)
        self.events.append(("workflow", snapshot.state.value))

    def completed_ids(self) -> list[str]:
        return [task_id for task_id, _ in self.task_completions]

    def outcome(self, task_id: str) -> TaskOutcome:
        return next(o for t, o in self.task_completions if t == task_id)

    def workflow_states(self) -> list[WorkflowState]:
        return [s.state for s in self.workflow_updates]


# =============================================================================
# Configuration
# =============================================================================
@pytest.fixture
def config():
    """Inline dispatch (no background workers) and millisecond backoffs."""
    return BoardroomConfig(
        retry=RetryConfig(max_attempts=3, initial_delay=0.001, max_delay=0.01),
        dispatch=DispatchConfig(workers_per_organization=0, idle_poll_interval=0.01),
    )


@pytest.fixture
def worker_config():
    """Background dispatch with one worker per organization."""
    return BoardroomConfig(
        retry=RetryConfig(max_attempts=3, initial_delay=0.001, max_delay=0.01),
        dispatch=DispatchConfig(workers_per_organization=1, idle_poll_interval=0.01),
    )


# =============================================================================
# Orchestration
# =============================================================================
@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def config_store(state_store):
    return AgentConfigStore(state_store)


@pytest.fixture
def tracker(state_store):
    return WorkflowTracker(state_store)


@pytest.fixture
def task_queue():
    return InMemoryTaskQueue()


@pytest.fixture
def error_handler():
    """ErrorHandler with a 3-attempt budget and near-zero backoff."""
    return ErrorHandler(
        retry_policy=RetryPolicy(max_attempts=3, initial_delay=0.001, max_delay=0.01)
    )


# =============================================================================
# LLM Provider
# =============================================================================
@pytest.fixture
def mock_llm_provider():
    """Fresh MockLLMProvider with no queued responses."""
    return MockLLMProvider()


# =============================================================================
# Agents
# =============================================================================
@pytest.fixture
def ceo_config():
    return make_agent_config(
        "generic_strategic",
        name="Strategic CEO",
        personality={"tone": "visionary", "focus": "long-term growth"},
        goals={"marketShare": 0.2},
    )


@pytest.fixture
def cfo_config():
    return make_agent_config(
        "finance_cfo",
        name="Finance CFO",
        personality={"tone": "analytical", "focus": "financial metrics"},
        goals={"runwayMonths": 18, "marginTarget": 0.65},
    )


@pytest.fixture
def strategy_agent(ceo_config, mock_llm_provider):
    return StrategyAgent(ceo_config, mock_llm_provider)


@pytest.fixture
def finance_agent(cfo_config, mock_llm_provider):
    return FinanceAgent(cfo_config, mock_llm_provider)


@pytest.fixture
def runtime(config_store, mock_llm_provider):
    return AgentRuntime(config_store, mock_llm_provider)


# =============================================================================
# Event Sink
# =============================================================================
@pytest.fixture
def recording_sink():
    return RecordingEventSink()


# =============================================================================
# Facade
# =============================================================================
@pytest.fixture
async def orchestrator(config, mock_llm_provider, recording_sink, ceo_config, cfo_config):
    """Initialized Orchestrator (inline dispatch) with CEO and CFO configured."""
    boardroom = Orchestrator(
        config,
        llm_provider=mock_llm_provider,
        event_sink=recording_sink,
    )
    await boardroom.initialize()
    await boardroom.upsert_agent_config(ceo_config)
    await boardroom.upsert_agent_config(cfo_config)
    yield boardroom
    await boardroom.shutdown()

"""
boardroom.core.state - Agent Performance and Orchestration Metrics
====================================================================

Dynamic, frequently changing runtime state, kept apart from the static
configuration in models.py:

    models.py:  WHO the executive is (AgentConfig) — changes on upsert only
    state.py:   HOW the executive is doing (AgentPerformance) — every task

``AgentPerformance`` lives on each AgentHandle and is updated by the Agent
Runtime after every execution attempt. ``OrchestrationMetrics`` is computed
on demand by the Orchestrator for one organization.

Usage:
    >>> perf = AgentPerformance(agent_id="org-1/finance_cfo")
    >>> perf = perf.record(succeeded=True, duration_seconds=1.2)
    >>> perf.success_rate
    1.0
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Agent Performance
# =============================================================================
# Counters behind the "performance" panel of each executive: how many tasks
# it finished, how many failed, and how long they took on average.
# =============================================================================
class AgentPerformance(BaseModel):
    """Execution counters for one agent handle.

    Attributes:
        agent_id: Handle identifier, "{organization_id}/{template_id}".
        tasks_completed: Attempts that returned a result.
        tasks_failed: Attempts that raised.
        total_duration_seconds: Wall-clock time across all attempts.
        in_flight: Attempts currently executing on this handle.
        last_active_at: When the handle last finished an attempt.
    """

    agent_id: str
    tasks_completed: int = Field(default=0, ge=0)
    tasks_failed: int = Field(default=0, ge=0)
    total_duration_seconds: float = Field(default=0.0, ge=0)
    in_flight: int = Field(default=0, ge=0)
    last_active_at: Optional[datetime] = None

    @property
    def total_tasks(self) -> int:
        return self.tasks_completed + self.tasks_failed

    @property
    def success_rate(self) -> float:
        """Returns 1.0 when nothing has been attempted yet."""
        if self.total_tasks == 0:
            return 1.0
        return self.tasks_completed / self.total_tasks

    @property
    def avg_duration(self) -> float:
        if self.total_tasks == 0:
            return 0.0
        return self.total_duration_seconds / self.total_tasks

    @property
    def is_busy(self) -> bool:
        return self.in_flight > 0

    def started(self) -> AgentPerformance:
        return self.model_copy(update={"in_flight": self.in_flight + 1})

    def record(self, *, succeeded: bool, duration_seconds: float) -> AgentPerformance:
        """Return a copy with one finished attempt accounted for."""
        update = {
            "total_duration_seconds": self.total_duration_seconds + duration_seconds,
            "in_flight": max(self.in_flight - 1, 0),
            "last_active_at": _now(),
        }
        if succeeded:
            update["tasks_completed"] = self.tasks_completed + 1
        else:
            update["tasks_failed"] = self.tasks_failed + 1
        return self.model_copy(update=update)


# =============================================================================
# Orchestration Metrics
# =============================================================================
class OrchestrationMetrics(BaseModel):
    """Organization-wide summary shown on the orchestrator dashboard.

    Attributes:
        active_workflows: Workflows not yet in a terminal state.
        completed_workflows: Workflows in any terminal state.
        total_tasks: Tasks across all workflows of the organization.
        success_rate: Succeeded / terminal tasks (1.0 when none finished).
        avg_workflow_duration: Mean seconds from submission to terminal state.
        agent_utilization: Fraction of instantiated agents currently busy.
    """

    organization_id: str
    active_workflows: int = 0
    completed_workflows: int = 0
    total_tasks: int = 0
    success_rate: float = 1.0
    avg_workflow_duration: float = 0.0
    agent_utilization: float = 0.0
    computed_at: datetime = Field(default_factory=_now)

"""
boardroom.core.models - Core Data Models
==========================================

The Pydantic data models that flow through every layer of Boardroom.

Model Hierarchy:
    AgentConfig    → Who is this executive? (personality + goals per org)
    AgentSelector  → Which agent should run a task? (template or capability)
    TaskSpec       → A task as submitted by a caller
    WorkflowSpec   → A workflow as submitted by a caller
    Task           → A tracked task (state, result, error, attempts)
    TaskAttempt    → One execution attempt of a task
    Workflow       → A tracked workflow (member tasks, derived state)
    TaskOutcome    → What the event sink receives when a task finishes
    WorkflowSnapshot → What the event sink receives on a workflow update

Data Flow Through Architecture:
    ┌──────────────┐   WorkflowSpec    ┌──────────────┐    Task     ┌──────────┐
    │   Caller      │ ───────────────→ │ Orchestrator │ ──────────→ │  Agent   │
    │               │                  │   (facade)   │             │ Runtime  │
    │               │ ←─────────────── │              │ ←────────── │          │
    └──────────────┘  TaskOutcome /    └──────────────┘   result    └──────────┘
                      WorkflowSnapshot        │
                                              ↓  Task / Workflow
                                       ┌──────────────┐
                                       │ State Store  │
                                       └──────────────┘

Design Principles:
    1. Snapshots: components replace models with ``model_copy(update=...)``
       rather than mutating them in place.
    2. Self-validating: Pydantic enforces identity fields at creation.
    3. Open mappings: ``personality``, ``goals`` and ``payload`` are
       ``dict[str, Any]`` and are read schema-on-read by agent templates.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from boardroom.core.enums import (
    Capability,
    FailurePolicy,
    SelectorKind,
    TaskState,
    WorkflowState,
)


# =============================================================================
# Helpers
# =============================================================================
def _generate_id() -> str:
    """Generate a unique identifier using UUID4."""
    return str(uuid4())


def _now() -> datetime:
    """Get the current UTC timestamp. Every timestamp in Boardroom is UTC."""
    return datetime.now(timezone.utc)


# =============================================================================
# Agent Config
# =============================================================================
# One configuration per organization per agent template. Seeded by an
# administrative process or written through the configuration API; read by
# the Agent Runtime when it instantiates an agent. The orchestrator never
# writes it.
# =============================================================================
class AgentConfig(BaseModel):
    """Configuration of one AI executive for one organization.

    The pair (``organization_id``, ``template_id``) is the identity: the
    config store keeps at most one config per pair and an upsert replaces
    ``name``, ``personality`` and ``goals`` wholesale.

    Attributes:
        organization_id: Owning organization (trusted, already authenticated).
        template_id: Behaviour archetype, e.g. "generic_strategic",
            "finance_cfo". Selects the agent class in the template registry.
        name: Display name, e.g. "Strategic CEO".
        personality: Free-form trait mapping, e.g. {"tone": "analytical"}.
        goals: Objective mapping, e.g. {"runwayMonths": 18}.

    Example:
        >>> config = AgentConfig(
        ...     organization_id="org-1",
        ...     template_id="finance_cfo",
        ...     name="Finance CFO",
        ...     personality={"tone": "analytical", "focus": "financial metrics"},
        ...     goals={"runwayMonths": 18, "marginTarget": 0.65},
        ... )
    """

    organization_id: str = Field(min_length=1, description="Owning organization")
    template_id: str = Field(min_length=1, description="Behaviour archetype")
    name: str = Field(min_length=1, description="Human-readable agent name")
    personality: dict[str, Any] = Field(
        default_factory=dict,
        description="Open mapping of personality traits",
    )
    goals: dict[str, Any] = Field(
        default_factory=dict,
        description="Open mapping of objectives to targets",
    )
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def key(self) -> tuple[str, str]:
        """Identity of this config inside the store."""
        return (self.organization_id, self.template_id)

    @property
    def agent_id(self) -> str:
        """Identifier of the live agent built from this config."""
        return f"{self.organization_id}/{self.template_id}"

    def same_content(self, other: AgentConfig) -> bool:
        """True when ``other`` carries the same identity and fields.

        Timestamps are ignored; they are bookkeeping, not content.
        """
        return (
            self.key == other.key
            and self.name == other.name
            and self.personality == other.personality
            and self.goals == other.goals
        )


# =============================================================================
# Agent Selector
# =============================================================================
# A task either names a specific template ("run this on our CFO") or a
# capability requirement ("anyone who can do forecasting").
# =============================================================================
class AgentSelector(BaseModel):
    """Which agent should execute a task.

    Example:
        >>> AgentSelector.template("finance_cfo")
        >>> AgentSelector.capability(Capability.FORECASTING)
    """

    kind: SelectorKind = Field(description="Route by template or by capability")
    value: str = Field(min_length=1, description="Template id or capability name")

    @classmethod
    def template(cls, template_id: str) -> AgentSelector:
        return cls(kind=SelectorKind.TEMPLATE, value=template_id)

    @classmethod
    def capability(cls, capability: Union[Capability, str]) -> AgentSelector:
        value = capability.value if isinstance(capability, Capability) else capability
        return cls(kind=SelectorKind.CAPABILITY, value=value)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"


# =============================================================================
# Submission Models
# =============================================================================
class TaskSpec(BaseModel):
    """A task as described by the caller at submission time.

    Attributes:
        task_id: Optional caller-chosen id (unique within the organization).
            Generated when omitted.
        name: Short label for logs and dashboards.
        agent_selector: Which agent should run it.
        payload: Opaque input handed to the agent.
        depends_on: task_ids in the same workflow that must SUCCEED first.
    """

    task_id: str = Field(default_factory=_generate_id)
    name: str = Field(default="")
    agent_selector: AgentSelector
    payload: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)


class WorkflowSpec(BaseModel):
    """A workflow as described by the caller at submission time.

    Example:
        >>> spec = WorkflowSpec(
        ...     name="Quarterly review",
        ...     tasks=[
        ...         TaskSpec(agent_selector=AgentSelector.template("finance_cfo"),
        ...                  payload={"objective": "Summarize Q3"}),
        ...     ],
        ...     failure_policy=FailurePolicy.BEST_EFFORT,
        ... )
    """

    name: str = Field(default="")
    tasks: list[TaskSpec] = Field(default_factory=list)
    failure_policy: Optional[FailurePolicy] = Field(
        default=None,
        description="None means the configured default (fail-fast-all)",
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("tasks")
    @classmethod
    def _unique_task_ids(cls, tasks: list[TaskSpec]) -> list[TaskSpec]:
        ids = [t.task_id for t in tasks]
        if len(ids) != len(set(ids)):
            raise ValueError("task_id values must be unique within a workflow")
        known = set(ids)
        for task in tasks:
            unknown = [d for d in task.depends_on if d not in known]
            if unknown:
                raise ValueError(
                    f"task '{task.task_id}' depends on unknown tasks: {unknown}"
                )
            if task.task_id in task.depends_on:
                raise ValueError(f"task '{task.task_id}' depends on itself")
        return tasks


# =============================================================================
# Tracked Task
# =============================================================================
class TaskAttempt(BaseModel):
    """Record of a single execution attempt.

    ``revision`` groups attempts into runs: automatic retries share a
    revision, an operator retry starts the next one.
    """

    attempt: int = Field(ge=1)
    revision: int = Field(default=0, ge=0)
    agent_id: Optional[str] = None
    started_at: datetime = Field(default_factory=_now)
    finished_at: Optional[datetime] = None
    succeeded: bool = False
    error: Optional[dict[str, Any]] = None


class Task(BaseModel):
    """A task tracked by the workflow tracker.

    Invariants:
        - ``result`` is set only when ``state`` is SUCCEEDED.
        - ``error`` is set only when ``state`` is FAILED.
        - ``state`` moves forward through the lifecycle only; see
          TaskState for the allowed transitions.
    """

    task_id: str
    workflow_id: str
    organization_id: str
    name: str = ""
    agent_selector: AgentSelector
    payload: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)
    state: TaskState = TaskState.PENDING
    result: Optional[Any] = None
    error: Optional[dict[str, Any]] = None
    attempt: int = Field(default=0, ge=0, description="Execution attempts made")
    revision: int = Field(default=0, ge=0, description="Operator retries made")
    assigned_agent: Optional[str] = None
    attempts: list[TaskAttempt] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


# =============================================================================
# Tracked Workflow
# =============================================================================
class Workflow(BaseModel):
    """A workflow tracked by the workflow tracker.

    ``state`` is written only by the tracker, from
    ``derive_workflow_state(member task states, failure_policy)``.
    """

    workflow_id: str = Field(default_factory=_generate_id)
    organization_id: str
    name: str = ""
    task_ids: list[str] = Field(default_factory=list)
    failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST_ALL
    state: WorkflowState = WorkflowState.PENDING
    paused: bool = False
    created_at: datetime = Field(default_factory=_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_closed(self) -> bool:
        return self.state.is_terminal

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.created_at).total_seconds()


# =============================================================================
# Event Sink Payloads
# =============================================================================
class TaskOutcome(BaseModel):
    """Terminal outcome of a task run, delivered to ``on_task_complete``.

    ``result`` carries the output on success, ``error`` the serialized
    failure (see ``BoardroomError.to_dict``) otherwise.
    """

    task_id: str
    workflow_id: str
    state: TaskState
    result: Optional[Any] = None
    error: Optional[dict[str, Any]] = None
    attempt: int = 0
    revision: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == TaskState.SUCCEEDED

    @classmethod
    def from_task(cls, task: Task) -> TaskOutcome:
        return cls(
            task_id=task.task_id,
            workflow_id=task.workflow_id,
            state=task.state,
            result=task.result,
            error=task.error,
            attempt=task.attempt,
            revision=task.revision,
        )


class WorkflowSnapshot(BaseModel):
    """Latest-state view of a workflow, delivered to ``on_workflow_update``.

    Sinks must treat it as the current state, not as a delta: intermediate
    RUNNING recomputations may be coalesced.
    """

    workflow_id: str
    organization_id: str
    name: str = ""
    state: WorkflowState
    member_task_states: dict[str, TaskState] = Field(default_factory=dict)
    paused: bool = False

    @property
    def total_steps(self) -> int:
        return len(self.member_task_states)

    @property
    def completed_steps(self) -> int:
        return sum(1 for s in self.member_task_states.values() if s.is_terminal)

    @property
    def progress(self) -> float:
        """Fraction of member tasks that reached a terminal state (0.0-1.0)."""
        if not self.member_task_states:
            return 1.0
        return self.completed_steps / self.total_steps

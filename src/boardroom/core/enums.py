"""
boardroom.core.enums - Type-Safe Enumerations
===============================================

All enumeration types used throughout Boardroom. Every enum inherits from
both ``str`` and ``Enum`` so values serialize as plain strings (Pydantic and
JSON friendly) and compare equal to their string form:

    >>> TaskState.SUCCEEDED == "succeeded"
    True

Architecture Mapping:

    ┌─────────────────────────────────────────────────────────────────┐
    │  TASK TRACKING                                                  │
    │    TaskState: PENDING → ASSIGNED → RUNNING → SUCCEEDED/FAILED   │
    ├─────────────────────────────────────────────────────────────────┤
    │  WORKFLOW TRACKING                                              │
    │    WorkflowState: PENDING → RUNNING → COMPLETED/FAILED/PARTIAL  │
    │    FailurePolicy: fail-fast-all | best-effort                   │
    ├─────────────────────────────────────────────────────────────────┤
    │  AGENT LAYER                                                    │
    │    SelectorKind: route by template or by capability             │
    │    Capability: what an executive agent can do                   │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Task State Enumeration
# =============================================================================
# The task lifecycle is ordered. A task only ever moves forward through it:
#
#   PENDING → ASSIGNED → RUNNING → (SUCCEEDED | FAILED)
#       └────────┴──────────────→ FAILED   (cancel / invalid / unresolvable)
#
# Retries inside the attempt budget keep the task in RUNNING.
# =============================================================================
class TaskState(str, Enum):
    """Lifecycle states for a task within a workflow.

    State Transitions:
        PENDING → ASSIGNED:   A dispatch worker dequeued the task
        ASSIGNED → RUNNING:   The agent handle started executing it
        RUNNING → SUCCEEDED:  The capability returned a result
        RUNNING → FAILED:     Non-retryable failure or attempts exhausted
        PENDING/ASSIGNED → FAILED: Cancelled, invalid or no agent to run it
    """

    PENDING = "pending"
    ASSIGNED = "assigned"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        """Position in the ordered lifecycle (terminal states share a rank)."""
        return _TASK_STATE_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.SUCCEEDED, TaskState.FAILED)


_TASK_STATE_RANK = {
    TaskState.PENDING: 0,
    TaskState.ASSIGNED: 1,
    TaskState.RUNNING: 2,
    TaskState.SUCCEEDED: 3,
    TaskState.FAILED: 3,
}


# =============================================================================
# Workflow State Enumeration
# =============================================================================
# Never set directly. Always derived from member task states by
# boardroom.orchestration.workflow_tracker.derive_workflow_state().
# =============================================================================
class WorkflowState(str, Enum):
    """Aggregate state of a workflow.

    State Transitions:
        PENDING → RUNNING:            First task left PENDING
        RUNNING → COMPLETED:          Every task SUCCEEDED
        RUNNING → FAILED:             All terminal, failure policy says failed
        RUNNING → PARTIALLY_FAILED:   All terminal, mixed, best-effort policy
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIALLY_FAILED = "partially_failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            WorkflowState.COMPLETED,
            WorkflowState.FAILED,
            WorkflowState.PARTIALLY_FAILED,
        )


class FailurePolicy(str, Enum):
    """How a workflow with failed members is judged once all tasks finish.

    FAIL_FAST_ALL: any failed member fails the workflow (default).
    BEST_EFFORT:   a mixture of successes and failures is PARTIALLY_FAILED.
    """

    FAIL_FAST_ALL = "fail-fast-all"
    BEST_EFFORT = "best-effort"


class SelectorKind(str, Enum):
    """How a task names the agent that should run it."""

    TEMPLATE = "template"       # A specific agent template (e.g. "finance_cfo")
    CAPABILITY = "capability"   # Any agent advertising the capability


# =============================================================================
# Capability Enumeration
# =============================================================================
# The work an executive agent can be asked to do. Templates advertise a set
# of these; capability selectors resolve against them.
# =============================================================================
class Capability(str, Enum):
    """Units of work an executive agent template advertises."""

    STRATEGY = "strategy"
    ANALYSIS = "analysis"
    FINANCE = "finance"
    FORECASTING = "forecasting"
    CONTENT = "content"
    CAMPAIGNS = "campaigns"
    LEAD_FOLLOWUP = "lead_followup"
    OUTREACH = "outreach"
    REPORTING = "reporting"

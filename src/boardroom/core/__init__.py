"""
boardroom.core - Foundation Layer
=================================

The building blocks every other module in Boardroom depends on:

    - config:      Configuration (BoardroomConfig, RetryConfig, DispatchConfig, ...)
    - enums:       TaskState, WorkflowState, FailurePolicy, SelectorKind, Capability
    - models:      AgentConfig, TaskSpec, WorkflowSpec, Task, Workflow, ...
    - state:       AgentPerformance, OrchestrationMetrics
    - exceptions:  BoardroomError hierarchy

Dependency Rule:
    core/ depends on NOTHING else in the boardroom package.
"""

from boardroom.core.config import (
    BoardroomConfig,
    CapabilityConfig,
    CircuitBreakerConfig,
    DispatchConfig,
    RetryConfig,
)
from boardroom.core.enums import (
    Capability,
    FailurePolicy,
    SelectorKind,
    TaskState,
    WorkflowState,
)
from boardroom.core.exceptions import (
    AgentError,
    BoardroomError,
    CapabilityUnavailableError,
    ConfigurationError,
    DependencyFailedError,
    ExecutionError,
    InvalidTaskError,
    NotFoundError,
    StateError,
    TaskCancelledError,
    WorkflowClosedError,
)
from boardroom.core.models import (
    AgentConfig,
    AgentSelector,
    Task,
    TaskAttempt,
    TaskOutcome,
    TaskSpec,
    Workflow,
    WorkflowSnapshot,
    WorkflowSpec,
)
from boardroom.core.state import AgentPerformance, OrchestrationMetrics

__all__ = [
    # Config
    "BoardroomConfig",
    "CapabilityConfig",
    "CircuitBreakerConfig",
    "DispatchConfig",
    "RetryConfig",
    # Enums
    "Capability",
    "FailurePolicy",
    "SelectorKind",
    "TaskState",
    "WorkflowState",
    # Models
    "AgentConfig",
    "AgentSelector",
    "Task",
    "TaskAttempt",
    "TaskOutcome",
    "TaskSpec",
    "Workflow",
    "WorkflowSnapshot",
    "WorkflowSpec",
    # State
    "AgentPerformance",
    "OrchestrationMetrics",
    # Exceptions
    "AgentError",
    "BoardroomError",
    "CapabilityUnavailableError",
    "ConfigurationError",
    "DependencyFailedError",
    "ExecutionError",
    "InvalidTaskError",
    "NotFoundError",
    "StateError",
    "TaskCancelledError",
    "WorkflowClosedError",
]

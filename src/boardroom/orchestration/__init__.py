"""
boardroom.orchestration - Orchestration Layer
===============================================

Components that own task and workflow state and move work onto agents:

    - StateStore:       Persistence for agent configs, workflows and tasks
    - AgentConfigStore: Per-organization executive configuration
    - TaskQueue:        Per-organization FIFO with readiness filtering
    - WorkflowTracker:  Task lifecycle and derived workflow state
    - ErrorHandler:     Retry decisions, circuit breakers, dead letters
    - EventSink:        Caller-supplied completion / update listener
    - Dispatcher:       Dispatch workers and task execution

The Agent Runtime lives in ``boardroom.agents.runtime`` and is imported by
the dispatcher only for type checking.
"""

from boardroom.orchestration.config_store import AgentConfigStore
from boardroom.orchestration.dispatcher import Dispatcher
from boardroom.orchestration.error_handler import (
    CircuitBreaker,
    CircuitBreakerState,
    ErrorAction,
    ErrorHandler,
    RetryPolicy,
)
from boardroom.orchestration.event_sink import (
    CallbackEventSink,
    EventDispatcher,
    EventSink,
    NullEventSink,
)
from boardroom.orchestration.state_store import InMemoryStateStore, StateStore
from boardroom.orchestration.task_queue import InMemoryTaskQueue, TaskQueue
from boardroom.orchestration.workflow_tracker import (
    Transition,
    WorkflowTracker,
    derive_workflow_state,
)

__all__ = [
    # Persistence
    "StateStore",
    "InMemoryStateStore",
    "AgentConfigStore",
    # Queue and tracking
    "TaskQueue",
    "InMemoryTaskQueue",
    "WorkflowTracker",
    "Transition",
    "derive_workflow_state",
    # Error handling
    "ErrorAction",
    "ErrorHandler",
    "RetryPolicy",
    "CircuitBreaker",
    "CircuitBreakerState",
    # Events
    "EventSink",
    "CallbackEventSink",
    "NullEventSink",
    "EventDispatcher",
    # Dispatch
    "Dispatcher",
]

"""
boardroom.core.exceptions - Custom Exception Hierarchy
========================================================

A structured exception hierarchy for Boardroom. Components raise and catch
specific exception types that carry contextual information instead of bare
strings.

Exception Hierarchy:
    BoardroomError (base)
        ├── ConfigurationError           - Invalid config, missing values
        ├── StateError                   - State store read/write failures
        ├── NotFoundError                - Missing config/task/workflow
        ├── WorkflowClosedError          - Mutation after a terminal state
        ├── DependencyFailedError        - Prerequisite task ended Failed
        └── AgentError                   - Raised while an agent runs a task
                ├── InvalidTaskError             - Bad payload/selector (final)
                ├── CapabilityUnavailableError   - Capability unreachable (retry)
                ├── ExecutionError               - Capability errored (retry)
                └── TaskCancelledError           - Operator cancellation (final)

Error Handling Flow:
    Agent raises AgentError
        → ErrorHandler.decide() checks the RetryPolicy
        → retryable and budget left: sleep with backoff, run again
        → otherwise: task is marked FAILED and the event sink is notified

Usage:
    >>> from boardroom.core.exceptions import ExecutionError
    >>> raise ExecutionError(
    ...     message="Capability returned an error result",
    ...     agent_id="org-1/finance_cfo",
    ...     task_id="task-abc-123",
    ...     details={"finish_reason": "error"},
    ... )
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
# All Boardroom exceptions inherit from this base class so that callers can
# catch every framework error with a single except clause:
#
#   try:
#       await orchestrator.cancel(workflow_id)
#   except BoardroomError as e:
#       logger.error(e.message, error_code=e.error_code, details=e.details)
# =============================================================================
class BoardroomError(Exception):
    """Base exception for all Boardroom errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code for programmatic handling.
            Convention: UPPER_SNAKE_CASE (e.g., "NOT_FOUND").
        details: Arbitrary dict with additional debugging context.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception to a dictionary.

        Used for structured logs and for the ``error`` field stored on a
        failed task.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
# Raised at startup when configuration is invalid. Fail fast.
# =============================================================================
class ConfigurationError(BoardroomError):
    """Raised when Boardroom configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError(
        ...     message="Unknown capability provider 'openai'",
        ...     details={"provider": "openai"},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class StateError(BoardroomError):
    """Raised when the state store cannot read or write an entity."""

    def __init__(
        self,
        message: str,
        error_code: str = "STATE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Not Found
# =============================================================================
# Lookups of agent configs, tasks and workflows raise this instead of
# returning None at the public API boundary.
# =============================================================================
class NotFoundError(BoardroomError):
    """Raised when a config, task or workflow lookup finds nothing.

    Attributes:
        entity: What kind of thing was looked up ("agent_config", "task", ...).
        key: The identifier that was not found.

    Example:
        >>> raise NotFoundError(entity="agent_config", key="org-1/finance_cfo")
    """

    def __init__(
        self,
        entity: str,
        key: str,
        message: Optional[str] = None,
        error_code: str = "NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["entity"] = entity
        enriched_details["key"] = key

        super().__init__(
            message=message or f"{entity} '{key}' not found",
            error_code=error_code,
            details=enriched_details,
        )

        self.entity = entity
        self.key = key


# =============================================================================
# Workflow Closed
# =============================================================================
# Once a workflow reaches COMPLETED, FAILED or PARTIALLY_FAILED, no task
# under it may change state again.
# =============================================================================
class WorkflowClosedError(BoardroomError):
    """Raised when a task transition is attempted under a terminal workflow.

    Attributes:
        workflow_id: ID of the closed workflow.
    """

    def __init__(
        self,
        message: str,
        workflow_id: str,
        error_code: str = "WORKFLOW_CLOSED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["workflow_id"] = workflow_id

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.workflow_id = workflow_id


# =============================================================================
# Agent Errors
# =============================================================================
# Raised while an agent handle executes a task. Carries the agent and task
# identifiers so the error handler can track per-agent failures. Each
# subclass pins its own error code, which is what the RetryPolicy inspects.
# =============================================================================
class AgentError(BoardroomError):
    """Raised when an agent fails during task execution.

    Attributes:
        agent_id: ID of the agent handle that encountered the error.
            Convention: "{organization_id}/{template_id}".
        task_id: Optional ID of the task that failed.
        retryable: Whether another attempt may succeed.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        agent_id: str,
        task_id: Optional[str] = None,
        error_code: str = "AGENT_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["agent_id"] = agent_id
        if task_id:
            enriched_details["task_id"] = task_id

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.agent_id = agent_id
        self.task_id = task_id


class InvalidTaskError(AgentError):
    """The payload or selector cannot be processed by the agent's template.

    Never retried: the same payload will be rejected again.

    Example:
        >>> raise InvalidTaskError(
        ...     message="finance_cfo requires 'period' in payload",
        ...     agent_id="org-1/finance_cfo",
        ...     task_id="task-1",
        ...     details={"missing": ["period"]},
        ... )
    """

    retryable = False

    def __init__(
        self,
        message: str,
        agent_id: str,
        task_id: Optional[str] = None,
        error_code: str = "INVALID_TASK",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, agent_id, task_id, error_code, details)


class CapabilityUnavailableError(AgentError):
    """The agent or its backing capability cannot be reached. Retryable."""

    retryable = True

    def __init__(
        self,
        message: str,
        agent_id: str,
        task_id: Optional[str] = None,
        error_code: str = "CAPABILITY_UNAVAILABLE",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, agent_id, task_id, error_code, details)


class ExecutionError(AgentError):
    """The capability ran but produced an error result.

    Retryable up to the configured attempt budget.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        agent_id: str,
        task_id: Optional[str] = None,
        error_code: str = "EXECUTION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, agent_id, task_id, error_code, details)


class TaskCancelledError(AgentError):
    """Terminal, operator-initiated cancellation. Never retried."""

    retryable = False

    def __init__(
        self,
        message: str,
        agent_id: str = "orchestrator",
        task_id: Optional[str] = None,
        error_code: str = "CANCELLED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, agent_id, task_id, error_code, details)


# =============================================================================
# Dependency Failure
# =============================================================================
# A task whose prerequisite (depends_on) ended Failed can never become ready.
# It is failed with this error instead of waiting forever.
# =============================================================================
class DependencyFailedError(BoardroomError):
    """Raised for a Pending task whose prerequisite ended Failed.

    Attributes:
        task_id: The task that can no longer run.
        dependency_id: The failed prerequisite.
    """

    def __init__(
        self,
        task_id: str,
        dependency_id: str,
        error_code: str = "DEPENDENCY_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["task_id"] = task_id
        enriched_details["dependency_id"] = dependency_id

        super().__init__(
            message=f"Task '{task_id}' cannot run: dependency '{dependency_id}' failed",
            error_code=error_code,
            details=enriched_details,
        )

        self.task_id = task_id
        self.dependency_id = dependency_id

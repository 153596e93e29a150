"""
boardroom.orchestration.error_handler - Retry, Circuit Breaking, Dead Letters
===============================================================================

When an agent attempt fails, the Error Handler decides whether the task gets
another attempt or is finished as Failed. The dispatcher asks, then acts:

    AgentError raised by an attempt
            │
            v
    ┌─ error_code in RetryPolicy.retryable_errors?
    │       │                 │
    │      YES               NO ──> FAIL (dead letter, breaker untouched)
    │       v
    │  CircuitBreaker.record_failure()
    │       v
    │  attempt < max_attempts?
    │       │          │
    │      YES        NO ──> FAIL (dead letter)
    │       v
    │     RETRY (caller sleeps ``wait_before_retry`` then runs again)
    └─────────────────────────────────────────────────────────────────

Circuit Gating:
    Only retryable failures count toward an agent's breaker, so bad
    payloads in one workflow cannot open the circuit for the others. An
    OPEN circuit never fails a task: the dispatcher calls
    ``wait_for_agent`` before every attempt, and the attempt is held until
    the circuit lets calls through again. Waiting does not use up attempts.

Attempt Counting:
    ``attempt`` is 1-based and counts every execution, the first included.
    With max_attempts=2 a task runs at most twice.

Cancellation:
    ``wait_before_retry`` lets asyncio.CancelledError propagate. Cancelling
    a workflow must cut a pending backoff short, not turn into one more
    attempt.

Circuit Breaker State Machine:
    CLOSED ──(failure_threshold consecutive failures)──> OPEN
    OPEN ──(recovery_timeout elapsed)──> HALF_OPEN
    HALF_OPEN ──(success_threshold successes)──> CLOSED
    HALF_OPEN ──(any failure)──> OPEN
"""

from __future__ import annotations

import asyncio
import random
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from boardroom.core.config import CircuitBreakerConfig, RetryConfig

logger = structlog.get_logger()


class ErrorAction(str, Enum):
    """What the dispatcher should do with a failed attempt."""

    RETRY = "retry"   # Sleep with backoff, then run the task again
    FAIL = "fail"     # Mark the task Failed and notify


class CircuitBreakerState(str, Enum):
    """States of the circuit breaker pattern."""

    CLOSED = "closed"         # Normal operation
    OPEN = "open"             # Tripped: no retries for this agent
    HALF_OPEN = "half_open"   # Recovery probe


# =============================================================================
# RetryPolicy
# =============================================================================
# delay(attempt) = min(initial_delay * multiplier^(attempt-1) + jitter, max_delay)
#
#   attempt 1 failed → ~initial_delay
#   attempt 2 failed → ~initial_delay * multiplier
#   ...
# Jitter is up to 10% of the base delay.
# =============================================================================
class RetryPolicy(BaseModel):
    """Bounded retries with exponential backoff and jitter.

    Attributes:
        max_attempts: Total executions allowed per task run.
        initial_delay: Backoff after the first failed attempt.
        max_delay: Cap for any single backoff.
        backoff_multiplier: Growth factor between backoffs.
        retryable_errors: Error codes worth another attempt.

    Example:
        >>> policy = RetryPolicy(max_attempts=2, initial_delay=0.01)
        >>> policy.is_retryable("EXECUTION_ERROR")
        True
        >>> policy.is_retryable("INVALID_TASK")
        False
    """

    max_attempts: int = Field(default=3, ge=1, le=20)
    initial_delay: float = Field(default=0.5, ge=0, le=30.0)
    max_delay: float = Field(default=30.0, gt=0, le=300.0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    retryable_errors: list[str] = Field(
        default=["CAPABILITY_UNAVAILABLE", "EXECUTION_ERROR"],
    )

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(**config.model_dump())

    def calculate_delay(self, attempt: int) -> float:
        """Backoff to wait after ``attempt`` (1-based) failed."""
        base_delay = self.initial_delay * (self.backoff_multiplier ** max(attempt - 1, 0))
        jitter = random.uniform(0, base_delay * 0.1)
        return min(base_delay + jitter, self.max_delay)

    def is_retryable(self, error_code: str) -> bool:
        return error_code in self.retryable_errors

    def has_budget(self, attempt: int) -> bool:
        return attempt < self.max_attempts


# =============================================================================
# CircuitBreaker
# =============================================================================
# One per agent handle. Uses time.monotonic() for the recovery window.
# =============================================================================
class CircuitBreaker:
    """Per-agent circuit breaker.

    Example:
        >>> breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=30)
        >>> if await breaker.can_execute():
        ...     ...
        >>> await breaker.record_failure()
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        success_threshold: int = 1,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None
        self._lock = asyncio.Lock()
        self._logger = logger.bind(component="circuit_breaker")

    @classmethod
    def from_config(cls, config: CircuitBreakerConfig) -> CircuitBreaker:
        return cls(
            failure_threshold=config.failure_threshold,
            recovery_timeout=config.recovery_timeout,
            success_threshold=config.success_threshold,
        )

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def retry_after(self) -> float:
        """Seconds until an OPEN circuit may go HALF_OPEN (0.0 otherwise)."""
        if self._state != CircuitBreakerState.OPEN:
            return 0.0
        elapsed = time.monotonic() - (self._last_failure_time or 0.0)
        return max(self.recovery_timeout - elapsed, 0.0)

    async def can_execute(self) -> bool:
        """True unless the circuit is OPEN and still inside its window.

        Moves OPEN → HALF_OPEN once ``recovery_timeout`` has elapsed.
        """
        async with self._lock:
            if self._state != CircuitBreakerState.OPEN:
                return True

            elapsed = time.monotonic() - (self._last_failure_time or 0.0)
            if elapsed >= self.recovery_timeout:
                self._state = CircuitBreakerState.HALF_OPEN
                self._success_count = 0
                self._logger.info(
                    "circuit_breaker_half_open",
                    elapsed_seconds=round(elapsed, 2),
                )
                return True
            return False

    async def record_success(self) -> None:
        async with self._lock:
            self._failure_count = 0
            if self._state == CircuitBreakerState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    self._state = CircuitBreakerState.CLOSED
                    self._success_count = 0
                    self._logger.info("circuit_breaker_closed")

    async def record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()

            if self._state == CircuitBreakerState.HALF_OPEN:
                self._state = CircuitBreakerState.OPEN
                self._logger.warning("circuit_breaker_reopened")
            elif (
                self._state == CircuitBreakerState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                self._state = CircuitBreakerState.OPEN
                self._logger.warning(
                    "circuit_breaker_opened",
                    failure_count=self._failure_count,
                )

    async def reset(self) -> None:
        async with self._lock:
            self._state = CircuitBreakerState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._last_failure_time = None


# =============================================================================
# ErrorHandler
# =============================================================================
class ErrorHandler:
    """Decides RETRY or FAIL for failed attempts and keeps the dead letters.

    The handler never re-runs anything itself: it decides, and provides the
    backoff sleep. The dispatcher executes.

    Attributes:
        _retry_policy: Budget and backoff for retryable errors.
        _breaker_config: Template for per-agent breakers (created lazily).
        _dead_letters: Records of attempts that ended a task as Failed.
    """

    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        breaker_config: Optional[CircuitBreakerConfig] = None,
    ) -> None:
        self._retry_policy = retry_policy or RetryPolicy()
        self._breaker_config = breaker_config or CircuitBreakerConfig()
        self._circuit_breakers: dict[str, CircuitBreaker] = {}
        self._dead_letters: list[dict[str, Any]] = []
        self._logger = logger.bind(component="error_handler")

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    @property
    def dead_letter_count(self) -> int:
        return len(self._dead_letters)

    def get_dead_letters(self) -> list[dict[str, Any]]:
        return list(self._dead_letters)

    def get_circuit_breaker(self, agent_id: str) -> CircuitBreaker:
        breaker = self._circuit_breakers.get(agent_id)
        if breaker is None:
            breaker = CircuitBreaker.from_config(self._breaker_config)
            self._circuit_breakers[agent_id] = breaker
        return breaker

    # =========================================================================
    # Decision
    # =========================================================================
    async def decide(self, error: Exception, context: dict[str, Any]) -> ErrorAction:
        """Analyze a failed attempt.

        Args:
            error: What the attempt raised.
            context: ``agent_id``, ``task_id``, ``workflow_id`` and the
                1-based ``attempt`` that just failed.

        Returns:
            ErrorAction.RETRY or ErrorAction.FAIL. FAIL decisions are
            recorded in the dead-letter list.
        """
        error_code = getattr(error, "error_code", "UNKNOWN_ERROR")
        agent_id = context.get("agent_id") or "unresolved"
        attempt = context.get("attempt", 1)

        self._logger.warning(
            "handling_error",
            error_type=type(error).__name__,
            error_code=error_code,
            error_message=str(error),
            agent_id=agent_id,
            task_id=context.get("task_id"),
            attempt=attempt,
        )

        if not self._retry_policy.is_retryable(error_code):
            self._dead_letter(error, context, reason="not_retryable")
            return ErrorAction.FAIL

        await self.get_circuit_breaker(agent_id).record_failure()

        if not self._retry_policy.has_budget(attempt):
            self._dead_letter(error, context, reason="attempts_exhausted")
            return ErrorAction.FAIL

        self._logger.info(
            "error_retryable",
            error_code=error_code,
            attempt=attempt,
            max_attempts=self._retry_policy.max_attempts,
        )
        return ErrorAction.RETRY

    async def record_success(self, agent_id: str) -> None:
        await self.get_circuit_breaker(agent_id).record_success()

    async def wait_for_agent(self, agent_id: str, task_id: str) -> float:
        """Hold an attempt while ``agent_id``'s circuit is OPEN.

        Returns:
            Seconds spent waiting (0.0 when the circuit was not OPEN).

        Raises:
            asyncio.CancelledError: Propagated unchanged.
        """
        breaker = self.get_circuit_breaker(agent_id)
        waited = 0.0
        while not await breaker.can_execute():
            delay = max(breaker.retry_after, 0.001)
            if waited == 0.0:
                self._logger.info(
                    "circuit_open_waiting",
                    agent_id=agent_id,
                    task_id=task_id,
                    delay_seconds=round(delay, 3),
                )
            await asyncio.sleep(delay)
            waited += delay
        return waited

    async def wait_before_retry(self, task_id: str, attempt: int) -> float:
        """Sleep for the backoff after ``attempt`` failed.

        Returns:
            The delay slept, in seconds.

        Raises:
            asyncio.CancelledError: Propagated unchanged.
        """
        delay = self._retry_policy.calculate_delay(attempt)
        self._logger.info(
            "retry_waiting",
            task_id=task_id,
            attempt=attempt,
            delay_seconds=round(delay, 3),
        )
        await asyncio.sleep(delay)
        return delay

    # =========================================================================
    # Dead Letters
    # =========================================================================
    def _dead_letter(
        self, error: Exception, context: dict[str, Any], *, reason: str
    ) -> None:
        self._dead_letters.append({
            "error_type": type(error).__name__,
            "error_code": getattr(error, "error_code", "UNKNOWN_ERROR"),
            "message": str(error),
            "reason": reason,
            "context": dict(context),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "traceback": "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        })
        self._logger.error(
            "task_dead_lettered",
            reason=reason,
            task_id=context.get("task_id"),
            dead_letter_count=len(self._dead_letters),
        )

    def clear_dead_letters(self) -> int:
        count = len(self._dead_letters)
        self._dead_letters.clear()
        return count

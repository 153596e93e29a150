"""
Tests for boardroom.orchestration.error_handler
=================================================

What's Being Tested:
    - RetryPolicy:     backoff growth, cap, retryable codes, attempt budget
    - CircuitBreaker:  CLOSED → OPEN → HALF_OPEN → CLOSED
    - ErrorHandler:    RETRY / FAIL decisions and the dead-letter list
    - wait_before_retry(): cancellation propagates
    - wait_for_agent(): attempts held while a circuit is OPEN

Architecture Context:

    AgentError → [ErrorHandler.decide] → RETRY (backoff, run again)
                                       → FAIL  (dead letter, task Failed)
"""

import asyncio

import pytest

from boardroom.core.config import CircuitBreakerConfig, RetryConfig
from boardroom.core.exceptions import (
    CapabilityUnavailableError,
    ExecutionError,
    InvalidTaskError,
)
from boardroom.orchestration.error_handler import (
    CircuitBreaker,
    CircuitBreakerState,
    ErrorAction,
    ErrorHandler,
    RetryPolicy,
)


def _context(attempt: int = 1, agent_id: str = "org-1/finance_cfo") -> dict:
    return {"agent_id": agent_id, "task_id": "t1", "workflow_id": "wf", "attempt": attempt}


def _execution_error() -> ExecutionError:
    return ExecutionError(message="capability error", agent_id="org-1/finance_cfo")


# =============================================================================
# Test: RetryPolicy
# =============================================================================
class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert "EXECUTION_ERROR" in policy.retryable_errors
        assert "CAPABILITY_UNAVAILABLE" in policy.retryable_errors
        assert "INVALID_TASK" not in policy.retryable_errors

    def test_from_config(self) -> None:
        policy = RetryPolicy.from_config(RetryConfig(max_attempts=2, initial_delay=0.25))
        assert policy.max_attempts == 2
        assert policy.initial_delay == 0.25

    def test_delay_grows_exponentially(self) -> None:
        policy = RetryPolicy(initial_delay=1.0, backoff_multiplier=2.0, max_delay=100)
        # Base delay plus up to 10% jitter.
        assert 1.0 <= policy.calculate_delay(1) <= 1.1
        assert 2.0 <= policy.calculate_delay(2) <= 2.2
        assert 4.0 <= policy.calculate_delay(3) <= 4.4

    def test_delay_capped(self) -> None:
        policy = RetryPolicy(initial_delay=10.0, max_delay=15.0)
        assert policy.calculate_delay(5) == 15.0

    def test_budget(self) -> None:
        policy = RetryPolicy(max_attempts=2)
        assert policy.has_budget(1)
        assert not policy.has_budget(2)


# =============================================================================
# Test: CircuitBreaker
# =============================================================================
class TestCircuitBreaker:
    async def test_opens_after_threshold(self) -> None:
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        await breaker.record_failure()
        assert breaker.state == CircuitBreakerState.CLOSED
        await breaker.record_failure()
        assert breaker.state == CircuitBreakerState.OPEN
        assert not await breaker.can_execute()

    async def test_half_open_then_closed(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0.0)
        await breaker.record_failure()
        assert await breaker.can_execute()
        assert breaker.state == CircuitBreakerState.HALF_OPEN

        await breaker.record_success()
        assert breaker.state == CircuitBreakerState.CLOSED

    async def test_half_open_failure_reopens(self) -> None:
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0.0)
        await breaker.record_failure()
        await breaker.can_execute()
        await breaker.record_failure()
        assert breaker.state == CircuitBreakerState.OPEN

    async def test_success_resets_failure_count(self) -> None:
        breaker = CircuitBreaker(failure_threshold=3)
        await breaker.record_failure()
        await breaker.record_success()
        assert breaker.failure_count == 0

    async def test_from_config_and_reset(self) -> None:
        breaker = CircuitBreaker.from_config(CircuitBreakerConfig(failure_threshold=1))
        await breaker.record_failure()
        await breaker.reset()
        assert breaker.state == CircuitBreakerState.CLOSED


# =============================================================================
# Test: ErrorHandler Decisions
# =============================================================================
class TestErrorHandlerDecide:
    async def test_retryable_with_budget(self, error_handler) -> None:
        action = await error_handler.decide(_execution_error(), _context(attempt=1))
        assert action == ErrorAction.RETRY
        assert error_handler.dead_letter_count == 0

    async def test_capability_unavailable_is_retryable(self, error_handler) -> None:
        error = CapabilityUnavailableError(message="down", agent_id="org-1/finance_cfo")
        assert await error_handler.decide(error, _context()) == ErrorAction.RETRY

    async def test_exhausted_budget_fails(self, error_handler) -> None:
        action = await error_handler.decide(_execution_error(), _context(attempt=3))
        assert action == ErrorAction.FAIL
        assert error_handler.get_dead_letters()[0]["reason"] == "attempts_exhausted"

    async def test_non_retryable_fails_immediately(self, error_handler) -> None:
        error = InvalidTaskError(message="bad payload", agent_id="org-1/finance_cfo")
        action = await error_handler.decide(error, _context(attempt=1))

        assert action == ErrorAction.FAIL
        letter = error_handler.get_dead_letters()[0]
        assert letter["reason"] == "not_retryable"
        assert letter["error_code"] == "INVALID_TASK"
        assert letter["context"]["task_id"] == "t1"

    async def test_open_circuit_still_retries_within_budget(self) -> None:
        handler = ErrorHandler(
            retry_policy=RetryPolicy(max_attempts=10, initial_delay=0),
            breaker_config=CircuitBreakerConfig(failure_threshold=2, recovery_timeout=60),
        )
        await handler.decide(_execution_error(), _context(attempt=1))
        await handler.decide(_execution_error(), _context(attempt=2))
        assert handler.get_circuit_breaker("org-1/finance_cfo").state == CircuitBreakerState.OPEN

        action = await handler.decide(_execution_error(), _context(attempt=3))

        assert action == ErrorAction.RETRY
        assert handler.dead_letter_count == 0

    async def test_non_retryable_errors_leave_breaker_closed(self) -> None:
        handler = ErrorHandler(breaker_config=CircuitBreakerConfig(failure_threshold=2))
        error = InvalidTaskError(message="bad payload", agent_id="org-1/finance_cfo")
        for _ in range(5):
            assert await handler.decide(error, _context()) == ErrorAction.FAIL

        breaker = handler.get_circuit_breaker("org-1/finance_cfo")
        assert breaker.state == CircuitBreakerState.CLOSED
        assert breaker.failure_count == 0

    async def test_breakers_are_per_agent(self, error_handler) -> None:
        a = error_handler.get_circuit_breaker("org-1/a")
        assert error_handler.get_circuit_breaker("org-1/a") is a
        assert error_handler.get_circuit_breaker("org-1/b") is not a

    async def test_clear_dead_letters(self, error_handler) -> None:
        await error_handler.decide(_execution_error(), _context(attempt=3))
        assert error_handler.clear_dead_letters() == 1
        assert error_handler.dead_letter_count == 0


# =============================================================================
# Test: Backoff Sleep
# =============================================================================
class TestWaitBeforeRetry:
    async def test_returns_delay(self, error_handler) -> None:
        delay = await error_handler.wait_before_retry("t1", attempt=1)
        assert 0 <= delay <= 0.01

    async def test_cancellation_propagates(self) -> None:
        handler = ErrorHandler(retry_policy=RetryPolicy(initial_delay=30.0))
        waiter = asyncio.create_task(handler.wait_before_retry("t1", attempt=1))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter


# =============================================================================
# Test: Circuit Gating
# =============================================================================
class TestWaitForAgent:
    async def test_closed_circuit_does_not_wait(self, error_handler) -> None:
        assert await error_handler.wait_for_agent("org-1/finance_cfo", "t1") == 0.0

    async def test_waits_until_half_open(self) -> None:
        handler = ErrorHandler(
            breaker_config=CircuitBreakerConfig(failure_threshold=1, recovery_timeout=0.05),
        )
        await handler.decide(_execution_error(), _context())
        breaker = handler.get_circuit_breaker("org-1/finance_cfo")
        assert breaker.state == CircuitBreakerState.OPEN
        assert 0 < breaker.retry_after <= 0.05

        waited = await handler.wait_for_agent("org-1/finance_cfo", "t1")

        assert waited > 0
        assert breaker.state == CircuitBreakerState.HALF_OPEN
        assert breaker.retry_after == 0.0

    async def test_cancellation_propagates(self) -> None:
        handler = ErrorHandler(
            breaker_config=CircuitBreakerConfig(failure_threshold=1, recovery_timeout=30),
        )
        await handler.decide(_execution_error(), _context())
        waiter = asyncio.create_task(handler.wait_for_agent("org-1/finance_cfo", "t1"))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

"""
boardroom.integrations.llm.mock - Mock Capability Provider
============================================================

A provider that answers without calling any external service. It is the
default provider and the backbone of the test suite.

Features:
    - **Response Queue**: queued responses are returned first, FIFO.
    - **Call History**: every call is recorded for assertions.
    - **Failure Simulation**: fail every call, or only the next N calls,
      either as an unreachable capability or as an error result.
    - **Latency Simulation**: an optional ``asyncio.sleep`` per call, to
      exercise concurrency and cancellation.

Usage:
    >>> provider = MockLLMProvider()
    >>> provider.queue_response("Runway is 18 months at current burn.")
    >>> response = await provider.generate_with_system("You are a CFO", "Runway?")
    >>> response.content
    'Runway is 18 months at current burn.'
    >>>
    >>> provider.fail_next(2, mode="error")   # next two calls return errors
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Literal, Optional

import structlog

from boardroom.core.config import CapabilityConfig
from boardroom.integrations.llm.base import BaseLLMProvider, LLMResponse, LLMUsage

logger = structlog.get_logger()

FailureMode = Literal["error", "unavailable", "raise"]


class MockLLMProvider(BaseLLMProvider):
    """Mock capability provider for tests, demos and local development.

    Failure modes:
        "error":       return an LLMResponse with finish_reason="error"
        "unavailable": raise ConnectionError (capability unreachable)
        "raise":       raise RuntimeError (capability crashed)
    """

    def __init__(
        self,
        config: Optional[CapabilityConfig] = None,
        default_response: str = "Mock executive response",
        latency: float = 0.0,
    ) -> None:
        if config is None:
            config = CapabilityConfig(provider="mock", model="mock-executive")
        super().__init__(config)

        self._response_queue: deque[LLMResponse] = deque()
        self._call_history: list[dict[str, Any]] = []
        self._default_response = default_response
        self._latency = latency

        # --- Failure simulation ---
        # _always_fail wins over _fail_budget. _fail_budget counts down.
        self._always_fail: Optional[FailureMode] = None
        self._fail_budget: int = 0
        self._fail_mode: FailureMode = "error"
        self._failure_message: str = "Mock capability error"

        self._logger = logger.bind(component="mock_llm_provider")

    # =========================================================================
    # Properties
    # =========================================================================
    @property
    def call_history(self) -> list[dict[str, Any]]:
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    @property
    def queue_size(self) -> int:
        return len(self._response_queue)

    # =========================================================================
    # Queue Management
    # =========================================================================
    def queue_response(
        self,
        content: str,
        *,
        finish_reason: str = "stop",
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Add a response to the queue (returned by the next call)."""
        self._response_queue.append(
            LLMResponse(
                content=content,
                model=self.model,
                usage=self._estimate_usage(content),
                finish_reason=finish_reason,
                metadata=metadata or {},
            )
        )

    def clear_queue(self) -> None:
        self._response_queue.clear()

    def clear_history(self) -> None:
        self._call_history.clear()

    # =========================================================================
    # Failure Simulation
    # =========================================================================
    def set_should_fail(
        self,
        should_fail: bool,
        message: str = "Mock capability error",
        mode: FailureMode = "error",
    ) -> None:
        """Make every subsequent call fail (or stop failing)."""
        self._always_fail = mode if should_fail else None
        self._failure_message = message

    def fail_next(
        self,
        count: int,
        mode: FailureMode = "error",
        message: str = "Mock capability error",
    ) -> None:
        """Make only the next ``count`` calls fail."""
        self._fail_budget = count
        self._fail_mode = mode
        self._failure_message = message

    def set_latency(self, seconds: float) -> None:
        self._latency = seconds

    # =========================================================================
    # Core Interface
    # =========================================================================
    async def generate_with_system(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Return the next queued response, a failure, or the default.

        Every call is recorded in ``call_history`` before anything else
        happens, so failed calls are visible to assertions too.
        """
        self._call_history.append({
            "system_prompt": system_prompt,
            "prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "kwargs": kwargs,
        })
        self._logger.debug(
            "mock_generate_called",
            prompt_length=len(user_prompt),
            queue_size=len(self._response_queue),
        )

        if self._latency:
            await asyncio.sleep(self._latency)

        mode = self._next_failure()
        if mode == "unavailable":
            raise ConnectionError(self._failure_message)
        if mode == "raise":
            raise RuntimeError(self._failure_message)
        if mode == "error":
            return LLMResponse(
                content=self._failure_message,
                model=self.model,
                finish_reason="error",
                metadata={"source": "simulated_failure"},
            )

        if self._response_queue:
            return self._response_queue.popleft()

        return LLMResponse(
            content=self._default_response,
            model=self.model,
            usage=self._estimate_usage(self._default_response),
            metadata={"source": "default"},
        )

    # =========================================================================
    # Internal Helpers
    # =========================================================================
    def _next_failure(self) -> Optional[FailureMode]:
        if self._always_fail is not None:
            return self._always_fail
        if self._fail_budget > 0:
            self._fail_budget -= 1
            return self._fail_mode
        return None

    @staticmethod
    def _estimate_usage(content: str) -> LLMUsage:
        # Roughly four characters per token.
        completion = max(len(content) // 4, 1)
        return LLMUsage(
            prompt_tokens=0,
            completion_tokens=completion,
            total_tokens=completion,
        )

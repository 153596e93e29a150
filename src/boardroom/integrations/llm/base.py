"""
boardroom.integrations.llm.base - Abstract Capability Provider Interface
=========================================================================

The contract every reasoning backend implements. Executive agents never call
a model API directly; they go through this interface, which keeps the
capability opaque to the orchestrator:

    ┌────────────────┐   generate_with_system()   ┌───────────────────┐
    │ Executive Agent │ ─────────────────────────→ │  BaseLLMProvider  │
    │ (FinanceAgent)  │                            │    (abstract)     │
    │                 │ ←──── LLMResponse ──────── │                   │
    └────────────────┘                            └─────────┬─────────┘
                                                            │
                                                  ┌─────────┴─────────┐
                                                  │   MockLLMProvider │
                                                  │   (or a real one) │
                                                  └───────────────────┘

Failure Contract:
    Providers report failures in one of three ways, which the Agent Runtime
    maps onto the orchestrator's error taxonomy:

        raise ConnectionError / TimeoutError  → CapabilityUnavailableError
        LLMResponse(finish_reason="error")    → ExecutionError
        any other exception                   → ExecutionError
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from boardroom.core.config import CapabilityConfig


# =============================================================================
# Response Model
# =============================================================================
class LLMUsage(BaseModel):
    """Token usage for one capability call."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class LLMResponse(BaseModel):
    """Standardized response from any capability provider.

    Attributes:
        content: The generated text.
        model: Model identifier that produced the response.
        usage: Token counts.
        finish_reason: "stop", "length" or "error". An "error" response is
            a capability that ran and failed.
        metadata: Provider-specific extras.
    """

    content: str
    model: str
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: str = Field(default="stop")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_error(self) -> bool:
        return self.finish_reason == "error"


# =============================================================================
# Abstract Base Provider
# =============================================================================
class BaseLLMProvider(ABC):
    """Abstract base class for capability providers.

    Subclasses implement ``generate_with_system``. The timeout from the
    CapabilityConfig is applied by the Agent Runtime, not here.
    """

    def __init__(self, config: CapabilityConfig) -> None:
        self._config = config

    @property
    def provider_name(self) -> str:
        return self._config.provider

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def config(self) -> CapabilityConfig:
        return self._config

    @abstractmethod
    async def generate_with_system(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Run the reasoning step.

        Args:
            system_prompt: Who the executive is (persona, goals).
            user_prompt: What the executive is asked to do.
            temperature: Override the configured temperature.
            max_tokens: Override the configured max_tokens.
            **kwargs: Provider-specific arguments.

        Returns:
            LLMResponse with the generated content.
        """
        ...

    async def validate(self) -> bool:
        """Check whether the provider is usable. Defaults to True."""
        return True

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"provider={self.provider_name!r}, "
            f"model={self.model!r})"
        )

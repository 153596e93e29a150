"""
boardroom.integrations.llm.factory - Capability Provider Factory
==================================================================

Maps ``CapabilityConfig.provider`` to a concrete provider.

Usage:
    >>> provider = create_llm_provider(CapabilityConfig(provider="mock"))
    >>> type(provider)  # MockLLMProvider
"""

from __future__ import annotations

from boardroom.core.config import CapabilityConfig
from boardroom.core.exceptions import ConfigurationError
from boardroom.integrations.llm.base import BaseLLMProvider


def create_llm_provider(config: CapabilityConfig) -> BaseLLMProvider:
    """Create a capability provider from configuration.

    Args:
        config: Capability configuration.

    Returns:
        A provider ready for ``generate_with_system`` calls.

    Raises:
        ConfigurationError: If the provider name is not recognized.
    """
    provider_name = config.provider.lower()

    if provider_name == "mock":
        from boardroom.integrations.llm.mock import MockLLMProvider
        return MockLLMProvider(config)

    raise ConfigurationError(
        message=(
            f"Unknown capability provider: '{provider_name}'. "
            f"Available providers: 'mock'."
        ),
        details={"provider": provider_name},
    )

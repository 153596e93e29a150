"""
boardroom.integrations.llm - Capability Providers
===================================================

The opaque reasoning capability every executive agent calls. Agents talk to
the BaseLLMProvider interface so the backend can be swapped without
changing agent code.

Available Providers:
    - BaseLLMProvider: Abstract contract.
    - MockLLMProvider: Configurable responses, failures and latency.
"""

from boardroom.integrations.llm.base import BaseLLMProvider, LLMResponse, LLMUsage
from boardroom.integrations.llm.factory import create_llm_provider
from boardroom.integrations.llm.mock import MockLLMProvider

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "LLMUsage",
    "MockLLMProvider",
    "create_llm_provider",
]

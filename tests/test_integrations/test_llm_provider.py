"""
Tests for boardroom.integrations.llm
======================================

These tests verify the capability provider layer:
    - LLMResponse and LLMUsage models
    - MockLLMProvider (queue, defaults, call tracking, failure simulation)
    - create_llm_provider factory function

No real capability is ever called.
"""

import pytest

from boardroom.core.config import CapabilityConfig
from boardroom.core.exceptions import ConfigurationError
from boardroom.integrations.llm.base import BaseLLMProvider, LLMResponse, LLMUsage
from boardroom.integrations.llm.factory import create_llm_provider
from boardroom.integrations.llm.mock import MockLLMProvider


# =============================================================================
# Tests: Response Models
# =============================================================================
class TestLLMResponse:
    def test_usage_defaults(self) -> None:
        usage = LLMUsage()
        assert (usage.prompt_tokens, usage.completion_tokens, usage.total_tokens) == (0, 0, 0)

    def test_error_flag(self) -> None:
        assert LLMResponse(content="x", model="m", finish_reason="error").is_error
        assert not LLMResponse(content="x", model="m").is_error


# =============================================================================
# Tests: MockLLMProvider
# =============================================================================
class TestMockLLMProvider:
    async def test_default_response(self) -> None:
        provider = MockLLMProvider(default_response="Hold the course.")
        response = await provider.generate_with_system("system", "prompt")
        assert response.content == "Hold the course."
        assert response.metadata["source"] == "default"

    async def test_queue_is_fifo(self, mock_llm_provider) -> None:
        mock_llm_provider.queue_response("first")
        mock_llm_provider.queue_response("second")
        assert mock_llm_provider.queue_size == 2

        assert (await mock_llm_provider.generate_with_system("s", "p")).content == "first"
        assert (await mock_llm_provider.generate_with_system("s", "p")).content == "second"
        assert mock_llm_provider.queue_size == 0

    async def test_call_history(self, mock_llm_provider) -> None:
        await mock_llm_provider.generate_with_system(
            "You are the CFO", "Review burn", temperature=0.2, max_tokens=100
        )
        call = mock_llm_provider.call_history[0]
        assert call["system_prompt"] == "You are the CFO"
        assert call["prompt"] == "Review burn"
        assert call["temperature"] == 0.2
        assert mock_llm_provider.call_count == 1

        mock_llm_provider.clear_history()
        assert mock_llm_provider.call_count == 0

    async def test_fail_next_error_mode(self, mock_llm_provider) -> None:
        mock_llm_provider.fail_next(1, message="quota")
        failed = await mock_llm_provider.generate_with_system("s", "p")
        assert failed.is_error
        assert failed.content == "quota"
        assert not (await mock_llm_provider.generate_with_system("s", "p")).is_error

    async def test_unavailable_mode(self, mock_llm_provider) -> None:
        mock_llm_provider.set_should_fail(True, mode="unavailable")
        with pytest.raises(ConnectionError):
            await mock_llm_provider.generate_with_system("s", "p")

    async def test_raise_mode(self, mock_llm_provider) -> None:
        mock_llm_provider.fail_next(1, mode="raise")
        with pytest.raises(RuntimeError):
            await mock_llm_provider.generate_with_system("s", "p")

    async def test_should_fail_can_be_reset(self, mock_llm_provider) -> None:
        mock_llm_provider.set_should_fail(True)
        mock_llm_provider.set_should_fail(False)
        assert not (await mock_llm_provider.generate_with_system("s", "p")).is_error

    async def test_validate(self, mock_llm_provider) -> None:
        assert await mock_llm_provider.validate() is True


# =============================================================================
# Tests: Factory
# =============================================================================
class TestFactory:
    def test_mock_provider(self) -> None:
        provider = create_llm_provider(CapabilityConfig(provider="mock", model="m-1"))
        assert isinstance(provider, MockLLMProvider)
        assert isinstance(provider, BaseLLMProvider)
        assert provider.model == "m-1"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            create_llm_provider(CapabilityConfig(provider="oracle"))
        assert exc_info.value.details["provider"] == "oracle"

"""
Tests for boardroom.agents.base
=================================

BaseAgent is a template method: execute_task() validates, runs _execute(),
maps failures onto the AgentError hierarchy and records performance.
A minimal concrete agent is defined here so the base behaviour is tested
in isolation from the executive templates.
"""

import asyncio
from typing import Any

import pytest

from boardroom.agents.base import BaseAgent
from boardroom.core.config import CapabilityConfig
from boardroom.core.enums import Capability
from boardroom.core.exceptions import (
    CapabilityUnavailableError,
    ExecutionError,
    InvalidTaskError,
)
from boardroom.core.models import Task
from boardroom.integrations.llm.mock import MockLLMProvider
from tests.conftest import make_agent_config, make_task


class EchoAgent(BaseAgent):
    template_id = "echo"
    role = "Echo Officer"
    capabilities = frozenset({Capability.ANALYSIS})

    async def _validate_task(self, task: Task) -> bool:
        return "objective" in task.payload

    async def _execute(self, task: Task) -> dict[str, Any]:
        if task.payload.get("explode"):
            raise KeyError("missing figure")
        response = await self._call_capability(self._objective(task), task=task)
        return self._create_result(task, response, echoed=True)


def _agent(provider: MockLLMProvider, **config_fields) -> EchoAgent:
    return EchoAgent(make_agent_config("echo", name="Echo", **config_fields), provider)


# =============================================================================
# Test: Identity
# =============================================================================
class TestIdentity:
    def test_properties(self, mock_llm_provider) -> None:
        agent = _agent(mock_llm_provider)
        assert agent.agent_id == "org-1/echo"
        assert agent.organization_id == "org-1"
        assert agent.name == "Echo"
        assert agent.can_handle(Capability.ANALYSIS)
        assert agent.can_handle("analysis")
        assert not agent.can_handle(Capability.FINANCE)

    def test_config_is_private_copy(self, mock_llm_provider) -> None:
        config = make_agent_config("echo", goals={"growth": 0.1})
        agent = EchoAgent(config, mock_llm_provider)
        config.goals["growth"] = 0.9
        assert agent.config.goals == {"growth": 0.1}


# =============================================================================
# Test: Execution
# =============================================================================
class TestExecuteTask:
    async def test_success(self, mock_llm_provider) -> None:
        mock_llm_provider.queue_response("Focus on retention.")
        agent = _agent(mock_llm_provider)

        result = await agent.execute_task(make_task(payload={"objective": "Grow"}))

        assert result["summary"] == "Focus on retention."
        assert result["agent_id"] == "org-1/echo"
        assert result["objective"] == "Grow"
        assert result["echoed"] is True
        assert agent.performance.tasks_completed == 1
        assert agent.performance.in_flight == 0

    async def test_system_prompt_renders_personality_and_goals(self, mock_llm_provider) -> None:
        agent = _agent(
            mock_llm_provider,
            personality={"tone": "analytical"},
            goals={"runwayMonths": 18},
        )
        await agent.execute_task(make_task())

        system_prompt = mock_llm_provider.call_history[0]["system_prompt"]
        assert "You are Echo, the Echo Officer" in system_prompt
        assert "- tone: analytical" in system_prompt
        assert "- runwayMonths: 18" in system_prompt

    async def test_invalid_task(self, mock_llm_provider) -> None:
        agent = _agent(mock_llm_provider)
        with pytest.raises(InvalidTaskError) as exc_info:
            await agent.execute_task(make_task(payload={}))
        assert exc_info.value.task_id == "task-1"
        assert agent.performance.total_tasks == 0

    async def test_error_response_becomes_execution_error(self, mock_llm_provider) -> None:
        mock_llm_provider.fail_next(1, mode="error")
        agent = _agent(mock_llm_provider)

        with pytest.raises(ExecutionError) as exc_info:
            await agent.execute_task(make_task())

        assert exc_info.value.task_id == "task-1"
        assert agent.performance.tasks_failed == 1

    async def test_connection_failure_is_unavailable(self, mock_llm_provider) -> None:
        mock_llm_provider.fail_next(1, mode="unavailable")
        with pytest.raises(CapabilityUnavailableError):
            await _agent(mock_llm_provider).execute_task(make_task())

    async def test_provider_crash_is_execution_error(self, mock_llm_provider) -> None:
        mock_llm_provider.fail_next(1, mode="raise")
        with pytest.raises(ExecutionError):
            await _agent(mock_llm_provider).execute_task(make_task())

    async def test_timeout_is_unavailable(self) -> None:
        provider = MockLLMProvider(
            config=CapabilityConfig(timeout_seconds=0.01),
            latency=1.0,
        )
        with pytest.raises(CapabilityUnavailableError):
            await _agent(provider).execute_task(make_task())

    async def test_unexpected_exception_is_wrapped(self, mock_llm_provider) -> None:
        task = make_task(payload={"objective": "x", "explode": True})
        with pytest.raises(ExecutionError) as exc_info:
            await _agent(mock_llm_provider).execute_task(task)
        assert "KeyError" in exc_info.value.message

    async def test_concurrent_tasks_tracked(self, mock_llm_provider) -> None:
        mock_llm_provider.set_latency(0.01)
        agent = _agent(mock_llm_provider)

        await asyncio.gather(*(agent.execute_task(make_task(f"t{i}")) for i in range(5)))

        assert agent.performance.tasks_completed == 5
        assert agent.performance.in_flight == 0


# =============================================================================
# Test: Helpers
# =============================================================================
class TestExtractItems:
    def test_numbered_list(self) -> None:
        text = "Initiatives:\n1. Expand to EU\n2. Launch partner program\n\nRisks:\n- FX"
        assert BaseAgent._extract_items(text, "initiatives") == [
            "Expand to EU",
            "Launch partner program",
        ]

    def test_missing_header(self) -> None:
        assert BaseAgent._extract_items("No structure here", "risks") == []

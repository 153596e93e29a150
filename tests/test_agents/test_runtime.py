"""
Tests for boardroom.agents.runtime
====================================

What's Being Tested:
    - Handles are instantiated on first use and then reused
    - Config upserts do not refresh a live handle until it is evicted
    - Capability selectors pick the first-registered matching config
    - Unknown templates fall back to the generic executive
"""

import asyncio

import pytest

from boardroom.agents.executives import FinanceAgent, GenericExecutiveAgent
from boardroom.core.enums import Capability
from boardroom.core.exceptions import NotFoundError
from boardroom.core.models import AgentSelector
from tests.conftest import make_agent_config, make_task


class TestHandles:
    async def test_instantiated_once(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("finance_cfo"))

        first = await runtime.get_handle("org-1", "finance_cfo")
        second = await runtime.get_handle("org-1", "finance_cfo")

        assert first is second
        assert isinstance(first, FinanceAgent)

    async def test_concurrent_resolution_shares_handle(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("finance_cfo"))
        handles = await asyncio.gather(
            *(runtime.get_handle("org-1", "finance_cfo") for _ in range(10))
        )
        assert len({id(h) for h in handles}) == 1

    async def test_upsert_does_not_refresh_until_evicted(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("finance_cfo", goals={"runwayMonths": 18}))
        handle = await runtime.get_handle("org-1", "finance_cfo")

        await config_store.upsert(make_agent_config("finance_cfo", goals={"runwayMonths": 24}))
        assert (await runtime.get_handle("org-1", "finance_cfo")) is handle
        assert handle.config.goals == {"runwayMonths": 18}

        assert runtime.evict("org-1", "finance_cfo") is True
        refreshed = await runtime.get_handle("org-1", "finance_cfo")
        assert refreshed.config.goals == {"runwayMonths": 24}

    async def test_missing_config(self, runtime) -> None:
        with pytest.raises(NotFoundError):
            await runtime.get_handle("org-1", "finance_cfo")

    async def test_unknown_template_uses_generic(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("chief_of_staff"))
        handle = await runtime.get_handle("org-1", "chief_of_staff")
        assert isinstance(handle, GenericExecutiveAgent)
        assert handle.agent_id == "org-1/chief_of_staff"

    async def test_handles_scoped_by_org(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("finance_cfo"))
        await config_store.upsert(make_agent_config("finance_cfo", organization_id="org-2"))
        await runtime.get_handle("org-1", "finance_cfo")
        await runtime.get_handle("org-2", "finance_cfo")

        assert [h.agent_id for h in runtime.handles("org-2")] == ["org-2/finance_cfo"]
        assert len(runtime.handles()) == 2


class TestResolve:
    async def test_template_selector(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("finance_cfo"))
        handle = await runtime.resolve("org-1", AgentSelector.template("finance_cfo"))
        assert handle.agent_id == "org-1/finance_cfo"

    async def test_capability_picks_first_registered(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("chief_of_staff"))
        await config_store.upsert(make_agent_config("generic_strategic"))

        handle = await runtime.resolve("org-1", AgentSelector.capability(Capability.ANALYSIS))

        assert handle.agent_id == "org-1/chief_of_staff"

    async def test_capability_without_provider(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("generic_strategic"))
        with pytest.raises(NotFoundError):
            await runtime.resolve("org-1", AgentSelector.capability(Capability.OUTREACH))

    async def test_unknown_capability_name(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("generic_strategic"))
        with pytest.raises(NotFoundError):
            await runtime.resolve("org-1", AgentSelector.capability("telepathy"))

    async def test_capability_is_scoped_to_org(self, runtime, config_store) -> None:
        await config_store.upsert(make_agent_config("finance_cfo", organization_id="org-2"))
        with pytest.raises(NotFoundError):
            await runtime.resolve("org-1", AgentSelector.capability(Capability.FINANCE))


class TestExecute:
    async def test_execute_runs_handle(self, runtime, config_store, mock_llm_provider) -> None:
        await config_store.upsert(make_agent_config("finance_cfo"))
        handle = await runtime.get_handle("org-1", "finance_cfo")

        result = await runtime.execute(handle, make_task(payload={"objective": "Budget"}))

        assert result["agent_id"] == "org-1/finance_cfo"
        assert mock_llm_provider.call_count == 1
        assert handle.performance.tasks_completed == 1

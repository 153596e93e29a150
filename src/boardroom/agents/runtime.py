"""
boardroom.agents.runtime - Agent Runtime
==========================================

Turns stored AgentConfigs into live agent handles and runs tasks on them.

Architecture Context:

    ┌────────────┐  resolve(org, selector)  ┌──────────────────────────┐
    │ Dispatcher │ ───────────────────────→ │       AgentRuntime       │
    │            │                          │                          │
    │            │ ←──── BaseAgent ──────── │  ┌─ Handle Cache ─────┐  │
    │            │                          │  │ org-1/finance_cfo  │  │
    │            │  execute(handle, task)   │  │ org-1/sales_vp     │  │
    │            │ ───────────────────────→ │  └────────────────────┘  │
    └────────────┘ ←── result | AgentError  └────────────┬─────────────┘
                                                         │ get / list
                                                ┌────────┴─────────┐
                                                │ AgentConfigStore │
                                                └──────────────────┘

Handle Lifetime:
    A handle is instantiated from the config store on first use and then
    reused for the lifetime of the runtime. Later config upserts do NOT
    refresh an existing handle; call ``evict`` to force re-instantiation.

Capability Resolution:
    A capability selector resolves to the FIRST config of the organization,
    in first-registered order, whose template advertises the capability.

The runtime never updates Task or Workflow state.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog

from boardroom.agents.base import BaseAgent
from boardroom.agents.registry import TemplateRegistry
from boardroom.core.enums import Capability, SelectorKind
from boardroom.core.exceptions import NotFoundError
from boardroom.core.models import AgentConfig, AgentSelector, Task
from boardroom.integrations.llm.base import BaseLLMProvider
from boardroom.orchestration.config_store import AgentConfigStore

logger = structlog.get_logger()


class AgentRuntime:
    """Instantiates and executes executive agents.

    Attributes:
        _handles: Live handles keyed by agent id ("{org}/{template}"),
            in instantiation order.
        _instantiate_locks: One lock per agent id so two workers resolving
            the same slot at once end up sharing a single handle.
    """

    def __init__(
        self,
        config_store: AgentConfigStore,
        llm_provider: BaseLLMProvider,
        registry: Optional[TemplateRegistry] = None,
    ) -> None:
        self._config_store = config_store
        self._llm = llm_provider
        self._registry = registry or TemplateRegistry.default()
        self._handles: dict[str, BaseAgent] = {}
        self._instantiate_locks: dict[str, asyncio.Lock] = {}
        self._logger = logger.bind(component="agent_runtime")

    @property
    def registry(self) -> TemplateRegistry:
        return self._registry

    @property
    def llm_provider(self) -> BaseLLMProvider:
        return self._llm

    # =========================================================================
    # Instantiation
    # =========================================================================
    def instantiate(self, config: AgentConfig) -> BaseAgent:
        """Build a new live agent from a config (no caching)."""
        agent_class = self._registry.get(config.template_id)
        if not self._registry.is_known(config.template_id):
            self._logger.info(
                "unknown_template_fallback",
                template_id=config.template_id,
                agent_class=agent_class.__name__,
            )
        return agent_class(config, self._llm)

    async def get_handle(self, organization_id: str, template_id: str) -> BaseAgent:
        """Return the cached handle for the slot, instantiating on first use.

        Raises:
            NotFoundError: No config exists for the slot.
        """
        agent_id = f"{organization_id}/{template_id}"
        handle = self._handles.get(agent_id)
        if handle is not None:
            return handle

        lock = self._instantiate_locks.setdefault(agent_id, asyncio.Lock())
        async with lock:
            handle = self._handles.get(agent_id)
            if handle is None:
                config = await self._config_store.get(organization_id, template_id)
                handle = self.instantiate(config)
                self._handles[agent_id] = handle
                self._logger.info(
                    "agent_instantiated",
                    agent_id=agent_id,
                    agent_class=type(handle).__name__,
                )
        return handle

    async def resolve(
        self, organization_id: str, selector: AgentSelector
    ) -> BaseAgent:
        """Resolve a task's selector to a live handle.

        Raises:
            NotFoundError: No config matches the selector.
        """
        if selector.kind == SelectorKind.TEMPLATE:
            return await self.get_handle(organization_id, selector.value)

        try:
            capability: Optional[Capability] = Capability(selector.value)
        except ValueError:
            capability = None

        if capability is not None:
            for config in await self._config_store.list(organization_id):
                if capability in self._registry.capabilities_for(config.template_id):
                    return await self.get_handle(organization_id, config.template_id)

        raise NotFoundError(
            entity="agent",
            key=f"{organization_id}/{selector}",
            message=(
                f"No agent in organization '{organization_id}' "
                f"provides capability '{selector.value}'"
            ),
        )

    def evict(self, organization_id: str, template_id: str) -> bool:
        """Drop a cached handle so the next use re-reads its config."""
        return self._handles.pop(f"{organization_id}/{template_id}", None) is not None

    def handles(self, organization_id: Optional[str] = None) -> list[BaseAgent]:
        """Live handles, optionally restricted to one organization."""
        return [
            handle
            for handle in self._handles.values()
            if organization_id is None or handle.organization_id == organization_id
        ]

    # =========================================================================
    # Execution
    # =========================================================================
    async def execute(self, handle: BaseAgent, task: Task) -> dict[str, Any]:
        """Run one attempt of ``task`` on ``handle``.

        Returns:
            The agent's result.

        Raises:
            AgentError: InvalidTaskError, CapabilityUnavailableError or
                ExecutionError, straight from the agent.
        """
        return await handle.execute_task(task)

"""
boardroom.agents.registry - Template Registry
===============================================

Maps a ``template_id`` to the BaseAgent subclass that implements it.
Capability selectors are resolved against the capabilities each class
advertises.

Unknown template ids resolve to GenericExecutiveAgent, so an organization
can configure an archetype the process does not know and still get its
tasks executed.

Usage:
    >>> registry = TemplateRegistry.default()
    >>> registry.get("finance_cfo")
    <class 'FinanceAgent'>
    >>> registry.register(BoardAdvisorAgent)
"""

from __future__ import annotations

from typing import Optional

from boardroom.agents.base import BaseAgent
from boardroom.agents.executives import (
    FinanceAgent,
    GenericExecutiveAgent,
    MarketingAgent,
    SalesAgent,
    StrategyAgent,
)
from boardroom.core.enums import Capability


class TemplateRegistry:
    """template_id → agent class lookup."""

    def __init__(
        self,
        fallback: type[BaseAgent] = GenericExecutiveAgent,
    ) -> None:
        self._templates: dict[str, type[BaseAgent]] = {}
        self._fallback = fallback

    @classmethod
    def default(cls) -> TemplateRegistry:
        """Registry preloaded with the built-in executive templates."""
        registry = cls()
        for agent_class in (StrategyAgent, FinanceAgent, MarketingAgent, SalesAgent):
            registry.register(agent_class)
        return registry

    def register(
        self,
        agent_class: type[BaseAgent],
        template_id: Optional[str] = None,
    ) -> None:
        """Register a class under its own template_id (or an explicit one).

        Re-registering a template id replaces the previous class.
        """
        self._templates[template_id or agent_class.template_id] = agent_class

    def get(self, template_id: str) -> type[BaseAgent]:
        return self._templates.get(template_id, self._fallback)

    def is_known(self, template_id: str) -> bool:
        return template_id in self._templates

    def capabilities_for(self, template_id: str) -> frozenset[Capability]:
        return self.get(template_id).capabilities

    @property
    def template_ids(self) -> list[str]:
        return list(self._templates)

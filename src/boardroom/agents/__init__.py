"""
boardroom.agents - Executive Agent Layer
==========================================

    - base:        BaseAgent (template method, capability access)
    - executives:  Strategy, Finance, Marketing, Sales, Generic
    - registry:    template_id → agent class
    - runtime:     AgentRuntime (instantiate, resolve, execute)
"""

from boardroom.agents.base import BaseAgent
from boardroom.agents.executives import (
    FinanceAgent,
    GenericExecutiveAgent,
    MarketingAgent,
    SalesAgent,
    StrategyAgent,
)
from boardroom.agents.registry import TemplateRegistry
from boardroom.agents.runtime import AgentRuntime

__all__ = [
    "AgentRuntime",
    "BaseAgent",
    "FinanceAgent",
    "GenericExecutiveAgent",
    "MarketingAgent",
    "SalesAgent",
    "StrategyAgent",
    "TemplateRegistry",
]

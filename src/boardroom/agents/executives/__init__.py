"""
boardroom.agents.executives - Executive Agent Templates
=========================================================

    - StrategyAgent:          generic_strategic (Strategic CEO)
    - FinanceAgent:           finance_cfo (Finance CFO)
    - MarketingAgent:         marketing_cmo
    - SalesAgent:             sales_vp
    - GenericExecutiveAgent:  fallback for unregistered templates
"""

from boardroom.agents.executives.finance import FinanceAgent
from boardroom.agents.executives.generic import GenericExecutiveAgent
from boardroom.agents.executives.marketing import MarketingAgent
from boardroom.agents.executives.sales import SalesAgent
from boardroom.agents.executives.strategy import StrategyAgent

__all__ = [
    "FinanceAgent",
    "GenericExecutiveAgent",
    "MarketingAgent",
    "SalesAgent",
    "StrategyAgent",
]

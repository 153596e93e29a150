"""
boardroom.agents.executives.finance - Finance CFO
===================================================

The ``finance_cfo`` template. Besides the capability's narrative it works
out runway from the numbers it is given and checks it against the
``runwayMonths`` goal of its config, when both are present.

    Input (task.payload):
        {
            "objective": "Review Q3 burn",         # REQUIRED
            "financials": {                         # optional, numeric values
                "cash": 1800000,
                "monthly_burn": 100000,
                "revenue": 250000,
            },
        }

    Output:
        {
            "summary": "...",
            "runway_months": 18.0,        # None without cash and monthly_burn
            "runway_on_target": True,     # None without a runwayMonths goal
            "recommendations": [...],
            ...
        }
"""

from __future__ import annotations

from numbers import Number
from typing import Any, Optional

from boardroom.agents.base import BaseAgent
from boardroom.core.enums import Capability
from boardroom.core.models import Task


class FinanceAgent(BaseAgent):
    """Finance CFO: runway, margins, forecasts and reporting.

    Rejects payloads whose ``financials`` is not a mapping of numbers; a CFO
    fed strings in place of figures cannot produce a meaningful forecast.
    """

    template_id = "finance_cfo"
    role = "Chief Financial Officer"
    capabilities = frozenset({
        Capability.FINANCE,
        Capability.FORECASTING,
        Capability.REPORTING,
    })

    async def _validate_task(self, task: Task) -> bool:
        if not self._objective(task):
            return False

        financials = task.payload.get("financials")
        if financials is None:
            return True
        if not isinstance(financials, dict):
            self._logger.warning("finance_task_bad_financials", task_id=task.task_id)
            return False
        return all(
            isinstance(value, Number) and not isinstance(value, bool)
            for value in financials.values()
        )

    async def _execute(self, task: Task) -> dict[str, Any]:
        financials: dict[str, Any] = task.payload.get("financials") or {}
        runway = self._runway_months(financials)
        target = self._config.goals.get("runwayMonths")

        on_target: Optional[bool] = None
        if runway is not None and isinstance(target, Number):
            on_target = runway >= target

        response = await self._call_capability(
            self._build_prompt(self._objective(task), financials, runway),
            task=task,
        )

        self._logger.info(
            "finance_analysis_completed",
            task_id=task.task_id,
            runway_months=runway,
            runway_on_target=on_target,
        )

        return self._create_result(
            task,
            response,
            runway_months=runway,
            runway_on_target=on_target,
            recommendations=self._extract_items(response.content, "recommendations"),
        )

    @staticmethod
    def _runway_months(financials: dict[str, Any]) -> Optional[float]:
        cash = financials.get("cash")
        burn = financials.get("monthly_burn")
        if cash is None or not burn or burn <= 0:
            return None
        return round(cash / burn, 1)

    @staticmethod
    def _build_prompt(
        objective: str,
        financials: dict[str, Any],
        runway: Optional[float],
    ) -> str:
        parts = [f"## Objective\n{objective}\n"]
        if financials:
            figures = "\n".join(f"- {k}: {v}" for k, v in financials.items())
            parts.append(f"## Financials\n{figures}\n")
        if runway is not None:
            parts.append(f"## Computed Runway\n{runway} months\n")
        parts.append(
            "## Required Output Format\n"
            "1. Financial assessment\n"
            "2. Recommendations (numbered list)\n"
        )
        return "\n".join(parts)

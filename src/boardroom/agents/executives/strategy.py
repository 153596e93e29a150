"""
boardroom.agents.executives.strategy - Strategic CEO
======================================================

The ``generic_strategic`` template: the organization's chief executive. It
turns an objective into a strategic assessment with prioritized
initiatives and the risks that come with them.

    Input (task.payload):
        {
            "objective": "Enter the DACH market",  # REQUIRED
            "horizon": "12 months",                # optional
            "context": "Series A, 40 staff",       # optional
        }

    Output:
        {
            "summary": "...",            # full capability response
            "initiatives": [...],        # parsed from "Initiatives"
            "risks": [...],              # parsed from "Risks"
            "horizon": "12 months",
            ...                          # common fields from BaseAgent
        }
"""

from __future__ import annotations

from typing import Any

from boardroom.agents.base import BaseAgent
from boardroom.core.enums import Capability
from boardroom.core.models import Task


class StrategyAgent(BaseAgent):
    """Strategic CEO: long-term direction and priorities."""

    template_id = "generic_strategic"
    role = "Chief Executive Officer"
    capabilities = frozenset({Capability.STRATEGY, Capability.ANALYSIS})

    async def _validate_task(self, task: Task) -> bool:
        if not self._objective(task):
            self._logger.warning(
                "strategy_task_missing_objective",
                task_id=task.task_id,
                available_keys=list(task.payload.keys()),
            )
            return False
        return True

    async def _execute(self, task: Task) -> dict[str, Any]:
        horizon = task.payload.get("horizon", "12 months")
        response = await self._call_capability(
            self._build_prompt(
                objective=self._objective(task),
                horizon=horizon,
                context=task.payload.get("context", ""),
            ),
            task=task,
        )
        return self._create_result(
            task,
            response,
            initiatives=self._extract_items(response.content, "initiatives"),
            risks=self._extract_items(response.content, "risks"),
            horizon=horizon,
        )

    @staticmethod
    def _build_prompt(objective: str, horizon: str, context: str = "") -> str:
        parts = [f"## Objective\n{objective}\n", f"## Horizon\n{horizon}\n"]
        if context:
            parts.append(f"## Context\n{context}\n")
        parts.append(
            "## Required Output Format\n"
            "1. Assessment (one paragraph)\n"
            "2. Initiatives (numbered list, highest priority first)\n"
            "3. Risks (numbered list)\n"
        )
        return "\n".join(parts)

"""
boardroom.agents.executives.sales - Sales VP
==============================================

The ``sales_vp`` template: lead follow-ups and outreach. Given a list of
leads it drafts one follow-up per lead, capped by the ``maxFollowups`` goal
(default 3, matching the follow-up batch size of the original CRM engine).

    Input (task.payload):
        {
            "objective": "Re-engage stale leads",        # REQUIRED
            "leads": [{"name": "Acme", "stage": "demo"}],  # optional
        }

    Output:
        {
            "summary": "...",
            "followups": [{"lead": "Acme", "stage": "demo"}, ...],
            ...
        }
"""

from __future__ import annotations

from typing import Any

from boardroom.agents.base import BaseAgent
from boardroom.core.enums import Capability
from boardroom.core.models import Task

DEFAULT_MAX_FOLLOWUPS = 3


class SalesAgent(BaseAgent):
    """Sales VP: pipeline follow-up and outbound outreach."""

    template_id = "sales_vp"
    role = "VP of Sales"
    capabilities = frozenset({Capability.LEAD_FOLLOWUP, Capability.OUTREACH})

    async def _validate_task(self, task: Task) -> bool:
        if not self._objective(task):
            return False
        leads = task.payload.get("leads")
        if leads is None:
            return True
        return isinstance(leads, list) and all(
            isinstance(lead, dict) and lead.get("name") for lead in leads
        )

    async def _execute(self, task: Task) -> dict[str, Any]:
        leads: list[dict[str, Any]] = task.payload.get("leads") or []
        limit = self._config.goals.get("maxFollowups", DEFAULT_MAX_FOLLOWUPS)
        selected = leads[:limit] if isinstance(limit, int) and limit >= 0 else leads

        prompt = f"## Objective\n{self._objective(task)}\n"
        if selected:
            prompt += "\n## Leads\n" + "\n".join(
                f"- {lead['name']} ({lead.get('stage', 'unknown')})" for lead in selected
            )

        response = await self._call_capability(prompt, task=task)
        return self._create_result(
            task,
            response,
            followups=[
                {"lead": lead["name"], "stage": lead.get("stage", "unknown")}
                for lead in selected
            ],
        )

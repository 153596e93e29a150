"""
boardroom.agents.executives.marketing - Marketing CMO
=======================================================

The ``marketing_cmo`` template: content plans and campaigns.

    Input (task.payload):
        {
            "objective": "Launch spring campaign",   # REQUIRED
            "channels": ["email", "social"],         # optional list of str
            "audience": "SMB founders",              # optional
        }
"""

from __future__ import annotations

from typing import Any

from boardroom.agents.base import BaseAgent
from boardroom.core.enums import Capability
from boardroom.core.models import Task

DEFAULT_CHANNELS = ["email", "social", "content"]


class MarketingAgent(BaseAgent):
    """Marketing CMO: content calendar and campaign planning."""

    template_id = "marketing_cmo"
    role = "Chief Marketing Officer"
    capabilities = frozenset({Capability.CONTENT, Capability.CAMPAIGNS})

    async def _validate_task(self, task: Task) -> bool:
        if not self._objective(task):
            return False
        channels = task.payload.get("channels")
        if channels is None:
            return True
        return isinstance(channels, list) and all(isinstance(c, str) for c in channels)

    async def _execute(self, task: Task) -> dict[str, Any]:
        channels = task.payload.get("channels") or DEFAULT_CHANNELS
        audience = task.payload.get("audience", "")

        parts = [
            f"## Objective\n{self._objective(task)}\n",
            "## Channels\n" + "\n".join(f"- {c}" for c in channels) + "\n",
        ]
        if audience:
            parts.append(f"## Audience\n{audience}\n")
        parts.append(
            "## Required Output Format\n"
            "1. Campaign concept\n"
            "2. Content ideas (numbered list, one per channel)\n"
        )

        response = await self._call_capability("\n".join(parts), task=task)
        return self._create_result(
            task,
            response,
            channels=channels,
            content_ideas=self._extract_items(response.content, "content ideas"),
        )

"""
boardroom.agents.executives.generic - Fallback Executive
==========================================================

Runs configs whose ``template_id`` has no registered class. Templates are
extensible; an organization may configure an archetype this process does
not know about, and its tasks should still run.
"""

from __future__ import annotations

from typing import Any

from boardroom.agents.base import BaseAgent
from boardroom.core.enums import Capability
from boardroom.core.models import Task


class GenericExecutiveAgent(BaseAgent):
    """Plain executive: passes the objective to the capability as is."""

    template_id = "generic"
    role = "Executive"
    capabilities = frozenset({Capability.ANALYSIS})

    async def _validate_task(self, task: Task) -> bool:
        return bool(self._objective(task))

    async def _execute(self, task: Task) -> dict[str, Any]:
        response = await self._call_capability(self._objective(task), task=task)
        return self._create_result(task, response)

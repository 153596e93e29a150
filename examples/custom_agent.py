"""
Custom Agent Example — Adding an Executive Template
=====================================================

Templates are extensible: register your own BaseAgent subclass under a new
``template_id`` and every organization can configure an executive of that
kind. A custom executive implements two methods:

    _validate_task(task)  — Can this executive process the payload?
    _execute(task)        — Do the work and return a result dict.

This example builds a BoardAdvisorAgent, shows an attempt failing past its
retry budget, and then uses the operator controls: ``retry_task`` on the
failed task, and ``cancel`` on a second workflow.

Usage:
    python examples/custom_agent.py
"""

from __future__ import annotations

import asyncio
from typing import Any

from boardroom import Orchestrator
from boardroom.agents.base import BaseAgent
from boardroom.agents.registry import TemplateRegistry
from boardroom.core.config import BoardroomConfig, DispatchConfig, RetryConfig
from boardroom.core.enums import Capability
from boardroom.core.models import AgentConfig, AgentSelector, Task, TaskSpec, WorkflowSpec
from boardroom.integrations.llm.mock import MockLLMProvider

ORG = "acme"


# =============================================================================
# Custom Executive: BoardAdvisorAgent
# =============================================================================
class BoardAdvisorAgent(BaseAgent):
    """Gives an outside view on a decision the executive team is weighing.

    Input Requirements:
        - objective (str): The decision under discussion.
        - options (list[str], optional): The alternatives on the table.
    """

    template_id = "board_advisor"
    role = "Independent Board Advisor"
    capabilities = frozenset({Capability.STRATEGY, Capability.ANALYSIS})

    async def _validate_task(self, task: Task) -> bool:
        options = task.payload.get("options", [])
        return bool(self._objective(task)) and isinstance(options, list)

    async def _execute(self, task: Task) -> dict[str, Any]:
        options = task.payload.get("options", [])
        prompt = f"## Decision\n{self._objective(task)}\n"
        if options:
            prompt += "\n## Options\n" + "\n".join(f"- {o}" for o in options) + "\n"
        prompt += "\nList your concerns under 'Concerns:' as a numbered list."

        response = await self._call_capability(prompt, task=task)
        return self._create_result(
            task,
            response,
            options=options,
            concerns=self._extract_items(response.content, "concerns"),
        )


async def main() -> None:
    registry = TemplateRegistry.default()
    registry.register(BoardAdvisorAgent)

    config = BoardroomConfig(
        retry=RetryConfig(max_attempts=2, initial_delay=0.01),
        dispatch=DispatchConfig(workers_per_organization=0),
    )
    provider = MockLLMProvider(
        default_response="Concerns:\n1. Integration risk\n2. Key-person dependency\n",
    )

    async with Orchestrator(config, llm_provider=provider, registry=registry) as boardroom:
        await boardroom.upsert_agent_config(AgentConfig(
            organization_id=ORG,
            template_id="board_advisor",
            name="Board Advisor",
            personality={"tone": "skeptical"},
        ))
        await boardroom.upsert_agent_config(AgentConfig(
            organization_id=ORG,
            template_id="generic_strategic",
            name="Strategic CEO",
        ))

        # --- A task that exhausts its retries ---
        provider.set_should_fail(True, message="Advisor model overloaded")
        workflow_id = await boardroom.submit(ORG, WorkflowSpec(
            name="Acquisition",
            tasks=[
                TaskSpec(
                    task_id="advice",
                    agent_selector=AgentSelector.template("board_advisor"),
                    payload={
                        "objective": "Should we acquire Initech?",
                        "options": ["Acquire", "Partner", "Walk away"],
                    },
                ),
                TaskSpec(
                    task_id="memo",
                    agent_selector=AgentSelector.template("generic_strategic"),
                    payload={"objective": "Draft the acquisition memo"},
                ),
            ],
        ))

        # Run only "advice"; the pending memo keeps the workflow open.
        execution = await boardroom.dispatcher.dispatch_once(ORG)
        await execution

        advice = await boardroom.get_task("advice")
        snapshot = await boardroom.get_workflow(workflow_id)
        print(f"Advice attempts   : {advice.attempt} ({advice.error['message']})")
        print(f"Workflow          : {snapshot.state.value}")
        print(f"Dead letters      : {len(boardroom.get_dead_letters())}")

        # --- Operator retry once the capability recovers ---
        provider.set_should_fail(False)
        advice = await boardroom.retry_task("advice")
        print(f"Retried advice    : revision {advice.revision}, {advice.state.value}")

        await boardroom.run_pending(ORG)
        advice = await boardroom.get_task("advice")
        snapshot = await boardroom.get_workflow(workflow_id)
        print(f"Workflow          : {snapshot.state.value}")
        print(f"Advisor concerns  : {advice.result['concerns']}")

        # --- A workflow cancelled before it runs ---
        workflow_id = await boardroom.submit(ORG, WorkflowSpec(
            name="Rebrand",
            tasks=[
                TaskSpec(
                    task_id="rebrand",
                    agent_selector=AgentSelector.template("board_advisor"),
                    payload={"objective": "Should we rebrand?"},
                ),
            ],
        ))
        snapshot = await boardroom.cancel(workflow_id)
        print(f"Cancelled workflow: {snapshot.state.value}")


if __name__ == "__main__":
    asyncio.run(main())

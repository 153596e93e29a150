"""
Single Agent Example — One Task for the CFO
=============================================

The simplest way to use Boardroom: configure one executive, submit a
one-task workflow, wait for it and read the result.

This is useful for:
    - Quick prototyping of a persona (personality + goals)
    - Debugging an executive template in isolation

Usage:
    python examples/single_agent.py
"""

from __future__ import annotations

import asyncio

from boardroom import Orchestrator
from boardroom.core.models import AgentConfig, AgentSelector, TaskSpec, WorkflowSpec
from boardroom.integrations.llm.mock import MockLLMProvider


async def main() -> None:
    """Ask the CFO about runway and print the result."""
    provider = MockLLMProvider()
    provider.queue_response(
        "Runway is below target.\n"
        "Recommendations:\n"
        "1. Freeze non-critical hiring until Q2\n"
        "2. Renegotiate the cloud contract\n"
        "3. Open a bridge round conversation with existing investors\n"
    )

    async with Orchestrator(llm_provider=provider) as boardroom:
        await boardroom.upsert_agent_config(AgentConfig(
            organization_id="acme",
            template_id="finance_cfo",
            name="Finance CFO",
            personality={"tone": "analytical", "focus": "financial metrics"},
            goals={"runwayMonths": 18},
        ))

        workflow_id = await boardroom.submit("acme", WorkflowSpec(
            name="Runway check",
            tasks=[
                TaskSpec(
                    task_id="runway-check",
                    agent_selector=AgentSelector.template("finance_cfo"),
                    payload={
                        "objective": "Assess our runway and how to extend it",
                        "financials": {"cash": 1_200_000, "monthly_burn": 100_000},
                    },
                ),
            ],
        ))
        snapshot = await boardroom.wait_for_workflow(workflow_id, timeout=10)
        task = await boardroom.get_task("runway-check")

        print("Single Agent Task")
        print("-" * 40)
        print(f"Workflow : {snapshot.state.value}")
        print(f"Agent    : {task.assigned_agent}")
        print(f"Attempts : {task.attempt}")
        print(f"Duration : {task.duration_seconds:.3f}s")
        print(f"Runway   : {task.result['runway_months']} months "
              f"(on target: {task.result['runway_on_target']})")
        print()
        print("Recommendations:")
        for item in task.result["recommendations"]:
            print(f"  - {item}")


if __name__ == "__main__":
    asyncio.run(main())

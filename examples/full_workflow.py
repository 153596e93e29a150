"""
Full Workflow Example — Quarterly Board Review
================================================

A complete Boardroom workflow with four executives and a dependency chain:

    strategy (CEO) ──→ budget (CFO) ──→ launch (CMO)
                                    └─→ pipeline (Sales VP)

The CEO sets the strategy, the CFO budgets it, and marketing and sales
plan their parts once the budget exists. Marketing and sales run in
parallel on the background dispatch workers.

A CallbackEventSink prints every task completion and workflow update as
it happens, the way a dashboard would consume them.

All executives use MockLLMProvider for deterministic, offline execution.

Usage:
    python examples/full_workflow.py
"""

from __future__ import annotations

import asyncio

from boardroom import Orchestrator
from boardroom.core.config import BoardroomConfig, DispatchConfig
from boardroom.core.enums import Capability, FailurePolicy
from boardroom.core.models import (
    AgentConfig,
    AgentSelector,
    TaskOutcome,
    TaskSpec,
    WorkflowSnapshot,
    WorkflowSpec,
)
from boardroom.integrations.llm.mock import MockLLMProvider
from boardroom.orchestration.event_sink import CallbackEventSink

ORG = "acme"


# =============================================================================
# Executive Team
# =============================================================================
EXECUTIVES = [
    AgentConfig(
        organization_id=ORG,
        template_id="generic_strategic",
        name="Strategic CEO",
        personality={"tone": "visionary", "focus": "long-term growth"},
        goals={"marketShare": 0.2},
    ),
    AgentConfig(
        organization_id=ORG,
        template_id="finance_cfo",
        name="Finance CFO",
        personality={"tone": "analytical", "focus": "financial metrics"},
        goals={"runwayMonths": 18, "marginTarget": 0.65},
    ),
    AgentConfig(
        organization_id=ORG,
        template_id="marketing_cmo",
        name="Marketing CMO",
        personality={"tone": "energetic"},
        goals={"leadsPerMonth": 400},
    ),
    AgentConfig(
        organization_id=ORG,
        template_id="sales_vp",
        name="Sales VP",
        personality={"tone": "direct"},
        goals={"maxFollowups": 2},
    ),
]


# =============================================================================
# Event Sink Callbacks
# =============================================================================
def on_task_complete(task_id: str, outcome: TaskOutcome) -> None:
    status = "ok" if outcome.succeeded else outcome.error["error_code"]
    print(f"  task     {task_id:10s} → {outcome.state.value} ({status})")


def on_workflow_update(snapshot: WorkflowSnapshot) -> None:
    print(f"  workflow {snapshot.name:10s} → {snapshot.state.value} "
          f"({snapshot.completed_steps}/{snapshot.total_steps})")


async def main() -> None:
    """Run the quarterly review and print what each executive produced."""
    config = BoardroomConfig(dispatch=DispatchConfig(workers_per_organization=2))
    provider = MockLLMProvider(
        default_response=(
            "Initiatives:\n"
            "1. Expand into the DACH region\n"
            "2. Launch the self-serve tier\n"
            "\n"
            "Risks:\n"
            "- Hiring lag in sales engineering\n"
        ),
        latency=0.05,
    )
    sink = CallbackEventSink(
        on_task_complete=on_task_complete,
        on_workflow_update=on_workflow_update,
    )

    async with Orchestrator(config, llm_provider=provider, event_sink=sink) as boardroom:
        for executive in EXECUTIVES:
            await boardroom.upsert_agent_config(executive)

        workflow = WorkflowSpec(
            name="Q3 review",
            failure_policy=FailurePolicy.BEST_EFFORT,
            tasks=[
                TaskSpec(
                    task_id="strategy",
                    agent_selector=AgentSelector.template("generic_strategic"),
                    payload={"objective": "Set the priorities for next quarter"},
                ),
                TaskSpec(
                    task_id="budget",
                    agent_selector=AgentSelector.capability(Capability.FORECASTING),
                    payload={
                        "objective": "Budget next quarter's priorities",
                        "financials": {"cash": 2_400_000, "monthly_burn": 150_000},
                    },
                    depends_on=["strategy"],
                ),
                TaskSpec(
                    task_id="launch",
                    agent_selector=AgentSelector.template("marketing_cmo"),
                    payload={
                        "objective": "Plan the self-serve launch campaign",
                        "channels": ["LinkedIn", "Webinars"],
                    },
                    depends_on=["budget"],
                ),
                TaskSpec(
                    task_id="pipeline",
                    agent_selector=AgentSelector.template("sales_vp"),
                    payload={
                        "objective": "Follow up on the open enterprise deals",
                        "leads": [
                            {"name": "Globex", "stage": "proposal"},
                            {"name": "Initech", "stage": "demo"},
                            {"name": "Umbrella", "stage": "discovery"},
                        ],
                    },
                    depends_on=["budget"],
                ),
            ],
        )

        print("=" * 60)
        print("  Boardroom — Quarterly Review")
        print("=" * 60)

        workflow_id = await boardroom.submit(ORG, workflow)
        snapshot = await boardroom.wait_for_workflow(workflow_id, timeout=30)

        print()
        print(f"Workflow State : {snapshot.state.value}")
        print()
        print("Task Results:")
        for task in await boardroom.get_workflow_tasks(workflow_id):
            duration = task.duration_seconds or 0
            print(f"  [{task.state.value:9s}] {task.task_id:9s} "
                  f"{task.assigned_agent or '-':22s} ({duration:.3f}s)")

        print()
        print("Executive Performance:")
        for performance in boardroom.list_agents(ORG):
            print(f"  {performance.agent_id:24s} "
                  f"completed={performance.tasks_completed} "
                  f"success_rate={performance.success_rate:.0%}")

        metrics = await boardroom.get_metrics(ORG)
        print()
        print(f"Tasks: {metrics.total_tasks}  Success rate: {metrics.success_rate:.0%}")


if __name__ == "__main__":
    asyncio.run(main())

"""
Boardroom - Agentic AI Orchestrator
====================================

Boardroom runs workflows of tasks on a team of AI executives configured per
organization (Strategic CEO, Finance CFO, Marketing CMO, Sales VP):

    WorkflowSpec ─→ Orchestrator ─→ Task Queue ─→ Dispatch Workers ─→ Agents
                          │                                   │
                          └──── Workflow Tracker ←────────────┘
                                       │
                                  Event Sink

Architecture Layers (top to bottom):
    1. Facade               - Orchestrator
    2. Orchestration Layer  - Dispatcher, Workflow Tracker, Task Queue,
                              Config Store, Error Handler, Event Sink
    3. Agent Layer          - Executive templates and the Agent Runtime
    4. Integration Layer    - Capability (LLM) providers

Quick Start:
    >>> from boardroom import Orchestrator
    >>> async with Orchestrator() as boardroom:
    ...     workflow_id = await boardroom.submit("org-1", my_spec)
"""

# =============================================================================
# Package Version
# =============================================================================
__version__ = "0.1.0"

# =============================================================================
# Package-Level Exports
# =============================================================================
# The Orchestrator facade is the main entry point. For specific components,
# import from submodules directly:
#   from boardroom.core.config import BoardroomConfig
#   from boardroom.core.models import WorkflowSpec, TaskSpec, AgentSelector
# =============================================================================
from boardroom.facade import Orchestrator

__all__ = ["Orchestrator", "__version__"]

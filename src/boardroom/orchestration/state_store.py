"""
boardroom.orchestration.state_store - Key-Value State Persistence
===================================================================

The storage layer behind the orchestrator. Agent configs, workflows and
tasks are stored as pydantic models under string keys; nothing here assumes
a particular schema or backend.

Architecture:

    ┌──────────────────┐   save/get    ┌──────────────────┐
    │ AgentConfigStore │ ────────────→ │                  │
    └──────────────────┘               │                  │
    ┌──────────────────┐   save/get    │   State Store    │
    │ WorkflowTracker  │ ────────────→ │                  │
    └──────────────────┘               └──────────────────┘

Key Schema:
    - agent_config:{organization_id}/{template_id}  → AgentConfig
    - workflow:{workflow_id}                        → Workflow
    - task:{task_id}                                → Task

Implementations:
    - StateStore (ABC):       Abstract interface
    - InMemoryStateStore:     Dict-based, insertion ordered
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from boardroom.core.models import AgentConfig, Task, Workflow

logger = logging.getLogger(__name__)


def agent_config_key(organization_id: str, template_id: str) -> str:
    """Build the storage key (and agent id) for one config slot."""
    return f"{organization_id}/{template_id}"


# =============================================================================
# Abstract Base Class: StateStore
# =============================================================================
# Three entity types, each with save / get / list:
#   1. AgentConfig: one per (organization_id, template_id)
#   2. Workflow   : per workflow_id
#   3. Task       : per task_id
#
# Lists return entities in first-saved order. Re-saving an existing key
# replaces the value in place and keeps its position.
# =============================================================================
class StateStore(ABC):
    """Abstract base class for state persistence implementations.

    Components type-hint against this ABC so the backend can be swapped.
    """

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------
    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the storage backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Gracefully disconnect from the storage backend."""

    # -------------------------------------------------------------------------
    # Agent Config Operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def save_agent_config(self, config: AgentConfig) -> None:
        """Save or replace the config for (organization_id, template_id)."""

    @abstractmethod
    async def get_agent_config(
        self, organization_id: str, template_id: str
    ) -> Optional[AgentConfig]:
        """Return the config for the slot, or None."""

    @abstractmethod
    async def delete_agent_config(
        self, organization_id: str, template_id: str
    ) -> bool:
        """Delete a config. Returns True if one was removed."""

    @abstractmethod
    async def list_agent_configs(self, organization_id: str) -> list[AgentConfig]:
        """List an organization's configs in first-registered order."""

    # -------------------------------------------------------------------------
    # Workflow Operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def save_workflow(self, workflow: Workflow) -> None:
        """Save or replace a workflow."""

    @abstractmethod
    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Return a workflow by ID, or None."""

    @abstractmethod
    async def list_workflows(self, organization_id: str) -> list[Workflow]:
        """List an organization's workflows in submission order."""

    # -------------------------------------------------------------------------
    # Task Operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def save_task(self, task: Task) -> None:
        """Save or replace a task."""

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Task]:
        """Return a task by ID, or None."""

    @abstractmethod
    async def list_tasks(self, workflow_id: str) -> list[Task]:
        """List a workflow's tasks in submission order."""


# =============================================================================
# InMemoryStateStore Implementation
# =============================================================================
# Plain dicts keyed by entity ID. Python dicts keep insertion order and
# keep a key's position when its value is replaced, which gives the
# first-registered ordering the StateStore contract promises.
# =============================================================================
class InMemoryStateStore(StateStore):
    """In-memory state store for development and testing.

    Data is lost when the process ends.

    Example:
        >>> store = InMemoryStateStore()
        >>> await store.connect()
        >>> await store.save_workflow(workflow)
        >>> await store.get_workflow(workflow.workflow_id)
    """

    def __init__(self) -> None:
        self._agent_configs: dict[str, AgentConfig] = {}
        self._workflows: dict[str, Workflow] = {}
        self._tasks: dict[str, Task] = {}
        self._connected: bool = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------
    async def connect(self) -> None:
        self._connected = True
        logger.info("InMemoryStateStore connected")

    async def disconnect(self) -> None:
        """Clear all stored state and mark as disconnected."""
        self._agent_configs.clear()
        self._workflows.clear()
        self._tasks.clear()
        self._connected = False
        logger.info("InMemoryStateStore disconnected")

    # -------------------------------------------------------------------------
    # Agent Config Operations
    # -------------------------------------------------------------------------
    async def save_agent_config(self, config: AgentConfig) -> None:
        key = agent_config_key(config.organization_id, config.template_id)
        self._agent_configs[key] = config
        logger.debug("Saved agent config: %s", key)

    async def get_agent_config(
        self, organization_id: str, template_id: str
    ) -> Optional[AgentConfig]:
        return self._agent_configs.get(agent_config_key(organization_id, template_id))

    async def delete_agent_config(
        self, organization_id: str, template_id: str
    ) -> bool:
        key = agent_config_key(organization_id, template_id)
        if key in self._agent_configs:
            del self._agent_configs[key]
            logger.debug("Deleted agent config: %s", key)
            return True
        return False

    async def list_agent_configs(self, organization_id: str) -> list[AgentConfig]:
        return [
            config
            for config in self._agent_configs.values()
            if config.organization_id == organization_id
        ]

    # -------------------------------------------------------------------------
    # Workflow Operations
    # -------------------------------------------------------------------------
    async def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.workflow_id] = workflow
        logger.debug(
            "Saved workflow: %s (state=%s)", workflow.workflow_id, workflow.state
        )

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        return self._workflows.get(workflow_id)

    async def list_workflows(self, organization_id: str) -> list[Workflow]:
        return [
            workflow
            for workflow in self._workflows.values()
            if workflow.organization_id == organization_id
        ]

    # -------------------------------------------------------------------------
    # Task Operations
    # -------------------------------------------------------------------------
    async def save_task(self, task: Task) -> None:
        self._tasks[task.task_id] = task
        logger.debug("Saved task: %s (state=%s)", task.task_id, task.state)

    async def get_task(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    async def list_tasks(self, workflow_id: str) -> list[Task]:
        return [task for task in self._tasks.values() if task.workflow_id == workflow_id]

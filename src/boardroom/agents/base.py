"""
boardroom.agents.base - Abstract Executive Agent
==================================================

This module defines the BaseAgent abstract class, the live handle behind
every configured AI executive. An AgentConfig says WHO the executive is;
a BaseAgent instance is that executive, ready to accept tasks.

Template Method Pattern:
    All executives share the same execution skeleton:

    ┌─────────────────────────────────────────────────────┐
    │  BaseAgent.execute_task(task)   ← Public API        │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ 1. _validate_task(task)      ← Override this │   │
    │  │ 2. Mark the attempt in flight                │   │
    │  │ 3. _execute(task)            ← Override this │   │
    │  │ 4. Record success / failure in performance   │   │
    │  │ 5. Return the result dict                    │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Statelessness:
    An agent never touches Task or Workflow state. It returns a result or
    raises an AgentError; the orchestrator decides what that means. The only
    thing an agent keeps is its own AgentPerformance counters.

Error Mapping:
    _validate_task returns False          → InvalidTaskError (no retry)
    capability unreachable / timed out    → CapabilityUnavailableError
    capability returned an error result   → ExecutionError
    anything else raised by _execute      → ExecutionError

Subclass Contract:
    class BoardAdvisorAgent(BaseAgent):
        template_id = "board_advisor"
        role = "Board Advisor"
        capabilities = frozenset({Capability.STRATEGY})

        async def _validate_task(self, task):
            return bool(task.payload.get("objective"))

        async def _execute(self, task):
            response = await self._call_capability(self._build_prompt(task))
            return self._create_result(task, response)
"""

from __future__ import annotations

import asyncio
import re
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional, Union

import structlog

from boardroom.core.enums import Capability
from boardroom.core.exceptions import (
    AgentError,
    CapabilityUnavailableError,
    ExecutionError,
    InvalidTaskError,
)
from boardroom.core.models import AgentConfig, Task
from boardroom.core.state import AgentPerformance
from boardroom.integrations.llm.base import BaseLLMProvider, LLMResponse

logger = structlog.get_logger()


class BaseAgent(ABC):
    """Abstract base class for all executive agents.

    What BaseAgent Handles:
        - Identity derived from the AgentConfig ("{org}/{template}")
        - Task validation and error mapping
        - Persona prompt built from personality and goals
        - The capability call, with timeout
        - Performance counters

    What Subclasses Must Implement:
        - _validate_task(task): can this executive process the payload?
        - _execute(task): build the prompt, call the capability, shape output

    Class Attributes:
        template_id: Archetype this class implements.
        role: Job title used in the persona prompt.
        capabilities: Capabilities advertised for capability routing.
    """

    template_id: ClassVar[str] = "generic"
    role: ClassVar[str] = "Executive"
    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def __init__(self, config: AgentConfig, llm_provider: BaseLLMProvider) -> None:
        """Initialize the agent from its configuration.

        Args:
            config: The executive's identity, personality and goals. A
                private copy is kept, so later edits to the caller's object
                do not leak into a live agent.
            llm_provider: The reasoning capability this agent calls.
        """
        self._config = config.model_copy(deep=True)
        self._llm = llm_provider
        self._agent_id = config.agent_id
        self._performance = AgentPerformance(agent_id=self._agent_id)

        self._logger = logger.bind(
            agent_id=self._agent_id,
            template_id=config.template_id,
        )

    # =========================================================================
    # Properties
    # =========================================================================
    @property
    def agent_id(self) -> str:
        return self._agent_id

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def organization_id(self) -> str:
        return self._config.organization_id

    @property
    def performance(self) -> AgentPerformance:
        return self._performance

    def can_handle(self, capability: Union[Capability, str]) -> bool:
        return Capability(capability) in self.capabilities

    # =========================================================================
    # Task Execution (Template Method)
    # =========================================================================
    async def execute_task(self, task: Task) -> dict[str, Any]:
        """Execute a task and return its result.

        Subclasses should NOT override this method.

        Args:
            task: The task to execute. Only ``payload`` and the identifiers
                are read.

        Returns:
            The result dict produced by ``_execute``.

        Raises:
            InvalidTaskError: The payload does not fit this executive.
            CapabilityUnavailableError: The capability could not be reached.
            ExecutionError: The capability or the agent logic failed.
        """
        self._logger.info("task_execution_starting", task_id=task.task_id)

        # --- Step 1: Validate the task ---
        if not await self._validate_task(task):
            self._logger.warning("task_validation_failed", task_id=task.task_id)
            raise InvalidTaskError(
                message=(
                    f"Payload of task {task.task_id} cannot be processed "
                    f"by {self.template_id}"
                ),
                agent_id=self.agent_id,
                task_id=task.task_id,
                details={"payload_keys": sorted(task.payload)},
            )

        # --- Step 2: Mark in flight ---
        self._performance = self._performance.started()
        started = time.monotonic()
        succeeded = False

        try:
            # --- Step 3: Agent-specific logic ---
            result = await self._execute(task)
            succeeded = True
            self._logger.info(
                "task_execution_completed",
                task_id=task.task_id,
                duration_seconds=round(time.monotonic() - started, 3),
            )
            return result

        except AgentError as e:
            if e.task_id is None:
                e.task_id = task.task_id
                e.details["task_id"] = task.task_id
            self._logger.warning(
                "task_execution_failed",
                task_id=task.task_id,
                error_code=e.error_code,
                error=e.message,
            )
            raise

        except Exception as e:
            self._logger.error(
                "task_execution_failed",
                task_id=task.task_id,
                error=str(e),
            )
            raise ExecutionError(
                message=f"{type(e).__name__}: {e}",
                agent_id=self.agent_id,
                task_id=task.task_id,
            ) from e

        finally:
            # --- Step 4: Record the attempt (cancelled attempts count as failed) ---
            self._performance = self._performance.record(
                succeeded=succeeded,
                duration_seconds=time.monotonic() - started,
            )

    # =========================================================================
    # Abstract Methods
    # =========================================================================
    @abstractmethod
    async def _validate_task(self, task: Task) -> bool:
        """Return True if the payload can be processed by this executive."""
        ...

    @abstractmethod
    async def _execute(self, task: Task) -> dict[str, Any]:
        """Do the executive's work for a validated task.

        Use ``_call_capability`` for the reasoning step and
        ``_create_result`` to shape the output.
        """
        ...

    # =========================================================================
    # Capability Access
    # =========================================================================
    def _system_prompt(self) -> str:
        """Describe the executive to the capability.

        Personality and goals are open mappings; every key is rendered as
        is, in insertion order.
        """
        lines = [f"You are {self._config.name}, the {self.role} of the organization."]
        if self._config.personality:
            lines.append("Personality:")
            lines.extend(f"- {k}: {v}" for k, v in self._config.personality.items())
        if self._config.goals:
            lines.append("Goals:")
            lines.extend(f"- {k}: {v}" for k, v in self._config.goals.items())
        return "\n".join(lines)

    async def _call_capability(
        self,
        prompt: str,
        *,
        task: Optional[Task] = None,
    ) -> LLMResponse:
        """Run the opaque reasoning step with the configured timeout.

        Raises:
            CapabilityUnavailableError: Connection failure or timeout.
            ExecutionError: The provider crashed or returned an error result.
        """
        task_id = task.task_id if task is not None else None
        settings = self._llm.config

        try:
            response = await asyncio.wait_for(
                self._llm.generate_with_system(
                    self._system_prompt(),
                    prompt,
                    temperature=settings.temperature,
                    max_tokens=settings.max_tokens,
                ),
                timeout=settings.timeout_seconds,
            )
        except (ConnectionError, asyncio.TimeoutError, TimeoutError) as e:
            raise CapabilityUnavailableError(
                message=f"Capability '{self._llm.provider_name}' unavailable: {e or type(e).__name__}",
                agent_id=self.agent_id,
                task_id=task_id,
            ) from e
        except AgentError:
            raise
        except Exception as e:
            raise ExecutionError(
                message=f"Capability '{self._llm.provider_name}' raised: {e}",
                agent_id=self.agent_id,
                task_id=task_id,
            ) from e

        if response.is_error:
            raise ExecutionError(
                message=f"Capability returned an error result: {response.content}",
                agent_id=self.agent_id,
                task_id=task_id,
                details={"model": response.model},
            )
        return response

    # =========================================================================
    # Internal Helpers
    # =========================================================================
    @staticmethod
    def _objective(task: Task) -> str:
        objective = task.payload.get("objective")
        return objective.strip() if isinstance(objective, str) else ""

    @staticmethod
    def _extract_items(text: str, header: str) -> list[str]:
        """Pull numbered or bulleted lines that follow ``header``.

        Lenient on purpose: a response formatted differently yields an empty
        list rather than an error.
        """
        section = re.search(
            rf"{header}(.*?)(?:\n\s*\n|$)",
            text,
            re.DOTALL | re.IGNORECASE,
        )
        if not section:
            return []
        items = re.findall(
            r"^[ \t]*(?:\d+[\.\)]|[-*])[ \t]*\**(.+?)\**[ \t]*$",
            section.group(1),
            re.MULTILINE,
        )
        return [item.strip() for item in items if item.strip()]

    def _create_result(
        self,
        task: Task,
        response: LLMResponse,
        **extra: Any,
    ) -> dict[str, Any]:
        """Shape a capability response into a task result."""
        return {
            "agent_id": self.agent_id,
            "agent_name": self.name,
            "template_id": self.template_id,
            "objective": self._objective(task),
            "summary": response.content,
            "model": response.model,
            "tokens": response.usage.total_tokens,
            **extra,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"agent_id={self.agent_id!r}, "
            f"in_flight={self._performance.in_flight})"
        )

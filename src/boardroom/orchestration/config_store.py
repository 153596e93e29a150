"""
boardroom.orchestration.config_store - Agent Config Store
===========================================================

Holds one AgentConfig per (organization_id, template_id) slot. The store is
read-mostly: dispatch workers read configs whenever they instantiate an
agent handle, while the configuration API writes occasionally.

Concurrency:
    - Reads never take a lock. A reader always receives a complete config
      because writers build the new model first and then swap it in with a
      single store call.
    - Writers to the same slot are serialized by a per-slot asyncio.Lock, so
      two concurrent upserts never interleave their read-compare-write.

Upsert Semantics:
    - Same slot, same content → no-op, the stored config is returned as is
      (``updated_at`` does not move).
    - Same slot, changed content → ``name``, ``personality`` and ``goals``
      are replaced wholesale (no key-level merge). ``created_at`` is kept.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog

from boardroom.core.exceptions import NotFoundError
from boardroom.core.models import AgentConfig
from boardroom.orchestration.state_store import StateStore, agent_config_key

logger = structlog.get_logger()


class AgentConfigStore:
    """Upsert/get access to agent configurations.

    Example:
        >>> store = AgentConfigStore(InMemoryStateStore())
        >>> await store.upsert(AgentConfig(
        ...     organization_id="org-1",
        ...     template_id="finance_cfo",
        ...     name="Finance CFO",
        ...     goals={"runwayMonths": 18},
        ... ))
        >>> config = await store.get("org-1", "finance_cfo")
    """

    def __init__(self, state_store: StateStore) -> None:
        self._state_store = state_store
        self._write_locks: dict[str, asyncio.Lock] = {}
        self._logger = logger.bind(component="config_store")

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._write_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._write_locks[key] = lock
        return lock

    # =========================================================================
    # Reads
    # =========================================================================
    async def get(self, organization_id: str, template_id: str) -> AgentConfig:
        """Return a copy of the config for the slot.

        Raises:
            NotFoundError: If no config exists for the slot.
        """
        config = await self._state_store.get_agent_config(organization_id, template_id)
        if config is None:
            raise NotFoundError(
                entity="agent_config",
                key=agent_config_key(organization_id, template_id),
            )
        return config.model_copy(deep=True)

    async def list(self, organization_id: str) -> list[AgentConfig]:
        """Return an organization's configs in first-registered order."""
        configs = await self._state_store.list_agent_configs(organization_id)
        return [config.model_copy(deep=True) for config in configs]

    # =========================================================================
    # Writes
    # =========================================================================
    async def upsert(self, config: AgentConfig) -> AgentConfig:
        """Create or replace the config for ``config.key``.

        Returns:
            The stored config (the existing one when nothing changed).
        """
        key = agent_config_key(config.organization_id, config.template_id)

        async with self._lock_for(key):
            existing = await self._state_store.get_agent_config(
                config.organization_id, config.template_id
            )

            if existing is not None and existing.same_content(config):
                self._logger.debug("agent_config_unchanged", key=key)
                return existing.model_copy(deep=True)

            if existing is None:
                stored = config.model_copy(deep=True)
            else:
                stored = config.model_copy(
                    deep=True,
                    update={
                        "created_at": existing.created_at,
                        "updated_at": datetime.now(timezone.utc),
                    },
                )

            await self._state_store.save_agent_config(stored)

        self._logger.info(
            "agent_config_upserted",
            key=key,
            created=existing is None,
        )
        return stored.model_copy(deep=True)

    async def delete(self, organization_id: str, template_id: str) -> bool:
        """Remove a config slot. Returns True if a config was removed."""
        key = agent_config_key(organization_id, template_id)
        async with self._lock_for(key):
            removed = await self._state_store.delete_agent_config(
                organization_id, template_id
            )
        if removed:
            self._logger.info("agent_config_deleted", key=key)
        return removed

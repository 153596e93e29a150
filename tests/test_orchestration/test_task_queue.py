"""
Tests for boardroom.orchestration.task_queue
==============================================

What's Being Tested:
    - FIFO order per organization, organizations isolated
    - Readiness predicate: non-ready entries keep their place
    - At-most-once dequeue under concurrency
    - remove() and pending_count()
"""

import asyncio

from boardroom.core.models import Task
from tests.conftest import make_task


class TestFifo:
    async def test_fifo_order(self, task_queue) -> None:
        for task_id in ("a", "b", "c"):
            await task_queue.enqueue(make_task(task_id))

        dequeued = [(await task_queue.dequeue_ready("org-1")).task_id for _ in range(3)]
        assert dequeued == ["a", "b", "c"]
        assert await task_queue.dequeue_ready("org-1") is None

    async def test_organizations_are_isolated(self, task_queue) -> None:
        await task_queue.enqueue(make_task("a", organization_id="org-1"))
        await task_queue.enqueue(make_task("b", organization_id="org-2"))

        task = await task_queue.dequeue_ready("org-2")
        assert task.task_id == "b"
        assert await task_queue.dequeue_ready("org-2") is None
        assert task_queue.pending_count("org-1") == 1
        assert task_queue.organizations() == ["org-1", "org-2"]

    async def test_empty_org(self, task_queue) -> None:
        assert await task_queue.dequeue_ready("nobody") is None


class TestReadiness:
    async def test_skips_entries_that_are_not_ready(self, task_queue) -> None:
        for task_id in ("blocked", "ready-1", "ready-2"):
            await task_queue.enqueue(make_task(task_id))

        async def is_ready(task: Task) -> bool:
            return task.task_id != "blocked"

        assert (await task_queue.dequeue_ready("org-1", is_ready)).task_id == "ready-1"
        assert (await task_queue.dequeue_ready("org-1", is_ready)).task_id == "ready-2"
        assert await task_queue.dequeue_ready("org-1", is_ready) is None
        assert task_queue.pending_count("org-1") == 1

        # Once ready, the skipped entry is still first in line.
        assert (await task_queue.dequeue_ready("org-1")).task_id == "blocked"


class TestConcurrency:
    async def test_concurrent_dequeues_never_share_a_task(self, task_queue) -> None:
        for i in range(50):
            await task_queue.enqueue(make_task(f"t{i}"))

        async def slow_ready(task: Task) -> bool:
            await asyncio.sleep(0)
            return True

        async def drain() -> list[str]:
            taken = []
            while (task := await task_queue.dequeue_ready("org-1", slow_ready)) is not None:
                taken.append(task.task_id)
            return taken

        results = await asyncio.gather(*(drain() for _ in range(8)))
        taken = [task_id for batch in results for task_id in batch]

        assert len(taken) == 50
        assert len(set(taken)) == 50


class TestRemove:
    async def test_remove(self, task_queue) -> None:
        await task_queue.enqueue(make_task("a"))
        await task_queue.enqueue(make_task("b", organization_id="org-2"))

        assert await task_queue.remove("b") is True
        assert await task_queue.remove("b") is False
        assert task_queue.pending_count() == 1

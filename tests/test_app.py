from __future__ import annotations

import asyncio

import app


class ClosingSource:
    def __init__(self) -> None:
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


def test_shutdown_waits_for_cancelled_tasks_before_closing_source() -> None:
    source = ClosingSource()
    unwound: list[str] = []

    async def poll_loop() -> None:
        try:
            await asyncio.sleep(3600)
        finally:
            # The source must still be open while a task unwinds.
            unwound.append("closed" if source.closed else "open")

    async def scenario() -> list:
        tasks = [asyncio.ensure_future(poll_loop()) for _ in range(2)]
        await asyncio.sleep(0)
        await app._shutdown(tasks, source)
        return tasks

    tasks = asyncio.run(scenario())

    assert unwound == ["open", "open"]
    assert all(task.cancelled() for task in tasks)
    assert source.closed

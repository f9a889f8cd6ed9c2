"""
Clock - the single source of time for every wait and poll in the agent.
"""

import asyncio
import time


class Clock:
    """Interface: monotonic seconds and a cooperative sleep."""

    def now(self) -> float:
        raise NotImplementedError

    async def sleep(self, seconds: float) -> None:
        raise NotImplementedError


class SystemClock(Clock):
    """Real clock backed by the event loop."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

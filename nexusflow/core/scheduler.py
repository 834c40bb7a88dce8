"""Pacing policies for the orchestration engine.

Delays between phases only pace the workflow for observers. They are not
protocol timeouts, so the engine takes them from an injected scheduler and
tests swap in ``ImmediateScheduler``.
"""

import asyncio
from typing import Protocol, runtime_checkable


@runtime_checkable
class Scheduler(Protocol):
    """Suspension policy used at every pacing point."""

    async def pause(self, seconds: float) -> None:
        """Suspend the workflow for a nominal number of seconds."""
        ...


class AsyncioScheduler:
    """Sleeps on the running event loop, scaled by ``scale``."""

    def __init__(self, scale: float = 1.0):
        if scale < 0:
            raise ValueError(f"Pacing scale must be >= 0, got {scale}")
        self.scale = scale

    async def pause(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0) * self.scale)


class ImmediateScheduler:
    """Yields control once without waiting."""

    async def pause(self, seconds: float) -> None:
        await asyncio.sleep(0)

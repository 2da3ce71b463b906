"""
Animation Scheduler - Queue Producer

This module contains the AnimationScheduler class, the only producer for the
bounded work queue, and wait_first, the deadline race that decides whether the
current frame is redrawn or the animation moves on.

Pacing comes from two sources:
- Backpressure: queue.put blocks while the workers are behind
- Timers: a per-frame display deadline raced against the redraw deadline
"""

from __future__ import annotations

import asyncio
import logging
from ipaddress import IPv6Address
from typing import Any, Dict, Optional

from .frame_builder import Animation, Frame

logger = logging.getLogger(__name__)


async def wait_first(*deadlines: float) -> int:
    """
    Sleep until the earliest of several loop-time deadlines.

    Deadlines already in the past win immediately; ties go to the lower index.
    The other deadlines are left alone and can be raced again later. Always
    yields to the event loop at least once, even when nothing is due.

    Returns:
        int: Index of the deadline that fired
    """
    if not deadlines:
        raise ValueError("wait_first needs at least one deadline")
    winner = min(range(len(deadlines)), key=lambda i: (deadlines[i], i))
    loop = asyncio.get_running_loop()
    delay = deadlines[winner] - loop.time()
    await asyncio.sleep(max(delay, 0))
    return winner


FRAME_TIMER = 0
RATE_TIMER = 1


class AnimationScheduler:
    """Sole producer for the work queue.

    Cycles through the animation forever. Each frame is pushed in full once
    per rate interval until its own display delay runs out. Pushing blocks
    while the queue is full, which paces production to the workers.

    In run-once mode every frame is pushed a single time; after the last one
    the scheduler waits for the workers to drain the queue, sets `shutdown`
    and returns.
    """

    def __init__(
        self,
        animation: Animation,
        queue: "asyncio.Queue[IPv6Address]",
        rate: float,
        once: bool = False,
        shutdown: Optional[asyncio.Event] = None,
    ):
        if rate <= 0:
            raise ValueError("rate must be > 0")
        self.animation = animation
        self.queue = queue
        self.rate = rate
        self.repeat_interval = 1.0 / rate
        self.once = once
        self.shutdown = shutdown or asyncio.Event()

        self._stats = {"passes": 0, "enqueued": 0, "cycles": 0}

    async def run(self) -> None:
        """
        Produce addresses until cancelled, or until the single pass drains
        in run-once mode.
        """
        logger.info(
            f"Starting scheduler: {len(self.animation)} frames at {self.rate}/s"
            + (" (once)" if self.once else "")
        )
        if self.once:
            await self._run_once()
            return

        while True:
            for frame, delay in self.animation:
                await self._show_frame(frame, delay)
            self._stats["cycles"] += 1

    async def _show_frame(self, frame: Frame, delay: float) -> None:
        loop = asyncio.get_running_loop()
        frame_deadline = loop.time() + delay

        while True:
            repeat_deadline = loop.time() + self.repeat_interval
            await self._push(frame)
            if await wait_first(frame_deadline, repeat_deadline) == FRAME_TIMER:
                return

    async def _run_once(self) -> None:
        loop = asyncio.get_running_loop()
        last = len(self.animation) - 1

        for index, (frame, delay) in enumerate(self.animation):
            frame_deadline = loop.time() + delay
            await self._push(frame)
            if index < last:
                await wait_first(frame_deadline)

        logger.info("Single pass queued, waiting for workers to drain")
        await self.queue.join()
        self._stats["cycles"] += 1
        logger.info("Queue drained, requesting shutdown")
        self.shutdown.set()

    async def _push(self, frame: Frame) -> None:
        for address in frame:
            await self.queue.put(address)
        self._stats["passes"] += 1
        self._stats["enqueued"] += len(frame)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "frames": len(self.animation),
            "rate": self.rate,
            "queue_size": self.queue.qsize(),
            "queue_capacity": self.queue.maxsize,
        }

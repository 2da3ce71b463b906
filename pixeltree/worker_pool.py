"""
Worker Pool - Queue Consumers

This module contains the WorkerPool class, which runs N independent workers
draining the shared work queue. Every worker owns one transmission channel and
sends the shared packet template to each address it takes.

Failure policy:
- A failed send is logged and the packet dropped (no retry, no requeue); the
  worker then swaps in a freshly opened channel.
- Failing to open a channel (initial or replacement) is fatal: the error ends
  the worker and surfaces through WorkerPool.wait().
"""

import asyncio
import logging
from ipaddress import IPv6Address
from typing import Any, Dict, List

from .channel import ChannelFactory, TransmissionChannel
from .errors import ChannelSendError
from .packet import PacketTemplate


logger = logging.getLogger(__name__)


class WorkerPool:
    """
    Pool of consumer tasks transmitting probes.

    Args:
        queue: Shared work queue of addresses
        packet: Probe sent to every address
        channel_factory: Creates a fresh, unopened channel
        size: Number of workers
    """

    def __init__(
        self,
        queue: "asyncio.Queue[IPv6Address]",
        packet: PacketTemplate,
        channel_factory: ChannelFactory,
        size: int = 1,
    ):
        if size < 1:
            raise ValueError("WorkerPool size must be >= 1")
        self.queue = queue
        self.packet = packet
        self.channel_factory = channel_factory
        self.size = size

        self._tasks: List[asyncio.Task] = []
        self._stats = {"sent": 0, "failed": 0, "reopened": 0}

    def start(self) -> None:
        """Start the worker tasks if not already running."""
        if self._tasks:
            logger.warning("Worker pool already running")
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"worker-{i}")
            for i in range(self.size)
        ]
        logger.info(f"Started {self.size} workers")

    async def wait(self) -> None:
        """
        Wait until any worker exits.

        Raises:
            ChannelOpenError: If a worker could not open a channel
        """
        if not self._tasks:
            return
        done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]

    async def stop(self) -> None:
        """Cancel all workers; their channels are closed on the way out."""
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Worker {task.get_name()} ended with: {e}")
        self._tasks = []

    async def _open_channel(self) -> TransmissionChannel:
        channel = self.channel_factory()
        await channel.open()
        return channel

    async def _worker(self, worker_id: int) -> None:
        logger.info(f"Starting worker {worker_id}")
        channel = await self._open_channel()

        try:
            while True:
                address = await self.queue.get()
                try:
                    await channel.send(self.packet.payload, address)
                    self._stats["sent"] += 1
                except ChannelSendError as e:
                    self._stats["failed"] += 1
                    logger.warning(f"Worker {worker_id}: {e}")

                    replacement = await self._open_channel()
                    await channel.close()
                    channel = replacement
                    self._stats["reopened"] += 1
                finally:
                    self.queue.task_done()
        finally:
            await channel.close()

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "workers": self.size,
            "running": sum(1 for t in self._tasks if not t.done()),
        }

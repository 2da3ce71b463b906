"""
PixelTreeApp - Composition Root

This module contains the PixelTreeApp class, which is responsible for:
- Decoding the image and building the animation
- Wiring the work queue, scheduler and worker pool
- Application lifecycle management (startup/run/shutdown)
- Statistics

Composition root - wires up all components with explicit dependency injection.
"""

import asyncio
import logging
import random
import signal
from ipaddress import IPv6Address
from typing import Optional

from .channel import ChannelFactory, create_channel_factory
from .config import PixelTreeConfig, describe
from .encoding import create_encoding
from .errors import ConfigError
from .frame_builder import Animation, FrameBuilder
from .imaging import DecodedImage, load_image
from .packet import PacketTemplate, build_echo_request
from .scheduler import AnimationScheduler
from .worker_pool import WorkerPool


logger = logging.getLogger(__name__)


class PixelTreeApp:
    """
    Application composition root for the pixel tree renderer.

    Args:
        config: Validated configuration
        channel_factory: Channel constructor (default: from config.backend)
        decoded: Pre-decoded image (default: loaded from config.image)
        handle_signals: Install SIGINT/SIGTERM handlers while running
    """

    def __init__(
        self,
        config: PixelTreeConfig,
        channel_factory: Optional[ChannelFactory] = None,
        decoded: Optional[DecodedImage] = None,
        handle_signals: bool = True,
    ):
        self.config = config
        self.channel_factory = channel_factory
        self.decoded = decoded
        self.handle_signals = handle_signals

        # Core components - initialized during startup
        self.animation: Optional[Animation] = None
        self.queue: Optional[asyncio.Queue[IPv6Address]] = None
        self.packet: Optional[PacketTemplate] = None
        self.scheduler: Optional[AnimationScheduler] = None
        self.worker_pool: Optional[WorkerPool] = None

        self.shutdown_event = asyncio.Event()
        self._scheduler_task: Optional[asyncio.Task] = None
        self._started = False

    async def startup(self) -> None:
        """Initialize all components. Any error here is a fatal setup error."""
        logger.info("Starting up pixeltree...")
        logger.debug(f"Configuration: {describe(self.config)}")

        self.config.validate()
        self._load_image()
        self._build_animation()
        self._create_queue()

        self.packet = build_echo_request()
        if self.channel_factory is None:
            self.channel_factory = create_channel_factory(
                self.config.backend, self.config.interface
            )

        self.worker_pool = WorkerPool(
            self.queue, self.packet, self.channel_factory, size=self.config.workers
        )
        self.scheduler = AnimationScheduler(
            self.animation,
            self.queue,
            rate=self.config.rate,
            once=self.config.once,
            shutdown=self.shutdown_event,
        )
        self._started = True
        logger.info("Startup completed")

    async def run(self) -> None:
        """
        Start up, then run until shutdown is requested or a worker dies.

        Raises:
            PixelTreeError: On fatal setup or channel errors
        """
        if not self._started:
            await self.startup()

        loop = asyncio.get_running_loop()
        if self.handle_signals:
            self._install_signal_handlers(loop)

        waiters = []
        try:
            self.worker_pool.start()
            self._scheduler_task = asyncio.create_task(
                self.scheduler.run(), name="scheduler"
            )
            shutdown_task = asyncio.create_task(self.shutdown_event.wait(), name="shutdown")
            pool_task = asyncio.create_task(self.worker_pool.wait(), name="workers")
            waiters = [shutdown_task, pool_task]

            done, _ = await asyncio.wait(
                {shutdown_task, pool_task, self._scheduler_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in done:
                if task is shutdown_task or task.cancelled():
                    continue
                if task.exception() is not None:
                    raise task.exception()  # type: ignore[misc]
        finally:
            for task in waiters:
                task.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)
            if self.handle_signals:
                self._remove_signal_handlers(loop)
            await self.shutdown()

    def request_shutdown(self) -> None:
        if not self.shutdown_event.is_set():
            logger.info("exiting...")
            self.shutdown_event.set()

    async def shutdown(self) -> None:
        """Stop the scheduler and workers, closing all channels."""
        if self._scheduler_task and not self._scheduler_task.done():
            self._scheduler_task.cancel()
            try:
                await self._scheduler_task
            except asyncio.CancelledError:
                pass
        if self.worker_pool:
            await self.worker_pool.stop()

        if self._started:
            logger.info(f"Shutdown completed: {self.get_stats()}")
        self._started = False

    def get_stats(self) -> dict:
        if not self.scheduler or not self.worker_pool:
            return {"running": False, "message": "not initialized"}
        return {
            "scheduler": self.scheduler.get_stats(),
            "workers": self.worker_pool.get_stats(),
        }

    # Private initialization methods

    def _load_image(self) -> None:
        if self.decoded is not None:
            return
        if self.config.image is None:
            raise ConfigError("the image must be provided")
        self.decoded = load_image(self.config.image)

    def _build_animation(self) -> None:
        encoding = create_encoding(
            self.config.encoding,
            self.config.dst_net,
            self.config.max_width,
            self.config.max_height,
        )
        builder = FrameBuilder(encoding, rng=random.Random(self.config.seed))

        # No delays means a still image: redraw it at the configured rate
        delays = self.decoded.delays
        if delays is None:
            delays = [self.config.frame_interval]

        self.animation = builder.build_animation(
            self.decoded.frames, delays, self.config.x, self.config.y
        )
        # Rasters are no longer needed once converted to addresses
        self.decoded = None

    def _create_queue(self) -> None:
        capacity = max(1, self.animation.largest_frame)
        self.queue = asyncio.Queue(maxsize=capacity)
        logger.info(f"queue length: {capacity}")

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handler for {sig!r} not supported here")

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

"""
Transmission Channel I/O Boundary

This module provides the TransmissionChannel classes, which handle sending a
probe packet to a single address. It abstracts away the raw socket / mock /
external backend distinction behind one small interface.

I/O boundary - each worker owns one channel and replaces it on failure.
"""

import asyncio
import importlib
import logging
import socket
from abc import ABC, abstractmethod
from ipaddress import IPv6Address
from typing import Callable, Optional

from .errors import ChannelOpenError, ChannelSendError, ConfigError


logger = logging.getLogger(__name__)

BUILTIN_BACKENDS = ("icmp", "mock")
BACKEND_MODULE_PREFIX = "pixeltree_"


class TransmissionChannel(ABC):
    """
    Abstract base class for a probe transmission channel.

    Defines the I/O boundary between the worker pool and whatever actually
    puts packets on the wire.
    """

    @abstractmethod
    async def open(self) -> None:
        """
        Open the channel.

        Raises:
            ChannelOpenError: If the channel cannot be opened
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Closing a closed channel is a no-op."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the channel is open."""
        pass

    @abstractmethod
    async def send(self, payload: bytes, address: IPv6Address) -> None:
        """
        Send one packet to one address, best effort.

        Args:
            payload: Packet bytes
            address: Destination address

        Raises:
            ChannelSendError: If the send fails
        """
        pass


class IcmpChannel(TransmissionChannel):
    """
    Raw ICMPv6 socket channel.

    Requires CAP_NET_RAW (or root). The socket is non-blocking and driven by
    the event loop.
    """

    def __init__(self) -> None:
        self._sock: Optional[socket.socket] = None

    async def open(self) -> None:
        try:
            sock = socket.socket(
                socket.AF_INET6, socket.SOCK_RAW, socket.IPPROTO_ICMPV6
            )
        except OSError as e:
            raise ChannelOpenError(f"could not open ping socket: {e}") from e
        sock.setblocking(False)
        self._sock = sock

    async def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def is_open(self) -> bool:
        return self._sock is not None

    async def send(self, payload: bytes, address: IPv6Address) -> None:
        if self._sock is None:
            raise ChannelSendError("Ping socket not open")

        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendto(self._sock, payload, (str(address), 0, 0, 0))
        except OSError as e:
            raise ChannelSendError(f"could not send ping packet to {address}: {e}") from e


class MockChannel(TransmissionChannel):
    """
    Mock channel for dry runs and testing.

    Counts packets instead of sending them.
    """

    def __init__(self) -> None:
        self._open = False
        self.packets_sent = 0

    async def open(self) -> None:
        self._open = True
        logger.debug("[MOCK] Channel opened")

    async def close(self) -> None:
        self._open = False
        logger.debug("[MOCK] Channel closed")

    def is_open(self) -> bool:
        return self._open

    async def send(self, payload: bytes, address: IPv6Address) -> None:
        if not self._open:
            raise ChannelSendError("Mock channel not open")
        self.packets_sent += 1
        logger.debug(f"[MOCK] {len(payload)} bytes -> {address}")
        await asyncio.sleep(0)


ChannelFactory = Callable[[], TransmissionChannel]


def _load_backend_module(backend: str):
    mod_name = BACKEND_MODULE_PREFIX + backend.replace("-", "_")
    try:
        mod = importlib.import_module(mod_name)
    except ModuleNotFoundError as e:
        if e.name != mod_name:
            raise
        raise ConfigError(
            f"Transmission backend '{backend}' is not available "
            f"(install a package providing module '{mod_name}')"
        ) from e
    if not hasattr(mod, "create_channel"):
        raise ConfigError(f"Backend module '{mod_name}' has no create_channel()")
    return mod


def create_channel_factory(backend: str = "icmp", interface: str = "") -> ChannelFactory:
    """
    Factory function returning a constructor for fresh channels.

    Built-in backends are "icmp" and "mock". Any other name is resolved to an
    external module `pixeltree_<name>` exposing
    `create_channel(interface) -> TransmissionChannel`; the interface name is
    passed through unchanged.

    Args:
        backend: Backend name
        interface: Outgoing interface for external backends

    Returns:
        ChannelFactory: Zero-argument callable creating unopened channels

    Raises:
        ConfigError: If the backend cannot be resolved
    """
    if backend == "icmp":
        if interface:
            logger.warning(f"Interface '{interface}' is ignored by the icmp backend")
        logger.info("Using raw ICMPv6 socket backend")
        return IcmpChannel
    if backend == "mock":
        logger.info("Using mock backend (dry run)")
        return MockChannel

    mod = _load_backend_module(backend)
    logger.info(f"Using external backend '{backend}' (interface={interface!r})")
    return lambda: mod.create_channel(interface)

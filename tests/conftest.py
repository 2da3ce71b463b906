"""Shared fixtures for pixeltree tests."""

from ipaddress import IPv6Address
from typing import List

import pytest
from PIL import Image

from pixeltree.channel import MockChannel
from pixeltree.errors import ChannelOpenError, ChannelSendError


class RecordingChannel(MockChannel):
    """Mock channel that records every address it was asked to send to."""

    def __init__(self, log: List[IPv6Address], fail_sends: int = 0, fail_open: bool = False):
        super().__init__()
        self.log = log
        self.fail_sends = fail_sends
        self.fail_open = fail_open
        self.closed = False

    async def open(self) -> None:
        if self.fail_open:
            raise ChannelOpenError("no sockets left")
        await super().open()

    async def close(self) -> None:
        self.closed = True
        await super().close()

    async def send(self, payload: bytes, address: IPv6Address) -> None:
        if self.fail_sends > 0:
            self.fail_sends -= 1
            raise ChannelSendError(f"could not send ping packet to {address}")
        await super().send(payload, address)
        self.log.append(address)


class ChannelRecorder:
    """
    Channel factory for tests.

    Args:
        plan: Per-channel options, consumed in creation order; channels beyond
            the plan behave normally
    """

    def __init__(self, plan=None):
        self.plan = list(plan or [])
        self.sent: List[IPv6Address] = []
        self.channels: List[RecordingChannel] = []

    def __call__(self) -> RecordingChannel:
        opts = self.plan.pop(0) if self.plan else {}
        channel = RecordingChannel(self.sent, **opts)
        self.channels.append(channel)
        return channel


@pytest.fixture
def recorder():
    return ChannelRecorder()


@pytest.fixture
def make_recorder():
    return ChannelRecorder


@pytest.fixture
def prefix() -> str:
    return "2001:db8::"


@pytest.fixture
def four_pixel_image() -> Image.Image:
    """2x2 image: red, transparent / blue, green."""
    img = Image.new("RGBA", (2, 2), (0, 0, 0, 0))
    img.putpixel((0, 0), (255, 0, 0, 255))
    img.putpixel((0, 1), (0, 0, 255, 255))
    img.putpixel((1, 1), (0, 255, 0, 255))
    return img


def make_addresses(count: int, base: str = "2001:db8::") -> List[IPv6Address]:
    start = int(IPv6Address(base))
    return [IPv6Address(start + i) for i in range(count)]


@pytest.fixture
def addresses():
    return make_addresses

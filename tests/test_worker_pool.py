"""Tests for the worker pool and its channel recovery."""

import asyncio
import logging

import pytest

from pixeltree.errors import ChannelOpenError
from pixeltree.packet import build_echo_request
from pixeltree.worker_pool import WorkerPool


async def fill(queue: asyncio.Queue, items) -> None:
    for item in items:
        await queue.put(item)


@pytest.mark.asyncio
async def test_sends_every_address(recorder, addresses):
    addrs = addresses(5)
    queue = asyncio.Queue(maxsize=5)
    pool = WorkerPool(queue, build_echo_request(), recorder, size=1)

    await fill(queue, addrs)
    pool.start()
    try:
        await asyncio.wait_for(queue.join(), timeout=1.0)
    finally:
        await pool.stop()

    assert recorder.sent == addrs
    assert pool.get_stats()["sent"] == 5
    assert len(recorder.channels) == 1
    assert recorder.channels[0].closed


@pytest.mark.asyncio
async def test_send_failure_replaces_channel_and_drops_packet(make_recorder, addresses, caplog):
    recorder = make_recorder(plan=[{"fail_sends": 1}])
    addrs = addresses(5)
    queue = asyncio.Queue(maxsize=5)
    pool = WorkerPool(queue, build_echo_request(), recorder, size=1)

    await fill(queue, addrs)
    with caplog.at_level(logging.WARNING, logger="pixeltree.worker_pool"):
        pool.start()
        try:
            await asyncio.wait_for(queue.join(), timeout=1.0)
        finally:
            await pool.stop()

    # the first address failed and is not resent
    assert recorder.sent == addrs[1:]
    assert len(recorder.channels) == 2
    assert recorder.channels[0].closed

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1

    stats = pool.get_stats()
    assert stats["sent"] == 4
    assert stats["failed"] == 1
    assert stats["reopened"] == 1


@pytest.mark.asyncio
async def test_initial_open_failure_is_fatal(make_recorder, addresses):
    recorder = make_recorder(plan=[{"fail_open": True}])
    queue = asyncio.Queue(maxsize=1)
    pool = WorkerPool(queue, build_echo_request(), recorder, size=1)

    pool.start()
    try:
        with pytest.raises(ChannelOpenError):
            await asyncio.wait_for(pool.wait(), timeout=1.0)
    finally:
        await pool.stop()


@pytest.mark.asyncio
async def test_replacement_open_failure_is_fatal(make_recorder, addresses):
    recorder = make_recorder(plan=[{"fail_sends": 1}, {"fail_open": True}])
    addrs = addresses(3)
    queue = asyncio.Queue(maxsize=3)
    pool = WorkerPool(queue, build_echo_request(), recorder, size=1)

    await fill(queue, addrs)
    pool.start()
    try:
        with pytest.raises(ChannelOpenError):
            await asyncio.wait_for(pool.wait(), timeout=1.0)
    finally:
        await pool.stop()

    assert recorder.sent == []
    assert recorder.channels[0].closed
    # the failed item is still accounted for
    assert queue.qsize() == 2


@pytest.mark.asyncio
async def test_workers_share_the_queue(recorder, addresses):
    addrs = addresses(30)
    queue = asyncio.Queue(maxsize=30)
    pool = WorkerPool(queue, build_echo_request(), recorder, size=3)

    pool.start()
    try:
        await fill(queue, addrs)
        await asyncio.wait_for(queue.join(), timeout=1.0)
        assert pool.get_stats()["running"] == 3
    finally:
        await pool.stop()

    assert sorted(recorder.sent) == addrs
    assert len(recorder.channels) == 3
    assert all(c.closed for c in recorder.channels)
    assert pool.get_stats()["running"] == 0


@pytest.mark.asyncio
async def test_packet_is_shared_unmodified(make_recorder, addresses):
    payloads = []

    class Capture:
        def __init__(self, inner):
            self.inner = inner

        def __call__(self):
            channel = self.inner()
            original = channel.send

            async def send(payload, address):
                payloads.append(payload)
                await original(payload, address)

            channel.send = send
            return channel

    packet = build_echo_request()
    queue = asyncio.Queue(maxsize=4)
    pool = WorkerPool(queue, packet, Capture(make_recorder()), size=2)

    await fill(queue, addresses(4))
    pool.start()
    try:
        await asyncio.wait_for(queue.join(), timeout=1.0)
    finally:
        await pool.stop()

    assert payloads == [packet.payload] * 4


def test_size_must_be_positive(recorder):
    with pytest.raises(ValueError):
        WorkerPool(asyncio.Queue(), build_echo_request(), recorder, size=0)

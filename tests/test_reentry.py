import asyncio
import json

import pytest

from dsky_bridge.adapters import CommandSendError, UdpReentryCommandSender, encode_key
from dsky_bridge.config import ReentryConfig
from dsky_bridge.keypad import AgcKey


class _Collector(asyncio.DatagramProtocol):
    def __init__(self) -> None:
        self.datagrams: asyncio.Queue[bytes] = asyncio.Queue()

    def datagram_received(self, data, addr):
        self.datagrams.put_nowait(data)


def test_encode_key_targets_module():
    assert json.loads(encode_key(AgcKey.VERB, True)) == {"key": "VERB", "target": "CMC"}
    assert json.loads(encode_key(AgcKey.D7, False)) == {"key": "D7", "target": "LGC"}


@pytest.mark.asyncio
async def test_sender_delivers_json_datagrams(unused_udp_port):
    loop = asyncio.get_running_loop()
    transport, collector = await loop.create_datagram_endpoint(
        _Collector, local_addr=("127.0.0.1", unused_udp_port)
    )
    sender = UdpReentryCommandSender(ReentryConfig(host="127.0.0.1", port=unused_udp_port))

    try:
        await sender.start()
        assert sender.started is True

        await sender.send_key(AgcKey.ENTER, True)
        await sender.send_key(AgcKey.KEY_REL, False)

        first = await asyncio.wait_for(collector.datagrams.get(), timeout=2.0)
        second = await asyncio.wait_for(collector.datagrams.get(), timeout=2.0)
    finally:
        await sender.stop()
        transport.close()

    assert json.loads(first) == {"key": "ENTER", "target": "CMC"}
    assert json.loads(second) == {"key": "KEY_REL", "target": "LGC"}
    assert sender.started is False


@pytest.mark.asyncio
async def test_sender_requires_start():
    sender = UdpReentryCommandSender(ReentryConfig())

    with pytest.raises(CommandSendError):
        await sender.send_key(AgcKey.PRO, True)


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_sender_reports_unreachable_simulator(unused_udp_port):
    sender = UdpReentryCommandSender(ReentryConfig(host="127.0.0.1", port=unused_udp_port))
    await sender.start()

    try:
        assert sender.last_error is None
        await sender.send_key(AgcKey.VERB, True)
        await _wait_for(lambda: sender.last_error is not None)

        for _ in range(3):
            await sender.send_key(AgcKey.VERB, True)
            # A later send must not wipe the error raised by the previous one.
            assert sender.last_error is not None
            await asyncio.sleep(0.05)
            assert sender.last_error is not None
    finally:
        await sender.stop()


@pytest.mark.asyncio
async def test_sender_error_ages_out(unused_udp_port):
    now = [100.0]
    sender = UdpReentryCommandSender(
        ReentryConfig(host="127.0.0.1", port=unused_udp_port),
        error_hold_seconds=2.0,
        clock=lambda: now[0],
    )
    await sender.start()

    try:
        await sender.send_key(AgcKey.ENTER, False)
        await _wait_for(lambda: sender.last_error is not None)

        now[0] += 1.0
        assert sender.last_error is not None

        now[0] += 1.5
        assert sender.last_error is None
    finally:
        await sender.stop()

"""Tests for UDP hub discovery."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import orjson
import pytest

from neomon.const import BROADCAST_ADDRESS, SEEK_MESSAGE
from neomon.discovery import HubDiscoveryProtocol, discover
from neomon.exceptions import DiscoveryError, DiscoveryTimeout
from neomon.models import HubIdentity

ADDR = ("192.168.1.50", 19790)
REPLY = orjson.dumps({"ip": "192.168.1.50", "device_id": "hub-0001"})


async def _make_protocol() -> tuple[HubDiscoveryProtocol, asyncio.Future[HubIdentity]]:
    found: asyncio.Future[HubIdentity] = asyncio.get_running_loop().create_future()
    return HubDiscoveryProtocol(found), found


# ---------------------------------------------------------------------------
# HubDiscoveryProtocol
# ---------------------------------------------------------------------------


async def test_reply_resolves_identity() -> None:
    protocol, found = await _make_protocol()
    protocol.datagram_received(REPLY, ADDR)
    assert found.result() == HubIdentity("192.168.1.50", "hub-0001")


async def test_own_broadcast_is_ignored() -> None:
    protocol, found = await _make_protocol()
    protocol.datagram_received(SEEK_MESSAGE, ADDR)
    protocol.datagram_received(SEEK_MESSAGE + b"\n", ADDR)
    assert not found.done()


async def test_malformed_reply_is_ignored(caplog: pytest.LogCaptureFixture) -> None:
    protocol, found = await _make_protocol()
    protocol.datagram_received(b"{not json", ADDR)
    assert not found.done()
    assert "malformed discovery reply" in caplog.text


@pytest.mark.parametrize(
    "payload",
    [
        {"ip": "192.168.1.50"},
        {"device_id": "hub-0001"},
        {"ip": "", "device_id": "hub-0001"},
        ["192.168.1.50"],
    ],
)
async def test_incomplete_reply_is_ignored(payload: object) -> None:
    protocol, found = await _make_protocol()
    protocol.datagram_received(orjson.dumps(payload), ADDR)
    assert not found.done()


async def test_first_reply_wins() -> None:
    protocol, found = await _make_protocol()
    protocol.datagram_received(REPLY, ADDR)
    protocol.datagram_received(
        orjson.dumps({"ip": "192.168.1.51", "device_id": "hub-0002"}), ADDR
    )
    assert found.result().device_id == "hub-0001"


# ---------------------------------------------------------------------------
# discover()
# ---------------------------------------------------------------------------


def _patch_endpoint(reply: bytes | None) -> tuple[MagicMock, object]:
    """Patch create_datagram_endpoint; the fake hub answers the first broadcast."""
    transport = MagicMock(spec=asyncio.DatagramTransport)
    loop = asyncio.get_running_loop()

    async def fake_endpoint(factory, **kwargs):  # type: ignore[no-untyped-def]
        protocol = factory()
        if reply is not None:

            def sendto(data: bytes, addr: tuple[str, int]) -> None:
                loop.call_soon(protocol.datagram_received, data, ("192.168.1.2", 19790))
                loop.call_soon(protocol.datagram_received, reply, ADDR)

            transport.sendto.side_effect = sendto
        return transport, protocol

    return transport, patch.object(loop, "create_datagram_endpoint", side_effect=fake_endpoint)


async def test_discover_returns_first_hub() -> None:
    transport, patcher = _patch_endpoint(REPLY)
    with patcher as endpoint:
        identity = await discover(timeout=1, broadcast_port=19790, listen_port=19790)
    assert identity == HubIdentity("192.168.1.50", "hub-0001")
    transport.sendto.assert_called_with(SEEK_MESSAGE, (BROADCAST_ADDRESS, 19790))
    assert endpoint.call_args.kwargs["allow_broadcast"] is True
    assert endpoint.call_args.kwargs["local_addr"] == ("0.0.0.0", 19790)
    transport.close.assert_called_once()


async def test_discover_timeout() -> None:
    transport, patcher = _patch_endpoint(None)
    with patcher, pytest.raises(DiscoveryTimeout):
        await discover(timeout=0.01)
    transport.sendto.assert_called_with(SEEK_MESSAGE, (BROADCAST_ADDRESS, 19790))
    transport.close.assert_called_once()


async def test_discover_port_in_use() -> None:
    loop = asyncio.get_running_loop()
    busy = OSError(98, "Address already in use")
    with (
        patch.object(loop, "create_datagram_endpoint", side_effect=busy),
        pytest.raises(DiscoveryError, match="port 19790") as err,
    ):
        await discover(timeout=1, listen_port=19790)
    assert err.value.__cause__ is busy
    assert not isinstance(err.value, DiscoveryTimeout)

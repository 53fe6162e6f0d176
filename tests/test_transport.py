"""Tests for HubStreamProtocol and HubConnection."""

from __future__ import annotations

import asyncio
import socket
from unittest.mock import MagicMock, patch

import pytest

from neomon.const import ConnectionState
from neomon.exceptions import (
    ConnectError,
    ConnectTimeout,
    NotConnected,
    RecvTimeout,
    SendError,
)
from neomon.protocol import delimited_json
from neomon.transport import HubConnection, HubStreamProtocol


def _make_protocol() -> tuple[HubStreamProtocol, MagicMock, MagicMock]:
    """Create a protocol with mock connection and transport."""
    mock_conn = MagicMock()
    protocol = HubStreamProtocol(mock_conn)
    transport = MagicMock(spec=asyncio.Transport)
    transport.is_closing.return_value = False
    protocol.connection_made(transport)
    return protocol, mock_conn, transport


# ---------------------------------------------------------------------------
# HubStreamProtocol
# ---------------------------------------------------------------------------


def test_connection_made_stores_transport() -> None:
    protocol = HubStreamProtocol(MagicMock())
    transport = MagicMock(spec=asyncio.Transport)
    assert protocol._transport is None
    protocol.connection_made(transport)
    assert protocol._transport is transport


def test_write_clears_buffer() -> None:
    protocol, _, transport = _make_protocol()
    protocol.data_received(b"stale")
    protocol.write(b"frame")
    assert protocol._buf == bytearray()
    transport.write.assert_called_once_with(b"frame")


def test_write_without_transport() -> None:
    protocol = HubStreamProtocol(MagicMock())
    with pytest.raises(NotConnected):
        protocol.write(b"frame")


def test_write_when_closing() -> None:
    protocol, _, transport = _make_protocol()
    transport.is_closing.return_value = True
    with pytest.raises(NotConnected):
        protocol.write(b"frame")


def test_data_without_waiter_is_buffered() -> None:
    protocol, _, _ = _make_protocol()
    protocol.data_received(b'{"a": 1}\x00')
    assert bytes(protocol._buf) == b'{"a": 1}\x00'


async def test_expect_uses_buffered_bytes() -> None:
    protocol, _, _ = _make_protocol()
    protocol.data_received(b'{"a": 1}\x00')
    waiter = protocol.expect(delimited_json)
    assert waiter.done()
    assert waiter.result() == {"a": 1}
    assert protocol._buf == bytearray()


async def test_extractor_error_fails_waiter() -> None:
    protocol, _, _ = _make_protocol()

    def explode(buf: bytes) -> None:
        raise ValueError("bad")

    waiter = protocol.expect(explode)
    protocol.data_received(b"junk")
    with pytest.raises(ValueError, match="bad"):
        waiter.result()
    assert protocol._buf == bytearray()


async def test_connection_lost_notifies() -> None:
    protocol, mock_conn, _ = _make_protocol()
    waiter = protocol.expect(delimited_json)
    exc = OSError("reset")
    protocol.connection_lost(exc)
    assert protocol.closed.is_set()
    assert protocol._transport is None
    assert isinstance(waiter.exception(), ConnectError)
    mock_conn._on_connection_lost.assert_called_once_with(exc)


# ---------------------------------------------------------------------------
# HubConnection.connect
# ---------------------------------------------------------------------------


async def test_connect_sets_socket_options() -> None:
    conn = HubConnection("192.168.1.50")
    sock = MagicMock()
    transport = MagicMock(spec=asyncio.Transport)
    transport.get_extra_info.return_value = sock
    protocol = HubStreamProtocol(conn)

    async def fake_create_connection(*args: object, **kwargs: object) -> tuple:
        return transport, protocol

    loop = asyncio.get_running_loop()
    with patch.object(loop, "create_connection", side_effect=fake_create_connection):
        await conn.connect(timeout=1)

    assert conn.connected
    assert conn.state is ConnectionState.CONNECTED
    sock.setsockopt.assert_any_call(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    sock.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)


async def test_connect_refused() -> None:
    conn = HubConnection("192.168.1.50")
    loop = asyncio.get_running_loop()
    with (
        patch.object(loop, "create_connection", side_effect=ConnectionRefusedError()),
        pytest.raises(ConnectError),
    ):
        await conn.connect(timeout=1)
    assert conn.state is ConnectionState.FAILED


async def test_connect_timeout() -> None:
    conn = HubConnection("192.168.1.50")

    async def never(*args: object, **kwargs: object) -> tuple:
        await asyncio.sleep(10)
        raise AssertionError("unreachable")

    loop = asyncio.get_running_loop()
    with (
        patch.object(loop, "create_connection", side_effect=never),
        pytest.raises(ConnectTimeout),
    ):
        await conn.connect(timeout=0.01)
    assert conn.state is ConnectionState.FAILED


# ---------------------------------------------------------------------------
# HubConnection send / recv
# ---------------------------------------------------------------------------


def test_send_not_connected() -> None:
    with pytest.raises(NotConnected):
        HubConnection("192.168.1.50").send(b"frame")


def test_send_wraps_write_errors(
    connection: HubConnection, mock_transport: MagicMock
) -> None:
    mock_transport.write.side_effect = RuntimeError("closed")
    with pytest.raises(SendError):
        connection.send(b"frame")


async def test_recv_timeout(connection: HubConnection) -> None:
    with pytest.raises(RecvTimeout):
        await connection.recv(delimited_json, timeout=0.01)
    assert connection._protocol._waiter is None


async def test_recv_not_connected() -> None:
    with pytest.raises(NotConnected):
        await HubConnection("192.168.1.50").recv(delimited_json, timeout=0.01)


async def test_recv_result(connection: HubConnection) -> None:
    task = asyncio.create_task(connection.recv(delimited_json, timeout=1))
    await asyncio.sleep(0)
    connection._protocol.data_received(b'{"ok": true}\x00')
    assert await task == {"ok": True}


# ---------------------------------------------------------------------------
# Loss and disposal
# ---------------------------------------------------------------------------


def test_peer_close_calls_on_lost(connection: HubConnection) -> None:
    connection._protocol.connection_lost(None)
    assert connection.state is ConnectionState.DISCONNECTED
    connection._on_lost.assert_called_once_with(None)


def test_on_lost_errors_are_logged(
    connection: HubConnection, caplog: pytest.LogCaptureFixture
) -> None:
    connection._on_lost.side_effect = RuntimeError("boom")
    connection._protocol.connection_lost(None)
    assert "Error in connection-lost callback" in caplog.text


async def test_dispose_does_not_call_on_lost(
    connection: HubConnection, mock_transport: MagicMock
) -> None:
    protocol = connection._protocol

    def close() -> None:
        protocol.connection_lost(None)

    mock_transport.close.side_effect = close
    await connection.dispose()
    mock_transport.write_eof.assert_called_once()
    mock_transport.close.assert_called_once()
    connection._on_lost.assert_not_called()
    assert connection.state is ConnectionState.DISCONNECTED


async def test_dispose_is_idempotent(
    connection: HubConnection, mock_transport: MagicMock
) -> None:
    connection._protocol.closed.set()
    await connection.dispose()
    await connection.dispose()
    mock_transport.close.assert_called_once()


async def test_dispose_half_close_error(
    connection: HubConnection, mock_transport: MagicMock
) -> None:
    mock_transport.write_eof.side_effect = OSError("broken")
    connection._protocol.closed.set()
    await connection.dispose()
    mock_transport.close.assert_called_once()

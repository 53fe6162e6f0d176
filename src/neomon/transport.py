"""Persistent TCP stream to a hub."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from typing import TYPE_CHECKING, Any, TypeVar

from .const import (
    CONNECT_TIMEOUT,
    DISPOSE_TIMEOUT,
    PROTOCOL_PORT,
    RECV_TIMEOUT,
    ConnectionState,
)
from .exceptions import (
    ConnectError,
    ConnectTimeout,
    NotConnected,
    RecvTimeout,
    SendError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class HubStreamProtocol(asyncio.Protocol):
    """
    Low-level protocol handler for the hub socket.

    Accumulates inbound bytes and, while a receive is pending, offers the
    whole buffer to the receiver's extract function after every chunk.
    """

    def __init__(self, connection: HubConnection) -> None:
        self._connection = connection
        self._transport: asyncio.Transport | None = None
        self._buf = bytearray()
        self._extract: Callable[[bytes], Any] | None = None
        self._waiter: asyncio.Future[Any] | None = None
        self.closed = asyncio.Event()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        """Called when the TCP connection is established."""
        self._transport = transport  # type: ignore[assignment]

    def data_received(self, data: bytes) -> None:
        """Called when data is received from the hub."""
        _LOGGER.debug("[<] RX %d bytes: %r", len(data), data)
        self._buf.extend(data)
        self._process_buffer()

    def connection_lost(self, exc: Exception | None) -> None:
        """Called when the connection is lost."""
        self._transport = None
        self.closed.set()
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_exception(ConnectError(f"Connection lost: {exc!r}"))
        self._connection._on_connection_lost(exc)  # noqa: SLF001

    def write(self, data: bytes) -> None:
        """Write a frame, dropping whatever was left in the receive buffer."""
        if self._transport is None or self._transport.is_closing():
            raise NotConnected("Not connected")
        self._buf.clear()
        _LOGGER.debug("[>] TX %d bytes: %r", len(data), data)
        self._transport.write(data)

    def expect(self, extract: Callable[[bytes], Any]) -> asyncio.Future[Any]:
        """Register the extract function for the next response."""
        loop = asyncio.get_running_loop()
        self._extract = extract
        self._waiter = loop.create_future()
        # bytes may already be waiting from a chunk that arrived after write()
        self._process_buffer()
        return self._waiter

    def clear_waiter(self) -> None:
        """Forget the pending receive."""
        self._extract = None
        self._waiter = None

    def _process_buffer(self) -> None:
        """
        Try to extract a complete message from everything received so far.

        ``None`` from the extract function means "not yet complete"; an
        exception is unrecoverable for this response and fails the waiter.
        """
        waiter = self._waiter
        if waiter is None or waiter.done() or self._extract is None or not self._buf:
            return
        try:
            value = self._extract(bytes(self._buf))
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("recv: unable to decode %d bytes: %s", len(self._buf), exc)
            self._buf.clear()
            waiter.set_exception(exc)
            return
        if value is not None:
            self._buf.clear()
            waiter.set_result(value)


class HubConnection:
    """
    TCP connection to a hub.

    Owns one socket.  ``on_lost`` is called when the hub closes the socket
    or it fails; it is not called for a local ``dispose()``.
    """

    def __init__(
        self,
        address: str,
        port: int = PROTOCOL_PORT,
        *,
        on_lost: Callable[[Exception | None], None] | None = None,
    ) -> None:
        self.address = address
        self.port = port
        self._on_lost = on_lost
        self._transport: asyncio.Transport | None = None
        self._protocol: HubStreamProtocol | None = None
        self._disposing = False
        self.state = ConnectionState.DISCONNECTED

    @property
    def connected(self) -> bool:
        """Return True if the connection is active."""
        return self.state is ConnectionState.CONNECTED

    async def connect(self, timeout: float = CONNECT_TIMEOUT) -> None:
        """
        Open the TCP stream with Nagle disabled and keep-alive enabled.

        Raises:
            ConnectTimeout: If the hub did not accept within ``timeout``.
            ConnectError: On any socket-level failure.

        """
        loop = asyncio.get_running_loop()
        self.state = ConnectionState.CONNECTING
        self._disposing = False
        _LOGGER.info("Connecting to %s:%s...", self.address, self.port)
        try:
            self._transport, self._protocol = await asyncio.wait_for(
                loop.create_connection(
                    lambda: HubStreamProtocol(self), self.address, self.port
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            self.state = ConnectionState.FAILED
            raise ConnectTimeout(f"Connection timed out after {timeout}s") from exc
        except OSError as exc:
            self.state = ConnectionState.FAILED
            raise ConnectError(f"TCP connect failed: {exc!r}") from exc
        sock = self._transport.get_extra_info("socket")
        if sock is not None:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        self.state = ConnectionState.CONNECTED
        _LOGGER.info("Connected to %s:%s", self.address, self.port)

    def send(self, data: bytes) -> None:
        """
        Write a complete frame to the hub.

        Raises:
            NotConnected: If no socket is open.
            SendError: If the write fails.

        """
        if self._protocol is None or not self.connected:
            raise NotConnected("Not connected")
        try:
            self._protocol.write(data)
        except (OSError, RuntimeError) as exc:
            raise SendError(f"Write failed: {exc!r}") from exc

    async def recv(
        self, extract: Callable[[bytes], T | None], timeout: float = RECV_TIMEOUT
    ) -> T:
        """
        Wait for the first complete message ``extract`` finds in the stream.

        Raises:
            RecvTimeout: If nothing complete arrives within ``timeout``.
            ConnectError: If the connection drops while waiting.
            Exception: Whatever ``extract`` raises for a corrupt buffer.

        """
        if self._protocol is None or not self.connected:
            raise NotConnected("Not connected")
        protocol = self._protocol
        waiter = protocol.expect(extract)
        try:
            return await asyncio.wait_for(waiter, timeout=timeout)
        except TimeoutError as exc:
            raise RecvTimeout(f"No response within {timeout}s") from exc
        finally:
            protocol.clear_waiter()

    def _on_connection_lost(self, exc: Exception | None) -> None:
        """Called by the protocol when the socket closes."""
        was_connected = self.connected
        self.state = ConnectionState.DISCONNECTED
        self._transport = None
        if self._disposing or not was_connected:
            return
        if exc:
            _LOGGER.warning("Connection lost: %s", exc)
        else:
            _LOGGER.warning("Connection closed by hub")
        if self._on_lost is not None:
            try:
                self._on_lost(exc)
            except Exception:
                _LOGGER.exception("Error in connection-lost callback")

    async def dispose(self) -> None:
        """Half-close, then close the socket; safe to call more than once."""
        self._disposing = True
        transport, protocol = self._transport, self._protocol
        self._transport = None
        self._protocol = None
        self.state = ConnectionState.DISCONNECTED
        if transport is None:
            return
        _LOGGER.debug("Disposing connection to %s", self.address)
        if transport.can_write_eof():
            try:
                transport.write_eof()
            except (OSError, RuntimeError) as exc:
                _LOGGER.debug("Half-close failed: %s", exc)
        transport.close()
        if protocol is not None:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(protocol.closed.wait(), DISPOSE_TIMEOUT)
        _LOGGER.info("Disconnected from %s", self.address)

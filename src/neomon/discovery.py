"""One-shot UDP broadcast discovery of a hub."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import orjson

from .const import (
    BROADCAST_ADDRESS,
    DISCOVER_INTERVAL,
    DISCOVER_PORT,
    DISCOVERY_TIMEOUT,
    LOCAL_DISCOVER_PORT,
    SEEK_MESSAGE,
)
from .exceptions import DiscoveryError, DiscoveryTimeout
from .models import HubIdentity

_LOGGER = logging.getLogger(__name__)


class HubDiscoveryProtocol(asyncio.DatagramProtocol):
    """Resolves ``found`` with the first hub that answers the hubseek broadcast."""

    def __init__(self, found: asyncio.Future[HubIdentity]) -> None:
        self._found = found

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        """Called for every datagram on the discovery port."""
        _LOGGER.debug("[<] %s:%s %r", addr[0], addr[1], data)
        if data.strip() == SEEK_MESSAGE:
            # our own broadcast, or someone else is also discovering
            return
        try:
            msg: Any = orjson.loads(data)
        except orjson.JSONDecodeError:
            _LOGGER.warning("Ignoring malformed discovery reply: %r", data[:200])
            return
        if not isinstance(msg, dict) or not msg.get("ip") or not msg.get("device_id"):
            return
        if not self._found.done():
            identity = HubIdentity(str(msg["ip"]), str(msg["device_id"]))
            _LOGGER.info("Discovered hub %s at %s", identity.device_id, identity.address)
            self._found.set_result(identity)

    def error_received(self, exc: Exception) -> None:
        """Called when a send or receive operation fails."""
        _LOGGER.error("Discovery socket error: %s", exc)


async def _seek_loop(transport: asyncio.DatagramTransport, port: int) -> None:
    """Broadcast hubseek now and then every DISCOVER_INTERVAL."""
    while True:
        _LOGGER.debug("[>] hubseek -> %s:%s", BROADCAST_ADDRESS, port)
        transport.sendto(SEEK_MESSAGE, (BROADCAST_ADDRESS, port))
        await asyncio.sleep(DISCOVER_INTERVAL)


async def discover(
    timeout: float = DISCOVERY_TIMEOUT,
    broadcast_port: int = DISCOVER_PORT,
    listen_port: int = LOCAL_DISCOVER_PORT,
) -> HubIdentity:
    """
    Broadcast ``hubseek`` until a hub answers.

    Args:
        timeout: Seconds to wait for a reply.
        broadcast_port: UDP port the hubs listen on.
        listen_port: Local UDP port replies are received on.

    Returns:
        The address and device id of the first hub that replied.

    Raises:
        DiscoveryError: If the discovery socket could not be opened.
        DiscoveryTimeout: If no hub answered within ``timeout``.

    """
    loop = asyncio.get_running_loop()
    found: asyncio.Future[HubIdentity] = loop.create_future()
    try:
        transport, _ = await loop.create_datagram_endpoint(
            lambda: HubDiscoveryProtocol(found),
            local_addr=("0.0.0.0", listen_port),  # noqa: S104
            allow_broadcast=True,
        )
    except OSError as exc:
        raise DiscoveryError(
            f"Unable to open discovery socket on port {listen_port}: {exc!r}"
        ) from exc
    seeker = asyncio.create_task(_seek_loop(transport, broadcast_port))
    try:
        return await asyncio.wait_for(found, timeout=timeout)
    except TimeoutError as exc:
        raise DiscoveryTimeout(f"No hub answered within {timeout}s") from exc
    finally:
        seeker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await seeker
        transport.close()

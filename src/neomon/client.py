"""Client session: discovery, connection recovery and polling."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from .config import NeoConfig
from .const import ClientEvent
from .discovery import discover
from .exceptions import DiscoveryError, NeoConnectionError, NeoError
from .hub import NeoHub
from .protocol import NeoProtocol
from .store import AddressStore
from .transport import HubConnection

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Self

    from .metrics import MetricsSink
    from .models import HubIdentity, HubState

_LOGGER = logging.getLogger(__name__)


class NeoClient:
    """
    Session with a single hub.

    ``start()`` resolves the hub address (persisted, or discovered), connects
    and runs the first reconciliation, retrying forever with a fixed delay.
    ``start_background_tasks()`` then polls the hub and reconnects when the
    connection drops.  Call ``disconnect()`` to stop everything.
    """

    def __init__(
        self,
        config: NeoConfig | None = None,
        *,
        store: AddressStore | None = None,
        metrics: MetricsSink | None = None,
    ) -> None:
        self.config = config or NeoConfig()
        self.store = store or AddressStore(self.config.address_file)
        self.metrics = metrics
        self.hub_id: HubIdentity | None = None
        self.hub: NeoHub | None = None
        self._connection: HubConnection | None = None
        self._protocol: NeoProtocol | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._interrupt = asyncio.Event()
        self._stopping = False
        self._reconnecting = False
        self._listeners: list[Callable[[ClientEvent], None]] = []

    @property
    def connected(self) -> bool:
        """Return True if the connection is active."""
        return self._connection is not None and self._connection.connected

    @property
    def state(self) -> HubState | None:
        """Reconciled state of the connected hub, if any."""
        return self.hub.state if self.hub is not None else None

    def add_listener(self, callback: Callable[[ClientEvent], None]) -> Callable[[], None]:
        """Register a lifecycle listener. Returns a callable to unregister it."""
        self._listeners.append(callback)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _remove

    def _emit(self, event: ClientEvent) -> None:
        for cb in self._listeners:
            try:
                cb(event)
            except Exception:  # noqa: PERF203
                _LOGGER.exception("Error in client listener")

    # --- Discovery ---

    async def discover_hub(self, *, retry: bool = True) -> HubIdentity:
        """
        Find a hub by broadcast and persist its address.

        With ``retry`` discovery is restarted after a pause until a hub
        answers; otherwise DiscoveryError (or DiscoveryTimeout) propagates.
        """
        while True:
            try:
                identity = await discover(
                    self.config.discovery_timeout,
                    self.config.discover_port,
                    self.config.local_discover_port,
                )
            except DiscoveryError as exc:
                if not retry:
                    raise
                _LOGGER.warning(
                    "%s; retrying in %.0fs", exc, self.config.discovery_retry_wait
                )
                await asyncio.sleep(self.config.discovery_retry_wait)
                continue
            self.hub_id = identity
            try:
                await self.store.save(identity)
            except OSError as exc:
                _LOGGER.error("Unable to persist hub address: %s", exc)
            self._emit(ClientEvent.DISCOVERED)
            return identity

    async def _resolve_hub_id(self) -> HubIdentity:
        if self.hub_id is None:
            self.hub_id = await self.store.load()
        if self.hub_id is not None:
            return self.hub_id
        _LOGGER.info("No known hub address; discovering")
        return await self.discover_hub()

    # --- Connection lifecycle ---

    async def connect(self) -> NeoHub:
        """
        Open the connection and protocol for the resolved hub.

        Returns:
            The NeoHub bound to the new connection, or the current one if
            already connected.

        Raises:
            NeoConnectionError: If the TCP connection cannot be established.

        """
        if self._connection is not None and self.hub is not None:
            _LOGGER.debug("Connection already exists")
            return self.hub
        hub_id = await self._resolve_hub_id()
        connection = HubConnection(
            hub_id.address, self.config.protocol_port, on_lost=self._on_connection_lost
        )
        await connection.connect(self.config.connect_timeout)
        self._connection = connection
        self._protocol = NeoProtocol(
            connection,
            heartbeat_interval=self.config.heartbeat_interval,
            recv_timeout=self.config.recv_timeout,
        )
        self._protocol.start_heartbeat()
        hub = self.hub = NeoHub(hub_id, self._protocol, self.metrics)
        self._interrupt.clear()
        self._emit(ClientEvent.CONNECTED)
        return hub

    async def start(self) -> NeoHub:
        """
        Connect and run the first reconciliation, retrying until it works.

        Any failure tears the session down and forgets the persisted
        address, so the next attempt rediscovers the hub.
        """
        while True:
            try:
                hub = await self.connect()
                await self.update_network()
            except NeoError as exc:
                _LOGGER.warning("Connection failed; clearing cached hub address: %s", exc)
                await self._close()
                self.hub_id = None
                await self.store.delete()
                _LOGGER.info("Reconnecting in %.0fs...", self.config.reconnect_delay)
                await asyncio.sleep(self.config.reconnect_delay)
            else:
                return hub

    async def update_network(self) -> HubState:
        """Run one reconciliation cycle; errors propagate."""
        if self.hub is None:
            raise NeoConnectionError("Not connected")
        state = await self.hub.update_network()
        self._emit(ClientEvent.NETWORK_UPDATED)
        return state

    async def poll(self) -> None:
        """Run one reconciliation cycle, logging instead of raising."""
        try:
            await self.update_network()
        except NeoError as exc:
            _LOGGER.error("Poll failed: %s", exc)

    def _on_connection_lost(self, exc: Exception | None) -> None:
        """Called by the transport when the hub goes away."""
        self._interrupt.set()

    async def _close(self) -> None:
        """Tear down protocol and connection, draining any in-flight command."""
        protocol, connection = self._protocol, self._connection
        self._protocol = None
        self._connection = None
        self.hub = None
        if protocol is not None:
            await protocol.dispose()
        if connection is not None:
            await connection.dispose()
            self._emit(ClientEvent.DISCONNECTED)

    # --- Background tasks ---

    async def _wait_interrupt(self, delay: float) -> bool:
        """Sleep up to ``delay``; return True if interrupted by stop or loss."""
        try:
            await asyncio.wait_for(self._interrupt.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True

    async def _run_loop(self) -> None:
        """
        Main background loop: poll while connected, reconnect on loss.

        A running poll is never cancelled by disconnect(); it finishes and
        the loop then exits.  Unexpected errors are logged and the loop
        carries on after ``reconnect_delay``.
        """
        while not self._stopping:
            try:
                await self._poll_until_lost()
                if self._stopping:
                    return
                await self._reconnect()
            except Exception:
                _LOGGER.exception("Unexpected error in run loop")
                self._reconnecting = True
                try:
                    await asyncio.sleep(self.config.reconnect_delay)
                finally:
                    self._reconnecting = False

    async def _poll_until_lost(self) -> None:
        while self.connected and not self._stopping:
            if await self._wait_interrupt(self.config.poll_interval):
                return
            await self.poll()

    async def _reconnect(self) -> None:
        _LOGGER.warning("Connection to hub lost")
        self._reconnecting = True
        try:
            await self._close()
            _LOGGER.info("Reconnecting in %.0fs...", self.config.reconnect_delay)
            await asyncio.sleep(self.config.reconnect_delay)
            await self.start()
        finally:
            self._reconnecting = False
        _LOGGER.info("Reconnected successfully")

    def start_background_tasks(self) -> None:
        """Start the poll and reconnect loop."""
        self._stopping = False
        self._run_task = asyncio.create_task(self._run_loop())

    async def disconnect(self) -> None:
        """Stop polling and close the connection."""
        self._stopping = True
        self._interrupt.set()
        if self._run_task:
            if self._reconnecting:
                self._run_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._run_task
            self._run_task = None
        await self._close()
        _LOGGER.info("Disconnected")

    async def __aenter__(self) -> Self:
        """Connect, reconcile, and start background tasks."""
        await self.start()
        self.start_background_tasks()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Disconnect and stop all background tasks."""
        await self.disconnect()

"""Command framing and the single-flight request/response protocol."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import orjson

from .const import DELIMITER, HEARTBEAT_INTERVAL, RECV_TIMEOUT
from .exceptions import (
    CommandInProgress,
    FramingError,
    NeoError,
    NotConnected,
)

if TYPE_CHECKING:
    from .transport import HubConnection

_LOGGER = logging.getLogger(__name__)

# Positional arity of every command verb the hub understands.
COMMAND_ARITY: dict[str, int] = {
    # hub scoped
    "RESET": 0,
    "IDENTIFY": 0,
    "SET_CHANNEL": 1,
    "SET_TEMP_FORMAT": 1,
    "SET_FORMAT": 1,
    "AWAY_ON": 0,
    "AWAY_OFF": 0,
    "HOLIDAY": 2,
    "GET_HOLIDAY": 0,
    "CANCEL_HOLIDAY": 0,
    "GET_SYSTEM": 0,
    "GET_LIVE_DATA": 0,
    "GET_ZONES": 0,
    "GET_DEVICES": 0,
    "GET_DEVICE_LIST": 1,
    "DEVICES_SN": 0,
    "GET_ENGINEERS": 0,
    "GET_FIRMWARE": 0,
    "NTP_ON": 0,
    "NTP_OFF": 0,
    "SET_DATE": 1,
    "SET_TIME": 1,
    "TIME_ZONE": 1,
    "MANUAL_DST": 1,
    "DST_ON": 0,
    "DST_OFF": 0,
    "GET_PROFILE_NAMES": 0,
    "GET_PROFILES": 0,
    "SET_LEVEL_4": 0,
    "SET_LEVEL_6": 0,
    # device scoped
    "IDENTIFY_DEV": 1,
    "GET_PROFILE_0": 1,
    "GET_TIMER_0": 1,
    "STORE_PROFILE_0": 2,
    "STORE_TIMER_0": 2,
    "GET_HOURSRUN": 1,
    "FROST_ON": 1,
    "FROST_OFF": 1,
    "GET_TEMPLOG": 1,
    "SET_DIFF": 2,
    "SET_FLOOR": 2,
    "SET_PREHEAT": 2,
    "SET_FROST": 2,
    "SET_DELAY": 2,
    "HOLD": 1,
    "LOCK": 2,
    "UNLOCK": 1,
    "SET_TEMP": 2,
    "TIMER_HOLD_ON": 2,
    "TIMER_HOLD_OFF": 2,
}


@dataclass(frozen=True)
class NeoCommand:
    """A named command verb with positional arguments."""

    name: str
    args: tuple[Any, ...] = ()

    def serialise(self) -> bytes:
        r"""Encode the command for sending.

        Wire format: ``{"<NAME>": [args...]}`` + ``\0\n``.  An empty
        argument list is sent as the literal ``0``, which the hub expects.
        """
        payload = list(self.args) if self.args else 0
        return orjson.dumps({self.name: payload}) + DELIMITER


def delimited_json(buf: bytes) -> Any:
    """
    Decode a response once a NUL byte has been seen.

    Returns None while the buffer holds no NUL byte (response incomplete).
    Every NUL is stripped before parsing.

    Raises:
        FramingError: If the delimited payload is not valid JSON.

    """
    if b"\x00" not in buf:
        return None
    text = buf.replace(b"\x00", b"").strip()
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise FramingError(f"Malformed response: {text[:200]!r}") from exc


class NeoProtocol:
    """
    Request/response protocol over a HubConnection.

    At most one command is in flight at a time; a second command fails
    immediately with CommandInProgress instead of queueing.
    """

    def __init__(
        self,
        connection: HubConnection,
        *,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        recv_timeout: float = RECV_TIMEOUT,
    ) -> None:
        self._connection = connection
        self._heartbeat_interval = heartbeat_interval
        self._recv_timeout = recv_timeout
        self._in_progress: NeoCommand | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._heartbeat_stop = asyncio.Event()

    @property
    def in_progress(self) -> NeoCommand | None:
        """Return the command currently awaiting a response, if any."""
        return self._in_progress

    @property
    def connection(self) -> HubConnection:
        """The HubConnection commands are written to."""
        return self._connection

    async def send_command(self, cmd: NeoCommand) -> Any:
        """
        Send a command and wait for its decoded response.

        Raises:
            NotConnected: If the connection is not open.
            CommandInProgress: If another command is awaiting its response.
            NeoConnectionError: On send failure or receive timeout.
            FramingError: If the response could not be decoded.

        """
        if not self._connection.connected:
            _LOGGER.warning("%s: not connected", cmd.name)
            raise NotConnected("Not connected")
        if self._in_progress is not None:
            _LOGGER.warning(
                "%s: %s still in progress", cmd.name, self._in_progress.name
            )
            raise CommandInProgress(f"In progress: {self._in_progress.name}")
        _LOGGER.debug("sendCommand %s %r", cmd.name, cmd.args)
        self._in_progress = cmd
        self._idle.clear()
        try:
            self._connection.send(cmd.serialise())
            return await self._connection.recv(delimited_json, self._recv_timeout)
        except NeoError as exc:
            _LOGGER.error("%s failed: %s", cmd.name, exc)
            raise
        finally:
            self._in_progress = None
            self._idle.set()

    # --- Heartbeat ---

    async def heartbeat(self) -> None:
        """Issue a harmless GET_SYSTEM to keep the connection alive."""
        try:
            await self.send_command(NeoCommand("GET_SYSTEM"))
        except CommandInProgress:
            _LOGGER.debug("Heartbeat skipped, command in progress")
        except NeoError as exc:
            _LOGGER.error("Heartbeat failed: %s", exc)
        else:
            _LOGGER.debug("Heartbeat ok")

    async def _heartbeat_loop(self) -> None:
        """Send heartbeats until asked to stop."""
        while not self._heartbeat_stop.is_set():
            try:
                await asyncio.wait_for(
                    self._heartbeat_stop.wait(), timeout=self._heartbeat_interval
                )
            except TimeoutError:
                if self._connection.connected:
                    await self.heartbeat()

    def start_heartbeat(self) -> None:
        """Start the periodic heartbeat task."""
        if self._heartbeat_task is None:
            self._heartbeat_stop.clear()
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    async def stop_heartbeat(self) -> None:
        """Stop the heartbeat, letting an in-flight heartbeat complete."""
        task = self._heartbeat_task
        if task is None:
            return
        self._heartbeat_task = None
        self._heartbeat_stop.set()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def dispose(self) -> None:
        """Stop the heartbeat and wait for any in-flight command to finish."""
        await self.stop_heartbeat()
        if self._in_progress is not None:
            _LOGGER.debug("Waiting for %s to complete", self._in_progress.name)
        await self._idle.wait()

"""Shared fixtures for neomon tests."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest

from neomon.const import ConnectionState
from neomon.hub import NeoHub
from neomon.models import HubIdentity
from neomon.protocol import NeoCommand
from neomon.transport import HubConnection, HubStreamProtocol

HUB_ID = HubIdentity("192.168.1.50", "hub-0001")


class FakeProtocol:
    """Stands in for NeoProtocol: canned responses keyed by command verb.

    A response may be a value, an exception instance (raised), or a
    callable taking the NeoCommand.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.sent: list[NeoCommand] = []

    async def send_command(self, cmd: NeoCommand) -> Any:
        self.sent.append(cmd)
        if cmd.name not in self.responses:
            raise AssertionError(f"unexpected command {cmd.name}")
        resp = self.responses[cmd.name]
        if callable(resp):
            resp = resp(cmd)
        if isinstance(resp, BaseException):
            raise resp
        return resp

    def names(self) -> list[str]:
        return [c.name for c in self.sent]

    def count(self, name: str) -> int:
        return self.names().count(name)


def make_live_data(
    devices: list[dict[str, Any]] | None = None, **timestamps: int
) -> dict[str, Any]:
    """Build a GET_LIVE_DATA response; timestamp keys are lower-case suffixes."""
    resp: dict[str, Any] = {
        "HUB_AWAY": False,
        "HUB_HOLIDAY": False,
        "HUB_TIME": 1700000000,
        "TIMESTAMP_DEVICE_LISTS": 0,
        "TIMESTAMP_ENGINEERS": 0,
        "TIMESTAMP_PROFILE_0": 0,
        "TIMESTAMP_PROFILE_COMFORT_LEVELS": 0,
        "TIMESTAMP_PROFILE_TIMERS": 0,
        "TIMESTAMP_PROFILE_TIMERS_0": 0,
        "TIMESTAMP_SYSTEM": 0,
        "devices": devices or [],
    }
    for key, value in timestamps.items():
        resp[f"TIMESTAMP_{key.upper()}"] = value
    return resp


def make_device_live(name: str, **fields: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "ZONE_NAME": name,
        "ACTUAL_TEMP": "20.5",
        "SET_TEMP": "21.0",
        "HEAT_ON": True,
        "ACTIVE_PROFILE": 0,
    }
    entry.update({k.upper(): v for k, v in fields.items()})
    return entry


SYSTEM = {
    "CORF": "C",
    "DEVICE_ID": "hub-0001",
    "DST_ON": True,
    "FORMAT": 2,
    "HEATING_LEVELS": 4,
    "HUB_TYPE": 2,
    "HUB_VERSION": 2134,
    "NTP_ON": "Running",
    "TIMESTAMP": 0,
    "TIME_ZONE": 0.0,
}


def make_profile_body(device: str | None = None, days: int = 1) -> dict[str, Any]:
    day = {
        "wake": ["07:00", 21, 16, False],
        "leave": ["09:00", 16, 16, False],
        "return": ["17:00", 21, 16, False],
        "sleep": ["22:00", 16, 16, False],
    }
    names = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
    body: dict[str, Any] = {name: dict(day) for name in names[:days]}
    if device is not None:
        body["device"] = device
    return body


def make_profile0(device: str) -> dict[str, Any]:
    return {"TIMESTAMP": 1, "profiles": [make_profile_body(device)]}


@pytest.fixture
def fake_protocol() -> FakeProtocol:
    """Return a FakeProtocol with the always-fetched commands answered."""
    return FakeProtocol({"GET_LIVE_DATA": make_live_data(), "GET_SYSTEM": SYSTEM})


@pytest.fixture
def hub(fake_protocol: FakeProtocol) -> NeoHub:
    """Return a NeoHub wired to the fake protocol."""
    return NeoHub(HUB_ID, fake_protocol)  # type: ignore[arg-type]


@pytest.fixture
def mock_transport() -> MagicMock:
    """Return a mock asyncio.Transport that reports itself open."""
    transport = MagicMock(spec=asyncio.Transport)
    transport.is_closing.return_value = False
    transport.can_write_eof.return_value = True
    transport.get_extra_info.return_value = None
    return transport


@pytest.fixture
def connection(mock_transport: MagicMock) -> HubConnection:
    """Return a HubConnection in the connected state over a mock transport.

    Inbound data is simulated with ``connection._protocol.data_received``.
    """
    conn = HubConnection("192.168.1.50", on_lost=MagicMock())
    protocol = HubStreamProtocol(conn)
    protocol.connection_made(mock_transport)
    conn._protocol = protocol
    conn._transport = mock_transport
    conn.state = ConnectionState.CONNECTED
    return conn

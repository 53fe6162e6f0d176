"""Constants and enums for the neomon hub protocol."""

from __future__ import annotations

from enum import Enum, IntEnum


class ConnectionState(IntEnum):
    """Lifecycle of a hub TCP connection."""

    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    FAILED = 3


class DeviceKind(str, Enum):
    """Device variant held by a hub."""

    ZONE = "zone"
    PLUG = "plug"


class ProfileType(str, Enum):
    """
    Schedule length of a comfort profile.

    ONE_DAY: same schedule every day (only sunday is present).
    TWO_DAY: weekday/weekend split (sunday and monday).
    SEVEN_DAY: one schedule per day of the week.
    """

    ONE_DAY = "24h"
    TWO_DAY = "5/2day"
    SEVEN_DAY = "7day"


class ClientEvent(str, Enum):
    """Notifications emitted by NeoClient to registered listeners."""

    DISCOVERED = "discovered"
    CONNECTED = "connected"
    NETWORK_UPDATED = "network_updated"
    DISCONNECTED = "disconnected"


DISCOVER_PORT = 19790
LOCAL_DISCOVER_PORT = 19790
PROTOCOL_PORT = 4242
METRICS_PORT = 9100

SEEK_MESSAGE = b"hubseek"
BROADCAST_ADDRESS = "255.255.255.255"
DELIMITER = b"\x00\n"

DISCOVER_INTERVAL = 5  # seconds between hubseek broadcasts
DISCOVERY_TIMEOUT = 60
DISCOVERY_RETRY_WAIT = 15
CONNECT_TIMEOUT = 15
RECV_TIMEOUT = 30
DISPOSE_TIMEOUT = 5
HEARTBEAT_INTERVAL = 30
POLL_INTERVAL = 10
RECONNECT_DELAY = 5  # fixed delay before each reconnect attempt

VALID_CHANNELS = frozenset({11, 14, 15, 19, 20, 24, 25})
VALID_TEMP_FORMATS = frozenset({"C", "F"})
VALID_FORMATS = frozenset({"NONPROGRAMMABLE", "24HOURSFIXED", "5DAY/2DAY", "7DAY"})

"""Discovery, connection and state sync for a home-heating hub."""

__version__ = "0.3.0"

from .client import NeoClient
from .config import NeoConfig
from .const import (
    PROTOCOL_PORT,
    ClientEvent,
    ConnectionState,
    DeviceKind,
    ProfileType,
)
from .device import Device
from .discovery import discover
from .exceptions import (
    CommandError,
    CommandInProgress,
    ConnectError,
    ConnectTimeout,
    DeviceFetchError,
    DiscoveryError,
    DiscoveryTimeout,
    FramingError,
    NeoConnectionError,
    NeoError,
    NotConnected,
    RecvTimeout,
    SendError,
)
from .hub import NeoHub
from .models import HubIdentity, HubState
from .protocol import NeoCommand, NeoProtocol
from .transport import HubConnection

__all__ = [
    "PROTOCOL_PORT",
    "ClientEvent",
    "CommandError",
    "CommandInProgress",
    "ConnectError",
    "ConnectTimeout",
    "ConnectionState",
    "Device",
    "DeviceFetchError",
    "DeviceKind",
    "DiscoveryError",
    "DiscoveryTimeout",
    "FramingError",
    "HubConnection",
    "HubIdentity",
    "HubState",
    "NeoClient",
    "NeoCommand",
    "NeoConfig",
    "NeoConnectionError",
    "NeoError",
    "NeoHub",
    "NeoProtocol",
    "NotConnected",
    "ProfileType",
    "RecvTimeout",
    "SendError",
    "discover",
]

"""Exception classes for neomon."""


class NeoError(Exception):
    """Base exception for neomon."""


class DiscoveryError(NeoError):
    """The discovery socket could not be opened."""


class DiscoveryTimeout(DiscoveryError):
    """No hub answered the hubseek broadcast in time."""


class NeoConnectionError(NeoError):
    """Communication with the hub failed."""


class ConnectTimeout(NeoConnectionError):
    """The TCP connection was not established in time."""


class ConnectError(NeoConnectionError):
    """The TCP connection failed or was lost."""


class SendError(NeoConnectionError):
    """A frame could not be written to the hub."""


class RecvTimeout(NeoConnectionError):
    """No complete response arrived in time."""


class NotConnected(NeoConnectionError):
    """A command was issued without an open connection."""


class FramingError(NeoError):
    """A delimited response could not be decoded."""


class CommandInProgress(NeoError):
    """Another command is still waiting for its response."""


class CommandError(NeoError):
    """A command was rejected before being sent."""


class DeviceFetchError(NeoError):
    """Fetching data for a single device failed."""

"""Hub-scoped commands and the owner of the reconciled hub state."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any

from . import reconcile
from .const import VALID_CHANNELS, VALID_FORMATS, VALID_TEMP_FORMATS
from .device import CommandSpec
from .exceptions import CommandError
from .models import HubState

if TYPE_CHECKING:
    from .metrics import MetricsSink
    from .models import HubIdentity
    from .protocol import NeoProtocol

_LOGGER = logging.getLogger(__name__)

HUB_COMMANDS: dict[str, CommandSpec] = {
    "reboot": CommandSpec("RESET"),
    "identify": CommandSpec("IDENTIFY"),
    "set_channel": CommandSpec("SET_CHANNEL", ("channel",)),
    "set_temp_format": CommandSpec("SET_TEMP_FORMAT", ("format",)),
    "set_format": CommandSpec("SET_FORMAT", ("format",)),
    "away_on": CommandSpec("AWAY_ON"),
    "away_off": CommandSpec("AWAY_OFF"),
    "holiday": CommandSpec("HOLIDAY", ("start", "end")),
    "get_holiday": CommandSpec("GET_HOLIDAY"),
    "cancel_holiday": CommandSpec("CANCEL_HOLIDAY"),
    "get_system": CommandSpec("GET_SYSTEM"),
    "get_live_data": CommandSpec("GET_LIVE_DATA"),
    "get_zones": CommandSpec("GET_ZONES"),
    "get_devices": CommandSpec("GET_DEVICES"),
    "get_device_list": CommandSpec("GET_DEVICE_LIST", ("room",)),
    "get_devices_sn": CommandSpec("DEVICES_SN"),
    "get_engineers": CommandSpec("GET_ENGINEERS"),
    "get_firmware": CommandSpec("GET_FIRMWARE"),
    "ntp_on": CommandSpec("NTP_ON"),
    "ntp_off": CommandSpec("NTP_OFF"),
    "set_date": CommandSpec("SET_DATE", ("date",)),
    "set_time": CommandSpec("SET_TIME", ("time",)),
    "set_timezone": CommandSpec("TIME_ZONE", ("offset",)),
    "manual_dst": CommandSpec("MANUAL_DST", ("enabled",)),
    "dst_on": CommandSpec("DST_ON"),
    "dst_off": CommandSpec("DST_OFF"),
    "get_profile_names": CommandSpec("GET_PROFILE_NAMES"),
    "get_profiles": CommandSpec("GET_PROFILES"),
    "set_level_4": CommandSpec("SET_LEVEL_4"),
    "set_level_6": CommandSpec("SET_LEVEL_6"),
}


def _holiday_stamp(when: datetime) -> str:
    """Format a datetime the way HOLIDAY expects it (HHMMSSDDMMYYYY)."""
    return when.strftime("%H%M%S%d%m%Y")


class NeoHub:
    """
    A connected hub.

    Hub-scoped commands go through the shared NeoProtocol; the reconciled
    zones, plugs and profiles live in ``state`` and are refreshed by
    ``update_network()``.
    """

    def __init__(
        self,
        hub_id: HubIdentity,
        protocol: NeoProtocol,
        metrics: MetricsSink | None = None,
    ) -> None:
        self.hub_id = hub_id
        self.protocol = protocol
        self.metrics = metrics
        self.state = HubState()

    async def run(self, action: str, *values: Any) -> Any:
        """Run a command from HUB_COMMANDS."""
        spec = HUB_COMMANDS.get(action)
        if spec is None:
            raise CommandError(f"Unknown hub command: {action}")
        cmd = spec.build(None, values)
        _LOGGER.info("hub %s", cmd.name)
        return await self.protocol.send_command(cmd)

    async def update_network(self) -> HubState:
        """Bring ``state`` in line with the hub; see reconcile.update_network."""
        return await reconcile.update_network(self)

    # --- Queries ---

    async def get_system(self) -> dict[str, Any]:
        """Hub configuration (GET_SYSTEM)."""
        return await self.run("get_system")

    async def get_live_data(self) -> dict[str, Any]:
        """Live snapshot of the hub and every device (GET_LIVE_DATA)."""
        return await self.run("get_live_data")

    async def get_zones(self) -> dict[str, Any]:
        """Zone names mapped to their ids (GET_ZONES)."""
        return await self.run("get_zones")

    async def get_devices(self) -> Any:
        """Return the ``result`` member of GET_DEVICES."""
        resp = await self.run("get_devices")
        return resp.get("result", []) if isinstance(resp, dict) else resp

    async def get_device_list(self, room: str) -> Any:
        """Devices registered in ``room`` (GET_DEVICE_LIST)."""
        return await self.run("get_device_list", room)

    async def get_devices_sn(self) -> Any:
        """Device serial numbers (DEVICES_SN)."""
        return await self.run("get_devices_sn")

    async def get_engineers(self) -> dict[str, Any]:
        """Engineers settings per device (GET_ENGINEERS)."""
        return await self.run("get_engineers")

    async def get_firmware(self) -> Any:
        """Hub firmware version (GET_FIRMWARE)."""
        return await self.run("get_firmware")

    async def get_holiday(self) -> Any:
        """Current holiday schedule (GET_HOLIDAY)."""
        return await self.run("get_holiday")

    async def get_profile_names(self) -> Any:
        """Names of the stored comfort-level profiles."""
        return await self.run("get_profile_names")

    async def get_profiles(self) -> dict[str, Any]:
        """Stored comfort-level profiles keyed by name (GET_PROFILES)."""
        return await self.run("get_profiles")

    # --- Settings ---

    async def reboot(self) -> Any:
        """Restart the hub."""
        return await self.run("reboot")

    async def identify(self) -> Any:
        """Flash the hub LED."""
        return await self.run("identify")

    async def set_channel(self, channel: int) -> Any:
        """Move the hub to RF ``channel``."""
        if channel not in VALID_CHANNELS:
            raise CommandError(f"Invalid channel: {channel}")
        return await self.run("set_channel", channel)

    async def set_temp_format(self, temp_format: str) -> Any:
        """Switch the display unit ("C" or "F")."""
        if temp_format not in VALID_TEMP_FORMATS:
            raise CommandError(f"Invalid temp format: {temp_format}")
        return await self.run("set_temp_format", temp_format)

    async def set_format(self, program_format: str) -> Any:
        """Set the program format of every device."""
        if program_format not in VALID_FORMATS:
            raise CommandError(f"Invalid format: {program_format}")
        return await self.run("set_format", program_format)

    async def set_away(self, away: bool) -> Any:
        """Turn away mode on or off."""
        return await self.run("away_on" if away else "away_off")

    async def set_holiday(self, start: datetime, end: datetime) -> Any:
        """Schedule a holiday from ``start`` to ``end``."""
        if end <= start:
            raise CommandError("Holiday must end after it starts")
        return await self.run("holiday", _holiday_stamp(start), _holiday_stamp(end))

    async def cancel_holiday(self) -> Any:
        """Cancel the scheduled holiday."""
        return await self.run("cancel_holiday")

    async def set_ntp(self, ntp: bool) -> Any:
        """Enable or disable NTP time sync."""
        return await self.run("ntp_on" if ntp else "ntp_off")

    async def set_date(self, day: date) -> Any:
        """Set the hub date."""
        return await self.run("set_date", [day.year, day.month, day.day])

    async def set_time(self, when: time) -> Any:
        """Set the hub clock."""
        return await self.run("set_time", [when.hour, when.minute])

    async def set_timezone(self, offset: float) -> Any:
        """Set the UTC offset in hours."""
        if not -12 <= offset <= 14:
            raise CommandError(f"Invalid timezone offset: {offset}")
        return await self.run("set_timezone", offset)

    async def set_manual_dst(self, enabled: bool) -> Any:
        """Switch between manual and automatic DST."""
        return await self.run("manual_dst", 1 if enabled else 0)

    async def set_dst(self, dst: bool) -> Any:
        """
        Switch automatic daylight saving on or off.

        Turning it off also clears the manual DST override so the hub stays
        on standard time.
        """
        res = await self.run("dst_on" if dst else "dst_off")
        if not dst:
            await self.set_manual_dst(False)
        return res

    async def set_levels(self, levels: int) -> Any:
        """Select 4 or 6 comfort levels per day."""
        if levels not in (4, 6):
            raise CommandError(f"Invalid comfort level count: {levels}")
        return await self.run(f"set_level_{levels}")

    # --- Projections ---

    def inspect(self) -> dict[str, Any]:
        """Return a JSON-ready dump of the reconciled state."""
        config = self.state.system_config
        live = self.state.live_status
        return {
            "device_id": self.hub_id.device_id,
            "address": self.hub_id.address,
            "hub_type": config.hub_type,
            "hub_version": config.hub_version,
            "ntp": config.ntp_on,
            "away": live.hub_away,
            "holiday": live.hub_holiday,
            "time": live.hub_time,
        }

"""Zones and plugs attached to a hub, and their commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .const import DeviceKind
from .exceptions import CommandError
from .protocol import COMMAND_ARITY, NeoCommand

if TYPE_CHECKING:
    from .hub import NeoHub
    from .models import DeviceID, DeviceLiveStatus, EngineersStatus
    from .profile import DeviceProfile

_LOGGER = logging.getLogger(__name__)

DEVICE = "device"

_BOTH = frozenset(DeviceKind)
_ZONE = frozenset({DeviceKind.ZONE})
_PLUG = frozenset({DeviceKind.PLUG})


@dataclass(frozen=True)
class CommandSpec:
    """
    A command verb and the order of its positional arguments.

    The placeholder ``"device"`` in ``params`` is bound to the device name;
    every other entry is filled from the caller's values, in order.
    """

    verb: str
    params: tuple[str, ...] = ()
    kinds: frozenset[DeviceKind] = _BOTH

    def __post_init__(self) -> None:
        arity = COMMAND_ARITY.get(self.verb)
        if arity is None:
            raise ValueError(f"Unknown command verb: {self.verb}")
        if len(self.params) != arity:
            raise ValueError(
                f"{self.verb} takes {arity} argument(s), {len(self.params)} declared"
            )

    @property
    def value_params(self) -> tuple[str, ...]:
        return tuple(p for p in self.params if p != DEVICE)

    def build(self, device_name: str | None, values: tuple[Any, ...]) -> NeoCommand:
        """Bind values and the device name into a NeoCommand."""
        expected = self.value_params
        if len(values) != len(expected):
            raise CommandError(
                f"{self.verb} takes {len(expected)} value(s) "
                f"({', '.join(expected) or 'none'}), got {len(values)}"
            )
        supplied = iter(values)
        args = tuple(device_name if p == DEVICE else next(supplied) for p in self.params)
        return NeoCommand(self.verb, args)


DEVICE_COMMANDS: dict[str, CommandSpec] = {
    "identify": CommandSpec("IDENTIFY_DEV", (DEVICE,)),
    "get_profile_0": CommandSpec("GET_PROFILE_0", (DEVICE,)),
    "get_timer_0": CommandSpec("GET_TIMER_0", (DEVICE,)),
    "store_profile_0": CommandSpec("STORE_PROFILE_0", ("profile", DEVICE)),
    "store_timer_0": CommandSpec("STORE_TIMER_0", ("profile", DEVICE)),
    "get_hours_run": CommandSpec("GET_HOURSRUN", (DEVICE,)),
    "frost_on": CommandSpec("FROST_ON", (DEVICE,)),
    "frost_off": CommandSpec("FROST_OFF", (DEVICE,)),
    "get_temp_log": CommandSpec("GET_TEMPLOG", (DEVICE,), _ZONE),
    "set_diff": CommandSpec("SET_DIFF", ("differential", DEVICE), _ZONE),
    "set_floor": CommandSpec("SET_FLOOR", ("floor_limit", DEVICE), _ZONE),
    "set_preheat": CommandSpec("SET_PREHEAT", ("hours", DEVICE), _ZONE),
    "set_frost": CommandSpec("SET_FROST", ("temp", DEVICE), _ZONE),
    "set_delay": CommandSpec("SET_DELAY", ("minutes", DEVICE), _ZONE),
    "hold": CommandSpec("HOLD", (DEVICE,), _ZONE),
    "lock": CommandSpec("LOCK", ("pin", DEVICE), _ZONE),
    "unlock": CommandSpec("UNLOCK", (DEVICE,), _ZONE),
    "set_temp": CommandSpec("SET_TEMP", ("temp", DEVICE), _ZONE),
    "timer_hold_on": CommandSpec("TIMER_HOLD_ON", ("minutes", DEVICE), _PLUG),
    "timer_hold_off": CommandSpec("TIMER_HOLD_OFF", ("minutes", DEVICE), _PLUG),
}


@dataclass(eq=False)
class Device:
    """
    A zone (thermostat) or plug known to a hub.

    ``kind`` selects the variant; the set of allowed commands follows it.
    ``hub`` is a back-reference to the owning hub.
    """

    name: str
    kind: DeviceKind
    hub: NeoHub = field(repr=False)
    device_id: DeviceID | None = None
    live_status: DeviceLiveStatus | None = None
    engineers_status: EngineersStatus | None = None
    profile0: DeviceProfile | None = None

    async def run(self, action: str, *values: Any) -> Any:
        """
        Run a command from DEVICE_COMMANDS against this device.

        Raises:
            CommandError: If the action is unknown, not supported by this
                kind of device, or given the wrong number of values.

        """
        spec = DEVICE_COMMANDS.get(action)
        if spec is None:
            raise CommandError(f"Unknown device command: {action}")
        if self.kind not in spec.kinds:
            raise CommandError(f"{action} is not supported by {self.kind.value}s")
        cmd = spec.build(self.name, values)
        _LOGGER.info("%s %s", self.name, cmd.name)
        return await self.hub.protocol.send_command(cmd)

    # --- Command helpers ---

    async def identify(self) -> Any:
        return await self.run("identify")

    async def get_profile0(self) -> Any:
        return await self.run("get_profile_0")

    async def set_frost(self, enabled: bool) -> Any:
        """Switch frost protection on or off."""
        return await self.run("frost_on" if enabled else "frost_off")

    async def set_temp(self, temp: float) -> Any:
        return await self.run("set_temp", temp)

    async def lock(self, pin: int) -> Any:
        return await self.run("lock", pin)

    async def unlock(self) -> Any:
        return await self.run("unlock")

    async def timer_hold(self, on: bool, minutes: int) -> Any:
        """Hold a plug's output on or off for ``minutes``."""
        return await self.run("timer_hold_on" if on else "timer_hold_off", minutes)

    # --- Projections ---

    def synopsis(self) -> dict[str, Any]:
        """Short summary used for listings."""
        live = self.live_status
        if live is None:
            return {}
        match self.kind:
            case DeviceKind.ZONE:
                return {
                    "set_temp": live.set_temp,
                    "current_temp": live.actual_temp,
                    "active_profile": live.active_profile,
                    "heat_on": live.heat_on,
                }
            case DeviceKind.PLUG:
                return {"timer_on": live.timer_on, "offline": live.offline}
        return {}

    def inspect(self) -> dict[str, Any]:
        """Detailed view used for a single device."""
        live = self.live_status
        res: dict[str, Any] = {"name": self.name, "kind": self.kind.value}
        if live is None:
            return res
        res["device_id"] = live.device_id
        match self.kind:
            case DeviceKind.ZONE:
                res.update(
                    set_temp=live.set_temp,
                    current_temp=live.actual_temp,
                    active_profile=live.active_profile,
                    heat_on=live.heat_on,
                    hold_on=live.hold_on,
                    standby=live.standby,
                    offline=live.offline,
                    recent_temps=", ".join(str(t) for t in (live.recent_temps or [])[:4]),
                )
            case DeviceKind.PLUG:
                res.update(
                    timer_on=live.timer_on,
                    hold_on=live.hold_on,
                    standby=live.standby,
                    offline=live.offline,
                )
        return res

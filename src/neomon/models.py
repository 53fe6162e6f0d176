"""Data models for hub responses and the reconciled hub state."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from typing import Self

    from .device import Device
    from .profile import NamedProfile


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HubIdentity:
    """Network address and device id of a discovered hub."""

    address: str
    device_id: str


@dataclass(frozen=True)
class DeviceID:
    """Identity of a zone or plug as reported by the hub."""

    name: str
    id: Any = None
    timestamp: Any = None

    @classmethod
    def from_json(cls, name: str, resp: Any) -> Self:
        """
        Decode a device entry from GET_ZONES / GET_DEVICES.

        The entry is either an object with DEVICE_ID and TIMESTAMP, or a
        bare id value.
        """
        if isinstance(resp, dict):
            return cls(name, resp.get("DEVICE_ID"), resp.get("TIMESTAMP"))
        return cls(name, resp)


# ---------------------------------------------------------------------------
# Upper-case keyed records
# ---------------------------------------------------------------------------


class _UpperKeyed:
    """Maps lower-case dataclass fields to the hub's upper-case JSON keys."""

    _default: ClassVar[Any] = None

    @classmethod
    def from_json(cls, resp: dict[str, Any] | None) -> Self:
        resp = resp or {}
        values = {}
        for f in fields(cls):  # type: ignore[arg-type]
            value = resp.get(f.name.upper(), cls._default)
            values[f.name] = cls._default if value is None else value
        return cls(**values)

    def to_json(self) -> dict[str, Any]:
        return {
            f.name.upper(): getattr(self, f.name)
            for f in fields(self)  # type: ignore[arg-type]
            if getattr(self, f.name) is not None
        }


@dataclass
class SystemConfig(_UpperKeyed):
    """Hub configuration from GET_SYSTEM."""

    alt_timer_format: Any = None
    corf: str | None = None
    device_id: str | None = None
    dst_auto: bool | None = None
    dst_on: bool | None = None
    format: int | None = None
    heating_levels: int | None = None
    heatorcool: str | None = None
    hub_type: int | None = None
    hub_version: int | None = None
    ntp_on: str | None = None
    partition: str | None = None
    timestamp: int | None = None
    time_zone: float | None = None
    utc: int | None = None


@dataclass
class SystemTimestamps(_UpperKeyed):
    """
    Change counters reported in GET_LIVE_DATA.

    A counter that grew since the last cycle marks its category as stale.
    """

    _default: ClassVar[Any] = 0

    timestamp_device_lists: int = 0
    timestamp_engineers: int = 0
    timestamp_profile_0: int = 0
    timestamp_profile_comfort_levels: int = 0
    timestamp_profile_timers: int = 0
    timestamp_profile_timers_0: int = 0
    timestamp_system: int = 0


@dataclass
class SystemLiveStatus(_UpperKeyed):
    """Hub-level part of GET_LIVE_DATA."""

    close_delay: int | None = None
    cool_input: bool | None = None
    global_system_type: str | None = None
    holiday_end: int | None = None
    hub_away: bool | None = None
    hub_holiday: bool | None = None
    hub_time: int | None = None
    open_delay: int | None = None


@dataclass
class DeviceLiveStatus(_UpperKeyed):
    """One entry of the ``devices`` list in GET_LIVE_DATA."""

    active_level: int | None = None
    active_profile: int | None = None
    actual_temp: str | None = None
    available_modes: list[str] | None = None
    away: bool | None = None
    cool_mode: bool | None = None
    cool_on: bool | None = None
    cool_temp: float | None = None
    current_floor_temperature: float | None = None
    date: str | None = None
    device_id: int | None = None
    fan_control: str | None = None
    fan_speed: str | None = None
    floor_limit: bool | None = None
    hc_mode: str | None = None
    heat_mode: bool | None = None
    heat_on: bool | None = None
    hold_off: bool | None = None
    hold_on: bool | None = None
    hold_temp: float | None = None
    hold_time: str | None = None
    holiday: bool | None = None
    lock: bool | None = None
    low_battery: bool | None = None
    manual_off: bool | None = None
    modelock: bool | None = None
    modulation_level: int | None = None
    offline: bool | None = None
    pin_number: str | None = None
    preheat_active: int | None = None
    recent_temps: list[str] | None = None
    set_temp: str | None = None
    standby: bool | None = None
    switch_delay_left: str | None = None
    temporary_set_flag: bool | None = None
    thermostat: bool | None = None
    time: str | None = None
    timer_on: bool | None = None
    window_open: bool | None = None
    write_count: int | None = None
    zone_name: str | None = None


@dataclass
class EngineersStatus(_UpperKeyed):
    """Per-device engineering parameters from GET_ENGINEERS."""

    deadband: int | None = None
    device_id: int | None = None
    device_type: int | None = None
    floor_limit: int | None = None
    frost_temp: int | None = None
    max_preheat: int | None = None
    output_delay: int | None = None
    pump_delay: int | None = None
    rf_sensor_mode: str | None = None
    stat_failsafe: int | None = None
    stat_version: int | None = None
    switching_differential: int | None = None
    switch_delay: int | None = None
    system_type: int | None = None
    timestamp: int | None = None
    user_limit: int | None = None
    window_switch_open: bool | None = None


# ---------------------------------------------------------------------------
# Aggregate state
# ---------------------------------------------------------------------------


@dataclass
class HubState:
    """Reconciled view of a hub and everything attached to it."""

    zones: dict[str, Device] = field(default_factory=dict)
    plugs: dict[str, Device] = field(default_factory=dict)
    profiles: dict[str, NamedProfile] = field(default_factory=dict)
    system_config: SystemConfig = field(default_factory=SystemConfig)
    live_status: SystemLiveStatus = field(default_factory=SystemLiveStatus)
    timestamps: SystemTimestamps = field(default_factory=SystemTimestamps)

    def find_device(self, name: str) -> Device | None:
        """Look a device up by name, zones first."""
        device = self.zones.get(name)
        if device is None:
            device = self.plugs.get(name)
        return device

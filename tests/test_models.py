"""Tests for hub response models."""

from __future__ import annotations

from unittest.mock import MagicMock

from neomon.const import DeviceKind
from neomon.device import Device
from neomon.models import (
    DeviceID,
    DeviceLiveStatus,
    EngineersStatus,
    HubState,
    SystemConfig,
    SystemLiveStatus,
    SystemTimestamps,
)

from .conftest import SYSTEM, make_device_live, make_live_data

# ---------------------------------------------------------------------------
# DeviceID
# ---------------------------------------------------------------------------


def test_device_id_from_object() -> None:
    ident = DeviceID.from_json("Kitchen", {"DEVICE_ID": 3, "TIMESTAMP": 99})
    assert ident == DeviceID("Kitchen", 3, 99)


def test_device_id_from_bare_value() -> None:
    ident = DeviceID.from_json("Kitchen", 3)
    assert ident.id == 3
    assert ident.timestamp is None


# ---------------------------------------------------------------------------
# Upper-case keyed records
# ---------------------------------------------------------------------------


def test_system_config_from_json() -> None:
    config = SystemConfig.from_json(SYSTEM)
    assert config.corf == "C"
    assert config.ntp_on == "Running"
    assert config.hub_version == 2134
    assert config.partition is None


def test_system_config_to_json_drops_missing() -> None:
    config = SystemConfig.from_json({"CORF": "F", "FORMAT": 4})
    assert config.to_json() == {"CORF": "F", "FORMAT": 4}


def test_timestamps_default_to_zero() -> None:
    stamps = SystemTimestamps.from_json({"TIMESTAMP_ENGINEERS": 5})
    assert stamps.timestamp_engineers == 5
    assert stamps.timestamp_device_lists == 0
    assert stamps.timestamp_profile_0 == 0


def test_timestamps_null_is_zero() -> None:
    stamps = SystemTimestamps.from_json({"TIMESTAMP_SYSTEM": None})
    assert stamps.timestamp_system == 0


def test_timestamps_from_live_data() -> None:
    stamps = SystemTimestamps.from_json(make_live_data(device_lists=7, profile_0=3))
    assert stamps.timestamp_device_lists == 7
    assert stamps.timestamp_profile_0 == 3


def test_live_status_ignores_devices() -> None:
    live = SystemLiveStatus.from_json(make_live_data(devices=[make_device_live("A")]))
    assert live.hub_away is False
    assert live.hub_time == 1700000000


def test_device_live_status() -> None:
    live = DeviceLiveStatus.from_json(
        make_device_live("Kitchen", recent_temps=["20.1", "20.2"], offline=False)
    )
    assert live.zone_name == "Kitchen"
    assert live.actual_temp == "20.5"
    assert live.recent_temps == ["20.1", "20.2"]
    assert live.offline is False
    assert live.timer_on is None


def test_device_live_status_round_trip() -> None:
    entry = make_device_live("Kitchen")
    assert DeviceLiveStatus.from_json(entry).to_json() == entry


def test_engineers_status() -> None:
    eng = EngineersStatus.from_json({"FROST_TEMP": 7, "DEVICE_TYPE": 1, "EXTRA": 1})
    assert eng.frost_temp == 7
    assert eng.device_type == 1
    assert eng.max_preheat is None


def test_from_json_none() -> None:
    assert SystemLiveStatus.from_json(None) == SystemLiveStatus()


# ---------------------------------------------------------------------------
# HubState
# ---------------------------------------------------------------------------


def test_find_device_prefers_zones() -> None:
    hub = MagicMock()
    state = HubState()
    zone = Device("Hall", DeviceKind.ZONE, hub)
    plug = Device("Hall", DeviceKind.PLUG, hub)
    state.zones["Hall"] = zone
    state.plugs["Hall"] = plug
    assert state.find_device("Hall") is zone


def test_find_device_plug_and_missing() -> None:
    state = HubState()
    plug = Device("Lamp", DeviceKind.PLUG, MagicMock())
    state.plugs["Lamp"] = plug
    assert state.find_device("Lamp") is plug
    assert state.find_device("Nowhere") is None


def test_hub_state_defaults() -> None:
    state = HubState()
    assert state.zones == {}
    assert state.plugs == {}
    assert state.profiles == {}
    assert state.timestamps == SystemTimestamps()

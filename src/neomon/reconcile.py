"""
Timestamp-driven reconciliation of a hub's zones, plugs and profiles.

GET_LIVE_DATA carries a change counter per category.  Each cycle compares
those counters with the ones cached in HubState and refetches only the
stale categories, in a fixed order: device lists first, because the later
steps iterate over the zones and plugs it maintains.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

from .const import DeviceKind
from .device import Device
from .exceptions import DeviceFetchError, FramingError, NeoError
from .metrics import update_metrics
from .models import (
    DeviceID,
    DeviceLiveStatus,
    EngineersStatus,
    SystemConfig,
    SystemLiveStatus,
    SystemTimestamps,
)
from .profile import DeviceProfile, NamedProfile

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from .hub import NeoHub
    from .models import HubState

_LOGGER = logging.getLogger(__name__)


def diff_names(
    fresh: Iterable[str], cached: Iterable[str]
) -> tuple[list[str], list[str], list[str]]:
    """
    Split two name sets.

    Returns:
        (added, removed, remaining): names only in ``fresh``, names only in
        ``cached``, and names in both.  Order follows the inputs.

    """
    fresh = list(fresh)
    cached = list(cached)
    fresh_set = set(fresh)
    cached_set = set(cached)
    added = [n for n in fresh if n not in cached_set]
    remaining = [n for n in fresh if n in cached_set]
    removed = [n for n in cached if n not in fresh_set]
    return added, removed, remaining


def _stale(cached: SystemTimestamps, fresh: SystemTimestamps, name: str) -> bool:
    with _decoding("GET_LIVE_DATA"):
        return getattr(cached, name) < getattr(fresh, name)


# raised by the decoders when valid JSON has an unexpected shape
_SHAPE_ERRORS = (KeyError, IndexError, TypeError, AttributeError, ValueError)


@contextlib.contextmanager
def _decoding(command: str) -> Iterator[None]:
    """Re-raise shape errors from decoding ``command``'s response as FramingError."""
    try:
        yield
    except _SHAPE_ERRORS as exc:
        raise FramingError(f"Unexpected {command} response: {exc!r}") from exc


def _sync_devices(
    hub: NeoHub,
    devices: dict[str, Device],
    kind: DeviceKind,
    response: Any,
) -> None:
    """Add and remove devices so ``devices`` matches the names in ``response``."""
    added, removed, remaining = diff_names(response, devices)
    _LOGGER.debug(
        "%s diff: added=%s removed=%s remaining=%s", kind.value, added, removed, remaining
    )
    for name in added:
        ident = response[name] if isinstance(response, dict) else None
        devices[name] = Device(
            name=name, kind=kind, hub=hub, device_id=DeviceID.from_json(name, ident)
        )
        _LOGGER.info("Added %s %s", kind.value, name)
    for name in removed:
        del devices[name]
        _LOGGER.info("Removed %s %s", kind.value, name)


async def _update_device_lists(hub: NeoHub, state: HubState) -> None:
    zones = await hub.get_zones()
    _sync_devices(hub, state.zones, DeviceKind.ZONE, zones)
    plugs = await hub.get_devices()
    _sync_devices(hub, state.plugs, DeviceKind.PLUG, plugs)


async def _update_engineers(hub: NeoHub, state: HubState) -> None:
    engineers = await hub.get_engineers()
    for device in (*state.zones.values(), *state.plugs.values()):
        entry = engineers.get(device.name)
        if entry is None:
            _LOGGER.debug("No engineers data for %s", device.name)
            continue
        device.engineers_status = EngineersStatus.from_json(entry)


async def _fetch_profile0(device: Device) -> DeviceProfile:
    try:
        return DeviceProfile.from_json(await device.get_profile0())
    except (NeoError, *_SHAPE_ERRORS) as exc:
        raise DeviceFetchError(f"{device.name}: {exc!r}") from exc


async def _update_profile0(state: HubState) -> bool:
    """Refresh every device's profile 0; return True if none failed."""
    complete = True
    for device in (*state.zones.values(), *state.plugs.values()):
        try:
            device.profile0 = await _fetch_profile0(device)
        except DeviceFetchError as exc:
            _LOGGER.error("Unable to read profile 0: %s", exc)
            complete = False
        else:
            _LOGGER.debug("Updated profile 0 for %s", device.name)
    return complete


def _apply_live_data(state: HubState, live: dict[str, Any]) -> None:
    state.live_status = SystemLiveStatus.from_json(live)
    for entry in live.get("devices") or []:
        device = state.find_device(entry.get("ZONE_NAME"))
        if device is None:
            continue
        device.live_status = DeviceLiveStatus.from_json(entry)


async def _update_profiles(hub: NeoHub, state: HubState) -> None:
    profiles = await hub.get_profiles()
    added, removed, remaining = diff_names(profiles, state.profiles)
    for name in added:
        state.profiles[name] = NamedProfile.from_json(profiles[name])
        _LOGGER.info("Added profile %s", name)
    # the registry has no per-entry timestamp; every remaining name is replaced
    for name in remaining:
        state.profiles[name] = NamedProfile.from_json(profiles[name])
        _LOGGER.debug("Updated profile %s", name)
    for name in removed:
        del state.profiles[name]
        _LOGGER.info("Removed profile %s", name)


async def update_network(hub: NeoHub) -> HubState:
    """
    Run one reconciliation cycle against ``hub.state``.

    Steps, in order:

    1. GET_LIVE_DATA, then GET_SYSTEM (its timestamp is always 0, so the
       system config is refetched every cycle).
    2. Compare the fresh timestamps with the cached ones.
    3. Stale device lists: GET_ZONES and GET_DEVICES, add and remove devices.
    4. Stale engineers: GET_ENGINEERS, attach per device.
    5. Stale profile 0: GET_PROFILE_0 per device; failures are isolated.
    6. Apply the live-data snapshot to the hub and every known device.
    7. Stale comfort levels: GET_PROFILES, add, replace and remove.

    Timer profiles are not tracked.  A failure anywhere except step 5
    propagates and leaves the remaining steps undone; the cached timestamp
    of a category only advances once its step has succeeded.

    Returns:
        The updated HubState.

    """
    state = hub.state
    live = await hub.get_live_data()
    with _decoding("GET_LIVE_DATA"):
        fresh = SystemTimestamps.from_json(live)
    system_resp = await hub.get_system()
    with _decoding("GET_SYSTEM"):
        system = SystemConfig.from_json(system_resp)
    cached = state.timestamps
    _LOGGER.debug("Comparing timestamps cached=%s fresh=%s", cached, fresh)

    state.system_config = system
    cached.timestamp_system = fresh.timestamp_system

    if _stale(cached, fresh, "timestamp_device_lists"):
        _LOGGER.debug("Stale device lists")
        with _decoding("GET_ZONES/GET_DEVICES"):
            await _update_device_lists(hub, state)
        cached.timestamp_device_lists = fresh.timestamp_device_lists

    if _stale(cached, fresh, "timestamp_engineers"):
        _LOGGER.debug("Stale engineers status")
        with _decoding("GET_ENGINEERS"):
            await _update_engineers(hub, state)
        cached.timestamp_engineers = fresh.timestamp_engineers

    if _stale(cached, fresh, "timestamp_profile_0"):
        _LOGGER.debug("Stale profile 0")
        if await _update_profile0(state):
            cached.timestamp_profile_0 = fresh.timestamp_profile_0

    with _decoding("GET_LIVE_DATA"):
        _apply_live_data(state, live)

    if _stale(cached, fresh, "timestamp_profile_comfort_levels"):
        _LOGGER.debug("Stale stored profiles")
        with _decoding("GET_PROFILES"):
            await _update_profiles(hub, state)
        cached.timestamp_profile_comfort_levels = (
            fresh.timestamp_profile_comfort_levels
        )

    # timer profiles are not supported; remember their counters only
    cached.timestamp_profile_timers = fresh.timestamp_profile_timers
    cached.timestamp_profile_timers_0 = fresh.timestamp_profile_timers_0

    if hub.metrics is not None:
        update_metrics(hub)
    return state

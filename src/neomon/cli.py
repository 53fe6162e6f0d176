"""Command-line interface for neomon hub monitoring."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

from .client import NeoClient
from .config import NeoConfig
from .exceptions import DiscoveryError, NeoError
from .metrics import PrometheusMetrics
from .store import AddressStore

if TYPE_CHECKING:
    from .const import ClientEvent
    from .hub import NeoHub

_LOGGER = logging.getLogger(__name__)


def _format(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, str):
        return value
    return orjson.dumps(value).decode()


def _print_mapping(title: str, mapping: dict[str, Any]) -> None:
    """Display one record as aligned key/value lines."""
    print(f"\n--- {title} ---")
    width = max((len(k) for k in mapping), default=0)
    for key, value in mapping.items():
        print(f"  {key.ljust(width)}  {_format(value)}")
    print("-" * (len(title) + 8) + "\n")


def _print_rows(title: str, rows: dict[str, dict[str, Any]]) -> None:
    """Display a name -> summary table."""
    print(f"\n--- {title} ---")
    if not rows:
        print("  (none)")
    for name, summary in sorted(rows.items()):
        fields = ", ".join(f"{k}={_format(v)}" for k, v in summary.items())
        print(f"  {name}: {fields}")
    print("-" * (len(title) + 8) + "\n")


async def _fetch_hub(config: NeoConfig) -> NeoHub:
    """Connect, reconcile once and disconnect, keeping the populated hub."""
    client = NeoClient(config)
    try:
        return await client.start()
    finally:
        await client.disconnect()


async def _do_show_saved(config: NeoConfig, args: argparse.Namespace) -> int:
    identity = await AddressStore(config.address_file).load()
    if identity is None:
        print("No saved hub")
        return 1
    _print_mapping("Saved Hub", {"address": identity.address, "device_id": identity.device_id})
    return 0


async def _do_delete_saved(config: NeoConfig, args: argparse.Namespace) -> int:
    try:
        await AddressStore(config.address_file).delete()
    except OSError as exc:
        print(f"Unable to delete saved hub: {exc}")
        return 1
    print("Saved hub deleted")
    return 0


async def _do_discover(config: NeoConfig, args: argparse.Namespace) -> int:
    client = NeoClient(config)
    try:
        identity = await client.discover_hub(retry=False)
    except DiscoveryError as exc:
        print(f"No hub found: {exc}")
        return 1
    _print_mapping("Discovered Hub", {"address": identity.address, "device_id": identity.device_id})
    return 0


async def _do_hub_status(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    _print_mapping("Hub Status", hub.inspect())
    return 0


async def _do_zone_list(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    _print_rows("Zones", {n: z.synopsis() for n, z in hub.state.zones.items()})
    return 0


async def _do_zone_show(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    zone = hub.state.zones.get(args.name)
    if zone is None:
        print(f"Unknown zone name: {args.name}")
        return 1
    _print_mapping(f"Zone {args.name}", zone.inspect())
    return 0


async def _do_zone_show_profile(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    zone = hub.state.zones.get(args.name)
    if zone is None:
        print(f"Unknown zone name: {args.name}")
        return 1
    if zone.profile0 is None:
        print(f"No profile loaded for {args.name}")
        return 1
    _print_mapping(f"Profile of {args.name}", zone.profile0.synopsis())
    return 0


async def _do_device_list(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    _print_rows("Devices", {n: p.synopsis() for n, p in hub.state.plugs.items()})
    return 0


async def _do_device_show(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    plug = hub.state.plugs.get(args.name)
    if plug is None:
        print(f"Unknown device name: {args.name}")
        return 1
    _print_mapping(f"Device {args.name}", plug.inspect())
    return 0


async def _do_profile_list(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    _print_rows("Profiles", {n: p.synopsis() for n, p in hub.state.profiles.items()})
    return 0


async def _do_profile_show(config: NeoConfig, args: argparse.Namespace) -> int:
    hub = await _fetch_hub(config)
    profile = hub.state.profiles.get(args.name)
    if profile is None:
        print(f"Unknown profile name: {args.name}")
        return 1
    _print_mapping(f"Profile {args.name}", profile.synopsis())
    return 0


async def _do_monitor(config: NeoConfig, args: argparse.Namespace) -> int:
    """Poll the hub forever, serving gauges over HTTP."""
    metrics = PrometheusMetrics(emit_process_metrics=config.emit_process_metrics)
    metrics.serve(args.metrics_port or config.metrics_port)

    def on_event(event: ClientEvent) -> None:
        _LOGGER.info("Client event: %s", event.value)

    client = NeoClient(config, metrics=metrics)
    client.add_listener(on_event)
    async with client:
        print("Monitoring hub... (Ctrl+C to quit)")
        await asyncio.Event().wait()
    return 0


_HANDLERS = {
    ("hub", "show-saved"): _do_show_saved,
    ("hub", "delete-saved"): _do_delete_saved,
    ("hub", "discover"): _do_discover,
    ("hub", "status"): _do_hub_status,
    ("zone", "list"): _do_zone_list,
    ("zone", "show"): _do_zone_show,
    ("zone", "show-profile"): _do_zone_show_profile,
    ("device", "list"): _do_device_list,
    ("device", "show"): _do_device_show,
    ("profile", "list"): _do_profile_list,
    ("profile", "show"): _do_profile_show,
    ("monitor", None): _do_monitor,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Heating Hub Monitor CLI")
    parser.add_argument(
        "--address-file", help="File holding the saved hub address"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    groups = parser.add_subparsers(dest="group", required=True)

    hub = groups.add_parser("hub", help="Hub discovery and status")
    hub_cmds = hub.add_subparsers(dest="command", required=True)
    for name in ("show-saved", "delete-saved", "discover", "status"):
        hub_cmds.add_parser(name)

    zone = groups.add_parser("zone", help="Thermostat zones")
    zone_cmds = zone.add_subparsers(dest="command", required=True)
    zone_cmds.add_parser("list")
    zone_cmds.add_parser("show").add_argument("name")
    zone_cmds.add_parser("show-profile").add_argument("name")

    device = groups.add_parser("device", help="Plugs and other devices")
    device_cmds = device.add_subparsers(dest="command", required=True)
    device_cmds.add_parser("list")
    device_cmds.add_parser("show").add_argument("name")

    profile = groups.add_parser("profile", help="Stored profiles")
    profile_cmds = profile.add_subparsers(dest="command", required=True)
    profile_cmds.add_parser("list")
    profile_cmds.add_parser("show").add_argument("name")

    monitor = groups.add_parser("monitor", help="Poll the hub and serve metrics")
    monitor.add_argument(
        "--metrics-port", type=int, help="Metrics HTTP port (default: from config)"
    )
    return parser


async def _dispatch(config: NeoConfig, args: argparse.Namespace) -> int:
    handler = _HANDLERS[(args.group, getattr(args, "command", None))]
    try:
        return await handler(config, args)
    except NeoError as exc:
        print(f"Error: {exc}")
        return 1


def main(argv: list[str] | None = None) -> None:
    """Entry point for the neomon CLI."""
    args = _build_parser().parse_args(argv)

    level = logging.DEBUG if args.debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.group == "monitor" and not args.debug:
        logging.getLogger("neomon").setLevel(logging.INFO)

    config = NeoConfig.from_env()
    if args.address_file:
        config = replace(config, address_file=Path(args.address_file).expanduser())

    try:
        code = asyncio.run(_dispatch(config, args))
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)

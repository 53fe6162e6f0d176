"""Optional gauges describing the hub and its zones."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from prometheus_client import (
    GC_COLLECTOR,
    PLATFORM_COLLECTOR,
    PROCESS_COLLECTOR,
    CollectorRegistry,
    Gauge,
    start_http_server,
)

from .const import DeviceKind

if TYPE_CHECKING:
    from .device import Device
    from .hub import NeoHub

_LOGGER = logging.getLogger(__name__)

HUB_LABELS = ("hub_id",)
DEVICE_LABELS = ("hub_id", "device_name")

HUB_GAUGES = {
    "ntp": "ntp running status",
    "away": "hub away status",
    "holiday": "hub holiday status",
}

# gauge name -> (help, DeviceLiveStatus attribute)
ZONE_GAUGES = {
    "set_temp": ("set temperature", "set_temp"),
    "current_temp": ("current temperature", "actual_temp"),
    "active_profile": ("current active profile", "active_profile"),
    "heat_on": ("heat on", "heat_on"),
    "hold_on": ("hold on", "hold_on"),
    "standby": ("standby", "standby"),
    "offline": ("offline", "offline"),
}


class MetricsSink(Protocol):
    """Anything that can hold labelled gauges."""

    def add_gauge(
        self, name: str, documentation: str, labels: tuple[str, ...]
    ) -> None: ...

    def set_gauge(self, name: str, value: float, labels: dict[str, str]) -> None: ...


class PrometheusMetrics:
    """MetricsSink backed by prometheus_client gauges on a private registry."""

    def __init__(
        self,
        *,
        namespace: str = "neohub",
        emit_process_metrics: bool = False,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}
        if emit_process_metrics:
            for collector in (PROCESS_COLLECTOR, PLATFORM_COLLECTOR, GC_COLLECTOR):
                self.registry.register(collector)

    def add_gauge(self, name: str, documentation: str, labels: tuple[str, ...]) -> None:
        if name not in self._gauges:
            self._gauges[name] = Gauge(
                name,
                documentation,
                labelnames=labels,
                namespace=self.namespace,
                registry=self.registry,
            )

    def set_gauge(self, name: str, value: float, labels: dict[str, str]) -> None:
        gauge = self._gauges.get(name)
        if gauge is None:
            raise KeyError(f"Unknown gauge: {name}")
        gauge.labels(**labels).set(value)

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:  # noqa: S104
        """Expose the registry on ``http://addr:port/metrics``."""
        start_http_server(port, addr=addr, registry=self.registry)
        _LOGGER.info("Serving metrics on %s:%s", addr, port)


def _as_float(value: Any) -> float | None:
    """Convert hub values (bools, numbers, numeric strings) to a gauge value."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _set(sink: MetricsSink, name: str, value: Any, labels: dict[str, str]) -> None:
    number = _as_float(value)
    if number is None:
        _LOGGER.debug("Skipping non-numeric %s=%r", name, value)
        return
    sink.set_gauge(name, number, labels)


def _update_zone(sink: MetricsSink, hub_id: str, device: Device) -> None:
    live = device.live_status
    if live is None:
        return
    labels = {"hub_id": hub_id, "device_name": device.name}
    for name, (_, attr) in ZONE_GAUGES.items():
        _set(sink, name, getattr(live, attr), labels)


def register_gauges(sink: MetricsSink) -> None:
    """Declare every hub and zone gauge on ``sink``."""
    for name, documentation in HUB_GAUGES.items():
        sink.add_gauge(name, documentation, HUB_LABELS)
    for name, (documentation, _) in ZONE_GAUGES.items():
        sink.add_gauge(name, documentation, DEVICE_LABELS)


def update_metrics(hub: NeoHub) -> None:
    """
    Push the hub's current state to its metrics sink.

    Sink failures are logged and never interrupt reconciliation.
    """
    sink = hub.metrics
    if sink is None:
        return
    state = hub.state
    hub_id = hub.hub_id.device_id
    try:
        register_gauges(sink)
        labels = {"hub_id": hub_id}
        _set(sink, "ntp", state.system_config.ntp_on == "Running", labels)
        _set(sink, "away", state.live_status.hub_away, labels)
        _set(sink, "holiday", state.live_status.hub_holiday, labels)
        for device in state.zones.values():
            if device.kind is DeviceKind.ZONE:
                _update_zone(sink, hub_id, device)
    except Exception:
        _LOGGER.exception("Error updating metrics")

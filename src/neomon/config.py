"""Runtime configuration for a neomon client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING

from .const import (
    CONNECT_TIMEOUT,
    DISCOVER_PORT,
    DISCOVERY_RETRY_WAIT,
    DISCOVERY_TIMEOUT,
    HEARTBEAT_INTERVAL,
    LOCAL_DISCOVER_PORT,
    METRICS_PORT,
    POLL_INTERVAL,
    PROTOCOL_PORT,
    RECONNECT_DELAY,
    RECV_TIMEOUT,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Self

ENV_PREFIX = "NEO_"


def _default_address_file() -> Path:
    return Path.home() / ".neomon.json"


@dataclass(frozen=True)
class NeoConfig:
    """
    Ports, timeouts and intervals used by NeoClient.

    Every field can be overridden from the environment by its upper-case
    name prefixed with ``NEO_`` (for example ``NEO_PROTOCOL_PORT``).
    """

    discover_port: int = DISCOVER_PORT
    local_discover_port: int = LOCAL_DISCOVER_PORT
    protocol_port: int = PROTOCOL_PORT
    metrics_port: int = METRICS_PORT
    discovery_timeout: float = DISCOVERY_TIMEOUT
    discovery_retry_wait: float = DISCOVERY_RETRY_WAIT
    connect_timeout: float = CONNECT_TIMEOUT
    recv_timeout: float = RECV_TIMEOUT
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    poll_interval: float = POLL_INTERVAL
    reconnect_delay: float = RECONNECT_DELAY
    emit_process_metrics: bool = False
    address_file: Path = field(default_factory=_default_address_file)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Self:
        """Build a config from ``NEO_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            if f.name == "address_file":
                values[f.name] = Path(raw).expanduser()
            elif f.name == "emit_process_metrics":
                values[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
            elif f.name.endswith("_port"):
                values[f.name] = int(raw)
            else:
                values[f.name] = float(raw)
        return cls(**values)  # type: ignore[arg-type]

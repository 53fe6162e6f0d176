"""Persisted hub address, so restarts can skip discovery."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING

import orjson

from .models import HubIdentity

if TYPE_CHECKING:
    from pathlib import Path

_LOGGER = logging.getLogger(__name__)


class AddressStore:
    """JSON file holding the last discovered HubIdentity."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def load(self) -> HubIdentity | None:
        """Return the saved identity, or None if nothing usable is stored."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load_sync)

    async def save(self, identity: HubIdentity) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._save_sync, identity)
        _LOGGER.info("Hub address saved to %s", self.path)

    async def delete(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._delete_sync)
        _LOGGER.info("Hub address cleared")

    def _load_sync(self) -> HubIdentity | None:
        """Synchronous address file read."""
        try:
            data = orjson.loads(self.path.read_bytes())
        except FileNotFoundError:
            return None
        except orjson.JSONDecodeError:
            _LOGGER.warning("Ignoring unreadable address file %s", self.path)
            return None
        if not isinstance(data, dict) or not data.get("address"):
            return None
        return HubIdentity(data["address"], data.get("device_id", ""))

    def _save_sync(self, identity: HubIdentity) -> None:
        """Synchronous address file write (atomic via rename)."""
        tmp_path = self.path.with_suffix(".tmp")
        payload = {"address": identity.address, "device_id": identity.device_id}
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        finally:
            os.close(fd)
        tmp_path.replace(self.path)

    def _delete_sync(self) -> None:
        self.path.unlink(missing_ok=True)

#!/usr/bin/env python3
"""
Device identification for Typing Stats.
Every device attributes its increments to a stable, randomly generated id.
"""

import logging
import platform
import socket
import uuid
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

DEVICE_ID_FILENAME = "device_id"


class DeviceIdentity:
    """Stable unique identifier for the running device."""

    __slots__ = ("_value",)

    def __init__(self, value: str):
        if not value:
            raise ValueError("Device identity must be a non-empty string")
        self._value = value

    @property
    def value(self) -> str:
        return self._value

    @classmethod
    def generate(cls) -> "DeviceIdentity":
        """Create a fresh identity with UUID-grade entropy."""
        return cls(str(uuid.uuid4()).upper())

    @classmethod
    def load_or_create(cls, data_dir: Union[str, Path]) -> "DeviceIdentity":
        """Load the identity persisted in data_dir, creating it on first access."""
        path = Path(data_dir) / DEVICE_ID_FILENAME
        if path.exists():
            try:
                stored = path.read_text(encoding="utf-8").strip()
                if stored:
                    return cls(stored)
            except OSError as e:
                logger.warning("Could not read device id from %s: %s", path, e)

        identity = cls.generate()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(identity.value, encoding="utf-8")
            logger.info("Created device id %s", identity.value)
        except OSError as e:
            # Still usable for this process; a new id is minted next start.
            logger.warning("Could not persist device id to %s: %s", path, e)
        return identity

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"DeviceIdentity({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DeviceIdentity):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


def get_device_name() -> str:
    """Get the device/laptop name for display."""
    try:
        hostname = socket.gethostname()

        # On macOS, remove .local suffix
        if hostname.endswith(".local"):
            hostname = hostname[:-6]

        # If hostname is generic, fall back to platform node
        if not hostname or hostname in ["localhost", "unknown"]:
            hostname = platform.node()
            if hostname.endswith(".local"):
                hostname = hostname[:-6]

        return hostname
    except Exception:
        return f"macos-{platform.machine()}"

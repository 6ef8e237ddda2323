"""Known devices, header selection and tool configuration."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .headers import Header, LongHeader, ShortHeader

log = logging.getLogger(__name__)


@dataclass
class DeviceInfo:
    """Identifiers a device's loader checks before accepting an image."""

    name: str
    signature: str
    product_id: int
    custom_id: int
    model_id: int
    description: str = ""


# Built-in device table. Entries can be added or overridden from YAML.
DEVICE_TABLE: dict[str, DeviceInfo] = {
    "dns323": DeviceInfo(
        name="dns323",
        signature="FrodoII",
        product_id=7,
        custom_id=1,
        model_id=1,
        description="D-Link DNS-323",
    ),
    "ch3snas": DeviceInfo(
        name="ch3snas",
        signature="FrodoII",
        product_id=7,
        custom_id=2,
        model_id=1,
        description="Conceptronic CH3SNAS",
    ),
    "dns321": DeviceInfo(
        name="dns321",
        signature="Chopper",
        product_id=10,
        custom_id=1,
        model_id=1,
        description="D-Link DNS-321",
    ),
    "dns343": DeviceInfo(
        name="dns343",
        signature="Gandolf",
        product_id=9,
        custom_id=1,
        model_id=1,
        description="D-Link DNS-343",
    ),
    "dns320b": DeviceInfo(
        name="dns320b",
        signature="DNS320B",
        product_id=10,
        custom_id=2,
        model_id=3,
        description="D-Link DNS-320 rev B",
    ),
}

DEFAULT_SIGNATURE = "FrodoII"

# Signatures that need the 128-byte header with a squashfs slot
LONG_SIGNATURE_PREFIXES: tuple[str, ...] = ("DNS320B",)

_REQUIRED_DEVICE_KEYS = ("signature", "product_id", "custom_id", "model_id")


@dataclass
class ToolConfig:
    """Options shared by the build and split tools."""

    strict: bool = False
    devices: dict[str, DeviceInfo] = field(default_factory=lambda: dict(DEVICE_TABLE))


def header_for_signature(signature: str) -> type[Header]:
    """Pick the header variant a device with this signature expects."""
    if signature.startswith(LONG_SIGNATURE_PREFIXES):
        return LongHeader
    return ShortHeader


def _parse_id(name: str, key: str, value: Any) -> int:
    if isinstance(value, str):
        try:
            value = int(value, 0)
        except ValueError as e:
            raise ValueError(
                f"Device {name}: {key} must be an integer, got {value!r}"
            ) from e
    if not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ValueError(f"Device {name}: {key} must be 0-255, got {value!r}")
    return value


def _device_from_dict(name: str, info: dict[str, Any]) -> DeviceInfo:
    missing = [k for k in _REQUIRED_DEVICE_KEYS if k not in info]
    if missing:
        raise ValueError(f"Device {name}: missing {', '.join(missing)}")
    return DeviceInfo(
        name=name,
        signature=str(info["signature"]),
        product_id=_parse_id(name, "product_id", info["product_id"]),
        custom_id=_parse_id(name, "custom_id", info["custom_id"]),
        model_id=_parse_id(name, "model_id", info["model_id"]),
        description=str(info.get("description", "")),
    )


def load_device_table(
    config_path: Path | None = None,
    base: dict[str, DeviceInfo] | None = None,
) -> dict[str, DeviceInfo]:
    """
    Built-in devices merged with entries from a YAML file.

    The file maps device names to ``signature``, ``product_id``,
    ``custom_id``, ``model_id`` and an optional ``description``.
    """
    table = dict(DEVICE_TABLE if base is None else base)
    if config_path is None:
        return table

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"{config_path}: expected a mapping of device names")

    for name, info in raw.items():
        if not isinstance(info, dict):
            raise ValueError(f"Device {name}: expected a mapping")
        key = str(name).lower()
        table[key] = _device_from_dict(key, info)
    log.debug("Loaded %d device entries from %s", len(raw), config_path)
    return table


def get_device(name: str, table: dict[str, DeviceInfo] | None = None) -> DeviceInfo:
    """Get a device by name."""
    devices = DEVICE_TABLE if table is None else table
    key = name.lower()
    if key not in devices:
        raise ValueError(
            f"Unknown device: {name} (known: {', '.join(sorted(devices))})"
        )
    return devices[key]

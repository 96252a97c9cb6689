from __future__ import annotations

import logging
from functools import lru_cache
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .config import ArchitectureTable, DeviceProfile, HardwareTable, ModelArchitecture
from .errors import ConfigurationError
from .io import packaged_data

logger = logging.getLogger(__name__)


class ModelArchitectureRegistry:
    """Read-only catalog of architectures, keyed by id (display names also resolve)."""

    def __init__(self, architectures: Iterable[ModelArchitecture]) -> None:
        by_id: dict[str, ModelArchitecture] = {}
        for arch in architectures:
            if arch.id in by_id:
                raise ConfigurationError(f"duplicate architecture id: {arch.id!r}")
            by_id[arch.id] = arch
        self._by_id = by_id
        self._by_name = {arch.name.lower(): arch for arch in by_id.values()}

    @classmethod
    def from_file(cls, path: str | Path | Traversable) -> "ModelArchitectureRegistry":
        table = ArchitectureTable.from_file(path)
        logger.debug("loaded %d architectures from %s (version %d)", len(table.architectures), path, table.version)
        return cls(table.architectures)

    @classmethod
    def default(cls) -> "ModelArchitectureRegistry":
        return default_registry()

    def get(self, key: str) -> ModelArchitecture:
        arch = self._by_id.get(key)
        if arch is None:
            arch = self._by_name.get(key.lower())
        if arch is None:
            raise ConfigurationError(f"unknown architecture: {key!r} (known: {', '.join(self.ids())})")
        return arch

    def ids(self) -> list[str]:
        return list(self._by_id.keys())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return key in self._by_id or key.lower() in self._by_name

    def __iter__(self) -> Iterator[ModelArchitecture]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


class HardwareCatalog:
    """Read-only catalog of device profiles in file order."""

    def __init__(self, devices: Iterable[DeviceProfile]) -> None:
        by_name: dict[str, DeviceProfile] = {}
        for device in devices:
            if device.name in by_name:
                raise ConfigurationError(f"duplicate device name: {device.name!r}")
            by_name[device.name] = device
        self._by_name = by_name

    @classmethod
    def from_file(cls, path: str | Path | Traversable) -> "HardwareCatalog":
        table = HardwareTable.from_file(path)
        logger.debug("loaded %d devices from %s (version %d)", len(table.devices), path, table.version)
        return cls(table.devices)

    @classmethod
    def default(cls) -> "HardwareCatalog":
        return default_catalog()

    def get(self, name: str) -> DeviceProfile:
        device = self._by_name.get(name)
        if device is None:
            raise ConfigurationError(f"unknown device: {name!r}")
        return device

    def filter(self, predicate: Callable[[DeviceProfile], bool]) -> "HardwareCatalog":
        return HardwareCatalog(d for d in self if predicate(d))

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[DeviceProfile]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)


@lru_cache(maxsize=1)
def default_registry() -> ModelArchitectureRegistry:
    return ModelArchitectureRegistry.from_file(packaged_data("architectures.yaml"))


@lru_cache(maxsize=1)
def default_catalog() -> HardwareCatalog:
    return HardwareCatalog.from_file(packaged_data("hardware.yaml"))


def resolve_architecture(architecture: ModelArchitecture | str) -> ModelArchitecture:
    if isinstance(architecture, ModelArchitecture):
        return architecture
    return default_registry().get(architecture)


def resolve_device(device: DeviceProfile | str) -> DeviceProfile:
    if isinstance(device, DeviceProfile):
        return device
    return default_catalog().get(device)

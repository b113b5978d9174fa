"""
Asset Store
===========

Durable key-value store for user-provided overlay assets.

Components:
    - AssetStore: Protocol with explicit load()/save() and a byte budget
    - InMemoryAssetStore: Bounded in-memory store (tests, ephemeral kiosks)
    - JsonFileAssetStore: JSON file on disk, written atomically

Budget:
    The serialized catalog (UTF-8 JSON) must fit in capacity_bytes.
    A save that would not fit raises StorageQuotaExceeded and leaves the
    previously stored catalog untouched. A save that does not grow the
    stored catalog is always accepted, so removals still go through after
    the budget has been lowered below an existing catalog.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Protocol, Sequence

from pydantic import ValidationError

from photobooth.errors import StorageQuotaExceeded
from photobooth.models.asset import OverlayAsset


logger = logging.getLogger(__name__)


def serialize_assets(assets: Sequence[OverlayAsset]) -> bytes:
    """Serialize a catalog the way it is stored."""
    return json.dumps([asset.model_dump() for asset in assets]).encode("utf-8")


def deserialize_assets(payload: bytes) -> List[OverlayAsset]:
    """Parse a stored catalog. Raises ValueError on malformed data."""
    data = json.loads(payload.decode("utf-8"))
    if not isinstance(data, list):
        raise ValueError("stored catalog is not a list")
    try:
        return [OverlayAsset.model_validate(item) for item in data]
    except ValidationError as e:
        raise ValueError(f"stored catalog has an invalid entry: {e}")


class AssetStore(Protocol):
    """
    Protocol for durable overlay stores.

    Only user-provided assets are ever written here.
    """

    capacity_bytes: int

    def load(self) -> List[OverlayAsset]:
        """Read the stored catalog (empty if nothing stored yet)."""
        ...

    def save(self, assets: Sequence[OverlayAsset]) -> None:
        """
        Replace the stored catalog.

        Raises:
            StorageQuotaExceeded: If the catalog does not fit the budget
        """
        ...


def _check_budget(payload: bytes, capacity_bytes: int, stored_bytes: int) -> None:
    if len(payload) > capacity_bytes and len(payload) > stored_bytes:
        raise StorageQuotaExceeded(len(payload), capacity_bytes)


class InMemoryAssetStore:
    """Bounded in-memory asset store."""

    def __init__(self, capacity_bytes: int = 5 * 1024 * 1024) -> None:
        self.capacity_bytes = capacity_bytes
        self._payload: bytes = b"[]"

    @property
    def used_bytes(self) -> int:
        return len(self._payload)

    def load(self) -> List[OverlayAsset]:
        return deserialize_assets(self._payload)

    def save(self, assets: Sequence[OverlayAsset]) -> None:
        payload = serialize_assets(assets)
        _check_budget(payload, self.capacity_bytes, len(self._payload))
        self._payload = payload


class JsonFileAssetStore:
    """
    Asset store backed by a JSON file.

    Attributes:
        path: Catalog file location
        capacity_bytes: Maximum size of the catalog file
    """

    def __init__(self, path: str, capacity_bytes: int = 5 * 1024 * 1024) -> None:
        self.path = Path(path)
        self.capacity_bytes = capacity_bytes

    def load(self) -> List[OverlayAsset]:
        if not self.path.exists():
            return []

        try:
            assets = deserialize_assets(self.path.read_bytes())
        except ValueError as e:
            logger.error(f"Failed to parse overlay catalog {self.path}: {e}")
            return []

        logger.info(f"Loaded {len(assets)} user overlays from {self.path}")
        return assets

    def save(self, assets: Sequence[OverlayAsset]) -> None:
        payload = serialize_assets(assets)
        stored_bytes = self.path.stat().st_size if self.path.exists() else 0
        _check_budget(payload, self.capacity_bytes, stored_bytes)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, self.path)

        logger.debug(
            f"Saved {len(assets)} user overlays "
            f"({len(payload)}/{self.capacity_bytes} bytes)"
        )

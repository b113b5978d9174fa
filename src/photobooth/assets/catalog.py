"""
Asset Catalog
=============

In-memory view of every overlay the booth can use: the built-in frames
followed by the user-provided ones from the durable store.

Rules:
    - At most one asset per id
    - The selection always resolves to an existing asset
    - Removing the selected asset falls back to the first built-in
    - Built-ins are never written to the store nor removed
    - While a session holds the lock, the selection cannot change and the
      locked asset cannot be removed
    - Durable write first, in-memory update second (all-or-nothing)
"""

import logging
from typing import List, Optional, Sequence

from photobooth.assets.builtin import builtin_assets
from photobooth.assets.store import AssetStore
from photobooth.errors import (
    AssetNotFound,
    AssetNotRemovable,
    SelectionLocked,
    StorageQuotaExceeded,
)
from photobooth.models.asset import OverlayAsset


logger = logging.getLogger(__name__)


class AssetCatalog:
    """
    Catalog of overlay frames with the current selection.

    Example:
        catalog = AssetCatalog(JsonFileAssetStore("./data/overlays.json"))
        catalog.load()

        catalog.select("dark-mode")
        overlay = catalog.selected
    """

    def __init__(
        self,
        store: AssetStore,
        builtins: Optional[Sequence[OverlayAsset]] = None,
    ) -> None:
        self.store = store
        self._builtins: List[OverlayAsset] = list(builtins or builtin_assets())
        if not self._builtins:
            raise ValueError("catalog needs at least one built-in asset")

        self._user: List[OverlayAsset] = []
        self._selected_id: str = self._builtins[0].id
        self._locked_id: Optional[str] = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def default_id(self) -> str:
        return self._builtins[0].id

    @property
    def assets(self) -> List[OverlayAsset]:
        """All assets, built-ins first."""
        return self._builtins + self._user

    @property
    def user_assets(self) -> List[OverlayAsset]:
        return list(self._user)

    @property
    def selected_id(self) -> str:
        return self._selected_id

    @property
    def selected(self) -> OverlayAsset:
        return self.get(self._selected_id)

    @property
    def is_locked(self) -> bool:
        return self._locked_id is not None

    def contains(self, asset_id: str) -> bool:
        return any(asset.id == asset_id for asset in self.assets)

    def get(self, asset_id: str) -> OverlayAsset:
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        raise AssetNotFound(f"No overlay asset with id '{asset_id}'")

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """Read user assets from the store, dropping duplicate ids."""
        seen = {asset.id for asset in self._builtins}
        user: List[OverlayAsset] = []
        for asset in self.store.load():
            if asset.id in seen:
                logger.warning(f"Skipping duplicate overlay id '{asset.id}'")
                continue
            seen.add(asset.id)
            user.append(asset.model_copy(update={"is_user_provided": True}))
        self._user = user

        if not self.contains(self._selected_id):
            self._selected_id = self.default_id

    def add_user_asset(self, asset: OverlayAsset) -> None:
        """
        Append a user asset and persist the user catalog.

        Raises:
            ValueError: If the id is already taken
            StorageQuotaExceeded: If the store budget would be exceeded;
                the in-memory catalog is left unchanged
        """
        if self.contains(asset.id):
            raise ValueError(f"Overlay id '{asset.id}' already exists")

        updated = self._user + [asset]
        self.store.save(updated)
        self._user = updated
        logger.info(f"Added user overlay {asset!r}")

    def remove(self, asset_id: str) -> None:
        """
        Remove a user asset.

        Raises:
            AssetNotFound: Unknown id
            AssetNotRemovable: Built-in asset
            SelectionLocked: Asset is in use by the active session
        """
        asset = self.get(asset_id)
        if not asset.is_user_provided:
            raise AssetNotRemovable(f"Built-in overlay '{asset_id}' cannot be removed")
        if asset_id == self._locked_id:
            raise SelectionLocked(f"Overlay '{asset_id}' is in use by the active session")

        updated = [a for a in self._user if a.id != asset_id]
        self._user = updated
        if self._selected_id == asset_id:
            self._selected_id = self.default_id
            logger.info(f"Selected overlay removed, falling back to '{self.default_id}'")

        try:
            self.store.save(updated)
        except (OSError, StorageQuotaExceeded) as e:
            # Removal only shrinks the catalog; memory stays authoritative
            logger.error(f"Failed to persist removal of overlay '{asset_id}': {e}")

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, asset_id: str) -> None:
        if self._locked_id is not None and asset_id != self._locked_id:
            raise SelectionLocked("Overlay selection is frozen during a session")
        self.get(asset_id)
        self._selected_id = asset_id

    def lock(self) -> str:
        """Freeze the current selection; returns the frozen id."""
        self._locked_id = self._selected_id
        return self._locked_id

    def unlock(self) -> None:
        self._locked_id = None

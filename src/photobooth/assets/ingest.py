"""
Asset Ingestor
==============

Turns an uploaded image into a stored overlay frame.

Steps:
    1. Decode the raw upload (alpha preserved)
    2. Re-render it to the composite canvas size
    3. Re-encode as WebP (alpha-capable, lossy) to bound its size
    4. Append it to the catalog, which writes the store first

Ingestion is all-or-nothing: if the store rejects the write (quota), the
catalog in memory is unchanged.
"""

import asyncio
import logging
import time
from pathlib import PurePath
from typing import Callable

import cv2

from photobooth.assets.catalog import AssetCatalog
from photobooth.errors import StorageQuotaExceeded
from photobooth.imaging.codec import decode_image, encode_image, ensure_bgra, to_data_uri
from photobooth.models.asset import OverlayAsset
from photobooth.models.geometry import DEFAULT_LAYOUT, CanvasLayout


logger = logging.getLogger(__name__)


class AssetIngestor:
    """
    Validates, normalizes and stores user overlay frames.

    Attributes:
        catalog: Catalog receiving the new assets
        layout: Canvas geometry the frames are normalized to
        webp_quality: WebP quality of the stored frame
    """

    def __init__(
        self,
        catalog: AssetCatalog,
        layout: CanvasLayout = DEFAULT_LAYOUT,
        webp_quality: int = 80,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.catalog = catalog
        self.layout = layout
        self.webp_quality = webp_quality
        self._clock = clock

    def normalize(self, raw_image: bytes) -> str:
        """
        Decode, resize to the canvas and re-encode as a WebP data URI.

        Raises:
            ImageDecodeError: If the upload is not a readable image
        """
        image = decode_image(raw_image, keep_alpha=True)
        resized = cv2.resize(
            ensure_bgra(image),
            (self.layout.width, self.layout.height),
            interpolation=cv2.INTER_AREA,
        )
        data = encode_image(resized, ".webp", quality=self.webp_quality)
        return to_data_uri(data, ".webp")

    def ingest(self, raw_image: bytes, display_name: str) -> OverlayAsset:
        """
        Ingest an uploaded frame.

        Args:
            raw_image: Encoded upload (PNG, JPEG, WebP, ...)
            display_name: Upload name; a file extension is stripped

        Returns:
            The stored OverlayAsset

        Raises:
            ImageDecodeError: If the upload cannot be decoded
            StorageQuotaExceeded: If the store budget would be exceeded
        """
        return self._store(self.normalize(raw_image), display_name)

    async def ingest_async(self, raw_image: bytes, display_name: str) -> OverlayAsset:
        """ingest() with the decode/encode work moved off the event loop."""
        image_uri = await asyncio.to_thread(self.normalize, raw_image)
        return self._store(image_uri, display_name)

    def _store(self, image_uri: str, display_name: str) -> OverlayAsset:
        asset = OverlayAsset(
            id=self._new_id(),
            display_name=PurePath(display_name).stem or display_name,
            image_uri=image_uri,
            is_user_provided=True,
        )
        try:
            self.catalog.add_user_asset(asset)
        except StorageQuotaExceeded as e:
            logger.warning(f"Overlay '{asset.display_name}' rejected: {e}")
            raise

        if not self.catalog.is_locked:
            self.catalog.select(asset.id)

        logger.info(
            f"Ingested overlay {asset!r} ({len(image_uri)} chars, "
            f"{len(self.catalog.user_assets)} user overlays)"
        )
        return asset

    def _new_id(self) -> str:
        base = f"custom-{int(self._clock() * 1000)}"
        candidate = base
        suffix = 1
        while self.catalog.contains(candidate):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

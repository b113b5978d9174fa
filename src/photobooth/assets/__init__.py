"""
Assets Module
=============

Overlay frames drawn over the photo strip.

Components:
    - builtin: generated default frames ('classic-white' first)
    - store: durable user catalog with a byte budget
    - catalog: built-ins + user frames, selection and session lock
    - ingest: upload -> normalized WebP overlay, all-or-nothing
"""

from photobooth.assets.builtin import builtin_assets, default_asset_id
from photobooth.assets.catalog import AssetCatalog
from photobooth.assets.ingest import AssetIngestor
from photobooth.assets.store import AssetStore, InMemoryAssetStore, JsonFileAssetStore

__all__ = [
    "builtin_assets",
    "default_asset_id",
    "AssetCatalog",
    "AssetIngestor",
    "AssetStore",
    "InMemoryAssetStore",
    "JsonFileAssetStore",
]

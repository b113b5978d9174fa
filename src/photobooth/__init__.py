"""
Kiosk Photobooth
================

Unattended photobooth pipeline: live camera feed in, one decorated
three-photo strip out.

This package provides the capture-compose-persist core of the kiosk.
A session counts down, captures three mirrored stills, composites them
under a decorative frame overlay and hands the strip off for local export
and best-effort remote archival.

Components:
    - imaging: center crop, still capture, compositing, image codec
    - session: deterministic session state machine (LangGraph + asyncio)
    - assets: overlay frame catalog, durable store, ingestion
    - export: local file export and remote archive upload
    - camera: live frame sources (OpenCV device, WebSocket stream, static)
    - booth: controller tying the pipeline to user-visible notices

Example:
    from photobooth.booth import PhotoBooth

    # The booth is assembled by the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "Photobooth Project"

__all__ = [
    "__version__",
]

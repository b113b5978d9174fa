"""
Data Models
===========

Models for the kiosk photobooth.

This module re-exports all data models for convenient access.

Models:
    Session:
        - SessionPhase: Enum of session phases
        - CapturedPhoto: Encoded still owned by the session
        - SessionState: The single live session snapshot

    Geometry:
        - CropRect, Slot, CanvasLayout: Crop and canvas rectangles

    Assets:
        - OverlayAsset: Decorative frame drawn over the strip

    Output:
        - ExportOutcome: Local/remote export result
        - Notice, NoticeCode: User-visible notices
"""

from photobooth.models.session import CapturedPhoto, SessionPhase, SessionState
from photobooth.models.geometry import DEFAULT_LAYOUT, CanvasLayout, CropRect, Slot
from photobooth.models.asset import OverlayAsset
from photobooth.models.export import ExportOutcome
from photobooth.models.notice import Notice, NoticeCode, NoticeLevel

__all__ = [
    # Session
    "SessionPhase",
    "CapturedPhoto",
    "SessionState",
    # Geometry
    "CropRect",
    "Slot",
    "CanvasLayout",
    "DEFAULT_LAYOUT",
    # Assets
    "OverlayAsset",
    # Output
    "ExportOutcome",
    "Notice",
    "NoticeCode",
    "NoticeLevel",
]

"""
Session State Models
====================

This module defines the state representation of a photobooth session.

Core Concepts:
    - SessionPhase: Discrete session phases
    - CapturedPhoto: One encoded still, owned by the active session
    - SessionState: The single live session snapshot

Lifecycle:
    IDLE → COUNTDOWN(3) → COUNTDOWN(2) → COUNTDOWN(1) → CAPTURING
         → COUNTDOWN(3) ... (three photos) → COMPOSING → RESULT → IDLE

    CANCEL collapses any phase back to IDLE and drops captured photos.

Invariants:
    - len(captured_photos) <= 3, growing by exactly one per capture
    - final_image is set if and only if phase == RESULT
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from photobooth.models.geometry import PHOTO_COUNT


class SessionPhase(str, Enum):
    """
    Discrete phases of a photobooth session.

    Attributes:
        IDLE: Waiting for a guest to start
        COUNTDOWN: Counting down to the next capture
        CAPTURING: Sampling a still from the camera
        COMPOSING: Building the photo strip
        RESULT: Strip ready for export
    """

    IDLE = "IDLE"
    COUNTDOWN = "COUNTDOWN"
    CAPTURING = "CAPTURING"
    COMPOSING = "COMPOSING"
    RESULT = "RESULT"


@dataclass(frozen=True, slots=True)
class CapturedPhoto:
    """
    Encoded still captured during a session.

    Immutable (frozen); discarded when the session resets.

    Attributes:
        image: JPEG-encoded canonical bitmap
        width: Bitmap width in pixels
        height: Bitmap height in pixels
        captured_at: UNIX timestamp of the capture
    """

    image: bytes
    width: int
    height: int
    captured_at: float

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the encoded image."""
        return (
            f"CapturedPhoto({self.width}x{self.height}, "
            f"{len(self.image)} bytes, "
            f"captured_at={self.captured_at:.3f})"
        )


class SessionState(BaseModel):
    """
    Snapshot of the single active session.

    Mutated only by the session transition policy, always through
    model_copy so every snapshot handed out stays valid.

    Attributes:
        session_id: Generation counter, bumped on every start/cancel/reset
        phase: Current session phase
        captured_photos: Photos captured so far, in order
        countdown_value: Value shown during COUNTDOWN, None otherwise
        selected_asset_id: Overlay frozen for this session
        final_image: PNG strip, only in RESULT
        flash: Whether the post-capture flash is showing
        capture_attempts: NotReady attempts for the pending capture
        error_detail: Why the last session ended early
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: int = Field(default=0, ge=0)
    phase: SessionPhase = Field(default=SessionPhase.IDLE)
    captured_photos: List[CapturedPhoto] = Field(
        default_factory=list,
        max_length=PHOTO_COUNT,
    )
    countdown_value: Optional[int] = Field(default=None)
    selected_asset_id: str = Field(...)
    final_image: Optional[bytes] = Field(default=None)
    flash: bool = Field(default=False)
    capture_attempts: int = Field(default=0, ge=0)
    error_detail: Optional[str] = Field(default=None)

    @property
    def photo_count(self) -> int:
        return len(self.captured_photos)

    @property
    def is_active(self) -> bool:
        """True while a session holds the booth (not IDLE)."""
        return self.phase != SessionPhase.IDLE

    def summary(self) -> dict:
        """JSON-friendly view without image payloads."""
        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "photo_count": self.photo_count,
            "countdown_value": self.countdown_value,
            "selected_asset_id": self.selected_asset_id,
            "has_final_image": self.final_image is not None,
            "flash": self.flash,
            "error_detail": self.error_detail,
        }

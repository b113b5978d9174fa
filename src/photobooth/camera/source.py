"""
Frame Sources
=============

Live camera abstraction for the capture pipeline.

This module provides the FrameSource protocol plus two implementations:
    - StaticFrameSource: Fixed bitmap, for tests and demos
    - OpenCVFrameSource: Local camera via cv2.VideoCapture

Design Rules:
    - get_live_frame() returns an immutable snapshot (LiveFrame)
    - Single consumer: callers never keep a LiveFrame across an await
    - No locking; the device keeps updating behind the snapshot
    - A source that has nothing yet returns an empty LiveFrame
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import cv2
import numpy as np


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LiveFrame:
    """
    Snapshot of the live feed at one instant.

    Attributes:
        bitmap: BGR image (H, W, 3), or None when no frame is available
        width: Frame width in pixels (0 when not ready)
        height: Frame height in pixels (0 when not ready)
    """

    bitmap: Optional[np.ndarray]
    width: int
    height: int

    @property
    def is_ready(self) -> bool:
        return self.bitmap is not None and self.width > 0 and self.height > 0

    @classmethod
    def empty(cls) -> "LiveFrame":
        return cls(bitmap=None, width=0, height=0)

    @classmethod
    def from_array(cls, bitmap: np.ndarray) -> "LiveFrame":
        bitmap.setflags(write=False)
        return cls(bitmap=bitmap, width=bitmap.shape[1], height=bitmap.shape[0])

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the bitmap."""
        return f"LiveFrame({self.width}x{self.height}, ready={self.is_ready})"


class FrameSource(Protocol):
    """
    Protocol for live frame sources.

    Implemented by:
        - StaticFrameSource
        - OpenCVFrameSource
        - StreamFrameSource (WebSocket feed)
    """

    def get_live_frame(self) -> LiveFrame:
        """
        Sample the current frame.

        Returns:
            LiveFrame snapshot (empty when the source is not ready)
        """
        ...


class StaticFrameSource:
    """
    Frame source that always returns the same bitmap.

    The bitmap can be swapped with set_frame(), e.g. to simulate a
    resolution change, or cleared to simulate a camera that is not ready.
    """

    def __init__(self, bitmap: Optional[np.ndarray] = None) -> None:
        self._frame = LiveFrame.empty()
        if bitmap is not None:
            self.set_frame(bitmap)

    def set_frame(self, bitmap: Optional[np.ndarray]) -> None:
        if bitmap is None:
            self._frame = LiveFrame.empty()
        else:
            self._frame = LiveFrame.from_array(bitmap.copy())

    def get_live_frame(self) -> LiveFrame:
        return self._frame


class OpenCVFrameSource:
    """
    Local camera device read through cv2.VideoCapture.

    Attributes:
        device_index: OpenCV device index
        width: Requested frame width (the driver may negotiate another)
        height: Requested frame height
    """

    def __init__(self, device_index: int = 0, width: int = 1280, height: int = 720) -> None:
        self.device_index = device_index
        self.width = width
        self.height = height
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def open(self) -> None:
        """Open the device. Failure is logged; frames then read as not ready."""
        self._cap = cv2.VideoCapture(self.device_index)
        if not self._cap.isOpened():
            logger.error(f"Could not open camera device {self.device_index}")
            return

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        logger.info(
            f"Camera {self.device_index} opened: "
            f"{int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info(f"Camera {self.device_index} released")

    def get_live_frame(self) -> LiveFrame:
        if not self.is_open:
            return LiveFrame.empty()

        ok, bitmap = self._cap.read()
        if not ok or bitmap is None or bitmap.size == 0:
            return LiveFrame.empty()
        return LiveFrame.from_array(bitmap)

"""
Frame Capturer
==============

Samples one still from the live feed into a canonical photo.

Pipeline:
    1. Snapshot the current frame (LiveFrame)
    2. Center crop to the target aspect ratio
    3. Scale the crop to the target size
    4. Mirror horizontally (guests see themselves as in a mirror)
    5. Encode as JPEG

The source frame is never modified: crop is a view, and every later step
writes into a fresh array.
"""

import logging
import time
from typing import Callable

import cv2

from photobooth.camera.source import FrameSource
from photobooth.errors import CaptureNotReady
from photobooth.imaging.codec import encode_image
from photobooth.imaging.crop import compute_crop
from photobooth.models.session import CapturedPhoto


logger = logging.getLogger(__name__)


class FrameCapturer:
    """
    Turns live frames into canonical CapturedPhotos.

    Attributes:
        jpeg_quality: JPEG quality of the encoded still
        mirror: Apply the horizontal self-view flip
    """

    def __init__(
        self,
        jpeg_quality: int = 90,
        mirror: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.jpeg_quality = jpeg_quality
        self.mirror = mirror
        self._clock = clock

    def capture(
        self,
        frame_source: FrameSource,
        target_w: int = 500,
        target_h: int = 350,
    ) -> CapturedPhoto:
        """
        Capture one still from the frame source.

        Args:
            frame_source: Live frame source (borrowed for this call only)
            target_w: Canonical photo width
            target_h: Canonical photo height

        Returns:
            CapturedPhoto of exactly target_w x target_h

        Raises:
            CaptureNotReady: If the source has no usable frame yet
        """
        frame = frame_source.get_live_frame()
        if not frame.is_ready:
            raise CaptureNotReady(f"Frame source not ready ({frame!r})")

        crop = compute_crop(frame.width, frame.height, target_w, target_h)
        x0, y0, x1, y1 = crop.to_pixels()
        region = frame.bitmap[y0:y1, x0:x1]

        shrinking = region.shape[1] > target_w
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        still = cv2.resize(region, (target_w, target_h), interpolation=interpolation)

        if still.ndim == 2:
            still = cv2.cvtColor(still, cv2.COLOR_GRAY2BGR)
        elif still.shape[2] == 4:
            still = cv2.cvtColor(still, cv2.COLOR_BGRA2BGR)

        if self.mirror:
            still = cv2.flip(still, 1)

        data = encode_image(still, ".jpg", quality=self.jpeg_quality)

        logger.debug(
            f"Captured {target_w}x{target_h} from {frame.width}x{frame.height} "
            f"(crop x={x0} y={y0} w={x1 - x0} h={y1 - y0}, {len(data)} bytes)"
        )

        return CapturedPhoto(
            image=data,
            width=target_w,
            height=target_h,
            captured_at=self._clock(),
        )

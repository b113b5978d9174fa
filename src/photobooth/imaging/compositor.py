"""
Compositor
==========

Assembles three captured photos and one overlay frame into the strip.

Z-order:
    1. Opaque white background
    2. Photos, in insertion order, scaled into their fixed slots
    3. Overlay, stretched over the whole canvas and alpha-blended

The overlay is expected to carry transparent windows over the slots so
the photos show through, with opaque borders and decoration around them.

Determinism:
    Same photos + same overlay + same layout -> byte-identical PNG.
    Blending is done in integer arithmetic and nothing time-dependent is
    drawn onto the canvas.
"""

import logging
from typing import Sequence

import cv2
import numpy as np

from photobooth.errors import CompositionAssetLoadFailure
from photobooth.imaging.codec import (
    ImageDecodeError,
    decode_data_uri,
    decode_image,
    encode_image,
)
from photobooth.models.asset import OverlayAsset
from photobooth.models.geometry import DEFAULT_LAYOUT, PHOTO_COUNT, CanvasLayout
from photobooth.models.session import CapturedPhoto


logger = logging.getLogger(__name__)


BACKGROUND_BGR = (255, 255, 255)


def alpha_blend(canvas: np.ndarray, overlay_bgra: np.ndarray) -> np.ndarray:
    """
    Blend a BGRA overlay onto a BGR canvas of the same size.

    Uses rounded integer arithmetic: out = (fg*a + bg*(255-a) + 127) // 255
    """
    alpha = overlay_bgra[:, :, 3:4].astype(np.uint32)
    fg = overlay_bgra[:, :, :3].astype(np.uint32)
    bg = canvas.astype(np.uint32)
    blended = (fg * alpha + bg * (255 - alpha) + 127) // 255
    return blended.astype(np.uint8)


class Compositor:
    """
    Builds the final photo strip.

    Attributes:
        layout: Canvas size and slot geometry
    """

    def __init__(self, layout: CanvasLayout = DEFAULT_LAYOUT) -> None:
        self.layout = layout

    def compose(
        self,
        photos: Sequence[CapturedPhoto],
        overlay: OverlayAsset,
    ) -> bytes:
        """
        Compose the strip.

        Args:
            photos: Exactly three captured photos, in slot order
            overlay: Frame drawn on top of the photos

        Returns:
            PNG-encoded strip of layout.width x layout.height

        Raises:
            ValueError: If the photo count is not three
            CompositionAssetLoadFailure: If any image fails to decode
        """
        if len(photos) != PHOTO_COUNT:
            raise ValueError(f"compose needs {PHOTO_COUNT} photos, got {len(photos)}")

        layout = self.layout
        canvas = np.empty((layout.height, layout.width, 3), dtype=np.uint8)
        canvas[:] = BACKGROUND_BGR

        for index, (photo, slot) in enumerate(zip(photos, layout.slots)):
            try:
                image = decode_image(photo.image)
            except ImageDecodeError as e:
                raise CompositionAssetLoadFailure(f"Photo {index + 1} failed to load: {e}")

            if image.shape[1] != slot.width or image.shape[0] != slot.height:
                image = cv2.resize(
                    image, (slot.width, slot.height), interpolation=cv2.INTER_AREA
                )
            canvas[slot.y:slot.y + slot.height, slot.x:slot.x + slot.width] = image

        try:
            frame = decode_data_uri(overlay.image_uri, keep_alpha=True)
        except ImageDecodeError as e:
            raise CompositionAssetLoadFailure(
                f"Overlay '{overlay.id}' failed to load: {e}"
            )

        if frame.shape[1] != layout.width or frame.shape[0] != layout.height:
            frame = cv2.resize(
                frame, (layout.width, layout.height), interpolation=cv2.INTER_AREA
            )

        if frame.shape[2] == 4:
            canvas = alpha_blend(canvas, frame)
        else:
            canvas = frame.copy()

        strip = encode_image(canvas, ".png")
        logger.info(
            f"Composed {layout.width}x{layout.height} strip with overlay "
            f"'{overlay.id}' ({len(strip)} bytes)"
        )
        return strip

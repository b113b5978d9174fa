"""
Built-in Frames
===============

The three frames that ship with the booth. Each is a solid full-canvas
frame with transparent windows cut over the photo slots and a caption in
the bottom margin, encoded as a PNG data URI.

Built-ins are generated once per process and never persisted.
The first one, 'classic-white', is the default selection.
"""

from functools import lru_cache
from typing import Tuple

import cv2
import numpy as np

from photobooth.imaging.codec import encode_image, to_data_uri
from photobooth.models.asset import OverlayAsset
from photobooth.models.geometry import DEFAULT_LAYOUT, CanvasLayout


CAPTION_BASELINE_FROM_BOTTOM = 80
CAPTION_FONT = cv2.FONT_HERSHEY_DUPLEX
CAPTION_SCALE = 1.6
CAPTION_THICKNESS = 3


def hex_to_bgr(color: str) -> Tuple[int, int, int]:
    """Convert '#RRGGBB' to a BGR tuple."""
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Invalid color: {color}")
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return b, g, r


def render_frame(
    bg_color: str,
    text_color: str,
    caption: str,
    layout: CanvasLayout = DEFAULT_LAYOUT,
) -> np.ndarray:
    """
    Render a windowed frame as a BGRA array.

    Args:
        bg_color: Frame color, '#RRGGBB'
        text_color: Caption color, '#RRGGBB'
        caption: Caption text drawn centered in the bottom margin
        layout: Canvas geometry; one window is cut per slot

    Returns:
        BGRA image (layout.height, layout.width, 4)
    """
    frame = np.zeros((layout.height, layout.width, 4), dtype=np.uint8)
    frame[:, :, :3] = hex_to_bgr(bg_color)
    frame[:, :, 3] = 255

    for slot in layout.slots:
        frame[slot.y:slot.y + slot.height, slot.x:slot.x + slot.width] = 0

    (text_w, _), _ = cv2.getTextSize(caption, CAPTION_FONT, CAPTION_SCALE, CAPTION_THICKNESS)
    origin = (
        (layout.width - text_w) // 2,
        layout.height - CAPTION_BASELINE_FROM_BOTTOM,
    )
    cv2.putText(
        frame,
        caption,
        origin,
        CAPTION_FONT,
        CAPTION_SCALE,
        (*hex_to_bgr(text_color), 255),
        CAPTION_THICKNESS,
        cv2.LINE_AA,
    )
    return frame


def _builtin(asset_id: str, name: str, bg: str, fg: str, caption: str) -> OverlayAsset:
    png = encode_image(render_frame(bg, fg, caption), ".png")
    return OverlayAsset(
        id=asset_id,
        display_name=name,
        image_uri=to_data_uri(png, ".png"),
        is_user_provided=False,
    )


@lru_cache(maxsize=1)
def builtin_assets() -> Tuple[OverlayAsset, ...]:
    """Built-in frames, in display order. The first is the default."""
    return (
        _builtin("classic-white", "Classic", "#FFFFFF", "#000000", "PHOTOBOOTH"),
        _builtin("dark-mode", "Dark Mode", "#1A1A1A", "#FFFFFF", "MEMORIES"),
        _builtin("cute-pink", "Pinky", "#FFB6C1", "#FFFFFF", "CUTE SNAP"),
    )


def default_asset_id() -> str:
    return builtin_assets()[0].id

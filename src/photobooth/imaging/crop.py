"""
Center Crop
===========

Computes the largest centered source rectangle with the target's aspect
ratio, so a frame of any shape fills a fixed slot without stretching.

    source wider than target  -> keep full height, trim left/right
    source taller than target -> keep full width, trim top/bottom
"""

from photobooth.models.geometry import CropRect


def compute_crop(
    source_w: float,
    source_h: float,
    target_w: float,
    target_h: float,
) -> CropRect:
    """
    Compute the center crop of a source frame for a target region.

    Args:
        source_w: Source frame width
        source_h: Source frame height
        target_w: Target region width
        target_h: Target region height

    Returns:
        CropRect with sw/sh == target_w/target_h, inside the source

    Raises:
        ValueError: If any extent is not positive
    """
    if source_w <= 0 or source_h <= 0 or target_w <= 0 or target_h <= 0:
        raise ValueError(
            f"crop extents must be positive: source={source_w}x{source_h}, "
            f"target={target_w}x{target_h}"
        )

    source_ratio = source_w / source_h
    target_ratio = target_w / target_h

    if source_ratio > target_ratio:
        sh = float(source_h)
        sw = source_h * target_ratio
        return CropRect(sx=(source_w - sw) / 2, sy=0.0, sw=sw, sh=sh)

    sw = float(source_w)
    sh = source_w / target_ratio
    return CropRect(sx=0.0, sy=(source_h - sh) / 2, sw=sw, sh=sh)

"""
Imaging Module
==============

Pixel work of the pipeline, all on OpenCV/numpy arrays:
    - crop: center crop rectangle (pure)
    - capture: live frame -> mirrored canonical JPEG still
    - compositor: three stills + overlay -> PNG strip
    - codec: the only place that encodes/decodes image bytes
"""

from photobooth.imaging.capture import FrameCapturer
from photobooth.imaging.codec import ImageDecodeError
from photobooth.imaging.compositor import Compositor
from photobooth.imaging.crop import compute_crop

__all__ = [
    "FrameCapturer",
    "Compositor",
    "ImageDecodeError",
    "compute_crop",
]

"""
Camera Module
=============

Live frame sources for the capture pipeline.

The pipeline never owns the camera. It borrows one snapshot per capture
through the FrameSource protocol:
    - StaticFrameSource: fixed bitmap
    - OpenCVFrameSource: local device via cv2.VideoCapture
    - StreamFrameSource: WebSocket frame stream
"""

from photobooth.camera.source import (
    FrameSource,
    LiveFrame,
    OpenCVFrameSource,
    StaticFrameSource,
)
from photobooth.camera.stream_source import StreamFrameSource, StreamSourceMetrics

__all__ = [
    "FrameSource",
    "LiveFrame",
    "OpenCVFrameSource",
    "StaticFrameSource",
    "StreamFrameSource",
    "StreamSourceMetrics",
]

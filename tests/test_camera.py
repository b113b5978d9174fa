"""
Camera Tests
============

Tests for live frame sources.
"""

import base64
import json

import numpy as np

from photobooth.imaging.codec import encode_image


def _message(frame_id, image=None):
    if image is None:
        image = encode_image(np.full((72, 128, 3), 200, dtype=np.uint8), ".jpg")
    return json.dumps({
        "frame_id": frame_id,
        "timestamp": 1707321234.5,
        "image": base64.b64encode(image).decode("ascii"),
    })


class TestStaticFrameSource:
    """Tests for StaticFrameSource."""

    def test_empty_source_not_ready(self):
        from photobooth.camera.source import StaticFrameSource

        frame = StaticFrameSource().get_live_frame()
        assert not frame.is_ready
        assert (frame.width, frame.height) == (0, 0)

    def test_frame_is_a_read_only_copy(self, split_frame):
        from photobooth.camera.source import StaticFrameSource

        source = StaticFrameSource(split_frame)
        split_frame[:] = 7
        frame = source.get_live_frame()

        assert frame.is_ready
        assert (frame.width, frame.height) == (1280, 720)
        assert frame.bitmap[0, 1279, 0] == 255
        assert not frame.bitmap.flags.writeable

    def test_set_frame_none_clears(self, split_frame):
        from photobooth.camera.source import StaticFrameSource

        source = StaticFrameSource(split_frame)
        source.set_frame(None)
        assert not source.get_live_frame().is_ready


class TestStreamFrameSource:
    """Tests for StreamFrameSource message handling."""

    def test_not_ready_before_first_frame(self):
        from photobooth.camera.stream_source import StreamFrameSource

        assert not StreamFrameSource("ws://localhost:1").get_live_frame().is_ready

    def test_latest_frame_is_decoded(self):
        from photobooth.camera.stream_source import StreamFrameSource

        source = StreamFrameSource("ws://localhost:1")
        assert source.handle_message(_message(1))

        frame = source.get_live_frame()
        assert frame.is_ready
        assert (frame.width, frame.height) == (128, 72)
        assert source.metrics.frames_received == 1

    def test_stale_frame_ignored(self):
        from photobooth.camera.stream_source import StreamFrameSource

        source = StreamFrameSource("ws://localhost:1")
        assert source.handle_message(_message(5))
        assert not source.handle_message(_message(3))
        assert source.metrics.last_frame_id == 5

    def test_invalid_message_counted(self):
        from photobooth.camera.stream_source import StreamFrameSource

        source = StreamFrameSource("ws://localhost:1")
        assert not source.handle_message("{not json")
        assert not source.handle_message(json.dumps({"frame_id": 1}))
        assert source.metrics.parse_errors == 2

    def test_undecodable_frame_reads_not_ready(self):
        from photobooth.camera.stream_source import StreamFrameSource

        source = StreamFrameSource("ws://localhost:1")
        assert source.handle_message(_message(1, image=b"not a jpeg"))

        assert not source.get_live_frame().is_ready
        assert source.metrics.decode_errors == 1

"""
Test Configuration
==================

Pytest fixtures and test configuration for the photobooth.
"""

import numpy as np
import pytest


@pytest.fixture
def split_frame():
    """1280x720 BGR frame: left half black, right half white."""
    frame = np.zeros((720, 1280, 3), dtype=np.uint8)
    frame[:, 640:] = 255
    return frame


@pytest.fixture
def static_source(split_frame):
    """Frame source that always yields the split frame."""
    from photobooth.camera.source import StaticFrameSource

    return StaticFrameSource(split_frame)


@pytest.fixture
def zero_timings():
    """Session timings with every wait collapsed to a bare yield."""
    from photobooth.session.machine import SessionTimings

    return SessionTimings(
        countdown_steps=3,
        countdown_interval_ms=0,
        flash_ms=0,
        pause_ms=0,
        capture_retry_interval_ms=0,
        max_capture_attempts=5,
    )


@pytest.fixture
def memory_store():
    from photobooth.assets.store import InMemoryAssetStore

    return InMemoryAssetStore(capacity_bytes=5 * 1024 * 1024)


@pytest.fixture
def catalog(memory_store):
    from photobooth.assets.catalog import AssetCatalog

    catalog = AssetCatalog(memory_store)
    catalog.load()
    return catalog


@pytest.fixture
def machine(static_source, catalog, zero_timings):
    from photobooth.imaging.capture import FrameCapturer
    from photobooth.imaging.compositor import Compositor
    from photobooth.session.machine import SessionStateMachine

    return SessionStateMachine(
        frame_source=static_source,
        capturer=FrameCapturer(clock=lambda: 1707321234.5),
        compositor=Compositor(),
        catalog=catalog,
        timings=zero_timings,
    )


@pytest.fixture
def overlay_png():
    """600x1400 RGBA overlay: red border, transparent center."""
    from photobooth.imaging.codec import encode_image

    image = np.zeros((1400, 600, 4), dtype=np.uint8)
    image[:, :, 2] = 255
    image[:, :, 3] = 255
    image[100:1300, 100:500, 3] = 0
    return encode_image(image, ".png")


class FakeResponse:
    """Stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        import requests

        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeHTTPSession:
    """Stand-in for requests.Session recording every POST."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse({"success": True})
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, data=None, timeout=None):
        self.calls.append({"url": url, "data": data, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_http_session():
    return FakeHTTPSession

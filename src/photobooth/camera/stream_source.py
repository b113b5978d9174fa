"""
Stream Frame Source
===================

WebSocket-fed live frame source.

Used when the camera is owned by a separate streaming process. The
source:
    - Connects to the stream's WebSocket endpoint
    - Receives JSON frame messages {frame_id, timestamp, image}
    - Keeps ONLY the latest frame (older frames are simply replaced)
    - Reconnects automatically with a fixed backoff
    - Decodes lazily, on get_live_frame(), so idle frames cost nothing

Design Rules:
    - get_live_frame() never blocks and never awaits
    - A frame that fails to decode reads as "not ready"
"""

import asyncio
import base64
import binascii
import json
import logging
from typing import Optional

import websockets
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedOK,
    InvalidHandshake,
)

from photobooth.camera.source import LiveFrame
from photobooth.imaging.codec import ImageDecodeError, decode_image


logger = logging.getLogger(__name__)


class StreamSourceMetrics:
    """Metrics for StreamFrameSource observability."""

    __slots__ = (
        "frames_received",
        "reconnect_count",
        "last_frame_id",
        "parse_errors",
        "decode_errors",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.reconnect_count: int = 0
        self.last_frame_id: int = -1
        self.parse_errors: int = 0
        self.decode_errors: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_received": self.frames_received,
            "reconnect_count": self.reconnect_count,
            "last_frame_id": self.last_frame_id,
            "parse_errors": self.parse_errors,
            "decode_errors": self.decode_errors,
        }


class StreamFrameSource:
    """
    Live frame source backed by a WebSocket frame stream.

    Example:
        source = StreamFrameSource("ws://localhost:8000/ws/stream")
        task = asyncio.create_task(source.run())

        frame = source.get_live_frame()

        await source.stop()
        await task
    """

    def __init__(
        self,
        url: str,
        reconnect_backoff_ms: int = 500,
        max_reconnect_attempts: int = 0,
    ) -> None:
        """
        Initialize stream frame source.

        Args:
            url: WebSocket URL of the frame stream
            reconnect_backoff_ms: Backoff between reconnect attempts
            max_reconnect_attempts: Max attempts (0 = unlimited)
        """
        self.url = url
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.max_reconnect_attempts = max_reconnect_attempts

        self._latest_jpeg: Optional[bytes] = None
        self._connected: bool = False
        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()

        self.metrics = StreamSourceMetrics()

    @property
    def connected(self) -> bool:
        """Whether currently connected to the stream."""
        return self._connected

    @property
    def has_frame(self) -> bool:
        """Whether at least one frame has been received."""
        return self._latest_jpeg is not None

    def get_live_frame(self) -> LiveFrame:
        data = self._latest_jpeg
        if data is None:
            return LiveFrame.empty()
        try:
            return LiveFrame.from_array(decode_image(data))
        except ImageDecodeError as e:
            self.metrics.decode_errors += 1
            logger.warning(f"Latest stream frame is undecodable: {e}")
            return LiveFrame.empty()

    async def run(self) -> None:
        """
        Start consuming frames.

        Runs indefinitely, reconnecting on disconnect.
        Call stop() to terminate gracefully.
        """
        self._running = True
        self._stop_event.clear()

        logger.info(f"StreamFrameSource starting, connecting to {self.url}")

        while self._running:
            try:
                await self._connect_and_consume()
            except (OSError, ConnectionClosed, InvalidHandshake) as e:
                if not self._running:
                    break

                logger.error(f"Connection error: {e}")
                self._connected = False

                if (
                    self.max_reconnect_attempts > 0
                    and self.metrics.reconnect_count >= self.max_reconnect_attempts
                ):
                    logger.error(
                        f"Max reconnect attempts ({self.max_reconnect_attempts}) exceeded"
                    )
                    break

                self.metrics.reconnect_count += 1
                backoff_sec = self.reconnect_backoff_ms / 1000.0
                logger.info(
                    f"Reconnecting in {backoff_sec:.1f}s "
                    f"(attempt {self.metrics.reconnect_count})"
                )

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=backoff_sec)
                    break
                except asyncio.TimeoutError:
                    pass

        logger.info("StreamFrameSource stopped")

    async def stop(self) -> None:
        """Signal the run loop to exit."""
        logger.info("StreamFrameSource stopping...")
        self._running = False
        self._stop_event.set()
        self._connected = False

    async def _connect_and_consume(self) -> None:
        """Connect to WebSocket and consume messages until disconnect."""
        async with websockets.connect(
            self.url,
            ping_interval=20,
            ping_timeout=10,
            close_timeout=5,
        ) as ws:
            self._connected = True
            # A restarted stream counts frames from zero again
            self.metrics.last_frame_id = -1
            logger.info(f"Connected to frame stream: {self.url}")

            try:
                async for message in ws:
                    if not self._running:
                        break
                    self.handle_message(message)
            except ConnectionClosedOK:
                logger.info("Connection closed normally")
            finally:
                self._connected = False

    def handle_message(self, raw: str) -> bool:
        """
        Parse one stream message and keep its frame as the latest.

        Args:
            raw: Raw JSON string from WebSocket

        Returns:
            True if the frame was accepted
        """
        try:
            data = json.loads(raw)
            frame_id = int(data["frame_id"])
            image = base64.b64decode(str(data["image"]), validate=True)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError, binascii.Error) as e:
            self.metrics.parse_errors += 1
            logger.error(f"Invalid frame message: {e}")
            return False

        if frame_id <= self.metrics.last_frame_id:
            logger.debug(f"Ignoring stale frame {frame_id}")
            return False

        self._latest_jpeg = image
        self.metrics.frames_received += 1
        self.metrics.last_frame_id = frame_id
        return True

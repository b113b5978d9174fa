"""
Session State Machine
=====================

Async driver of the photobooth session.

Drives the pure transition policy through time:
    countdown ticks → capture (with bounded retry) → flash/pause
    → ... three photos ... → compose (worker thread) → RESULT

All state changes happen on the event loop; only the compositor's pixel
work is moved to a worker thread. Every wait is interruptible by
cancel(), and results that arrive for a session that is no longer
current are discarded.

Usage:
    machine = SessionStateMachine(source, FrameCapturer(), Compositor(), catalog)
    machine.add_listener(lambda state: print(state.summary()))
    final = await machine.run_session()
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from photobooth.assets.catalog import AssetCatalog
from photobooth.camera.source import FrameSource
from photobooth.config import TimingConfig
from photobooth.errors import (
    AssetNotFound,
    CaptureAbandoned,
    CaptureNotReady,
    CompositionAssetLoadFailure,
    SessionBusy,
)
from photobooth.imaging.capture import FrameCapturer
from photobooth.imaging.compositor import Compositor
from photobooth.models.geometry import PHOTO_COUNT
from photobooth.models.session import CapturedPhoto, SessionPhase, SessionState
from photobooth.session.graph import SessionGraph
from photobooth.session.transitions import (
    SessionEvent,
    SessionTransitionPolicy,
    TransitionResult,
)


logger = logging.getLogger(__name__)


StateListener = Callable[[SessionState], None]


@dataclass
class SessionTimings:
    """
    Session timing in milliseconds.

    pause_ms includes the flash: the next countdown starts pause_ms after
    the capture, the flash clears flash_ms after it.
    """

    countdown_steps: int = 3
    countdown_interval_ms: int = 1000
    flash_ms: int = 150
    pause_ms: int = 600
    capture_retry_interval_ms: int = 100
    max_capture_attempts: int = 30

    @classmethod
    def from_config(cls, config: TimingConfig) -> "SessionTimings":
        return cls(
            countdown_steps=config.countdown_steps,
            countdown_interval_ms=config.countdown_interval_ms,
            flash_ms=config.flash_ms,
            pause_ms=config.pause_ms,
            capture_retry_interval_ms=config.capture_retry_interval_ms,
            max_capture_attempts=config.max_capture_attempts,
        )


class SessionStateMachine:
    """
    Runs photobooth sessions against a frame source.

    Attributes:
        frame_source: Live camera frames
        capturer: Frame → CapturedPhoto
        compositor: Photos + overlay → PNG strip
        catalog: Overlay catalog; its selection is frozen while a session runs
        timings: Session timing
    """

    def __init__(
        self,
        frame_source: FrameSource,
        capturer: FrameCapturer,
        compositor: Compositor,
        catalog: AssetCatalog,
        timings: Optional[SessionTimings] = None,
        photo_size: tuple = (500, 350),
    ) -> None:
        self.frame_source = frame_source
        self.capturer = capturer
        self.compositor = compositor
        self.catalog = catalog
        self.timings = timings or SessionTimings()
        self.photo_width, self.photo_height = photo_size

        self._graph = SessionGraph(
            SessionTransitionPolicy(self.timings.countdown_steps),
            catalog.selected_id,
        )
        self._cancel_event = asyncio.Event()
        self._listeners: List[StateListener] = []
        self._dispatch_seq: int = 0
        self._task: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Current snapshot; while idle it follows the catalog selection."""
        state = self._graph.state
        if not state.is_active and state.selected_asset_id != self.catalog.selected_id:
            return state.model_copy(update={"selected_asset_id": self.catalog.selected_id})
        return state

    @property
    def last_result(self) -> Optional[TransitionResult]:
        """Outcome of the most recent event."""
        return self._graph.last_result

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked with every new snapshot."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _dispatch(self, event: SessionEvent, **payload) -> SessionState:
        self._graph.dispatch(event, **payload)
        self._dispatch_seq += 1
        seq = self._dispatch_seq
        state = self.state
        for listener in list(self._listeners):
            # A listener dispatched re-entrantly; the rest already got the newer state
            if seq != self._dispatch_seq:
                break
            try:
                listener(state)
            except Exception:
                logger.exception(f"Session listener failed on {event.value}")
        return self.state

    def _is_current(self, session_id: int) -> bool:
        return self._graph.state.session_id == session_id

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def start(self) -> int:
        """
        Begin a session without driving it.

        Freezes the overlay selection and enters COUNTDOWN.

        Returns:
            session_id of the new session

        Raises:
            SessionBusy: If a session is already running
        """
        if self._graph.state.is_active:
            raise SessionBusy(f"A session is already running ({self._graph.state.phase.value})")

        asset_id = self.catalog.lock()
        self._cancel_event = asyncio.Event()
        self._dispatch(SessionEvent.START, asset_id=asset_id)
        return self._graph.state.session_id

    async def run_session(self) -> SessionState:
        """
        Start a session and drive it to RESULT or back to IDLE.

        Raises:
            SessionBusy: If a session is already running
        """
        session_id = self.start()
        return await self._drive(session_id, self._cancel_event)

    def begin(self) -> asyncio.Task:
        """Start a session and drive it in a background task."""
        session_id = self.start()
        self._task = asyncio.create_task(self._drive(session_id, self._cancel_event))
        return self._task

    def cancel(self) -> SessionState:
        """Abort the active session; captured photos are discarded."""
        if not self._graph.state.is_active:
            return self.state
        self._cancel_event.set()
        self.catalog.unlock()
        return self._dispatch(SessionEvent.CANCEL)

    def reset(self) -> SessionState:
        """Leave RESULT for IDLE (no-op when idle)."""
        return self._dispatch(SessionEvent.RESET)

    async def wait_idle(self) -> None:
        """Wait for the background session task, if any."""
        if self._task is not None:
            await self._task

    # -------------------------------------------------------------------------
    # Driver
    # -------------------------------------------------------------------------

    async def _drive(self, session_id: int, cancel_event: asyncio.Event) -> SessionState:
        try:
            for _ in range(PHOTO_COUNT):
                while self._graph.state.phase == SessionPhase.COUNTDOWN:
                    if not await self._sleep(session_id, cancel_event, self.timings.countdown_interval_ms):
                        return self.state
                    self._dispatch(SessionEvent.TICK)
                if not self._is_current(session_id):
                    return self.state

                photo = await self._capture_with_retry(session_id, cancel_event)
                if photo is None:
                    return self.state
                self._dispatch(SessionEvent.CAPTURE_OK, photo=photo)

                if not await self._sleep(session_id, cancel_event, self.timings.flash_ms):
                    return self.state
                self._dispatch(SessionEvent.FLASH_END)

                rest_ms = max(0, self.timings.pause_ms - self.timings.flash_ms)
                if not await self._sleep(session_id, cancel_event, rest_ms):
                    return self.state

            await self._compose(session_id)
            return self.state
        finally:
            if self._is_current(session_id) or not self._graph.state.is_active:
                # Selection stays frozen only while a session is capturing
                self.catalog.unlock()

    async def _sleep(self, session_id: int, cancel_event: asyncio.Event, ms: int) -> bool:
        """Wait ms milliseconds; returns False if the session was cancelled."""
        if ms <= 0:
            await asyncio.sleep(0)
        else:
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=ms / 1000.0)
            except asyncio.TimeoutError:
                pass
        return self._is_current(session_id) and not cancel_event.is_set()

    async def _capture_with_retry(
        self,
        session_id: int,
        cancel_event: asyncio.Event,
    ) -> Optional[CapturedPhoto]:
        """Capture one photo, retrying while the camera is not ready."""
        while True:
            try:
                photo = self.capturer.capture(
                    self.frame_source, self.photo_width, self.photo_height
                )
            except CaptureNotReady as e:
                self._dispatch(SessionEvent.CAPTURE_NOT_READY)
                attempts = self._graph.state.capture_attempts
                logger.debug(f"Capture attempt {attempts} not ready: {e}")

                if attempts >= self.timings.max_capture_attempts:
                    error = CaptureAbandoned(attempts)
                    logger.error(f"Session {session_id}: {error}")
                    self._dispatch(SessionEvent.CAPTURE_ABANDONED, error=str(error))
                    return None

                if not await self._sleep(session_id, cancel_event, self.timings.capture_retry_interval_ms):
                    return None
                continue

            if not self._is_current(session_id):
                logger.info(f"Discarding capture for stale session {session_id}")
                return None
            return photo

    async def _compose(self, session_id: int) -> None:
        state = self._graph.state
        try:
            overlay = self.catalog.get(state.selected_asset_id)
            final_image = await asyncio.to_thread(
                self.compositor.compose, list(state.captured_photos), overlay
            )
        except (CompositionAssetLoadFailure, AssetNotFound) as e:
            if self._is_current(session_id):
                logger.error(f"Session {session_id}: composition failed: {e}")
                self._dispatch(SessionEvent.COMPOSE_FAILED, error=str(e))
            return

        if not self._is_current(session_id):
            logger.info(f"Discarding composite for stale session {session_id}")
            return
        self._dispatch(SessionEvent.COMPOSE_OK, final_image=final_image)

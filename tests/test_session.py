"""
Session Tests
=============

Tests for the session transition policy and the async state machine.
"""

import asyncio
import threading
import time

import pytest

from photobooth.imaging.compositor import Compositor
from photobooth.models.session import SessionPhase, SessionState
from photobooth.session.transitions import SessionEvent, SessionTransitionPolicy


def _photo():
    from photobooth.models.session import CapturedPhoto

    return CapturedPhoto(image=b"\xff\xd8jpeg", width=500, height=350, captured_at=0.0)


class FlakySource:
    """Frame source that is not ready for the first few reads."""

    def __init__(self, frame, not_ready_reads):
        from photobooth.camera.source import StaticFrameSource

        self._inner = StaticFrameSource(frame)
        self.remaining = not_ready_reads
        self.reads = 0

    def get_live_frame(self):
        from photobooth.camera.source import LiveFrame

        self.reads += 1
        if self.remaining > 0:
            self.remaining -= 1
            return LiveFrame.empty()
        return self._inner.get_live_frame()


class BlockingCompositor(Compositor):
    """Compositor that holds the worker thread until released."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def compose(self, photos, overlay):
        self.entered.set()
        self.release.wait(timeout=5.0)
        return super().compose(photos, overlay)


class TestTransitionPolicy:
    """Tests for SessionTransitionPolicy."""

    def _idle(self):
        return SessionState(selected_asset_id="classic-white")

    def test_start_enters_countdown(self):
        policy = SessionTransitionPolicy()
        state, result = policy.apply(self._idle(), SessionEvent.START, asset_id="dark-mode")

        assert state.phase == SessionPhase.COUNTDOWN
        assert state.countdown_value == 3
        assert state.selected_asset_id == "dark-mode"
        assert state.session_id == 1
        assert result.transition_occurred

    def test_start_while_active_is_busy(self):
        from photobooth.errors import SessionBusy

        policy = SessionTransitionPolicy()
        state, _ = policy.apply(self._idle(), SessionEvent.START)
        with pytest.raises(SessionBusy):
            policy.apply(state, SessionEvent.START)

    def test_countdown_runs_down_to_capture(self):
        policy = SessionTransitionPolicy()
        state, _ = policy.apply(self._idle(), SessionEvent.START)

        values = []
        while state.phase == SessionPhase.COUNTDOWN:
            values.append(state.countdown_value)
            state, _ = policy.apply(state, SessionEvent.TICK)

        assert values == [3, 2, 1]
        assert state.phase == SessionPhase.CAPTURING
        assert state.countdown_value is None

    def test_not_ready_counts_attempt_without_photo(self):
        policy = SessionTransitionPolicy(countdown_steps=1)
        state, _ = policy.apply(self._idle(), SessionEvent.START)
        state, _ = policy.apply(state, SessionEvent.TICK)

        state, result = policy.apply(state, SessionEvent.CAPTURE_NOT_READY)

        assert state.phase == SessionPhase.CAPTURING
        assert state.photo_count == 0
        assert state.capture_attempts == 1
        assert not result.transition_occurred

    def test_third_capture_enters_composing(self):
        policy = SessionTransitionPolicy(countdown_steps=1)
        state, _ = policy.apply(self._idle(), SessionEvent.START)

        for expected in [SessionPhase.COUNTDOWN, SessionPhase.COUNTDOWN, SessionPhase.COMPOSING]:
            state, _ = policy.apply(state, SessionEvent.TICK)
            state, _ = policy.apply(state, SessionEvent.CAPTURE_OK, photo=_photo())
            assert state.phase == expected
            assert state.flash

        assert state.photo_count == 3

    def test_compose_ok_sets_final_image(self):
        policy = SessionTransitionPolicy(countdown_steps=1)
        state, _ = policy.apply(self._idle(), SessionEvent.START)
        for _ in range(3):
            state, _ = policy.apply(state, SessionEvent.TICK)
            state, _ = policy.apply(state, SessionEvent.CAPTURE_OK, photo=_photo())

        state, _ = policy.apply(state, SessionEvent.COMPOSE_OK, final_image=b"png")

        assert state.phase == SessionPhase.RESULT
        assert state.final_image == b"png"
        assert not state.flash

    def test_cancel_discards_photos(self):
        policy = SessionTransitionPolicy(countdown_steps=1)
        state, _ = policy.apply(self._idle(), SessionEvent.START)
        state, _ = policy.apply(state, SessionEvent.TICK)
        state, _ = policy.apply(state, SessionEvent.CAPTURE_OK, photo=_photo())
        session_id = state.session_id

        state, _ = policy.apply(state, SessionEvent.CANCEL)

        assert state.phase == SessionPhase.IDLE
        assert state.captured_photos == []
        assert state.session_id == session_id + 1

    def test_cancel_when_idle_is_a_noop(self):
        policy = SessionTransitionPolicy()
        idle = self._idle()
        state, result = policy.apply(idle, SessionEvent.CANCEL)
        assert state is idle
        assert not result.transition_occurred

    def test_tick_outside_countdown_is_invalid(self):
        from photobooth.errors import InvalidTransition

        with pytest.raises(InvalidTransition):
            SessionTransitionPolicy().apply(self._idle(), SessionEvent.TICK)

    def test_reset_only_from_result(self):
        from photobooth.errors import InvalidTransition

        policy = SessionTransitionPolicy()
        state, _ = policy.apply(self._idle(), SessionEvent.START)
        with pytest.raises(InvalidTransition):
            policy.apply(state, SessionEvent.RESET)


class TestSessionGraph:
    """Tests for the LangGraph wrapper."""

    def test_dispatch_updates_live_state(self):
        from photobooth.session.graph import SessionGraph

        graph = SessionGraph(SessionTransitionPolicy(), "classic-white")
        result = graph.dispatch(SessionEvent.START, asset_id="classic-white")

        assert result.new_phase == SessionPhase.COUNTDOWN
        assert graph.state.countdown_value == 3
        assert graph.last_result == result

    def test_rejected_event_leaves_state_unchanged(self):
        from photobooth.errors import InvalidTransition
        from photobooth.session.graph import SessionGraph

        graph = SessionGraph(SessionTransitionPolicy(), "classic-white")
        with pytest.raises(InvalidTransition):
            graph.dispatch(SessionEvent.COMPOSE_OK, final_image=b"png")
        assert graph.state.phase == SessionPhase.IDLE


class TestSessionStateMachine:
    """Tests for the async SessionStateMachine."""

    def test_full_session_reaches_result(self, machine):
        seen = []
        machine.add_listener(lambda state: seen.append((state.phase, state.countdown_value)))

        final = asyncio.run(machine.run_session())

        assert final.phase == SessionPhase.RESULT
        assert final.photo_count == 3
        assert final.final_image[:8] == b"\x89PNG\r\n\x1a\n"
        assert final.selected_asset_id == "classic-white"

        countdowns = [value for phase, value in seen if phase == SessionPhase.COUNTDOWN]
        assert countdowns[:3] == [3, 2, 1]
        assert [phase for phase, _ in seen].count(SessionPhase.CAPTURING) == 3
        assert not machine.catalog.is_locked

    def test_photos_grow_one_at_a_time(self, machine):
        counts = []
        machine.add_listener(lambda state: counts.append(state.photo_count))

        asyncio.run(machine.run_session())

        for before, after in zip(counts, counts[1:]):
            assert after - before in (0, 1)
        assert max(counts) == 3

    def test_cancel_during_second_countdown(self, machine):
        """Cancel at Countdown(2) with one photo taken."""
        def on_change(state):
            if (
                state.phase == SessionPhase.COUNTDOWN
                and state.countdown_value == 2
                and state.photo_count == 1
            ):
                machine.cancel()

        machine.add_listener(on_change)
        final = asyncio.run(machine.run_session())

        assert final.phase == SessionPhase.IDLE
        assert final.captured_photos == []
        assert final.final_image is None
        assert not machine.catalog.is_locked

    def test_later_listeners_skip_state_replaced_by_cancel(self, machine):
        """A listener that cancels re-entrantly; later listeners never see the stale tick."""
        def canceller(state):
            if (
                state.phase == SessionPhase.COUNTDOWN
                and state.countdown_value == 2
                and state.photo_count == 1
            ):
                machine.cancel()

        seen = []
        machine.add_listener(canceller)
        machine.add_listener(lambda state: seen.append(state))

        asyncio.run(machine.run_session())

        assert seen[-1].phase == SessionPhase.IDLE
        assert not any(
            state.phase == SessionPhase.COUNTDOWN
            and state.countdown_value == 2
            and state.photo_count == 1
            for state in seen
        )

    def test_cancel_while_composing_discards_composite(self, static_source, catalog, zero_timings):
        from photobooth.imaging.capture import FrameCapturer
        from photobooth.session.machine import SessionStateMachine

        compositor = BlockingCompositor()
        machine = SessionStateMachine(
            frame_source=static_source,
            capturer=FrameCapturer(),
            compositor=compositor,
            catalog=catalog,
            timings=zero_timings,
        )

        async def scenario():
            task = machine.begin()
            for _ in range(2000):
                if compositor.entered.is_set():
                    break
                await asyncio.sleep(0.001)
            phase = machine.state.phase
            machine.cancel()
            compositor.release.set()
            return phase, await asyncio.wait_for(task, timeout=5.0)

        phase_at_cancel, final = asyncio.run(scenario())

        assert phase_at_cancel == SessionPhase.COMPOSING
        assert final.phase == SessionPhase.IDLE
        assert final.final_image is None
        assert final.captured_photos == []
        assert machine.last_result.event == SessionEvent.CANCEL
        assert not machine.catalog.is_locked

    def test_flash_and_pause_ordering(self, machine):
        """Flash clears flash_ms after a capture; the next tick waits for the pause."""
        machine.timings.countdown_interval_ms = 30
        machine.timings.flash_ms = 40
        machine.timings.pause_ms = 120

        events = []

        def record(state):
            events.append((machine.last_result.event, state.flash, time.monotonic()))

        machine.add_listener(record)
        final = asyncio.run(machine.run_session())

        assert final.phase == SessionPhase.RESULT
        names = [event for event, _, _ in events]
        assert names[:7] == [
            SessionEvent.START,
            SessionEvent.TICK,
            SessionEvent.TICK,
            SessionEvent.TICK,
            SessionEvent.CAPTURE_OK,
            SessionEvent.FLASH_END,
            SessionEvent.TICK,
        ]

        _, flash_on, captured_at = events[4]
        _, flash_off, flash_end_at = events[5]
        _, _, next_tick_at = events[6]
        assert flash_on and not flash_off
        # Small tolerance for timer granularity
        assert flash_end_at - captured_at >= 0.035
        assert next_tick_at - captured_at >= 0.120 + 0.030 - 0.010

        last_capture_at = [t for event, _, t in events if event == SessionEvent.CAPTURE_OK][-1]
        composed_at = [t for event, _, t in events if event == SessionEvent.COMPOSE_OK][0]
        assert composed_at - last_capture_at >= 0.120 - 0.010

    def test_not_ready_camera_is_retried(self, machine, split_frame):
        machine.frame_source = FlakySource(split_frame, not_ready_reads=2)

        final = asyncio.run(machine.run_session())

        assert final.phase == SessionPhase.RESULT
        assert final.photo_count == 3
        assert machine.frame_source.reads == 5

    def test_camera_never_ready_abandons_session(self, machine):
        from photobooth.camera.source import StaticFrameSource

        machine.frame_source = StaticFrameSource()
        final = asyncio.run(machine.run_session())

        assert final.phase == SessionPhase.IDLE
        assert final.photo_count == 0
        assert "5 attempts" in final.error_detail
        assert machine.last_result.event == SessionEvent.CAPTURE_ABANDONED

    def test_compose_failure_returns_to_idle(self, machine):
        from photobooth.models.asset import OverlayAsset

        machine.catalog.add_user_asset(OverlayAsset(
            id="broken",
            display_name="Broken",
            image_uri="data:image/png;base64,AAAA",
            is_user_provided=True,
        ))
        machine.catalog.select("broken")

        final = asyncio.run(machine.run_session())

        assert final.phase == SessionPhase.IDLE
        assert final.final_image is None
        assert "broken" in final.error_detail
        assert machine.last_result.event == SessionEvent.COMPOSE_FAILED

    def test_selection_frozen_while_running(self, machine):
        from photobooth.errors import SelectionLocked, SessionBusy

        machine.start()

        assert machine.catalog.is_locked
        with pytest.raises(SelectionLocked):
            machine.catalog.select("dark-mode")
        with pytest.raises(SessionBusy):
            machine.start()

        machine.cancel()
        assert not machine.catalog.is_locked
        machine.catalog.select("dark-mode")
        assert machine.state.selected_asset_id == "dark-mode"

    def test_reset_after_result(self, machine):
        asyncio.run(machine.run_session())
        state = machine.reset()

        assert state.phase == SessionPhase.IDLE
        assert state.final_image is None

    def test_session_uses_overlay_selected_at_start(self, machine):
        machine.catalog.select("cute-pink")
        final = asyncio.run(machine.run_session())
        assert final.selected_asset_id == "cute-pink"

    def test_real_timing_is_interruptible(self, machine):
        """A cancel wakes a long countdown wait immediately."""
        machine.timings.countdown_interval_ms = 60_000

        async def scenario():
            task = machine.begin()
            await asyncio.sleep(0.01)
            machine.cancel()
            return await asyncio.wait_for(task, timeout=2.0)

        final = asyncio.run(scenario())
        assert final.phase == SessionPhase.IDLE


class TestSessionTimings:
    """Tests for SessionTimings."""

    def test_defaults(self):
        from photobooth.session.machine import SessionTimings

        timings = SessionTimings()
        assert timings.countdown_interval_ms == 1000
        assert timings.flash_ms == 150
        assert timings.pause_ms == 600

    def test_from_config(self):
        from photobooth.config import TimingConfig
        from photobooth.session.machine import SessionTimings

        timings = SessionTimings.from_config(TimingConfig(flash_ms=100, max_capture_attempts=7))
        assert timings.flash_ms == 100
        assert timings.max_capture_attempts == 7

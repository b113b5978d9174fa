"""
Session Transition Logic
========================

Deterministic transition policy of the photobooth session.

This module implements the rules for moving between session phases.
It is pure: no timing, no I/O, no camera. The async driver in
machine.py decides WHEN events happen; this policy decides WHAT they do.

Transition Rules:
    IDLE       --START-->              COUNTDOWN(n)
    COUNTDOWN  --TICK (c > 1)-->       COUNTDOWN(c - 1)
    COUNTDOWN  --TICK (c == 1)-->      CAPTURING
    CAPTURING  --CAPTURE_NOT_READY-->  CAPTURING (attempt counted, no photo)
    CAPTURING  --CAPTURE_OK (< 3)-->   COUNTDOWN(n)
    CAPTURING  --CAPTURE_OK (== 3)-->  COMPOSING
    CAPTURING  --CAPTURE_ABANDONED-->  IDLE (error recorded)
    COMPOSING  --COMPOSE_OK-->         RESULT (final image set)
    COMPOSING  --COMPOSE_FAILED-->     IDLE (error recorded)
    RESULT     --RESET-->              IDLE
    any        --CANCEL-->             IDLE (photos dropped)
    any        --FLASH_END-->          same phase, flash cleared

Every transition back to IDLE bumps session_id, so work started for an
earlier session can recognise itself as stale.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from photobooth.errors import InvalidTransition, SessionBusy
from photobooth.models.geometry import PHOTO_COUNT
from photobooth.models.session import CapturedPhoto, SessionPhase, SessionState


logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    """Events fed to the session policy."""

    START = "START"
    TICK = "TICK"
    CAPTURE_OK = "CAPTURE_OK"
    CAPTURE_NOT_READY = "CAPTURE_NOT_READY"
    CAPTURE_ABANDONED = "CAPTURE_ABANDONED"
    FLASH_END = "FLASH_END"
    COMPOSE_OK = "COMPOSE_OK"
    COMPOSE_FAILED = "COMPOSE_FAILED"
    RESET = "RESET"
    CANCEL = "CANCEL"


@dataclass
class TransitionResult:
    """Result of applying one event."""

    event: SessionEvent
    previous_phase: SessionPhase
    new_phase: SessionPhase
    transition_occurred: bool

    def __repr__(self) -> str:
        return (
            f"TransitionResult({self.event.value}: "
            f"{self.previous_phase.value} → {self.new_phase.value})"
        )


class SessionTransitionPolicy:
    """
    Pure session transition policy.

    Attributes:
        countdown_steps: Countdown start value before each capture
    """

    def __init__(self, countdown_steps: int = 3) -> None:
        if countdown_steps < 1:
            raise ValueError("countdown_steps must be >= 1")
        self.countdown_steps = countdown_steps

    def apply(
        self,
        state: SessionState,
        event: SessionEvent,
        photo: Optional[CapturedPhoto] = None,
        final_image: Optional[bytes] = None,
        error: Optional[str] = None,
        asset_id: Optional[str] = None,
    ) -> Tuple[SessionState, TransitionResult]:
        """
        Apply one event.

        Args:
            state: Current session state
            event: Event to apply
            photo: Captured photo (CAPTURE_OK)
            final_image: Composed strip (COMPOSE_OK)
            error: Failure detail (CAPTURE_ABANDONED, COMPOSE_FAILED)
            asset_id: Overlay frozen for the session (START)

        Returns:
            Tuple of (new_state, transition_result)

        Raises:
            SessionBusy: START while a session is active
            InvalidTransition: Event not valid in the current phase
        """
        phase = state.phase

        if event == SessionEvent.CANCEL:
            if phase == SessionPhase.IDLE:
                return self._unchanged(state, event)
            return self._to_idle(state, event, error=None)

        if event == SessionEvent.FLASH_END:
            return self._result(state, state.model_copy(update={"flash": False}), event)

        if event == SessionEvent.START:
            if phase != SessionPhase.IDLE:
                raise SessionBusy(f"A session is already running ({phase.value})")
            new_state = state.model_copy(update={
                "session_id": state.session_id + 1,
                "phase": SessionPhase.COUNTDOWN,
                "captured_photos": [],
                "countdown_value": self.countdown_steps,
                "selected_asset_id": asset_id or state.selected_asset_id,
                "final_image": None,
                "flash": False,
                "capture_attempts": 0,
                "error_detail": None,
            })
            return self._result(state, new_state, event)

        if event == SessionEvent.TICK:
            self._require(state, event, SessionPhase.COUNTDOWN)
            value = state.countdown_value or 1
            if value > 1:
                new_state = state.model_copy(update={"countdown_value": value - 1})
            else:
                new_state = state.model_copy(update={
                    "phase": SessionPhase.CAPTURING,
                    "countdown_value": None,
                    "capture_attempts": 0,
                })
            return self._result(state, new_state, event)

        if event == SessionEvent.CAPTURE_NOT_READY:
            self._require(state, event, SessionPhase.CAPTURING)
            new_state = state.model_copy(update={
                "capture_attempts": state.capture_attempts + 1,
            })
            return self._result(state, new_state, event)

        if event == SessionEvent.CAPTURE_OK:
            self._require(state, event, SessionPhase.CAPTURING)
            if photo is None:
                raise InvalidTransition("CAPTURE_OK requires a photo")
            photos = state.captured_photos + [photo]
            if len(photos) < PHOTO_COUNT:
                update = {
                    "phase": SessionPhase.COUNTDOWN,
                    "countdown_value": self.countdown_steps,
                }
            else:
                update = {
                    "phase": SessionPhase.COMPOSING,
                    "countdown_value": None,
                }
            update.update({
                "captured_photos": photos,
                "flash": True,
                "capture_attempts": 0,
            })
            return self._result(state, state.model_copy(update=update), event)

        if event == SessionEvent.CAPTURE_ABANDONED:
            self._require(state, event, SessionPhase.CAPTURING)
            return self._to_idle(state, event, error=error)

        if event == SessionEvent.COMPOSE_OK:
            self._require(state, event, SessionPhase.COMPOSING)
            if not final_image:
                raise InvalidTransition("COMPOSE_OK requires the final image")
            new_state = state.model_copy(update={
                "phase": SessionPhase.RESULT,
                "final_image": final_image,
                "flash": False,
            })
            return self._result(state, new_state, event)

        if event == SessionEvent.COMPOSE_FAILED:
            self._require(state, event, SessionPhase.COMPOSING)
            return self._to_idle(state, event, error=error)

        if event == SessionEvent.RESET:
            if phase == SessionPhase.IDLE:
                return self._unchanged(state, event)
            self._require(state, event, SessionPhase.RESULT)
            return self._to_idle(state, event, error=None)

        raise InvalidTransition(f"Unknown event: {event}")

    def _require(self, state: SessionState, event: SessionEvent, phase: SessionPhase) -> None:
        if state.phase != phase:
            raise InvalidTransition(
                f"{event.value} is not valid in {state.phase.value} "
                f"(expected {phase.value})"
            )

    def _to_idle(
        self,
        state: SessionState,
        event: SessionEvent,
        error: Optional[str],
    ) -> Tuple[SessionState, TransitionResult]:
        new_state = state.model_copy(update={
            "session_id": state.session_id + 1,
            "phase": SessionPhase.IDLE,
            "captured_photos": [],
            "countdown_value": None,
            "final_image": None,
            "flash": False,
            "capture_attempts": 0,
            "error_detail": error,
        })
        return self._result(state, new_state, event)

    def _unchanged(
        self,
        state: SessionState,
        event: SessionEvent,
    ) -> Tuple[SessionState, TransitionResult]:
        return state, TransitionResult(
            event=event,
            previous_phase=state.phase,
            new_phase=state.phase,
            transition_occurred=False,
        )

    def _result(
        self,
        previous: SessionState,
        new_state: SessionState,
        event: SessionEvent,
    ) -> Tuple[SessionState, TransitionResult]:
        occurred = new_state.phase != previous.phase
        if occurred:
            logger.info(
                f"Session {new_state.session_id}: {previous.phase.value} → "
                f"{new_state.phase.value} ({event.value}, "
                f"photos={new_state.photo_count})"
            )
        return new_state, TransitionResult(
            event=event,
            previous_phase=previous.phase,
            new_phase=new_state.phase,
            transition_occurred=occurred,
        )

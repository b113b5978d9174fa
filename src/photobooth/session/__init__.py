"""
Session Module
==============

The photobooth session state machine:
    - transitions: pure transition policy (no timing, no I/O)
    - graph: LangGraph wrapper holding the live SessionState
    - machine: async driver (countdown, capture retry, compose, cancel)
"""

from photobooth.session.transitions import (
    SessionEvent,
    SessionTransitionPolicy,
    TransitionResult,
)
from photobooth.session.graph import SessionGraph
from photobooth.session.machine import SessionStateMachine, SessionTimings

__all__ = [
    "SessionEvent",
    "SessionTransitionPolicy",
    "TransitionResult",
    "SessionGraph",
    "SessionStateMachine",
    "SessionTimings",
]

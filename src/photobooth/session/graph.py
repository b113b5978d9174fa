"""
Session Graph Definition
========================

LangGraph wrapper around the session transition policy.

LangGraph is used for CONTROL FLOW only: every event runs through a
single node that applies the policy and stores the resulting snapshot.

Graph Structure:
    START → apply_event → END

Design Philosophy:
    - Deterministic transitions
    - Explicit state tracking
    - One place where the live SessionState is replaced
"""

import logging
from typing import Any, Dict, Optional, TypedDict

from langgraph.graph import StateGraph, END

from photobooth.models.session import SessionState
from photobooth.session.transitions import (
    SessionEvent,
    SessionTransitionPolicy,
    TransitionResult,
)


logger = logging.getLogger(__name__)


class SessionGraphState(TypedDict):
    """
    State passed through the session graph.

    Attributes:
        session: Live session snapshot
        event: Event being applied
        payload: Event arguments (photo, final_image, error, asset_id)
        result: Outcome of the last event
    """
    session: SessionState
    event: Optional[SessionEvent]
    payload: Dict[str, Any]
    result: Optional[TransitionResult]


class SessionGraph:
    """
    LangGraph-based holder of the live session state.

    Example:
        graph = SessionGraph(SessionTransitionPolicy(), "classic-white")
        graph.dispatch(SessionEvent.START, asset_id="classic-white")
        graph.state.countdown_value  # 3
    """

    def __init__(self, policy: SessionTransitionPolicy, default_asset_id: str) -> None:
        self.policy = policy
        self._graph = self._build_graph()
        self._state: SessionGraphState = {
            "session": SessionState(selected_asset_id=default_asset_id),
            "event": None,
            "payload": {},
            "result": None,
        }
        logger.info("SessionGraph initialized")

    def _build_graph(self) -> Any:
        """Build the LangGraph workflow."""
        workflow = StateGraph(SessionGraphState)

        workflow.add_node("apply_event", self._apply_event_node)

        workflow.set_entry_point("apply_event")
        workflow.add_edge("apply_event", END)

        return workflow.compile()

    def _apply_event_node(self, state: SessionGraphState) -> Dict[str, Any]:
        """Apply the pending event to the session snapshot."""
        new_session, result = self.policy.apply(
            state["session"],
            state["event"],
            **state["payload"],
        )
        return {"session": new_session, "result": result}

    def dispatch(self, event: SessionEvent, **payload: Any) -> TransitionResult:
        """
        Apply one event to the live session.

        Raises:
            SessionBusy, InvalidTransition: Propagated from the policy;
                the live state is left unchanged
        """
        result = self._graph.invoke({
            "session": self._state["session"],
            "event": event,
            "payload": payload,
            "result": None,
        })
        self._state = result
        return result["result"]

    @property
    def state(self) -> SessionState:
        """Current session snapshot."""
        return self._state["session"]

    @property
    def last_result(self) -> Optional[TransitionResult]:
        return self._state.get("result")

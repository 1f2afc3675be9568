"""
Path Follower State Machine

Tracks the lifecycle of a navigation goal.
Only transitions listed in the table below are allowed; any other event is
ignored.

States:
  NO_GOAL        → Robot idle, waiting for a goal
  FOLLOW_COURSE  → Driving node to node along the waypoint graph
  REPLAN         → Path blocked, inserting an avoidance node
  AVOID_OBSTACLE → Driving to the avoidance node
  CLOSE_TO_GOAL  → Last node passed, driving straight to the goal
  ACTION         → Executing the post-arrival action
  REJECT_GOAL    → Goal refused, robot stopped (see rejection_reason)
"""

import time
from enum import Enum, auto
from typing import Optional, Callable, Dict, List
from dataclasses import dataclass


class PathFollowerState(Enum):
    """Path follower states."""
    NO_GOAL = auto()
    FOLLOW_COURSE = auto()
    REPLAN = auto()
    AVOID_OBSTACLE = auto()
    CLOSE_TO_GOAL = auto()
    ACTION = auto()
    REJECT_GOAL = auto()


class FollowerEvent(Enum):
    """Events that trigger state transitions."""
    GOAL_ACCEPTED = auto()
    GOAL_REJECTED = auto()
    NEAR_GOAL = auto()
    PATH_BLOCKED = auto()
    AVOIDANCE_PLANNED = auto()
    OBSTACLE_AVOIDED = auto()
    ACTION_STARTED = auto()
    CLEAR_GOAL = auto()


@dataclass
class StateTransition:
    """A state transition rule."""
    from_state: PathFollowerState
    event: FollowerEvent
    to_state: PathFollowerState


_S = PathFollowerState
_E = FollowerEvent


class StateMachine:
    """
    Finite state machine for the path follower.

    Valid transitions:
        NO_GOAL ──GOAL_ACCEPTED──► FOLLOW_COURSE
        FOLLOW_COURSE ──NEAR_GOAL──► CLOSE_TO_GOAL
        FOLLOW_COURSE ──PATH_BLOCKED──► REPLAN
        REPLAN ──AVOIDANCE_PLANNED──► AVOID_OBSTACLE
        AVOID_OBSTACLE ──OBSTACLE_AVOIDED──► FOLLOW_COURSE
        AVOID_OBSTACLE ──PATH_BLOCKED──► REPLAN
        CLOSE_TO_GOAL ──ACTION_STARTED──► ACTION
        NO_GOAL / FOLLOW_COURSE / CLOSE_TO_GOAL / ACTION ──GOAL_REJECTED──► REJECT_GOAL
        ANY (but NO_GOAL) ──CLEAR_GOAL──► NO_GOAL

    Usage:
        sm = StateMachine()

        sm.on_enter(PathFollowerState.REJECT_GOAL, stop_motors)

        sm.handle_event(FollowerEvent.GOAL_ACCEPTED)
        sm.handle_event(FollowerEvent.GOAL_REJECTED, reason="[Goal rejected] Bad plan")
        print(sm.state, sm.rejection_reason)
    """

    TRANSITIONS = [
        # From NO_GOAL
        StateTransition(_S.NO_GOAL, _E.GOAL_ACCEPTED, _S.FOLLOW_COURSE),
        StateTransition(_S.NO_GOAL, _E.GOAL_REJECTED, _S.REJECT_GOAL),

        # From FOLLOW_COURSE
        StateTransition(_S.FOLLOW_COURSE, _E.NEAR_GOAL, _S.CLOSE_TO_GOAL),
        StateTransition(_S.FOLLOW_COURSE, _E.PATH_BLOCKED, _S.REPLAN),
        StateTransition(_S.FOLLOW_COURSE, _E.GOAL_REJECTED, _S.REJECT_GOAL),

        # Obstacle avoidance
        StateTransition(_S.REPLAN, _E.AVOIDANCE_PLANNED, _S.AVOID_OBSTACLE),
        StateTransition(_S.AVOID_OBSTACLE, _E.OBSTACLE_AVOIDED, _S.FOLLOW_COURSE),
        StateTransition(_S.AVOID_OBSTACLE, _E.PATH_BLOCKED, _S.REPLAN),

        # Arrival
        StateTransition(_S.CLOSE_TO_GOAL, _E.ACTION_STARTED, _S.ACTION),
        StateTransition(_S.CLOSE_TO_GOAL, _E.GOAL_REJECTED, _S.REJECT_GOAL),
        StateTransition(_S.ACTION, _E.GOAL_REJECTED, _S.REJECT_GOAL),
    ] + [
        # CLEAR_GOAL (from any state)
        StateTransition(s, _E.CLEAR_GOAL, _S.NO_GOAL)
        for s in PathFollowerState if s is not _S.NO_GOAL
    ]

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._state = PathFollowerState.NO_GOAL
        self._previous_state: Optional[PathFollowerState] = None
        self._state_start_time = clock()
        self._rejection_reason: Optional[str] = None

        # Callbacks
        self._on_enter: Dict[PathFollowerState, List[Callable]] = {s: [] for s in PathFollowerState}
        self._on_exit: Dict[PathFollowerState, List[Callable]] = {s: [] for s in PathFollowerState}
        self._on_transition: List[
            Callable[[PathFollowerState, FollowerEvent, PathFollowerState], None]] = []

        # Build transition lookup
        self._transition_map: Dict = {}
        for t in self.TRANSITIONS:
            key = (t.from_state, t.event)
            self._transition_map[key] = t

    @property
    def state(self) -> PathFollowerState:
        """Current state."""
        return self._state

    @property
    def previous_state(self) -> Optional[PathFollowerState]:
        """Previous state."""
        return self._previous_state

    @property
    def rejection_reason(self) -> Optional[str]:
        """Why the last goal was rejected, None if it was not."""
        return self._rejection_reason

    @property
    def time_in_state(self) -> float:
        """Time spent in current state (seconds)."""
        return self._clock() - self._state_start_time

    @property
    def is_moving(self) -> bool:
        """True if the follower is driving toward a goal."""
        return self._state in (_S.FOLLOW_COURSE, _S.AVOID_OBSTACLE, _S.CLOSE_TO_GOAL, _S.ACTION)

    @property
    def has_goal(self) -> bool:
        return self._state not in (_S.NO_GOAL, _S.REJECT_GOAL)

    def handle_event(self, event: FollowerEvent, reason: Optional[str] = None) -> bool:
        """
        Handle a state event.

        Args:
            event: The event to handle
            reason: Rejection reason, only used by GOAL_REJECTED

        Returns:
            True if transition occurred, False if event was ignored
        """
        key = (self._state, event)
        transition = self._transition_map.get(key)

        if transition is None:
            return False

        old_state = self._state
        new_state = transition.to_state

        for callback in self._on_exit[old_state]:
            callback()

        self._previous_state = old_state
        self._state = new_state
        self._state_start_time = self._clock()
        if event == _E.GOAL_REJECTED:
            self._rejection_reason = reason
        elif event == _E.GOAL_ACCEPTED:
            self._rejection_reason = None

        for callback in self._on_transition:
            callback(old_state, event, new_state)

        for callback in self._on_enter[new_state]:
            callback()

        return True

    def on_enter(self, state: PathFollowerState, callback: Callable):
        """Register callback for entering a state."""
        self._on_enter[state].append(callback)

    def on_exit(self, state: PathFollowerState, callback: Callable):
        """Register callback for exiting a state."""
        self._on_exit[state].append(callback)

    def on_transition(self, callback: Callable[[PathFollowerState, FollowerEvent,
                                                PathFollowerState], None]):
        """Register callback for any transition."""
        self._on_transition.append(callback)

    def get_status(self) -> dict:
        """Get state machine status."""
        return {
            "state": self._state.name,
            "previous": self._previous_state.name if self._previous_state else "N/A",
            "time_in_state": f"{self.time_in_state:.1f}s",
            "is_moving": self.is_moving,
            "rejection_reason": self._rejection_reason or "",
        }

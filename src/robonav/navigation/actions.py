"""
Goal Actions

What the robot does once it reaches a goal.

- NoAction: the goal completes on arrival
- AlignRotation: the goal completes on arrival, once the robot faces the
  goal's yaw
- SpiralAction: drive an expanding spiral around the goal for a while
  (e.g. vacuuming), then complete
- WaitAction: stand still for a while, then complete
- InvalidAction: placeholder for an unknown or malformed action; it never
  starts, so the goal is rejected on arrival
"""

import math
import logging
from enum import Enum, auto
from typing import Any, Dict, Optional, Tuple

from ..core.robot_model import VelocityCommand

logger = logging.getLogger(__name__)


class GoalPointState(Enum):
    """Lifecycle of a goal."""
    NEW = auto()
    RUNNING = auto()
    COMPLETED = auto()
    REJECTED = auto()


class GoalAction:
    """Base action: nothing to do, the goal completes on arrival."""

    name = "none"
    # True if the goal completes as soon as the robot reaches it
    immediate_terminate = True
    # True if the final approach must match the goal's yaw
    align_rotation = False

    def start(self, now: float) -> bool:
        """Start the action. Returns False if it cannot run."""
        return True

    def update(self, now: float, blocked: bool) -> Tuple[GoalPointState, VelocityCommand]:
        """Advance the action by one tick."""
        return GoalPointState.COMPLETED, VelocityCommand()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NoAction(GoalAction):
    pass


class AlignRotation(GoalAction):
    name = "align_rotation"
    align_rotation = True


class TimedAction(GoalAction):
    """Action running for a fixed duration (seconds)."""

    immediate_terminate = False

    def __init__(self, duration: float):
        self.duration = duration
        self._start_time: Optional[float] = None

    def start(self, now: float) -> bool:
        if self.duration <= 0:
            logger.warning(f"[Action] {self.name} has invalid duration {self.duration}")
            return False
        self._start_time = now
        logger.info(f"[Action] Starting {self.name} for {self.duration:.1f}s")
        return True

    def elapsed(self, now: float) -> float:
        if self._start_time is None:
            return 0.0
        return now - self._start_time

    def update(self, now: float, blocked: bool) -> Tuple[GoalPointState, VelocityCommand]:
        if self._start_time is None:
            return GoalPointState.REJECTED, VelocityCommand()
        if self.elapsed(now) > self.duration:
            logger.info(f"[Action] {self.name} completed")
            return GoalPointState.COMPLETED, VelocityCommand()
        return GoalPointState.RUNNING, self._command(now, blocked)

    def _command(self, now: float, blocked: bool) -> VelocityCommand:
        return VelocityCommand()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(duration={self.duration})"


class SpiralAction(TimedAction):
    """Drive a spiral whose radius grows linearly up to max_radius over the duration."""

    name = "spiral"

    def __init__(self, duration: float = 30.0, speed: float = 0.1, max_radius: float = 0.3):
        super().__init__(duration)
        self.speed = speed              # m/s
        self.max_radius = max_radius    # meters

    def start(self, now: float) -> bool:
        if self.speed <= 0 or self.max_radius <= 0:
            logger.warning(f"[Action] Invalid spiral speed={self.speed} radius={self.max_radius}")
            return False
        return super().start(now)

    def _command(self, now: float, blocked: bool) -> VelocityCommand:
        radius = self.max_radius * self.elapsed(now) / self.duration
        # At the very start the radius is 0: turn as fast as allowed, the follower clamps it
        angular = self.speed / radius if radius > 0 else math.inf
        # Keep turning but do not push into an obstacle
        linear = 0.0 if blocked else self.speed
        return VelocityCommand(linear, angular)


class WaitAction(TimedAction):
    """Stand still at the goal."""

    name = "wait"


class InvalidAction(GoalAction):
    """Unknown action, never starts."""

    immediate_terminate = False

    def __init__(self, name: str):
        self.name = name

    def start(self, now: float) -> bool:
        logger.warning(f"[Action] Unknown action: {self.name}")
        return False

    def update(self, now: float, blocked: bool) -> Tuple[GoalPointState, VelocityCommand]:
        return GoalPointState.REJECTED, VelocityCommand()

    def __repr__(self) -> str:
        return f"InvalidAction({self.name!r})"


def make_action(name: Optional[str], params: Optional[Dict[str, Any]] = None) -> GoalAction:
    """
    Build an action from its configuration name and parameters.

    Unknown names, or parameters the action does not accept, give an
    InvalidAction so the goal is rejected on arrival rather than raising here.
    """
    params = params or {}
    key = (name or "none").lower()
    try:
        if key == "none":
            return NoAction()
        if key == "align_rotation":
            return AlignRotation()
        if key in ("spiral", "vacuum_spiral"):
            return SpiralAction(**params)
        if key == "wait":
            return WaitAction(**params)
    except TypeError as e:
        logger.warning(f"[Action] Bad parameters for {key}: {e}")
        return InvalidAction(key)
    return InvalidAction(key)

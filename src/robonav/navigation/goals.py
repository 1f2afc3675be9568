"""
Goals

A GoalPoint is what the path follower works on: a target transform, the
action to run on arrival, and its lifecycle state.

Goal requests are what callers submit. Each request kind knows how to
resolve itself into a target transform against the current world:

- TransformGoal: an explicit transform
- PointOfInterestGoal: a named point of interest of the world
- RandomGoal: a random waypoint of the world
- PatrolGoal: cycles through a list of points of interest, forever

Requests are served by priority (higher first), then by submission order.

Usage:
    queue = GoalQueue()
    queue.push(PointOfInterestGoal("kitchen", priority=1))
    queue.push(TransformGoal(Transform.from_xy_theta(2.0, 0.0)))

    request = queue.pop()                           # the kitchen goal
    goal = request.to_goal_point(world, rng)
"""

import heapq
import itertools
import random
import threading
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

from ..core.transform import Transform
from .actions import GoalAction, GoalPointState, NoAction
from .world import World


@dataclass
class GoalPoint:
    """A goal being executed by the path follower."""
    transform: Optional[Transform]
    action: GoalAction = field(default_factory=NoAction)
    state: GoalPointState = GoalPointState.NEW
    rejection_reason: Optional[str] = None


@dataclass
class GoalRequest:
    """Base request. Subclasses implement resolve()."""
    action: GoalAction = field(default_factory=NoAction, kw_only=True)
    priority: int = field(default=0, kw_only=True)
    sequence: int = field(default=-1, kw_only=True)

    # Recurring requests are queued again once they finish
    recurring = False

    def resolve(self, world: Optional[World], rng: random.Random) -> Optional[Transform]:
        raise NotImplementedError

    def advance(self):
        """Called when the goal resolved from this request has finished."""

    def to_goal_point(self, world: Optional[World], rng: random.Random) -> GoalPoint:
        """Resolve the target. An unresolvable target gives a goal with no transform."""
        return GoalPoint(self.resolve(world, rng), self.action)


@dataclass
class TransformGoal(GoalRequest):
    transform: Optional[Transform] = None

    def resolve(self, world: Optional[World], rng: random.Random) -> Optional[Transform]:
        return self.transform


@dataclass
class PointOfInterestGoal(GoalRequest):
    poi_id: str = ""

    def resolve(self, world: Optional[World], rng: random.Random) -> Optional[Transform]:
        if world is None:
            return None
        return world.get_point_of_interest(self.poi_id)


@dataclass
class RandomGoal(GoalRequest):
    """A uniformly random waypoint of the world."""

    def resolve(self, world: Optional[World], rng: random.Random) -> Optional[Transform]:
        if world is None:
            return None
        waypoints = world.waypoints()
        if not waypoints:
            return None
        return rng.choice(waypoints)


@dataclass
class PatrolGoal(GoalRequest):
    """
    Visit poi_ids in order, wrapping around.

    The target only moves on once the current stop has finished, so a
    preempted patrol resumes the stop it was driving to.
    """
    poi_ids: Sequence[str] = ()
    index: int = 0

    recurring = True

    def resolve(self, world: Optional[World], rng: random.Random) -> Optional[Transform]:
        if world is None or not self.poi_ids:
            return None
        return world.get_point_of_interest(self.poi_ids[self.index % len(self.poi_ids)])

    def advance(self):
        if self.poi_ids:
            self.index = (self.index + 1) % len(self.poi_ids)


class GoalQueue:
    """Thread-safe priority queue of goal requests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._heap: List[Tuple[int, int, int, GoalRequest]] = []
        self._sequence = itertools.count()
        self._tiebreak = itertools.count()

    def push(self, request: GoalRequest) -> GoalRequest:
        """Queue a request, assigning its sequence number if it has none."""
        with self._lock:
            if request.sequence < 0:
                request.sequence = next(self._sequence)
            # Caller-supplied sequences may repeat, requests are never compared
            heapq.heappush(self._heap, (-request.priority, request.sequence,
                                        next(self._tiebreak), request))
        return request

    def pop(self) -> Optional[GoalRequest]:
        """Highest priority, oldest request, None if empty."""
        with self._lock:
            if not self._heap:
                return None
            return heapq.heappop(self._heap)[3]

    def peek(self) -> Optional[GoalRequest]:
        with self._lock:
            return self._heap[0][3] if self._heap else None

    def requeue(self, request: GoalRequest) -> GoalRequest:
        """Queue a request again, behind every request of the same priority."""
        request.sequence = -1
        return self.push(request)

    def clear(self):
        with self._lock:
            self._heap.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

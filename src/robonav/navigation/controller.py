"""
Navigation Controller

Periodic control loop around the PathFollower.

Other threads publish the robot pose, the obstacle flag and goal requests;
the control thread reads them once per tick, serves queued goal requests
when the follower is idle, and hands the resulting velocity command to a
callback.

A queued request with a strictly higher priority than the running one
preempts it; the preempted request goes back to the queue and resumes later.
Recurring requests (patrols) are queued again once they finish.

Usage:
    controller = NavigationController(follower, world, on_velocity=base.set_velocity)
    controller.start(period=0.1)

    # From any thread:
    controller.update_pose(robot_transform)
    controller.set_obstacle_ahead(bumper_pressed)
    controller.submit_goal(PointOfInterestGoal("kitchen"))

    controller.stop()
"""

import time
import random
import logging
import threading
from typing import Any, Callable, Dict, Optional

from ..core.robot_model import VelocityCommand
from ..core.transform import Transform
from .actions import GoalPointState
from .goals import GoalPoint, GoalQueue, GoalRequest
from .path_follower import PathFollower
from .world import World

logger = logging.getLogger(__name__)


class NavigationController:
    """Owns the follower and runs it at a fixed rate."""

    def __init__(
        self,
        follower: Optional[PathFollower] = None,
        world: Optional[World] = None,
        rng: Optional[random.Random] = None,
        on_velocity: Optional[Callable[[VelocityCommand], None]] = None,
        period: float = 0.1
    ):
        if period <= 0:
            raise ValueError(f"Control period must be positive, got {period}")
        self.follower = follower or PathFollower()
        self.queue = GoalQueue()
        self.period = period
        self._rng = rng or random.Random()
        self._on_velocity = on_velocity

        # Inputs, written from any thread
        self._lock = threading.Lock()
        self._pose: Optional[Transform] = None
        self._obstacle_ahead = False
        self._pending_world: Optional[World] = world
        self._cancel_requested = False

        # Control thread only
        self._world: Optional[World] = None
        self._active_request: Optional[GoalRequest] = None
        self._active_goal: Optional[GoalPoint] = None
        self._last_command = VelocityCommand()

        self._running = False
        self._thread: Optional[threading.Thread] = None

    # ----------------------------------------------------------------- inputs

    def update_pose(self, pose: Transform):
        with self._lock:
            self._pose = pose

    def set_obstacle_ahead(self, blocked: bool):
        with self._lock:
            self._obstacle_ahead = blocked

    def set_world(self, world: World):
        """Switch world on the next tick. The running goal is dropped."""
        with self._lock:
            self._pending_world = world

    def submit_goal(self, request: GoalRequest) -> GoalRequest:
        """Queue a goal request."""
        self.queue.push(request)
        logger.info(f"[NavController] Queued {type(request).__name__} "
                    f"(priority {request.priority}, {len(self.queue)} waiting)")
        return request

    def cancel(self, clear_queue: bool = False):
        """Drop the running goal, and optionally everything queued."""
        if clear_queue:
            self.queue.clear()
        with self._lock:
            self._cancel_requested = True

    # ------------------------------------------------------------------ state

    @property
    def active_goal(self) -> Optional[GoalPoint]:
        return self._active_goal

    @property
    def is_idle(self) -> bool:
        """True if no goal is being executed."""
        goal = self._active_goal
        return goal is None or goal.state in (GoalPointState.COMPLETED, GoalPointState.REJECTED)

    def get_status(self) -> Dict[str, Any]:
        goal = self._active_goal
        return {
            'state': self.follower.state.name,
            'goal_state': goal.state.name if goal else None,
            'rejection_reason': goal.rejection_reason if goal else None,
            'queued': len(self.queue),
            'linear': self._last_command.linear,
            'angular': self._last_command.angular,
        }

    # ------------------------------------------------------------------- tick

    def tick(self) -> Optional[VelocityCommand]:
        """
        Run one control step.

        Returns:
            The command sent, None while no pose has been received
        """
        with self._lock:
            pose = self._pose
            obstacle_ahead = self._obstacle_ahead
            world = self._pending_world
            self._pending_world = None
            cancel = self._cancel_requested
            self._cancel_requested = False

        if world is not None:
            self._load_world(world)
        if cancel:
            self._cancel_active()

        if pose is None:
            return None

        self._serve_queue()

        command = self.follower.update(pose, obstacle_ahead)
        self._last_command = command
        if self._on_velocity is not None:
            self._on_velocity(command)
        return command

    def _load_world(self, world: World):
        logger.info(f"[NavController] Loading world '{world.name}'")
        self._world = world
        self.follower.on_new_world(world)
        # The follower dropped its goal, forget it without requeueing
        if self._active_goal is not None and not self.is_idle:
            self._active_goal.state = GoalPointState.REJECTED
            self._active_goal.rejection_reason = "world changed"
        self._active_request = None
        self._active_goal = None

    def _cancel_active(self):
        if self._active_goal is None:
            return
        logger.info("[NavController] Cancelling current goal")
        self.follower.cancel_goal()
        if not self.is_idle:
            self._active_goal.state = GoalPointState.REJECTED
            self._active_goal.rejection_reason = "cancelled"
        self._active_request = None
        self._active_goal = None

    def _serve_queue(self):
        if not self.is_idle:
            head = self.queue.peek()
            if head is None or self._active_request is None:
                return
            if head.priority <= self._active_request.priority:
                return
            logger.info(f"[NavController] Preempted by priority {head.priority} request")
            if self._active_goal is not None:
                self._active_goal.state = GoalPointState.REJECTED
                self._active_goal.rejection_reason = "preempted"
            self.queue.requeue(self._active_request)
        elif self._active_request is not None:
            # Only a finished goal moves the request on to its next target
            self._active_request.advance()
            if self._active_request.recurring:
                self.queue.requeue(self._active_request)

        request = self.queue.pop()
        if request is None:
            self._active_request = None
            return

        goal = request.to_goal_point(self._world, self._rng)
        logger.info(f"[NavController] Serving {type(request).__name__} -> {goal.transform}")
        self._active_request = request
        self._active_goal = goal
        self.follower.request_goal(goal)

    # -------------------------------------------------------- control thread

    def start(self, period: Optional[float] = None):
        """Run tick() in a background thread."""
        if self._running:
            return
        if period is not None:
            if period <= 0:
                raise ValueError(f"Control period must be positive, got {period}")
            self.period = period
        self._running = True
        self._thread = threading.Thread(target=self._control_loop, daemon=True)
        self._thread.start()
        logger.info(f"[NavController] Started at {1.0 / self.period:.1f} Hz")

    def stop(self):
        """Stop the control thread and send a final stop command."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._on_velocity is not None:
            self._on_velocity(VelocityCommand())
        logger.info("[NavController] Stopped")

    def _control_loop(self):
        while self._running:
            loop_start = time.time()
            self.tick()
            elapsed = time.time() - loop_start
            if elapsed < self.period:
                time.sleep(self.period - elapsed)

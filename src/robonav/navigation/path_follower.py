"""
Path Follower

Drives the robot to long-lived goals over the waypoint graph of the current
world, replanning around obstacles on the way.

How it works:
1. A goal arrives; the waypoint graph is rebuilt and the robot snaps to its
   closest node
2. Dijkstra over the graph gives the node sequence to the node closest to
   the goal
3. Every tick drives toward the head of that sequence, popping nodes as they
   are reached
4. If the way forward is blocked, the blocked node is removed, an avoidance
   node is added to the robot's left, and the robot drives there before
   planning again
5. After the last node the robot drives straight to the goal and runs the
   goal's action, if any

Everything runs on the thread calling update(). Other threads hand goals
over with request_goal() and read the outcome through goal_state.

Usage:
    follower = PathFollower(PathFollowerConfig(), RobotModel())
    follower.on_new_world(world)
    follower.request_goal(GoalPoint(Transform.from_xy_theta(3.0, 1.0)))

    # In control loop (10 Hz):
    cmd = follower.update(robot_transform, obstacle_ahead=bumper_pressed)
    base.set_velocity(cmd.linear, cmd.angular)
"""

import math
import time
import logging
import threading
from typing import Callable, List, Optional
from dataclasses import dataclass

from ..core.geometry import wrap_angle
from ..core.robot_model import RobotModel, VelocityCommand
from ..core.state_machine import FollowerEvent, PathFollowerState, StateMachine
from ..core.transform import Transform
from .actions import GoalAction, GoalPointState, NoAction
from .goals import GoalPoint
from .path_node import (
    PathNode, build_graph, closest_node, connect_node, generate_plan, prune_transforms
)
from .world import World

logger = logging.getLogger(__name__)

GOAL_REJECTED_NO_PATH = "[Goal rejected] Bad plan"
GOAL_REJECTED_NULL = "[Goal rejected] Null goal"
GOAL_REJECTED_FAR = "[Goal rejected] Goal is too far"
GOAL_REJECTED_TIMEOUT = "[Goal rejected] Timeout reached"
GOAL_REJECTED_INVALID_ACTION = "[Goal rejected] Invalid action"


@dataclass
class PathFollowerConfig:
    """Path follower configuration."""
    # Waypoint graph
    pruning_distance: float = 0.05              # meters, recorded nodes closer than this are dropped
    connection_distance: float = 0.25           # meters, recorded nodes closer than this are linked
    custom_connection_distance: float = 0.5     # meters, same for hand-placed nodes
    max_distance_from_node: float = 5.0         # meters, farther than this we re-snap to the graph

    # Goals
    goal_timeout: float = 30.0                  # seconds without reaching a node, 0 = never
    goal_max_distance: Optional[float] = None   # meters from goal to graph, None = unchecked

    # Obstacle avoidance
    avoid_obstacles: bool = True
    avoidance_angle: float = math.pi / 2        # radians, where the avoidance node is placed

    # Driving
    arrival_distance: float = 0.25              # meters
    target_angle_tolerance: float = math.radians(5)
    max_linear_deviation: float = math.radians(30)   # above this heading error, rotate in place
    avoid_linear_deviation: float = math.radians(5)  # same while avoiding an obstacle
    avoid_rotation_speed: float = math.radians(30)   # rad/s, rotation while avoiding
    min_speed: float = 0.1                      # m/s
    max_delta_speed: float = 0.025              # m/s per tick

    def __post_init__(self):
        for name in ('pruning_distance', 'connection_distance', 'custom_connection_distance',
                     'max_distance_from_node', 'goal_timeout', 'min_speed', 'max_delta_speed'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ('arrival_distance', 'target_angle_tolerance', 'max_linear_deviation',
                     'avoid_linear_deviation'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.goal_max_distance is not None and self.goal_max_distance < 0:
            raise ValueError(f"goal_max_distance must be non-negative, got {self.goal_max_distance}")


class PathFollower:
    """
    Waypoint graph follower with obstacle avoidance.

    See core.state_machine for the states and transitions.
    """

    def __init__(
        self,
        config: Optional[PathFollowerConfig] = None,
        model: Optional[RobotModel] = None,
        clock: Callable[[], float] = time.time
    ):
        self.config = config or PathFollowerConfig()
        self.model = model or RobotModel()
        self._clock = clock
        self._sm = StateMachine(clock)

        # Graph
        self._world: Optional[World] = None
        self._original_transforms: List[Transform] = []
        self._connection_distance = self.config.connection_distance
        self._nodes: List[PathNode] = []
        self._current_node: Optional[PathNode] = None
        self._path: Optional[List[PathNode]] = None
        self._avoid_node: Optional[PathNode] = None

        # Goal being executed (tick thread only)
        self._goal: Optional[Transform] = None
        self._goal_action: GoalAction = NoAction()
        self._goal_point: Optional[GoalPoint] = None
        self._timer_start = clock()

        # Robot
        self._location: Optional[Transform] = None
        self._obstacle_ahead = False
        self._robot_is_blocked = False
        self._command = VelocityCommand()

        # Goal hand-off between threads
        self._goal_lock = threading.Lock()
        self._write_goal: Optional[GoalPoint] = None
        self._cancel_requested = False
        self._read_goal_state: Optional[GoalPointState] = None

    # ------------------------------------------------------------- properties

    @property
    def state(self) -> PathFollowerState:
        return self._sm.state

    @property
    def state_machine(self) -> StateMachine:
        return self._sm

    @property
    def rejection_reason(self) -> Optional[str]:
        return self._sm.rejection_reason

    @property
    def goal(self) -> Optional[Transform]:
        return self._goal

    @property
    def nodes(self) -> List[PathNode]:
        return list(self._nodes)

    @property
    def current_node(self) -> Optional[PathNode]:
        return self._current_node

    @property
    def avoidance_node(self) -> Optional[PathNode]:
        return self._avoid_node

    @property
    def command(self) -> VelocityCommand:
        return self._command

    @property
    def goal_state(self) -> Optional[GoalPointState]:
        """State of the last requested goal, safe to read from any thread."""
        with self._goal_lock:
            return self._read_goal_state

    def get_path(self) -> List[Transform]:
        """Remaining node transforms followed by the goal."""
        output = [n.transform for n in self._path] if self._path else []
        if self._goal is not None:
            output.append(self._goal)
        return output

    # --------------------------------------------------------- goal hand-off

    def request_goal(self, goal_point: GoalPoint):
        """Hand a goal to the tick thread. Replaces any goal not yet picked up."""
        with self._goal_lock:
            self._write_goal = goal_point
            self._cancel_requested = False
            self._read_goal_state = GoalPointState.NEW

    def cancel_goal(self):
        """Ask the tick thread to drop the current goal."""
        with self._goal_lock:
            self._write_goal = None
            self._cancel_requested = True

    # ------------------------------------------------------------------ world

    def on_new_world(self, world: World):
        """Load the waypoints of a new world and drop the current goal."""
        self._world = world
        if world.has_custom_transforms:
            self._connection_distance = self.config.custom_connection_distance
            self._original_transforms = list(world.custom_transforms)
        else:
            self._connection_distance = self.config.connection_distance
            self._original_transforms = prune_transforms(
                world.smoothed_transforms, self.config.pruning_distance)
        logger.info(f"[PathFollower] World '{world.name}': "
                    f"{len(self._original_transforms)} nodes, "
                    f"connection distance {self._connection_distance:.2f}m")
        self._current_node = None
        self.clear_goal()

    # ------------------------------------------------------------------ goals

    def clear_goal(self):
        """Drop the goal and stop. Tick thread only."""
        self._goal = None
        self._path = None
        self._avoid_node = None
        self._goal_action = NoAction()
        self._sm.handle_event(FollowerEvent.CLEAR_GOAL)

    def set_goal(self, tf: Optional[Transform], action: Optional[GoalAction] = None):
        """
        Start following a new goal. Tick thread only.

        The waypoint graph is rebuilt from the world's transforms. A None
        transform, or a goal too far from the graph, is rejected right away.
        """
        self._nodes = build_graph(self._original_transforms, self._connection_distance)
        logger.debug(f"[PathFollower] Computed distances between {len(self._nodes)} nodes")
        self._current_node = None
        self.clear_goal()

        if tf is None:
            self._reject(GOAL_REJECTED_NULL)
            return

        if self.config.goal_max_distance is not None:
            target = closest_node(self._nodes, tf)
            if target is None or target.transform.planar_distance_to(tf) > self.config.goal_max_distance:
                self._reject(GOAL_REJECTED_FAR)
                return

        self._timer_start = self._clock()
        self._goal = tf
        self._goal_action = action or NoAction()
        self._sm.handle_event(FollowerEvent.GOAL_ACCEPTED)
        logger.info(f"[PathFollower] New goal {tf} with {self._goal_action}")

    def _reject(self, reason: str):
        logger.info(f"[PathFollower] {reason}")
        self._sm.handle_event(FollowerEvent.GOAL_REJECTED, reason)

    def _on_update_set_goal(self):
        """Pick up a goal handed over by another thread and report the outcome."""
        with self._goal_lock:
            new_goal = self._write_goal
            cancel = self._cancel_requested
            self._write_goal = None
            self._cancel_requested = False

        if cancel:
            logger.info("[PathFollower] Goal cancelled")
            if self._goal_point is not None and self._goal_point.state == GoalPointState.RUNNING:
                self._goal_point.state = GoalPointState.REJECTED
                self._goal_point.rejection_reason = "cancelled"
            self._goal_point = None
            self.clear_goal()
        elif new_goal is not None:
            old = self._goal_point
            if old is not None and old is not new_goal and old.state == GoalPointState.RUNNING:
                old.state = GoalPointState.REJECTED
                old.rejection_reason = "replaced"
            self._goal_point = new_goal
            new_goal.state = GoalPointState.RUNNING
            self.set_goal(new_goal.transform, new_goal.action)

        self._sync_goal_state()

    def _sync_goal_state(self):
        goal_point = self._goal_point
        if goal_point is None:
            return
        if goal_point.state == GoalPointState.RUNNING:
            if self._sm.state == PathFollowerState.NO_GOAL:
                goal_point.state = GoalPointState.COMPLETED
            elif self._sm.state == PathFollowerState.REJECT_GOAL:
                goal_point.state = GoalPointState.REJECTED
                goal_point.rejection_reason = self._sm.rejection_reason
        with self._goal_lock:
            if self._write_goal is None:
                self._read_goal_state = goal_point.state

    # ------------------------------------------------------------------- tick

    def update(self, location: Transform, obstacle_ahead: bool = False) -> VelocityCommand:
        """
        Run one control tick.

        Args:
            location: Current robot transform
            obstacle_ahead: True if moving forward would hit something

        Returns:
            Velocity command, clamped to the robot model limits
        """
        self._location = location
        self._obstacle_ahead = obstacle_ahead
        self._on_update()
        self._sync_goal_state()
        return self._command.clamped(self.model)

    def _on_update(self):
        # The robot may have been carried away from the current node
        if self._current_node is not None:
            max_sq = self.config.max_distance_from_node ** 2
            if self._current_node.transform.planar_distance_squared(self._location) > max_sq:
                logger.warning("[PathFollower] Robot is too far away from the current node")
                self._current_node = None

        self._on_update_set_goal()

        if self._current_node is None:
            self._current_node = closest_node(self._nodes, self._location)

        state = self._sm.state
        if state == PathFollowerState.FOLLOW_COURSE:
            self._plan_course()
        if self._sm.state == PathFollowerState.FOLLOW_COURSE:
            self._follow_course()
        elif self._sm.state == PathFollowerState.REPLAN:
            self._replan()
        elif self._sm.state == PathFollowerState.AVOID_OBSTACLE:
            self._avoid_obstacle()
        elif self._sm.state == PathFollowerState.CLOSE_TO_GOAL:
            self._close_to_goal()
        elif self._sm.state == PathFollowerState.ACTION:
            self._run_action()
        else:
            # Either no goal or a rejected one: stay still
            self._set_motion(0.0, 0.0)

    def _plan_course(self):
        # A path not starting at the current node is stale
        if self._path is not None:
            if not self._path or self._path[0] is not self._current_node:
                self._path = None
        if self._path is not None:
            return

        target = closest_node(self._nodes, self._goal)
        if target is not None and target is self._current_node:
            logger.info("[PathFollower] Closest node to goal is the current one, going to goal")
            self._sm.handle_event(FollowerEvent.NEAR_GOAL)
        elif self._current_node is None:
            logger.info("[PathFollower] Unable to generate path, robot is too far from path")
            self._reject(GOAL_REJECTED_NO_PATH)
        elif target is None:
            logger.info("[PathFollower] Unable to generate path, goal is too far from path")
            self._reject(GOAL_REJECTED_NO_PATH)
        else:
            path = generate_plan(self._current_node, target)
            if not path:
                logger.info("[PathFollower] Unable to generate path, no connection found")
                self._reject(GOAL_REJECTED_NO_PATH)
            else:
                self._path = path
                self._timer_start = self._clock()
                logger.info(f"[PathFollower] New path with {len(path)} nodes")

    def _follow_course(self):
        while self._drive_to_location(self._path[0].transform, False, False):
            self._path.pop(0)
            self._timer_start = self._clock()
            if not self._path:
                logger.info("[PathFollower] Last node reached, going directly to goal")
                self._path = None
                self._sm.handle_event(FollowerEvent.NEAR_GOAL)
                return
            self._current_node = self._path[0]

        if self._robot_is_blocked:
            if self.config.avoid_obstacles:
                self._sm.handle_event(FollowerEvent.PATH_BLOCKED)
                return
            self._set_motion(0.0, self._command.angular)

        timeout = self.config.goal_timeout
        if timeout > 0 and self._clock() - self._timer_start > timeout:
            self._reject(GOAL_REJECTED_TIMEOUT)

    def _replan(self):
        logger.info("[PathFollower] Path is blocked, adding an avoidance node")
        self._set_motion(0.0, 0.0)

        distance = self.config.connection_distance
        angle = self.config.avoidance_angle
        offset = Transform.from_xy_theta(distance * math.cos(angle), distance * math.sin(angle))
        self._avoid_node = PathNode(self._location * offset)

        force_nodes = set()
        if self._path:
            blocked = self._path[0]
            logger.debug(f"[PathFollower] Removing blocked node {blocked}")
            for neighbor in blocked.close_nodes:
                neighbor.remove_close_distance(blocked)
                force_nodes.add(neighbor)
            blocked.clear_close_distances()
            if blocked in self._nodes:
                self._nodes.remove(blocked)
            if self._current_node is blocked:
                self._current_node = None

        connect_node(self._avoid_node, self._nodes, self._connection_distance, force_nodes)
        self._nodes.append(self._avoid_node)
        self._path = [self._avoid_node]
        self._sm.handle_event(FollowerEvent.AVOIDANCE_PLANNED)

    def _avoid_obstacle(self):
        self._robot_is_blocked = False
        if self._drive_to_location(self._avoid_node.transform, False, True):
            logger.info("[PathFollower] Avoidance node reached, planning again")
            self._path = None
            self._current_node = None
            self._avoid_node = None
            self._timer_start = self._clock()
            self._sm.handle_event(FollowerEvent.OBSTACLE_AVOIDED)
        elif self._robot_is_blocked:
            self._avoid_node = None
            self._sm.handle_event(FollowerEvent.PATH_BLOCKED)

    def _close_to_goal(self):
        if self._drive_to_location(self._goal, self._goal_action.align_rotation, False):
            if self._goal_action.immediate_terminate:
                logger.info("[PathFollower] Goal reached")
                self.clear_goal()
            elif self._goal_action.start(self._clock()):
                self._sm.handle_event(FollowerEvent.ACTION_STARTED)
            else:
                logger.warning(f"[PathFollower] Rejecting goal for bad action {self._goal_action}")
                self._reject(GOAL_REJECTED_INVALID_ACTION)
            self._set_motion(0.0, 0.0)
        if self._obstacle_ahead:
            self._set_motion(0.0, self._command.angular)

    def _run_action(self):
        state, command = self._goal_action.update(self._clock(), self._obstacle_ahead)
        self._command = command
        if state == GoalPointState.COMPLETED:
            logger.info("[PathFollower] Goal action completed")
            self.clear_goal()
            self._set_motion(0.0, 0.0)
        elif state == GoalPointState.REJECTED:
            self._reject(GOAL_REJECTED_INVALID_ACTION)
            self._set_motion(0.0, 0.0)

    # ---------------------------------------------------------------- driving

    def _set_motion(self, linear: float, angular: float):
        """Command the base. Forward motion into an obstacle flags the robot as blocked."""
        if self._obstacle_ahead and linear > 0:
            self._robot_is_blocked = True
            linear = 0.0
        self._command = VelocityCommand(linear, angular)

    def _drive_to_location(self, target: Transform, match_rotation: bool,
                           avoid_action: bool) -> bool:
        """
        Steer toward target for one tick.

        Args:
            target: Where to go
            match_rotation: Also turn to the target's yaw once there
            avoid_action: Use the tighter heading tolerance of avoidance maneuvers

        Returns:
            True once the target is reached
        """
        cfg = self.config
        location = self._location
        dx = target.x - location.x
        dy = target.y - location.y
        dist = math.sqrt(dx * dx + dy * dy)
        delta_angle = wrap_angle(math.atan2(dy, dx) - location.rotation_z)

        max_deviation = cfg.avoid_linear_deviation if avoid_action else cfg.max_linear_deviation

        if dist < cfg.arrival_distance:
            if match_rotation:
                delta_yaw = wrap_angle(target.rotation_z - location.rotation_z)
                if abs(delta_yaw) < cfg.target_angle_tolerance:
                    return True
                self._set_motion(0.0, delta_yaw)
                return False
            return True

        if abs(delta_angle) < max_deviation:
            self._robot_is_blocked = False
            # Exponential approach, full speed from about 0.25m away
            speed = 1 - math.exp(-5 * dist)
            speed = min(speed, self.model.max_linear_speed)
            speed *= 1 - abs(delta_angle / max_deviation)
            speed = max(speed, cfg.min_speed)

            # Limit speed jumps between ticks
            last = self._command.linear
            if abs(last - speed) > cfg.max_delta_speed:
                if speed >= last:
                    # Restart from standstill at the smallest step
                    speed = cfg.max_delta_speed if last == 0 else last + cfg.max_delta_speed
                else:
                    speed = last - cfg.max_delta_speed
            self._set_motion(speed, delta_angle)
        else:
            if avoid_action:
                delta_angle = math.copysign(cfg.avoid_rotation_speed, delta_angle)
            self._set_motion(0.0, delta_angle)
        return False

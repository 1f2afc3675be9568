"""
Headless navigation simulation.

Loads a world, sends one goal, and integrates a unicycle model under the
navigation controller until the goal completes, is rejected, or the time
limit is reached. Simulated time drives every timeout, so runs are fast and
reproducible.

Usage:
    robonav-sim --world office.yaml --poi kitchen
    robonav-sim --world office.yaml --goal 3.0 1.0 --action wait --action-duration 5
    robonav-sim --world office.yaml --random --seed 42 --obstacle 1.5 0.0 0.2
"""

import sys
import math
import random
import logging
import argparse
from typing import List, Optional, Sequence, Tuple

from .config import NavigationConfig, load_config, load_world
from .core.geometry import wrap_angle
from .core.robot_model import VelocityCommand
from .core.transform import Transform
from .costmap.manager import CostMapManager
from .costmap.costmap import Source
from .costmap.sources import CostMapGeometry, GeometryCostMap, PriorTrajectoryCostMap
from .navigation.actions import GoalPointState, make_action
from .navigation.controller import NavigationController
from .navigation.global_planner import GlobalPlanner
from .navigation.goals import GoalRequest, PointOfInterestGoal, RandomGoal, TransformGoal
from .navigation.path_follower import PathFollower
from .navigation.world import World

logger = logging.getLogger(__name__)

# Obstacles are seen by the simulated bumper within this cone ahead
BUMPER_HALF_ANGLE = math.radians(30)
BUMPER_RANGE = 0.1          # meters beyond the robot footprint


class SimClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float):
        self.now += dt


class SimulatedRobot:
    """Unicycle robot with a bumper that sees circular obstacles."""

    def __init__(self, x: float, y: float, theta: float, radius: float,
                 obstacles: Sequence[Tuple[float, float, float]] = ()):
        self.x = x
        self.y = y
        self.theta = theta
        self.radius = radius
        self.obstacles = list(obstacles)
        self.distance_travelled = 0.0

    @property
    def transform(self) -> Transform:
        return Transform.from_xy_theta(self.x, self.y, theta=self.theta)

    def obstacle_ahead(self) -> bool:
        for ox, oy, oradius in self.obstacles:
            dx, dy = ox - self.x, oy - self.y
            gap = math.hypot(dx, dy) - oradius - self.radius
            if gap > BUMPER_RANGE:
                continue
            if abs(wrap_angle(math.atan2(dy, dx) - self.theta)) <= BUMPER_HALF_ANGLE:
                return True
        return False

    def step(self, cmd: VelocityCommand, dt: float):
        linear = cmd.linear
        if linear > 0 and self.obstacle_ahead():
            linear = 0.0
        self.x += linear * math.cos(self.theta) * dt
        self.y += linear * math.sin(self.theta) * dt
        self.theta = wrap_angle(self.theta + cmd.angular * dt)
        self.distance_travelled += abs(linear) * dt


def build_goal_request(args: argparse.Namespace) -> GoalRequest:
    action = make_action(args.action, _action_params(args))
    if args.poi is not None:
        return PointOfInterestGoal(args.poi, action=action)
    if args.random:
        return RandomGoal(action=action)
    theta = args.goal[2] if len(args.goal) > 2 else 0.0
    return TransformGoal(Transform.from_xy_theta(args.goal[0], args.goal[1], theta=theta),
                         action=action)


def _action_params(args: argparse.Namespace) -> Optional[dict]:
    if args.action_duration is None:
        return None
    return {'duration': args.action_duration}


def check_grid_route(world: World, config: NavigationConfig, start: Transform,
                     goal: Optional[Transform],
                     obstacles: Sequence[Tuple[float, float, float]] = ()) -> Optional[float]:
    """Length of the grid route from start to goal near the recorded trajectory, None if none."""
    if goal is None or not world.smoothed_transforms:
        return None
    manager = CostMapManager(config.costmap, robot_radius=config.robot.radius)
    manager.add_source(PriorTrajectoryCostMap(world.smoothed_transforms, config.costmap.resolution))
    if obstacles:
        bumper = GeometryCostMap(Source.BUMPER, config.costmap.resolution, config.robot.radius)
        bumper.update(0.0, [
            CostMapGeometry.from_points(
                [(x - r, y - r), (x + r, y - r), (x + r, y + r), (x - r, y + r)], math.inf)
            for x, y, r in obstacles
        ])
        manager.add_source(bumper)
    manager.recompute()

    planner = GlobalPlanner(manager, config.planner)
    path = planner.plan(start, goal)
    if path is None:
        return None
    return planner.path_length(path)


def run_simulation(world: World, config: NavigationConfig, request: GoalRequest,
                   start: Transform, obstacles: Sequence[Tuple[float, float, float]] = (),
                   dt: float = 0.1, max_time: float = 120.0,
                   seed: Optional[int] = None) -> Tuple[GoalPointState, SimulatedRobot, float]:
    """
    Run one goal to completion.

    Returns:
        (final goal state, robot, simulated seconds elapsed)
    """
    clock = SimClock()
    follower = PathFollower(config.follower, config.robot, clock=clock)
    robot = SimulatedRobot(start.x, start.y, start.rotation_z, config.robot.radius, obstacles)
    controller = NavigationController(follower, world, rng=random.Random(seed), period=dt)

    controller.update_pose(robot.transform)
    controller.submit_goal(request)

    state = GoalPointState.NEW
    while clock.now < max_time:
        controller.update_pose(robot.transform)
        controller.set_obstacle_ahead(robot.obstacle_ahead())
        cmd = controller.tick()
        goal = controller.active_goal
        if goal is not None:
            state = goal.state
            if controller.is_idle:
                break
        robot.step(cmd or VelocityCommand(), dt)
        clock.advance(dt)

    return state, robot, clock.now


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='robonav headless navigation simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  robonav-sim --world office.yaml --poi kitchen
  robonav-sim --world office.yaml --goal 3.0 1.0 --config robot.yaml
  robonav-sim --world office.yaml --random --seed 1 --action spiral --action-duration 10
"""
    )
    parser.add_argument('--world', '-w', required=True, help='World YAML file')
    parser.add_argument('--config', '-c', help='Navigation YAML file (default: built-in values)')

    goal_group = parser.add_mutually_exclusive_group(required=True)
    goal_group.add_argument('--goal', '-g', type=float, nargs='+', metavar='V',
                            help='Goal as X Y [THETA] (meters, radians)')
    goal_group.add_argument('--poi', '-p', help='Goal point of interest id')
    goal_group.add_argument('--random', action='store_true', help='Random waypoint goal')

    sim_group = parser.add_argument_group('Simulation')
    sim_group.add_argument('--start', type=float, nargs=3, metavar=('X', 'Y', 'THETA'),
                           help='Start pose (default: first waypoint)')
    sim_group.add_argument('--action', default='none',
                           help='Action on arrival: none, align_rotation, spiral, wait')
    sim_group.add_argument('--action-duration', type=float, help='Action duration (seconds)')
    sim_group.add_argument('--obstacle', type=float, nargs=3, action='append', default=[],
                           metavar=('X', 'Y', 'RADIUS'), help='Circular obstacle, repeatable')
    sim_group.add_argument('--dt', type=float, default=0.1, help='Time step (default: 0.1s)')
    sim_group.add_argument('--max-time', type=float, default=120.0,
                           help='Simulated time limit (default: 120s)')
    sim_group.add_argument('--seed', type=int, help='Random seed')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.goal is not None and len(args.goal) not in (2, 3):
        parser.error('--goal takes X Y [THETA]')
    if args.dt <= 0:
        parser.error('--dt must be positive')

    try:
        config = load_config(args.config)
        world = load_world(args.world)
    except (OSError, ValueError) as e:
        logger.error(f"[Sim] {e}")
        return 2

    if args.start is not None:
        start = Transform.from_xy_theta(args.start[0], args.start[1], theta=args.start[2])
    elif world.waypoints():
        start = world.waypoints()[0]
    else:
        logger.error("[Sim] World has no waypoints and no --start was given")
        return 2

    request = build_goal_request(args)
    if isinstance(request, TransformGoal):
        route = check_grid_route(world, config, start, request.transform, args.obstacle)
        if route is None:
            logger.warning("[Sim] No grid route along the recorded trajectory")
        else:
            logger.info(f"[Sim] Grid route length {route:.2f}m")

    state, robot, elapsed = run_simulation(
        world, config, request, start, args.obstacle, args.dt, args.max_time, args.seed)

    print(f"Goal {state.name} after {elapsed:.1f}s, "
          f"travelled {robot.distance_travelled:.2f}m, "
          f"final pose ({robot.x:.2f}, {robot.y:.2f}, {math.degrees(robot.theta):.0f} deg)")
    return 0 if state == GoalPointState.COMPLETED else 1


if __name__ == '__main__':
    sys.exit(main())

"""
Navigation module.

Components:
- PathFinder: A* / Dijkstra over a cost map
- GlobalPlanner: grid route feasibility on the published cost map
- PathNode graph: waypoint graph built from a world's trajectory
- PathFollower: goal execution with obstacle avoidance
- PurePursuit: curvature steering along a grid path
- Goals and actions: goal requests, priority queue, arrival actions
- NavigationController: periodic control loop
"""

from .path import Path, is_path_through_obstacle
from .path_finder import (
    PathFinder, AStarPathFinder, DijkstraPathFinder, PlannerType, make_path_finder
)
from .global_planner import GlobalPlanner, PlannerConfig
from .world import World
from .path_node import PathNode, build_graph, generate_plan
from .actions import (
    GoalAction, GoalPointState, NoAction, AlignRotation, SpiralAction, WaitAction,
    InvalidAction, make_action
)
from .goals import (
    GoalPoint, GoalRequest, TransformGoal, PointOfInterestGoal, RandomGoal, PatrolGoal,
    GoalQueue
)
from .path_follower import PathFollower, PathFollowerConfig
from .pure_pursuit import PurePursuit, PurePursuitVelocityGenerator, PursuitConfig
from .controller import NavigationController

"""
Pure Pursuit Controller

Converts a discrete path into a continuous steering curvature.

How it works:
1. Project the robot onto the segment between the next two path points
2. Move "lookahead" meters along that segment from the projection
3. Compute the curvature of the arc joining the robot to that point

Sign convention: with the robot facing +X, a lookahead point to its left
(+Y) gives a negative curvature.

References:
- Pure Pursuit: "Implementation of the Pure Pursuit Path Tracking Algorithm"
  (R. Craig Coulter, CMU, 1992)
"""

import logging
from typing import Optional, Sequence, Tuple
from dataclasses import dataclass

from ..core.geometry import (
    closest_point_on_line, compute_curvature, distance, point_at_distance
)
from ..core.robot_model import RobotModel, VelocityCommand
from ..core.transform import Transform
from .path import Path

logger = logging.getLogger(__name__)


@dataclass
class PursuitConfig:
    """Pure pursuit configuration."""
    lookahead_distance: float = 0.5     # meters
    max_node_distance: float = 1.0      # meters, final approach slows down within this distance

    def __post_init__(self):
        if self.lookahead_distance <= 0:
            raise ValueError(f"lookahead_distance must be positive, got {self.lookahead_distance}")
        if self.max_node_distance <= 0:
            raise ValueError(f"max_node_distance must be positive, got {self.max_node_distance}")


class PurePursuit:
    """
    Pure pursuit geometry.

    Usage:
        pursuit = PurePursuit(lookahead_distance=0.5)

        if pursuit.should_move(robot, next_point):
            # advance to the following path point
        kappa = pursuit.compute_curvature_to_reach(robot, next_point, following_point)
    """

    def __init__(self, lookahead_distance: float = 0.5):
        if lookahead_distance <= 0:
            raise ValueError(f"Lookahead distance must be positive, got {lookahead_distance}")
        self.lookahead_distance = lookahead_distance

    def should_move(self, pose: Transform, node: Sequence[float]) -> bool:
        """True when node is within lookahead distance, i.e. it is time to aim further."""
        return distance(pose.xy, node) <= self.lookahead_distance

    def is_close_to_node(self, pose: Transform, node: Sequence[float]) -> bool:
        return self.should_move(pose, node)

    def compute_curvature_to_reach(self, pose: Transform, node: Sequence[float],
                                   next_node: Sequence[float]) -> float:
        """
        Curvature to steer toward the segment node -> next_node.

        Args:
            pose: Robot transform
            node: (x, y) path point the robot is heading to
            next_node: (x, y) path point after it, giving the segment direction

        Returns:
            Curvature (1/m), always finite
        """
        projection = closest_point_on_line(node, next_node, pose.xy)
        lookahead_point = point_at_distance(node, next_node, projection, self.lookahead_distance)
        return compute_curvature(pose.xy, pose.rotation_z, lookahead_point)


class PurePursuitVelocityGenerator:
    """
    Velocity commands for following a grid path with pure pursuit.

    Usage:
        generator = PurePursuitVelocityGenerator(robot_model)

        result = generator.compute_velocities(robot, grid_path)
        if result is not None:
            cmd, grid_path = result
    """

    def __init__(self, model: Optional[RobotModel] = None, config: Optional[PursuitConfig] = None):
        self.model = model or RobotModel()
        self.config = config or PursuitConfig()
        self._pursuit = PurePursuit(self.config.lookahead_distance)

    def compute_velocities(self, pose: Transform,
                           path: Optional[Path]) -> Optional[Tuple[VelocityCommand, Path]]:
        """
        Compute the command to follow path from pose.

        Args:
            pose: Robot transform
            path: Path of CostMapPose with a resolution, at least 2 cells long

        Returns:
            (command, remaining path), None if the path is too short. The head
            cell is dropped once it is within lookahead and more than two cells remain.
        """
        if path is None or len(path) < 2:
            return None

        node = path[0].to_world_coordinates().xy
        next_node = path[1].to_world_coordinates().xy
        path_size = len(path)

        # Only advance if the head is not part of the last segment
        ask_next_node = self._pursuit.is_close_to_node(pose, node) and path_size > 2
        kappa = self._pursuit.compute_curvature_to_reach(pose, node, next_node)
        if ask_next_node:
            path = path[1:]

        logger.debug(f"[PurePursuit] Aiming at {node} -> {next_node}, "
                     f"advance: {ask_next_node}, kappa: {kappa:.3f}")

        command = self._limit(kappa, distance(pose.xy, node), path_size <= 2)
        return command, path

    def _limit(self, angular: float, dist_to_node: float, final_segment: bool) -> VelocityCommand:
        max_angular = self.model.max_angular_speed
        max_linear = self.model.max_linear_speed
        angular = min(max(-max_angular, angular), max_angular)

        if final_segment:
            # Slow down in proportion to the remaining distance
            ratio = min(dist_to_node, self.config.max_node_distance) / self.config.max_node_distance
            linear = max_linear * ratio
        else:
            # Slow down in proportion to how hard we turn
            linear = max_linear * (1 - abs(angular) / max_angular)
        return VelocityCommand(linear, angular)

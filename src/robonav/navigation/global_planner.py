"""
Global Planner

Answers "is there a feasible route on the current obstacle field?" by
running a grid path finder on the latest published cost map.

World transforms are discretized into cost map cells, planned on, and the
resulting cells can be converted back to world transforms at cell centers.
"""

import math
import logging
from typing import List, Optional, Union
from dataclasses import dataclass

from ..core.transform import Transform
from ..costmap.costmap import CostMap
from ..costmap.manager import CostMapManager
from ..costmap.pose import CostMapPose
from .path import Path, is_path_through_obstacle
from .path_finder import PlannerType, make_path_finder

logger = logging.getLogger(__name__)


@dataclass
class PlannerConfig:
    """Global planner configuration."""
    planner_type: PlannerType = PlannerType.ASTAR

    def __post_init__(self):
        if isinstance(self.planner_type, str):
            try:
                self.planner_type = PlannerType[self.planner_type.upper()]
            except KeyError:
                raise ValueError(f"Unknown planner type: {self.planner_type}") from None


class GlobalPlanner:
    """
    Plans on the published cost map.

    Usage:
        planner = GlobalPlanner(costmap_manager)

        cells = planner.plan(robot_transform, goal_transform)
        if cells is not None:
            waypoints = planner.to_world(cells)
    """

    def __init__(self, costmaps: Union[CostMapManager, CostMap, None] = None,
                 config: Optional[PlannerConfig] = None):
        """
        Args:
            costmaps: Manager whose published map is used, or a fixed map
            config: Planner configuration
        """
        self.config = config or PlannerConfig()
        self._costmaps = costmaps
        self._finder = make_path_finder(self.config.planner_type)

    def set_costmap(self, costmaps: Union[CostMapManager, CostMap, None]):
        self._costmaps = costmaps

    def current_costmap(self) -> Optional[CostMap]:
        if isinstance(self._costmaps, CostMapManager):
            return self._costmaps.get_published()
        return self._costmaps

    def plan(self, start: Transform, goal: Transform) -> Optional[Path]:
        """
        Plan a grid path between two world transforms.

        Returns:
            Path of CostMapPose, None if there is no map or no route
        """
        costmap = self.current_costmap()
        if costmap is None:
            logger.warning("[Planner] No cost map published yet")
            return None

        self._finder.set_cost_map(costmap)
        origin = costmap.discretize(start.x, start.y)
        target = costmap.discretize(goal.x, goal.y)
        path = self._finder.compute_plan(origin, target)

        if path is None:
            logger.info(f"[Planner] No route from {origin} to {target}")
        else:
            logger.debug(f"[Planner] Route with {len(path)} cells, "
                         f"{self.path_length(path):.2f}m")
        return path

    def has_route(self, start: Transform, goal: Transform) -> bool:
        return self.plan(start, goal) is not None

    def is_blocked(self, path: Optional[Path]) -> bool:
        """True if a previously planned path now crosses an obstacle."""
        return is_path_through_obstacle(path, self.current_costmap())

    def to_world(self, path: Path) -> List[Transform]:
        """Cell centers of a grid path, each facing the next cell."""
        points = [cell.to_world_coordinates(cell.resolution or self._resolution())
                  for cell in path]
        out = []
        for i, point in enumerate(points):
            nxt = points[i + 1] if i + 1 < len(points) else None
            if nxt is None:
                out.append(point)
            else:
                out.append(Transform.facing(point.xy, nxt.xy))
        return out

    def path_length(self, path: Path) -> float:
        """Length of a grid path in meters."""
        cells: List[CostMapPose] = list(path)
        if len(cells) < 2:
            return 0.0
        resolution = cells[0].resolution or self._resolution()
        length = 0.0
        for a, b in zip(cells, cells[1:]):
            length += math.sqrt(a.squared_distance_to(b)) * resolution
        return length

    def _resolution(self) -> float:
        costmap = self.current_costmap()
        if costmap is None:
            raise ValueError("No cost map available")
        return costmap.resolution

"""
Grid Path Finders - A* and Dijkstra

Find the cheapest 8-connected route between two cells of a CostMap.

Costs are integers so that results are exact and reproducible:
- moving to a neighbor costs (neighbor cost + 1) * 10 along an axis, and
  (neighbor cost + 1) * 14 diagonally (14/10 ~ sqrt(2))
- obstacle cells are never entered; diagonal moves between two obstacle
  corners are allowed
- A* uses the octile distance in the same units as heuristic, which is
  admissible, so both finders return optimal paths
- ties in the open set are broken by insertion order

References:
- Red Blob Games A* tutorial: https://www.redblobgames.com/pathfinding/a-star/
"""

import heapq
import logging
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from ..costmap.costmap import CostMap
from ..costmap.pose import CostMapPose
from .path import Path

logger = logging.getLogger(__name__)


class PlannerType(Enum):
    """Available grid search algorithms."""
    ASTAR = auto()
    DIJKSTRA = auto()


class PathFinder:
    """
    Base grid path finder.

    Usage:
        finder = AStarPathFinder()
        finder.set_cost_map(costmap)

        path = finder.compute_plan(CostMapPose(0, 0), CostMapPose(5, 3))
        # path = Path([(0, 0), (1, 1), ..., (5, 3)]) or None if unreachable
    """

    AXIS_COST = 10
    DIAGONAL_COST = 14

    # (dx, dy, step multiplier)
    DIRECTIONS_8 = [
        (1, 0, AXIS_COST), (-1, 0, AXIS_COST), (0, 1, AXIS_COST), (0, -1, AXIS_COST),
        (1, 1, DIAGONAL_COST), (-1, 1, DIAGONAL_COST), (1, -1, DIAGONAL_COST), (-1, -1, DIAGONAL_COST)
    ]

    def __init__(self):
        self._map: Optional[CostMap] = None

    def set_cost_map(self, costmap: Optional[CostMap]):
        """Set the map to plan on. Mutable maps are snapshotted first."""
        self._map = costmap.snapshot() if costmap is not None else None

    def _heuristic(self, x: int, y: int, gx: int, gy: int) -> int:
        return 0

    def compute_plan(self, origin: CostMapPose, target: CostMapPose) -> Optional[Path]:
        """
        Plan from origin to target (global cell coordinates).

        Returns:
            Path from origin to target inclusive, None if there is no map, either
            end is out of bounds or on an obstacle, or no route exists.
        """
        costmap = self._map
        if costmap is None or costmap.is_empty():
            logger.warning("[PathFinder] No cost map to plan on")
            return None

        grid = costmap.grid_view()
        height, width = grid.shape
        lower_x, lower_y = costmap.lower_x, costmap.lower_y

        # Work in grid-local coordinates
        sx, sy = origin.x - lower_x, origin.y - lower_y
        gx, gy = target.x - lower_x, target.y - lower_y

        if not (0 <= sx < width and 0 <= sy < height):
            logger.warning(f"[PathFinder] Origin {origin} out of bounds of {costmap}")
            return None
        if not (0 <= gx < width and 0 <= gy < height):
            logger.warning(f"[PathFinder] Target {target} out of bounds of {costmap}")
            return None
        if CostMap.is_obstacle(int(grid[sy, sx])):
            logger.warning(f"[PathFinder] Origin {origin} is in an obstacle")
            return None
        if CostMap.is_obstacle(int(grid[gy, gx])):
            logger.warning(f"[PathFinder] Target {target} is in an obstacle")
            return None

        resolution = costmap.resolution
        if (sx, sy) == (gx, gy):
            return Path([CostMapPose(origin.x, origin.y, resolution)])

        counter = 0
        open_set: List[Tuple[int, int, int, int]] = [(self._heuristic(sx, sy, gx, gy), counter, sx, sy)]
        g_scores: Dict[Tuple[int, int], int] = {(sx, sy): 0}
        came_from: Dict[Tuple[int, int], Tuple[int, int]] = {}
        closed = set()

        while open_set:
            _, _, x, y = heapq.heappop(open_set)
            if (x, y) in closed:
                continue

            if (x, y) == (gx, gy):
                cells = [(x, y)]
                while cells[-1] in came_from:
                    cells.append(came_from[cells[-1]])
                cells.reverse()
                logger.debug(f"[PathFinder] Path found with {len(cells)} cells")
                return Path(CostMapPose(cx + lower_x, cy + lower_y, resolution) for cx, cy in cells)

            closed.add((x, y))
            g = g_scores[(x, y)]

            for dx, dy, step in self.DIRECTIONS_8:
                nx, ny = x + dx, y + dy
                if not (0 <= nx < width and 0 <= ny < height):
                    continue
                if (nx, ny) in closed:
                    continue
                cost = int(grid[ny, nx])
                if CostMap.is_obstacle(cost):
                    continue

                tentative = g + (cost + 1) * step
                if tentative < g_scores.get((nx, ny), float('inf')):
                    g_scores[(nx, ny)] = tentative
                    came_from[(nx, ny)] = (x, y)
                    counter += 1
                    f = tentative + self._heuristic(nx, ny, gx, gy)
                    heapq.heappush(open_set, (f, counter, nx, ny))

        logger.info(f"[PathFinder] No path from {origin} to {target}")
        return None


class AStarPathFinder(PathFinder):
    """A* search with the octile distance heuristic."""

    def _heuristic(self, x: int, y: int, gx: int, gy: int) -> int:
        dx = abs(x - gx)
        dy = abs(y - gy)
        # min(dx, dy) diagonal steps (14) plus the remaining straight steps (10)
        if dx > dy:
            return dx * 10 + dy * 4
        return dx * 4 + dy * 10


class DijkstraPathFinder(PathFinder):
    """Uniform cost search: same edge costs as A*, no heuristic."""


def make_path_finder(planner_type: PlannerType) -> PathFinder:
    """Create the path finder for a planner type."""
    if planner_type == PlannerType.ASTAR:
        return AStarPathFinder()
    if planner_type == PlannerType.DIJKSTRA:
        return DijkstraPathFinder()
    raise ValueError(f"Unknown planner type: {planner_type}")

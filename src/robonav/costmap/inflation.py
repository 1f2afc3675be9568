"""
Cost Map Inflation

Grows obstacles by the robot footprint so planners can treat the robot as a
point.

Each non-obstacle cell takes the highest cost found within radius_cells of it
(a square window, clipped to the map), then the value is clamped so that
inflated costs never reach the obstacle sentinel:

    original == OBSTACLE_COST              → OBSTACLE_COST
    window max == OBSTACLE_COST            → OBSTACLE_COST
    window max >= INSCRIBED_INFLATED_OBST. → INSCRIBED_INFLATED_OBSTACLE
    otherwise                              → window max

Costs never exceed OBSTACLE_COST, so INSCRIBED_INFLATED_OBSTACLE is the
ceiling for every non-obstacle cell: a free cell of its own cost 121 to 126
is lowered to it as well.

The source map is never modified; a new published map is returned.
"""

import math
import logging
from enum import Enum, auto

import numpy as np
from scipy import ndimage

from .costmap import CostMap

logger = logging.getLogger(__name__)


class InflationType(Enum):
    """How the inflation radius is derived from the robot radius."""
    FULL_RADIUS = auto()        # radius = robot radius
    FACTOR_RADIUS = auto()      # radius = robot radius * factor


def compute_inflated_cost(cost: np.ndarray) -> np.ndarray:
    """Clamp window maxima so no inflated value exceeds the obstacle sentinel."""
    out = cost.copy()
    ceiling = (cost >= CostMap.INSCRIBED_INFLATED_OBSTACLE) & (cost != CostMap.OBSTACLE_COST)
    out[ceiling] = CostMap.INSCRIBED_INFLATED_OBSTACLE
    return out


class CostMapInflator:
    """
    Square-window cost map inflator.

    Usage:
        inflator = CostMapInflator(robot_radius=0.2)
        inflated = inflator.inflate(costmap)
    """

    def __init__(self, robot_radius: float,
                 inflation_type: InflationType = InflationType.FULL_RADIUS,
                 radius_factor: float = 1.0):
        if robot_radius < 0:
            raise ValueError(f"Robot radius must be non-negative, got {robot_radius}")
        if radius_factor <= 0:
            raise ValueError(f"Radius factor must be positive, got {radius_factor}")
        self.robot_radius = robot_radius
        self.inflation_type = inflation_type
        self.radius_factor = radius_factor

    @property
    def inflation_radius(self) -> float:
        """Inflation radius in meters."""
        if self.inflation_type == InflationType.FACTOR_RADIUS:
            return self.robot_radius * self.radius_factor
        return self.robot_radius

    def radius_cells(self, resolution: float) -> int:
        return int(math.ceil(self.inflation_radius / resolution))

    def inflate(self, costmap: CostMap) -> CostMap:
        """
        Inflate a cost map.

        Args:
            costmap: Map to inflate, left untouched

        Returns:
            New published map with inflated=True
        """
        radius = self.radius_cells(costmap.resolution)
        original = costmap.grid_view()

        if radius <= 0 or costmap.is_empty():
            inflated = original
        else:
            # Cells beyond the map edge contribute nothing to the window
            window_max = ndimage.maximum_filter(
                original, size=2 * radius + 1, mode='constant', cval=0
            )
            inflated = compute_inflated_cost(window_max)
            inflated[original == CostMap.OBSTACLE_COST] = CostMap.OBSTACLE_COST

        logger.debug(f"[Inflator] {costmap.source.name} inflated by {radius} cells")
        return CostMap(costmap.source, costmap.resolution, costmap.lower_x, costmap.lower_y,
                       inflated, inflated=True)

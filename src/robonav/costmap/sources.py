"""
Cost Map Sources

Producers of per-source cost maps fed into the CostMapManager.

- GeometryCostMap: obstacle polygons with an expiry time (bumper hits,
  computer vision detections, ...). Each update rebuilds the grid.
- PriorTrajectoryCostMap: static map that favors the recorded trajectory of
  the world, cheap on the path and more expensive everywhere else.

Sources never hand out their working grid. Each rebuild happens on a fresh
array outside of the lock, is published, and only then swapped in, so
readers always see a complete, immutable snapshot.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass

import numpy as np

from ..core.geometry import draw_line_on_grid
from ..core.transform import Transform
from .costmap import CostMap, Source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostMapGeometry:
    """An obstacle polygon, valid until expire_time (seconds)."""
    expire_time: float
    polygon: Tuple[Tuple[float, float], ...]   # (x, y) vertices in meters
    cost: int = CostMap.OBSTACLE_COST

    @staticmethod
    def from_points(points: Iterable[Sequence[float]], expire_time: float,
                    cost: int = CostMap.OBSTACLE_COST) -> 'CostMapGeometry':
        return CostMapGeometry(expire_time, tuple((float(p[0]), float(p[1])) for p in points), cost)


class GeometryCostMap:
    """
    Cost map built from a list of expiring polygons.

    The grid covers the bounding box of all live polygons, padded by the robot
    radius so that inflation has room to grow. Polygon edges are rasterized
    with a super-cover line.

    Usage:
        bumper = GeometryCostMap(Source.BUMPER, resolution=0.05, robot_radius=0.2)
        bumper.update(now, [CostMapGeometry.from_points(contact_points, now + 5.0)])

        snapshot = bumper.snapshot()   # immutable, None while no geometry is alive
    """

    def __init__(self, source: Source, resolution: float, robot_radius: float):
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")
        if robot_radius < 0:
            raise ValueError(f"Robot radius must be non-negative, got {robot_radius}")
        self.source = source
        self.resolution = resolution
        self.robot_radius = robot_radius

        self._lock = threading.Lock()
        self._geometries: List[CostMapGeometry] = []
        self._snapshot: Optional[CostMap] = None
        self._listeners: List[Callable[['GeometryCostMap'], None]] = []

    def on_update(self, callback: Callable[['GeometryCostMap'], None]):
        """Register a callback invoked after every update."""
        self._listeners.append(callback)

    def update(self, timestamp: float, geometries: Iterable[CostMapGeometry]):
        """
        Drop geometries expired before timestamp, add the new ones, and rebuild.

        Args:
            timestamp: Current time (seconds)
            geometries: New polygons to add
        """
        new_geometries = list(geometries)
        with self._lock:
            live = [g for g in self._geometries if g.expire_time >= timestamp]
            live.extend(new_geometries)
            self._geometries = live

        # Rebuild outside of the lock; readers keep the previous snapshot meanwhile
        snapshot = self._build(live)

        with self._lock:
            self._snapshot = snapshot

        if snapshot is None:
            logger.debug(f"[CostMap] {self.source.name} cleared, no live geometry")
        else:
            logger.debug(f"[CostMap] {self.source.name} rebuilt: {snapshot}")

        for callback in self._listeners:
            callback(self)

    def clear(self, timestamp: float):
        """Drop expired geometries without adding new ones."""
        self.update(timestamp, [])

    def snapshot(self) -> Optional[CostMap]:
        """Latest published grid, None if there is no live geometry."""
        with self._lock:
            return self._snapshot

    @property
    def geometry_count(self) -> int:
        with self._lock:
            return len(self._geometries)

    def _build(self, geometries: List[CostMapGeometry]) -> Optional[CostMap]:
        if not geometries:
            return None

        xs = [p[0] for g in geometries for p in g.polygon]
        ys = [p[1] for g in geometries for p in g.polygon]
        if not xs:
            return None
        lower = (min(xs) - self.robot_radius, min(ys) - self.robot_radius)
        upper = (max(xs) + self.robot_radius, max(ys) + self.robot_radius)
        lower_x, lower_y, grid = CostMap.empty_grid_for(self.resolution, lower, upper, CostMap.MIN_COST)

        for g in geometries:
            cells = [(int(np.floor(x / self.resolution)), int(np.floor(y / self.resolution)))
                     for x, y in g.polygon]
            for i, start in enumerate(cells):
                # Close the polygon by joining the last vertex to the first
                end = cells[(i + 1) % len(cells)]
                draw_line_on_grid(grid, start, end, lower_x, lower_y, g.cost)

        return CostMap(self.source, self.resolution, lower_x, lower_y, grid)

    def __repr__(self) -> str:
        return f"GeometryCostMap({self.source.name})"


class PriorTrajectoryCostMap:
    """
    Static cost map that keeps the robot near a recorded trajectory.

    Every cell starts at BACKGROUND_COST. Cells within PATH_GROWING_RADIUS of a
    trajectory pose drop to MIDDLE_COST, and cells within half of it drop to
    MIN_COST. The map is padded around the trajectory bounds.
    """

    PATH_GROWING_RADIUS = 0.25      # meters
    HALF_PATH_GROWING_RADIUS = PATH_GROWING_RADIUS / 2
    DEFAULT_PADDING = 3.0           # meters

    BACKGROUND_COST = CostMap.MAX_FREE_COST // 6
    MIDDLE_COST = BACKGROUND_COST // 2

    def __init__(self, trajectory: Sequence[Transform], resolution: float,
                 x_padding: float = DEFAULT_PADDING, y_padding: float = DEFAULT_PADDING):
        if not trajectory:
            raise ValueError("Prior trajectory cannot be empty")
        if x_padding < 0 or y_padding < 0:
            raise ValueError(f"Invalid padding ({x_padding}, {y_padding})")
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")

        self.source = Source.PRIOR_TRAJECTORY
        self.resolution = resolution
        self._snapshot = self._build(trajectory, x_padding, y_padding)
        logger.info(f"[CostMap] Created prior trajectory map {self._snapshot}")

    def snapshot(self) -> CostMap:
        return self._snapshot

    def _build(self, trajectory: Sequence[Transform], x_pad: float, y_pad: float) -> CostMap:
        xs = [t.x for t in trajectory]
        ys = [t.y for t in trajectory]
        lower = (min(xs) - self.PATH_GROWING_RADIUS - x_pad,
                 min(ys) - self.PATH_GROWING_RADIUS - y_pad)
        upper = (max(xs) + self.PATH_GROWING_RADIUS + x_pad,
                 max(ys) + self.PATH_GROWING_RADIUS + y_pad)
        lower_x, lower_y, grid = CostMap.empty_grid_for(
            self.resolution, lower, upper, self.BACKGROUND_COST)

        # Skip the outer ring when rounding puts both radii on the same cell count
        if (round(self.PATH_GROWING_RADIUS / self.resolution) !=
                round(self.HALF_PATH_GROWING_RADIUS / self.resolution)):
            self._grow(grid, lower_x, lower_y, trajectory, self.PATH_GROWING_RADIUS,
                       self.MIDDLE_COST)
        self._grow(grid, lower_x, lower_y, trajectory, self.HALF_PATH_GROWING_RADIUS,
                   CostMap.MIN_COST)

        # Costs are final for this source, it is never inflated
        return CostMap(self.source, self.resolution, lower_x, lower_y, grid, inflated=True)

    def _grow(self, grid: np.ndarray, lower_x: int, lower_y: int,
              trajectory: Sequence[Transform], radius: float, cost: int):
        """Set every cell whose center is within radius of a trajectory pose to cost."""
        height, width = grid.shape
        cx = (np.arange(width) + lower_x + 0.5) * self.resolution
        cy = (np.arange(height) + lower_y + 0.5) * self.resolution
        xx, yy = np.meshgrid(cx, cy)
        mask = np.zeros(grid.shape, dtype=bool)
        for t in trajectory:
            mask |= (xx - t.x) ** 2 + (yy - t.y) ** 2 <= radius * radius
        grid[mask] = cost

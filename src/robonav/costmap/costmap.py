"""
Cost Map

A 2D grid of per-cell traversal costs in global cell coordinates.

Cost scale:
  0            → Free space
  1 .. 126     → Passable, higher is less desirable
  120          → Inscribed inflated obstacle (ceiling for inflated costs)
  127          → Obstacle (never traversable)
  128 .. 255   → Accepted as input, stored as 127

A map covers [lower_x, upper_x) x [lower_y, upper_y). Reads outside of it
return OBSTACLE_COST so planners never leave the known area.

A map is either mutable (owned by one writer while it is being built) or
published. Once published, the backing array is read-only and any write
raises RuntimeError, so snapshots can be shared across threads freely.

Usage:
    grid = CostMap(Source.FLOORPLAN, resolution=0.05, lower_x=-20, lower_y=-10,
                   grid=np.zeros((40, 60), dtype=np.uint8), mutable=True)
    grid.set_cost(-15, -5, CostMap.OBSTACLE_COST)
    grid.publish()

    grid.get_cost(-15, -5)   # 127
    grid.get_cost(500, 500)  # 127 (out of bounds)
"""

import math
from enum import Enum, auto
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .pose import CostMapPose


class Source(Enum):
    """Origin of a cost map."""
    BUMPER = auto()
    COMPUTER_VISION = auto()
    FLOORPLAN = auto()
    OCTOMAP = auto()
    POI = auto()
    PRIOR_TRAJECTORY = auto()
    TRANSFORM = auto()
    OUTPUT_COSTMAP_FULLY_INFLATED = auto()


class CostMap:
    """Rectangular cost grid stored row-major as a (height, width) uint8 array."""

    MIN_COST = 0
    MAX_COST = 127
    OBSTACLE_COST = 127
    MAX_FREE_COST = 126
    INSCRIBED_INFLATED_OBSTACLE = 120

    def __init__(
        self,
        source: Source,
        resolution: float,
        lower_x: int = 0,
        lower_y: int = 0,
        grid: Union[np.ndarray, Sequence[int], None] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        inflated: bool = False,
        mutable: bool = False
    ):
        """
        Args:
            source: Where the costs come from
            resolution: Meters per cell
            lower_x, lower_y: Global cell index of the first column / row
            grid: Either a 2D (height, width) array, or a flat row-major sequence
                  together with width and height. None means an empty map.
            width, height: Grid size, required for flat grids
            inflated: True if obstacles were already inflated
            mutable: Keep the map writable until publish() is called
        """
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")

        if grid is None:
            array = np.zeros((0, 0), dtype=np.uint8)
        else:
            raw = np.asarray(grid)
            if raw.ndim == 1 or width is not None or height is not None:
                if width is None or height is None:
                    raise ValueError("Flat grids need both width and height")
                if width < 0 or height < 0:
                    raise ValueError(f"Invalid grid size {width}x{height}")
                if raw.size != width * height:
                    raise ValueError(
                        f"Grid has {raw.size} cells, expected {width}x{height}={width * height}")
                raw = raw.reshape((height, width))
            elif raw.ndim != 2:
                raise ValueError(f"Grid must be 2D, got {raw.ndim} dimensions")
            if raw.size and (raw.min() < 0 or raw.max() > 255):
                raise ValueError("Costs must be in [0, 255]")
            array = np.minimum(raw, self.OBSTACLE_COST).astype(np.uint8)

        self.source = source
        self.resolution = float(resolution)
        self.lower_x = int(lower_x)
        self.lower_y = int(lower_y)
        self.inflated = inflated
        self._grid = array
        self._mutable = mutable
        if not mutable:
            self._grid.setflags(write=False)

    @staticmethod
    def empty_grid_for(resolution: float, lower: Tuple[float, float], upper: Tuple[float, float],
                       initial_cost: int = 0) -> Tuple[int, int, np.ndarray]:
        """
        Allocate a grid covering a world bounding box.

        Args:
            resolution: Meters per cell
            lower: (x, y) lower corner in meters
            upper: (x, y) upper corner in meters

        Returns:
            (lower_x, lower_y, grid) with lower_x/lower_y in global cells
        """
        start_x = int(math.floor(lower[0] / resolution))
        start_y = int(math.floor(lower[1] / resolution))
        # An upper limit falling exactly on a cell edge still needs that cell
        end_x = int(math.ceil(upper[0] / resolution + resolution / 1e9))
        end_y = int(math.ceil(upper[1] / resolution + resolution / 1e9))
        width = max(end_x - start_x, 0)
        height = max(end_y - start_y, 0)
        return start_x, start_y, np.full((height, width), initial_cost, dtype=np.uint8)

    # ------------------------------------------------------------------ bounds

    @property
    def width(self) -> int:
        return self._grid.shape[1]

    @property
    def height(self) -> int:
        return self._grid.shape[0]

    @property
    def upper_x(self) -> int:
        """Exclusive upper X cell limit."""
        return self.lower_x + self.width

    @property
    def upper_y(self) -> int:
        """Exclusive upper Y cell limit."""
        return self.lower_y + self.height

    def is_empty(self) -> bool:
        return self._grid.size == 0

    def in_bounds(self, x: int, y: int) -> bool:
        return self.lower_x <= x < self.upper_x and self.lower_y <= y < self.upper_y

    # ------------------------------------------------------------------- costs

    @staticmethod
    def is_obstacle(cost: int) -> bool:
        return cost == CostMap.OBSTACLE_COST

    def get_cost(self, x: int, y: int) -> int:
        """Cost of global cell (x, y); OBSTACLE_COST when out of bounds."""
        if not self.in_bounds(x, y):
            return self.OBSTACLE_COST
        return int(self._grid[y - self.lower_y, x - self.lower_x])

    def get_cost_at(self, pose: CostMapPose) -> int:
        return self.get_cost(pose.x, pose.y)

    def set_cost(self, x: int, y: int, cost: int):
        """Write one cell. Only valid before the map is published."""
        if not self._mutable:
            raise RuntimeError(f"{self} is published and cannot be modified")
        if not self.in_bounds(x, y):
            raise ValueError(f"Cell ({x}, {y}) is outside {self}")
        if not 0 <= cost <= 255:
            raise ValueError(f"Cost must be in [0, 255], got {cost}")
        self._grid[y - self.lower_y, x - self.lower_x] = min(cost, self.OBSTACLE_COST)

    def get_full_cost_region(self) -> np.ndarray:
        """Copy of the whole (height, width) cost array."""
        return self._grid.copy()

    def grid_view(self) -> np.ndarray:
        """
        Direct access to the backing array.

        Read-only for published maps; writable only while the owner is building it.
        """
        return self._grid

    def highest_cost_in_region(self, x0: int, y0: int, x1: int, y1: int) -> int:
        """Highest cost in the inclusive global cell window, clipped to the map."""
        gx0 = max(x0 - self.lower_x, 0)
        gy0 = max(y0 - self.lower_y, 0)
        gx1 = min(x1 - self.lower_x, self.width - 1)
        gy1 = min(y1 - self.lower_y, self.height - 1)
        if gx0 > gx1 or gy0 > gy1:
            return self.MIN_COST
        return int(self._grid[gy0:gy1 + 1, gx0:gx1 + 1].max())

    # ------------------------------------------------------------- publishing

    def is_mutable(self) -> bool:
        return self._mutable

    def publish(self) -> 'CostMap':
        """Freeze this map. No cell may change afterwards."""
        if self._mutable:
            self._mutable = False
            self._grid.setflags(write=False)
        return self

    def snapshot(self) -> 'CostMap':
        """Published view of this map: self if already frozen, a frozen copy otherwise."""
        if not self._mutable:
            return self
        return self.copy()

    def copy(self, mutable: bool = False) -> 'CostMap':
        return CostMap(self.source, self.resolution, self.lower_x, self.lower_y,
                       self._grid, inflated=self.inflated, mutable=mutable)

    # ------------------------------------------------------------ conversions

    def discretize(self, x: float, y: float) -> CostMapPose:
        """World meters to the global cell containing them."""
        return CostMapPose.from_world(x, y, self.resolution)

    def to_world(self, pose: CostMapPose):
        """Global cell to the world transform at its center."""
        return pose.to_world_coordinates(self.resolution)

    def requires_inflation(self) -> bool:
        return not self.inflated

    def __repr__(self) -> str:
        state = "mutable" if self._mutable else "published"
        return (f"CostMap({self.source.name}, X: [{self.lower_x}, {self.upper_x}), "
                f"Y: [{self.lower_y}, {self.upper_y}), res={self.resolution}, {state})")

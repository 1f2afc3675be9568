"""
Discrete cost map coordinates.

A CostMapPose is a global cell index. Cell (x, y) covers the square
[x*r, (x+1)*r) x [y*r, (y+1)*r) in world meters for resolution r, and maps
back to the world at the cell center.
"""

import math
from typing import Optional
from dataclasses import dataclass, field

from ..core.transform import Transform


@dataclass(frozen=True)
class CostMapPose:
    """Grid cell. Equality and hashing use (x, y) only."""
    x: int
    y: int
    resolution: Optional[float] = field(default=None, compare=False)

    @staticmethod
    def from_world(x: float, y: float, resolution: float) -> 'CostMapPose':
        """Discretize a world position (meters) into the cell containing it."""
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")
        return CostMapPose(int(math.floor(x / resolution)),
                           int(math.floor(y / resolution)),
                           resolution)

    @staticmethod
    def from_transform(transform: Transform, resolution: float) -> 'CostMapPose':
        return CostMapPose.from_world(transform.x, transform.y, resolution)

    def offset_by(self, dx: int, dy: int) -> 'CostMapPose':
        return CostMapPose(self.x + dx, self.y + dy, self.resolution)

    def squared_distance_to(self, other: 'CostMapPose') -> int:
        """Squared distance in cells."""
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def to_world_coordinates(self, resolution: Optional[float] = None, z: float = 0.0,
                             timestamp: float = -1.0) -> Transform:
        """
        World transform at the center of this cell.

        Args:
            resolution: Meters per cell, defaults to the pose's own resolution
            z: Height of the returned transform
            timestamp: Timestamp of the returned transform
        """
        res = resolution if resolution is not None else self.resolution
        if res is None or res <= 0:
            raise ValueError("A positive resolution is required to convert to world coordinates")
        return Transform(((self.x + 0.5) * res, (self.y + 0.5) * res, z),
                         (0.0, 0.0, 0.0, 1.0), timestamp)

    def __repr__(self) -> str:
        return f"({self.x}, {self.y})"

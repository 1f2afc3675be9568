"""
Navigation World

The map the path follower navigates in: a recorded ("smoothed") trajectory,
optional hand-placed ("custom") waypoints that take precedence over it, and
named points of interest.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from ..core.transform import Transform


@dataclass
class World:
    """Waypoints and points of interest of one mapped area."""
    name: str
    smoothed_transforms: List[Transform] = field(default_factory=list)
    custom_transforms: List[Transform] = field(default_factory=list)
    points_of_interest: Dict[str, Transform] = field(default_factory=dict)

    @property
    def has_custom_transforms(self) -> bool:
        return len(self.custom_transforms) > 0

    def waypoints(self) -> List[Transform]:
        """Transforms the waypoint graph is built from."""
        if self.has_custom_transforms:
            return list(self.custom_transforms)
        return list(self.smoothed_transforms)

    def get_point_of_interest(self, poi_id: str) -> Optional[Transform]:
        return self.points_of_interest.get(poi_id)

    def limits(self) -> Optional[Tuple[Tuple[float, float], Tuple[float, float]]]:
        """((min_x, min_y), (max_x, max_y)) of the waypoints, None if there are none."""
        points = self.waypoints()
        if not points:
            return None
        xs = [t.x for t in points]
        ys = [t.y for t in points]
        return (min(xs), min(ys)), (max(xs), max(ys))

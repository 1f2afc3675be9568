"""
Cost Map Fusion

Merges several source maps into one covering the union of their bounds.
Each cell gets the highest cost any source reports for it; cells a source
does not cover count as free for that source. A cell any source marks as an
obstacle stays an obstacle.
"""

from typing import Iterable, Optional

import numpy as np

from .costmap import CostMap, Source


def fuse_costmaps(costmaps: Iterable[Optional[CostMap]],
                  source: Source = Source.OUTPUT_COSTMAP_FULLY_INFLATED) -> Optional[CostMap]:
    """
    Fuse cost maps by per-cell maximum.

    Args:
        costmaps: Maps to merge. None and empty maps are skipped.
        source: Source tag of the fused map

    Returns:
        Published fused map, or None if there was nothing to fuse

    Raises:
        ValueError: if the maps do not share the same resolution
    """
    maps = [m for m in costmaps if m is not None and not m.is_empty()]
    if not maps:
        return None

    resolution = maps[0].resolution
    for m in maps[1:]:
        if not np.isclose(m.resolution, resolution):
            raise ValueError(f"Cannot fuse {m} with resolution {resolution}")

    lower_x = min(m.lower_x for m in maps)
    lower_y = min(m.lower_y for m in maps)
    upper_x = max(m.upper_x for m in maps)
    upper_y = max(m.upper_y for m in maps)

    fused = np.zeros((upper_y - lower_y, upper_x - lower_x), dtype=np.uint8)
    obstacles = np.zeros(fused.shape, dtype=bool)

    for m in maps:
        ox = m.lower_x - lower_x
        oy = m.lower_y - lower_y
        region = (slice(oy, oy + m.height), slice(ox, ox + m.width))
        grid = m.grid_view()
        np.maximum(fused[region], grid, out=fused[region])
        obstacles[region] |= grid == CostMap.OBSTACLE_COST

    fused[obstacles] = CostMap.OBSTACLE_COST
    return CostMap(source, resolution, lower_x, lower_y, fused,
                   inflated=all(m.inflated for m in maps))

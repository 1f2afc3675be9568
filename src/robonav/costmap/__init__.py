"""
Cost map module.

Components:
- CostMap: per-cell traversal cost grid with publish/immutability
- CostMapPose: discrete grid coordinate
- GeometryCostMap / PriorTrajectoryCostMap: source maps
- CostMapInflator: obstacle inflation by robot radius
- fuse_costmaps: per-cell maximum over several sources
- CostMapManager: publishes the fused, inflated map
"""

from .pose import CostMapPose
from .costmap import CostMap, Source
from .sources import GeometryCostMap, PriorTrajectoryCostMap, CostMapGeometry
from .inflation import CostMapInflator, InflationType, compute_inflated_cost
from .fuser import fuse_costmaps
from .manager import CostMapManager, CostMapConfig

"""
robonav - indoor robot navigation.

Modules:
- core: transforms, geometry, state machine, robot model
- costmap: cost grids, sources, inflation, fusion
- navigation: grid planners, waypoint graph follower, pure pursuit, goals
- config: YAML configuration and world loading
- cli: headless simulation (robonav-sim)
"""

__version__ = "0.1.0"

from .core import Transform, RobotModel, VelocityCommand
from .costmap import CostMap, CostMapPose, CostMapManager, Source
from .navigation import (
    GlobalPlanner, PathFollower, PurePursuit, NavigationController, World
)
from .config import NavigationConfig, load_config, load_world

"""
Configuration loading.

One YAML file, one section per component:

    robot:
      max_linear_speed: 0.5
      radius: 0.2
    costmap:
      resolution: 0.05
      inflation_type: full_radius
    planner:
      planner_type: astar
    follower:
      arrival_distance: 0.25
      goal_timeout: 30.0
    pursuit:
      lookahead_distance: 0.5

Missing sections and keys keep their defaults; unknown ones raise ValueError.

The pursuit section is for callers that follow grid paths with
PurePursuitVelocityGenerator(config.robot, config.pursuit). The waypoint
follower and robonav-sim do not read it.

Worlds are loaded from their own YAML file:

    name: office
    smoothed:                   # recorded trajectory, [x, y] or [x, y, theta]
      - [0.0, 0.0]
      - [0.2, 0.0, 0.0]
    custom: []                  # hand-placed waypoints, same format
    points_of_interest:
      kitchen: [3.0, 1.0, 1.57]
"""

import os
import logging
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, fields

import yaml

from .core.robot_model import RobotModel
from .core.transform import Transform
from .costmap.manager import CostMapConfig
from .navigation.global_planner import PlannerConfig
from .navigation.path_follower import PathFollowerConfig
from .navigation.pure_pursuit import PursuitConfig
from .navigation.world import World

logger = logging.getLogger(__name__)


@dataclass
class NavigationConfig:
    """All component configurations."""
    robot: RobotModel = field(default_factory=RobotModel)
    costmap: CostMapConfig = field(default_factory=CostMapConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    follower: PathFollowerConfig = field(default_factory=PathFollowerConfig)
    pursuit: PursuitConfig = field(default_factory=PursuitConfig)    # grid path following only

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'NavigationConfig':
        """Build from a parsed YAML mapping."""
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")

        sections = {f.name: f for f in fields(cls)}
        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        kwargs = {}
        for name, section in data.items():
            kwargs[name] = _build_section(name, sections[name].default_factory, section)
        return cls(**kwargs)


def _build_section(name: str, config_type, values: Optional[Dict[str, Any]]):
    values = values or {}
    if not isinstance(values, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    allowed = {f.name for f in fields(config_type)}
    unknown = set(values) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in section '{name}': {sorted(unknown)}")
    return config_type(**values)


def load_config(path: Optional[str] = None) -> NavigationConfig:
    """
    Load the navigation configuration.

    Args:
        path: YAML file. None or a missing file gives the defaults.

    Returns:
        NavigationConfig
    """
    if path is None or not os.path.exists(path):
        if path is not None:
            logger.warning(f"[Config] File not found: {path}, using defaults")
        return NavigationConfig()

    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    config = NavigationConfig.from_dict(data)
    logger.info(f"[Config] Loaded {path}")
    return config


def _parse_transform(value) -> Transform:
    if not isinstance(value, (list, tuple)) or len(value) not in (2, 3):
        raise ValueError(f"Expected [x, y] or [x, y, theta], got {value!r}")
    x, y = float(value[0]), float(value[1])
    theta = float(value[2]) if len(value) == 3 else 0.0
    return Transform.from_xy_theta(x, y, theta=theta)


def _parse_transforms(values) -> List[Transform]:
    return [_parse_transform(v) for v in (values or [])]


def world_from_dict(data: Dict[str, Any]) -> World:
    """Build a World from a parsed YAML mapping."""
    if not isinstance(data, dict):
        raise ValueError("World must be a mapping")
    allowed = {'name', 'smoothed', 'custom', 'points_of_interest'}
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown world keys: {sorted(unknown)}")

    pois = data.get('points_of_interest') or {}
    if not isinstance(pois, dict):
        raise ValueError("points_of_interest must be a mapping")

    return World(
        name=str(data.get('name', 'world')),
        smoothed_transforms=_parse_transforms(data.get('smoothed')),
        custom_transforms=_parse_transforms(data.get('custom')),
        points_of_interest={str(k): _parse_transform(v) for k, v in pois.items()}
    )


def load_world(path: str) -> World:
    """Load a world YAML file. Raises FileNotFoundError if it does not exist."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    world = world_from_dict(data)
    logger.info(f"[Config] World '{world.name}': {len(world.smoothed_transforms)} smoothed, "
                f"{len(world.custom_transforms)} custom, "
                f"{len(world.points_of_interest)} points of interest")
    return world

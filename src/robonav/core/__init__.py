"""
Core building blocks.
- Transform (3D pose + timestamp)
- Planar geometry helpers
- Path follower state machine
- Robot model (dimensions, speed limits)
"""

from .transform import Transform
from .geometry import (
    wrap_angle, distance, squared_distance, compute_curvature,
    closest_point_on_line, point_at_distance, draw_line_on_grid
)
from .state_machine import StateMachine, PathFollowerState, FollowerEvent
from .robot_model import RobotModel, VelocityCommand

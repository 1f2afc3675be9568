"""
Planar Geometry Helpers

Small 2D helpers shared by the pursuit controller, the path follower and
the cost map rasterizer. Points are (x, y) sequences in meters unless
stated otherwise.
"""

import math
from typing import List, Sequence, Tuple

import numpy as np

# Below this squared distance the curvature denominator is padded to stay finite
VERY_SHORT_DISTANCE = 1e-2
# Two points closer than this on both axes are considered the same point
DIFF_TOLERANCE = 1e-6


def wrap_angle(angle: float) -> float:
    """Normalize angle to [-pi, pi)."""
    return angle - 2 * math.pi * math.floor((angle + math.pi) / (2 * math.pi))


def distance(p1: Sequence[float], p2: Sequence[float]) -> float:
    return math.sqrt(squared_distance(p1, p2))


def squared_distance(p1: Sequence[float], p2: Sequence[float]) -> float:
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    return dx * dx + dy * dy


def angle_between_pose_and_point(position: Sequence[float], heading: float,
                                 point: Sequence[float]) -> float:
    """Angle the robot must turn (radians, wrapped) to face point."""
    target_angle = math.atan2(point[1] - position[1], point[0] - position[0])
    return wrap_angle(target_angle - heading)


def compute_curvature(position: Sequence[float], heading: float,
                      goal: Sequence[float]) -> float:
    """
    Curvature of the arc joining a pose to a goal point.

    Args:
        position: (x, y) robot position
        heading: Robot yaw (radians)
        goal: (x, y) point to reach

    Returns:
        Signed curvature (1/m). Always finite, even when goal == position.
    """
    squared_dist = squared_distance(position, goal)
    delta_angle = angle_between_pose_and_point(position, heading, goal)
    # Distance along the X axis between the robot and the goal
    delta_x = ((goal[0] - position[0]) * math.cos(delta_angle) +
               (goal[1] - position[1]) * math.sin(delta_angle))
    padding = VERY_SHORT_DISTANCE if squared_dist < VERY_SHORT_DISTANCE else 0.0
    return (-2 * delta_x) / (squared_dist + padding)


def closest_point_on_line(line_start: Sequence[float], line_end: Sequence[float],
                          point: Sequence[float]) -> Tuple[float, float]:
    """
    Perpendicular projection of a point onto the (infinite) line start-end.

    A degenerate line (start == end) projects everything onto start.
    """
    if (abs(line_start[0] - line_end[0]) < DIFF_TOLERANCE and
            abs(line_start[1] - line_end[1]) < DIFF_TOLERANCE):
        return line_start[0], line_start[1]

    px = line_end[0] - line_start[0]
    py = line_end[1] - line_start[1]
    den = px * px + py * py
    u = ((point[0] - line_start[0]) * px + (point[1] - line_start[1]) * py) / den
    return line_start[0] + u * px, line_start[1] + u * py


def point_at_distance(line_start: Sequence[float], line_end: Sequence[float],
                      point_in_line: Sequence[float], dist: float) -> Tuple[float, float]:
    """Point located dist meters from point_in_line, moving along start -> end."""
    phi = math.atan2(line_end[1] - line_start[1], line_end[0] - line_start[0])

    # Vertical line: step straight up or down
    if phi == math.pi / 2 or phi == -math.pi / 2:
        sign = 1.0 if phi == math.pi / 2 else -1.0
        return point_in_line[0], point_in_line[1] + sign * dist

    return (point_in_line[0] + dist * math.cos(phi),
            point_in_line[1] + dist * math.sin(phi))


def supercover_line(p0: Tuple[int, int], p1: Tuple[int, int]) -> List[Tuple[int, int]]:
    """
    All grid cells touched by the segment p0 -> p1.

    Steps diagonally only when the segment passes exactly through a cell corner,
    so consecutive cells always share an edge or that corner.
    """
    dx = p1[0] - p0[0]
    dy = p1[1] - p0[1]
    nx, ny = abs(dx), abs(dy)
    sign_x = 1 if dx > 0 else -1
    sign_y = 1 if dy > 0 else -1

    px, py = p0
    cells = [(px, py)]
    ix = iy = 0
    while ix < nx or iy < ny:
        if nx != 0 and ny != 0 and (0.5 + ix) / nx == (0.5 + iy) / ny:
            px += sign_x
            py += sign_y
            ix += 1
            iy += 1
        elif ny == 0 or (nx != 0 and (0.5 + ix) / nx < (0.5 + iy) / ny):
            px += sign_x
            ix += 1
        else:
            py += sign_y
            iy += 1
        cells.append((px, py))
    return cells


def draw_line_on_grid(grid: np.ndarray, p0: Tuple[int, int], p1: Tuple[int, int],
                      lower_x: int, lower_y: int, cost: int) -> np.ndarray:
    """
    Rasterize a segment into a row-major (height, width) grid, in place.

    p0 and p1 are in global cell coordinates; cells falling outside the grid
    are skipped.
    """
    if grid.size == 0:
        raise ValueError("Cannot draw on an empty grid")
    if cost < 0:
        raise ValueError(f"Cost must be non-negative, got {cost}")

    height, width = grid.shape
    for cx, cy in supercover_line(p0, p1):
        gx = cx - lower_x
        gy = cy - lower_y
        if 0 <= gx < width and 0 <= gy < height:
            grid[gy, gx] = cost
    return grid

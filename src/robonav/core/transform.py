"""
Rigid Body Transforms

A Transform is a 3D position, an (x, y, z, w) rotation quaternion and a
timestamp. It is the pose type exchanged between the localization stack,
the waypoint graph and the controllers.

Conventions:
- X = forward, Y = left, Z = up
- Yaw is counter-clockwise from the X axis
- Timestamp is in seconds, negative if unknown

Usage:
    robot = Transform.from_xy_theta(1.0, 2.0, 0.0, math.pi / 2)
    offset = Transform.from_xy_theta(0.25, 0.0, 0.0, 0.0)

    ahead = robot * offset          # 0.25m in front of the robot
    robot.planar_distance_to(ahead) # 0.25
"""

import math
from typing import Iterable, Sequence, Tuple
from dataclasses import dataclass

import numpy as np


def _quaternion_multiply(q: np.ndarray, r: np.ndarray) -> np.ndarray:
    """Hamilton product of two (x, y, z, w) quaternions."""
    return np.array([
        q[1] * r[2] - q[2] * r[1] + q[0] * r[3] + q[3] * r[0],
        q[2] * r[0] - q[0] * r[2] + q[1] * r[3] + q[3] * r[1],
        q[0] * r[1] - q[1] * r[0] + q[2] * r[3] + q[3] * r[2],
        q[3] * r[3] - q[0] * r[0] - q[1] * r[1] - q[2] * r[2],
    ])


def _normalize(v: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    if norm == 0.0:
        return v
    return v / norm


def _conjugate(q: np.ndarray) -> np.ndarray:
    return np.array([-q[0], -q[1], -q[2], q[3]])


@dataclass(frozen=True)
class Transform:
    """Immutable 3D pose with timestamp."""
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)  # (x, y, z, w)
    timestamp: float = -1.0

    def __post_init__(self):
        position = tuple(float(v) for v in self.position)
        rotation = tuple(float(v) for v in self.rotation)
        if len(position) != 3:
            raise ValueError(f"Position must have 3 elements, got {len(position)}")
        if len(rotation) != 4:
            raise ValueError(f"Rotation must have 4 elements, got {len(rotation)}")
        # Frozen dataclass: bypass __setattr__ to store the normalized tuples
        object.__setattr__(self, 'position', position)
        object.__setattr__(self, 'rotation', rotation)
        object.__setattr__(self, 'timestamp', float(self.timestamp))

    @staticmethod
    def from_xy_theta(x: float, y: float, z: float = 0.0, theta: float = 0.0,
                      timestamp: float = -1.0) -> 'Transform':
        """Build a transform from a position and a yaw angle (radians)."""
        return Transform(
            (x, y, z),
            (0.0, 0.0, math.sin(theta / 2), math.cos(theta / 2)),
            timestamp
        )

    @staticmethod
    def facing(start: Sequence[float], end: Sequence[float],
               timestamp: float = -1.0) -> 'Transform':
        """Transform at start, with yaw pointing from start toward end."""
        yaw = math.atan2(end[1] - start[1], end[0] - start[0])
        return Transform.from_xy_theta(start[0], start[1], 0.0, yaw, timestamp)

    @property
    def x(self) -> float:
        return self.position[0]

    @property
    def y(self) -> float:
        return self.position[1]

    @property
    def z(self) -> float:
        return self.position[2]

    @property
    def rotation_z(self) -> float:
        """Yaw angle (radians) in [-pi, pi]."""
        qx, qy, qz, qw = self.rotation
        t3 = 2.0 * (qw * qz + qx * qy)
        t4 = 1.0 - 2.0 * (qy * qy + qz * qz)
        return math.atan2(t3, t4)

    @property
    def xy(self) -> Tuple[float, float]:
        return self.position[0], self.position[1]

    def rotate_point(self, point: Iterable[float]) -> np.ndarray:
        """Rotate a 3D point by this transform's rotation."""
        p = np.asarray(list(point), dtype=float)
        length = np.linalg.norm(p)
        if length == 0.0:
            return p
        q = _normalize(np.asarray(self.rotation))
        r = np.append(p / length, 0.0)
        out = _quaternion_multiply(_quaternion_multiply(q, r), _conjugate(q))
        return out[:3] * length

    def __mul__(self, other: 'Transform') -> 'Transform':
        """
        Compose two transforms (other expressed relative to self).

        The resulting rotation is the product of both rotations, the position is
        self.position + rotate(other.position), and the timestamp is the latest
        of the two.
        """
        if not isinstance(other, Transform):
            return NotImplemented
        rotation = _quaternion_multiply(
            _normalize(np.asarray(self.rotation)),
            _normalize(np.asarray(other.rotation))
        )
        position = np.asarray(self.position) + self.rotate_point(other.position)
        return Transform(
            tuple(position.tolist()),
            tuple(rotation.tolist()),
            max(self.timestamp, other.timestamp)
        )

    def inverse(self) -> 'Transform':
        """Return the inverse transformation, such that t * t.inverse() is identity."""
        inv_rotation = _conjugate(_normalize(np.asarray(self.rotation)))
        inv = Transform((0.0, 0.0, 0.0), tuple(inv_rotation.tolist()), self.timestamp)
        position = -inv.rotate_point(self.position)
        return Transform(tuple(position.tolist()), inv.rotation, self.timestamp)

    def planar_distance_squared(self, other: 'Transform') -> float:
        """Squared distance in the XY plane."""
        dx = other.position[0] - self.position[0]
        dy = other.position[1] - self.position[1]
        return dx * dx + dy * dy

    def planar_distance_to(self, other: 'Transform') -> float:
        """Distance in the XY plane."""
        return math.sqrt(self.planar_distance_squared(other))

    def with_timestamp(self, timestamp: float) -> 'Transform':
        return Transform(self.position, self.rotation, timestamp)

    def __repr__(self) -> str:
        return (f"Transform(x={self.x:.3f}, y={self.y:.3f}, z={self.z:.3f}, "
                f"yaw={math.degrees(self.rotation_z):.1f}deg, t={self.timestamp:.3f})")

"""
Robot Model

Physical limits of the driven robot and the velocity command sent to it.
"""

from dataclasses import dataclass


@dataclass
class RobotModel:
    """Robot dimensions and speed limits."""
    max_linear_speed: float = 0.5       # m/s
    max_angular_speed: float = 1.0      # rad/s
    width: float = 0.35                 # meters
    length: float = 0.35                # meters
    height: float = 0.3                 # meters
    radius: float = 0.2                 # meters (footprint circle)

    def __post_init__(self):
        for name in ('max_linear_speed', 'max_angular_speed', 'width', 'length', 'height'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.radius < 0:
            raise ValueError(f"radius must be non-negative, got {self.radius}")


@dataclass
class VelocityCommand:
    """Output motion command for the base."""
    linear: float = 0.0     # m/s (positive = forward)
    angular: float = 0.0    # rad/s (positive = counter-clockwise)

    def clamped(self, model: RobotModel) -> 'VelocityCommand':
        """Command limited to the robot's speed range."""
        return VelocityCommand(
            max(-model.max_linear_speed, min(model.max_linear_speed, self.linear)),
            max(-model.max_angular_speed, min(model.max_angular_speed, self.angular))
        )

    @property
    def is_stopped(self) -> bool:
        return self.linear == 0.0 and self.angular == 0.0

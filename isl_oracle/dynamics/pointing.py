"""Antenna pointing state and slew geometry.

An orientation is a direction vector in the inertial frame. The zero vector
stands for a body that has never been oriented and can start from anywhere.
"""

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import ArrayLike, NDArray


# Pointing errors below this are treated as aligned [rad]
ANGLE_TOLERANCE = 1e-6


def normalize(v: ArrayLike) -> NDArray[np.float64]:
    """Normalize vector(s) to unit length along the last axis.

    Args:
        v: Vector of shape (3,) or stack of vectors (N, 3)

    Returns:
        Unit vector(s). Zero-length inputs come back as zero vectors.
    """
    v = np.asarray(v, dtype=np.float64)
    norm = np.linalg.norm(v, axis=-1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(norm < 1e-15, 0.0, v / norm)


def angle_between(u: ArrayLike, v: ArrayLike) -> float:
    """Angle between two direction vectors [rad]."""
    cos_angle = np.dot(normalize(u), normalize(v))
    return float(np.arccos(np.clip(cos_angle, -1.0, 1.0)))


@dataclass(frozen=True, eq=False)
class OrientationSample:
    """Antenna direction of one body and the time it becomes free to slew.

    Attributes:
        time: Time from which the body may start rotating [s]
        direction: Pointing direction (unit vector, or zero if unconstrained)
    """

    time: float = 0.0
    direction: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", normalize(self.direction))

    @property
    def is_constrained(self) -> bool:
        """True if the antenna has a defined direction."""
        return bool(np.any(self.direction != 0.0))

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {"time": self.time, "direction": self.direction.tolist()}


def slew_time(
    sample: OrientationSample,
    target: ArrayLike,
    rotation_speed: float,
    cone_angle: float = 0.0,
) -> float:
    """Time needed to bring target inside the antenna cone.

    Args:
        sample: Current antenna state
        target: Required pointing direction
        rotation_speed: Slew rate [rad/s]
        cone_angle: Antenna cone half-angle [rad]

    Returns:
        Slew duration [s]; inf if the slew is impossible
    """
    if not sample.is_constrained:
        return 0.0

    angle = angle_between(sample.direction, target) - cone_angle
    if angle <= ANGLE_TOLERANCE:
        return 0.0
    if rotation_speed <= 0.0:
        return np.inf
    return angle / rotation_speed

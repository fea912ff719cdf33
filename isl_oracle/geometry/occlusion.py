"""Line-of-sight occlusion by the central body."""

import numpy as np
from numpy.typing import NDArray


def is_blocked(
    pos_a: NDArray[np.float64],
    pos_b: NDArray[np.float64],
    radius: float,
) -> bool:
    """Check if the central body blocks the line of sight from A to B.

    Casts a ray from A toward B and intersects it with a sphere of the given
    radius centred on the origin. The link is blocked only if an
    intersection lies between the two endpoints.

    Args:
        pos_a: Position of body A [km]
        pos_b: Position of body B [km]
        radius: Central body radius [km]

    Returns:
        True if the segment A-B passes through the central body
    """
    offset = pos_b - pos_a
    distance = float(np.linalg.norm(offset))
    if distance == 0.0:
        # Coincident endpoints have nothing in between
        return False
    direction = offset / distance

    a = float(np.dot(direction, pos_a))
    discriminant = a * a - (float(np.dot(pos_a, pos_a)) - radius * radius)

    # Ray misses the sphere (or only touches it)
    if discriminant <= 0.0:
        return False

    d1 = -a + np.sqrt(discriminant)
    d2 = -a - np.sqrt(discriminant)

    # Sphere behind A
    if d1 < 0.0 and d2 < 0.0:
        return False

    # Sphere beyond B
    if d1 >= distance and d2 >= distance:
        return False

    return True


def blocked_mask(
    pos_a: NDArray[np.float64],
    pos_b: NDArray[np.float64],
    radius: float,
) -> NDArray[np.bool_]:
    """Vectorised is_blocked over stacks of positions.

    Args:
        pos_a: Positions of body A, shape (N, 3) [km]
        pos_b: Positions of body B, shape (N, 3) [km]
        radius: Central body radius [km]

    Returns:
        Boolean array of shape (N,)
    """
    offset = pos_b - pos_a
    distance = np.linalg.norm(offset, axis=-1)
    with np.errstate(invalid="ignore", divide="ignore"):
        direction = offset / distance[..., None]

    a = np.sum(direction * pos_a, axis=-1)
    discriminant = a * a - (np.sum(pos_a * pos_a, axis=-1) - radius * radius)
    root = np.sqrt(np.where(discriminant > 0.0, discriminant, 0.0))

    d1 = -a + root
    d2 = -a - root

    behind = (d1 < 0.0) & (d2 < 0.0)
    beyond = (d1 >= distance) & (d2 >= distance)

    return (distance > 0.0) & (discriminant > 0.0) & ~behind & ~beyond

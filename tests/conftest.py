"""Shared fixtures: a small constellation with known link geometry.

All bodies are on circular orbits 1000 km above a 6378 km central body, so
every link shares one period. Two bodies at the same altitude see each
other iff their angular separation is below ~60.4 deg.
"""

import pytest

from isl_oracle.config import Config
from isl_oracle.network.instance import Instance


RADIUS = 6378.0
MU = 398600.4418
HEIGHT = 1000.0

# Link indices of the reference instance
ALWAYS_VISIBLE = 0  # bodies 10 deg apart in one plane
NEVER_VISIBLE = 1  # bodies on opposite sides of the central body
VISIBLE_AT_START = 2  # equatorial vs polar, visible at t=0
BLOCKED_AT_START = 3  # equatorial vs polar, blocked at t=0


def add_circular(
    instance: Instance,
    true_anomaly: float,
    inclination: float = 0.0,
    rotation_speed: float = 1.0,
    cone_angle: float = 0.0,
) -> int:
    """Add a body on a circular orbit at the reference height."""
    return instance.add_body(
        height_perigee=HEIGHT,
        eccentricity=0.0,
        true_anomaly=true_anomaly,
        raan=0.0,
        argument_periapsis=0.0,
        inclination=inclination,
        rotation_speed=rotation_speed,
        cone_angle=cone_angle,
    )


@pytest.fixture
def config() -> Config:
    """Default configuration, independent of any config.json."""
    return Config()


@pytest.fixture
def instance(config: Config) -> Instance:
    """Reference instance with one link of each visibility kind."""
    inst = Instance(RADIUS, MU, config=config)
    add_circular(inst, 0.0)  # 0
    add_circular(inst, 10.0)  # 1
    add_circular(inst, 180.0)  # 2
    add_circular(inst, 30.0, inclination=90.0)  # 3
    add_circular(inst, 90.0)  # 4

    inst.add_link(0, 1)
    inst.add_link(0, 2)
    inst.add_link(0, 3)
    inst.add_link(4, 3)
    return inst

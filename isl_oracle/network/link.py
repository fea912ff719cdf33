"""Inter-satellite links.

A link never holds its endpoints directly: it keeps the body list owned by
its instance and two indices into it, so copying an instance only has to
rebind links to the new list.
"""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from isl_oracle.dynamics.orbit import OrbitingBody
from isl_oracle.dynamics.pointing import OrientationSample, normalize, slew_time
from isl_oracle.geometry.occlusion import blocked_mask, is_blocked


@dataclass(frozen=True)
class InterSatelliteLink:
    """Potential line-of-sight connection between two orbiting bodies.

    Attributes:
        bodies: Body list of the owning instance
        index_a: Index of the first endpoint in bodies
        index_b: Index of the second endpoint in bodies
        radius_central_mass: Central body radius used for occlusion [km]
    """

    bodies: Sequence[OrbitingBody] = field(repr=False, compare=False)
    index_a: int
    index_b: int
    radius_central_mass: float

    def __post_init__(self) -> None:
        if self.index_a == self.index_b:
            raise ValueError(f"Link endpoints must differ (both are {self.index_a})")
        for index in (self.index_a, self.index_b):
            if not 0 <= index < len(self.bodies):
                raise ValueError(
                    f"Link endpoint {index} is outside the body list "
                    f"(size {len(self.bodies)})"
                )

    @property
    def body_a(self) -> OrbitingBody:
        return self.bodies[self.index_a]

    @property
    def body_b(self) -> OrbitingBody:
        return self.bodies[self.index_b]

    @property
    def endpoints(self) -> tuple[int, int]:
        return self.index_a, self.index_b

    @property
    def period(self) -> float:
        """Orbital period shared by both endpoints [s]."""
        return self.body_a.period

    def periods_match(self, rel_tol: float = 1e-9) -> bool:
        """Check that both endpoints have the same orbital period."""
        return bool(np.isclose(self.body_a.period, self.body_b.period, rtol=rel_tol, atol=0.0))

    def shares_endpoint(self, other: "InterSatelliteLink") -> bool:
        return bool(set(self.endpoints) & set(other.endpoints))

    def rebind(self, bodies: Sequence[OrbitingBody]) -> "InterSatelliteLink":
        """Create the same link against another body list."""
        return InterSatelliteLink(bodies, self.index_a, self.index_b, self.radius_central_mass)

    def is_blocked(self, t: float) -> bool:
        """Check if the central body occludes the link at time t."""
        return is_blocked(self.body_a.position(t), self.body_b.position(t), self.radius_central_mass)

    def blocked_at(self, times: ArrayLike) -> NDArray[np.bool_]:
        """Occlusion state at each of the given times."""
        times = np.atleast_1d(np.asarray(times, dtype=np.float64))
        return blocked_mask(
            self.body_a.position(times), self.body_b.position(times), self.radius_central_mass
        )

    def distance(self, t: float) -> float:
        """Distance between the endpoints at time t [km]."""
        return float(np.linalg.norm(self.body_b.position(t) - self.body_a.position(t)))

    def required_orientation(self, t: float) -> NDArray[np.float64]:
        """Unit vector from A toward B at time t.

        Body B has to point along the negated vector.
        """
        return normalize(self.body_b.position(t) - self.body_a.position(t))

    def can_align(
        self,
        sample_a: OrientationSample,
        sample_b: OrientationSample,
        t: float,
    ) -> bool:
        """Check if both antennas can face each other at time t.

        Each body starts slewing from its sample direction at the sample
        time and has to reach its required direction by t.

        Args:
            sample_a: Current antenna state of body A
            sample_b: Current antenna state of body B
            t: Time of the transfer [s]

        Returns:
            True if both slews fit before t
        """
        orientation = self.required_orientation(t)
        for sample, body, target in (
            (sample_a, self.body_a, orientation),
            (sample_b, self.body_b, -orientation),
        ):
            needed = slew_time(sample, target, body.rotation_speed_rad, body.cone_angle_rad)
            if sample.time + needed > t:
                return False
        return True

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "bodyA": self.index_a,
            "bodyB": self.index_b,
            "period": self.period,
        }

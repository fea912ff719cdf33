"""Two-body Keplerian orbit model.

Angles are stored in degrees, distances in km and times in seconds.
Positions are expressed in the inertial frame centred on the central body.
"""

from dataclasses import dataclass
from functools import cached_property

import numpy as np
from numpy.typing import ArrayLike, NDArray

from isl_oracle.config import EARTH_MU_KM3_S2, EARTH_RADIUS_KM


# Newton iteration limits for Kepler's equation
KEPLER_TOLERANCE = 1e-12
KEPLER_MAX_ITERATIONS = 50


def solve_kepler(
    mean_anomaly: ArrayLike,
    eccentricity: float,
    tolerance: float = KEPLER_TOLERANCE,
    max_iterations: int = KEPLER_MAX_ITERATIONS,
) -> NDArray[np.float64]:
    """Solve Kepler's equation E - e*sin(E) = M for the eccentric anomaly.

    Args:
        mean_anomaly: Mean anomaly in radians (scalar or array)
        eccentricity: Orbit eccentricity in [0, 1)
        tolerance: Convergence threshold on the Newton step [rad]
        max_iterations: Upper bound on Newton steps

    Returns:
        Eccentric anomaly in radians, same shape as mean_anomaly
    """
    M = np.asarray(mean_anomaly, dtype=np.float64)
    # Highly eccentric orbits converge more reliably starting from pi
    E = M.copy() if eccentricity < 0.8 else np.full_like(M, np.pi)

    for _ in range(max_iterations):
        delta = (E - eccentricity * np.sin(E) - M) / (1.0 - eccentricity * np.cos(E))
        E = E - delta
        if np.all(np.abs(delta) < tolerance):
            break

    return E


@dataclass(frozen=True)
class OrbitingBody:
    """Satellite on a fixed Keplerian orbit with a steerable antenna.

    Attributes:
        height_perigee: Perigee height above the central body surface [km]
        eccentricity: Orbit eccentricity in [0, 1)
        true_anomaly: True anomaly at t=0 [deg]
        raan: Right ascension of the ascending node [deg]
        argument_periapsis: Argument of periapsis [deg]
        inclination: Inclination [deg]
        rotation_speed: Antenna slew rate [deg/s]
        cone_angle: Antenna cone half-angle [deg]
        gravitational_parameter: Central body GM [km^3/s^2]
        radius_central_mass: Central body radius [km]
    """

    height_perigee: float
    eccentricity: float
    true_anomaly: float
    raan: float
    argument_periapsis: float
    inclination: float
    rotation_speed: float
    cone_angle: float = 0.0
    gravitational_parameter: float = EARTH_MU_KM3_S2
    radius_central_mass: float = EARTH_RADIUS_KM

    @property
    def semi_major_axis(self) -> float:
        """Semi-major axis [km]."""
        return (self.radius_central_mass + self.height_perigee) / (1.0 - self.eccentricity)

    @property
    def mean_motion(self) -> float:
        """Mean motion [rad/s]."""
        return float(np.sqrt(self.gravitational_parameter / self.semi_major_axis**3))

    @property
    def period(self) -> float:
        """Orbital period [s]."""
        return 2 * np.pi / self.mean_motion

    @property
    def rotation_speed_rad(self) -> float:
        """Antenna slew rate [rad/s]."""
        return float(np.deg2rad(self.rotation_speed))

    @property
    def cone_angle_rad(self) -> float:
        """Antenna cone half-angle [rad]."""
        return float(np.deg2rad(self.cone_angle))

    def turn_duration(self, angle: float = np.pi) -> float:
        """Time needed to slew the antenna by angle [rad].

        Returns inf for a body that cannot rotate.
        """
        if angle <= 0.0:
            return 0.0
        if self.rotation_speed_rad <= 0.0:
            return np.inf
        return angle / self.rotation_speed_rad

    @cached_property
    def _initial_mean_anomaly(self) -> float:
        nu = np.deg2rad(self.true_anomaly)
        e = self.eccentricity
        E = 2.0 * np.arctan2(np.sqrt(1.0 - e) * np.sin(nu / 2), np.sqrt(1.0 + e) * np.cos(nu / 2))
        return float(E - e * np.sin(E))

    @cached_property
    def _perifocal_to_inertial(self) -> NDArray[np.float64]:
        # 3-1-3 rotation: Rz(-raan) * Rx(-i) * Rz(-argp)
        cos_O = np.cos(np.deg2rad(self.raan))
        sin_O = np.sin(np.deg2rad(self.raan))
        cos_i = np.cos(np.deg2rad(self.inclination))
        sin_i = np.sin(np.deg2rad(self.inclination))
        cos_w = np.cos(np.deg2rad(self.argument_periapsis))
        sin_w = np.sin(np.deg2rad(self.argument_periapsis))

        return np.array([
            [cos_O * cos_w - sin_O * sin_w * cos_i,
             -cos_O * sin_w - sin_O * cos_w * cos_i,
             sin_O * sin_i],
            [sin_O * cos_w + cos_O * sin_w * cos_i,
             -sin_O * sin_w + cos_O * cos_w * cos_i,
             -cos_O * sin_i],
            [sin_w * sin_i,
             cos_w * sin_i,
             cos_i],
        ], dtype=np.float64)

    def true_anomaly_at(self, t: ArrayLike) -> NDArray[np.float64]:
        """True anomaly [rad] at time t [s]."""
        e = self.eccentricity
        M = self._initial_mean_anomaly + self.mean_motion * np.asarray(t, dtype=np.float64)
        M = np.mod(M, 2 * np.pi)
        E = solve_kepler(M, e)
        return 2.0 * np.arctan2(np.sqrt(1.0 + e) * np.sin(E / 2), np.sqrt(1.0 - e) * np.cos(E / 2))

    def position(self, t: ArrayLike) -> NDArray[np.float64]:
        """Cartesian position at time t.

        Args:
            t: Time in seconds since the instance epoch (scalar or 1-D array)

        Returns:
            Position [km], shape (3,) for scalar t or (N, 3) for an array
        """
        e = self.eccentricity
        a = self.semi_major_axis
        nu = self.true_anomaly_at(t)

        r = a * (1.0 - e * e) / (1.0 + e * np.cos(nu))
        r_pqw = np.stack([r * np.cos(nu), r * np.sin(nu), np.zeros_like(nu)], axis=-1)

        return r_pqw @ self._perifocal_to_inertial.T

    def to_dict(self) -> dict[str, float]:
        """Convert orbital elements to a JSON-serializable dict."""
        return {
            "heightPerigee": self.height_perigee,
            "eccentricity": self.eccentricity,
            "trueAnomaly": self.true_anomaly,
            "raan": self.raan,
            "argumentPeriapsis": self.argument_periapsis,
            "inclination": self.inclination,
            "rotationSpeed": self.rotation_speed,
            "coneAngle": self.cone_angle,
            "period": self.period,
        }

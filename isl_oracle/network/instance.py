"""Problem instance: orbiting bodies and the links between them.

File format (comma separated, sections end with a ``===END===`` line):

    radius_central_mass,gravitational_parameter
    ===END===
    index,height_perigee,eccentricity,true_anomaly,raan,argument_periapsis,inclination,rotation_speed
    ...
    ===END===
    body_index_a,body_index_b
    ...

Angles are in degrees, rotation speed in deg/s, distances in km. The body
index column is written for readability and ignored on read; links refer
to bodies by their 0-based load order.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from itertools import combinations
from pathlib import Path
from typing import Optional

import numpy as np

from isl_oracle.config import Config, get_config
from isl_oracle.dynamics.orbit import OrbitingBody
from isl_oracle.network.link import InterSatelliteLink


logger = logging.getLogger(__name__)

SECTION_END = "===END==="

# File sections in reading order
READ_INIT = 0
READ_ORBIT = 1
READ_EDGE = 2


@dataclass
class LineGraph:
    """Conflict graph of an instance.

    Node i is link i of the instance; two nodes are adjacent iff the links
    share an endpoint body.
    """

    adjacency: list[list[int]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.adjacency)

    def neighbors(self, link: int) -> list[int]:
        return self.adjacency[link]

    def degree(self, link: int) -> int:
        return len(self.adjacency[link])

    @property
    def num_edges(self) -> int:
        return sum(len(adj) for adj in self.adjacency) // 2

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {"adjacency": self.adjacency, "numEdges": self.num_edges}


class Instance:
    """Owns the orbiting bodies and the links between them.

    Links address bodies by index into ``bodies``; copying an instance
    rebinds every link to the copy's own body list.

    Attributes:
        radius_central_mass: Central body radius [km]
        gravitational_parameter: Central body GM [km^3/s^2]
        bodies: Orbiting bodies, index = identity
        links: Links between bodies
    """

    def __init__(
        self,
        radius_central_mass: Optional[float] = None,
        gravitational_parameter: Optional[float] = None,
        config: Optional[Config] = None,
    ):
        """Initialize an empty instance.

        Args:
            radius_central_mass: Central body radius in km (overrides config)
            gravitational_parameter: Central body GM in km^3/s^2 (overrides config)
            config: Configuration object (uses global config if None)
        """
        if config is None:
            config = get_config()

        self.radius_central_mass = float(
            radius_central_mass if radius_central_mass is not None else config.central_body.radius
        )
        self.gravitational_parameter = float(
            gravitational_parameter
            if gravitational_parameter is not None
            else config.central_body.gravitational_parameter
        )
        self._check_central_body(self.radius_central_mass, self.gravitational_parameter)

        self.bodies: list[OrbitingBody] = []
        self.links: list[InterSatelliteLink] = []
        self._cone_angle = config.antenna.cone_angle
        self._rotation_speed = config.antenna.default_rotation_speed
        self._prune_step = config.solver.prune_step

    @staticmethod
    def _check_central_body(radius: float, gravitational_parameter: float) -> None:
        if not (math.isfinite(radius) and radius > 0):
            raise ValueError(f"Central body radius must be positive, got {radius}")
        if not (math.isfinite(gravitational_parameter) and gravitational_parameter > 0):
            raise ValueError(
                f"Gravitational parameter must be positive, got {gravitational_parameter}"
            )

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_body(
        self,
        height_perigee: float,
        eccentricity: float,
        true_anomaly: float,
        raan: float,
        argument_periapsis: float,
        inclination: float,
        rotation_speed: float,
        cone_angle: Optional[float] = None,
    ) -> int:
        """Add an orbiting body.

        Args:
            height_perigee: Perigee height above the surface [km]
            eccentricity: Eccentricity in [0, 1)
            true_anomaly: Initial true anomaly [deg]
            raan: Right ascension of the ascending node [deg]
            argument_periapsis: Argument of periapsis [deg]
            inclination: Inclination [deg]
            rotation_speed: Antenna slew rate [deg/s]
            cone_angle: Antenna cone half-angle [deg] (config default if None)

        Returns:
            Index of the new body

        Raises:
            ValueError: If an element is not finite, the orbit is not elliptic
                or its period overflows
        """
        values = [height_perigee, eccentricity, true_anomaly, raan,
                  argument_periapsis, inclination, rotation_speed]
        if not all(math.isfinite(v) for v in values):
            raise ValueError(f"Orbital elements must be finite, got {values}")
        if not 0.0 <= eccentricity < 1.0:
            raise ValueError(f"Eccentricity must be in [0, 1), got {eccentricity}")
        if self.radius_central_mass + height_perigee <= 0:
            raise ValueError(f"Perigee height {height_perigee} km is below the centre")
        if rotation_speed < 0:
            raise ValueError(f"Rotation speed must not be negative, got {rotation_speed}")

        body = OrbitingBody(
            height_perigee=float(height_perigee),
            eccentricity=float(eccentricity),
            true_anomaly=float(true_anomaly),
            raan=float(raan),
            argument_periapsis=float(argument_periapsis),
            inclination=float(inclination),
            rotation_speed=float(rotation_speed),
            cone_angle=float(cone_angle if cone_angle is not None else self._cone_angle),
            gravitational_parameter=self.gravitational_parameter,
            radius_central_mass=self.radius_central_mass,
        )
        try:
            period = body.period
        except OverflowError:
            period = math.inf
        if not math.isfinite(period):
            raise ValueError(f"Orbit with perigee height {height_perigee} km has no finite period")
        self.bodies.append(body)
        return len(self.bodies) - 1

    def add_link(self, index_a: int, index_b: int) -> int:
        """Add a link between two bodies.

        Returns:
            Index of the new link

        Raises:
            ValueError: If the endpoints are equal or out of range
        """
        link = InterSatelliteLink(self.bodies, index_a, index_b, self.radius_central_mass)
        self.links.append(link)
        return len(self.links) - 1

    @classmethod
    def random(
        cls,
        num_bodies: int,
        num_links: int,
        seed: Optional[int] = None,
        config: Optional[Config] = None,
    ) -> "Instance":
        """Generate a random instance of circular orbits at one altitude.

        All bodies share the perigee height so every link has a single
        period.

        Args:
            num_bodies: Number of bodies
            num_links: Number of distinct links
            seed: Random seed
            config: Configuration object (uses global config if None)

        Raises:
            ValueError: If more links are requested than body pairs exist
        """
        max_links = num_bodies * (num_bodies - 1) // 2
        if num_links > max_links:
            raise ValueError(f"Cannot create {num_links} links between {num_bodies} bodies")

        rng = np.random.default_rng(seed)
        instance = cls(config=config)
        height = float(rng.uniform(500.0, 2000.0))

        for _ in range(num_bodies):
            instance.add_body(
                height_perigee=height,
                eccentricity=0.0,
                true_anomaly=float(rng.uniform(0.0, 360.0)),
                raan=float(rng.uniform(0.0, 360.0)),
                argument_periapsis=float(rng.uniform(0.0, 360.0)),
                inclination=float(rng.uniform(0.0, 180.0)),
                rotation_speed=instance._rotation_speed,
            )

        pairs = list(combinations(range(num_bodies), 2))
        for k in sorted(rng.choice(len(pairs), size=num_links, replace=False)):
            instance.add_link(*pairs[k])

        return instance

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def copy(self) -> "Instance":
        """Copy the instance with every link bound to the copy's bodies."""
        self.validate()

        new = Instance.__new__(Instance)
        new.radius_central_mass = self.radius_central_mass
        new.gravitational_parameter = self.gravitational_parameter
        new._cone_angle = self._cone_angle
        new._rotation_speed = self._rotation_speed
        new._prune_step = self._prune_step

        # Bodies are immutable and can be shared; the list must not be
        new.bodies = list(self.bodies)
        new.links = [link.rebind(new.bodies) for link in self.links]
        return new

    def __copy__(self) -> "Instance":
        return self.copy()

    def __deepcopy__(self, memo: dict) -> "Instance":
        return self.copy()

    # ------------------------------------------------------------------
    # Checks and derived structures
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check that every link resolves into this instance's bodies.

        Raises:
            ValueError: If a link is bound to another body list or out of range
        """
        for i, link in enumerate(self.links):
            if link.bodies is not self.bodies:
                raise ValueError(f"Link {i} is bound to a body list outside this instance")
            for index in link.endpoints:
                if not 0 <= index < len(self.bodies):
                    raise ValueError(f"Link {i} refers to missing body {index}")

    def period_mismatches(self, rel_tol: float = 1e-9) -> list[int]:
        """Indices of links whose endpoints have different periods."""
        return [i for i, link in enumerate(self.links) if not link.periods_match(rel_tol)]

    def remove_invalid_edges(self, step: Optional[float] = None) -> list[InterSatelliteLink]:
        """Drop links that are blocked at every sample of one period.

        Args:
            step: Sampling step in seconds (config prune_step if None)

        Returns:
            The remaining links
        """
        step = step if step is not None else self._prune_step
        if step <= 0:
            raise ValueError(f"Step must be positive, got {step}")

        kept = []
        for link in self.links:
            times = np.arange(0.0, link.period, step)
            if link.blocked_at(times).all():
                logger.debug("Removing never visible link %d-%d", link.index_a, link.index_b)
                continue
            kept.append(link)

        removed = len(self.links) - len(kept)
        if removed:
            logger.info("Removed %d of %d link(s) that are never visible", removed, len(self.links))
        self.links = kept
        return list(kept)

    def line_graph(self) -> LineGraph:
        """Build the graph of links that share an endpoint body."""
        links_per_body: dict[int, list[int]] = defaultdict(list)
        for i, link in enumerate(self.links):
            for body in link.endpoints:
                links_per_body[body].append(i)

        adjacency: list[set[int]] = [set() for _ in self.links]
        for members in links_per_body.values():
            for i in members:
                adjacency[i].update(members)

        return LineGraph([sorted(adj - {i}) for i, adj in enumerate(adjacency)])

    def to_dict(self) -> dict:
        """Convert summary to JSON-serializable dict."""
        return {
            "radiusCentralMass": self.radius_central_mass,
            "gravitationalParameter": self.gravitational_parameter,
            "numBodies": len(self.bodies),
            "numLinks": len(self.links),
        }

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def dumps(self) -> str:
        """Serialize to the instance file format.

        Floats are written with repr so that reading the text back gives
        identical values. The format has no antenna cone field, so cone
        angles are not written and a reloaded instance takes the configured
        default for every body.
        """
        self.validate()

        lines = [f"{self.radius_central_mass!r},{self.gravitational_parameter!r}", SECTION_END]
        for i, body in enumerate(self.bodies):
            values = [
                body.height_perigee,
                body.eccentricity,
                body.true_anomaly,
                body.raan,
                body.argument_periapsis,
                body.inclination,
                body.rotation_speed,
            ]
            lines.append(",".join([str(i)] + [repr(v) for v in values]))
        lines.append(SECTION_END)
        for link in self.links:
            lines.append(f"{link.index_a},{link.index_b}")

        return "\n".join(lines) + "\n"

    def save(self, path: Path) -> None:
        """Write the instance to a file."""
        Path(path).write_text(self.dumps())

    @classmethod
    def loads(cls, text: str, config: Optional[Config] = None) -> "Instance":
        """Parse an instance from text, skipping malformed lines."""
        instance, _ = parse_instance(text, config)
        return instance

    @classmethod
    def load(cls, path: Path, config: Optional[Config] = None) -> "Instance":
        """Load an instance from a file, skipping malformed lines.

        Raises:
            OSError: If the file cannot be read
        """
        return cls.loads(Path(path).read_text(), config)

    def _read_header(self, fields: list[str]) -> None:
        if len(fields) < 2:
            raise ValueError("expected radius and gravitational parameter")
        radius, gravitational_parameter = float(fields[0]), float(fields[1])
        self._check_central_body(radius, gravitational_parameter)
        self.radius_central_mass = radius
        self.gravitational_parameter = gravitational_parameter

    def _read_body(self, fields: list[str]) -> None:
        if len(fields) < 8:
            raise ValueError(f"expected 8 fields, got {len(fields)}")
        # fields[0] is the written index; load order defines identity
        self.add_body(*(float(v) for v in fields[1:8]))

    def _read_link(self, fields: list[str]) -> None:
        if len(fields) < 2:
            raise ValueError(f"expected 2 fields, got {len(fields)}")
        index = self.add_link(int(fields[0]), int(fields[1]))
        link = self.links[index]
        if not link.periods_match():
            logger.warning(
                "Link %d-%d joins bodies with different periods (%.3fs vs %.3fs)",
                link.index_a, link.index_b, link.body_a.period, link.body_b.period,
            )


def parse_instance(text: str, config: Optional[Config] = None) -> tuple[Instance, list[str]]:
    """Parse instance text, best effort.

    Lines that cannot be read are skipped and reported; loading continues.

    Args:
        text: Instance file contents
        config: Configuration object (uses global config if None)

    Returns:
        (instance, diagnostics) with one message per skipped line
    """
    instance = Instance(config=config)
    diagnostics: list[str] = []
    readers = {
        READ_INIT: instance._read_header,
        READ_ORBIT: instance._read_body,
        READ_EDGE: instance._read_link,
    }

    mode = READ_INIT
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if line == SECTION_END:
            mode += 1
            continue
        if not line or mode not in readers:
            continue

        try:
            readers[mode]([value.strip() for value in line.split(",")])
        except ValueError as e:
            message = f"line {line_number}: {e}"
            logger.warning("Skipping instance %s", message)
            diagnostics.append(message)

    return instance, diagnostics

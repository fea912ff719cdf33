"""When can a link be used for communication.

Combines the cached visibility windows of each link with the antenna
slew constraint of its endpoints:
1. Look up the next visible instant in the link's periodic cache
2. Return it directly if both antennas can already face each other
3. Otherwise step forward on the sampling grid, jumping over blocked
   stretches via the cache, until visibility and alignment coincide
"""

import logging
import math
from typing import Optional, Protocol

import numpy as np

from isl_oracle.config import Config, get_config
from isl_oracle.dynamics.pointing import OrientationSample
from isl_oracle.network.instance import Instance
from isl_oracle.network.link import InterSatelliteLink
from isl_oracle.prediction.interval_cache import PeriodicIntervalCache
from isl_oracle.prediction.models import (
    CommunicationResult,
    CommunicationStatus,
    VisibilityWindow,
)


logger = logging.getLogger(__name__)


class OrientationProvider(Protocol):
    """Read-only access to the current antenna state of each body."""

    def orientation(self, body_index: int) -> OrientationSample: ...


class StaticOrientations:
    """Orientation provider backed by a plain mapping.

    Bodies missing from the mapping are unconstrained.
    """

    def __init__(self, samples: Optional[dict[int, OrientationSample]] = None):
        self._samples = dict(samples or {})

    def orientation(self, body_index: int) -> OrientationSample:
        return self._samples.get(body_index, OrientationSample())


class VisibilitySolver:
    """Temporal visibility oracle for every link of an instance.

    Caches are built once in the constructor and only read afterwards.
    Rebuild the solver if the instance changes.

    Attributes:
        instance: Instance whose links are queried
        step_size: Sampling resolution [s]
    """

    def __init__(
        self,
        instance: Instance,
        step_size: Optional[float] = None,
        orientations: Optional[OrientationProvider] = None,
        config: Optional[Config] = None,
    ):
        """Initialize solver and build the visibility caches.

        Args:
            instance: Instance to answer queries for
            step_size: Sampling resolution in seconds (overrides config)
            orientations: Antenna state accessor (all unconstrained if None)
            config: Configuration object (uses global config if None)
        """
        if config is None:
            config = get_config()

        self.instance = instance
        self.step_size = step_size if step_size is not None else config.solver.step_size
        if self.step_size <= 0:
            raise ValueError(f"Step size must be positive, got {self.step_size}")

        self._orientations: OrientationProvider = (
            orientations if orientations is not None else StaticOrientations()
        )
        self._caches: tuple[PeriodicIntervalCache, ...] = ()
        self._create_cache()

    def _create_cache(self) -> None:
        self._caches = tuple(
            PeriodicIntervalCache.build(link, self.step_size) for link in self.instance.links
        )
        never_visible = sum(1 for c in self._caches if c.is_empty)
        logger.info(
            "Built visibility caches for %d link(s) at %.3gs resolution (%d never visible)",
            len(self._caches), self.step_size, never_visible,
        )

    @property
    def orientations(self) -> OrientationProvider:
        return self._orientations

    def set_orientations(self, orientations: OrientationProvider) -> None:
        """Replace the antenna state accessor."""
        self._orientations = orientations

    def cache(self, link: int) -> PeriodicIntervalCache:
        """Get the visibility cache of a link.

        Raises:
            IndexError: If the link index is out of range
        """
        if not 0 <= link < len(self._caches):
            raise IndexError(f"Unknown link {link} (instance has {len(self._caches)})")
        return self._caches[link]

    def visibility_windows(self, link: int) -> tuple[VisibilityWindow, ...]:
        """Visibility windows of a link within one period."""
        return self.cache(link).windows

    def lower_bound(self) -> float:
        """Earliest time any link becomes visible, ignoring alignment.

        Links that are never visible are skipped. Returns 0 if no link has a
        finite first-visibility time greater than 0.
        """
        first_times = [
            t for t in (self.next_visibility(i, 0.0) for i in range(len(self._caches)))
            if t < math.inf
        ]
        if not first_times:
            return 0.0
        return min(first_times)

    def makespan_lower_bound(self) -> float:
        """Latest first-visibility time over all links.

        No schedule covering every link can finish before this. Links that
        are never visible are skipped.
        """
        lower_bound = 0.0
        for i in range(len(self._caches)):
            t = self.next_visibility(i, 0.0)
            if lower_bound < t < math.inf:
                lower_bound = t
        return lower_bound

    def next_visibility(self, link: int, t0: float) -> float:
        """Next time at or after t0 at which the link is unblocked.

        Args:
            link: Link index in the instance
            t0: Absolute start time [s]

        Returns:
            Visible time, or inf if the link is never visible
        """
        cache = self.cache(link)
        if cache.is_empty:
            return math.inf
        return cache.query(t0)

    def next_communication(
        self,
        link: int,
        t0: float,
        orientations: Optional[OrientationProvider] = None,
    ) -> float:
        """Next time at or after t0 at which the link can be used.

        Args:
            link: Link index in the instance
            t0: Absolute start time [s]
            orientations: Antenna state accessor overriding the solver's own

        Returns:
            Usable time, or inf if the link is never visible or cannot be
            aligned within the search horizon
        """
        return self.communication(link, t0, orientations).time

    def communication(
        self,
        link: int,
        t0: float,
        orientations: Optional[OrientationProvider] = None,
    ) -> CommunicationResult:
        """Search the next usable instant of a link.

        Args:
            link: Link index in the instance
            t0: Absolute start time [s]
            orientations: Antenna state accessor overriding the solver's own

        Returns:
            CommunicationResult distinguishing feasible, never visible and
            unalignable links
        """
        t_visible = self.next_visibility(link, t0)
        if t_visible == math.inf:
            return CommunicationResult(link, CommunicationStatus.NEVER_VISIBLE)

        provider = orientations if orientations is not None else self._orientations
        edge = self.instance.links[link]
        sample_a = provider.orientation(edge.index_a)
        sample_b = provider.orientation(edge.index_b)

        # Common case: antennas already reachable at first visibility
        if edge.can_align(sample_a, sample_b, t_visible):
            return CommunicationResult(link, CommunicationStatus.FEASIBLE, t_visible)

        horizon = t0 + self._search_span(edge)
        t = t_visible
        while t <= horizon:
            if edge.is_blocked(t):
                # Skip the blocked stretch instead of stepping through it
                t = self.next_visibility(link, t)
                if t > horizon:
                    break

            if edge.can_align(sample_a, sample_b, t) and not edge.is_blocked(t):
                return CommunicationResult(link, CommunicationStatus.FEASIBLE, t)

            t += self.step_size

        logger.debug("Link %d cannot be aligned before t=%.1fs", link, horizon)
        return CommunicationResult(link, CommunicationStatus.UNALIGNABLE)

    @staticmethod
    def _search_span(edge: InterSatelliteLink) -> float:
        """Longest 180 deg turn of either endpoint plus one orbital period.

        Bodies that cannot rotate add no turn allowance.
        """
        turns = [
            body.turn_duration(np.pi)
            for body in (edge.body_a, edge.body_b)
            if body.rotation_speed_rad > 0.0
        ]
        return max(turns, default=0.0) + edge.period

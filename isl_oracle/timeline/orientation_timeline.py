"""Antenna orientation timeline for scheduled communications."""

from bisect import bisect_right, insort
from typing import Any

import numpy as np
from numpy.typing import ArrayLike

from isl_oracle.dynamics.pointing import OrientationSample
from isl_oracle.network.instance import Instance
from isl_oracle.prediction.models import ScheduledCommunication


class OrientationTimeline:
    """Records where each antenna points over time.

    Events are stored per body sorted by time. The latest event of a body
    is its current orientation, which makes the timeline usable as the
    orientation provider of a VisibilitySolver. Scheduling a communication
    points both endpoints along the link at the transfer time.
    """

    def __init__(self, instance: Instance) -> None:
        """Initialize empty timeline for the bodies of an instance."""
        self._instance = instance
        self._events: dict[int, list[OrientationSample]] = {}
        self._communications: list[ScheduledCommunication] = []

    def _check_body(self, body: int) -> None:
        if not 0 <= body < len(self._instance.bodies):
            raise ValueError(f"Unknown body {body} (instance has {len(self._instance.bodies)})")

    def set_orientation(self, body: int, time: float, direction: ArrayLike) -> OrientationSample:
        """Add an orientation event for a body.

        Args:
            body: Body index
            time: Time from which the body points along direction [s]
            direction: Pointing direction (zero vector releases the antenna)

        Returns:
            Created OrientationSample

        Raises:
            ValueError: If the body does not exist
        """
        self._check_body(body)
        sample = OrientationSample(time=time, direction=np.asarray(direction, dtype=np.float64))
        insort(self._events.setdefault(body, []), sample, key=lambda s: s.time)
        return sample

    def orientation(self, body_index: int) -> OrientationSample:
        """Latest orientation of a body (unconstrained if it has none)."""
        events = self._events.get(body_index)
        if not events:
            return OrientationSample()
        return events[-1]

    def orientation_at(self, body: int, t: float) -> OrientationSample:
        """Orientation in effect at time t.

        Args:
            body: Body index
            t: Query time [s]

        Returns:
            Latest event at or before t, unconstrained if there is none
        """
        events = self._events.get(body, [])
        i = bisect_right(events, t, key=lambda s: s.time)
        if i == 0:
            return OrientationSample()
        return events[i - 1]

    def record_communication(self, link: int, time: float) -> ScheduledCommunication:
        """Commit a transfer over a link at the given time.

        Both endpoints are pointed at each other from time onward.

        Args:
            link: Link index in the instance
            time: Transfer time [s]

        Returns:
            Created ScheduledCommunication

        Raises:
            ValueError: If the antennas cannot be aligned by then
        """
        edge = self._instance.links[link]
        sample_a = self.orientation_at(edge.index_a, time)
        sample_b = self.orientation_at(edge.index_b, time)
        if not edge.can_align(sample_a, sample_b, time):
            raise ValueError(f"Link {link} cannot be aligned by t={time:.1f}s")

        needed = edge.required_orientation(time)
        self.set_orientation(edge.index_a, time, needed)
        self.set_orientation(edge.index_b, time, -needed)

        communication = ScheduledCommunication(
            link=link, time=time, body_a=edge.index_a, body_b=edge.index_b
        )
        insort(self._communications, communication, key=lambda c: c.time)
        return communication

    def clear(self) -> None:
        """Clear all events and communications."""
        self._events.clear()
        self._communications.clear()

    @property
    def communications(self) -> list[ScheduledCommunication]:
        """Scheduled communications in time order."""
        return list(self._communications)

    @property
    def event_count(self) -> int:
        """Total number of orientation events."""
        return sum(len(events) for events in self._events.values())

    def to_dict_list(self) -> list[dict[str, Any]]:
        """Serialize scheduled communications."""
        return [c.to_dict() for c in self._communications]

"""Per-link cache of visibility windows over one orbital period.

Link geometry repeats every period, so the windows of a single period are
enough to answer visibility queries at any simulation time.
"""

import bisect
import logging
import math
from typing import Protocol, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from isl_oracle.prediction.models import VisibilityWindow


logger = logging.getLogger(__name__)


class SampledLink(Protocol):
    """What the cache needs from a link."""

    @property
    def period(self) -> float: ...

    def blocked_at(self, times: ArrayLike) -> NDArray[np.bool_]: ...


class PeriodicIntervalCache:
    """Visibility windows of one link within [0, period).

    Windows are sorted, disjoint and separated by at least one blocked
    sample. The cache is immutable once built and safe to share between
    threads.
    """

    def __init__(
        self,
        period: float,
        windows: Sequence[VisibilityWindow],
        step_size: float,
    ):
        """Initialize cache from precomputed windows.

        Args:
            period: Orbital period of the link [s]
            windows: Sorted, disjoint windows within [0, period)
            step_size: Sampling resolution the windows were built with [s]

        Raises:
            ValueError: If the windows are unsorted, overlapping or out of range
        """
        if period <= 0:
            raise ValueError(f"Period must be positive, got {period}")

        previous_end = -math.inf
        for window in windows:
            if not (0.0 <= window.start < window.end <= period):
                raise ValueError(f"Window {window} is outside [0, {period})")
            if window.start <= previous_end:
                raise ValueError(f"Window {window} overlaps or touches its predecessor")
            previous_end = window.end

        self._period = period
        self._windows = tuple(windows)
        self._step_size = step_size
        self._starts = [w.start for w in self._windows]
        self._ends = [w.end for w in self._windows]

    @classmethod
    def build(cls, link: SampledLink, step_size: float) -> "PeriodicIntervalCache":
        """Sample a link over one period and record its unblocked runs.

        A run still visible at the last sample is closed at the period;
        wrap-around into the next period is resolved at query time.

        Args:
            link: Link to sample
            step_size: Sampling resolution [s]

        Returns:
            Cache holding one window per maximal unblocked run
        """
        if step_size <= 0:
            raise ValueError(f"Step size must be positive, got {step_size}")

        period = link.period
        times = np.arange(0.0, period, step_size)
        visible = ~link.blocked_at(times)

        # Indices where the visibility flag flips
        padded = np.concatenate(([False], visible, [False]))
        edges = np.flatnonzero(padded[1:] != padded[:-1])
        run_starts, run_ends = edges[::2], edges[1::2]

        windows = []
        for first, stop in zip(run_starts, run_ends):
            start = float(times[first])
            end = float(times[stop]) if stop < len(times) else period
            windows.append(VisibilityWindow(start, end))

        logger.debug(
            "Cached %d visibility window(s) over period %.1fs (%d samples)",
            len(windows), period, len(times),
        )
        return cls(period, windows, step_size)

    @property
    def period(self) -> float:
        return self._period

    @property
    def step_size(self) -> float:
        return self._step_size

    @property
    def windows(self) -> tuple[VisibilityWindow, ...]:
        return self._windows

    @property
    def is_empty(self) -> bool:
        """True if the link is never visible."""
        return not self._windows

    @property
    def visible_fraction(self) -> float:
        """Fraction of the period during which the link is visible."""
        return sum(w.duration() for w in self._windows) / self._period

    def _window_index(self, t: float) -> int:
        """Index of the window containing phase t, or -1."""
        i = bisect.bisect_right(self._starts, t) - 1
        if i >= 0 and t < self._ends[i]:
            return i
        return -1

    def next_event(self, t: float, want_visible: bool = True) -> float:
        """Next phase at which the link is (or becomes) visible or blocked.

        Args:
            t: Phase within [0, period)
            want_visible: True for the next visible phase, False for the
                next blocked phase

        Returns:
            t itself if the wanted state already holds, otherwise the next
            matching window boundary within [0, period). A value smaller
            than t means the answer lies in the next period. inf if the
            wanted state never occurs.
        """
        if not self._windows:
            return math.inf if want_visible else t

        inside = self._window_index(t) >= 0
        if inside == want_visible:
            return t

        if want_visible:
            i = bisect.bisect_left(self._starts, t)
            return self._starts[i] if i < len(self._starts) else self._starts[0]

        i = self._window_index(t)
        end = self._ends[i]
        if end < self._period:
            return end
        # Window runs into the next period; it joins the one starting at 0
        if self._starts[0] > 0.0:
            return 0.0
        if len(self._windows) == 1:
            return math.inf
        return self._ends[0]

    def _split(self, t0: float) -> tuple[int, float]:
        """Split absolute time into (period count, phase)."""
        n_periods = math.floor(t0 / self._period)
        phase = t0 - n_periods * self._period
        if phase >= self._period:
            n_periods += 1
            phase -= self._period
        return n_periods, max(phase, 0.0)

    def query(self, t0: float) -> float:
        """Absolute time of the next visible instant at or after t0.

        Args:
            t0: Absolute simulation time [s]

        Returns:
            Earliest visible time >= t0, or inf if the link is never visible
        """
        if not self._windows:
            return math.inf

        n_periods, phase = self._split(t0)
        t_next = self.next_event(phase, want_visible=True)
        if t_next == phase:
            return t0
        if t_next < phase:
            n_periods += 1

        return max(t0, n_periods * self._period + t_next)

    def contains(self, t0: float) -> bool:
        """Check if absolute time t0 falls inside a cached window."""
        _, phase = self._split(t0)
        return self._window_index(phase) >= 0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "period": self._period,
            "stepSize": self._step_size,
            "visibleFraction": self.visible_fraction,
            "windows": [w.to_dict() for w in self._windows],
        }

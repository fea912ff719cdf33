"""Tests for the periodic visibility interval cache."""

import math

import numpy as np
import pytest
from hypothesis import assume, given, strategies as st

from conftest import ALWAYS_VISIBLE, BLOCKED_AT_START, NEVER_VISIBLE, VISIBLE_AT_START
from isl_oracle.prediction.interval_cache import PeriodicIntervalCache
from isl_oracle.prediction.models import VisibilityWindow


class FakeLink:
    """Link stand-in with scripted occlusion over a 100 s period.

    Blocked for 25 <= phase < 50 and phase >= 90.
    """

    period = 100.0

    def blocked_at(self, times):
        phase = np.mod(np.asarray(times, dtype=np.float64), self.period)
        return ((phase >= 25.0) & (phase < 50.0)) | (phase >= 90.0)


@pytest.fixture
def cache():
    return PeriodicIntervalCache.build(FakeLink(), step_size=1.0)


class TestCacheBuild:
    """Tests for sampling a link into windows."""

    def test_windows(self, cache):
        assert cache.windows == (VisibilityWindow(0.0, 25.0), VisibilityWindow(50.0, 90.0))
        assert cache.period == 100.0
        assert cache.step_size == 1.0

    def test_visible_fraction(self, cache):
        assert cache.visible_fraction == pytest.approx(0.65)

    def test_run_to_end_closes_at_period(self):
        """A run still visible at the last sample ends at the period."""

        class OpenEnded(FakeLink):
            def blocked_at(self, times):
                phase = np.asarray(times, dtype=np.float64)
                return phase < 80.0

        cache = PeriodicIntervalCache.build(OpenEnded(), step_size=1.0)
        assert cache.windows == (VisibilityWindow(80.0, 100.0),)

    def test_never_visible_is_empty(self):
        class Dead(FakeLink):
            def blocked_at(self, times):
                return np.ones(len(times), dtype=bool)

        cache = PeriodicIntervalCache.build(Dead(), step_size=1.0)
        assert cache.is_empty
        assert cache.visible_fraction == 0.0
        assert cache.query(123.0) == math.inf
        assert cache.next_event(5.0) == math.inf
        assert cache.next_event(5.0, want_visible=False) == 5.0

    def test_invalid_step(self):
        with pytest.raises(ValueError, match="Step size must be positive"):
            PeriodicIntervalCache.build(FakeLink(), step_size=0.0)

    def test_to_dict(self, cache):
        data = cache.to_dict()
        assert data["period"] == 100.0
        assert data["stepSize"] == 1.0
        assert data["windows"][1] == {"start": 50.0, "end": 90.0, "duration": 40.0}


class TestCacheValidation:
    """Tests for window invariants."""

    def test_overlapping_windows_rejected(self):
        windows = [VisibilityWindow(0.0, 30.0), VisibilityWindow(20.0, 40.0)]
        with pytest.raises(ValueError, match="overlaps"):
            PeriodicIntervalCache(100.0, windows, 1.0)

    def test_touching_windows_rejected(self):
        """Adjacent windows must be merged into one."""
        windows = [VisibilityWindow(0.0, 30.0), VisibilityWindow(30.0, 40.0)]
        with pytest.raises(ValueError, match="touches"):
            PeriodicIntervalCache(100.0, windows, 1.0)

    def test_window_outside_period_rejected(self):
        with pytest.raises(ValueError, match="outside"):
            PeriodicIntervalCache(100.0, [VisibilityWindow(50.0, 120.0)], 1.0)

    def test_non_positive_period_rejected(self):
        with pytest.raises(ValueError, match="Period must be positive"):
            PeriodicIntervalCache(0.0, [], 1.0)


class TestNextEvent:
    """Tests for within-period boundary lookup."""

    @pytest.mark.parametrize(
        "t,want_visible,expected",
        [
            (10.0, True, 10.0),  # already visible
            (30.0, True, 50.0),  # next window start
            (95.0, True, 0.0),  # wraps to the first window
            (10.0, False, 25.0),  # end of current window
            (60.0, False, 90.0),
            (30.0, False, 30.0),  # already blocked
            (25.0, True, 50.0),  # window end is exclusive
            (50.0, True, 50.0),  # window start is inclusive
        ],
    )
    def test_next_event(self, cache, t, want_visible, expected):
        assert cache.next_event(t, want_visible) == expected

    @pytest.mark.parametrize(
        "windows,t,expected",
        [
            ([(0.0, 20.0), (70.0, 100.0)], 80.0, 20.0),  # joins the window at 0
            ([(10.0, 20.0), (70.0, 100.0)], 80.0, 0.0),  # blocked right at the wrap
            ([(0.0, 100.0)], 40.0, math.inf),  # never blocked
        ],
    )
    def test_blocked_across_wrap(self, windows, t, expected):
        """Windows reaching the period end do not report the period itself."""
        cache = PeriodicIntervalCache(100.0, [VisibilityWindow(s, e) for s, e in windows], 1.0)
        assert cache.next_event(t, want_visible=False) == expected


class TestQuery:
    """Tests for absolute-time queries."""

    @pytest.mark.parametrize(
        "t0,expected",
        [
            (10.0, 10.0),
            (30.0, 50.0),
            (95.0, 100.0),
            (230.0, 250.0),
            (1000.0, 1000.0),
            (1089.5, 1089.5),
        ],
    )
    def test_query(self, cache, t0, expected):
        assert cache.query(t0) == pytest.approx(expected)

    def test_contains(self, cache):
        assert cache.contains(210.0)
        assert not cache.contains(230.0)
        assert not cache.contains(-5.0)

    @given(st.floats(min_value=0.0, max_value=1e6, allow_nan=False))
    def test_query_never_before_t0(self, t0):
        cache = PeriodicIntervalCache.build(FakeLink(), step_size=1.0)
        result = cache.query(t0)
        assert result >= t0
        assert result - t0 <= 40.0 + 1e-6

    @given(
        st.floats(min_value=0.0, max_value=100.0, exclude_max=True),
        st.integers(min_value=0, max_value=1000),
    )
    def test_query_is_periodic(self, phase, n):
        """Shifting t0 by whole periods shifts the answer by the same amount."""
        cache = PeriodicIntervalCache.build(FakeLink(), step_size=1.0)
        # Stay clear of window boundaries where rounding can flip the phase
        assume(all(abs(phase - b) > 1e-6 for b in (0.0, 25.0, 50.0, 90.0, 100.0)))
        assert cache.query(phase + n * 100.0) == pytest.approx(
            cache.query(phase) + n * 100.0, abs=1e-6
        )


class TestCacheOnRealLinks:
    """Tests for caches built from orbiting bodies."""

    def test_always_visible_single_window(self, instance):
        link = instance.links[ALWAYS_VISIBLE]
        cache = PeriodicIntervalCache.build(link, step_size=10.0)
        assert cache.windows == (VisibilityWindow(0.0, link.period),)
        assert cache.visible_fraction == pytest.approx(1.0)

    def test_never_visible(self, instance):
        cache = PeriodicIntervalCache.build(instance.links[NEVER_VISIBLE], step_size=10.0)
        assert cache.is_empty

    def test_intermittent_link(self, instance):
        """Equatorial vs polar: three windows, the last wrapping into the next period."""
        link = instance.links[VISIBLE_AT_START]
        cache = PeriodicIntervalCache.build(link, step_size=1.0)
        assert len(cache.windows) == 3
        assert cache.windows[0].start == 0.0
        assert cache.windows[-1].end == link.period
        assert 0.0 < cache.visible_fraction < 1.0

    def test_windows_agree_with_exact_test(self, instance):
        """Away from boundaries, cached visibility matches the exact occlusion test."""
        link = instance.links[BLOCKED_AT_START]
        step = 1.0
        cache = PeriodicIntervalCache.build(link, step_size=step)
        for t in np.linspace(0.0, 3 * link.period, 301):
            near_boundary = any(
                abs(t % link.period - b) <= step
                for w in cache.windows
                for b in (w.start, w.end)
            )
            if near_boundary:
                continue
            assert cache.contains(t) == (not link.is_blocked(t))

"""Tests for inter-satellite links."""

import numpy as np
import pytest

from conftest import ALWAYS_VISIBLE, BLOCKED_AT_START, NEVER_VISIBLE, VISIBLE_AT_START
from isl_oracle.dynamics.pointing import OrientationSample
from isl_oracle.network.link import InterSatelliteLink


def facing_samples(link: InterSatelliteLink, t: float = 0.0):
    """Orientation samples with both antennas already on the link at t."""
    needed = link.required_orientation(t)
    return OrientationSample(t, needed), OrientationSample(t, -needed)


class TestLinkConstruction:
    """Tests for link validation and endpoint resolution."""

    def test_endpoints_resolve_through_body_list(self, instance):
        link = instance.links[BLOCKED_AT_START]
        assert link.endpoints == (4, 3)
        assert link.body_a is instance.bodies[4]
        assert link.body_b is instance.bodies[3]

    def test_self_loop_rejected(self, instance):
        with pytest.raises(ValueError, match="must differ"):
            InterSatelliteLink(instance.bodies, 1, 1, instance.radius_central_mass)

    def test_out_of_range_rejected(self, instance):
        with pytest.raises(ValueError, match="outside the body list"):
            InterSatelliteLink(instance.bodies, 0, 99, instance.radius_central_mass)

    def test_rebind(self, instance):
        """Rebinding keeps the indices but resolves against the new list."""
        link = instance.links[ALWAYS_VISIBLE]
        bodies = list(instance.bodies)
        rebound = link.rebind(bodies)
        assert rebound.bodies is bodies
        assert rebound.endpoints == link.endpoints
        assert rebound == link

    def test_shares_endpoint(self, instance):
        links = instance.links
        assert links[ALWAYS_VISIBLE].shares_endpoint(links[NEVER_VISIBLE])
        assert links[VISIBLE_AT_START].shares_endpoint(links[BLOCKED_AT_START])
        assert not links[ALWAYS_VISIBLE].shares_endpoint(links[BLOCKED_AT_START])

    def test_to_dict(self, instance):
        data = instance.links[NEVER_VISIBLE].to_dict()
        assert data["bodyA"] == 0
        assert data["bodyB"] == 2
        assert data["period"] == pytest.approx(instance.bodies[0].period)


class TestLinkPeriod:
    """Tests for link periods."""

    def test_period_is_endpoint_period(self, instance):
        link = instance.links[ALWAYS_VISIBLE]
        assert link.period == link.body_a.period
        assert link.periods_match()

    def test_mismatched_periods(self, instance):
        """Bodies at different heights have different periods."""
        index = instance.add_body(2000.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0)
        link = instance.links[instance.add_link(0, index)]
        assert not link.periods_match()
        assert link.period == instance.bodies[0].period


class TestLinkOcclusion:
    """Tests for link occlusion state."""

    def test_states_at_start(self, instance):
        assert not instance.links[ALWAYS_VISIBLE].is_blocked(0.0)
        assert instance.links[NEVER_VISIBLE].is_blocked(0.0)
        assert not instance.links[VISIBLE_AT_START].is_blocked(0.0)
        assert instance.links[BLOCKED_AT_START].is_blocked(0.0)

    def test_same_plane_neighbours_never_blocked(self, instance):
        link = instance.links[ALWAYS_VISIBLE]
        times = np.linspace(0.0, link.period, 200)
        assert not link.blocked_at(times).any()

    def test_opposite_bodies_always_blocked(self, instance):
        link = instance.links[NEVER_VISIBLE]
        times = np.linspace(0.0, link.period, 200)
        assert link.blocked_at(times).all()

    def test_blocked_at_matches_is_blocked(self, instance):
        link = instance.links[BLOCKED_AT_START]
        times = np.linspace(0.0, link.period, 37)
        mask = link.blocked_at(times)
        assert mask.tolist() == [link.is_blocked(t) for t in times]

    def test_blocked_at_scalar(self, instance):
        """A scalar time gives a one-element mask."""
        assert instance.links[NEVER_VISIBLE].blocked_at(0.0).tolist() == [True]

    def test_distance(self, instance):
        """Bodies 10 deg apart on one circle are a chord apart."""
        a = instance.bodies[0].semi_major_axis
        expected = 2 * a * np.sin(np.deg2rad(5.0))
        assert instance.links[ALWAYS_VISIBLE].distance(0.0) == pytest.approx(expected)


class TestLinkAlignment:
    """Tests for antenna alignment on a link."""

    def test_required_orientation_points_a_to_b(self, instance):
        link = instance.links[ALWAYS_VISIBLE]
        needed = link.required_orientation(100.0)
        offset = link.body_b.position(100.0) - link.body_a.position(100.0)
        np.testing.assert_allclose(needed, offset / np.linalg.norm(offset))
        assert np.linalg.norm(needed) == pytest.approx(1.0)

    def test_unconstrained_can_align(self, instance):
        link = instance.links[ALWAYS_VISIBLE]
        assert link.can_align(OrientationSample(), OrientationSample(), 0.0)

    def test_facing_can_align(self, instance):
        link = instance.links[VISIBLE_AT_START]
        assert link.can_align(*facing_samples(link), 0.0)

    def test_swapped_directions_cannot_align(self, instance):
        """Both antennas pointing the wrong way need a half turn first."""
        link = instance.links[ALWAYS_VISIBLE]
        sample_a, sample_b = facing_samples(link)
        swapped_a = OrientationSample(0.0, sample_b.direction)
        swapped_b = OrientationSample(0.0, sample_a.direction)
        assert not link.can_align(swapped_a, swapped_b, 0.0)
        # 1 deg/s: a half turn takes about three minutes
        assert link.can_align(swapped_a, swapped_b, 200.0)

    def test_busy_until_sample_time(self, instance):
        """An antenna is not available before its sample time."""
        link = instance.links[ALWAYS_VISIBLE]
        sample_a, sample_b = facing_samples(link)
        late_a = OrientationSample(500.0, sample_a.direction)
        assert not link.can_align(late_a, sample_b, 0.0)

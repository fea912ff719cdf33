"""Geometric line-of-sight tests."""

from isl_oracle.geometry.occlusion import blocked_mask, is_blocked

__all__ = ["is_blocked", "blocked_mask"]

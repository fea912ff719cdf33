"""Visibility and communication prediction module."""

from isl_oracle.prediction.models import (
    CommunicationResult,
    CommunicationStatus,
    ScheduledCommunication,
    VisibilityWindow,
)
from isl_oracle.prediction.interval_cache import PeriodicIntervalCache
from isl_oracle.prediction.visibility_solver import (
    OrientationProvider,
    StaticOrientations,
    VisibilitySolver,
)

__all__ = [
    "CommunicationResult",
    "CommunicationStatus",
    "ScheduledCommunication",
    "VisibilityWindow",
    "PeriodicIntervalCache",
    "OrientationProvider",
    "StaticOrientations",
    "VisibilitySolver",
]

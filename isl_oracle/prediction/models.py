"""Data models for visibility and communication prediction."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class VisibilityWindow:
    """Half-open interval [start, end) during which a link is unblocked.

    Times are phases within one orbital period (seconds).
    """

    start: float
    end: float

    def duration(self) -> float:
        """Get window duration in seconds."""
        return self.end - self.start

    def contains(self, t: float) -> bool:
        return self.start <= t < self.end

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "start": self.start,
            "end": self.end,
            "duration": self.duration(),
        }


class CommunicationStatus(str, Enum):
    """Outcome of a communication search."""

    FEASIBLE = "feasible"
    NEVER_VISIBLE = "never_visible"
    UNALIGNABLE = "unalignable"


@dataclass(frozen=True)
class CommunicationResult:
    """Earliest usable instant of a link.

    time is inf unless status is FEASIBLE.
    """

    link: int
    status: CommunicationStatus
    time: float = math.inf

    @property
    def feasible(self) -> bool:
        return self.status is CommunicationStatus.FEASIBLE

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict (inf becomes None)."""
        return {
            "link": self.link,
            "status": self.status.value,
            "time": finite_or_none(self.time),
        }


def finite_or_none(t: float) -> Optional[float]:
    """Map the inf sentinel to None for JSON output."""
    return None if math.isinf(t) else t


@dataclass(frozen=True)
class ScheduledCommunication:
    """Transfer over a link committed to the orientation timeline."""

    link: int
    time: float
    body_a: int
    body_b: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "link": self.link,
            "time": self.time,
            "bodyA": self.body_a,
            "bodyB": self.body_b,
        }

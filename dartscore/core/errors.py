"""
Failure and rejection types for the detection pipeline.

Two kinds of negative outcome exist:
- Rejection: an expected result of the heuristics (a hand instead of a dart,
  a silhouette at the wrong angle, a tip outside the board). Returned as a
  value, logged, and the scan window is abandoned.
- GeometryError: the region data could not answer a question it must always
  answer (no angle-table entry, missing mask). Raised, and scoring halts
  until the session is reset.
"""
from dataclasses import dataclass
from enum import Enum


class DetectionError(Exception):
    """Base class for detection engine errors."""


class GeometryError(DetectionError):
    """Region masks or the angle table could not resolve a point."""


class RegionModelError(DetectionError):
    """Region data is malformed (bad mask shape, gaps in the angle table)."""


class RejectionReason(str, Enum):
    NO_CONTOUR = "no_contour"
    CONTOUR_TOO_LARGE = "contour_too_large"
    ASPECT_RATIO = "aspect_ratio"
    TIP_OUTSIDE_BOARD = "tip_outside_board"


@dataclass(frozen=True)
class Rejection:
    """A validation rejection - not an error, the candidate simply isn't a dart."""
    reason: RejectionReason
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.reason.value}: {self.detail}"
        return self.reason.value

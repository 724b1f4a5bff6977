"""
Scoring module for dart detection.

Resolves a tip point and its angle around the bullseye into a score using
the calibrated region masks. The angle picks the segment; mask membership
picks the multiplier.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from dartscore.core.errors import GeometryError, Rejection, RejectionReason
from dartscore.core.regions import RegionModel

logger = logging.getLogger(__name__)

# First match wins; ring masks may overlap at their borders.
# (region, fixed score or None, multiplier)
ZONE_PRECEDENCE = (
    ("inner_bull", 50, 1),
    ("outer_bull", 25, 1),
    ("triple", None, 3),
    ("double", None, 2),
    ("single", None, 1),
)


@dataclass(frozen=True)
class ScoreResult:
    score: int
    segment: int  # 1-20, 0 for bulls and misses
    multiplier: int  # 0 for a miss
    zone: str  # region name or 'miss'
    angle: float

    @property
    def is_miss(self) -> bool:
        return self.zone == "miss"


class SegmentScorer:
    """
    Calculate dart scores from tip positions in frame coordinates.
    """

    def __init__(self, regions: RegionModel):
        self.regions = regions

    def segment_for_angle(self, angle: float) -> int:
        entry = self.regions.angle_ranges.lookup(angle)
        if entry is None:
            raise GeometryError(f"No angle-range entry matches {angle:.2f} degrees")
        return entry.value

    def score(self, tip: Tuple[float, float], angle: float) -> Union[ScoreResult, Rejection]:
        """
        Score a tip.

        Args:
            tip: (x, y) tip position in processed-frame pixels
            angle: Tip angle around the board center, degrees [0, 360)

        Returns:
            ScoreResult, or a Rejection when the tip is off the board
        """
        if not self.regions.contains("dartboard", tip):
            return Rejection(
                RejectionReason.TIP_OUTSIDE_BOARD,
                f"tip ({tip[0]:.0f}, {tip[1]:.0f}) not in dartboard mask"
            )

        segment = self.segment_for_angle(angle)

        for zone, fixed, multiplier in ZONE_PRECEDENCE:
            if self.regions.contains(zone, tip):
                if fixed is not None:
                    return ScoreResult(score=fixed, segment=0, multiplier=multiplier, zone=zone, angle=angle)
                return ScoreResult(
                    score=segment * multiplier,
                    segment=segment,
                    multiplier=multiplier,
                    zone=zone,
                    angle=angle
                )

        return ScoreResult(score=0, segment=0, multiplier=0, zone="miss", angle=angle)

    def hit_mask(self, result: ScoreResult) -> Optional[np.ndarray]:
        """The mask of the zone that produced the score (None for a miss)."""
        if result.is_miss:
            return None
        return self.regions.mask(result.zone)

"""
Motion classification by changed-pixel count.

The outer classification (one per incoming frame) uses three bands:

    [0, candidate_lo)                -> STABLE
    [candidate_lo, candidate_hi]     -> CANDIDATE  (dart-sized change)
    (candidate_hi, inf)              -> UNPLUGGING (hand pulling darts)

Inside a scan window two narrower bands refine this: counts inside the
motion band are MOTION (something still flying/vibrating, skip the frame),
and counts inside the settled band mean the dart has come to rest.
"""
import logging
from enum import Enum
from typing import Tuple

import numpy as np

from dartscore.core.background_model import count_changed
from dartscore.core.config import DetectionConfig

logger = logging.getLogger(__name__)


class MotionStatus(str, Enum):
    STABLE = "stable"
    CANDIDATE = "candidate"
    MOTION = "motion"
    UNPLUGGING = "unplugging"


def in_band(count: int, band: Tuple[int, int]) -> bool:
    """Inclusive band test."""
    return band[0] <= count <= band[1]


class MotionClassifier:
    """Pure classification of pixel counts against configured bands."""

    def __init__(self, config: DetectionConfig):
        self.candidate_band = config.candidate_band
        self.motion_band = config.motion_band
        self.settled_band = config.settled_band

    def classify(self, count: int, in_scan: bool = False) -> MotionStatus:
        """
        Classify a changed-pixel count.

        Precedence: UNPLUGGING > MOTION > CANDIDATE > STABLE. MOTION is only
        reported inside a scan window.
        """
        if count > self.candidate_band[1]:
            return MotionStatus.UNPLUGGING
        if in_scan and in_band(count, self.motion_band):
            return MotionStatus.MOTION
        if in_band(count, self.candidate_band):
            return MotionStatus.CANDIDATE
        return MotionStatus.STABLE

    def classify_mask(self, mask: np.ndarray, in_scan: bool = False) -> MotionStatus:
        return self.classify(count_changed(mask), in_scan=in_scan)

    def is_settled(self, count: int) -> bool:
        return in_band(count, self.settled_band)

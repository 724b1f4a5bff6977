"""
Dart detection events.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict

from dartscore.core.scoring import ScoreResult
from dartscore.core.tip_extractor import TipGeometry


@dataclass(frozen=True)
class DartEvent:
    """Represents one detected dart at rest on the board."""
    frame_index: int
    geometry: TipGeometry
    result: ScoreResult
    contour_area: float
    aspect_ratio: float
    timestamp: float = field(default_factory=time.time)

    @property
    def score(self) -> int:
        return self.result.score

    @property
    def tip(self):
        return self.geometry.tip

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_index": self.frame_index,
            "score": self.result.score,
            "segment": self.result.segment,
            "multiplier": self.result.multiplier,
            "zone": self.result.zone,
            "angle": self.result.angle,
            "tip": list(self.geometry.tip),
            "bbox_top_left": list(self.geometry.bbox_top_left),
            "bbox_bottom_right": list(self.geometry.bbox_bottom_right),
            "flight_center": list(self.geometry.flight_center),
            "contour_area": self.contour_area,
            "aspect_ratio": self.aspect_ratio,
            "timestamp": self.timestamp,
        }

"""
Region model: the calibrated masks and angle-range table a session scores against.

Both are produced by calibration and treated as read-only for the lifetime
of a scoring session.
"""
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from dartscore.core.errors import GeometryError, RegionModelError
from dartscore.core.tip_extractor import find_board_center

logger = logging.getLogger(__name__)

REGION_NAMES: Tuple[str, ...] = (
    "dartboard", "inner_bull", "outer_bull", "triple", "double", "single"
)


class AngleRange(NamedTuple):
    min_deg: float
    max_deg: float
    value: int


class AngleRangeTable:
    """
    Ordered (min_deg, max_deg, segment) entries covering [0, 360).

    Bounds are inclusive; where two entries share a boundary angle the one
    listed first wins.
    """

    def __init__(self, entries: Iterable[Sequence]):
        self._entries: Tuple[AngleRange, ...] = tuple(
            AngleRange(float(e[0]), float(e[1]), int(e[2])) for e in entries
        )
        self._validate()

    def _validate(self):
        if not self._entries:
            raise RegionModelError("Angle-range table is empty")
        for e in self._entries:
            if e.min_deg > e.max_deg:
                raise RegionModelError(f"Angle range {e} has min > max")

        # Coverage check on a sorted copy; lookup order stays as given
        covered = 0.0
        for e in sorted(self._entries, key=lambda r: r.min_deg):
            if e.min_deg > covered:
                raise RegionModelError(
                    f"Angle-range table has a gap between {covered} and {e.min_deg} degrees"
                )
            covered = max(covered, e.max_deg)
        if covered < 360.0:
            raise RegionModelError(f"Angle-range table stops at {covered} degrees")

    @property
    def entries(self) -> Tuple[AngleRange, ...]:
        return self._entries

    def lookup(self, angle: float) -> Optional[AngleRange]:
        """First entry containing the angle, or None."""
        for e in self._entries:
            if e.min_deg <= angle <= e.max_deg:
                return e
        return None

    def to_list(self) -> List[List[float]]:
        return [[e.min_deg, e.max_deg, e.value] for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)


class RegionModel:
    """Named binary masks plus the angle table, all at processed-frame resolution."""

    def __init__(self, masks: Dict[str, np.ndarray], angle_ranges: AngleRangeTable):
        missing = [name for name in REGION_NAMES if name not in masks]
        if missing:
            raise RegionModelError(f"Region model is missing masks: {missing}")

        shapes = {masks[name].shape[:2] for name in REGION_NAMES}
        if len(shapes) != 1:
            raise RegionModelError(f"Region masks have inconsistent shapes: {sorted(shapes)}")

        self._masks: Dict[str, np.ndarray] = {}
        for name in REGION_NAMES:
            m = masks[name]
            if m.ndim == 3:
                m = m[:, :, 0]
            binary = (m > 0).astype(np.uint8) * 255
            binary.setflags(write=False)
            self._masks[name] = binary

        self.angle_ranges = angle_ranges
        self.shape: Tuple[int, int] = shapes.pop()
        self._center: Optional[Tuple[float, float]] = None

    def mask(self, name: str) -> np.ndarray:
        try:
            return self._masks[name]
        except KeyError:
            raise GeometryError(f"Unknown region mask '{name}'") from None

    def contains(self, name: str, point: Tuple[float, float]) -> bool:
        """Pixel membership test; a point outside the frame is a geometry failure."""
        mask = self.mask(name)
        x, y = int(round(point[0])), int(round(point[1]))
        h, w = mask.shape
        if not (0 <= x < w and 0 <= y < h):
            raise GeometryError(f"Point ({x}, {y}) lies outside the {w}x{h} region masks")
        return bool(mask[y, x])

    @property
    def board_center(self) -> Tuple[float, float]:
        """Angular reference center, located once from the inner-bull mask."""
        if self._center is None:
            self._center = find_board_center(self.mask("inner_bull"))
            logger.info(f"Board center at ({self._center[0]:.1f}, {self._center[1]:.1f})")
        return self._center

    def describe(self) -> Dict[str, object]:
        return {
            "width": self.shape[1],
            "height": self.shape[0],
            "regions": {name: int(np.count_nonzero(m)) for name, m in self._masks.items()},
            "angle_ranges": len(self.angle_ranges),
        }

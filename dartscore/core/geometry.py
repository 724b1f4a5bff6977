"""
Dartboard Geometry Constants

Standard dartboard dimensions in millimeters and the image-space angle
convention used by the scorer.

Angles are measured in image coordinates: 0 degrees points from the board
center toward the right edge of the frame, and angles grow clockwise on
screen (the image y axis points down). Segment 20 therefore sits at 270.
"""
from typing import Dict, List, Tuple

import cv2
import numpy as np

# Segment order clockwise from top (20 at 12 o'clock)
DARTBOARD_SEGMENTS: List[int] = [
    20, 1, 18, 4, 13, 6, 10, 15, 2, 17,
    3, 19, 7, 16, 8, 11, 14, 9, 12, 5
]

# Radii in millimeters (standard dartboard)
BULL_RADIUS_MM = 6.35           # Inner bull (50 points)
OUTER_BULL_RADIUS_MM = 15.9     # Outer bull (25 points)
TRIPLE_INNER_RADIUS_MM = 99.0   # Inner edge of triple ring
TRIPLE_OUTER_RADIUS_MM = 107.0  # Outer edge of triple ring
DOUBLE_INNER_RADIUS_MM = 162.0  # Inner edge of double ring
DOUBLE_OUTER_RADIUS_MM = 170.0  # Outer edge of double ring (board edge)

# Degrees per segment
DEGREES_PER_SEGMENT = 18.0  # 360 / 20

# Segment 20 is centered at 12 o'clock, which is 270 degrees in image space
TOP_ANGLE_DEG = 270.0


def standard_angle_ranges() -> List[Tuple[float, float, int]]:
    """
    Angle-range table for an upright board, sorted by start angle.

    Each segment spans 18 degrees centred on its direction. The segment that
    straddles 0 degrees is split into two entries so the table covers
    [0, 360) with no wrap-around entry.
    """
    half = DEGREES_PER_SEGMENT / 2
    entries = []
    for idx, segment in enumerate(DARTBOARD_SEGMENTS):
        center = (TOP_ANGLE_DEG + idx * DEGREES_PER_SEGMENT) % 360
        lo, hi = center - half, center + half
        if lo < 0:
            entries.append((lo + 360, 360.0, segment))
            entries.append((0.0, hi, segment))
        else:
            entries.append((lo, hi, segment))
    return sorted(entries, key=lambda e: e[0])


def ring_masks(
    shape: Tuple[int, int],
    center: Tuple[int, int],
    board_radius_px: float
) -> Dict[str, np.ndarray]:
    """
    Build region masks for a face-on board from the standard radii.

    Scales the millimeter radii so the outer double edge lands on
    board_radius_px. Real sessions load masks drawn by calibration; this is
    for synthetic boards and tests.

    Args:
        shape: (height, width) of the frame
        center: (x, y) pixel position of the bullseye
        board_radius_px: Radius of the outer double ring in pixels

    Returns:
        Dict of region name -> uint8 mask (255 inside)
    """
    scale = board_radius_px / DOUBLE_OUTER_RADIUS_MM
    cx, cy = int(round(center[0])), int(round(center[1]))

    def disk(radius_mm: float) -> np.ndarray:
        m = np.zeros(shape, dtype=np.uint8)
        cv2.circle(m, (cx, cy), int(round(radius_mm * scale)), 255, -1)
        return m

    def ring(inner_mm: float, outer_mm: float) -> np.ndarray:
        return cv2.bitwise_and(disk(outer_mm), cv2.bitwise_not(disk(inner_mm)))

    board = disk(DOUBLE_OUTER_RADIUS_MM)
    return {
        "dartboard": board,
        "inner_bull": disk(BULL_RADIUS_MM),
        "outer_bull": ring(BULL_RADIUS_MM, OUTER_BULL_RADIUS_MM),
        "triple": ring(TRIPLE_INNER_RADIUS_MM, TRIPLE_OUTER_RADIUS_MM),
        "double": ring(DOUBLE_INNER_RADIUS_MM, DOUBLE_OUTER_RADIUS_MM),
        "single": ring(OUTER_BULL_RADIUS_MM, DOUBLE_OUTER_RADIUS_MM),
    }

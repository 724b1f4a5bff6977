"""
Tip & angle extraction from a resolved dart silhouette.

The merged silhouette of a dart is wedge-shaped: the flight is the wide,
heavy end and the tip is the narrow end touching the board. We take the
principal axis of the convex hull, and the hull point at the end of the axis
furthest from the centroid is the tip (the centroid is pulled toward the
flight).
"""
import math
import logging
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from dartscore.core.errors import GeometryError

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True)
class TipGeometry:
    """Tip, bounding box corners and flight center of a dart silhouette."""
    tip: Point
    bbox_top_left: Point
    bbox_bottom_right: Point
    flight_center: Point


def find_convex_hull(contour: np.ndarray) -> np.ndarray:
    return cv2.convexHull(contour)


def find_arrow_tip(hull: np.ndarray) -> TipGeometry:
    """
    Locate the dart tip on a convex hull.

    Args:
        hull: Convex hull points (N x 1 x 2), as returned by cv2.convexHull

    Returns:
        TipGeometry with the tip, bounding box corners and flight center
    """
    pts = hull.reshape(-1, 2).astype(np.float64)
    if len(pts) == 0:
        raise GeometryError("Cannot locate a tip on an empty hull")

    x, y, w, h = cv2.boundingRect(hull.reshape(-1, 1, 2).astype(np.int32))
    top_left = (float(x), float(y))
    bottom_right = (float(x + w), float(y + h))

    m = cv2.moments(hull.reshape(-1, 1, 2).astype(np.float32))
    if m["m00"] > 1e-6:
        centroid = np.array([m["m10"] / m["m00"], m["m01"] / m["m00"]])
        # Principal axis from second-order central moments
        theta = 0.5 * math.atan2(2 * m["mu11"], m["mu20"] - m["mu02"])
    else:
        # Degenerate (line-like) hull: fall back to point statistics
        centroid = pts.mean(axis=0)
        spread = pts - centroid
        cov = spread.T @ spread
        theta = 0.5 * math.atan2(2 * cov[0, 1], cov[0, 0] - cov[1, 1])

    axis = np.array([math.cos(theta), math.sin(theta)])
    proj = (pts - centroid) @ axis

    i_min, i_max = int(np.argmin(proj)), int(np.argmax(proj))
    if abs(proj[i_max]) >= abs(proj[i_min]):
        tip_idx, tip_sign = i_max, 1.0
    else:
        tip_idx, tip_sign = i_min, -1.0

    flight_side = pts[proj * tip_sign < 0]
    flight = flight_side.mean(axis=0) if len(flight_side) else centroid

    return TipGeometry(
        tip=(float(pts[tip_idx][0]), float(pts[tip_idx][1])),
        bbox_top_left=top_left,
        bbox_bottom_right=bottom_right,
        flight_center=(float(flight[0]), float(flight[1])),
    )


def extract_tip(contour: np.ndarray) -> TipGeometry:
    """Tip geometry of a resolved dart contour."""
    return find_arrow_tip(find_convex_hull(contour))


def find_board_center(inner_bull_mask: np.ndarray) -> Point:
    """
    Center of the bullseye, from the largest inner-bull contour.

    Uses the contour centroid; if the contour has no area (a single pixel or
    a line) the center of its minimum enclosing circle is used instead.
    """
    binary = (inner_bull_mask > 0).astype(np.uint8) * 255
    contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    if not contours:
        raise GeometryError("Inner-bull mask is empty; cannot locate board center")

    largest = max(contours, key=cv2.contourArea)
    m = cv2.moments(largest)
    if m["m00"] > 0:
        return (m["m10"] / m["m00"], m["m01"] / m["m00"])
    (cx, cy), _ = cv2.minEnclosingCircle(largest)
    return (float(cx), float(cy))


def calculate_angle(center: Point, point: Point) -> float:
    """
    Angle of point around center in degrees, [0, 360).

    0 degrees points toward the right edge of the frame; angles grow
    clockwise on screen because image y grows downward.
    """
    dx = point[0] - center[0]
    dy = point[1] - center[1]
    angle = math.degrees(math.atan2(dy, dx))
    angle = angle % 360.0
    # -0.0 % 360 and tiny negatives can round up to exactly 360
    return 0.0 if angle >= 360.0 else angle


def rotate_point(center: Point, point: Point, radians: float) -> Point:
    """Rotate point around center (image space, clockwise on screen)."""
    c, s = math.cos(radians), math.sin(radians)
    dx, dy = point[0] - center[0], point[1] - center[1]
    return (center[0] + dx * c - dy * s, center[1] + dx * s + dy * c)

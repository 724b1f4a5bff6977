"""
Contour resolution: turn a noisy change mask into one dart silhouette.

Background subtraction often splits a dart into pieces (shaft, flight,
shadow). A close/dilate/erode pass smooths the mask and bridges the gaps,
then every remaining component above the minimum area is merged into a
single contour and checked against the size and aspect-ratio gates.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from dartscore.core.config import DetectionConfig
from dartscore.core.errors import Rejection, RejectionReason

logger = logging.getLogger(__name__)

CLOSE_KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
DILATE_KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (5, 5))
ERODE_KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (5, 5))


@dataclass(frozen=True)
class ResolvedContour:
    """A merged dart contour that passed the validation gates."""
    points: np.ndarray
    area: float
    bounding_rect: Tuple[int, int, int, int]  # x, y, w, h

    @property
    def aspect_ratio(self) -> float:
        _, _, w, h = self.bounding_rect
        return w / h


def morph_smooth(mask: np.ndarray, close_iter: int = 1, dilate_iter: int = 1, erode_iter: int = 1) -> np.ndarray:
    """Close (3x3), dilate (5x5), erode (5x5). Returns a new mask."""
    out = (mask > 0).astype(np.uint8) * 255
    out = cv2.morphologyEx(out, cv2.MORPH_CLOSE, CLOSE_KERNEL, iterations=close_iter)
    out = cv2.morphologyEx(out, cv2.MORPH_DILATE, DILATE_KERNEL, iterations=dilate_iter)
    out = cv2.morphologyEx(out, cv2.MORPH_ERODE, ERODE_KERNEL, iterations=erode_iter)
    return out


def extract_merged_contour(mask: np.ndarray, min_area: float) -> Optional[np.ndarray]:
    """
    Merge all external contours above min_area into one contour.

    A single qualifying contour is returned unchanged; several are merged
    into the convex hull of all their points.
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    kept = [c for c in contours if cv2.contourArea(c) > min_area]
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0]
    kept.sort(key=cv2.contourArea, reverse=True)
    return cv2.convexHull(np.vstack(kept))


def aspect_ratio_in_bounds(ratio: float, low: float, high: float) -> bool:
    return low <= ratio <= high


class ContourResolver:
    """Validates a candidate mask as a single dart-shaped contour."""

    def __init__(self, config: DetectionConfig):
        self.config = config

    def resolve(self, candidate_mask: np.ndarray) -> Union[ResolvedContour, Rejection]:
        cfg = self.config
        smoothed = morph_smooth(
            candidate_mask,
            close_iter=cfg.close_iterations,
            dilate_iter=cfg.dilate_iterations,
            erode_iter=cfg.erode_iterations,
        )

        merged = extract_merged_contour(smoothed, cfg.min_contour_area)
        if merged is None:
            return Rejection(RejectionReason.NO_CONTOUR, f"no contour above {cfg.min_contour_area}px")

        area = cv2.contourArea(merged)
        if area > cfg.max_merged_contour_area:
            return Rejection(
                RejectionReason.CONTOUR_TOO_LARGE,
                f"merged area {area:.0f} > {cfg.max_merged_contour_area:.0f}"
            )

        x, y, w, h = cv2.boundingRect(merged)
        ratio = w / h
        if not aspect_ratio_in_bounds(ratio, cfg.min_aspect_ratio, cfg.max_aspect_ratio):
            return Rejection(
                RejectionReason.ASPECT_RATIO,
                f"aspect ratio {ratio:.2f} outside [{cfg.min_aspect_ratio}, {cfg.max_aspect_ratio}]"
            )

        return ResolvedContour(points=merged, area=area, bounding_rect=(x, y, w, h))

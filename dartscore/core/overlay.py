"""
Debug overlay for detected darts.

The overlay shows only the hit region of the frame, with the dart's
bounding box, flight center (green) and tip (red), plus the two edges of the
segment wedge the tip fell in. Publishing is rate-limited: overlays that
arrive faster than the minimum interval are dropped rather than delaying the
detection pipeline.
"""
import math
import time
import logging
import threading
from typing import Callable, Optional

import cv2
import numpy as np

from dartscore.core.events import DartEvent
from dartscore.core.frame_source import Frame
from dartscore.core.regions import RegionModel
from dartscore.core.scoring import SegmentScorer
from dartscore.core.sinks import DetectionSink
from dartscore.core.tip_extractor import rotate_point

logger = logging.getLogger(__name__)


def _pt(p) -> tuple:
    return (int(round(p[0])), int(round(p[1])))


def render_dart_overlay(image: np.ndarray, event: DartEvent, regions: RegionModel) -> np.ndarray:
    """Draw a dart event onto a copy of image, masked to the hit region."""
    if len(image.shape) == 2:
        canvas = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    else:
        canvas = image.copy()

    hit_mask = SegmentScorer(regions).hit_mask(event.result)
    if hit_mask is not None and hit_mask.shape[:2] == canvas.shape[:2]:
        canvas = cv2.bitwise_and(canvas, canvas, mask=hit_mask)

    g = event.geometry
    cv2.rectangle(canvas, _pt(g.bbox_top_left), _pt(g.bbox_bottom_right), (125, 125, 20), 2)
    cv2.circle(canvas, _pt(g.flight_center), 3, (0, 255, 0), -1)
    cv2.circle(canvas, _pt(g.tip), 3, (0, 0, 255), -1)

    center = regions.board_center
    cv2.circle(canvas, _pt(center), 1, (255, 0, 0), -1)
    entry = regions.angle_ranges.lookup(event.result.angle)
    if entry is not None:
        edge = (canvas.shape[1], center[1])
        p_min = rotate_point(center, edge, math.radians(entry.min_deg))
        p_max = rotate_point(center, edge, math.radians(entry.max_deg))
        cv2.line(canvas, _pt(center), _pt(p_min), (0, 255, 0), 2)
        cv2.line(canvas, _pt(center), _pt(p_max), (200, 0, 0), 2)

    return canvas


class OverlayPublisher(DetectionSink):
    """
    Keeps the most recent overlay image for the presentation layer.

    Thread-safe; latest() returns a JPEG-encodable copy.
    """

    def __init__(self, regions: RegionModel, min_interval_s: float = 0.5,
                 clock: Callable[[], float] = time.monotonic):
        self.regions = regions
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self._last_published = -math.inf
        self.dropped = 0

    def on_dart(self, event: DartEvent, frame: Frame):
        now = self._clock()
        if now - self._last_published < self.min_interval_s:
            self.dropped += 1
            logger.debug(f"Overlay for frame {event.frame_index} dropped (rate limit)")
            return
        overlay = render_dart_overlay(frame.image, event, self.regions)
        with self._lock:
            self._latest = overlay
            self._last_published = now

    def latest(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._latest is None else self._latest.copy()

    def latest_jpeg(self, quality: int = 85) -> Optional[bytes]:
        image = self.latest()
        if image is None:
            return None
        ok, buffer = cv2.imencode('.jpg', image, [cv2.IMWRITE_JPEG_QUALITY, quality])
        return buffer.tobytes() if ok else None

    def clear(self):
        with self._lock:
            self._latest = None
            self._last_published = -math.inf

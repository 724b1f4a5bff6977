"""
Candidate scanning: find the frame where a thrown dart has come to rest.

A dart hitting the board shows up as a short burst of changed pixels
followed by a still silhouette. When a frame opens a scan window we read
forward (at most one second of frames), remember the latest dart-sized
change mask, and as soon as the change count drops into the settled band
resolve that remembered mask into a dart. Scoring at the moment of impact
would measure a shaft that is still vibrating.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union

import numpy as np

from dartscore.core.background_model import count_changed, preprocess_frame
from dartscore.core.config import DetectionConfig
from dartscore.core.contour_resolver import ContourResolver, ResolvedContour
from dartscore.core.errors import Rejection
from dartscore.core.events import DartEvent
from dartscore.core.frame_source import Frame, FrameSource
from dartscore.core.motion_classifier import MotionClassifier, MotionStatus
from dartscore.core.regions import RegionModel
from dartscore.core.scoring import SegmentScorer
from dartscore.core.tip_extractor import calculate_angle, extract_tip

logger = logging.getLogger(__name__)

StatusListener = Callable[[Frame, MotionStatus, int], None]


class ScanStatus(str, Enum):
    DETECTED = "detected"
    REJECTED = "rejected"
    UNPLUGGING = "unplugging"
    NO_EVENT = "no_event"


@dataclass
class ScanResult:
    status: ScanStatus
    event: Optional[DartEvent] = None
    rejection: Optional[Rejection] = None
    frames_read: int = 0
    last_frame: Optional[Frame] = None  # preprocessed frame the scan stopped on


def scan_window(start: int, fps: float, frame_count: int) -> Tuple[int, int]:
    """
    Inclusive (first, last) frame indices scanned after the frame at start.

    One second of frames, clipped to the last frame of a recording.
    """
    last = start + int(fps)
    if frame_count != -1:
        last = min(last, frame_count - 1)
    return start + 1, last


class CandidateScanner:
    """Bounded forward scan over upcoming frames."""

    def __init__(
        self,
        regions: RegionModel,
        config: DetectionConfig,
        classifier: Optional[MotionClassifier] = None,
        resolver: Optional[ContourResolver] = None,
        scorer: Optional[SegmentScorer] = None,
    ):
        self.regions = regions
        self.config = config
        self.classifier = classifier or MotionClassifier(config)
        self.resolver = resolver or ContourResolver(config)
        self.scorer = scorer or SegmentScorer(regions)

    def scan(
        self,
        source: FrameSource,
        subtractor,
        start: int,
        seed_mask: Optional[np.ndarray] = None,
        on_status: Optional[StatusListener] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """
        Read forward from start looking for a settled dart.

        Args:
            source: Frame source positioned just after the frame at start
            subtractor: Background model with apply(frame) -> mask
            start: Index of the frame that opened the window
            seed_mask: Change mask of the opening frame, used as the first candidate
            on_status: Called with (frame, status, changed_pixels) for every frame read
            stop_event: Checked between frames; a set event ends the scan

        Returns:
            ScanResult. GeometryError propagates to the caller.
        """
        first, last = scan_window(start, source.fps, source.frame_count)
        candidate = seed_mask.copy() if seed_mask is not None else None
        frames_read = 0
        frame = None

        for i in range(first, last + 1):
            if stop_event is not None and stop_event.is_set():
                logger.info(f"Scan cancelled at frame {i}")
                return ScanResult(ScanStatus.NO_EVENT, frames_read=frames_read, last_frame=frame)

            raw = source.read()
            if raw is None:
                logger.info(f"Source exhausted at frame {i} during scan")
                return ScanResult(ScanStatus.NO_EVENT, frames_read=frames_read, last_frame=frame)
            frames_read += 1

            image = preprocess_frame(raw.image, self.config.resize_scale, self.config.gaussian_kernel)
            frame = Frame(index=raw.index, image=image, timestamp=raw.timestamp)
            mask = subtractor.apply(image)
            count = count_changed(mask)
            status = self.classifier.classify(count, in_scan=True)
            if on_status is not None:
                on_status(frame, status, count)

            if status == MotionStatus.MOTION:
                logger.debug(f"[frame={frame.index}] Seems to be in motion (diff={count}); ignored")
                continue

            if status == MotionStatus.UNPLUGGING:
                logger.info(f"[frame={frame.index}] Seems to be unplugging darts (diff={count})")
                return ScanResult(ScanStatus.UNPLUGGING, frames_read=frames_read, last_frame=frame)

            if candidate is not None and self.classifier.is_settled(count):
                outcome = self.evaluate(frame.index, candidate)
                if isinstance(outcome, Rejection):
                    logger.info(f"[frame={frame.index}] Candidate rejected: {outcome}")
                    return ScanResult(ScanStatus.REJECTED, rejection=outcome,
                                      frames_read=frames_read, last_frame=frame)
                logger.info(
                    f"[frame={frame.index}] Dart detected: {outcome.result.zone} "
                    f"{outcome.result.segment}x{outcome.result.multiplier}={outcome.score} "
                    f"(angle={outcome.result.angle:.1f})"
                )
                return ScanResult(ScanStatus.DETECTED, event=outcome,
                                  frames_read=frames_read, last_frame=frame)

            if status == MotionStatus.CANDIDATE:
                candidate = mask.copy()

        return ScanResult(ScanStatus.NO_EVENT, frames_read=frames_read, last_frame=frame)

    def evaluate(self, frame_index: int, candidate_mask: np.ndarray) -> Union[DartEvent, Rejection]:
        """Resolve a candidate mask into a scored DartEvent."""
        resolved = self.resolver.resolve(candidate_mask)
        if isinstance(resolved, Rejection):
            return resolved
        logger.info(
            f"Dart arrow detected at frame {frame_index} with aspect ratio {resolved.aspect_ratio:.2f}"
        )
        return self.evaluate_contour(frame_index, resolved)

    def evaluate_contour(self, frame_index: int, contour: ResolvedContour) -> Union[DartEvent, Rejection]:
        geometry = extract_tip(contour.points)
        angle = calculate_angle(self.regions.board_center, geometry.tip)
        logger.debug(f"Tip at {geometry.tip}, angle {angle:.2f} @ frame {frame_index}")

        result = self.scorer.score(geometry.tip, angle)
        if isinstance(result, Rejection):
            return result
        return DartEvent(
            frame_index=frame_index,
            geometry=geometry,
            result=result,
            contour_area=contour.area,
            aspect_ratio=contour.aspect_ratio,
        )

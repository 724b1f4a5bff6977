"""
Turn state machine: sequences detection across a scoring session.

    AWAITING_REFERENCE --warm-up done--> SCANNING
    SCANNING --unplugging--> SKIP_UNTIL_ZERO_DIFF
    SKIP_UNTIL_ZERO_DIFF --frame matches reference--> SCANNING (scores cleared)
    any --replay()--> AWAITING_REFERENCE

A turn holds up to three scores. While darts are being pulled out a hand
fills the frame; scanning is suspended until the board looks like the
reference frame again, which is also when the next turn starts.
"""
import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from dartscore.core.background_model import (
    BackgroundSubtractor,
    count_changed,
    is_diff_zero,
    make_reference,
    preprocess_frame,
)
from dartscore.core.candidate_scanner import CandidateScanner, ScanResult, ScanStatus
from dartscore.core.config import DetectionConfig
from dartscore.core.errors import GeometryError
from dartscore.core.events import DartEvent
from dartscore.core.frame_source import Frame, FrameSource
from dartscore.core.motion_classifier import MotionClassifier, MotionStatus
from dartscore.core.regions import RegionModel
from dartscore.core.sinks import DetectionSink

logger = logging.getLogger(__name__)

DARTS_PER_TURN = 3

SubtractorFactory = Callable[[DetectionConfig, float, int], object]


class TurnState(str, Enum):
    AWAITING_REFERENCE = "awaiting_reference"
    SCANNING = "scanning"
    SKIP_UNTIL_ZERO_DIFF = "skip_until_zero_diff"


class ScoringSession:
    """
    Runs the detection pipeline over one frame source.

    The region model and config are injected; the session owns the
    background model, the reference frame and the turn's score slots.
    """

    def __init__(
        self,
        regions: RegionModel,
        source: FrameSource,
        config: Optional[DetectionConfig] = None,
        sink: Optional[DetectionSink] = None,
        subtractor_factory: Optional[SubtractorFactory] = None,
    ):
        self.regions = regions
        self.source = source
        self.config = config or DetectionConfig()
        self.sink = sink or DetectionSink()
        self._subtractor_factory = subtractor_factory or BackgroundSubtractor.from_config

        self.classifier = MotionClassifier(self.config)
        self.scanner = CandidateScanner(regions, self.config, classifier=self.classifier)

        self.state = TurnState.AWAITING_REFERENCE
        self.scores: List[Optional[int]] = [None] * DARTS_PER_TURN
        self.events: List[DartEvent] = []
        self.reference: Optional[np.ndarray] = None
        self.failure: Optional[GeometryError] = None
        self.last_status: MotionStatus = MotionStatus.STABLE
        self.frames_seen = 0
        self._subtractor = self._new_subtractor()

    def _new_subtractor(self):
        return self._subtractor_factory(self.config, self.source.fps, self.source.frame_count)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def reset_score(self):
        """Clear the score slots (start a new turn)."""
        logger.info("Resetting score")
        self.scores = [None] * DARTS_PER_TURN
        self.events = []
        self.sink.on_scores(list(self.scores))

    def replay(self):
        """Discard the reference and background model and start over."""
        logger.info("Replay: discarding reference frame, awaiting new reference")
        self.reference = None
        self.failure = None
        self.frames_seen = 0
        self.last_status = MotionStatus.STABLE
        self._subtractor = self._new_subtractor()
        self._transition(TurnState.AWAITING_REFERENCE)
        self.reset_score()

    reset = replay

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------

    def step(self, stop_event: Optional[threading.Event] = None) -> bool:
        """Read and process one frame. False once the source is exhausted."""
        frame = self.source.read()
        if frame is None:
            return False
        self.process_frame(frame, stop_event=stop_event)
        return True

    def run(self, stop_event: Optional[threading.Event] = None) -> int:
        """Process frames until the source ends or stop_event is set."""
        processed = 0
        while stop_event is None or not stop_event.is_set():
            if not self.step(stop_event):
                logger.info("Frame source exhausted")
                break
            processed += 1
        return processed

    def process_frame(self, frame: Frame, stop_event: Optional[threading.Event] = None) -> Optional[MotionStatus]:
        """
        Handle one incoming frame.

        Returns:
            The frame's motion status, or None while scoring is halted
        """
        if self.failure is not None:
            return None

        image = preprocess_frame(frame.image, self.config.resize_scale, self.config.gaussian_kernel)
        processed = Frame(index=frame.index, image=image, timestamp=frame.timestamp)
        mask = self._subtractor.apply(image)
        try:
            self._check_shape(image, mask)
        except GeometryError as e:
            self._fail(e)
            return None
        count = count_changed(mask)
        self.frames_seen += 1

        if self.state == TurnState.AWAITING_REFERENCE:
            if self.frames_seen >= self.config.warmup_for(self.source.fps):
                self.reference = make_reference(image, self.config.reference_blur_kernel)
                logger.info(f"Reference frame captured at frame {frame.index}")
                self._transition(TurnState.SCANNING)
            return self._report(processed, MotionStatus.STABLE, count)

        status = self.classifier.classify(count)

        if self.state == TurnState.SKIP_UNTIL_ZERO_DIFF:
            self._check_zero_diff(processed, count)
            return self._report(processed, status, count)

        self._report(processed, status, count)
        if status == MotionStatus.UNPLUGGING:
            logger.info(f"[frame={frame.index}] Seems to be unplugging darts (diff={count})")
            self._transition(TurnState.SKIP_UNTIL_ZERO_DIFF)
        elif status == MotionStatus.CANDIDATE:
            self._scan(processed, mask, stop_event)
        return status

    def _check_shape(self, image: np.ndarray, mask: np.ndarray):
        """Frames and change masks must line up pixel for pixel with the region masks."""
        expected = self.regions.shape
        if image.shape[:2] != expected:
            raise GeometryError(
                f"Processed frame is {image.shape[1]}x{image.shape[0]} but region masks are "
                f"{expected[1]}x{expected[0]}; check camera resolution and resize_scale"
            )
        if mask.shape[:2] != expected:
            raise GeometryError(
                f"Change mask is {mask.shape[1]}x{mask.shape[0]} but region masks are {expected[1]}x{expected[0]}"
            )

    def _check_zero_diff(self, frame: Frame, count: int):
        if count > 0:
            return
        if is_diff_zero(self.reference, frame.image,
                        self.config.reference_blur_kernel, self.config.reference_diff_threshold):
            logger.info(f"[frame={frame.index}] Board matches reference again; new turn")
            self.reset_score()
            self._transition(TurnState.SCANNING)

    def _scan(self, frame: Frame, mask: np.ndarray, stop_event: Optional[threading.Event]):
        try:
            result = self.scanner.scan(
                self.source,
                self._subtractor,
                start=frame.index,
                seed_mask=mask,
                on_status=self._on_scan_status,
                stop_event=stop_event,
            )
        except GeometryError as e:
            self._fail(e)
            return
        self.frames_seen += result.frames_read
        self._handle_scan_result(result)

    def _on_scan_status(self, frame: Frame, status: MotionStatus, count: int):
        self._report(frame, status, count)

    def _handle_scan_result(self, result: ScanResult):
        if result.status == ScanStatus.DETECTED:
            self._record(result.event, result.last_frame)
        elif result.status == ScanStatus.UNPLUGGING:
            logger.info("Skipping until the board matches the reference frame")
            self._transition(TurnState.SKIP_UNTIL_ZERO_DIFF)
        elif result.status == ScanStatus.REJECTED:
            logger.info(f"Scan window rejected: {result.rejection}")
        else:
            logger.debug("Scan window ended without a dart")

    def _record(self, event: DartEvent, frame: Frame):
        try:
            slot = self.scores.index(None)
        except ValueError:
            slot = DARTS_PER_TURN - 1
            logger.warning(f"Turn already has {DARTS_PER_TURN} darts; overwriting the last score")
            self.events = self.events[:slot]
        self.scores[slot] = event.score
        self.events.append(event)
        self.sink.on_dart(event, Frame(frame.index, frame.image.copy(), frame.timestamp))
        self.sink.on_scores(list(self.scores))

    def _fail(self, error: GeometryError):
        logger.error(f"Geometry failure, scoring halted until reset: {error}")
        self.failure = error
        self.sink.on_error(error)

    def _transition(self, new_state: TurnState):
        if new_state != self.state:
            logger.info(f"Turn state: {self.state.value} -> {new_state.value}")
            self.state = new_state

    def _report(self, frame: Frame, status: MotionStatus, count: int) -> MotionStatus:
        self.last_status = status
        self.sink.on_status(frame, status, count)
        return status

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "status": self.last_status.value,
            "scores": list(self.scores),
            "frame": self.source.position,
            "fps": self.source.fps,
            "frame_count": self.source.frame_count,
            "has_reference": self.reference is not None,
            "failure": str(self.failure) if self.failure else None,
            "darts": [e.to_dict() for e in self.events],
        }

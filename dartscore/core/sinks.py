"""
Presentation sinks: where a scoring session reports what it sees.

Sinks receive copies; nothing the session keeps is handed out by reference.
"""
import logging
from typing import Iterable, List, Optional

from dartscore.core.errors import DetectionError
from dartscore.core.events import DartEvent
from dartscore.core.frame_source import Frame
from dartscore.core.motion_classifier import MotionStatus

logger = logging.getLogger(__name__)


class DetectionSink:
    """No-op base; override the hooks you need."""

    def on_status(self, frame: Frame, status: MotionStatus, changed_pixels: int):
        pass

    def on_scores(self, scores: List[Optional[int]]):
        pass

    def on_dart(self, event: DartEvent, frame: Frame):
        pass

    def on_error(self, error: DetectionError):
        pass


class LoggingSink(DetectionSink):
    def on_scores(self, scores):
        logger.info(f"Scores: {['-' if s is None else s for s in scores]}")

    def on_dart(self, event, frame):
        r = event.result
        logger.info(f"Dart @ frame {event.frame_index}: {r.zone} {r.segment}x{r.multiplier}={r.score}")

    def on_error(self, error):
        logger.error(f"Scoring halted: {error}")


class CompositeSink(DetectionSink):
    """Fans out to several sinks; a failing sink is logged and skipped."""

    def __init__(self, sinks: Iterable[DetectionSink]):
        self.sinks = list(sinks)

    def _each(self, hook: str, *args):
        for sink in self.sinks:
            try:
                getattr(sink, hook)(*args)
            except Exception as e:
                logger.error(f"Sink {type(sink).__name__}.{hook} failed: {e}", exc_info=True)

    def on_status(self, frame, status, changed_pixels):
        self._each("on_status", frame, status, changed_pixels)

    def on_scores(self, scores):
        self._each("on_scores", scores)

    def on_dart(self, event, frame):
        self._each("on_dart", event, frame)

    def on_error(self, error):
        self._each("on_error", error)

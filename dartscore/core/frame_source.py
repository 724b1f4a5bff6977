"""
Frame sources: a live camera or video file via OpenCV, or an in-memory
sequence of images for recorded stills and tests.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30.0


@dataclass(frozen=True)
class Frame:
    """A single image sample with its 0-based position in the stream."""
    index: int
    image: np.ndarray
    timestamp: float


class FrameSource:
    """Sequential, blocking frame reader."""

    fps: float = DEFAULT_FPS
    frame_count: int = -1  # -1 when unknown (live)

    def __init__(self):
        self.position = 0  # index of the next frame to be read

    def read(self) -> Optional[Frame]:
        """Next frame, or None once the source is exhausted."""
        image = self._read_image()
        if image is None:
            return None
        frame = Frame(index=self.position, image=image, timestamp=self.position / self.fps)
        self.position += 1
        return frame

    def _read_image(self) -> Optional[np.ndarray]:
        raise NotImplementedError

    def release(self):
        pass


class VideoFrameSource(FrameSource):
    """Camera index or video file, read through cv2.VideoCapture."""

    def __init__(self, source: Union[int, str]):
        super().__init__()
        self.source = source
        if isinstance(source, int):
            self._cap = cv2.VideoCapture(source, cv2.CAP_DSHOW)
            if not self._cap.isOpened():
                self._cap = cv2.VideoCapture(source)
        else:
            self._cap = cv2.VideoCapture(source)

        if not self._cap.isOpened():
            raise IOError(f"Failed to open video source {source!r}")

        fps = self._cap.get(cv2.CAP_PROP_FPS)
        self.fps = fps if fps and fps > 0 else DEFAULT_FPS
        if isinstance(source, int):
            self.frame_count = -1
        else:
            count = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))
            self.frame_count = count if count > 0 else -1
        logger.info(f"Opened {source!r}: {self.fps:.1f} FPS, frame_count={self.frame_count}")

    def _read_image(self) -> Optional[np.ndarray]:
        ret, image = self._cap.read()
        return image if ret else None

    def release(self):
        self._cap.release()


class SequenceFrameSource(FrameSource):
    """Replays a list of images with a nominal frame rate."""

    def __init__(self, images: Iterable[np.ndarray], fps: float = DEFAULT_FPS):
        super().__init__()
        self._images: List[np.ndarray] = list(images)
        self.fps = fps
        self.frame_count = len(self._images)

    def _read_image(self) -> Optional[np.ndarray]:
        if self.position >= len(self._images):
            return None
        return self._images[self.position]


def open_source(source: Union[int, str]) -> FrameSource:
    """Open a camera ("0", 0) or a video path."""
    if isinstance(source, str) and source.isdigit():
        source = int(source)
    return VideoFrameSource(source)

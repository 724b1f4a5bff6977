"""
Background Modeling for Dart Detection

Two baselines are kept side by side:
1. A rolling MOG2 background model. Every frame is applied to it and the
   resulting foreground mask is what the motion classifier counts.
2. A fixed reference frame (grayscale, blurred) captured after warm-up. It is
   only used to decide when the board is back to its empty state after darts
   have been pulled out.

Frames are normalised (resized, blurred) before either comparison so sensor
noise and resolution don't leak into the pixel counts.
"""
import logging
from typing import Tuple

import cv2
import numpy as np

from dartscore.core.config import DetectionConfig

logger = logging.getLogger(__name__)


class BackgroundSubtractor:
    """Thin wrapper around OpenCV's MOG2 subtractor with shadows disabled."""

    def __init__(self, var_threshold: float = 16.0, history: int = 30):
        self.var_threshold = var_threshold
        self.history = history
        self._mog = cv2.createBackgroundSubtractorMOG2(
            history=history,
            varThreshold=var_threshold,
            detectShadows=False
        )

    @classmethod
    def from_config(cls, config: DetectionConfig, fps: float, frame_count: int) -> "BackgroundSubtractor":
        history = config.history_for(fps, frame_count)
        logger.info(f"MOG2 subtractor: history={history}, varThreshold={config.subtractor_var_threshold}")
        return cls(var_threshold=config.subtractor_var_threshold, history=history)

    def apply(self, frame: np.ndarray) -> np.ndarray:
        """Update the model with a frame and return its foreground mask."""
        return self._mog.apply(frame)


def preprocess_frame(frame: np.ndarray, scale: float, kernel: int) -> np.ndarray:
    """Resize by scale and Gaussian-blur with a kernel x kernel window."""
    if scale != 1.0:
        h, w = frame.shape[:2]
        frame = cv2.resize(frame, (int(w * scale), int(h * scale)))
    return cv2.GaussianBlur(frame, (kernel, kernel), 0)


def _to_gray(frame: np.ndarray) -> np.ndarray:
    if len(frame.shape) == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return frame


def make_reference(frame: np.ndarray, blur_kernel: int = 11) -> np.ndarray:
    """Grayscale, blurred snapshot used for the zero-difference test."""
    gray = _to_gray(frame)
    return cv2.GaussianBlur(gray, (blur_kernel, blur_kernel), 0)


def reference_diff(
    reference: np.ndarray,
    frame: np.ndarray,
    blur_kernel: int = 11,
    threshold: int = 50
) -> Tuple[int, np.ndarray]:
    """
    Compare a frame against the reference.

    Returns:
        (changed_pixel_count, threshold_mask)
    """
    compare = make_reference(frame, blur_kernel)
    diff = cv2.absdiff(reference, compare)
    _, thresh = cv2.threshold(diff, threshold, 255, cv2.THRESH_BINARY)
    return cv2.countNonZero(thresh), thresh


def is_diff_zero(reference: np.ndarray, frame: np.ndarray, blur_kernel: int = 11, threshold: int = 50) -> bool:
    """True when no pixel differs from the reference by more than threshold."""
    count, _ = reference_diff(reference, frame, blur_kernel, threshold)
    return count == 0


def count_changed(mask: np.ndarray) -> int:
    """Number of non-zero pixels in a change mask."""
    if mask is None:
        return 0
    if len(mask.shape) == 3:
        mask = mask[:, :, 0]
    return int(cv2.countNonZero(mask))

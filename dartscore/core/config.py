"""
Detection configuration.

Every threshold the pipeline uses lives here so it can be tuned per camera
and lighting without touching code. Values can come from a dict (API
payload) or from DARTSCORE_* environment variables.
"""
import os
import logging
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

ENV_PREFIX = "DARTSCORE_"


@dataclass
class DetectionConfig:
    """Tunable parameters for motion classification and dart resolution."""

    # Background subtraction (MOG2)
    subtractor_var_threshold: float = 16.0
    subtractor_history: Optional[int] = None  # None = fps for live, 2 for recordings

    # Frame normalisation before subtraction
    resize_scale: float = 1.0
    gaussian_kernel: int = 5

    # Reference frame / zero-diff test
    reference_blur_kernel: int = 11
    reference_diff_threshold: int = 50

    # Morphology (close 3x3, dilate 5x5, erode 5x5)
    close_iterations: int = 1
    dilate_iterations: int = 1
    erode_iterations: int = 1

    # Contour gates
    min_contour_area: float = 100.0
    max_merged_contour_area: float = 25_000.0
    min_aspect_ratio: float = 0.25
    max_aspect_ratio: float = 2.0

    # Pixel-count bands (inclusive). Anything above candidate_band is unplugging.
    candidate_band: Tuple[int, int] = (1_000, 30_000)
    motion_band: Tuple[int, int] = (10_000, 30_000)
    settled_band: Tuple[int, int] = (0, 50)

    # Frames before the reference snapshot is taken. None = one second of frames.
    warmup_frames: Optional[int] = None

    # Presentation pacing
    overlay_min_interval_s: float = 0.5

    def __post_init__(self):
        self.candidate_band = tuple(self.candidate_band)
        self.motion_band = tuple(self.motion_band)
        self.settled_band = tuple(self.settled_band)

        for name in ("gaussian_kernel", "reference_blur_kernel"):
            k = getattr(self, name)
            if k < 1 or k % 2 == 0:
                raise ValueError(f"{name} must be a positive odd number, got {k}")
        for name in ("candidate_band", "motion_band", "settled_band"):
            lo, hi = getattr(self, name)
            if lo < 0 or lo > hi:
                raise ValueError(f"{name} must satisfy 0 <= low <= high, got {(lo, hi)}")
        for name in ("close_iterations", "dilate_iterations", "erode_iterations", "min_contour_area"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        for name in ("resize_scale", "subtractor_var_threshold", "max_merged_contour_area", "min_aspect_ratio"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("warmup_frames", "subtractor_history"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f"{name} must be at least 1, got {value}")
        if self.min_aspect_ratio > self.max_aspect_ratio:
            raise ValueError("min_aspect_ratio must not exceed max_aspect_ratio")
        if self.overlay_min_interval_s < 0:
            raise ValueError("overlay_min_interval_s must not be negative")

    def history_for(self, fps: float, frame_count: int) -> int:
        """MOG2 history length for a source."""
        if self.subtractor_history is not None:
            return self.subtractor_history
        return max(1, int(fps)) if frame_count == -1 else 2

    def warmup_for(self, fps: float) -> int:
        if self.warmup_frames is not None:
            return self.warmup_frames
        return max(1, int(fps))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DetectionConfig":
        """Build a config from a dict, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "DetectionConfig":
        """
        Build a config from DARTSCORE_<FIELD> environment variables.

        Bands are given as "low,high", e.g. DARTSCORE_CANDIDATE_BAND=1000,30000.
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            values[f.name] = _parse_env_value(raw, getattr(defaults, f.name))
        return cls(**values)


def _parse_env_value(raw: str, default: Any) -> Any:
    if isinstance(default, tuple):
        parts = [p.strip() for p in raw.split(",")]
        if len(parts) != 2:
            raise ValueError(f"Expected 'low,high', got {raw!r}")
        return (int(parts[0]), int(parts[1]))
    if isinstance(default, float):
        return float(raw)
    # int fields and Optional[int] fields (default None)
    return int(raw)

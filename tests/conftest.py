"""
Shared fixtures: a synthetic 400x400 board and a scripted background model.

The board is face-on, bullseye at (200, 200), outer double ring at 170px,
so one pixel is one millimeter and the standard radii apply directly
(triple ring 99-107px, double ring 162-170px).
"""
import sys
import os

import cv2
import numpy as np
import pytest

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dartscore.core.config import DetectionConfig
from dartscore.core.geometry import ring_masks, standard_angle_ranges
from dartscore.core.regions import AngleRangeTable, RegionModel

SHAPE = (400, 400)
CENTER = (200, 200)
BOARD_RADIUS = 170


class ScriptedSubtractor:
    """Stands in for MOG2: returns a preset mask for the n-th apply() call."""

    def __init__(self, masks=None, shape=SHAPE):
        self.masks = dict(masks or {})
        self.shape = shape
        self.calls = 0

    def apply(self, frame):
        mask = self.masks.get(self.calls)
        self.calls += 1
        if mask is None:
            return np.zeros(self.shape, dtype=np.uint8)
        return mask.copy()


def scripted_factory(masks):
    """Subtractor factory for ScoringSession; one apply() per frame index."""
    def factory(config, fps, frame_count):
        return ScriptedSubtractor(masks)
    return factory


def triangle_mask(apex, base_a, base_b, shape=SHAPE):
    mask = np.zeros(shape, dtype=np.uint8)
    pts = np.array([apex, base_a, base_b], dtype=np.int32)
    cv2.fillPoly(mask, [pts], 255)
    return mask


def t20_dart_mask():
    """~15,000 px wedge, square bounding box, tip in the triple ring under segment 20."""
    return triangle_mask((200, 97), (113, 270), (287, 270))


def t11_dart_mask():
    """~5,000 px wedge with its tip in the triple ring under segment 11."""
    return triangle_mask((97, 200), (197, 150), (197, 250))


def square_mask(side, shape=SHAPE, origin=(50, 50)):
    mask = np.zeros(shape, dtype=np.uint8)
    x, y = origin
    mask[y:y + side, x:x + side] = 255
    return mask


def black_frames(n, shape=SHAPE):
    return [np.zeros((shape[0], shape[1], 3), dtype=np.uint8) for _ in range(n)]


def make_regions(**overrides):
    masks = ring_masks(SHAPE, CENTER, BOARD_RADIUS)
    masks.update(overrides)
    return RegionModel(masks, AngleRangeTable(standard_angle_ranges()))


@pytest.fixture
def regions():
    return make_regions()


@pytest.fixture
def config():
    return DetectionConfig(warmup_frames=30)

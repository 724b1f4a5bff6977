"""
Tip, angle and board-center extraction tests.
"""
import math

import cv2
import numpy as np
import pytest

from dartscore.core.errors import GeometryError
from dartscore.core.tip_extractor import (
    calculate_angle,
    extract_tip,
    find_arrow_tip,
    find_board_center,
    find_convex_hull,
    rotate_point,
)

from conftest import t11_dart_mask, t20_dart_mask


def hull_of(mask):
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    return find_convex_hull(np.vstack(contours))


def test_tip_is_the_narrow_end():
    geometry = find_arrow_tip(hull_of(t20_dart_mask()))
    tx, ty = geometry.tip
    assert abs(tx - 200) <= 2
    assert abs(ty - 97) <= 2
    # Flight sits on the wide side, below the tip
    assert geometry.flight_center[1] > 200


def test_tip_pointing_left():
    geometry = find_arrow_tip(hull_of(t11_dart_mask()))
    tx, ty = geometry.tip
    assert abs(tx - 97) <= 2
    assert abs(ty - 200) <= 2
    assert geometry.flight_center[0] > tx


def test_bounding_box_corners():
    geometry = find_arrow_tip(hull_of(t20_dart_mask()))
    x0, y0 = geometry.bbox_top_left
    x1, y1 = geometry.bbox_bottom_right
    assert x0 == pytest.approx(113, abs=1)
    assert y0 == pytest.approx(97, abs=1)
    assert x1 > x0 and y1 > y0
    assert abs((x1 - x0) - (y1 - y0)) <= 2


@pytest.mark.parametrize("point,expected", [
    ((300, 200), 0.0),
    ((200, 300), 90.0),
    ((100, 200), 180.0),
    ((200, 100), 270.0),
    ((300, 300), 45.0),
])
def test_angle_convention(point, expected):
    assert calculate_angle((200, 200), point) == pytest.approx(expected)


def test_angle_is_in_range():
    for dy in (-1e-12, 0.0, 1e-12):
        angle = calculate_angle((0, 0), (5, dy))
        assert 0.0 <= angle < 360.0


def test_rotate_point_quarter_turn():
    x, y = rotate_point((200, 200), (300, 200), math.pi / 2)
    assert x == pytest.approx(200)
    assert y == pytest.approx(300)


def test_board_center_of_disk():
    mask = np.zeros((100, 100), dtype=np.uint8)
    cv2.circle(mask, (40, 60), 5, 255, -1)
    cx, cy = find_board_center(mask)
    assert cx == pytest.approx(40, abs=0.5)
    assert cy == pytest.approx(60, abs=0.5)


def test_board_center_single_pixel():
    mask = np.zeros((100, 100), dtype=np.uint8)
    mask[30, 70] = 255
    cx, cy = find_board_center(mask)
    assert cx == pytest.approx(70, abs=1)
    assert cy == pytest.approx(30, abs=1)


def test_empty_inner_bull_is_geometry_error():
    with pytest.raises(GeometryError):
        find_board_center(np.zeros((100, 100), dtype=np.uint8))


def test_extract_tip_from_raw_contour():
    contours, _ = cv2.findContours(t20_dart_mask(), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    geometry = extract_tip(contours[0])
    assert geometry.tip[1] == pytest.approx(97, abs=2)

"""
Forward-scan tests with a scripted background model.

The scanner reads from a source positioned just after the frame that opened
the window; call indices of ScriptedSubtractor count from the first scanned
frame.
"""
import threading

import numpy as np
import pytest

from dartscore.core.candidate_scanner import CandidateScanner, ScanStatus, scan_window
from dartscore.core.errors import RejectionReason
from dartscore.core.frame_source import SequenceFrameSource

from conftest import (
    ScriptedSubtractor,
    black_frames,
    make_regions,
    square_mask,
    t11_dart_mask,
    t20_dart_mask,
)


def opened_source(n=40, fps=30):
    source = SequenceFrameSource(black_frames(n), fps=fps)
    source.read()  # the frame that opened the window
    return source


@pytest.fixture
def scanner(regions, config):
    return CandidateScanner(regions, config)


def test_scan_window_bounds():
    assert scan_window(35, 30, 60) == (36, 59)
    assert scan_window(10, 30, 60) == (11, 40)
    assert scan_window(10, 30, -1) == (11, 40)


def test_seed_resolves_once_settled(scanner):
    result = scanner.scan(opened_source(), ScriptedSubtractor(), start=0, seed_mask=t20_dart_mask())
    assert result.status == ScanStatus.DETECTED
    assert result.event.score == 60
    assert result.event.frame_index == 1
    assert result.frames_read == 1


def test_motion_frames_are_skipped(scanner):
    shaking = square_mask(110)  # 12,100 px: inside the motion band
    subtractor = ScriptedSubtractor({0: shaking, 1: shaking})
    result = scanner.scan(opened_source(), subtractor, start=0, seed_mask=t20_dart_mask())
    assert result.status == ScanStatus.DETECTED
    assert result.event.score == 60
    assert result.frames_read == 3


def test_latest_candidate_wins(scanner):
    subtractor = ScriptedSubtractor({0: t11_dart_mask()})
    result = scanner.scan(opened_source(), subtractor, start=0, seed_mask=t20_dart_mask())
    assert result.status == ScanStatus.DETECTED
    assert result.event.score == 33
    assert result.event.result.segment == 11


def test_unplugging_aborts_scan(scanner):
    subtractor = ScriptedSubtractor({0: square_mask(200)})
    result = scanner.scan(opened_source(), subtractor, start=0, seed_mask=t20_dart_mask())
    assert result.status == ScanStatus.UNPLUGGING
    assert result.event is None


def test_tip_off_board_rejects_window(config):
    disk = np.zeros((400, 400), dtype=np.uint8)
    disk[140:260, 140:260] = 255
    scanner = CandidateScanner(make_regions(dartboard=disk), config)
    result = scanner.scan(opened_source(), ScriptedSubtractor(), start=0, seed_mask=t20_dart_mask())
    assert result.status == ScanStatus.REJECTED
    assert result.rejection.reason == RejectionReason.TIP_OUTSIDE_BOARD


def test_nothing_settles_within_window(scanner):
    result = scanner.scan(opened_source(), ScriptedSubtractor(), start=0)
    assert result.status == ScanStatus.NO_EVENT
    assert result.frames_read == 30


def test_window_clipped_to_recording(scanner):
    source = SequenceFrameSource(black_frames(10), fps=30)
    source.read()
    result = scanner.scan(source, ScriptedSubtractor(), start=0)
    assert result.status == ScanStatus.NO_EVENT
    assert result.frames_read == 9


def test_stop_event_ends_scan(scanner):
    stop = threading.Event()
    stop.set()
    result = scanner.scan(opened_source(), ScriptedSubtractor(), start=0,
                          seed_mask=t20_dart_mask(), stop_event=stop)
    assert result.status == ScanStatus.NO_EVENT
    assert result.frames_read == 0


def test_status_reported_for_every_frame(scanner):
    seen = []
    subtractor = ScriptedSubtractor({0: square_mask(110)})
    scanner.scan(opened_source(), subtractor, start=0, seed_mask=t20_dart_mask(),
                 on_status=lambda frame, status, count: seen.append((frame.index, status.value, count)))
    assert seen == [(1, "motion", 12_100), (2, "stable", 0)]

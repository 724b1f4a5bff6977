#!/usr/bin/env python3
"""
Quick smoke test of the scoring pipeline on a synthetic board.

Runs under pytest, or standalone: python tests/test_components.py
"""
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import black_frames, make_regions, scripted_factory, t20_dart_mask


def test_region_model():
    """Build the synthetic region model and locate the bull."""
    print("=" * 60)
    print("Testing Region Model")
    print("=" * 60)

    regions = make_regions()
    info = regions.describe()
    print(f"✓ Region model built: {info['width']}x{info['height']}, {info['angle_ranges']} angle ranges")
    for name, pixels in info["regions"].items():
        print(f"  {name}: {pixels} px")

    cx, cy = regions.board_center
    print(f"✓ Board center at ({cx:.1f}, {cy:.1f})")
    assert abs(cx - 200) < 1 and abs(cy - 200) < 1


def test_scoring():
    """Score a few fixed points."""
    print("\n" + "=" * 60)
    print("Testing Scoring System")
    print("=" * 60)

    from dartscore.core.scoring import SegmentScorer
    from dartscore.core.tip_extractor import calculate_angle

    scorer = SegmentScorer(make_regions())
    test_cases = [
        ((200, 200), 50, "Inner bull"),
        ((200, 190), 25, "Outer bull"),
        ((200, 97), 60, "Triple 20"),
        ((200, 34), 40, "Double 20"),
        ((260, 200), 6, "Single 6"),
    ]
    for point, expected, label in test_cases:
        result = scorer.score(point, calculate_angle((200, 200), point))
        print(f"  {label}: {result.zone} {result.segment}x{result.multiplier} = {result.score}")
        assert result.score == expected, f"{label}: expected {expected}, got {result.score}"
    print("✓ Scoring works")


def test_session():
    """Run a short recording with one dart through a full session."""
    print("\n" + "=" * 60)
    print("Testing Scoring Session")
    print("=" * 60)

    from dartscore.core.config import DetectionConfig
    from dartscore.core.frame_source import SequenceFrameSource
    from dartscore.core.turn_state import ScoringSession

    session = ScoringSession(
        make_regions(),
        SequenceFrameSource(black_frames(60), fps=30),
        config=DetectionConfig(warmup_frames=30),
        subtractor_factory=scripted_factory({35: t20_dart_mask()}),
    )
    processed = session.run()
    print(f"✓ Processed {processed} frames, state={session.state.value}")
    print(f"  Scores: {session.scores}")
    assert session.scores == [60, None, None]

    session.reset_score()
    assert session.scores == [None, None, None]
    print("✓ Score reset works")


def main():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("DARTSCORE - COMPONENT TESTS")
    print("=" * 60)

    results = []
    for name, test in (("Region Model", test_region_model),
                       ("Scoring System", test_scoring),
                       ("Scoring Session", test_session)):
        try:
            test()
            results.append((name, True))
        except Exception as e:
            print(f"✗ Error: {e}")
            import traceback
            traceback.print_exc()
            results.append((name, False))

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)

    all_passed = True
    for name, passed in results:
        status = "✓ PASS" if passed else "✗ FAIL"
        print(f"  {name}: {status}")
        if not passed:
            all_passed = False

    print("=" * 60)
    if all_passed:
        print("All tests passed!")
        return 0
    else:
        print("Some tests failed!")
        return 1


if __name__ == "__main__":
    sys.exit(main())

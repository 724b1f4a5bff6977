"""
Scoring tests against the synthetic board (1px = 1mm).
"""
import pytest

from dartscore.core.errors import GeometryError, Rejection, RejectionReason
from dartscore.core.geometry import ring_masks, standard_angle_ranges
from dartscore.core.regions import AngleRangeTable, RegionModel
from dartscore.core.scoring import ScoreResult, SegmentScorer
from dartscore.core.tip_extractor import calculate_angle

from conftest import BOARD_RADIUS, CENTER, SHAPE


def score_at(scorer, point):
    return scorer.score(point, calculate_angle(CENTER, point))


@pytest.fixture
def scorer(regions):
    return SegmentScorer(regions)


@pytest.mark.parametrize("point,score,zone", [
    ((200, 200), 50, "inner_bull"),
    ((200, 190), 25, "outer_bull"),
    ((200, 97), 60, "triple"),
    ((200, 34), 40, "double"),
    ((200, 150), 20, "single"),
    ((320, 200), 6, "single"),
    ((97, 200), 33, "triple"),
])
def test_zone_scores(scorer, point, score, zone):
    result = score_at(scorer, point)
    assert isinstance(result, ScoreResult)
    assert result.score == score
    assert result.zone == zone


def test_triple_wins_over_overlapping_single(scorer, regions):
    # The single mask spans the triple ring too
    assert regions.contains("single", (200, 97))
    result = score_at(scorer, (200, 97))
    assert result.multiplier == 3
    assert result.segment == 20


def test_bull_scores_ignore_segment(scorer):
    result = score_at(scorer, (200, 200))
    assert result.segment == 0
    assert result.multiplier == 1


def test_tip_outside_board_is_rejected(scorer):
    result = score_at(scorer, (200, 20))
    assert isinstance(result, Rejection)
    assert result.reason == RejectionReason.TIP_OUTSIDE_BOARD


def test_board_without_ring_is_a_miss():
    """A tip on the board mask but in no scoring ring scores zero."""
    masks = ring_masks(SHAPE, CENTER, BOARD_RADIUS)
    masks["dartboard"][:, :] = 255
    scorer = SegmentScorer(RegionModel(masks, AngleRangeTable(standard_angle_ranges())))
    result = score_at(scorer, (200, 10))
    assert result.is_miss
    assert result.score == 0
    assert scorer.hit_mask(result) is None


def test_tip_outside_frame_is_geometry_error(scorer):
    with pytest.raises(GeometryError):
        scorer.score((500, 10), 0.0)


class _EmptyLookupTable:
    def lookup(self, angle):
        return None

    def __len__(self):
        return 0


def test_unmatched_angle_is_geometry_error():
    regions = RegionModel(ring_masks(SHAPE, CENTER, BOARD_RADIUS), _EmptyLookupTable())
    with pytest.raises(GeometryError):
        SegmentScorer(regions).score((200, 150), 270.0)

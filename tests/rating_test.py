import math

import pytest

from scio.services.rating import expected_score, tier_for, update_ratings


def test_equal_ratings_win():
    assert update_ratings(1200, 1200, 1) == (1216, 1184)


def test_equal_ratings_draw_unchanged():
    assert update_ratings(1200, 1200, 0.5) == (1200, 1200)


def test_upset_moves_more_than_expected_win():
    underdog_gain = update_ratings(1000, 1400, 1)[0] - 1000
    favourite_gain = update_ratings(1400, 1000, 1)[0] - 1400
    assert underdog_gain > favourite_gain > 0


def test_rounds_half_up():
    # With K=1 both sides land exactly on .5.
    new_a, new_b = update_ratings(1200, 1200, 1, k_factor=1)
    assert (new_a, new_b) == (1201, 1200)


@pytest.mark.parametrize("score_a", [0, 0.5, 1])
@pytest.mark.parametrize("rating_a,rating_b", [(1200, 1200), (1100, 1450), (1600, 1234)])
def test_rating_change_is_zero_sum_within_rounding(rating_a, rating_b, score_a):
    new_a, new_b = update_ratings(rating_a, rating_b, score_a)
    assert abs((new_a - rating_a) + (new_b - rating_b)) <= 1


def test_expected_scores_complement():
    assert expected_score(1300, 1100) + expected_score(1100, 1300) == pytest.approx(1)


def test_nan_propagates():
    new_a, new_b = update_ratings(float("nan"), 1200, 1)
    assert math.isnan(new_a)
    assert math.isnan(new_b)


@pytest.mark.parametrize(
    "rating,tier",
    [
        (900, "Bronze"),
        (1149, "Bronze"),
        (1150, "Silver"),
        (1349, "Silver"),
        (1350, "Gold"),
        (1549, "Gold"),
        (1550, "Platinum"),
    ],
)
def test_tier_bands(rating, tier):
    assert tier_for(rating) == tier

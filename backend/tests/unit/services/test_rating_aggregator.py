from dataclasses import replace

import pytest

from lingualink.core.exceptions import ValidationError
from lingualink.services.rating_aggregator import RatingAggregator, fold_rating


def test_running_mean_matches_arithmetic_mean(interpreter, make_rating):
    aggregator = RatingAggregator()
    scores = [5, 4, 3, 5, 1, 2, 4]
    profile = interpreter
    for score in scores:
        aggregate = aggregator.apply(profile, make_rating(score))
        profile = replace(
            profile,
            average_rating=aggregate.new_average,
            total_ratings=aggregate.new_total_ratings,
        )

    assert profile.total_ratings == len(scores)
    assert profile.average_rating == pytest.approx(sum(scores) / len(scores))


def test_apply_on_existing_average(interpreter, make_rating):
    profile = replace(interpreter, average_rating=4.0, total_ratings=3)
    aggregate = RatingAggregator().apply(profile, make_rating(5))
    assert aggregate.new_total_ratings == 4
    assert aggregate.new_average == pytest.approx(4.25)


def test_first_rating_sets_average(interpreter, make_rating):
    aggregate = RatingAggregator().apply(interpreter, make_rating(3))
    assert aggregate.new_average == 3.0
    assert aggregate.new_total_ratings == 1


def test_recompute_from_scratch(make_rating):
    aggregate = RatingAggregator.recompute([make_rating(5), make_rating(2), 4])
    assert aggregate.new_total_ratings == 3
    assert aggregate.new_average == pytest.approx(11 / 3)


def test_recompute_empty():
    aggregate = RatingAggregator.recompute([])
    assert aggregate.new_average == 0.0
    assert aggregate.new_total_ratings == 0


@pytest.mark.parametrize("overall", [0, 6])
def test_fold_rejects_out_of_range(overall):
    with pytest.raises(ValidationError):
        fold_rating(4.0, 2, overall)


def test_fold_rejects_negative_count():
    with pytest.raises(ValidationError):
        fold_rating(4.0, -1, 5)

import random
from datetime import datetime, timezone

import pytest

from data.stats import UserStats
from scoring import (
    _apply_result,
    _apply_streak,
    _build_report,
    _estimated_iq,
    _percentage,
    _performance_tier,
)

TOTALS = [1, 10, 20, 25, 50]


@pytest.mark.parametrize("total", TOTALS)
def test_percentage_matches_rounded_ratio_and_stays_in_bounds(total):
    for score in range(total + 1):
        pct = _percentage(score, total)
        assert 0 <= pct <= 100
        assert abs(pct - score / total * 100) <= 0.5


def test_percentage_rounds_half_up():
    assert _percentage(1, 8) == 13
    assert _percentage(3, 8) == 38


@pytest.mark.parametrize("total", TOTALS)
def test_estimated_iq_monotonic_and_clamped(total):
    previous = None
    for pct in range(101):
        iq = _estimated_iq(pct, total)
        assert 70 <= iq <= 180
        if previous is not None:
            assert iq >= previous
        previous = iq


def test_estimated_iq_scaling_by_test_length():
    assert _estimated_iq(100, 10) == 150
    assert _estimated_iq(100, 20) == 155
    assert _estimated_iq(100, 50) == 160
    assert _estimated_iq(0, 50) == 70
    assert _estimated_iq(50, 25) == 100


@pytest.mark.parametrize(
    "pct,tier",
    [
        (100, "Exceptional"),
        (90, "Exceptional"),
        (89, "Excellent"),
        (80, "Excellent"),
        (79, "Very Good"),
        (70, "Very Good"),
        (60, "Good"),
        (50, "Average"),
        (49, "Needs Improvement"),
        (0, "Needs Improvement"),
    ],
)
def test_performance_tiers(pct, tier):
    assert _performance_tier(pct) == tier


def test_report_for_eight_out_of_ten():
    report = _build_report(8, 10)
    assert report.percentage == 80
    assert report.performance == "Excellent"
    assert report.estimated_iq == 130


def test_apply_result_accumulates_and_recomputes_average():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    first = _apply_result(8, 10, UserStats(), now=now)
    assert first.total_tests == 1
    assert first.total_questions_answered == 10
    assert first.correct_answers == 8
    assert first.average_score == 80
    assert first.best_score == 80
    assert first.last_test_date == now.isoformat()

    second = _apply_result(5, 25, first, now=now)
    assert second.total_tests == 2
    assert second.total_questions_answered == 35
    assert second.correct_answers == 13
    assert second.average_score == 37
    assert second.best_score == 80


def test_average_never_drifts_over_many_updates():
    rng = random.Random(7)
    stats = UserStats()
    for _ in range(200):
        total = rng.choice(TOTALS)
        stats = _apply_result(rng.randint(0, total), total, stats)
        expected = int(stats.correct_answers / stats.total_questions_answered * 100 + 0.5)
        assert stats.average_score == expected


def test_apply_result_is_pure_and_repeatable():
    existing = UserStats(total_tests=3, total_questions_answered=30, correct_answers=21, average_score=70, best_score=90)
    now = datetime(2026, 5, 5, tzinfo=timezone.utc)
    a = _apply_result(4, 10, existing, now=now)
    b = _apply_result(4, 10, existing, now=now)
    assert a == b
    assert existing.total_tests == 3


def test_apply_result_rejects_empty_test():
    with pytest.raises(ValueError):
        _apply_result(0, 0, UserStats())


def test_streak_updates():
    stats = UserStats()
    for is_correct in [True, True, False, True]:
        stats = _apply_streak(stats, is_correct)
    assert stats.current_streak == 1
    assert stats.best_streak == 2
    assert stats.total_tests == 0


def test_apply_result_keeps_streaks():
    existing = UserStats(current_streak=4, best_streak=7)
    stats = _apply_result(5, 10, existing)
    assert stats.current_streak == 4
    assert stats.best_streak == 7

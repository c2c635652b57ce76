import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from constants import IQ_MAX, IQ_MIN, PERFORMANCE_TIERS
from data.stats import UserStats


@dataclass(frozen=True)
class QuizReport:
    score: int
    total_questions: int
    percentage: int
    estimated_iq: int
    performance: str


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _percentage(score: int, total_questions: int) -> int:
    if total_questions <= 0:
        return 0
    pct = _round_half_up(score / total_questions * 100)
    return max(0, min(100, pct))


def _scaling_factor(total_questions: int) -> float:
    if total_questions > 25:
        return 1.2
    if total_questions > 10:
        return 1.1
    return 1.0


def _estimated_iq(percentage: int, total_questions: int) -> int:
    raw = 100 + ((percentage - 50) / 50) * 50 * _scaling_factor(total_questions)
    return max(IQ_MIN, min(IQ_MAX, _round_half_up(raw)))


def _performance_tier(percentage: int) -> str:
    for threshold, label in PERFORMANCE_TIERS:
        if percentage >= threshold:
            return label
    return PERFORMANCE_TIERS[-1][1]


def _build_report(score: int, total_questions: int) -> QuizReport:
    pct = _percentage(score, total_questions)
    return QuizReport(
        score=score,
        total_questions=total_questions,
        percentage=pct,
        estimated_iq=_estimated_iq(pct, total_questions),
        performance=_performance_tier(pct),
    )


def _apply_result(
    score: int,
    total_questions: int,
    existing: UserStats,
    now: datetime | None = None,
) -> UserStats:
    """
    Fold one finished test (or one random question) into the user's stats.

    Pure: returns a new UserStats and never touches `existing`. The average
    is recomputed from the accumulated counters, not updated incrementally.
    """
    if total_questions <= 0:
        raise ValueError("total_questions must be positive")
    score = max(0, min(score, total_questions))
    answered = existing.total_questions_answered + total_questions
    correct = existing.correct_answers + score
    average = _round_half_up(correct / answered * 100) if answered > 0 else 0
    when = now or datetime.now(timezone.utc)
    return replace(
        existing,
        total_tests=existing.total_tests + 1,
        total_questions_answered=answered,
        correct_answers=correct,
        average_score=average,
        best_score=max(existing.best_score, _percentage(score, total_questions)),
        last_test_date=when.isoformat(),
    )


def _apply_streak(existing: UserStats, is_correct: bool) -> UserStats:
    """A correct answer extends the run of correct answers; a wrong one resets it."""
    if not is_correct:
        return replace(existing, current_streak=0)
    current = existing.current_streak + 1
    return replace(existing, current_streak=current, best_streak=max(existing.best_streak, current))

from dataclasses import asdict, dataclass
from typing import Any, Dict

from constants import LEADERBOARD_KEY, LEADERBOARD_SIZE, STATS_KEY_PREFIX
from data.store import KVStore, _get_json, _put_json


@dataclass(frozen=True)
class UserStats:
    total_tests: int = 0
    total_questions_answered: int = 0
    correct_answers: int = 0
    average_score: int = 0
    best_score: int = 0
    last_test_date: str | None = None
    current_streak: int = 0
    best_streak: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserStats":
        def _nonneg(key: str) -> int:
            try:
                return max(0, int(data.get(key) or 0))
            except (TypeError, ValueError):
                return 0

        last = data.get("last_test_date")
        return cls(
            total_tests=_nonneg("total_tests"),
            total_questions_answered=_nonneg("total_questions_answered"),
            correct_answers=_nonneg("correct_answers"),
            average_score=min(100, _nonneg("average_score")),
            best_score=min(100, _nonneg("best_score")),
            last_test_date=str(last) if last else None,
            current_streak=_nonneg("current_streak"),
            best_streak=max(_nonneg("best_streak"), _nonneg("current_streak")),
        )


def _stats_key(user_id: int) -> str:
    return f"{STATS_KEY_PREFIX}{int(user_id)}"


def _load_stats(store: KVStore, user_id: int) -> UserStats:
    data = _get_json(store, _stats_key(user_id))
    if data is None:
        return UserStats()
    return UserStats.from_dict(data)


def _save_stats(store: KVStore, user_id: int, stats: UserStats) -> None:
    _put_json(store, _stats_key(user_id), stats.to_dict())


def _load_leaderboard(store: KVStore) -> list[Dict[str, Any]]:
    data = _get_json(store, LEADERBOARD_KEY) or {}
    entries = data.get("entries")
    if not isinstance(entries, list):
        return []
    return [e for e in entries if isinstance(e, dict)]


def _leaderboard_sort_key(entry: Dict[str, Any]) -> tuple[int, int]:
    return int(entry.get("best_score") or 0), int(entry.get("estimated_iq") or 0)


def _update_leaderboard(store: KVStore, entry: Dict[str, Any]) -> list[Dict[str, Any]]:
    """
    Merge one user's entry into the top list and write it back.

    A user appears at most once, keeping whichever of the old and new entry
    ranks higher; the newest name and test count are always kept.
    """
    user_id = int(entry["user_id"])
    entries = _load_leaderboard(store)
    previous = None
    rest: list[Dict[str, Any]] = []
    for e in entries:
        if int(e.get("user_id") or 0) == user_id:
            previous = e
        else:
            rest.append(e)

    merged = dict(entry)
    if previous is not None and _leaderboard_sort_key(previous) > _leaderboard_sort_key(entry):
        merged["best_score"] = previous.get("best_score")
        merged["estimated_iq"] = previous.get("estimated_iq")

    rest.append(merged)
    rest.sort(key=_leaderboard_sort_key, reverse=True)
    top = rest[:LEADERBOARD_SIZE]
    _put_json(store, LEADERBOARD_KEY, {"entries": top})
    return top

from datetime import datetime, timezone
from typing import Any, Dict

from constants import DEFAULT_DIFFICULTY, DIFFICULTIES, USER_KEY_PREFIX
from data.store import KVStore, _get_json, _put_json


def _user_key(user_id: int) -> str:
    return f"{USER_KEY_PREFIX}{int(user_id)}"


def _load_user(store: KVStore, user_id: int) -> Dict[str, Any] | None:
    u = _get_json(store, _user_key(user_id))
    if u is None:
        return None
    difficulty = str(u.get("difficulty") or "")
    if difficulty not in DIFFICULTIES:
        difficulty = DEFAULT_DIFFICULTY
    return {
        "user_id": int(user_id),
        "username": str(u.get("username") or "").strip(),
        "first_name": str(u.get("first_name") or "").strip(),
        "difficulty": difficulty,
        "last_active": str(u.get("last_active") or ""),
    }


def _save_user(store: KVStore, user: Dict[str, Any]) -> None:
    _put_json(
        store,
        _user_key(int(user["user_id"])),
        {
            "user_id": int(user["user_id"]),
            "username": str(user.get("username") or "").strip(),
            "first_name": str(user.get("first_name") or "").strip(),
            "difficulty": str(user.get("difficulty") or DEFAULT_DIFFICULTY),
            "last_active": str(user.get("last_active") or ""),
        },
    )


def _touch_user(store: KVStore, user_id: int, username: str, first_name: str) -> Dict[str, Any]:
    """Create the profile on first contact, refresh names and last_active otherwise."""
    user = _load_user(store, user_id) or {
        "user_id": int(user_id),
        "difficulty": DEFAULT_DIFFICULTY,
    }
    if username:
        user["username"] = username
    if first_name:
        user["first_name"] = first_name
    user["last_active"] = datetime.now(timezone.utc).isoformat()
    _save_user(store, user)
    return user


def _get_difficulty(store: KVStore, user_id: int) -> str:
    user = _load_user(store, user_id)
    return user["difficulty"] if user else DEFAULT_DIFFICULTY


def _display_name(user: Dict[str, Any] | None, user_id: int) -> str:
    if user:
        if user.get("username"):
            return f"@{user['username']}"
        if user.get("first_name"):
            return str(user["first_name"])
    return f"id={user_id}"

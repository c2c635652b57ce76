import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from constants import SESSION_KEY_PREFIX, TEST_TYPES
from data.store import KVStore, _get_json, _put_json
from questions import Question


def _new_session_token() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class UserSession:
    test_type: str
    total_questions: int
    current_question_index: int = 0
    score: int = 0
    questions_answered: int = 0
    start_time: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    current_question: Question | None = None
    # Short token carried by answer buttons; ties them to this session.
    session_id: str = field(default_factory=_new_session_token)

    @property
    def awaiting_answer(self) -> bool:
        return self.current_question is not None and self.questions_answered < self.current_question_index

    @property
    def is_finished(self) -> bool:
        return self.current_question_index >= self.total_questions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_type": self.test_type,
            "total_questions": self.total_questions,
            "current_question_index": self.current_question_index,
            "score": self.score,
            "questions_answered": self.questions_answered,
            "start_time": self.start_time,
            "current_question": self.current_question.to_dict() if self.current_question else None,
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSession":
        q = data.get("current_question")
        return cls(
            test_type=str(data["test_type"]),
            total_questions=int(data["total_questions"]),
            current_question_index=int(data.get("current_question_index") or 0),
            score=int(data.get("score") or 0),
            questions_answered=int(data.get("questions_answered") or 0),
            start_time=str(data.get("start_time") or ""),
            current_question=Question.from_dict(q) if isinstance(q, dict) else None,
            session_id=str(data.get("session_id") or "") or _new_session_token(),
        )


def _session_key(user_id: int) -> str:
    return f"{SESSION_KEY_PREFIX}{int(user_id)}"


def _new_session(test_type: str) -> UserSession:
    entry = TEST_TYPES.get(test_type)
    if entry is None:
        raise ValueError(f"Unknown test type: {test_type}")
    return UserSession(test_type=test_type, total_questions=entry[0])


def _load_session(store: KVStore, user_id: int) -> UserSession | None:
    data = _get_json(store, _session_key(user_id))
    if data is None:
        return None
    try:
        session = UserSession.from_dict(data)
    except (KeyError, TypeError, ValueError):
        return None
    if session.test_type not in TEST_TYPES or session.total_questions <= 0:
        return None
    return session


def _save_session(store: KVStore, user_id: int, session: UserSession) -> None:
    _put_json(store, _session_key(user_id), session.to_dict())


def _delete_session(store: KVStore, user_id: int) -> None:
    store.delete(_session_key(user_id))

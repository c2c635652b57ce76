"""
Callback payload codec.

Button payloads are short strings such as ``test_quick``, ``answer_2_7_9f3a1c2e``,
``next_question`` or ``difficulty:hard``. They are decoded once, here, into
a CallbackAction; handlers never parse payload strings themselves.
"""
import re
from dataclasses import dataclass
from enum import Enum

from constants import TEST_TYPES


class ActionKind(Enum):
    TEST_MENU = "test_menu"
    START_TEST = "test"
    ANSWER = "answer"
    NEXT_QUESTION = "next_question"
    END_TEST = "end_test"
    DIFFICULTY_MENU = "difficulty_menu"
    SET_DIFFICULTY = "difficulty"
    STATS = "stats"
    LEADERBOARD = "leaderboard"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CallbackAction:
    kind: ActionKind
    test_type: str = ""
    option: int = -1
    question_number: int | None = None
    session_id: str | None = None
    difficulty: str = ""


_UNKNOWN = CallbackAction(kind=ActionKind.UNKNOWN)
_SEP_RE = re.compile(r"[_:]")

_SIMPLE_ACTIONS = {
    "test_menu": ActionKind.TEST_MENU,
    "next_question": ActionKind.NEXT_QUESTION,
    "end_test": ActionKind.END_TEST,
    "difficulty_menu": ActionKind.DIFFICULTY_MENU,
    "stats": ActionKind.STATS,
    "leaderboard": ActionKind.LEADERBOARD,
}


def decode_callback(data: str) -> CallbackAction:
    data = (data or "").strip()
    simple = _SIMPLE_ACTIONS.get(data)
    if simple is not None:
        return CallbackAction(kind=simple)

    parts = _SEP_RE.split(data)
    head, rest = parts[0], parts[1:]

    if head == "test" and len(rest) == 1 and rest[0] in TEST_TYPES:
        return CallbackAction(kind=ActionKind.START_TEST, test_type=rest[0])

    # Unknown levels are rejected by handlers.settings.
    if head == "difficulty" and rest and rest[0]:
        return CallbackAction(kind=ActionKind.SET_DIFFICULTY, difficulty=rest[0].lower())

    if head == "answer" and 1 <= len(rest) <= 3:
        try:
            option = int(rest[0])
        except ValueError:
            return _UNKNOWN
        question_number = None
        session_id = None
        if len(rest) >= 2:
            if not rest[1].isdigit():
                return _UNKNOWN
            question_number = int(rest[1])
        if len(rest) == 3:
            if not rest[2].isalnum():
                return _UNKNOWN
            session_id = rest[2]
        return CallbackAction(
            kind=ActionKind.ANSWER,
            option=option,
            question_number=question_number,
            session_id=session_id,
        )

    return _UNKNOWN


def encode_answer(option: int, question_number: int, session_id: str) -> str:
    return f"answer_{option}_{question_number}_{session_id}"


def encode_test(test_type: str) -> str:
    return f"test_{test_type}"


def encode_difficulty(level: str) -> str:
    return f"difficulty_{level}"

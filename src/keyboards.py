from typing import Any, Dict

from actions import encode_answer, encode_difficulty, encode_test
from constants import TEST_TYPES
from questions import Question


def inline_kb(rows: list[list[tuple[str, str]]]) -> Dict[str, Any]:
    return {
        "inline_keyboard": [
            [{"text": text, "callback_data": data} for (text, data) in row]
            for row in rows
        ]
    }


def welcome_keyboard() -> Dict[str, Any]:
    return inline_kb(
        [
            [("🎯 Start a Test", "test_menu")],
            [("🎲 Random Question", encode_test("random"))],
            [("⚙️ Set Difficulty", "difficulty_menu")],
        ]
    )


def test_menu_keyboard() -> Dict[str, Any]:
    return inline_kb([[(label, encode_test(name))] for name, (_, label, _) in TEST_TYPES.items()])


def question_keyboard(question: Question, question_number: int, session_id: str) -> Dict[str, Any]:
    rows = [
        [(f"{chr(65 + i)}. {option}", encode_answer(i, question_number, session_id))]
        for i, option in enumerate(question.options)
    ]
    rows.append([("⏹ End Test", "end_test")])
    return inline_kb(rows)


def after_answer_keyboard(test_type: str, finished: bool) -> Dict[str, Any]:
    if test_type == "random":
        return inline_kb(
            [
                [("🎲 Another Random Question", encode_test("random"))],
                [("📊 View Stats", "stats")],
            ]
        )
    label = "🏁 See Results" if finished else "➡️ Next Question"
    return inline_kb([[(label, "next_question")], [("⏹ End Test", "end_test")]])


def results_keyboard() -> Dict[str, Any]:
    return inline_kb(
        [
            [("🔁 New Test", encode_test("quick")), ("📊 View Stats", "stats")],
            [("🏆 Leaderboard", "leaderboard")],
        ]
    )


def difficulty_keyboard() -> Dict[str, Any]:
    return inline_kb(
        [
            [("🟢 Easy", encode_difficulty("easy"))],
            [("🟡 Medium", encode_difficulty("medium"))],
            [("🔴 Hard", encode_difficulty("hard"))],
        ]
    )

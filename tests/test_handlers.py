import json
import re
from unittest.mock import patch

import pytest

from callback_handler import _handle_callback_query
from data.sessions import _load_session
from data.stats import UserStats, _load_stats, _save_stats, _update_leaderboard
from data.users import _get_difficulty
from handlers import dispatch
from handlers.admin import NOT_ADMIN_TEXT
from handlers.quiz import SESSION_EXPIRED_TEXT
from message_handler import _handle_update

from conftest import CHAT_ID, USER_ID


def _plain(text):
    return re.sub(r"\\(.)", r"\1", text)


def _sent_texts(tg):
    return [_plain(c.kwargs["message"]) for c in tg.send_message.call_args_list]


def _last_markup(tg):
    return tg.send_message.call_args.kwargs["reply_markup"]


def _toast(tg):
    return tg.answer_callback_query.call_args.kwargs.get("text")


def test_start_sends_welcome_keyboard(make_ctx, tg):
    dispatch(make_ctx(cmd="/start"))
    tg.send_message_reaction.assert_called_once()
    assert "Welcome" in _sent_texts(tg)[0]
    callbacks = [row[0]["callback_data"] for row in _last_markup(tg)["inline_keyboard"]]
    assert callbacks == ["test_menu", "test_random", "difficulty_menu"]


def test_unknown_command_gets_help_hint(make_ctx, tg):
    dispatch(make_ctx(cmd="/frobnicate"))
    assert "/help" in _sent_texts(tg)[0]
    tg.send_message_reaction.assert_not_called()


def test_plain_text_in_group_is_ignored(make_ctx, tg):
    dispatch(make_ctx(cmd="", chat_type="group", text="hello"))
    tg.send_message.assert_not_called()


def test_plain_text_in_private_gets_help_hint(make_ctx, tg):
    dispatch(make_ctx(cmd="", text="hello"))
    assert "/help" in _sent_texts(tg)[0]


def test_help_lists_admin_commands_only_for_admins(make_ctx, tg):
    dispatch(make_ctx(cmd="/help"))
    assert "/tokens_stat" not in _sent_texts(tg)[0]
    tg.reset_mock()
    dispatch(make_ctx(cmd="/help", is_admin=True))
    assert "/tokens_stat" in _sent_texts(tg)[0]


def test_test_without_args_shows_menu(make_ctx, tg, store):
    dispatch(make_ctx(cmd="/test"))
    rows = _last_markup(tg)["inline_keyboard"]
    assert rows[0][0]["callback_data"] == "test_quick"
    assert _load_session(store, USER_ID) is None


def test_test_quick_sends_first_question(make_ctx, tg, store):
    dispatch(make_ctx(cmd="/test", args="quick"))
    text = _sent_texts(tg)[-1]
    assert "Question 1/10" in text
    rows = _last_markup(tg)["inline_keyboard"]
    assert len(rows) == 5
    session = _load_session(store, USER_ID)
    assert session.total_questions == 10
    assert [r[0]["callback_data"] for r in rows[:4]] == [
        f"answer_{i}_1_{session.session_id}" for i in range(4)
    ]
    assert rows[4][0]["callback_data"] == "end_test"


def test_random_command_starts_single_question(make_ctx, tg, store):
    dispatch(make_ctx(cmd="/random"))
    assert "Random Question" in _sent_texts(tg)[-1]
    assert _load_session(store, USER_ID).test_type == "random"


def test_stats_without_results(make_ctx, tg):
    dispatch(make_ctx(cmd="/stats"))
    assert "No results yet" in _sent_texts(tg)[0]


def test_stats_with_results(make_ctx, tg, store):
    _save_stats(
        store,
        USER_ID,
        UserStats(total_tests=2, total_questions_answered=35, correct_answers=13, average_score=37, best_score=80),
    )
    dispatch(make_ctx(cmd="/stats"))
    text = _sent_texts(tg)[0]
    assert "Tests completed: 2" in text
    assert "Average score: 37% (Needs Improvement)" in text
    assert "Best score: 80%" in text


def test_leaderboard_empty(make_ctx, tg):
    dispatch(make_ctx(cmd="/leaderboard"))
    assert "empty" in _sent_texts(tg)[0]


def test_leaderboard_lists_entries_with_medals(make_ctx, tg, store):
    _update_leaderboard(store, {"user_id": 1, "name": "@ann", "best_score": 90, "estimated_iq": 143, "total_tests": 2})
    _update_leaderboard(store, {"user_id": 2, "name": "Bob", "best_score": 60, "estimated_iq": 111, "total_tests": 1})
    dispatch(make_ctx(cmd="/leaderboard"))
    text = _sent_texts(tg)[0]
    assert "🥇 @ann - best 90%, IQ 143" in text
    assert "🥈 Bob - best 60%, IQ 111" in text


def test_reset_drops_session_and_zeroes_stats(make_ctx, store):
    _save_stats(store, USER_ID, UserStats(total_tests=3, total_questions_answered=30, correct_answers=20, average_score=67, best_score=90))
    dispatch(make_ctx(cmd="/test", args="quick"))
    dispatch(make_ctx(cmd="/reset"))
    assert _load_session(store, USER_ID) is None
    assert _load_stats(store, USER_ID) == UserStats()


def test_tokens_stat_refuses_non_admin(make_ctx, tg):
    dispatch(make_ctx(cmd="/tokens_stat"))
    assert _sent_texts(tg) == [NOT_ADMIN_TEXT]


def test_tokens_stat_for_admin(make_ctx, tg):
    ctx = make_ctx(cmd="/tokens_stat", is_admin=True)
    with open(ctx.pm_log_file, "w", encoding="utf-8") as f:
        f.write(json.dumps({"record_type": "tokens", "user_id": 5, "username": "bob", "total_tokens": 300}) + "\n")
        f.write(json.dumps({"record_type": "tokens", "user_id": 6, "username": "", "total_tokens": 100}) + "\n")
        f.write("not json\n")
    dispatch(ctx)
    text = _sent_texts(tg)[0]
    assert "Total tokens spent: 400" in text
    assert "1. @bob: 300" in text
    assert "2. id=6: 100" in text


def test_backup_needs_configured_chat(make_ctx, tg):
    with patch("handlers.admin._create_backup") as create:
        dispatch(make_ctx(cmd="/backup", is_admin=True))
    create.assert_not_called()
    assert "not configured" in _sent_texts(tg)[0]


def test_callback_answer_flow(services, tg, store, make_callback, llm):
    _handle_update(services, make_callback("test_quick"))
    assert _toast(tg) == "Starting quick test"
    assert _load_session(store, USER_ID).current_question_index == 1
    buttons = [r[0]["callback_data"] for r in _last_markup(tg)["inline_keyboard"]]

    _handle_update(services, make_callback(buttons[2]))
    assert _toast(tg) == "Correct!"
    edit = tg.edit_message_text.call_args.kwargs
    assert edit["message_id"] == 77
    assert "Correct" in edit["text"]
    assert edit["reply_markup"]["inline_keyboard"][0][0]["callback_data"] == "next_question"

    _handle_update(services, make_callback(buttons[1]))
    assert _toast(tg) == "This question was already answered."
    assert _load_session(store, USER_ID).score == 1

    _handle_update(services, make_callback("next_question"))
    assert _load_session(store, USER_ID).current_question_index == 2
    assert llm.chat.completions.create.call_count == 2


def test_callback_logs_activity_and_tokens(services, make_callback):
    _handle_update(services, make_callback("test_random"))
    with open(services.pm_log_file, encoding="utf-8") as f:
        records = [json.loads(line) for line in f if line.strip()]
    kinds = [r["record_type"] for r in records]
    assert kinds == ["callback", "tokens"]
    assert records[1]["total_tokens"] == 200
    assert records[1]["purpose"] == "question"
    assert records[1]["user_id"] == USER_ID


def test_callback_without_session_reports_expiry(services, tg, make_callback):
    _handle_update(services, make_callback("answer_0_3"))
    assert _toast(tg) == "Session expired."
    assert _sent_texts(tg)[-1] == SESSION_EXPIRED_TEXT


def test_next_question_before_answer_is_refused(services, tg, store, make_callback):
    _handle_update(services, make_callback("test_quick"))
    _handle_update(services, make_callback("next_question"))
    assert _toast(tg) == "Answer the current question first."
    assert _load_session(store, USER_ID).current_question_index == 1


def test_end_test_callback_keeps_stats(services, tg, store, make_callback):
    _handle_update(services, make_callback("test_quick"))
    _handle_update(services, make_callback("end_test"))
    assert _toast(tg) == "Test ended."
    assert _load_session(store, USER_ID) is None
    assert _load_stats(store, USER_ID).total_tests == 0


def test_set_difficulty_callback(services, tg, store, make_callback):
    _handle_update(services, make_callback("difficulty_hard"))
    assert _get_difficulty(store, USER_ID) == "hard"
    assert "HARD" in _plain(tg.edit_message_text.call_args.kwargs["text"])


def test_unsupported_difficulty_is_rejected(services, tg, store, make_callback):
    _handle_update(services, make_callback("difficulty_insane"))
    assert _toast(tg) == "Unknown difficulty."
    assert _get_difficulty(store, USER_ID) == "medium"
    tg.edit_message_text.assert_not_called()


def test_unknown_callback_gets_toast(services, tg, make_callback):
    _handle_update(services, make_callback("legacy_button"))
    assert _toast(tg) == "This button is no longer supported."


def test_callback_is_acknowledged_when_handler_fails(services, tg, make_callback):
    with patch("handlers.quiz.start_test", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            _handle_callback_query(services, make_callback("test_quick")["callback_query"], "req-x")
    tg.answer_callback_query.assert_called_once_with(callback_query_id="cbq-1", text=None)


def test_message_update_routes_to_command(services, tg, make_update):
    _handle_update(services, make_update("/start"))
    assert tg.send_message.call_args.kwargs["chat_id"] == CHAT_ID


def test_command_for_other_bot_is_ignored(services, tg, make_update):
    _handle_update(services, make_update("/start@other_bot", chat_type="group"))
    tg.send_message.assert_not_called()


def test_command_addressed_to_this_bot(services, tg, make_update):
    _handle_update(services, make_update("/START@IQ_Master_Bot", chat_type="group"))
    assert "Welcome" in _sent_texts(tg)[0]


def test_button_from_previous_test_does_not_score(services, tg, store, make_callback):
    _handle_update(services, make_callback("test_quick"))
    old_buttons = [r[0]["callback_data"] for r in _last_markup(tg)["inline_keyboard"]]
    _handle_update(services, make_callback("test_standard"))

    _handle_update(services, make_callback(old_buttons[2]))
    assert _toast(tg) == "This question was already answered."
    session = _load_session(store, USER_ID)
    assert session.total_questions == 25
    assert session.score == 0
    assert session.questions_answered == 0


def test_streak_shown_after_consecutive_correct_answers(services, tg, store, make_callback):
    _save_stats(store, USER_ID, UserStats(current_streak=2, best_streak=2))
    _handle_update(services, make_callback("test_quick"))
    buttons = [r[0]["callback_data"] for r in _last_markup(tg)["inline_keyboard"]]
    _handle_update(services, make_callback(buttons[2]))
    assert "🔥 Streak: 3" in _plain(tg.edit_message_text.call_args.kwargs["text"])
    assert _load_stats(store, USER_ID).best_streak == 3


def test_stats_show_streaks(make_ctx, tg, store):
    _save_stats(store, USER_ID, UserStats(total_tests=1, total_questions_answered=10, correct_answers=7, average_score=70, best_score=70, current_streak=4, best_streak=6))
    dispatch(make_ctx(cmd="/stats"))
    assert "Current streak: 4 (best 6)" in _sent_texts(tg)[0]

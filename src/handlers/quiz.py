import logging

from actions import CallbackAction
from constants import TEST_TYPES
from context import BotContext
from data.users import _display_name, _get_difficulty, _load_user
from keyboards import after_answer_keyboard, question_keyboard, results_keyboard, test_menu_keyboard
from quiz_machine import (
    STATUS_ANSWERED,
    STATUS_COMPLETED,
    STATUS_NO_SESSION,
    STATUS_QUESTION,
    STATUS_UNANSWERED,
    TurnResult,
    advance,
    answer,
    end_test,
    start_test,
)
from scoring import _percentage
from text_format import _edit_with_formatting_fallback, _send_with_formatting_fallback

SESSION_EXPIRED_TEXT = "⌛ Your test session has expired. Use /test to start a new one."


def _format_question(result: TurnResult) -> str:
    session = result.session
    q = result.question
    assert session is not None and q is not None
    if session.test_type == "random":
        header = f"🎲 Random Question · {q.difficulty.upper()}"
    else:
        header = f"🧠 Question {session.current_question_index}/{session.total_questions} · {q.difficulty.upper()}"
    options = "\n".join(f"{chr(65 + i)}. {opt}" for i, opt in enumerate(q.options))
    return f"{header}\n📂 Category: {q.category}\n\n{q.question}\n\n{options}"


def _format_report(result: TurnResult) -> str:
    report = result.report
    stats = result.stats
    assert report is not None and stats is not None
    return (
        "🏁 Test Complete!\n\n"
        f"Score: {report.score}/{report.total_questions} ({report.percentage}%)\n"
        f"🧠 Estimated IQ: {report.estimated_iq}\n"
        f"📈 Performance: {report.performance}\n\n"
        f"Tests taken: {stats.total_tests}\n"
        f"Average score: {stats.average_score}%\n"
        f"Best score: {stats.best_score}%"
    )


def _present_turn(ctx: BotContext, result: TurnResult) -> str | None:
    """Send whatever `advance`/`start_test` produced; returns a toast for callbacks."""
    if result.status == STATUS_QUESTION:
        assert result.question is not None and result.session is not None
        _send_with_formatting_fallback(
            tg=ctx.tg,
            chat_id=ctx.chat_id,
            text=_format_question(result),
            reply_markup=question_keyboard(
                result.question,
                result.session.current_question_index,
                result.session.session_id,
            ),
        )
        return None
    if result.status == STATUS_COMPLETED:
        _send_with_formatting_fallback(
            tg=ctx.tg,
            chat_id=ctx.chat_id,
            text=_format_report(result),
            reply_markup=results_keyboard(),
        )
        return "Test complete!"
    if result.status == STATUS_UNANSWERED:
        return "Answer the current question first."
    if result.status == STATUS_NO_SESSION:
        _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text=SESSION_EXPIRED_TEXT)
        return "Session expired."
    return None


def _begin(ctx: BotContext, test_type: str) -> str | None:
    user = _load_user(ctx.store, ctx.user_id)
    result = start_test(
        ctx.store,
        ctx.user_id,
        test_type,
        ctx.generate,
        difficulty=_get_difficulty(ctx.store, ctx.user_id),
        display_name=_display_name(user, ctx.user_id),
    )
    return _present_turn(ctx, result)


def handle_test(ctx: BotContext) -> None:
    arg = (ctx.args or "").strip().lower()
    if arg in TEST_TYPES:
        _begin(ctx, arg)
        return
    lines = ["📝 Choose a test:", ""]
    for name, (_, label, _) in TEST_TYPES.items():
        if name != "random":
            lines.append(f"• {label}")
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text="\n".join(lines),
        reply_markup=test_menu_keyboard(),
    )


def handle_random(ctx: BotContext) -> None:
    _begin(ctx, "random")


def on_test_menu(ctx: BotContext, action: CallbackAction) -> str | None:
    handle_test(ctx)
    return None


def on_start_test(ctx: BotContext, action: CallbackAction) -> str | None:
    _begin(ctx, action.test_type)
    return f"Starting {action.test_type} test"


def on_next_question(ctx: BotContext, action: CallbackAction) -> str | None:
    user = _load_user(ctx.store, ctx.user_id)
    result = advance(
        ctx.store,
        ctx.user_id,
        ctx.generate,
        difficulty=_get_difficulty(ctx.store, ctx.user_id),
        display_name=_display_name(user, ctx.user_id),
    )
    return _present_turn(ctx, result)


def on_answer(ctx: BotContext, action: CallbackAction) -> str | None:
    result = answer(ctx.store, ctx.user_id, action.option, action.question_number, action.session_id)
    if result.status == STATUS_NO_SESSION:
        _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text=SESSION_EXPIRED_TEXT)
        return "Session expired."
    if result.status != STATUS_ANSWERED:
        logging.getLogger(__name__).info(
            "Ignoring stale answer from user %s: option=%s question=%s",
            ctx.user_id,
            action.option,
            action.question_number,
        )
        return "This question was already answered."

    session = result.session
    q = result.question
    assert session is not None and q is not None
    correct_label = f"{chr(65 + q.correct_answer)}. {q.options[q.correct_answer]}"
    if result.is_correct:
        verdict = "✅ Correct!"
    else:
        verdict = f"❌ Incorrect! The right answer is {correct_label}"

    stats = result.stats
    assert stats is not None
    lines = [_format_question(result), "", verdict]
    if q.explanation:
        lines.append(f"💡 {q.explanation}")
    if stats.current_streak > 1:
        lines.append(f"🔥 Streak: {stats.current_streak}")
    lines.append("")
    if session.test_type == "random":
        lines.append(
            f"📊 Overall: {stats.correct_answers}/{stats.total_questions_answered} correct "
            f"({stats.average_score}%)"
        )
    else:
        pct = _percentage(session.score, session.questions_answered)
        lines.append(f"📊 Score so far: {session.score}/{session.questions_answered} ({pct}%)")

    _edit_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        message_id=ctx.message_id,
        text="\n".join(lines),
        reply_markup=after_answer_keyboard(session.test_type, session.is_finished),
    )
    return "Correct!" if result.is_correct else "Incorrect"


def on_end_test(ctx: BotContext, action: CallbackAction) -> str | None:
    result = end_test(ctx.store, ctx.user_id)
    if result.status == STATUS_NO_SESSION:
        _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text=SESSION_EXPIRED_TEXT)
        return "Session expired."
    session = result.session
    assert session is not None
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text=(
            "⏹ Test ended early.\n\n"
            f"Answered: {session.questions_answered}/{session.total_questions}\n"
            f"Correct: {session.score}\n\n"
            "Unfinished tests do not count towards your results. Use /test to start again."
        ),
        reply_markup=results_keyboard(),
    )
    return "Test ended."

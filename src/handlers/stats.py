from actions import CallbackAction
from context import BotContext
from data.sessions import _delete_session
from data.stats import UserStats, _load_leaderboard, _load_stats, _save_stats
from keyboards import inline_kb
from scoring import _performance_tier
from text_format import _send_with_formatting_fallback

_MEDALS = ["🥇", "🥈", "🥉"]


def _progress_bar(percentage: int) -> str:
    filled = max(0, min(10, percentage // 10))
    return "🟩" * filled + "⬜" * (10 - filled) + f" {percentage}%"


def handle_stats(ctx: BotContext) -> None:
    stats = _load_stats(ctx.store, ctx.user_id)
    if stats.total_tests == 0:
        _send_with_formatting_fallback(
            tg=ctx.tg,
            chat_id=ctx.chat_id,
            text="📊 No results yet. Finish a /test or answer a /random question first.",
            reply_markup=inline_kb([[("🎯 Start a Test", "test_menu")]]),
        )
        return

    last = (stats.last_test_date or "")[:10] or "-"
    lines = [
        "📊 Your statistics",
        "",
        f"Tests completed: {stats.total_tests}",
        f"Questions answered: {stats.total_questions_answered}",
        f"Correct answers: {stats.correct_answers}",
        f"Average score: {stats.average_score}% ({_performance_tier(stats.average_score)})",
        _progress_bar(stats.average_score),
        f"Best score: {stats.best_score}%",
        f"Current streak: {stats.current_streak} (best {stats.best_streak})",
        f"Last test: {last}",
    ]
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text="\n".join(lines),
        reply_markup=inline_kb([[("🎯 New Test", "test_menu"), ("🏆 Leaderboard", "leaderboard")]]),
    )


def handle_leaderboard(ctx: BotContext) -> None:
    entries = _load_leaderboard(ctx.store)
    if not entries:
        text = "🏆 The leaderboard is empty. Complete a test to claim the top spot!"
    else:
        lines = ["🏆 Leaderboard", ""]
        for i, e in enumerate(entries, start=1):
            place = _MEDALS[i - 1] if i <= len(_MEDALS) else f"{i}."
            lines.append(
                f"{place} {e.get('name') or 'anonymous'} - best {int(e.get('best_score') or 0)}%, "
                f"IQ {int(e.get('estimated_iq') or 0)}"
            )
        text = "\n".join(lines)
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text=text,
        reply_markup=inline_kb([[("🎯 Practice Now", "test_menu")]]),
    )


def handle_reset(ctx: BotContext) -> None:
    _delete_session(ctx.store, ctx.user_id)
    _save_stats(ctx.store, ctx.user_id, UserStats())
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text="🔄 Progress reset. Your current test was dropped and all counters are back to 0.",
        reply_markup=inline_kb([[("🎯 Start a Test", "test_menu")]]),
    )


def on_stats(ctx: BotContext, action: CallbackAction) -> str | None:
    handle_stats(ctx)
    return None


def on_leaderboard(ctx: BotContext, action: CallbackAction) -> str | None:
    handle_leaderboard(ctx)
    return None

from actions import CallbackAction
from constants import DIFFICULTIES
from context import BotContext
from data.users import _get_difficulty, _load_user, _save_user
from keyboards import difficulty_keyboard
from text_format import _edit_with_formatting_fallback, _send_with_formatting_fallback


def handle_difficulty(ctx: BotContext) -> None:
    current = _get_difficulty(ctx.store, ctx.user_id)
    text = (
        "⚙️ Choose difficulty level\n\n"
        "🟢 Easy: warm-up questions\n"
        "🟡 Medium: standard questions\n"
        "🔴 Hard: challenging questions\n\n"
        f"Current: {current.upper()}"
    )
    _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text=text, reply_markup=difficulty_keyboard())


def on_difficulty_menu(ctx: BotContext, action: CallbackAction) -> str | None:
    handle_difficulty(ctx)
    return None


def on_set_difficulty(ctx: BotContext, action: CallbackAction) -> str | None:
    level = action.difficulty
    if level not in DIFFICULTIES:
        return "Unknown difficulty."
    user = _load_user(ctx.store, ctx.user_id) or {
        "user_id": ctx.user_id,
        "username": ctx.username,
        "first_name": ctx.first_name,
    }
    user["difficulty"] = level
    _save_user(ctx.store, user)
    _edit_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        message_id=ctx.message_id,
        text=f"✅ Difficulty set to {level.upper()}",
    )
    return None

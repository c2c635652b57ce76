import logging
from typing import Callable

from actions import ActionKind, CallbackAction
from context import BotContext

from handlers.admin import handle_backup, handle_tokens_stat
from handlers.misc import handle_help, handle_start, handle_unknown
from handlers.quiz import (
    handle_random,
    handle_test,
    on_answer,
    on_end_test,
    on_next_question,
    on_start_test,
    on_test_menu,
)
from handlers.settings import handle_difficulty, on_difficulty_menu, on_set_difficulty
from handlers.stats import handle_leaderboard, handle_reset, handle_stats, on_leaderboard, on_stats

COMMAND_HANDLERS: dict[str, Callable[[BotContext], None]] = {
    "/start": handle_start,
    "/help": handle_help,
    "/test": handle_test,
    "/random": handle_random,
    "/stats": handle_stats,
    "/leaderboard": handle_leaderboard,
    "/difficulty": handle_difficulty,
    "/reset": handle_reset,
    "/tokens_stat": handle_tokens_stat,
    "/backup": handle_backup,
}

CALLBACK_HANDLERS: dict[ActionKind, Callable[[BotContext, CallbackAction], str | None]] = {
    ActionKind.TEST_MENU: on_test_menu,
    ActionKind.START_TEST: on_start_test,
    ActionKind.ANSWER: on_answer,
    ActionKind.NEXT_QUESTION: on_next_question,
    ActionKind.END_TEST: on_end_test,
    ActionKind.DIFFICULTY_MENU: on_difficulty_menu,
    ActionKind.SET_DIFFICULTY: on_set_difficulty,
    ActionKind.STATS: on_stats,
    ActionKind.LEADERBOARD: on_leaderboard,
}


def dispatch(ctx: BotContext) -> None:
    # Plain text: only answered in private chats
    if ctx.cmd == "":
        if ctx.chat_type == "private":
            handle_unknown(ctx)
        return

    handler = COMMAND_HANDLERS.get(ctx.cmd)
    if handler is None:
        handle_unknown(ctx)
        return

    try:
        ctx.tg.send_message_reaction(chat_id=ctx.chat_id, message_id=ctx.message_id, reaction_emoji="👀")
    except Exception:
        logging.getLogger(__name__).debug("Failed to set reaction", exc_info=True)

    handler(ctx)


def dispatch_callback(ctx: BotContext, action: CallbackAction) -> str | None:
    """Run the handler for a decoded button press; returns the toast text, if any."""
    handler = CALLBACK_HANDLERS.get(action.kind)
    if handler is None:
        return "This button is no longer supported."
    return handler(ctx, action)

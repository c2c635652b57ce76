from constants import BOT_NAME
from context import BotContext
from keyboards import welcome_keyboard
from text_format import _send_with_formatting_fallback


def handle_start(ctx: BotContext) -> None:
    name = ctx.first_name or "there"
    text = (
        f"🧠 Welcome to {BOT_NAME}, {name}!\n\n"
        "I test your reasoning with AI-generated IQ questions:\n"
        "• 🎯 Full tests with an estimated IQ at the end\n"
        "• 🎲 Single random questions for quick practice\n"
        "• 📊 Personal statistics and a leaderboard\n\n"
        "Use /test to pick a test or /help for all commands."
    )
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text=text,
        reply_markup=welcome_keyboard(),
    )


def handle_help(ctx: BotContext) -> None:
    lines = [
        f"🔧 {BOT_NAME} commands:",
        "- /test [quick|standard|full|math|verbal|logic|spatial] - start a test",
        "- /random - a single random question",
        "- /stats - your statistics",
        "- /leaderboard - top 10 results",
        "- /difficulty - choose easy, medium or hard questions",
        "- /reset - drop the current test and reset your statistics",
        "- /help - this message",
        "",
        "Tests: quick 10 questions, standard 25, full 50, subject tests 20.",
        "Your estimated IQ is derived from the share of correct answers; longer tests scale it more.",
    ]
    if ctx.is_admin:
        lines.append("")
        lines.append("- /tokens_stat - LLM token usage")
        lines.append("- /backup - send a backup of the bot state")
    _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text="\n".join(lines))


def handle_unknown(ctx: BotContext) -> None:
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text="🤔 Sorry, I don't understand that. Use /help to see what I can do.",
    )

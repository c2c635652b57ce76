from backup import _create_backup
from context import BotContext
from logging_utils import _tokens_stat_from_log
from text_format import _send_with_formatting_fallback

NOT_ADMIN_TEXT = "Not allowed: this command is available to administrators only."


def handle_tokens_stat(ctx: BotContext) -> None:
    if not ctx.is_admin:
        _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text=NOT_ADMIN_TEXT)
        return
    if ctx.chat_type != "private":
        _send_with_formatting_fallback(
            tg=ctx.tg,
            chat_id=ctx.chat_id,
            text="Please use /tokens_stat in a private chat with the bot.",
        )
        return

    total, top_users = _tokens_stat_from_log(ctx.pm_log_file)
    lines = [f"Total tokens spent: {total}"]
    if not top_users:
        lines.append("Top users: no data.")
    else:
        lines.append("Top 5 users by tokens:")
        for i, (uid, uname, t) in enumerate(top_users, start=1):
            who = f"@{uname}" if uname else f"id={uid}"
            lines.append(f"{i}. {who}: {t}")

    _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text="\n".join(lines))


def handle_backup(ctx: BotContext) -> None:
    if not ctx.is_admin:
        _send_with_formatting_fallback(tg=ctx.tg, chat_id=ctx.chat_id, text=NOT_ADMIN_TEXT)
        return

    backup_chat_id = ctx.settings.get("backup_chat_id")
    if not isinstance(backup_chat_id, int) or backup_chat_id == 0:
        _send_with_formatting_fallback(
            tg=ctx.tg,
            chat_id=ctx.chat_id,
            text="Backup chat is not configured. Set backup_chat_id in the config file.",
        )
        return

    success = _create_backup(
        tg=ctx.tg,
        config_path=ctx.config_path,
        store_file=ctx.store_file,
        pm_log_file=ctx.pm_log_file,
        backup_chat_id=backup_chat_id,
    )
    _send_with_formatting_fallback(
        tg=ctx.tg,
        chat_id=ctx.chat_id,
        text="Backup created and sent." if success else "Backup failed. Check the logs for details.",
    )

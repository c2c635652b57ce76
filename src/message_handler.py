import uuid
from typing import Any, Dict

from callback_handler import _handle_callback_query
from command_utils import (
    _extract_command,
    _get_message_basics,
    _get_sender,
    _is_admin,
    _is_command_for_this_bot,
)
from config import _load_settings
from context import BotContext, BotServices
from data.users import _touch_user
from handlers import dispatch
from llm import _make_generator
from logging_utils import _log_incoming_message


def _handle_message(services: BotServices, message: Dict[str, Any], request_id: str) -> None:
    chat_id, message_id, chat_type = _get_message_basics(message)
    user_id, username, first_name = _get_sender(message)
    if chat_id == 0 or user_id == 0:
        return
    if (message.get("from") or {}).get("is_bot"):
        return

    text = str(message.get("text") or "")
    if text.strip().startswith("/") and not _is_command_for_this_bot(text, services.bot_username):
        return
    cmd, args = _extract_command(text)

    _log_incoming_message(
        message=message,
        pm_log_file=services.pm_log_file,
        bot_username=services.bot_username,
        request_id=request_id,
        cmd=cmd,
    )

    settings = _load_settings(services.config_path)
    _touch_user(services.store, user_id, username, first_name)

    ctx = BotContext(
        tg=services.tg,
        store=services.store,
        generate=_make_generator(
            services.llm,
            services.model,
            message=message,
            pm_log_file=services.pm_log_file,
            request_id=request_id,
            cmd=cmd,
        ),
        message=message,
        settings=settings,
        chat_id=chat_id,
        message_id=message_id,
        user_id=user_id,
        username=username,
        first_name=first_name,
        is_admin=_is_admin(settings=settings, user_id=user_id, username=username),
        chat_type=chat_type,
        cmd=cmd,
        args=args,
        request_id=request_id,
        config_path=services.config_path,
        store_file=services.store_file,
        pm_log_file=services.pm_log_file,
    )
    dispatch(ctx)


def _handle_update(services: BotServices, update: Dict[str, Any]) -> None:
    """Route one Telegram update. Exceptions propagate to the caller."""
    request_id = str(uuid.uuid4())

    message = update.get("message")
    if isinstance(message, dict):
        _handle_message(services, message, request_id)
        return

    callback_query = update.get("callback_query")
    if isinstance(callback_query, dict):
        _handle_callback_query(services, callback_query, request_id)


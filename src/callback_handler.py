import logging
from typing import Any, Dict

from actions import decode_callback
from command_utils import _get_message_basics, _get_sender, _is_admin
from config import _load_settings
from context import BotContext, BotServices
from data.users import _touch_user
from handlers import dispatch_callback
from llm import _make_generator
from logging_utils import _log_incoming_message


def _handle_callback_query(
    services: BotServices,
    callback_query: Dict[str, Any],
    request_id: str,
) -> None:
    tg = services.tg
    callback_query_id = str(callback_query.get("id") or "")
    data = str(callback_query.get("data") or "")
    user_id, username, first_name = _get_sender(callback_query)

    msg = callback_query.get("message") or {}
    if not isinstance(msg, dict) or not msg.get("chat") or user_id == 0:
        # Inline-mode or malformed callbacks carry no chat to answer in.
        try:
            tg.answer_callback_query(callback_query_id=callback_query_id)
        except Exception:
            logging.getLogger(__name__).debug("Failed to answer callback_query", exc_info=True)
        return

    chat_id, message_id, chat_type = _get_message_basics(msg)
    action = decode_callback(data)

    # Synthetic message so activity and token logs see who pressed what.
    pseudo_message = {
        "from": callback_query.get("from") or {},
        "chat": msg.get("chat") or {},
        "message_id": message_id,
        "text": data,
    }
    _log_incoming_message(
        message=pseudo_message,
        pm_log_file=services.pm_log_file,
        bot_username=services.bot_username,
        request_id=request_id,
        cmd=action.kind.value,
        record_type="callback",
    )

    settings = _load_settings(services.config_path)
    _touch_user(services.store, user_id, username, first_name)

    ctx = BotContext(
        tg=tg,
        store=services.store,
        generate=_make_generator(
            services.llm,
            services.model,
            message=pseudo_message,
            pm_log_file=services.pm_log_file,
            request_id=request_id,
            cmd=action.kind.value,
        ),
        message=pseudo_message,
        settings=settings,
        chat_id=chat_id,
        message_id=message_id,
        user_id=user_id,
        username=username,
        first_name=first_name,
        is_admin=_is_admin(settings=settings, user_id=user_id, username=username),
        chat_type=chat_type,
        cmd=action.kind.value,
        args="",
        request_id=request_id,
        config_path=services.config_path,
        store_file=services.store_file,
        pm_log_file=services.pm_log_file,
    )

    toast = None
    try:
        toast = dispatch_callback(ctx, action)
    finally:
        # Always dismiss the button spinner, even if the handler failed.
        try:
            tg.answer_callback_query(callback_query_id=callback_query_id, text=toast)
        except Exception:
            logging.getLogger(__name__).debug("Failed to answer callback_query", exc_info=True)

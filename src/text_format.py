import re
from typing import Any, Dict, Optional

from telegram_client import TelegramClient


def _escape_markdown_v2_plain(chunk: str) -> str:
    """
    Escapes arbitrary text for Telegram MarkdownV2 (outside links and code).
    """
    if not chunk:
        return chunk
    chunk = chunk.replace("\\", "\\\\")
    return re.sub(r"([_*\[\]()~`>#+\-=|{}.!])", r"\\\1", chunk)


def _escape_markdown_v2(text: str) -> str:
    """
    Escapes text for Telegram MarkdownV2.
    Docs: https://core.telegram.org/bots/api#markdownv2-style
    """
    if text is None:
        return ""

    s = str(text)

    # Preserve fenced and inline code blocks; escape only outside of them.
    code_re = re.compile(r"```[\s\S]*?```|`[^`\n]+`")

    out: list[str] = []
    last = 0
    for m in code_re.finditer(s):
        if m.start() > last:
            out.append(_escape_markdown_v2_plain(s[last : m.start()]))
        out.append(m.group(0))
        last = m.end()
    if last < len(s):
        out.append(_escape_markdown_v2_plain(s[last:]))

    return "".join(out)


def _send_with_formatting_fallback(
    tg: TelegramClient,
    chat_id: int,
    text: str,
    *,
    reply_markup: Optional[Dict[str, Any]] = None,
    markdown_v2_raw: bool = False,
) -> bool:
    """
    Sends a message. By default the text is escaped and sent as MarkdownV2.
    With markdown_v2_raw=True the text is assumed to be ready MarkdownV2.
    Falls back to plain text if Telegram rejects the formatted version.
    """
    formatted = text if markdown_v2_raw else _escape_markdown_v2(text)
    resp = tg.send_message(
        chat_id=chat_id,
        parse_mode="MarkdownV2",
        message=formatted,
        reply_markup=reply_markup,
    )
    if getattr(resp, "status_code", 500) == 200:
        return True

    resp_plain = tg.send_message(
        chat_id=chat_id,
        parse_mode=None,
        message=text,
        reply_markup=reply_markup,
    )
    return getattr(resp_plain, "status_code", 500) == 200


def _edit_with_formatting_fallback(
    tg: TelegramClient,
    chat_id: int,
    message_id: int,
    text: str,
    *,
    reply_markup: Optional[Dict[str, Any]] = None,
) -> bool:
    resp = tg.edit_message_text(
        chat_id=chat_id,
        message_id=message_id,
        text=_escape_markdown_v2(text),
        parse_mode="MarkdownV2",
        reply_markup=reply_markup,
    )
    if getattr(resp, "status_code", 500) == 200:
        return True
    resp_plain = tg.edit_message_text(
        chat_id=chat_id,
        message_id=message_id,
        text=text,
        parse_mode=None,
        reply_markup=reply_markup,
    )
    return getattr(resp_plain, "status_code", 500) == 200

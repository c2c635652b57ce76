from dataclasses import dataclass
from typing import Any, Callable, Dict

from openai import OpenAI

from data.store import KVStore
from telegram_client import TelegramClient


@dataclass
class BotServices:
    """Process-wide collaborators and paths, built once in main()."""

    tg: TelegramClient
    llm: OpenAI
    model: str
    store: KVStore
    config_path: str
    store_file: str
    pm_log_file: str
    bot_username: str = ""


@dataclass
class BotContext:
    """Everything a handler needs for one inbound update."""

    tg: TelegramClient
    store: KVStore
    generate: Callable[[str], str]
    message: Dict[str, Any]
    settings: Dict[str, Any]
    chat_id: int
    message_id: int
    user_id: int
    username: str
    first_name: str
    is_admin: bool
    chat_type: str
    cmd: str
    args: str
    request_id: str
    config_path: str
    store_file: str
    pm_log_file: str

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="IQ Master Telegram bot")
    parser.add_argument(
        "--config",
        type=str,
        default="bot_config.json",
        help="Path to JSON config file (default: bot_config.json)",
    )
    parser.add_argument(
        "--store-file",
        type=str,
        default="kv_store.json",
        help="Path to JSON key-value store with sessions and stats (default: kv_store.json)",
    )
    parser.add_argument(
        "--pm-log-file",
        type=str,
        default="private_messages.jsonl",
        help="Path to JSONL activity log (default: private_messages.jsonl)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Webhook server bind address (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Webhook server port (default: 8080)",
    )
    parser.add_argument(
        "--polling",
        action="store_true",
        help="Use getUpdates long polling instead of serving the webhook",
    )
    return parser.parse_args(argv)


def _parse_chat_id(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None


def _load_settings(config_path: str) -> Dict[str, Any]:
    """
    Load bot settings from JSON file.

    Expected schema:
      - admin_users: list[int|str] (Telegram user IDs and/or usernames)
      - backup_chat_id: int|null (Telegram chat ID for backups)

    The file is intentionally read on every request.
    """
    fallback: Dict[str, Any] = {
        "admin_users": [],
        "backup_chat_id": None,
    }
    path = Path(config_path)
    if not path.exists():
        return fallback
    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
        if not isinstance(data, dict):
            return fallback
        admin_users = data.get("admin_users", [])
        if not isinstance(admin_users, list):
            admin_users = []
        return {
            "admin_users": admin_users,
            "backup_chat_id": _parse_chat_id(data.get("backup_chat_id")),
        }
    except Exception:
        logging.getLogger(__name__).warning(
            "Failed to load config %s; using defaults",
            config_path,
            exc_info=True,
        )
        return fallback

import logging
import os
import threading
import time

import requests
import schedule
from openai import OpenAI

from backup import _create_backup
from command_utils import _require_env
from config import _load_settings, _parse_args
from constants import OPENAI_BASE_URL, OPENAI_MODEL
from context import BotServices
from data.store import KVStore
from message_handler import _handle_update
from server import create_app
from telegram_client import TelegramClient


def _run_polling(services: BotServices) -> None:
    logger = logging.getLogger(__name__)
    try:
        services.tg.delete_webhook()
    except Exception:
        logger.warning("Failed to delete webhook before polling", exc_info=True)

    offset = 0
    while True:
        try:
            data = services.tg.get_updates(offset=offset)
            for update in data.get("result") or []:
                update_id = update.get("update_id")
                if isinstance(update_id, int):
                    offset = max(offset, update_id + 1)
                try:
                    _handle_update(services, update)
                except Exception:
                    logger.exception("Failed to handle update %s", update_id)
        except requests.exceptions.RequestException as e:
            logger.warning("Polling error: %s", e)
            time.sleep(2)
        except Exception:
            logger.exception("Unexpected error in polling loop")
            time.sleep(2)


def _start_backup_scheduler(services: BotServices) -> None:
    logger = logging.getLogger(__name__)

    def scheduled_backup():
        settings = _load_settings(services.config_path)
        backup_chat_id = settings.get("backup_chat_id")
        if not isinstance(backup_chat_id, int) or backup_chat_id == 0:
            logger.warning("Backup chat not configured, skipping scheduled backup")
            return
        logger.info("Running scheduled backup...")
        if _create_backup(
            tg=services.tg,
            config_path=services.config_path,
            store_file=services.store_file,
            pm_log_file=services.pm_log_file,
            backup_chat_id=backup_chat_id,
        ):
            logger.info("Scheduled backup completed successfully")
        else:
            logger.error("Scheduled backup failed")

    schedule.every().monday.at("10:00").do(scheduled_backup)

    def run_scheduler():
        while True:
            schedule.run_pending()
            time.sleep(60)

    threading.Thread(target=run_scheduler, daemon=True).start()
    logger.info("Backup scheduler started: every Monday at 10:00")


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    _require_env("TELEGRAM_BOT_TOKEN")
    api_key = _require_env("API_KEY")

    tg = TelegramClient()
    services = BotServices(
        tg=tg,
        llm=OpenAI(api_key=api_key, base_url=os.environ.get("OPENAI_BASE_URL") or OPENAI_BASE_URL),
        model=os.environ.get("OPENAI_MODEL") or OPENAI_MODEL,
        store=KVStore(args.store_file),
        config_path=args.config,
        store_file=args.store_file,
        pm_log_file=args.pm_log_file,
    )

    try:
        me = tg.get_me()
        services.bot_username = str((me.get("result") or {}).get("username") or "").strip()
        logger.info("Bot started: %s", services.bot_username or None)
    except Exception:
        logger.warning("getMe failed; commands addressed as /cmd@bot will be ignored", exc_info=True)

    _start_backup_scheduler(services)

    if args.polling:
        _run_polling(services)
        return

    app = create_app(
        services,
        webhook_secret=os.environ.get("TELEGRAM_WEBHOOK_SECRET", "").strip(),
        webhook_base_url=os.environ.get("WEBHOOK_BASE_URL", "").strip(),
    )
    app.run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()

import logging
import zipfile
from datetime import datetime, timezone
from pathlib import Path

from telegram_client import TelegramClient

KEEP_BACKUPS = 5


def _create_backup(
    tg: TelegramClient,
    config_path: str,
    store_file: str,
    pm_log_file: str,
    backup_chat_id: int,
    backup_dir: str = "backups",
) -> bool:
    """
    Zip the settings, the key-value store and the activity log and send the
    archive to the backup chat.

    Returns True if the backup was created and sent successfully.
    """
    logger = logging.getLogger(__name__)

    try:
        out_dir = Path(backup_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        backup_path = out_dir / f"bot_backup_{timestamp}.zip"

        files_to_backup = [
            (Path(config_path), "bot_config.json"),
            (Path(store_file), "kv_store.json"),
            (Path(pm_log_file), "private_messages.jsonl"),
        ]

        with zipfile.ZipFile(backup_path, "w", zipfile.ZIP_DEFLATED) as zipf:
            for file_path, archive_name in files_to_backup:
                if file_path.exists():
                    zipf.write(file_path, archive_name)
                    logger.info("Added %s to backup as %s", file_path, archive_name)
                else:
                    logger.warning("File %s does not exist, skipping", file_path)

        resp = tg.send_document(
            chat_id=backup_chat_id,
            path=backup_path,
            caption=f"Bot backup {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}",
        )

        if resp.status_code != 200:
            logger.error("Failed to send backup: status code %d", resp.status_code)
            return False

        logger.info("Backup sent successfully to chat %s", backup_chat_id)
        backup_files = sorted(out_dir.glob("bot_backup_*.zip"))
        for old_backup in backup_files[:-KEEP_BACKUPS]:
            old_backup.unlink()
            logger.info("Deleted old backup: %s", old_backup)
        return True

    except Exception as e:
        logger.error("Failed to create backup: %s: %s", type(e).__name__, e, exc_info=True)
        return False

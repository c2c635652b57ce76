import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests


class TelegramAPIError(Exception):
    """Exception raised when Telegram API returns a non-200 status code."""

    def __init__(self, status_code: int, endpoint: str, content: bytes, method: str):
        self.status_code = status_code
        self.endpoint = endpoint
        self.content = content
        self.method = method
        message = f"{method} {endpoint} returned status {status_code}"
        super().__init__(message)


class TelegramClient:
    """Client for interacting with Telegram Bot API."""

    def __init__(self, bot_token: Optional[str] = None):
        self._telegram_bot_token = bot_token or os.environ.get("TELEGRAM_BOT_TOKEN")
        if self._telegram_bot_token is None:
            raise ValueError("TELEGRAM_BOT_TOKEN env var is required")

        self.logger = logging.getLogger(__name__)

    def _request(
        self,
        method: str,
        endpoint: str,
        timeout: int = 10,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        enable_debug_logs=True,
    ) -> requests.Response:
        """Make a request to Telegram Bot API with logging.

        Non-200 responses are logged and returned as is; callers decide
        whether that is fatal.

        Raises:
            requests.exceptions.RequestException: On network errors or timeouts
            ValueError: On invalid HTTP method
        """
        url = f"https://api.telegram.org/bot{self._telegram_bot_token}/{endpoint}"

        if enable_debug_logs:
            self.logger.debug("api request: %s %s", method, endpoint)

        start_time = time.perf_counter()
        try:
            if method.upper() == "GET":
                resp = requests.get(url, params=params, timeout=timeout)
            elif method.upper() == "POST":
                resp = requests.post(
                    url,
                    params=params,
                    json=json_data,
                    data=data,
                    files=files,
                    timeout=timeout,
                )
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
        except requests.exceptions.RequestException as e:
            elapsed_time = time.perf_counter() - start_time
            self.logger.error(
                "Request error when making %s request to %s %.3fs: %s",
                method,
                endpoint,
                elapsed_time,
                e,
            )
            raise

        elapsed_time = time.perf_counter() - start_time
        if enable_debug_logs:
            self.logger.debug(
                "api response: %s %s %d %.3fs",
                method,
                endpoint,
                resp.status_code,
                elapsed_time,
            )

        if resp.status_code != 200:
            self.logger.warning(
                "%s %s returned status %d in %.3fs. resp.content: %s",
                method,
                endpoint,
                resp.status_code,
                elapsed_time,
                resp.content[:500] if resp.content else "No content",
            )

        return resp

    def _request_json(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        resp = self._request(method=method, endpoint=endpoint, **kwargs)
        if resp.status_code != 200:
            raise TelegramAPIError(
                status_code=resp.status_code,
                endpoint=endpoint,
                content=resp.content,
                method=method,
            )
        return resp.json()

    def send_message(
        self,
        chat_id: int,
        message: str,
        parse_mode: Optional[str] = "MarkdownV2",
        reply_markup: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> requests.Response:
        """Send a message to a Telegram chat, optionally with an inline keyboard."""
        extra_params = {**kwargs}
        if parse_mode is not None:
            extra_params["parse_mode"] = parse_mode
        if reply_markup is not None:
            extra_params["reply_markup"] = reply_markup

        return self._request(
            method="POST",
            endpoint="sendMessage",
            json_data={
                "text": message,
                "link_preview_options": {"is_disabled": True},
                "chat_id": chat_id,
                **extra_params,
            },
        )

    def send_message_reaction(self, chat_id: int, message_id: int, reaction_emoji: str) -> requests.Response:
        """Send a reaction to a message."""
        return self._request(
            method="POST",
            endpoint="setMessageReaction",
            json_data={
                "chat_id": chat_id,
                "message_id": message_id,
                "reaction": [{"type": "emoji", "emoji": reaction_emoji}],
            },
        )

    def send_document(self, chat_id: int, path: Path, caption: str = "") -> requests.Response:
        with open(path, "rb") as f:
            return self._request(
                method="POST",
                endpoint="sendDocument",
                data={"chat_id": chat_id, "caption": caption},
                files={"document": (path.name, f, "application/zip")},
                timeout=30,
            )

    def get_me(self) -> Dict[str, Any]:
        """Get bot information from Telegram."""
        return self._request_json(method="GET", endpoint="getMe")

    def get_updates(self, offset: int = 0) -> Dict[str, Any]:
        """Long-poll for updates."""
        return self._request_json(
            method="GET",
            endpoint="getUpdates",
            params={
                "offset": offset,
                "timeout": 60,
                "allowed_updates": '["message", "callback_query"]',
            },
            timeout=90,
            enable_debug_logs=False,
        )

    def set_webhook(self, url: str, secret_token: Optional[str] = None) -> Dict[str, Any]:
        """Register `url` as the webhook; returns Telegram's JSON response."""
        payload: Dict[str, Any] = {
            "url": url,
            "allowed_updates": ["message", "callback_query"],
        }
        if secret_token:
            payload["secret_token"] = secret_token
        return self._request_json(method="POST", endpoint="setWebhook", json_data=payload)

    def delete_webhook(self) -> Dict[str, Any]:
        return self._request_json(method="POST", endpoint="deleteWebhook", json_data={})

    def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None,
        show_alert: bool = False,
    ) -> requests.Response:
        """Answer a callback query (dismisses the button spinner).

        Args:
            callback_query_id: Callback query ID
            text: Optional text to show to user
            show_alert: Whether to show as alert or notification
        """
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id, "show_alert": show_alert}
        if text:
            payload["text"] = text
        return self._request(method="POST", endpoint="answerCallbackQuery", json_data=payload)

    def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        parse_mode: Optional[str] = "MarkdownV2",
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """Edit message text, replacing its inline keyboard when `reply_markup` is given."""
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
            "link_preview_options": {"is_disabled": True},
        }
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup

        resp = self._request(method="POST", endpoint="editMessageText", json_data=payload)
        self.logger.debug(
            "editMessageText response: status=%d, content=%s",
            resp.status_code,
            resp.content[:200] if resp.content else "No content",
        )
        return resp

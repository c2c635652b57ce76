import hmac
import logging

from flask import Flask, Response, abort, jsonify, request

from context import BotServices
from message_handler import _handle_update
from telegram_client import TelegramAPIError


def create_app(services: BotServices, webhook_secret: str = "", webhook_base_url: str = "") -> Flask:
    """
    Webhook front end.

    POST /webhook answers "OK" (200) once the update has been handled, or
    "Error" (500) so that Telegram redelivers it.
    """
    app = Flask(__name__)
    logger = logging.getLogger(__name__)

    def verify_webhook_secret() -> None:
        if not webhook_secret:
            return
        got = request.headers.get("X-Telegram-Bot-Api-Secret-Token", "")
        if not hmac.compare_digest(got, webhook_secret):
            abort(401)

    @app.get("/")
    def root():
        return Response("IQ Master bot is running!", mimetype="text/plain")

    @app.post("/webhook")
    def webhook():
        verify_webhook_secret()
        update = request.get_json(force=True, silent=True)
        if not isinstance(update, dict):
            logger.error("Webhook body is not a JSON object: %r", request.get_data()[:200])
            return Response("Error", status=500, mimetype="text/plain")
        try:
            _handle_update(services, update)
        except Exception:
            logger.exception("Failed to handle update %s", update.get("update_id"))
            return Response("Error", status=500, mimetype="text/plain")
        return Response("OK", mimetype="text/plain")

    @app.get("/set-webhook")
    def set_webhook():
        base_url = webhook_base_url or request.host_url
        webhook_url = base_url.rstrip("/") + "/webhook"
        try:
            result = services.tg.set_webhook(webhook_url, secret_token=webhook_secret or None)
        except TelegramAPIError as e:
            # Relay Telegram's own error body and status.
            logger.error("setWebhook for %s returned %s", webhook_url, e.status_code)
            return Response(e.content or b"", status=e.status_code, mimetype="application/json")
        except Exception as e:
            logger.exception("setWebhook failed for %s", webhook_url)
            return jsonify({"ok": False, "error": f"{type(e).__name__}: {e}"}), 502
        logger.info("Webhook set to %s", webhook_url)
        return jsonify(result)

    return app

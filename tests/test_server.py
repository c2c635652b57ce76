from unittest.mock import patch

import pytest

from server import create_app
from telegram_client import TelegramAPIError


@pytest.fixture
def client(services):
    app = create_app(services)
    app.testing = True
    return app.test_client()


def test_root_reports_running(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "running" in resp.get_data(as_text=True)


def test_webhook_handles_update(client, tg, make_update):
    resp = client.post("/webhook", json=make_update("/start"))
    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "OK"
    tg.send_message.assert_called()


def test_webhook_ignores_unrelated_update(client, tg):
    resp = client.post("/webhook", json={"update_id": 3, "edited_message": {}})
    assert resp.status_code == 200
    tg.send_message.assert_not_called()


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]"])
def test_webhook_rejects_malformed_body(client, body):
    resp = client.post("/webhook", data=body, content_type="application/json")
    assert resp.status_code == 500
    assert resp.get_data(as_text=True) == "Error"


def test_webhook_returns_500_when_handling_fails(client, make_update):
    with patch("server._handle_update", side_effect=RuntimeError("boom")):
        resp = client.post("/webhook", json=make_update("/start"))
    assert resp.status_code == 500
    assert resp.get_data(as_text=True) == "Error"


def test_webhook_secret_checked(services, make_update):
    client = create_app(services, webhook_secret="s3cret").test_client()
    assert client.post("/webhook", json=make_update("/start")).status_code == 401
    bad = client.post("/webhook", json=make_update("/start"), headers={"X-Telegram-Bot-Api-Secret-Token": "nope"})
    assert bad.status_code == 401
    ok = client.post(
        "/webhook", json=make_update("/start"), headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"}
    )
    assert ok.status_code == 200


def test_set_webhook_uses_request_host(client, tg):
    tg.set_webhook.return_value = {"ok": True, "result": True}
    resp = client.get("/set-webhook")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "result": True}
    tg.set_webhook.assert_called_once_with("http://localhost/webhook", secret_token=None)


def test_set_webhook_prefers_configured_base_url(services, tg):
    tg.set_webhook.return_value = {"ok": True}
    client = create_app(services, webhook_secret="s3cret", webhook_base_url="https://bot.example.com/").test_client()
    client.get("/set-webhook")
    tg.set_webhook.assert_called_once_with("https://bot.example.com/webhook", secret_token="s3cret")


def test_set_webhook_reports_failure(client, tg):
    tg.set_webhook.side_effect = RuntimeError("telegram down")
    resp = client.get("/set-webhook")
    assert resp.status_code == 502
    assert resp.get_json()["ok"] is False


def test_set_webhook_relays_telegram_error_body(client, tg):
    body = b'{"ok":false,"error_code":400,"description":"Bad Request: bad webhook: HTTPS url must be provided for webhook"}'
    tg.set_webhook.side_effect = TelegramAPIError(
        status_code=400, endpoint="setWebhook", content=body, method="POST"
    )
    resp = client.get("/set-webhook")
    assert resp.status_code == 400
    assert resp.get_data() == body
    assert resp.get_json()["description"].startswith("Bad Request")

"""Tests for notification channels."""

import httpx
import pytest
import respx
from httpx import Response

from limit_engine.reporting.notifiers import LogNotifier, TelegramNotifier

SEND_URL = "https://telegram.test/botTOKEN/sendMessage"


@pytest.fixture
def telegram():
    return TelegramNotifier(bot_token="TOKEN", base_url="https://telegram.test")


class TestTelegramNotifier:
    @respx.mock
    def test_send(self, telegram):
        route = respx.post(SEND_URL).mock(return_value=Response(200, json={"ok": True}))
        assert telegram.send(42, "<b>hello</b>") is True
        body = route.calls.last.request.content.decode()
        assert "chat_id=42" in body
        assert "parse_mode=HTML" in body

    @respx.mock
    def test_api_error_returns_false(self, telegram):
        respx.post(SEND_URL).mock(return_value=Response(403, json={"ok": False}))
        assert telegram.send(42, "hi") is False

    @respx.mock
    def test_transport_error_returns_false(self, telegram):
        respx.post(SEND_URL).mock(side_effect=httpx.ConnectError("down"))
        assert telegram.send(42, "hi") is False

    def test_requires_token(self, monkeypatch):
        monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
        with pytest.raises(ValueError, match="TELEGRAM_BOT_TOKEN"):
            TelegramNotifier()


def test_log_notifier(caplog):
    with caplog.at_level("INFO"):
        assert LogNotifier().send(42, "filled") is True
    assert "filled" in caplog.text

"""
Tests for the FastAPI endpoints that do not need a live bot.
"""

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app import main
from app.config import get_settings


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:TEST-token")
    monkeypatch.setenv("WEBHOOK_ID", "abc-123")
    monkeypatch.setenv("API_ENDPOINT", "https://crew.example.com/kickoff")
    monkeypatch.setenv("TELEGRAM_WEBHOOK_SECRET", "s3cret")
    get_settings.cache_clear()
    # No context manager: lifespan (bot login) is not run
    yield TestClient(main.app)
    get_settings.cache_clear()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "Crew Relay Bot"


def test_webhook_rejects_wrong_secret(client):
    response = client.post(
        "/telegram/webhook",
        json={"update_id": 1},
        headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
    )
    assert response.status_code == 403


def test_webhook_accepts_valid_secret(client, monkeypatch):
    received = []

    async def fake_handle(update_data):
        received.append(update_data)

    monkeypatch.setattr(main, "handle_telegram_update", fake_handle)

    response = client.post(
        "/telegram/webhook",
        json={"update_id": 1},
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_lifespan_starts_and_stops_bot(client, monkeypatch):
    calls = []

    async def fake_initialize():
        calls.append("initialize")

    async def fake_shutdown():
        calls.append("shutdown")

    monkeypatch.setattr(main, "initialize_bot", fake_initialize)
    monkeypatch.setattr(main, "shutdown_bot", fake_shutdown)

    with TestClient(main.app) as running:
        assert calls == ["initialize"]
        assert running.get("/").status_code == 200

    assert calls == ["initialize", "shutdown"]


def test_lifespan_fails_without_required_settings(monkeypatch, tmp_path):
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("WEBHOOK_ID", raising=False)
    monkeypatch.delenv("API_ENDPOINT", raising=False)
    monkeypatch.chdir(tmp_path)  # no .env to fall back on
    get_settings.cache_clear()
    started = []

    async def fake_initialize():
        started.append(True)

    monkeypatch.setattr(main, "initialize_bot", fake_initialize)

    with pytest.raises(ValidationError):
        with TestClient(main.app):
            pass

    assert started == []
    get_settings.cache_clear()

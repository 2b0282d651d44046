from fastapi.testclient import TestClient
from unittest.mock import AsyncMock
from app.core.config import settings
from app.main import app
import pytest

client = TestClient(app)

WEBHOOK_PATH = f"{settings.API_PREFIX}/telegram/webhook"

TEXT_UPDATE = {
    "update_id": 10,
    "message": {
        "message_id": 1,
        "from": {"id": 123, "first_name": "Li"},
        "chat": {"id": 123, "type": "private"},
        "date": 1700000000,
        "text": "/start"
    }
}


@pytest.fixture
def fake_dispatcher():
    dispatcher = AsyncMock()
    dispatcher.dispatch_message.return_value = {"status": "success"}
    app.state.dispatcher = dispatcher
    yield dispatcher
    del app.state.dispatcher


def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"


def test_validation_error_structure():
    # Temporary route to exercise the validation handler
    from pydantic import BaseModel

    class Item(BaseModel):
        name: str
        price: int

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0


def test_custom_exception():
    from app.core.exceptions import AuthenticationError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise AuthenticationError(message="Bad token")

    response = client.get("/test-custom-error")
    assert response.status_code == 401
    data = response.json()
    assert data["code"] == "AUTHENTICATION_FAILED"
    assert data["error"] == "Bad token"


def test_webhook_rejects_wrong_secret(monkeypatch, fake_dispatcher):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "expected")

    response = client.post(
        WEBHOOK_PATH,
        json=TEXT_UPDATE,
        headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"}
    )

    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"
    fake_dispatcher.dispatch_message.assert_not_called()


def test_webhook_dispatches_update(monkeypatch, fake_dispatcher):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "expected")

    response = client.post(
        WEBHOOK_PATH,
        json=TEXT_UPDATE,
        headers={"X-Telegram-Bot-Api-Secret-Token": "expected"}
    )

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    message = fake_dispatcher.dispatch_message.call_args.args[0]
    assert message.user_id == 123
    assert message.text == "/start"


def test_webhook_ignores_updates_without_text(monkeypatch, fake_dispatcher):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", None)

    response = client.post(WEBHOOK_PATH, json={"update_id": 11, "edited_message": {}})

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}
    fake_dispatcher.dispatch_message.assert_not_called()


def test_webhook_rejects_invalid_json(monkeypatch, fake_dispatcher):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", None)

    response = client.post(
        WEBHOOK_PATH,
        content=b"not json",
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_liveness_probe():
    response = client.get("/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}

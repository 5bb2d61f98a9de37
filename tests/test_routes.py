from types import SimpleNamespace

import app
from puzzles.store import SubscriberStore


class FakeBot:
    def __init__(self, secret=None, members=()):
        self.settings = SimpleNamespace(webhook_secret=secret)
        self.store = SubscriberStore(initial=members)
        self.updates = []

    def submit_update(self, update):
        self.updates.append(update)


UPDATE = {"update_id": 10, "message": {"chat": {"id": 1001}, "text": "/start"}}


def test_healthz_reports_subscriber_count():
    bot = FakeBot(members=[1, 2, 3])
    with app.create_app(bot).test_client() as client:
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.get_json() == {"ok": True, "subscribers": 3}


def test_webhook_hands_update_to_bot():
    bot = FakeBot()
    with app.create_app(bot).test_client() as client:
        response = client.post("/telegram/webhook", json=UPDATE)
        assert response.status_code == 200
        assert response.get_json() == {"ok": True}
    assert bot.updates == [UPDATE]


def test_webhook_rejects_wrong_secret():
    bot = FakeBot(secret="s3cret")
    with app.create_app(bot).test_client() as client:
        response = client.post(
            "/telegram/webhook", json=UPDATE, headers={app.SECRET_HEADER: "guess"}
        )
        assert response.status_code == 403
        missing = client.post("/telegram/webhook", json=UPDATE)
        assert missing.status_code == 403
    assert bot.updates == []


def test_webhook_accepts_matching_secret():
    bot = FakeBot(secret="s3cret")
    with app.create_app(bot).test_client() as client:
        response = client.post(
            "/telegram/webhook", json=UPDATE, headers={app.SECRET_HEADER: "s3cret"}
        )
        assert response.status_code == 200
    assert bot.updates == [UPDATE]


def test_webhook_ignores_malformed_payload():
    bot = FakeBot()
    with app.create_app(bot).test_client() as client:
        response = client.post(
            "/telegram/webhook", data="not json", content_type="application/json"
        )
        assert response.status_code == 200
    assert bot.updates == []

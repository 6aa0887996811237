import dataclasses

from conftest import ScriptedGateway
from fastapi.testclient import TestClient

import groupbot.main as main
from groupbot.main import app

client = TestClient(app)


class FakePipeline:
    def __init__(self):
        self.payloads = []

    def handle_webhook(self, payload):
        self.payloads.append(payload)
        return len(payload.get("entry", []))


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json().get("status") == "ok"


def test_webhook_verification(monkeypatch):
    monkeypatch.setattr(main, "settings", dataclasses.replace(main.settings, validation_token="tok"))

    ok = client.get("/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "tok", "hub.challenge": "42"})
    assert ok.status_code == 200
    assert ok.text == "42"

    bad = client.get("/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "42"})
    assert bad.status_code == 403


def test_webhook_hands_delivery_to_pipeline(monkeypatch):
    fake = FakePipeline()
    monkeypatch.setattr(main, "pipeline", fake)

    body = {
        "object": "page",
        "entry": [{"id": "1", "time": 1, "messaging": [{"sender": {"id": "u1"}, "message": {"text": "hi"}}]}],
    }
    r = client.post("/webhook", json=body)

    assert r.status_code == 200
    assert len(fake.payloads) == 1
    assert fake.payloads[0]["entry"][0]["messaging"][0]["message"]["text"] == "hi"


def test_webhook_bad_event_does_not_drop_the_batch(monkeypatch, make_pipeline):
    gateway = ScriptedGateway()
    monkeypatch.setattr(main, "pipeline", make_pipeline(gateway))

    body = {
        "object": "page",
        "entry": [
            {"messaging": [
                {"sender": {"id": "u1"}, "message": {"text": "hi"}},
                {"recipient": {"id": "page"}, "timestamp": 1},
                "garbage",
                {"sender": {"id": "u2"}, "message": {"text": "there"}},
            ]},
            {"id": "no messaging"},
        ],
    }
    r = client.post("/webhook", json=body)

    assert r.status_code == 200
    assert [(uid, text) for uid, text, _ in gateway.calls] == [("u1", "hi"), ("u2", "there")]


def test_webhook_always_acknowledges(monkeypatch):
    fake = FakePipeline()
    monkeypatch.setattr(main, "pipeline", fake)

    assert client.post("/webhook", json={}).status_code == 200
    assert client.post("/webhook", content=b"not json", headers={"content-type": "application/json"}).status_code == 200
    assert fake.payloads == [{}]

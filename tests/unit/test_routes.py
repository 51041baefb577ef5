from __future__ import annotations

import dataclasses
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pushrelay.core.middleware import redact_path
from pushrelay.main import create_app
from pushrelay.notifications.contracts import ClassifiedOutcome, SubscriptionStoreError
from pushrelay.notifications.dedup import DedupCache
from pushrelay.notifications.service import RelayService
from pushrelay.notifications.subscription_repo import InMemorySubscriptionRepository
from tests.factories import make_event


@pytest.fixture
def dispatcher():
  stub = MagicMock()
  stub.dispatch = AsyncMock(return_value=ClassifiedOutcome.success())
  return stub


@pytest.fixture
def client(dispatcher):
  app = create_app()
  app.state.relay_service = RelayService(store=InMemorySubscriptionRepository(), dispatcher=dispatcher, dedup=DedupCache(), base_url="https://push.example.com")
  return TestClient(app)


def _event_json(content: str = "hello") -> dict:
  return dataclasses.asdict(make_event(content))


def _subscribe_fcm(client: TestClient) -> dict:
  response = client.post("/subscription/fcm", json={"token": "fcm-token-1"})
  assert response.status_code == 200
  return response.json()


def test_health(client):
  assert client.get("/health").json() == {"status": "ok"}


def test_subscribe_returns_key_and_callback(client):
  body = _subscribe_fcm(client)

  assert len(body["key"]) == 64
  assert body["callback"].startswith("https://push.example.com/notify/")


def test_subscribe_vapid_validates_endpoint(client):
  response = client.post("/subscription/vapid", json={"endpoint": "http://push.example/abc", "p256dh": "BEl6f5Y8X5Y", "auth": "gq8Yh5xA9l2mQ6pR"})

  assert response.status_code == 422


def test_subscribe_vapid_accepts_browser_payload(client):
  response = client.post("/subscription/vapid", json={"endpoint": "https://updates.push.services.mozilla.com/wpush/v2/abc", "p256dh": "BEl6f5Y8X5Y_u7d8mV_AbpZfXfTLT3s1O3L4wM1x8QY2_5qWQ-jxJq7uKjv8mQ4I", "auth": "gq8Yh5xA9l2mQ6pR"})

  assert response.status_code == 200


def test_subscribe_apns_requires_hex_token(client):
  response = client.post("/subscription/apns", json={"token": "not-a-token", "topic": "com.example.app"})

  assert response.status_code == 422


def test_exists_and_delete_by_key(client):
  key = _subscribe_fcm(client)["key"]

  assert client.get(f"/subscription/{key}").json() == {"exists": True}
  assert client.delete(f"/subscription/{key}").json() == {"ok": True}
  assert client.delete(f"/subscription/{key}").json() == {"ok": True}
  assert client.get(f"/subscription/{key}").json() == {"exists": False}


def test_notify_dispatches_and_deduplicates(client, dispatcher):
  callback = _subscribe_fcm(client)["callback"]
  path = callback.removeprefix("https://push.example.com")
  payload = {"relay": "wss://relay.example.com", "event": _event_json()}

  assert client.post(path, json=payload).json() == {"ok": True}
  assert client.post(path, json=payload).json() == {"ok": True}
  assert dispatcher.dispatch.await_count == 1


def test_notify_unknown_subscription_is_404(client, dispatcher):
  response = client.post("/notify/does-not-exist", json={"relay": "wss://relay.example.com", "event": _event_json()})

  assert response.status_code == 404
  dispatcher.dispatch.assert_not_awaited()


def test_notify_invalid_event_is_400(client, dispatcher):
  callback = _subscribe_fcm(client)["callback"]
  event = _event_json()
  event["content"] = "tampered"

  response = client.post(callback.removeprefix("https://push.example.com"), json={"relay": "wss://relay.example.com", "event": event})

  assert response.status_code == 400
  dispatcher.dispatch.assert_not_awaited()


def test_notify_malformed_body_is_422(client):
  response = client.post("/notify/anything", json={"relay": "wss://relay.example.com"})

  assert response.status_code == 422
  assert "input" not in response.json()["detail"][0]


def test_store_outage_is_503(dispatcher):
  store = AsyncMock()
  store.get_by_key.side_effect = SubscriptionStoreError("db down")
  app = create_app()
  app.state.relay_service = RelayService(store=store, dispatcher=dispatcher, dedup=DedupCache(), base_url="https://push.example.com")

  response = TestClient(app).get("/subscription/" + "f" * 64)

  assert response.status_code == 503
  assert response.json()["detail"] == "Service Unavailable"
  assert "requestId" in response.json()


def test_subscription_keys_are_redacted_from_logged_paths():
  assert redact_path("/subscription/" + "f" * 64) == "/subscription/<redacted>"
  assert redact_path("/subscription/fcm") == "/subscription/fcm"
  assert redact_path("/notify/abc") == "/notify/abc"

from __future__ import annotations

import dataclasses

import pytest

from pushrelay.config import get_settings
from pushrelay.notifications.contracts import Channel
from pushrelay.notifications.factory import build_relay_service, build_store
from pushrelay.notifications.push_sender import APNSSender, FCMSender, NullPushSender, WebPushSender
from pushrelay.notifications.subscription_repo import InMemorySubscriptionRepository, SubscriptionRepository


@pytest.fixture
def settings(monkeypatch):
  for key in ("PUSHRELAY_PG_DSN", "DATABASE_URL", "VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "VAPID_SUBJECT", "FCM_KEY", "APN_KEY", "APN_KEY_ID", "APN_TEAM_ID", "APN_TOPIC", "BASE_URL"):
    monkeypatch.delenv(key, raising=False)
  get_settings.cache_clear()
  yield get_settings()
  get_settings.cache_clear()


def _senders(service):
  return service._dispatcher._senders


def test_unconfigured_channels_get_null_senders(settings):
  service = build_relay_service(settings)

  senders = _senders(service)
  assert all(isinstance(senders[channel], NullPushSender) for channel in Channel)
  assert isinstance(service.store, InMemorySubscriptionRepository)


def test_configured_channels_get_real_senders(settings, monkeypatch):
  fake_app = object()
  monkeypatch.setattr("pushrelay.notifications.factory.initialize_firebase", lambda service_account_json: fake_app)
  configured = dataclasses.replace(settings, vapid_public_key="pub", vapid_private_key="priv", vapid_subject="mailto:ops@example.com", fcm_key="{}", apn_key="pem", apn_key_id="KEY", apn_team_id="TEAM", apn_topic="com.example.app")

  service = build_relay_service(configured, store=InMemorySubscriptionRepository())

  senders = _senders(service)
  assert isinstance(senders[Channel.VAPID], WebPushSender)
  assert isinstance(senders[Channel.APNS], APNSSender)
  assert isinstance(senders[Channel.FCM], FCMSender)
  assert senders[Channel.FCM]._app is fake_app


def test_store_uses_database_when_dsn_is_set(settings):
  assert isinstance(build_store(dataclasses.replace(settings, pg_dsn="postgresql://u:p@db/relay")), SubscriptionRepository)


def test_callback_base_falls_back_to_local_port(settings):
  service = build_relay_service(dataclasses.replace(settings, base_url=None, port=4000), store=InMemorySubscriptionRepository())

  assert service._base_url == "http://localhost:4000"

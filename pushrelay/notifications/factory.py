"""Factory helpers for the relay service."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pushrelay.config import Settings
from pushrelay.core.firebase import initialize_firebase
from pushrelay.notifications.apns_client import APNSClient
from pushrelay.notifications.contracts import Channel, ChannelSender, SubscriptionStore
from pushrelay.notifications.dedup import DedupCache
from pushrelay.notifications.dispatcher import Dispatcher
from pushrelay.notifications.push_sender import APNSSender, FCMSender, NullPushSender, VapidConfig, WebPushSender
from pushrelay.notifications.service import RelayService
from pushrelay.notifications.subscription_repo import InMemorySubscriptionRepository, SubscriptionRepository

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> SubscriptionStore:
  """Persist subscriptions in the database when a DSN is configured."""
  if settings.pg_dsn:
    return SubscriptionRepository()

  logger.warning("PUSHRELAY_PG_DSN not set; subscriptions are kept in memory and lost on restart.")
  return InMemorySubscriptionRepository()


def build_relay_service(settings: Settings, *, store: SubscriptionStore | None = None) -> RelayService:
  """Construct the relay service based on environment configuration."""
  senders: dict[Channel, ChannelSender] = {}
  closers: list[Callable[[], Awaitable[None]]] = []

  if settings.vapid_configured:
    senders[Channel.VAPID] = WebPushSender(vapid_config=VapidConfig(public_key=settings.vapid_public_key or "", private_key=settings.vapid_private_key or "", sub=settings.vapid_subject or ""), timeout_seconds=settings.send_timeout_seconds)
  else:
    senders[Channel.VAPID] = NullPushSender(Channel.VAPID)

  if settings.apns_configured:
    apns_client = APNSClient(key=settings.apn_key or "", key_id=settings.apn_key_id or "", team_id=settings.apn_team_id or "", production=settings.apn_production, timeout_seconds=settings.send_timeout_seconds)
    senders[Channel.APNS] = APNSSender(client=apns_client, default_topic=settings.apn_topic)
    closers.append(apns_client.aclose)
  else:
    senders[Channel.APNS] = NullPushSender(Channel.APNS)

  if settings.fcm_configured:
    senders[Channel.FCM] = FCMSender(app=initialize_firebase(settings.fcm_key or ""))
  else:
    senders[Channel.FCM] = NullPushSender(Channel.FCM)

  configured = [channel.value for channel, sender in senders.items() if not isinstance(sender, NullPushSender)]
  logger.info("Push channels configured=%s", ",".join(configured) or "none")

  effective_store = store if store is not None else build_store(settings)
  dispatcher = Dispatcher(senders=senders, store=effective_store, send_timeout_seconds=settings.send_timeout_seconds)
  dedup = DedupCache(window_seconds=settings.dedup_window_seconds, sweep_interval_seconds=settings.dedup_sweep_interval_seconds)
  return RelayService(store=effective_store, dispatcher=dispatcher, dedup=dedup, base_url=settings.base_url or f"http://localhost:{settings.port}", closers=closers)

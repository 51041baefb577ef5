"""Relay orchestration: subscription lifecycle and inbound notification handling."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum

from pushrelay.notifications.contracts import APNSData, FCMData, NotificationData, Subscription, SubscriptionStore, VapidData
from pushrelay.notifications.dedup import DedupCache
from pushrelay.notifications.dispatcher import Dispatcher
from pushrelay.notifications.events import verify_event
from pushrelay.notifications.subscriptions import make_apns_subscription, make_fcm_subscription, make_vapid_subscription
from pushrelay.utils.ids import subscription_id_for_key

logger = logging.getLogger(__name__)


class NotifyStatus(str, Enum):
  """Result of handling one inbound notification."""

  DISPATCHED = "dispatched"
  DUPLICATE = "duplicate"
  NOT_FOUND = "not_found"


class RelayService:
  """Front door for the HTTP layer over the store, dedup cache and dispatcher."""

  def __init__(self, *, store: SubscriptionStore, dispatcher: Dispatcher, dedup: DedupCache, base_url: str, closers: Sequence[Callable[[], Awaitable[None]]] = ()) -> None:
    self._store = store
    self._dispatcher = dispatcher
    self._dedup = dedup
    self._base_url = base_url.rstrip("/")
    self._closers = list(closers)

  @property
  def store(self) -> SubscriptionStore:
    return self._store

  @property
  def dedup(self) -> DedupCache:
    return self._dedup

  def callback_url(self, subscription: Subscription) -> str:
    """URL the message source posts events to for this subscription."""
    return f"{self._base_url}/notify/{subscription.id}"

  async def _register(self, subscription: Subscription) -> Subscription:
    stored = await self._store.insert(subscription)
    logger.info("Registered subscription id=%s channel=%s", stored.id, stored.channel.value)
    return stored

  async def subscribe_vapid(self, data: VapidData) -> Subscription:
    return await self._register(make_vapid_subscription(data))

  async def subscribe_apns(self, data: APNSData) -> Subscription:
    return await self._register(make_apns_subscription(data))

  async def subscribe_fcm(self, data: FCMData) -> Subscription:
    return await self._register(make_fcm_subscription(data))

  async def exists(self, key: str) -> bool:
    return await self._store.get_by_key(key) is not None

  async def unsubscribe(self, key: str) -> None:
    """Remove the subscription owned by a key; unknown keys are a no-op."""
    removed = await self._store.delete(subscription_id_for_key(key))
    if removed is not None:
      logger.info("Removed subscription id=%s channel=%s", removed.id, removed.channel.value)

  async def notify(self, subscription_id: str, data: NotificationData) -> NotifyStatus:
    """Verify, look up, deduplicate and dispatch one notification.

    Raises InvalidEventError for a tampered event and SubscriptionStoreError
    when the lookup itself fails; delivery failures never raise.
    """
    verify_event(data.event)

    subscription = await self._store.get_by_id(subscription_id)
    if subscription is None:
      logger.info("Notification for unknown subscription id=%s", subscription_id)
      return NotifyStatus.NOT_FOUND

    if not self._dedup.admit(subscription.id, data.notification_id):
      logger.info("Dropped duplicate notification subscription_id=%s notification_id=%s", subscription.id, data.notification_id)
      return NotifyStatus.DUPLICATE

    await self._dispatcher.dispatch(subscription, data)
    return NotifyStatus.DISPATCHED

  def start(self) -> None:
    self._dedup.start()

  async def aclose(self) -> None:
    """Stop background work and release provider connections."""
    await self._dedup.stop()
    for closer in self._closers:
      try:
        await closer()
      except Exception as exc:  # noqa: BLE001
        logger.error("Failed closing provider client: %s", exc, exc_info=True)

"""Route one notification to its channel sender and record the subscription's health."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from pushrelay.notifications import health
from pushrelay.notifications.classifier import classify_timeout
from pushrelay.notifications.contracts import Channel, ChannelSender, ClassifiedOutcome, NotificationData, Subscription, SubscriptionStore

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT_SECONDS = 10.0


class Dispatcher:
  """Deliver notifications and apply the health policy; never raises to the caller."""

  def __init__(self, *, senders: Mapping[Channel, ChannelSender], store: SubscriptionStore, send_timeout_seconds: float = DEFAULT_SEND_TIMEOUT_SECONDS) -> None:
    missing = [channel.value for channel in Channel if channel not in senders]
    if missing:
      raise ValueError(f"No sender registered for channels: {', '.join(missing)}")

    self._senders = dict(senders)
    self._store = store
    self._send_timeout_seconds = send_timeout_seconds

  def _sender_for(self, subscription: Subscription) -> ChannelSender:
    match subscription.channel:
      case Channel.VAPID:
        return self._senders[Channel.VAPID]
      case Channel.APNS:
        return self._senders[Channel.APNS]
      case Channel.FCM:
        return self._senders[Channel.FCM]

  async def _send(self, subscription: Subscription, data: NotificationData) -> ClassifiedOutcome:
    sender = self._sender_for(subscription)
    try:
      return await asyncio.wait_for(sender.send(subscription, data), timeout=self._send_timeout_seconds)
    except TimeoutError:
      logger.warning("Push send timed out subscription_id=%s channel=%s timeout_seconds=%s", subscription.id, subscription.channel.value, self._send_timeout_seconds)
      return classify_timeout(subscription.channel.value, self._send_timeout_seconds)
    except Exception as exc:  # noqa: BLE001
      logger.error("Push sender raised subscription_id=%s channel=%s error=%s", subscription.id, subscription.channel.value, exc, exc_info=True)
      return ClassifiedOutcome.unknown(f"{subscription.channel.value} sender error={type(exc).__name__}")

  async def dispatch(self, subscription: Subscription, data: NotificationData) -> ClassifiedOutcome:
    """Send once, then reset, increment or evict the subscription based on the outcome."""
    result = await self._send(subscription, data)

    try:
      action = await health.apply(self._store, subscription, result)
    except Exception as exc:  # noqa: BLE001
      # The outcome is still reported; the next attempt re-reads the stored count.
      logger.error("Subscription health update failed subscription_id=%s outcome=%s error=%s", subscription.id, result.outcome.value, exc, exc_info=True)
      return result

    logger.info(
      "Dispatched notification subscription_id=%s channel=%s notification_id=%s outcome=%s action=%s reason=%s",
      subscription.id,
      subscription.channel.value,
      data.notification_id,
      result.outcome.value,
      action.value,
      result.reason,
    )
    return result

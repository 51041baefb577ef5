"""Push notification delivery implementations, one per channel."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from firebase_admin import App, messaging
from pywebpush import webpush
from starlette.concurrency import run_in_threadpool

from pushrelay.notifications.apns_client import APNSClient
from pushrelay.notifications.classifier import classify_apns_failures, classify_fcm_error, classify_webpush_error
from pushrelay.notifications.contracts import APNSSubscription, Channel, ClassifiedOutcome, FCMSubscription, NotificationData, Subscription, VapidSubscription
from pushrelay.notifications.payloads import PushContent, build_push_content

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VapidConfig:
  """Configuration required to sign Web Push requests."""

  public_key: str
  private_key: str
  sub: str


class WebPushSender:
  """`pywebpush` backed sender for browser subscriptions."""

  def __init__(self, *, vapid_config: VapidConfig, timeout_seconds: float = 10.0) -> None:
    self._vapid_config = vapid_config
    self._timeout_seconds = timeout_seconds

  def _send_blocking(self, subscription: VapidSubscription, content: PushContent) -> None:
    payload = {"title": content.title, "body": content.body, "data": content.data}
    subscription_info = {"endpoint": subscription.data.endpoint, "keys": {"p256dh": subscription.data.p256dh, "auth": subscription.data.auth}}
    # pywebpush writes aud and exp into vapid_claims.
    webpush(subscription_info=subscription_info, data=json.dumps(payload), vapid_private_key=self._vapid_config.private_key, vapid_claims={"sub": self._vapid_config.sub}, timeout=self._timeout_seconds)

  async def send(self, subscription: Subscription, data: NotificationData) -> ClassifiedOutcome:
    """Send a Web Push payload signed with the VAPID key."""
    if not isinstance(subscription, VapidSubscription):
      raise TypeError(f"WebPushSender cannot deliver {subscription.channel.value} subscriptions")

    try:
      await run_in_threadpool(self._send_blocking, subscription, build_push_content(data))
    except Exception as exc:  # noqa: BLE001
      result = classify_webpush_error(exc)
      logger.warning("Web Push delivery failed subscription_id=%s outcome=%s reason=%s", subscription.id, result.outcome.value, result.reason)
      return result

    return ClassifiedOutcome.success()


def build_apns_payload(content: PushContent) -> dict:
  """Build the APNS JSON body with the relay identifiers as custom keys."""
  return {"aps": {"alert": {"title": content.title, "body": content.body}, "sound": "default", "badge": 1}, **content.data}


class APNSSender:
  """Sender for Apple devices backed by the HTTP/2 provider client."""

  def __init__(self, *, client: APNSClient, default_topic: str | None = None) -> None:
    self._client = client
    self._default_topic = default_topic

  async def send(self, subscription: Subscription, data: NotificationData) -> ClassifiedOutcome:
    if not isinstance(subscription, APNSSubscription):
      raise TypeError(f"APNSSender cannot deliver {subscription.channel.value} subscriptions")

    topic = subscription.data.topic or self._default_topic or ""
    payload = build_apns_payload(build_push_content(data))

    try:
      failed = await self._client.send(payload, subscription.data.token, topic)
    except Exception as exc:  # noqa: BLE001
      logger.error("APNS client raised subscription_id=%s error=%s", subscription.id, exc, exc_info=True)
      return ClassifiedOutcome.unknown(f"apns client error={type(exc).__name__}")

    result = classify_apns_failures(failed)
    if not result.is_success:
      logger.warning("APNS delivery failed subscription_id=%s outcome=%s reason=%s", subscription.id, result.outcome.value, result.reason)
    return result


def build_fcm_message(token: str, content: PushContent) -> messaging.Message:
  """Build an FCM message delivered with high priority on Android."""
  return messaging.Message(token=token, notification=messaging.Notification(title=content.title, body=content.body), data=dict(content.data), android=messaging.AndroidConfig(priority="high"))


class FCMSender:
  """`firebase_admin` backed sender for FCM registration tokens."""

  def __init__(self, *, app: App | None = None) -> None:
    self._app = app

  async def send(self, subscription: Subscription, data: NotificationData) -> ClassifiedOutcome:
    if not isinstance(subscription, FCMSubscription):
      raise TypeError(f"FCMSender cannot deliver {subscription.channel.value} subscriptions")

    message = build_fcm_message(subscription.data.token, build_push_content(data))
    try:
      await run_in_threadpool(messaging.send, message, app=self._app)
    except Exception as exc:  # noqa: BLE001
      result = classify_fcm_error(exc)
      logger.warning("FCM delivery failed subscription_id=%s outcome=%s reason=%s", subscription.id, result.outcome.value, result.reason)
      return result

    return ClassifiedOutcome.success()


class NullPushSender:
  """Placeholder sender for channels whose credentials are not configured."""

  def __init__(self, channel: Channel) -> None:
    self._channel = channel

  async def send(self, subscription: Subscription, data: NotificationData) -> ClassifiedOutcome:
    """Drop the notification; the failure still counts towards the subscription's health."""
    logger.warning("Push channel not configured; dropping notification channel=%s subscription_id=%s", self._channel.value, subscription.id)
    return ClassifiedOutcome.transient(f"{self._channel.value} channel not configured")

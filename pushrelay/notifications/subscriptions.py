"""Constructors for channel-specific subscriptions."""

from __future__ import annotations

import json
import logging
from typing import Any

from pushrelay.notifications.contracts import APNSData, APNSSubscription, Channel, FCMData, FCMSubscription, Subscription, VapidData, VapidSubscription
from pushrelay.utils.ids import generate_subscription_key, subscription_id_for_key

logger = logging.getLogger(__name__)


def _new_identity() -> tuple[str, str]:
  key = generate_subscription_key()
  return subscription_id_for_key(key), key


def make_vapid_subscription(data: VapidData) -> VapidSubscription:
  """Create a fresh Web Push subscription with a newly issued key."""
  subscription_id, key = _new_identity()
  return VapidSubscription(id=subscription_id, key=key, data=data)


def make_apns_subscription(data: APNSData) -> APNSSubscription:
  """Create a fresh APNS subscription with a newly issued key."""
  subscription_id, key = _new_identity()
  return APNSSubscription(id=subscription_id, key=key, data=data)


def make_fcm_subscription(data: FCMData) -> FCMSubscription:
  """Create a fresh FCM subscription with a newly issued key."""
  subscription_id, key = _new_identity()
  return FCMSubscription(id=subscription_id, key=key, data=data)


def subscription_data_to_dict(subscription: Subscription) -> dict[str, str]:
  """Flatten the channel payload for storage."""
  match subscription:
    case VapidSubscription(data=data):
      return {"endpoint": data.endpoint, "p256dh": data.p256dh, "auth": data.auth}
    case APNSSubscription(data=data):
      return {"topic": data.topic, "token": data.token}
    case FCMSubscription(data=data):
      return {"token": data.token}


def parse_subscription(*, subscription_id: str, key: str, channel: str, errors: int, data: Any) -> Subscription | None:
  """Rebuild a subscription from stored columns; returns None for unusable rows."""
  if isinstance(data, str):
    try:
      data = json.loads(data)
    except json.JSONDecodeError:
      data = None

  if not isinstance(data, dict):
    logger.warning("Discarding subscription with unreadable data id=%s", subscription_id)
    return None

  try:
    match Channel(channel):
      case Channel.VAPID:
        return VapidSubscription(id=subscription_id, key=key, errors=errors, data=VapidData(endpoint=data["endpoint"], p256dh=data["p256dh"], auth=data["auth"]))
      case Channel.APNS:
        return APNSSubscription(id=subscription_id, key=key, errors=errors, data=APNSData(topic=data["topic"], token=data["token"]))
      case Channel.FCM:
        return FCMSubscription(id=subscription_id, key=key, errors=errors, data=FCMData(token=data["token"]))
  except (KeyError, ValueError):
    logger.warning("Discarding subscription with invalid channel payload id=%s channel=%s", subscription_id, channel)
    return None

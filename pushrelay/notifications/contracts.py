"""Contracts for push subscriptions, relay notifications and delivery outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Protocol


class Channel(str, Enum):
  """Push delivery mechanism a subscription is bound to."""

  VAPID = "vapid"
  APNS = "apns"
  FCM = "fcm"


@dataclass(frozen=True)
class VapidData:
  """Browser Web Push addressing and key material."""

  endpoint: str
  p256dh: str
  auth: str


@dataclass(frozen=True)
class APNSData:
  """Apple device token and the app topic it was issued for."""

  topic: str
  token: str


@dataclass(frozen=True)
class FCMData:
  """Firebase registration token."""

  token: str


@dataclass(frozen=True)
class VapidSubscription:
  """Web Push subscription."""

  channel: ClassVar[Channel] = Channel.VAPID

  id: str
  key: str
  data: VapidData
  errors: int = 0


@dataclass(frozen=True)
class APNSSubscription:
  """Apple Push Notification service subscription."""

  channel: ClassVar[Channel] = Channel.APNS

  id: str
  key: str
  data: APNSData
  errors: int = 0


@dataclass(frozen=True)
class FCMSubscription:
  """Firebase Cloud Messaging subscription."""

  channel: ClassVar[Channel] = Channel.FCM

  id: str
  key: str
  data: FCMData
  errors: int = 0


Subscription = VapidSubscription | APNSSubscription | FCMSubscription


@dataclass(frozen=True)
class SignedEvent:
  """Signed relay event as received from the message source."""

  id: str
  pubkey: str
  created_at: int
  kind: int
  tags: list[list[str]] = field(hash=False)
  content: str
  sig: str


@dataclass(frozen=True)
class NotificationData:
  """Payload to deliver: the relay the event came from plus the event itself."""

  relay: str
  event: SignedEvent

  @property
  def notification_id(self) -> str:
    return self.event.id


class Outcome(str, Enum):
  """Uniform result of a single send attempt across providers."""

  SUCCESS = "success"
  TRANSIENT_FAILURE = "transient_failure"
  PERMANENT_FAILURE = "permanent_failure"
  UNKNOWN_FAILURE = "unknown_failure"


@dataclass(frozen=True)
class ClassifiedOutcome:
  """Outcome tag plus a short provider-derived reason for logs."""

  outcome: Outcome
  reason: str | None = None

  @property
  def is_success(self) -> bool:
    return self.outcome is Outcome.SUCCESS

  @classmethod
  def success(cls) -> ClassifiedOutcome:
    return cls(outcome=Outcome.SUCCESS)

  @classmethod
  def transient(cls, reason: str | None = None) -> ClassifiedOutcome:
    return cls(outcome=Outcome.TRANSIENT_FAILURE, reason=reason)

  @classmethod
  def permanent(cls, reason: str | None = None) -> ClassifiedOutcome:
    return cls(outcome=Outcome.PERMANENT_FAILURE, reason=reason)

  @classmethod
  def unknown(cls, reason: str | None = None) -> ClassifiedOutcome:
    return cls(outcome=Outcome.UNKNOWN_FAILURE, reason=reason)


class NotificationError(Exception):
  """Base class for relay notification failures."""


class SubscriptionStoreError(NotificationError):
  """Raised when the subscription store cannot be reached or fails a write."""


class InvalidEventError(NotificationError):
  """Raised when an inbound event does not match its declared id."""


class ProviderConfigurationError(NotificationError):
  """Raised when a push provider is enabled without the credentials it needs."""


class SubscriptionStore(Protocol):
  """Persistence contract the dispatch engine relies on.

  Error counter updates must be relative updates at the storage boundary so that
  concurrent dispatches for the same subscription never lose an increment.
  """

  async def get_by_key(self, key: str) -> Subscription | None:
    """Return the subscription owned by a client secret, if any."""

  async def get_by_id(self, subscription_id: str) -> Subscription | None:
    """Return the subscription with the given public identifier, if any."""

  async def insert(self, subscription: Subscription) -> Subscription:
    """Persist a new subscription and return the stored record."""

  async def delete(self, subscription_id: str) -> Subscription | None:
    """Delete a subscription; returns None when it was already absent."""

  async def increment_errors(self, subscription_id: str) -> None:
    """Add one to the subscription's error counter."""

  async def reset_errors(self, subscription_id: str) -> None:
    """Set the subscription's error counter back to zero."""


class ChannelSender(Protocol):
  """Delivery contract for a single push channel."""

  async def send(self, subscription: Subscription, data: NotificationData) -> ClassifiedOutcome:
    """Deliver a notification and classify the provider response without raising."""

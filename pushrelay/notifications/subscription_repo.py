"""Repository helpers for push subscription persistence."""

from __future__ import annotations

import dataclasses

from sqlalchemy import Update, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pushrelay.core.database import get_session_factory
from pushrelay.notifications.contracts import Subscription, SubscriptionStoreError
from pushrelay.notifications.subscriptions import parse_subscription, subscription_data_to_dict
from pushrelay.schema.subscriptions import PushSubscription


def _to_subscription(row: PushSubscription) -> Subscription | None:
  return parse_subscription(subscription_id=row.id, key=row.key, channel=row.channel, errors=row.errors, data=row.data)


class SubscriptionRepository:
  """Persist and manage push subscriptions through async SQLAlchemy."""

  def __init__(self, *, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory

  def _factory(self) -> async_sessionmaker[AsyncSession]:
    session_factory = self._session_factory or get_session_factory()
    if session_factory is None:
      raise SubscriptionStoreError("Database connection is not configured (PUSHRELAY_PG_DSN is missing).")
    return session_factory

  async def get_by_key(self, key: str) -> Subscription | None:
    """Fetch the subscription owned by a client key."""
    try:
      async with self._factory()() as session:
        row = (await session.execute(select(PushSubscription).where(PushSubscription.key == key))).scalar_one_or_none()
    except SQLAlchemyError as exc:
      raise SubscriptionStoreError(f"Subscription lookup by key failed: {exc}") from exc

    return _to_subscription(row) if row is not None else None

  async def get_by_id(self, subscription_id: str) -> Subscription | None:
    """Fetch a subscription by its public id."""
    try:
      async with self._factory()() as session:
        row = await session.get(PushSubscription, subscription_id)
    except SQLAlchemyError as exc:
      raise SubscriptionStoreError(f"Subscription lookup by id failed: {exc}") from exc

    return _to_subscription(row) if row is not None else None

  async def insert(self, subscription: Subscription) -> Subscription:
    """Insert a new subscription row."""
    row = PushSubscription(id=subscription.id, key=subscription.key, channel=subscription.channel.value, errors=subscription.errors, data=subscription_data_to_dict(subscription))
    try:
      async with self._factory()() as session:
        session.add(row)
        await session.commit()
    except SQLAlchemyError as exc:
      raise SubscriptionStoreError(f"Subscription insert failed: {exc}") from exc

    return subscription

  async def delete(self, subscription_id: str) -> Subscription | None:
    """Delete a subscription and return it, or None when it was already gone."""
    stmt = delete(PushSubscription).where(PushSubscription.id == subscription_id).returning(PushSubscription.id, PushSubscription.key, PushSubscription.channel, PushSubscription.errors, PushSubscription.data)
    try:
      async with self._factory()() as session:
        deleted = (await session.execute(stmt)).first()
        await session.commit()
    except SQLAlchemyError as exc:
      raise SubscriptionStoreError(f"Subscription delete failed: {exc}") from exc

    if deleted is None:
      return None

    return parse_subscription(subscription_id=deleted.id, key=deleted.key, channel=deleted.channel, errors=deleted.errors, data=deleted.data)

  async def increment_errors(self, subscription_id: str) -> None:
    # Relative update so concurrent dispatches never lose an increment.
    await self._update(update(PushSubscription).where(PushSubscription.id == subscription_id).values(errors=PushSubscription.errors + 1))

  async def reset_errors(self, subscription_id: str) -> None:
    await self._update(update(PushSubscription).where(PushSubscription.id == subscription_id).values(errors=0))

  async def _update(self, stmt: Update) -> None:
    try:
      async with self._factory()() as session:
        await session.execute(stmt)
        await session.commit()
    except SQLAlchemyError as exc:
      raise SubscriptionStoreError(f"Subscription error counter update failed: {exc}") from exc


class InMemorySubscriptionRepository:
  """Dict-backed store used when no database is configured and in tests."""

  def __init__(self) -> None:
    self._by_id: dict[str, Subscription] = {}
    self._id_by_key: dict[str, str] = {}

  def __len__(self) -> int:
    return len(self._by_id)

  async def get_by_key(self, key: str) -> Subscription | None:
    subscription_id = self._id_by_key.get(key)
    return self._by_id.get(subscription_id) if subscription_id is not None else None

  async def get_by_id(self, subscription_id: str) -> Subscription | None:
    return self._by_id.get(subscription_id)

  async def insert(self, subscription: Subscription) -> Subscription:
    if subscription.id in self._by_id or subscription.key in self._id_by_key:
      raise SubscriptionStoreError(f"Subscription already exists id={subscription.id}")

    self._by_id[subscription.id] = subscription
    self._id_by_key[subscription.key] = subscription.id
    return subscription

  async def delete(self, subscription_id: str) -> Subscription | None:
    subscription = self._by_id.pop(subscription_id, None)
    if subscription is not None:
      self._id_by_key.pop(subscription.key, None)
    return subscription

  async def increment_errors(self, subscription_id: str) -> None:
    subscription = self._by_id.get(subscription_id)
    if subscription is not None:
      self._by_id[subscription_id] = dataclasses.replace(subscription, errors=subscription.errors + 1)

  async def reset_errors(self, subscription_id: str) -> None:
    subscription = self._by_id.get(subscription_id)
    if subscription is not None:
      self._by_id[subscription_id] = dataclasses.replace(subscription, errors=0)

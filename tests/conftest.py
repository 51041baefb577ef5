"""Shared fixtures for relay tests."""

from __future__ import annotations

import pytest

from pushrelay.notifications.subscription_repo import InMemorySubscriptionRepository


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def store() -> InMemorySubscriptionRepository:
  return InMemorySubscriptionRepository()

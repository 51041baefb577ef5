"""Subscription health policy.

A subscription is Healthy at ``errors == 0``, Degraded while ``1 <= errors``,
and Evicted (deleted) once a permanent failure arrives or a transient/unknown
failure arrives while ``errors > EVICTION_THRESHOLD``. The count compared
against the threshold is the one read with the subscription before the send
attempt, for every channel.
"""

from __future__ import annotations

import logging
from enum import Enum

from pushrelay.notifications.contracts import ClassifiedOutcome, Outcome, Subscription, SubscriptionStore

logger = logging.getLogger(__name__)

EVICTION_THRESHOLD = 10


class HealthAction(str, Enum):
  """Store mutation the policy requests after a send attempt."""

  NONE = "none"
  RESET = "reset"
  INCREMENT = "increment"
  EVICT = "evict"


def decide(errors: int, outcome: Outcome) -> HealthAction:
  """Pure transition function from (current error count, outcome) to a store action."""
  match outcome:
    case Outcome.SUCCESS:
      return HealthAction.RESET if errors > 0 else HealthAction.NONE
    case Outcome.PERMANENT_FAILURE:
      return HealthAction.EVICT
    case Outcome.TRANSIENT_FAILURE | Outcome.UNKNOWN_FAILURE:
      return HealthAction.EVICT if errors > EVICTION_THRESHOLD else HealthAction.INCREMENT


async def apply(store: SubscriptionStore, subscription: Subscription, result: ClassifiedOutcome) -> HealthAction:
  """Decide and persist the health transition for one send attempt."""
  action = decide(subscription.errors, result.outcome)

  match action:
    case HealthAction.NONE:
      pass
    case HealthAction.RESET:
      await store.reset_errors(subscription.id)
    case HealthAction.INCREMENT:
      await store.increment_errors(subscription.id)
    case HealthAction.EVICT:
      await store.delete(subscription.id)
      logger.info("Evicted subscription id=%s channel=%s errors=%d reason=%s", subscription.id, subscription.channel.value, subscription.errors, result.reason)

  return action

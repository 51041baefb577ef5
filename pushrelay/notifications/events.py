"""Inbound relay event helpers.

Only the event id is checked here: the id must equal the SHA-256 of the
canonical ``[0, pubkey, created_at, kind, tags, content]`` serialization.
Schnorr signature checks are delegated to the upstream relay.
"""

from __future__ import annotations

import hashlib

import msgspec

from pushrelay.notifications.contracts import InvalidEventError, SignedEvent


def serialize_event(event: SignedEvent) -> bytes:
  """Return the canonical compact JSON serialization used for the event id."""
  return msgspec.json.encode([0, event.pubkey, event.created_at, event.kind, event.tags, event.content])


def compute_event_id(event: SignedEvent) -> str:
  return hashlib.sha256(serialize_event(event)).hexdigest()


def verify_event(event: SignedEvent) -> None:
  """Raise InvalidEventError when the declared id does not match the event body."""
  if len(event.id) != 64 or len(event.pubkey) != 64:
    raise InvalidEventError("Event id and pubkey must be 32-byte hex strings.")

  if compute_event_id(event) != event.id:
    raise InvalidEventError("Event id does not match event content.")

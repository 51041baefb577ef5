"""Identifier utilities."""

from __future__ import annotations

import hashlib
import secrets


def generate_subscription_key() -> str:
  """Return a new client secret for a subscription."""
  return secrets.token_hex(32)


def subscription_id_for_key(key: str) -> str:
  """Derive the public subscription identifier from its secret."""
  return hashlib.sha256(key.encode("utf-8")).hexdigest()

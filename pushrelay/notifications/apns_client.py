"""Minimal APNS HTTP/2 provider client using token-based authentication."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import jwt

logger = logging.getLogger(__name__)

APNS_PRODUCTION_HOST = "https://api.push.apple.com"
APNS_SANDBOX_HOST = "https://api.sandbox.push.apple.com"

# Apple rejects provider tokens older than one hour and throttles refreshes more often than every 20 minutes.
TOKEN_REFRESH_INTERVAL_SECONDS = 50 * 60


class APNSClient:
  """Send alert notifications to Apple devices over a shared HTTP/2 connection."""

  def __init__(self, *, key: str, key_id: str, team_id: str, production: bool = False, timeout_seconds: float = 10.0, http_client: httpx.AsyncClient | None = None) -> None:
    self._key = key
    self._key_id = key_id
    self._team_id = team_id
    self._base_url = APNS_PRODUCTION_HOST if production else APNS_SANDBOX_HOST
    self._http_client = http_client or httpx.AsyncClient(http2=True, timeout=timeout_seconds)
    self._cached_token: str | None = None
    self._token_generated_at = 0.0

  @property
  def base_url(self) -> str:
    return self._base_url

  def provider_token(self, now: float | None = None) -> str:
    """Return the cached ES256 provider token, minting a new one when it is due."""
    current = time.time() if now is None else now
    if self._cached_token is not None and current - self._token_generated_at < TOKEN_REFRESH_INTERVAL_SECONDS:
      return self._cached_token

    self._cached_token = jwt.encode({"iss": self._team_id, "iat": int(current)}, self._key, algorithm="ES256", headers={"kid": self._key_id})
    self._token_generated_at = current
    logger.debug("Minted APNS provider token key_id=%s", self._key_id)
    return self._cached_token

  async def send(self, payload: dict[str, Any], token: str, topic: str) -> list[dict[str, Any]]:
    """Post one notification and return the per-device failures (empty on success)."""
    headers = {"authorization": f"bearer {self.provider_token()}", "apns-topic": topic, "apns-push-type": "alert", "apns-priority": "10"}

    try:
      response = await self._http_client.post(f"{self._base_url}/3/device/{token}", json=payload, headers=headers)
    except httpx.HTTPError as exc:
      logger.warning("APNS transport error topic=%s error=%s", topic, exc)
      return [{"device": token, "error": str(exc) or type(exc).__name__}]

    if response.status_code == httpx.codes.OK:
      return []

    reason: str | None = None
    try:
      body = response.json()
    except ValueError:
      body = None
    if isinstance(body, dict):
      reason = body.get("reason")

    # An expired provider token must not be reused for the next request.
    if reason == "ExpiredProviderToken":
      self._cached_token = None

    return [{"device": token, "status": str(response.status_code), "response": {"reason": reason}}]

  async def aclose(self) -> None:
    await self._http_client.aclose()

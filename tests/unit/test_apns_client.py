from __future__ import annotations

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from pushrelay.notifications.apns_client import APNS_PRODUCTION_HOST, APNS_SANDBOX_HOST, TOKEN_REFRESH_INTERVAL_SECONDS, APNSClient


@pytest.fixture(scope="module")
def es256_key() -> str:
  private_key = ec.generate_private_key(ec.SECP256R1())
  return private_key.private_bytes(encoding=serialization.Encoding.PEM, format=serialization.PrivateFormat.PKCS8, encryption_algorithm=serialization.NoEncryption()).decode()


def _client(es256_key: str, handler, *, production: bool = False) -> APNSClient:
  return APNSClient(key=es256_key, key_id="KEY123", team_id="TEAM456", production=production, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_provider_token_claims_and_headers(es256_key):
  client = _client(es256_key, lambda request: httpx.Response(200))

  token = client.provider_token(now=1_700_000_000)

  header = jwt.get_unverified_header(token)
  claims = jwt.decode(token, options={"verify_signature": False})
  assert header["alg"] == "ES256"
  assert header["kid"] == "KEY123"
  assert claims == {"iss": "TEAM456", "iat": 1_700_000_000}


def test_provider_token_is_cached_until_refresh_interval(es256_key):
  client = _client(es256_key, lambda request: httpx.Response(200))

  first = client.provider_token(now=1_000.0)
  assert client.provider_token(now=1_000.0 + TOKEN_REFRESH_INTERVAL_SECONDS - 1) == first
  assert client.provider_token(now=1_000.0 + TOKEN_REFRESH_INTERVAL_SECONDS) != first


def test_host_depends_on_environment(es256_key):
  assert _client(es256_key, lambda request: httpx.Response(200)).base_url == APNS_SANDBOX_HOST
  assert _client(es256_key, lambda request: httpx.Response(200), production=True).base_url == APNS_PRODUCTION_HOST


@pytest.mark.anyio
async def test_send_success_returns_no_failures(es256_key):
  seen: list[httpx.Request] = []

  def _handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    return httpx.Response(200, headers={"apns-id": "id-1"})

  client = _client(es256_key, _handler)

  failed = await client.send({"aps": {"alert": {"title": "t", "body": "b"}}}, "abcd", "com.example.app")

  assert failed == []
  request = seen[0]
  assert str(request.url) == f"{APNS_SANDBOX_HOST}/3/device/abcd"
  assert request.headers["apns-topic"] == "com.example.app"
  assert request.headers["apns-push-type"] == "alert"
  assert request.headers["authorization"].startswith("bearer ")
  await client.aclose()


@pytest.mark.anyio
async def test_send_rejection_returns_status_and_reason(es256_key):
  client = _client(es256_key, lambda request: httpx.Response(410, json={"reason": "Unregistered", "timestamp": 1}))

  failed = await client.send({"aps": {}}, "abcd", "com.example.app")

  assert failed == [{"device": "abcd", "status": "410", "response": {"reason": "Unregistered"}}]


@pytest.mark.anyio
async def test_send_transport_error_returns_error_entry(es256_key):
  def _handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  client = _client(es256_key, _handler)

  failed = await client.send({"aps": {}}, "abcd", "com.example.app")

  assert failed[0]["device"] == "abcd"
  assert "connection refused" in failed[0]["error"]


@pytest.mark.anyio
async def test_expired_provider_token_is_discarded(es256_key):
  client = _client(es256_key, lambda request: httpx.Response(403, json={"reason": "ExpiredProviderToken"}))

  await client.send({"aps": {}}, "abcd", "com.example.app")

  assert client._cached_token is None

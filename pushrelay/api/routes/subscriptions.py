"""Routes for push subscription lifecycle management."""

from __future__ import annotations

import re
import urllib.parse

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from pushrelay.api.deps import get_relay_service
from pushrelay.notifications.contracts import APNSData, FCMData, Subscription, VapidData
from pushrelay.notifications.service import RelayService

_BASE64_RE = re.compile(r"^[A-Za-z0-9_\-+/]+={0,2}$")
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")

router = APIRouter()


class VapidSubscriptionRequest(BaseModel):
  """Browser push subscription: endpoint plus encryption key material."""

  endpoint: str = Field(min_length=1, max_length=2048)
  p256dh: str = Field(min_length=1, max_length=512)
  auth: str = Field(min_length=1, max_length=256)
  model_config = ConfigDict(extra="ignore")

  @field_validator("endpoint")
  @classmethod
  def validate_endpoint(cls, value: str) -> str:
    """Push services only accept deliveries over HTTPS."""
    normalized = value.strip()
    parsed = urllib.parse.urlparse(normalized)
    if parsed.scheme.lower() != "https" or not parsed.hostname:
      raise PydanticCustomError("push_endpoint_https", "endpoint must be an https URL.")

    return normalized

  @field_validator("p256dh", "auth")
  @classmethod
  def validate_key_material(cls, value: str) -> str:
    normalized = value.strip()
    if not _BASE64_RE.fullmatch(normalized):
      raise PydanticCustomError("push_key_format", "key material must be base64 encoded.")

    return normalized


class APNSSubscriptionRequest(BaseModel):
  """Apple device token and the bundle topic it belongs to."""

  token: str = Field(min_length=1, max_length=200)
  topic: str = Field(min_length=1, max_length=255)
  model_config = ConfigDict(extra="ignore")

  @field_validator("token")
  @classmethod
  def validate_token(cls, value: str) -> str:
    normalized = value.strip()
    if not _HEX_RE.fullmatch(normalized):
      raise PydanticCustomError("apns_token_format", "token must be a hex device token.")

    return normalized


class FCMSubscriptionRequest(BaseModel):
  """Firebase registration token."""

  token: str = Field(min_length=1, max_length=4096)
  model_config = ConfigDict(extra="ignore")


class SubscriptionCreatedResponse(BaseModel):
  key: str
  callback: str


class SubscriptionExistsResponse(BaseModel):
  exists: bool


class OkResponse(BaseModel):
  ok: bool = True


def _created(service: RelayService, subscription: Subscription) -> SubscriptionCreatedResponse:
  # The key is returned once; only its hash is ever exposed afterwards.
  return SubscriptionCreatedResponse(key=subscription.key, callback=service.callback_url(subscription))


@router.post("/vapid", response_model=SubscriptionCreatedResponse)
async def subscribe_vapid(payload: VapidSubscriptionRequest, service: RelayService = Depends(get_relay_service)) -> SubscriptionCreatedResponse:  # noqa: B008
  """Register a browser Web Push subscription."""
  subscription = await service.subscribe_vapid(VapidData(endpoint=payload.endpoint, p256dh=payload.p256dh, auth=payload.auth))
  return _created(service, subscription)


@router.post("/apns", response_model=SubscriptionCreatedResponse)
async def subscribe_apns(payload: APNSSubscriptionRequest, service: RelayService = Depends(get_relay_service)) -> SubscriptionCreatedResponse:  # noqa: B008
  """Register an Apple device token."""
  subscription = await service.subscribe_apns(APNSData(topic=payload.topic, token=payload.token))
  return _created(service, subscription)


@router.post("/fcm", response_model=SubscriptionCreatedResponse)
async def subscribe_fcm(payload: FCMSubscriptionRequest, service: RelayService = Depends(get_relay_service)) -> SubscriptionCreatedResponse:  # noqa: B008
  """Register a Firebase registration token."""
  subscription = await service.subscribe_fcm(FCMData(token=payload.token))
  return _created(service, subscription)


@router.get("/{key}", response_model=SubscriptionExistsResponse)
async def subscription_exists(key: str, service: RelayService = Depends(get_relay_service)) -> SubscriptionExistsResponse:  # noqa: B008
  """Report whether the subscription owned by a key is still registered."""
  return SubscriptionExistsResponse(exists=await service.exists(key))


@router.delete("/{key}", response_model=OkResponse)
async def unsubscribe(key: str, service: RelayService = Depends(get_relay_service)) -> OkResponse:  # noqa: B008
  """Delete the subscription owned by a key; repeated deletes also succeed."""
  await service.unsubscribe(key)
  return OkResponse()

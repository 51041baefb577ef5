"""Callback route the relay posts matching events to."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from pushrelay.api.deps import get_relay_service
from pushrelay.api.routes.subscriptions import OkResponse
from pushrelay.notifications.contracts import NotificationData, SignedEvent
from pushrelay.notifications.service import NotifyStatus, RelayService

router = APIRouter()


class EventPayload(BaseModel):
  """Signed relay event."""

  id: str = Field(min_length=1, max_length=128)
  pubkey: str = Field(min_length=1, max_length=128)
  created_at: int
  kind: int
  tags: list[list[str]]
  content: str
  sig: str
  model_config = ConfigDict(extra="ignore")

  def to_signed_event(self) -> SignedEvent:
    return SignedEvent(id=self.id, pubkey=self.pubkey, created_at=self.created_at, kind=self.kind, tags=self.tags, content=self.content, sig=self.sig)


class NotifyRequest(BaseModel):
  relay: str = Field(min_length=1, max_length=2048)
  event: EventPayload


@router.post("/{subscription_id}", response_model=OkResponse)
async def notify(subscription_id: str, payload: NotifyRequest, service: RelayService = Depends(get_relay_service)) -> OkResponse:  # noqa: B008
  """Deliver an event to the subscription's device.

  Invalid events answer 400 and unknown subscriptions 404. A repeat of an event
  already delivered within the dedup window answers ok without sending again.
  """
  result = await service.notify(subscription_id, NotificationData(relay=payload.relay, event=payload.event.to_signed_event()))
  if result is NotifyStatus.NOT_FOUND:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")

  return OkResponse()

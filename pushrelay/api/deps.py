"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from pushrelay.notifications.service import RelayService


def get_relay_service(request: Request) -> RelayService:
  """Return the relay service installed on the application during startup."""
  service = getattr(request.app.state, "relay_service", None)
  if service is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Relay service is not ready")
  return service

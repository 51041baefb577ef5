from __future__ import annotations

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from pushrelay.api.routes import notify, subscriptions
from pushrelay.config import get_settings
from pushrelay.core.exceptions import global_exception_handler, http_exception_handler, invalid_event_exception_handler, request_validation_exception_handler, subscription_store_exception_handler
from pushrelay.core.lifespan import lifespan
from pushrelay.core.middleware import RequestLoggingMiddleware
from pushrelay.notifications.contracts import InvalidEventError, SubscriptionStoreError


def create_app() -> FastAPI:
  """Build the relay application with handlers, middleware and routes."""
  app = FastAPI(title="pushrelay", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

  app.add_exception_handler(Exception, global_exception_handler)
  app.add_exception_handler(HTTPException, http_exception_handler)
  app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
  app.add_exception_handler(InvalidEventError, invalid_event_exception_handler)
  app.add_exception_handler(SubscriptionStoreError, subscription_store_exception_handler)

  app.add_middleware(RequestLoggingMiddleware)

  @app.get("/health", include_in_schema=False)
  async def health_check() -> dict[str, str]:
    """Return a simple health status."""
    return {"status": "ok"}

  app.include_router(subscriptions.router, prefix="/subscription", tags=["subscriptions"])
  app.include_router(notify.router, prefix="/notify", tags=["notify"])
  return app


app = create_app()


def run() -> None:
  settings = get_settings()
  uvicorn.run("pushrelay.main:app", host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
  run()

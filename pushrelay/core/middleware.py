import logging
import re
import time
import uuid

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("pushrelay.core.middleware")

# Subscription keys are bearer secrets and must never reach the logs.
_SUBSCRIPTION_KEY_PATH = re.compile(r"^(/subscription/)(?!vapid$|apns$|fcm$)[^/]+$")


def redact_path(path: str) -> str:
  """Replace the secret key segment of subscription paths."""
  return _SUBSCRIPTION_KEY_PATH.sub(r"\1<redacted>", path)


class RequestLoggingMiddleware:
  """Tag each request with an id and log its method, path, status and latency."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    # Store the request id for exception handlers and the response header.
    request_id = str(uuid.uuid4())
    scope.setdefault("state", {})["request_id"] = request_id

    start_time = time.time()
    method = scope.get("method", "UNKNOWN")
    path = redact_path(scope.get("path", ""))
    logger.info("Incoming request request_id=%s %s %s", request_id, method, path)

    status_code: int | None = None

    async def send_wrapper(message: Message) -> None:
      nonlocal status_code
      if message["type"] == "http.response.start":
        status_code = message["status"]
        response_headers = MutableHeaders(scope=message)
        response_headers["x-request-id"] = request_id
      await send(message)

    try:
      await self.app(scope, receive, send_wrapper)
    finally:
      process_time = (time.time() - start_time) * 1000
      logger.info("Response request_id=%s status=%s (took %.2fms)", request_id, status_code, process_time)

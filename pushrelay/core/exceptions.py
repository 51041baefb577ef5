import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pushrelay.config import get_settings
from pushrelay.core.middleware import redact_path
from pushrelay.notifications.contracts import InvalidEventError, SubscriptionStoreError


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build a safe error payload that avoids leaking internal details to clients."""
  payload: dict[str, Any] = {"detail": detail}
  # Attach a request id so support can correlate client reports to server logs.
  if request_id:
    payload["requestId"] = request_id
  return payload


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  return str(value)


def _sanitize_validation_errors(errors: Any) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  # Strip payload values so logs are useful without leaking request bodies.
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key not in {"input", "ctx"}}
    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger = logging.getLogger("uvicorn.error")
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, redact_path(request.url.path), type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, redact_path(request.url.path), request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  settings = get_settings()
  request_id = getattr(request.state, "request_id", None)
  if exc.status_code >= 500:
    logger = logging.getLogger("uvicorn.error")
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, redact_path(request.url.path), exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  # Log 4xx HTTPExceptions when explicitly enabled for debugging.
  if settings.log_http_4xx:
    logger = logging.getLogger("uvicorn.error")
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, redact_path(request.url.path), exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id))


async def invalid_event_exception_handler(request: Request, exc: InvalidEventError) -> JSONResponse:
  """Reject events whose id does not match their content."""
  request_id = getattr(request.state, "request_id", None)
  logging.getLogger("uvicorn.error").info("Rejected event request_id=%s path=%s reason=%s", request_id, request.url.path, exc)
  return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_payload(str(exc), request_id=request_id))


async def subscription_store_exception_handler(request: Request, exc: SubscriptionStoreError) -> JSONResponse:
  """Report store outages as 503 so callers may retry."""
  logger = logging.getLogger("uvicorn.error")
  request_id = getattr(request.state, "request_id", None)
  logger.error("Subscription store failure request_id=%s path=%s error=%s", request_id, redact_path(request.url.path), exc, exc_info=True)
  return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_error_payload("Service Unavailable", request_id=request_id))

"""Map provider-specific failure signals onto the shared outcome taxonomy.

Each provider reports a dead endpoint differently: Web Push through HTTP 404/410,
APNS through a response reason, FCM through an error code.
"""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from pushrelay.notifications.contracts import ClassifiedOutcome

WEBPUSH_PERMANENT_STATUSES = frozenset({HTTPStatus.NOT_FOUND, HTTPStatus.GONE})

APNS_PERMANENT_REASONS = frozenset({"Unregistered", "BadDeviceToken", "DeviceTokenNotForTopic"})
APNS_PERMANENT_STATUSES = frozenset({"410"})
APNS_TRANSIENT_STATUSES = frozenset({"429", "500", "503"})

FCM_PERMANENT_CODES = frozenset({"invalid-registration-token", "registration-token-not-registered"})
FCM_TRANSIENT_CODES = frozenset({"server-unavailable", "internal-error"})

# Python Admin SDK error types expressed in the canonical FCM code vocabulary.
_FCM_ERROR_TYPE_CODES: tuple[tuple[type[Exception], str], ...] = (
  (messaging.UnregisteredError, "registration-token-not-registered"),
  (firebase_exceptions.UnavailableError, "server-unavailable"),
  (firebase_exceptions.InternalError, "internal-error"),
)


def extract_status_code(exc: BaseException) -> int | None:
  """Extract an HTTP status code from a pywebpush exception when available."""
  response = getattr(exc, "response", None)
  if response is None:
    return None

  status = getattr(response, "status_code", None)
  if isinstance(status, int):
    return status

  return None


def classify_webpush_error(exc: BaseException) -> ClassifiedOutcome:
  """Classify a failed Web Push send."""
  status_code = extract_status_code(exc)
  if status_code in WEBPUSH_PERMANENT_STATUSES:
    return ClassifiedOutcome.permanent(f"webpush status={status_code}")

  return ClassifiedOutcome.transient(f"webpush status={status_code if status_code is not None else 'unknown'} error={type(exc).__name__}")


def classify_apns_failures(failed: list[Mapping[str, Any]]) -> ClassifiedOutcome:
  """Classify the per-token failure list returned by an APNS send.

  An empty list means the device accepted the notification. Only the first entry
  is inspected because each send targets a single token.
  """
  if not failed:
    return ClassifiedOutcome.success()

  failure = failed[0]
  status = str(failure.get("status") or "")
  response = failure.get("response") or {}
  reason = response.get("reason") if isinstance(response, Mapping) else None

  if reason in APNS_PERMANENT_REASONS or status in APNS_PERMANENT_STATUSES:
    return ClassifiedOutcome.permanent(f"apns status={status or 'none'} reason={reason}")

  if status in APNS_TRANSIENT_STATUSES:
    return ClassifiedOutcome.transient(f"apns status={status} reason={reason}")

  if failure.get("error") is not None:
    return ClassifiedOutcome.unknown(f"apns transport error={failure['error']}")

  return ClassifiedOutcome.unknown(f"apns status={status or 'none'} reason={reason}")


def fcm_error_code(exc: BaseException) -> str | None:
  """Return the canonical FCM error code for an exception, without the messaging/ prefix."""
  if isinstance(exc, firebase_exceptions.InvalidArgumentError):
    # INVALID_ARGUMENT also covers malformed payloads; only a rejected token is permanent.
    return "invalid-registration-token" if "registration token" in str(exc).lower() else "invalid-argument"

  for error_type, code in _FCM_ERROR_TYPE_CODES:
    if isinstance(exc, error_type):
      return code

  raw = getattr(exc, "code", None)
  if not isinstance(raw, str) or not raw:
    return None

  return raw.removeprefix("messaging/")


def classify_fcm_error(exc: BaseException) -> ClassifiedOutcome:
  """Classify an exception thrown by an FCM send."""
  code = fcm_error_code(exc)
  if code in FCM_PERMANENT_CODES:
    return ClassifiedOutcome.permanent(f"fcm code={code}")

  if code in FCM_TRANSIENT_CODES:
    return ClassifiedOutcome.transient(f"fcm code={code}")

  return ClassifiedOutcome.unknown(f"fcm code={code} error={type(exc).__name__}")


def classify_timeout(channel: str, timeout_seconds: float) -> ClassifiedOutcome:
  return ClassifiedOutcome.transient(f"{channel} send timed out after {timeout_seconds:g}s")

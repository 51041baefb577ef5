"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from pushrelay.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the push relay service."""

  environment: str
  debug: bool
  base_url: str | None
  port: int
  pg_dsn: str | None
  vapid_public_key: str | None
  vapid_private_key: str | None
  vapid_subject: str | None
  fcm_key: str | None
  apn_key: str | None
  apn_key_id: str | None
  apn_team_id: str | None
  apn_topic: str | None
  apn_production: bool
  send_timeout_seconds: float
  dedup_window_seconds: float
  dedup_sweep_interval_seconds: float
  log_level: str
  log_http_4xx: bool

  @property
  def vapid_configured(self) -> bool:
    return bool(self.vapid_public_key and self.vapid_private_key and self.vapid_subject)

  @property
  def apns_configured(self) -> bool:
    return bool(self.apn_key and self.apn_key_id and self.apn_team_id and self.apn_topic)

  @property
  def fcm_configured(self) -> bool:
    return bool(self.fcm_key)


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None

  value = raw.strip()
  return value or None


def _parse_pem(raw: str | None) -> str | None:
  """Accept PEM keys with escaped newlines, as single-line env values usually carry them."""
  value = _optional_str(raw)
  if value is None:
    return None

  return value.replace("\\n", "\n")


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PUSHRELAY_ENV", "development").lower()
  debug = _parse_bool(os.getenv("PUSHRELAY_DEBUG"))

  port = int(os.getenv("PORT", "3000"))
  if port <= 0:
    raise ValueError("PORT must be a positive integer.")

  base_url = _optional_str(os.getenv("BASE_URL"))
  if base_url:
    base_url = base_url.rstrip("/")

  vapid_subject = _optional_str(os.getenv("VAPID_SUBJECT"))
  if vapid_subject and not (vapid_subject.startswith("mailto:") or vapid_subject.startswith("https://")):
    raise ValueError("VAPID_SUBJECT must start with 'mailto:' or 'https://'.")

  log_level = (os.getenv("PUSHRELAY_LOG_LEVEL") or "INFO").strip().upper()

  return Settings(
    environment=environment,
    debug=debug,
    base_url=base_url,
    port=port,
    pg_dsn=_optional_str(os.getenv("PUSHRELAY_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    vapid_public_key=_optional_str(os.getenv("VAPID_PUBLIC_KEY")),
    vapid_private_key=_optional_str(os.getenv("VAPID_PRIVATE_KEY")),
    vapid_subject=vapid_subject,
    fcm_key=_optional_str(os.getenv("FCM_KEY")),
    apn_key=_parse_pem(os.getenv("APN_KEY")),
    apn_key_id=_optional_str(os.getenv("APN_KEY_ID")),
    apn_team_id=_optional_str(os.getenv("APN_TEAM_ID")),
    apn_topic=_optional_str(os.getenv("APN_TOPIC")),
    apn_production=_parse_bool(os.getenv("APN_PRODUCTION")),
    send_timeout_seconds=_positive_float("PUSHRELAY_SEND_TIMEOUT_SECONDS", "10"),
    dedup_window_seconds=_positive_float("PUSHRELAY_DEDUP_WINDOW_SECONDS", "300"),
    dedup_sweep_interval_seconds=_positive_float("PUSHRELAY_DEDUP_SWEEP_SECONDS", "30"),
    log_level=log_level,
    log_http_4xx=_parse_bool(os.getenv("PUSHRELAY_LOG_HTTP_4XX")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring provider credentials."""
  debug = _parse_bool(os.getenv("PUSHRELAY_DEBUG"))
  # DATABASE_URL is accepted for hosting platforms that inject it.
  pg_dsn = _optional_str(os.getenv("PUSHRELAY_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn)

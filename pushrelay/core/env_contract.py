"""Runtime environment contract checks for the relay process.

How/Why:
- Keep runtime configuration explicit so deploy-time mistakes fail immediately.
- Prevent secret leakage by redacting sensitive values in startup logs.
- Push channels are optional, but a channel that is half configured is a deploy error.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass

EnvValidator = Callable[[str, dict[str, str]], str | None]

VAPID_GROUP = ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "VAPID_SUBJECT")
APNS_GROUP = ("APN_KEY", "APN_KEY_ID", "APN_TEAM_ID", "APN_TOPIC")


@dataclass(frozen=True)
class EnvVarDefinition:
  """Describe how an environment variable must be validated."""

  name: str
  required: bool
  secret: bool
  validator: EnvValidator | None = None


class EnvContractError(RuntimeError):
  """Raised when required runtime environment keys are missing or invalid."""


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse boolean-ish environment values consistently for contract checks."""
  if raw is None:
    return default

  return raw.strip().lower() in {"1", "true", "yes", "on"}


def _validate_non_empty(value: str, _: dict[str, str]) -> str | None:
  if value.strip() == "":
    return "must not be empty."

  return None


def _validate_environment_name(value: str, _: dict[str, str]) -> str | None:
  normalized = value.strip().lower()
  if normalized in {"dev", "development", "stage", "staging", "prod", "production", "test", "testing"}:
    return None

  return "must be one of: development, stage, production, test (or aliases)."


def _validate_base_url(value: str, _: dict[str, str]) -> str | None:
  """Callback URLs handed to clients are built from this value."""
  if value.startswith("http://") or value.startswith("https://"):
    return None

  return "must be an absolute http(s) URL."


def _validate_vapid_subject(value: str, _: dict[str, str]) -> str | None:
  if value.startswith("mailto:") or value.startswith("https://"):
    return None

  return "must start with 'mailto:' or 'https://'."


def _validate_service_account_json(value: str, _: dict[str, str]) -> str | None:
  """FCM_KEY carries the Firebase service account document inline."""
  try:
    parsed = json.loads(value)
  except json.JSONDecodeError:
    return "must be a JSON service account document."

  if not isinstance(parsed, dict) or not parsed.get("project_id"):
    return "must be a service account document with a project_id."

  return None


def _validate_pem_key(value: str, _: dict[str, str]) -> str | None:
  if "PRIVATE KEY" not in value:
    return "must be a PEM encoded .p8 private key."

  return None


def _require_group(group: tuple[str, ...]) -> EnvValidator:
  """Build a validator that flags a channel configured with only some of its keys."""

  def _validate(_: str, env_map: dict[str, str]) -> str | None:
    missing = [name for name in group if env_map.get(name, "").strip() == ""]
    if missing:
      return f"set without {', '.join(missing)}; configure all of {', '.join(group)} or none."

    return None

  return _validate


def _chain(*validators: EnvValidator) -> EnvValidator:
  def _validate(value: str, env_map: dict[str, str]) -> str | None:
    for validator in validators:
      error = validator(value, env_map)
      if error:
        return error
    return None

  return _validate


REQUIRED_ENV_REGISTRY: tuple[EnvVarDefinition, ...] = (
  EnvVarDefinition(name="PUSHRELAY_ENV", required=False, secret=False, validator=_validate_environment_name),
  EnvVarDefinition(name="BASE_URL", required=True, secret=False, validator=_validate_base_url),
  EnvVarDefinition(name="PUSHRELAY_PG_DSN", required=False, secret=True, validator=_validate_non_empty),
  EnvVarDefinition(name="VAPID_PUBLIC_KEY", required=False, secret=False, validator=_require_group(VAPID_GROUP)),
  EnvVarDefinition(name="VAPID_PRIVATE_KEY", required=False, secret=True, validator=_require_group(VAPID_GROUP)),
  EnvVarDefinition(name="VAPID_SUBJECT", required=False, secret=False, validator=_chain(_require_group(VAPID_GROUP), _validate_vapid_subject)),
  EnvVarDefinition(name="FCM_KEY", required=False, secret=True, validator=_validate_service_account_json),
  EnvVarDefinition(name="APN_KEY", required=False, secret=True, validator=_chain(_require_group(APNS_GROUP), _validate_pem_key)),
  EnvVarDefinition(name="APN_KEY_ID", required=False, secret=False, validator=_require_group(APNS_GROUP)),
  EnvVarDefinition(name="APN_TEAM_ID", required=False, secret=False, validator=_require_group(APNS_GROUP)),
  EnvVarDefinition(name="APN_TOPIC", required=False, secret=False, validator=_require_group(APNS_GROUP)),
)


def _resolve_value(*, definition: EnvVarDefinition) -> str:
  raw = os.getenv(definition.name)
  if raw is not None:
    return raw

  if definition.name == "PUSHRELAY_PG_DSN":
    return os.getenv("DATABASE_URL", "")

  return ""


def list_required_env_names() -> tuple[str, ...]:
  """Expose required key names for deploy automation."""
  return tuple(definition.name for definition in REQUIRED_ENV_REGISTRY if definition.required)


def validate_env_values(*, env_map: dict[str, str]) -> list[str]:
  """Validate a provided env map against the contract rules."""
  errors: list[str] = []
  for definition in REQUIRED_ENV_REGISTRY:
    value = env_map.get(definition.name, "")
    if definition.required and value.strip() == "":
      errors.append(f"{definition.name}: required variable is missing.")
      continue

    if definition.validator and value.strip() != "":
      validation_error = definition.validator(value, env_map)
      if validation_error:
        errors.append(f"{definition.name}: {validation_error}")

  return errors


def validate_runtime_env_or_raise(*, logger: logging.Logger) -> None:
  """Validate and log runtime env values using the centralized contract."""
  # Production deployments opt in with PUSHRELAY_ENV_CONTRACT_ENFORCE=1.
  env_contract_enabled = _parse_bool(os.getenv("PUSHRELAY_ENV_CONTRACT_ENFORCE"), default=False)
  resolved_values: dict[str, str] = {}
  for definition in REQUIRED_ENV_REGISTRY:
    value = _resolve_value(definition=definition)
    resolved_values[definition.name] = value
    if definition.secret:
      logger.info("ENV_CHECK key=%s value=%s", definition.name, "<redacted>" if value else "<missing>")
    elif value == "":
      logger.info("ENV_CHECK key=%s value=<missing>", definition.name)
    else:
      logger.info("ENV_CHECK key=%s value=%s", definition.name, value)

  errors = validate_env_values(env_map=resolved_values)

  if not errors:
    logger.info("ENV_CHECK status=ok checked=%d", len(REQUIRED_ENV_REGISTRY))
    return

  message = "ENV_CHECK status=failed violations:\n- {errors}".format(errors="\n- ".join(errors))
  if env_contract_enabled:
    logger.error(message)
    raise EnvContractError(message)

  logger.warning("ENV_CHECK enforcement disabled by PUSHRELAY_ENV_CONTRACT_ENFORCE=0")
  logger.warning(message)

"""Local .env support for development runs of the relay."""

from __future__ import annotations

import os
from pathlib import Path

_QUOTES = {'"', "'"}


def default_env_path() -> Path:
  """Return PUSHRELAY_ENV_FILE when set, else the .env next to the project root."""
  override = os.getenv("PUSHRELAY_ENV_FILE")
  if override:
    return Path(override)

  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_text(text: str) -> dict[str, str]:
  """Parse dotenv content into a mapping.

  Quoted values may span several lines, which is how a pasted APN_KEY PEM block
  usually arrives. Only one matching pair of outer quotes is removed so that
  FCM_KEY JSON keeps its inner quoting.
  """
  values: dict[str, str] = {}
  lines = iter(text.splitlines())
  for raw_line in lines:
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue

    key, sep, value = line.removeprefix("export ").partition("=")
    key = key.strip()
    value = value.strip()
    if not sep or not key:
      continue

    quote = value[:1]
    if quote in _QUOTES and (len(value) == 1 or not value.endswith(quote)):
      parts = [value]
      for continuation in lines:
        parts.append(continuation.rstrip())
        if continuation.rstrip().endswith(quote):
          break
      value = "\n".join(parts)

    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
      value = value[1:-1]

    values[key] = value

  return values


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Export the file's values into os.environ; existing variables win unless override is set."""
  if not path.is_file():
    return

  for key, value in parse_env_text(path.read_text(encoding="utf-8")).items():
    if override or key not in os.environ:
      os.environ[key] = value

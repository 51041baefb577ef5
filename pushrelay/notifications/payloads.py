"""Provider-neutral push content derived from a relay event."""

from __future__ import annotations

from dataclasses import dataclass

from pushrelay.notifications.contracts import NotificationData

PUSH_TITLE = "New activity"
PUSH_BODY_MAX_CHARS = 140


@dataclass(frozen=True)
class PushContent:
  """Title, short body and the identifiers a client needs to fetch the event."""

  title: str
  body: str
  data: dict[str, str]


def summarize_content(content: str, *, max_chars: int = PUSH_BODY_MAX_CHARS) -> str:
  """Collapse whitespace and clamp the text to a lock-screen friendly length."""
  text = " ".join(content.split())
  if len(text) <= max_chars:
    return text

  return text[: max_chars - 1].rstrip() + "…"


def build_push_content(data: NotificationData) -> PushContent:
  return PushContent(title=PUSH_TITLE, body=summarize_content(data.event.content), data={"id": data.event.id, "relay": data.relay})

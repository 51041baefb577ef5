"""SQLAlchemy model for push subscriptions."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from pushrelay.core.database import Base


class PushSubscription(Base):
  """Persist one channel subscription addressed by id and owned by a secret key."""

  __tablename__ = "subscription"

  id: Mapped[str] = mapped_column(Text, primary_key=True)
  key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
  channel: Mapped[str] = mapped_column(Text, nullable=False)
  errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

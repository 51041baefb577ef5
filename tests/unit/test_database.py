from __future__ import annotations

import pytest

from pushrelay.config import get_database_settings
from pushrelay.core import database


@pytest.fixture(autouse=True)
def _reset_database_settings(monkeypatch):
  monkeypatch.delenv("PUSHRELAY_PG_DSN", raising=False)
  monkeypatch.delenv("DATABASE_URL", raising=False)
  get_database_settings.cache_clear()
  yield
  get_database_settings.cache_clear()


@pytest.mark.parametrize(
  ("dsn", "expected"),
  [
    ("postgres://u:p@db:5432/relay", "postgresql+asyncpg://u:p@db:5432/relay"),
    ("postgresql://u:p@db/relay", "postgresql+asyncpg://u:p@db/relay"),
    ("postgresql+asyncpg://u:p@db/relay", "postgresql+asyncpg://u:p@db/relay"),
  ],
)
def test_database_url_uses_asyncpg_driver(monkeypatch, dsn, expected):
  monkeypatch.setenv("PUSHRELAY_PG_DSN", dsn)

  assert database._database_url() == expected


def test_no_dsn_means_no_session_factory(monkeypatch):
  monkeypatch.setattr(database, "engine", None)
  monkeypatch.setattr(database, "SessionLocal", None)

  assert database.get_session_factory() is None


@pytest.mark.anyio
async def test_create_tables_is_a_noop_without_database(monkeypatch):
  monkeypatch.setattr(database, "engine", None)

  await database.create_tables()

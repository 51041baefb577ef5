from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pushrelay.config import get_settings
from pushrelay.core.env_contract import EnvContractError
from pushrelay.main import create_app


@pytest.fixture(autouse=True)
def _quiet_startup(monkeypatch):
  for key in ("PUSHRELAY_PG_DSN", "DATABASE_URL", "PUSHRELAY_ENV_CONTRACT_ENFORCE"):
    monkeypatch.delenv(key, raising=False)
  monkeypatch.setattr("pushrelay.core.lifespan._initialize_logging", lambda settings: None)
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def test_lifespan_starts_and_closes_installed_service(monkeypatch):
  monkeypatch.setenv("BASE_URL", "https://push.example.com")
  service = MagicMock()
  service.aclose = AsyncMock()
  app = create_app()
  app.state.relay_service = service

  with TestClient(app) as client:
    assert client.get("/health").status_code == 200
    service.start.assert_called_once()

  service.aclose.assert_awaited_once()


def test_lifespan_refuses_to_start_on_enforced_contract_violation(monkeypatch):
  monkeypatch.delenv("BASE_URL", raising=False)
  monkeypatch.setenv("PUSHRELAY_ENV_CONTRACT_ENFORCE", "true")
  app = create_app()
  app.state.relay_service = MagicMock()

  with pytest.raises(EnvContractError):
    with TestClient(app):
      pass

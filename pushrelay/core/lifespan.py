import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pushrelay.config import get_settings
from pushrelay.core.database import create_tables, dispose_engine
from pushrelay.core.env_contract import EnvContractError, validate_runtime_env_or_raise
from pushrelay.core.logging import _initialize_logging
from pushrelay.notifications.factory import build_relay_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging, validate configuration and own the relay service lifetime."""
  settings = get_settings()
  logger = logging.getLogger("pushrelay.core.lifespan")

  _initialize_logging(settings)
  try:
    # Enforce startup env contracts before provider clients are built.
    validate_runtime_env_or_raise(logger=logger)
  except EnvContractError:
    logger.error("Environment contract failed; refusing to start the service.", exc_info=True)
    raise

  if settings.pg_dsn:
    await create_tables()
    logger.info("Subscription table ensured.")

  # Tests may install a service before startup.
  service = getattr(app.state, "relay_service", None) or build_relay_service(settings)
  app.state.relay_service = service
  service.start()
  logger.info("Startup complete base_url=%s", settings.base_url)

  try:
    yield
  finally:
    await service.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")

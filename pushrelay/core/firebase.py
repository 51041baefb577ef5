import json
import logging

import firebase_admin
from firebase_admin import App, credentials

from pushrelay.notifications.contracts import ProviderConfigurationError

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "pushrelay"


def initialize_firebase(service_account_json: str) -> App:
  """Initializes a named Firebase Admin app from an inline service account document."""
  try:
    return firebase_admin.get_app(FIREBASE_APP_NAME)
  except ValueError:
    pass

  try:
    service_account = json.loads(service_account_json)
    cred = credentials.Certificate(service_account)
  except ValueError as exc:
    raise ProviderConfigurationError(f"FCM_KEY is not a usable service account document: {exc}") from exc

  app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
  logger.info("Firebase Admin SDK initialized project_id=%s", service_account.get("project_id"))
  return app

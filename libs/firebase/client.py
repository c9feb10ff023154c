import json

import firebase_admin
import structlog
from firebase_admin import credentials
from google.cloud.firestore_v1.async_client import AsyncClient

from libs.common.settings import get_settings

logger = structlog.get_logger(__name__)


def initialize_firebase_app():
    """
    Initializes the Firebase Admin SDK using settings from Pydantic.
    This is the robust way to ensure credentials are loaded correctly.
    """
    if firebase_admin._apps:
        return

    settings = get_settings()
    sdk_json_content = settings.firebase_admin_sdk_json
    sdk_json_path = settings.firebase_admin_sdk_path

    cred = None
    if sdk_json_content:
        try:
            cred = credentials.Certificate(json.loads(sdk_json_content))
        except json.JSONDecodeError:
            logger.error("CASEPATH_FIREBASE_ADMIN_SDK_JSON is not valid JSON")
            return
    elif sdk_json_path:
        try:
            cred = credentials.Certificate(sdk_json_path)
        except FileNotFoundError:
            logger.error("Firebase credentials file not found", path=sdk_json_path)
            return

    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    if cred:
        firebase_admin.initialize_app(cred, options)
        return

    logger.warning("No Firebase credentials found in settings, assuming emulator or default credentials")
    try:
        firebase_admin.initialize_app(options=options)
    except ValueError:
        # Already initialized, which is fine
        pass


def get_firestore_async_client() -> AsyncClient:
    """
    Returns an asynchronous Firestore client.

    It relies on initialize_firebase_app() having been called to set up
    the necessary authentication context.
    """
    initialize_firebase_app()
    settings = get_settings()
    return AsyncClient(project=settings.firebase_project_id, database=settings.firestore_database)

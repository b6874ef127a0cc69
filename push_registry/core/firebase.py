import logging
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.cloud.firestore import AsyncClient

from push_registry.core.config import get_settings

logger = logging.getLogger(__name__)


def get_firebase_app() -> firebase_admin.App:
    if firebase_admin._apps:
        return firebase_admin.get_app()

    settings = get_settings()
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    creds_path = settings.firebase_credentials_path
    if creds_path.exists():
        cred = credentials.Certificate(str(creds_path))
        logger.info("Initializing Firebase app with service account %s.", creds_path)
    else:
        cred = credentials.ApplicationDefault()
        logger.info("Service account %s is missing, using application default credentials.", creds_path)
    return firebase_admin.initialize_app(cred, options)


@lru_cache(maxsize=1)
def get_firestore_client() -> AsyncClient:
    return firestore_async.client(get_firebase_app())

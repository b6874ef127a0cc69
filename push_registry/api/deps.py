from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from push_registry.core.firebase import get_firebase_app, get_firestore_client
from push_registry.core.security import InvalidUserTokenError, user_id_from_token
from push_registry.services.push import FirebaseMessagingClient, FirebaseNotificationService, NotificationService
from push_registry.storage.firestore import FirestoreDeviceStorage

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authorization token")

    try:
        return user_id_from_token(credentials.credentials)
    except InvalidUserTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    return FirebaseNotificationService(
        messaging_client=FirebaseMessagingClient(get_firebase_app()),
        device_storage=FirestoreDeviceStorage(get_firestore_client()),
    )

from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeFirestore, FakeMessagingClient, fake_async_transactional


@pytest.fixture(autouse=True)
def settings_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("FIREBASE_SERVICE_ACCOUNT_JSON", str(tmp_path / "missing_firebase.json"))
    monkeypatch.delenv("DEFAULT_NOTIFICATION_LANGUAGE", raising=False)

    from push_registry.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture()
def firestore_client(monkeypatch: pytest.MonkeyPatch) -> FakeFirestore:
    from push_registry.storage import firestore as firestore_storage

    monkeypatch.setattr(firestore_storage, "async_transactional", fake_async_transactional)
    return FakeFirestore()


@pytest.fixture()
def device_storage(firestore_client: FakeFirestore):
    from push_registry.storage.firestore import FirestoreDeviceStorage

    return FirestoreDeviceStorage(firestore_client)


@pytest.fixture()
def messaging_client() -> FakeMessagingClient:
    return FakeMessagingClient()


@pytest.fixture()
def notification_service(messaging_client: FakeMessagingClient, device_storage):
    from push_registry.services.push import FirebaseNotificationService

    return FirebaseNotificationService(messaging_client, device_storage)


@pytest.fixture()
def app_client(notification_service):
    from push_registry.api.deps import get_notification_service
    from push_registry.main import create_app

    app = create_app()
    app.dependency_overrides[get_notification_service] = lambda: notification_service
    with TestClient(app) as client:
        yield client


def user_token(user_id: str, expires_minutes: int = 5) -> str:
    from push_registry.core.config import get_settings

    settings = get_settings()
    issued_at = datetime.now(UTC)
    claims = {
        "sub": user_id,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_token(user_id)}"}

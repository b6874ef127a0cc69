import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from google.cloud.firestore import (
    AsyncClient,
    AsyncCollectionReference,
    AsyncQuery,
    AsyncTransaction,
    async_transactional,
)
from google.cloud.firestore_v1.base_query import FieldFilter

from push_registry.core.config import get_settings
from push_registry.models.common import utcnow
from push_registry.models.device import Device, DevicePlatform, normalize_platform
from push_registry.models.document import Document
from push_registry.storage.base import DeviceStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOKEN_FIELD = "notificationToken"
PLATFORM_FIELD = "platform"

TransactionCallback = Callable[[AsyncQuery, AsyncTransaction], Awaitable[T]]


def _to_document(snapshot) -> Document[Device]:
    return Document[Device](
        id=snapshot.id,
        path=snapshot.reference.path,
        last_update=snapshot.update_time or utcnow(),
        content=Device.decode(snapshot.to_dict()),
    )


def _stored_platform(snapshot) -> str:
    platform = (snapshot.to_dict() or {}).get(PLATFORM_FIELD)
    return normalize_platform(platform) if platform is not None else ""


class FirestoreDeviceStorage(DeviceStorage):
    """Device registry kept in per-user Firestore subcollections.

    Each user's devices live under ``user_devices_path_template`` (for example
    ``users/{userId}/devices``). Token lookups go through a collection group
    query over every collection named ``devices_collection`` so duplicates held
    by other users are found and reconciled in the same transaction.
    """

    def __init__(
        self,
        client: AsyncClient,
        *,
        devices_collection: str | None = None,
        user_devices_path_template: str | None = None,
    ) -> None:
        settings = get_settings()
        self.client = client
        self.devices_collection = devices_collection or settings.devices_collection
        self.user_devices_path_template = user_devices_path_template or settings.user_devices_path_template

    @property
    def _devices(self) -> AsyncQuery:
        return self.client.collection_group(self.devices_collection)

    def _user_devices_path(self, user_id: str) -> str:
        return self.user_devices_path_template.replace("{userId}", user_id)

    def _user_devices(self, user_id: str) -> AsyncCollectionReference:
        return self.client.collection(self._user_devices_path(user_id))

    def _token_query(self, devices: AsyncQuery, notification_token: str) -> AsyncQuery:
        return devices.where(filter=FieldFilter(TOKEN_FIELD, "==", notification_token))

    async def _run_transaction(self, callback: TransactionCallback[T]) -> T:
        devices = self._devices

        @async_transactional
        async def _unit_of_work(transaction: AsyncTransaction):
            return await callback(devices, transaction)

        return await _unit_of_work(self.client.transaction())

    async def store_device(self, user_id: str, device: Device) -> None:
        user_devices = self._user_devices(user_id)
        user_prefix = f"{self._user_devices_path(user_id)}/"

        async def reconcile(devices: AsyncQuery, transaction: AsyncTransaction) -> None:
            query = self._token_query(devices, device.notification_token)
            matches = [snapshot async for snapshot in query.stream(transaction=transaction)]

            kept = None
            deleted = 0
            for snapshot in matches:
                if _stored_platform(snapshot) != device.platform:
                    continue
                if kept is None and snapshot.reference.path.startswith(user_prefix):
                    transaction.set(snapshot.reference, device.encode())
                    kept = snapshot.reference
                else:
                    transaction.delete(snapshot.reference)
                    deleted += 1

            if kept is None:
                kept = user_devices.document()
                transaction.set(kept, device.encode())

            logger.info(
                "Stored device %s for user %s platform=%s (removed %d duplicate(s)).",
                kept.id,
                user_id,
                device.platform,
                deleted,
            )

        await self._run_transaction(reconcile)

    async def remove_device(self, user_id: str, notification_token: str, platform: DevicePlatform | str) -> None:
        # Unregistering is token-authoritative: user_id does not scope the delete.
        wanted_platform = normalize_platform(platform)

        async def remove(devices: AsyncQuery, transaction: AsyncTransaction) -> None:
            query = self._token_query(devices, notification_token)
            removed = 0
            async for snapshot in query.stream(transaction=transaction):
                if _stored_platform(snapshot) != wanted_platform:
                    continue
                transaction.delete(snapshot.reference)
                removed += 1
            logger.info(
                "Unregistered %d device(s) platform=%s on request of user %s.",
                removed,
                wanted_platform,
                user_id,
            )

        await self._run_transaction(remove)

    async def get_user_devices(self, user_id: str) -> list[Document[Device]]:
        return [_to_document(snapshot) async for snapshot in self._user_devices(user_id).stream()]

    async def remove_invalid_token(self, notification_token: str) -> None:
        async def purge(devices: AsyncQuery, transaction: AsyncTransaction) -> None:
            query = self._token_query(devices, notification_token)
            removed = 0
            async for snapshot in query.stream(transaction=transaction):
                transaction.delete(snapshot.reference)
                removed += 1
            if removed:
                logger.info("Removed %d registration(s) of an invalid FCM token.", removed)

        await self._run_transaction(purge)

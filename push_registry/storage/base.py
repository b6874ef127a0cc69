from abc import ABC, abstractmethod

from push_registry.models.device import Device, DevicePlatform
from push_registry.models.document import Document


class DeviceStorage(ABC):
    """Persistence for device registrations.

    Mutating operations reconcile the whole registry, not just the calling
    user's devices: a notification token identifies one app installation, so
    it can be owned by at most one user per platform.
    """

    @abstractmethod
    async def store_device(self, user_id: str, device: Device) -> None:
        """Register ``device`` for ``user_id`` and drop every other registration of its token on that platform."""

    @abstractmethod
    async def remove_device(self, user_id: str, notification_token: str, platform: DevicePlatform | str) -> None:
        """Delete all registrations of the token on ``platform``, whichever user owns them."""

    @abstractmethod
    async def get_user_devices(self, user_id: str) -> list[Document[Device]]:
        """Return the registrations stored under ``user_id`` only."""

    @abstractmethod
    async def remove_invalid_token(self, notification_token: str) -> None:
        """Delete all registrations of the token on any platform for any user."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import firebase_admin
from firebase_admin import messaging

from push_registry.core.config import get_settings
from push_registry.models.device import Device, DevicePlatform
from push_registry.models.document import Document
from push_registry.models.message import Message
from push_registry.storage.base import DeviceStorage

logger = logging.getLogger(__name__)

TOKEN_NOT_REGISTERED_CODE = "messaging/registration-token-not-registered"

_FALLBACK_LANGUAGE = "en"
_FALLBACK_TITLE = "Message"


def _localized(texts: Mapping[str, str], language: str, fallback: str) -> str:
    # Empty translations are kept; only missing ones fall back.
    for key in (language, _FALLBACK_LANGUAGE):
        text = texts.get(key)
        if text is not None:
            return text
    return fallback


def _is_unregistered_token_error(exc: Exception | None) -> bool:
    if exc is None:
        return False
    if isinstance(exc, messaging.UnregisteredError):
        return True
    return getattr(exc, "code", None) == TOKEN_NOT_REGISTERED_CODE


def build_device_message(device: Device, title: str, body: str, data: Mapping[str, str] | None) -> messaging.Message:
    payload = dict(data or {})
    android = None
    apns = None
    if device.has_platform(DevicePlatform.ANDROID):
        android = messaging.AndroidConfig(
            notification=messaging.AndroidNotification(title=title, body=body),
            data=payload,
        )
    elif device.has_platform(DevicePlatform.IOS):
        # Custom data sits next to "aps" in the APNs payload, not inside it;
        # a custom "aps" key never replaces the alert.
        custom_data = {key: value for key, value in payload.items() if key != "aps"}
        apns = messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(alert=messaging.ApsAlert(title=title, body=body)),
                **custom_data,
            ),
        )
    return messaging.Message(
        token=device.notification_token,
        notification=messaging.Notification(title=title, body=body),
        data=payload,
        android=android,
        apns=apns,
    )


@dataclass
class SendReport:
    sent: int = 0
    failed: int = 0
    removed_tokens: list[str] = field(default_factory=list)


class FirebaseMessagingClient:
    """Runs the blocking ``send_each`` batch call off the event loop."""

    def __init__(self, app: firebase_admin.App | None = None) -> None:
        self.app = app

    async def send_each(self, messages: Sequence[messaging.Message]) -> messaging.BatchResponse:
        return await asyncio.to_thread(messaging.send_each, list(messages), app=self.app)


class NotificationService(ABC):
    @abstractmethod
    async def register_device(self, user_id: str, device: Device) -> None: ...

    @abstractmethod
    async def unregister_device(self, user_id: str, notification_token: str, platform: DevicePlatform | str) -> None: ...

    @abstractmethod
    async def list_devices(self, user_id: str) -> list[Document[Device]]: ...

    @abstractmethod
    async def send_notification(
        self,
        user_id: str,
        title: Mapping[str, str],
        body: Mapping[str, str],
        data: Mapping[str, str] | None = None,
        *,
        language: str | None = None,
    ) -> SendReport: ...

    @abstractmethod
    async def send_message_notification(
        self,
        user_id: str,
        message: Document[Message],
        *,
        language: str | None = None,
    ) -> SendReport: ...


class FirebaseNotificationService(NotificationService):
    def __init__(
        self,
        messaging_client: FirebaseMessagingClient,
        device_storage: DeviceStorage,
        *,
        default_language: str | None = None,
    ) -> None:
        self.messaging_client = messaging_client
        self.device_storage = device_storage
        self.default_language = default_language or get_settings().default_notification_language

    async def register_device(self, user_id: str, device: Device) -> None:
        await self.device_storage.store_device(user_id, device)

    async def unregister_device(self, user_id: str, notification_token: str, platform: DevicePlatform | str) -> None:
        await self.device_storage.remove_device(user_id, notification_token, platform)

    async def list_devices(self, user_id: str) -> list[Document[Device]]:
        return await self.device_storage.get_user_devices(user_id)

    async def send_notification(
        self,
        user_id: str,
        title: Mapping[str, str],
        body: Mapping[str, str],
        data: Mapping[str, str] | None = None,
        *,
        language: str | None = None,
    ) -> SendReport:
        report = SendReport()
        devices = await self.device_storage.get_user_devices(user_id)
        if not devices:
            logger.info("No registered devices for user %s, notification skipped.", user_id)
            return report

        targets: list[Device] = []
        messages: list[messaging.Message] = []
        for document in devices:
            device = document.content
            if not device.notification_token:
                continue
            preferred = device.language or language or self.default_language or _FALLBACK_LANGUAGE
            messages.append(
                build_device_message(
                    device,
                    title=_localized(title, preferred, _FALLBACK_TITLE),
                    body=_localized(body, preferred, ""),
                    data=data,
                )
            )
            targets.append(device)

        if not messages:
            return report

        batch = await self.messaging_client.send_each(messages)

        stale_tokens: list[str] = []
        for device, response in zip(targets, batch.responses):
            if response.success:
                report.sent += 1
                continue

            report.failed += 1
            logger.warning(
                "FCM send failed for user %s platform=%s: %s",
                user_id,
                device.platform,
                response.exception,
            )
            if _is_unregistered_token_error(response.exception):
                stale_tokens.append(device.notification_token)

        for token in dict.fromkeys(stale_tokens):
            await self.device_storage.remove_invalid_token(token)
            report.removed_tokens.append(token)

        logger.info(
            "Notification for user %s delivered to %d of %d device(s).",
            user_id,
            report.sent,
            len(messages),
        )
        return report

    async def send_message_notification(
        self,
        user_id: str,
        message: Document[Message],
        *,
        language: str | None = None,
    ) -> SendReport:
        content = message.content
        title = content.title.as_mapping()
        body = content.description.as_mapping() if content.description else {}

        data = {
            "messageId": message.id,
            "messageType": content.type.value,
            "isDismissible": "true" if content.is_dismissible else "false",
        }
        if content.action:
            data["action"] = content.action
        if content.reference:
            data["reference"] = content.reference
        if content.data:
            data.update(content.data)

        return await self.send_notification(user_id, title, body, data, language=language)

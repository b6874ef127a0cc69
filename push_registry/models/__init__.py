from push_registry.models.device import Device, DevicePlatform, normalize_platform
from push_registry.models.document import Document
from push_registry.models.localized_text import LocalizedText
from push_registry.models.message import Message, MessageType

__all__ = [
    "Device",
    "DevicePlatform",
    "normalize_platform",
    "Document",
    "LocalizedText",
    "Message",
    "MessageType",
]

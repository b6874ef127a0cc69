from enum import Enum
from typing import Any

from pydantic import Field, field_validator, model_validator

from push_registry.models.common import FirestoreModel


class DevicePlatform(str, Enum):
    """Well-known platforms. Any other non-empty string is accepted as well."""

    ANDROID = "Android"
    IOS = "iOS"
    WEB = "Web"
    MACOS = "macOS"
    WINDOWS = "Windows"
    LINUX = "Linux"


_PLATFORMS_BY_LOWER = {platform.value.lower(): platform.value for platform in DevicePlatform}


def normalize_platform(value: DevicePlatform | str) -> str:
    """Return the canonical string form of a platform.

    Enum members and case-insensitive matches of a known platform collapse to
    the enum value (``"ios"`` -> ``"iOS"``); unknown platforms are only stripped.
    """
    if isinstance(value, DevicePlatform):
        return value.value
    text = str(value).strip()
    return _PLATFORMS_BY_LOWER.get(text.lower(), text)


class Device(FirestoreModel):
    notification_token: str = Field(..., min_length=1)
    platform: str = Field(..., min_length=1)
    os_version: str | None = None
    app_version: str | None = None
    app_build: str | None = None
    language: str | None = None
    time_zone: str | None = None

    @field_validator("platform", mode="before")
    @classmethod
    def _canonical_platform(cls, value: Any) -> Any:
        if isinstance(value, (str, DevicePlatform)):
            return normalize_platform(value)
        return value

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def has_platform(self, platform: DevicePlatform | str) -> bool:
        return self.platform == normalize_platform(platform)

    def encode(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def decode(cls, data: dict[str, Any] | None) -> "Device":
        return cls.model_validate(data or {})

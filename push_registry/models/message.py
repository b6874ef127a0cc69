from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BeforeValidator

from push_registry.models.common import FirestoreModel, utcnow
from push_registry.models.localized_text import LocalizedText


class MessageType(str, Enum):
    INFORMATION = "Information"
    ALERT = "Alert"
    REMINDER = "Reminder"
    ACTION = "Action"
    SYSTEM = "System"


def _parse_timestamp(value: Any) -> Any:
    # Firestore timestamps may come back as plain {"seconds", "nanoseconds"} maps.
    if isinstance(value, dict) and "seconds" in value:
        seconds = value["seconds"] + value.get("nanoseconds", 0) / 1_000_000_000
        return datetime.fromtimestamp(seconds, UTC)
    return value


def encode_timestamp(value: datetime) -> dict[str, int]:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    seconds = int(value.timestamp())
    return {"seconds": seconds, "nanoseconds": value.microsecond * 1000}


Timestamp = Annotated[datetime, BeforeValidator(_parse_timestamp)]


class Message(FirestoreModel):
    creation_date: Timestamp
    due_date: Timestamp | None = None
    completion_date: Timestamp | None = None
    type: MessageType
    title: LocalizedText
    description: LocalizedText | None = None
    action: str | None = None
    is_dismissible: bool
    reference: str | None = None
    data: dict[str, str] | None = None

    def encode(self) -> dict[str, Any]:
        encoded: dict[str, Any] = {
            "creationDate": encode_timestamp(self.creation_date),
            "type": self.type.value,
            "title": self.title.root,
            "action": self.action,
            "isDismissible": self.is_dismissible,
            "reference": self.reference,
            "data": self.data,
        }
        if self.due_date is not None:
            encoded["dueDate"] = encode_timestamp(self.due_date)
        if self.completion_date is not None:
            encoded["completionDate"] = encode_timestamp(self.completion_date)
        if self.description is not None:
            encoded["description"] = self.description.root
        return encoded

    @classmethod
    def decode(cls, data: dict[str, Any]) -> "Message":
        return cls.model_validate(data)

    @classmethod
    def _create(
        cls,
        message_type: MessageType,
        *,
        title: str | dict[str, str],
        description: str | dict[str, str] | None,
        is_dismissible: bool,
        creation_date: datetime | None,
        **fields: Any,
    ) -> "Message":
        return cls(
            creation_date=creation_date or utcnow(),
            type=message_type,
            title=LocalizedText(title),
            description=LocalizedText(description) if description else None,
            is_dismissible=is_dismissible,
            **fields,
        )

    @classmethod
    def create_information(
        cls,
        title: str | dict[str, str],
        description: str | dict[str, str] | None = None,
        action: str | None = None,
        is_dismissible: bool = True,
        reference: str | None = None,
        data: dict[str, str] | None = None,
        creation_date: datetime | None = None,
    ) -> "Message":
        return cls._create(
            MessageType.INFORMATION,
            title=title,
            description=description,
            is_dismissible=is_dismissible,
            creation_date=creation_date,
            action=action,
            reference=reference,
            data=data,
        )

    @classmethod
    def create_alert(
        cls,
        title: str | dict[str, str],
        description: str | dict[str, str] | None = None,
        action: str | None = None,
        is_dismissible: bool = True,
        reference: str | None = None,
        data: dict[str, str] | None = None,
        creation_date: datetime | None = None,
    ) -> "Message":
        return cls._create(
            MessageType.ALERT,
            title=title,
            description=description,
            is_dismissible=is_dismissible,
            creation_date=creation_date,
            action=action,
            reference=reference,
            data=data,
        )

    @classmethod
    def create_reminder(
        cls,
        title: str | dict[str, str],
        description: str | dict[str, str] | None = None,
        action: str | None = None,
        due_date: datetime | None = None,
        is_dismissible: bool = False,
        reference: str | None = None,
        data: dict[str, str] | None = None,
        creation_date: datetime | None = None,
    ) -> "Message":
        return cls._create(
            MessageType.REMINDER,
            title=title,
            description=description,
            is_dismissible=is_dismissible,
            creation_date=creation_date,
            action=action,
            due_date=due_date,
            reference=reference,
            data=data,
        )

    @classmethod
    def create_action(
        cls,
        title: str | dict[str, str],
        action: str,
        description: str | dict[str, str] | None = None,
        is_dismissible: bool = False,
        reference: str | None = None,
        data: dict[str, str] | None = None,
        creation_date: datetime | None = None,
    ) -> "Message":
        return cls._create(
            MessageType.ACTION,
            title=title,
            description=description,
            is_dismissible=is_dismissible,
            creation_date=creation_date,
            action=action,
            reference=reference,
            data=data,
        )

import asyncio

from firebase_admin import messaging

from push_registry.models.device import Device, DevicePlatform
from push_registry.models.document import Document
from push_registry.models.message import Message
from push_registry.services.push import FirebaseNotificationService, _localized, build_device_message
from tests.fakes import FakeMessagingClient

TITLE = {"en": "New results", "de": "Neue Ergebnisse"}
BODY = {"en": "Your lab results are ready.", "de": "Ihre Laborwerte sind da."}


class _CodedError(Exception):
    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def _register(service, user_id: str, token: str, platform, **fields) -> None:
    device = Device(notification_token=token, platform=platform, **fields)
    asyncio.run(service.register_device(user_id, device))


def test_localized_fallbacks():
    assert _localized(TITLE, "de", "Message") == "Neue Ergebnisse"
    assert _localized(TITLE, "fr", "Message") == "New results"
    assert _localized({"fr": "Bonjour"}, "es", "Message") == "Message"
    assert _localized({}, "en", "") == ""


def test_android_message_duplicates_notification_and_data():
    device = Device(notification_token="tok-a", platform=DevicePlatform.ANDROID)

    message = build_device_message(device, "Title", "Body", {"kind": "lab"})

    assert message.token == "tok-a"
    assert message.notification.title == "Title"
    assert message.data == {"kind": "lab"}
    assert message.android.notification.title == "Title"
    assert message.android.notification.body == "Body"
    assert message.android.data == {"kind": "lab"}
    assert message.apns is None


def test_ios_message_keeps_custom_data_beside_aps():
    device = Device(notification_token="tok-i", platform="ios")

    message = build_device_message(device, "Title", "Body", {"kind": "lab"})

    payload = message.apns.payload
    assert payload.aps.alert.title == "Title"
    assert payload.aps.alert.body == "Body"
    assert payload.custom_data == {"kind": "lab"}
    assert message.android is None


def test_other_platforms_get_no_override_block():
    device = Device(notification_token="tok-w", platform=DevicePlatform.WEB)

    message = build_device_message(device, "Title", "Body", None)

    assert message.data == {}
    assert message.android is None
    assert message.apns is None


def test_send_notification_localizes_per_device(notification_service, messaging_client):
    _register(notification_service, "alice", "tok-de", DevicePlatform.IOS, language="de")
    _register(notification_service, "alice", "tok-en", DevicePlatform.ANDROID)
    _register(notification_service, "bob", "tok-bob", DevicePlatform.ANDROID)

    report = asyncio.run(notification_service.send_notification("alice", TITLE, BODY, {"kind": "lab"}))

    assert report.sent == 2 and report.failed == 0
    sent = {message.token: message for message in messaging_client.batches[0]}
    assert set(sent) == {"tok-de", "tok-en"}
    assert sent["tok-de"].notification.title == "Neue Ergebnisse"
    assert sent["tok-en"].notification.body == "Your lab results are ready."


def test_send_notification_uses_requested_language_then_placeholder(notification_service, messaging_client):
    _register(notification_service, "alice", "tok1", DevicePlatform.ANDROID)

    asyncio.run(notification_service.send_notification("alice", {"de": "Hallo"}, {"de": "Text"}, language="de"))
    asyncio.run(notification_service.send_notification("alice", {"de": "Hallo"}, {"de": "Text"}))

    first, second = messaging_client.batches
    assert first[0].notification.title == "Hallo"
    assert second[0].notification.title == "Message"
    assert second[0].notification.body == ""


def test_send_notification_without_devices_sends_nothing(notification_service, messaging_client):
    report = asyncio.run(notification_service.send_notification("nobody", TITLE, BODY))

    assert report.sent == 0
    assert messaging_client.batches == []


def test_unregistered_token_is_removed_after_send(device_storage, firestore_client):
    client = FakeMessagingClient(failures={"tok-dead": messaging.UnregisteredError("Requested entity was not found.")})
    service = FirebaseNotificationService(client, device_storage)
    _register(service, "alice", "tok-live", DevicePlatform.IOS)
    _register(service, "alice", "tok-dead", DevicePlatform.ANDROID)

    removed: list[str] = []
    remove_invalid_token = device_storage.remove_invalid_token

    async def record(token: str) -> None:
        removed.append(token)
        await remove_invalid_token(token)

    device_storage.remove_invalid_token = record

    report = asyncio.run(service.send_notification("alice", TITLE, BODY))

    assert report.sent == 1 and report.failed == 1
    assert removed == ["tok-dead"]
    assert report.removed_tokens == ["tok-dead"]
    assert firestore_client.paths_with_token("tok-dead") == []
    assert len(firestore_client.paths_with_token("tok-live")) == 1


def test_other_send_failures_keep_the_token(device_storage, firestore_client):
    client = FakeMessagingClient(
        failures={
            "tok-busy": _CodedError("messaging/server-unavailable"),
            "tok-gone": _CodedError("messaging/registration-token-not-registered"),
        }
    )
    service = FirebaseNotificationService(client, device_storage)
    _register(service, "alice", "tok-busy", DevicePlatform.ANDROID)
    _register(service, "alice", "tok-gone", DevicePlatform.ANDROID)

    report = asyncio.run(service.send_notification("alice", TITLE, BODY))

    assert report.failed == 2
    assert report.removed_tokens == ["tok-gone"]
    assert len(firestore_client.paths_with_token("tok-busy")) == 1


def test_send_message_notification_builds_data(notification_service, messaging_client):
    _register(notification_service, "alice", "tok1", DevicePlatform.ANDROID)
    message = Message.create_action(
        title="Questionnaire",
        description={"en": "Please fill it in", "de": "Bitte ausfüllen"},
        action="questionnaires/1",
        reference="users/alice/messages/m1",
        data={"priority": "high"},
    )
    document = Document[Message](id="m1", path="users/alice/messages/m1", last_update=message.creation_date, content=message)

    asyncio.run(notification_service.send_message_notification("alice", document))

    sent = messaging_client.batches[0][0]
    assert sent.notification.title == "Questionnaire"
    assert sent.notification.body == "Please fill it in"
    assert sent.data == {
        "messageId": "m1",
        "messageType": "Action",
        "isDismissible": "false",
        "action": "questionnaires/1",
        "reference": "users/alice/messages/m1",
        "priority": "high",
    }


def test_custom_aps_key_does_not_break_the_batch(notification_service, messaging_client):
    _register(notification_service, "alice", "tok-ios", DevicePlatform.IOS)
    _register(notification_service, "alice", "tok-android", DevicePlatform.ANDROID)

    report = asyncio.run(notification_service.send_notification("alice", {"en": "T"}, {"en": "B"}, {"aps": "x"}))

    assert report.sent == 2
    sent = {message.token: message for message in messaging_client.batches[0]}
    ios_payload = sent["tok-ios"].apns.payload
    assert ios_payload.aps.alert.title == "T"
    assert ios_payload.custom_data == {}
    assert sent["tok-ios"].data == {"aps": "x"}
    assert sent["tok-android"].android.data == {"aps": "x"}


def test_empty_translation_is_not_replaced(notification_service, messaging_client):
    _register(notification_service, "alice", "tok-de", DevicePlatform.ANDROID, language="de")

    asyncio.run(notification_service.send_notification("alice", {"de": "Titel", "en": "Title"}, {"de": "", "en": "Body"}))

    sent = messaging_client.batches[0][0]
    assert sent.notification.title == "Titel"
    assert sent.notification.body == ""
    assert _localized({"de": ""}, "de", "Message") == ""

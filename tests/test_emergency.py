import json

import arrow
import httpx
import pytest

from senior_core.emergency.alerts import (
    UNKNOWN_LOCATION,
    EmergencyAlertService,
    build_sms_message,
    display_emergency_type,
    log_emergency_alert,
)
from senior_core.emergency.sms import SemaphoreClient, SmsDeliveryError, normalize_phone
from senior_core.entities.emergency import AlertLocation
from senior_core.entities.user import EmergencyContact, User
from senior_core.repositories.emergency import EmergencyAlertRepository

TZ = "Asia/Manila"
STAMP = int(arrow.get("2025-03-10T14:05:00+08:00").timestamp() * 1000)


def semaphore(handler, **kwargs) -> SemaphoreClient:
    return SemaphoreClient("key", transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.parametrize("raw, expected", [
    ("0917 123 4567", "+639171234567"),
    ("9171234567", "+639171234567"),
    ("+63-917-123-4567", "+639171234567"),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


async def test_semaphore_send_posts_payload():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json=[{"message_id": 12345, "status": "Pending"}])

    message_id = await semaphore(handler, sender_name="SENIORHUB").send("09171234567", "Help")

    assert message_id == "12345"
    assert seen == {"apikey": "key", "number": "+639171234567", "message": "Help", "sendername": "SENIORHUB"}


async def test_semaphore_test_mode_skips_gateway():
    def handler(request):
        raise AssertionError("gateway must not be called")

    assert await semaphore(handler, test_mode=True).send("0917", "Help") == "test-mode"


async def test_semaphore_error_message_from_body():
    def handler(request):
        return httpx.Response(401, json={"message": "Invalid API key"})

    with pytest.raises(SmsDeliveryError) as exc:
        await semaphore(handler).send("0917", "Help")
    assert exc.value.message == "Invalid API key"


async def test_semaphore_unexpected_reply():
    def handler(request):
        return httpx.Response(200, json={"status": "ok"})

    with pytest.raises(SmsDeliveryError, match="Invalid response from Semaphore API"):
        await semaphore(handler).send("0917", "Help")


async def test_semaphore_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SmsDeliveryError, match="connection refused"):
        await semaphore(handler).send("0917", "Help")


def test_display_emergency_type():
    assert display_emergency_type("SOS Button") == "SOS Button"
    assert display_emergency_type("Emergency Service Call: SPMC") == "Southern Philippines Medical Center (SPMC)"
    assert display_emergency_type("Fall", "Central 911") == "Central 911"
    assert display_emergency_type("Fall") == "Fall"


def test_sms_message_with_coordinates():
    location = AlertLocation(latitude=7.07, longitude=125.61)

    message = build_sms_message("SOS Button", "Lola Nena", location, timestamp_ms=STAMP, tz=TZ)

    assert message.splitlines() == [
        "🚨 SOS ALERT 🚨",
        "Emergency Alert: Lola Nena may need immediate help. Please Try To Reach her/him.",
        "",
        "📍 Location: Lat: 7.07, Lng: 125.61",
        "🩺 Emergency Type: SOS Button",
        "⏰ Timestamp: Mar 10, 2025 at 2:05 PM",
        "",
        "🗺️ Click this Google Maps link for exact location:",
        "https://maps.google.com/?q=7.07,125.61",
    ]
    assert message.endswith("\n")


def test_sms_message_without_coordinates():
    message = build_sms_message("SOS Button", "Lola Nena", None, timestamp_ms=STAMP, tz=TZ)

    assert f"📍 Location: {UNKNOWN_LOCATION}" in message
    assert "maps.google.com" not in message


def test_log_emergency_alert(caplog):
    with caplog.at_level("INFO", logger="senior_core.emergency.alerts"):
        entry = log_emergency_alert({"seniorName": "Lola Nena", "emergencyType": "SOS Button"}, "m-1")

    assert entry["type"] == "EMERGENCY_ALERT"
    assert entry["data"]["smsMessageId"] == "m-1"
    assert "EMERGENCY_ALERT_LOG" in caplog.text


def senior() -> User:
    return User(
        id="s1",
        first_name="Nena",
        last_name="Reyes",
        barangay="Bajada",
        emergency_contacts=[EmergencyContact(name="Carlo", phone_number="09181234567")],
    )


def alert_service(datastore, handler) -> EmergencyAlertService:
    return EmergencyAlertService(
        EmergencyAlertRepository(datastore), "http://proxy.test/", timezone=TZ, transport=httpx.MockTransport(handler)
    )


async def test_sos_alert_is_sent_and_recorded(datastore):
    posted = {}

    def handler(request):
        assert request.url == "http://proxy.test/send-emergency-sms"
        posted.update(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "messageId": "m-42"})

    alert = await alert_service(datastore, handler).send_emergency_alert(
        senior(), "SOS Button", AlertLocation(latitude=7.07, longitude=125.61)
    )

    assert posted["emergencyContactPhone"] == "09181234567"
    assert posted["emergencyContactName"] == "Carlo"
    assert posted["seniorName"] == "Nena Reyes"
    assert posted["serviceName"] == "SOS Emergency"
    assert posted["location"]["address"] == "Bajada, Davao City, Davao Del Sur, 8000"
    assert alert.id
    assert alert.sms_sent
    assert alert.message_id == "m-42"
    stored = datastore.get_document("emergency_alerts", alert.id)
    assert stored["type"] == "SOS"
    assert stored["severity"] == "HIGH"
    assert stored["status"] == "ACTIVE"


async def test_service_call_alert(datastore):
    posted = {}

    def handler(request):
        posted.update(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "messageId": "m-7"})

    alert = await alert_service(datastore, handler).send_emergency_service_alert(
        senior(), "Central 911 Davao", "911", phone="09190000000"
    )

    assert posted["emergencyType"] == "Emergency Service Call: Central 911 Davao"
    assert posted["servicePhone"] == "911"
    assert posted["emergencyContactPhone"] == "09190000000"
    assert posted["location"] is None
    assert alert.type == "SERVICE_CALL"


async def test_failed_sms_is_recorded_then_raised(datastore):
    def handler(request):
        return httpx.Response(500, json={"success": False, "error": "Gateway down"})

    with pytest.raises(SmsDeliveryError, match="Gateway down"):
        await alert_service(datastore, handler).send_emergency_alert(senior(), "SOS Button")

    [stored] = datastore.list_documents("emergency_alerts")
    assert stored["smsSent"] is False


async def test_alert_without_contact_phone(datastore):
    def handler(request):
        raise AssertionError("proxy must not be called")

    with pytest.raises(ValueError, match="No emergency contact phone number available"):
        await alert_service(datastore, handler).send_emergency_alert(User(id="s1"), "SOS Button")


async def test_anonymous_alert_is_not_recorded(datastore):
    def handler(request):
        return httpx.Response(200, json={"success": True, "messageId": "m-1"})

    alert = await alert_service(datastore, handler).send_emergency_alert(None, "SOS Button", phone="0917")

    assert alert.senior_name == "Senior User"
    assert alert.id == ""
    assert datastore.list_documents("emergency_alerts") == []

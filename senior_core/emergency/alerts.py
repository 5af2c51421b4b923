"""
'emergency/alerts.py': SOS and emergency-service alerts.

An alert is turned into an SMS for the senior's emergency contact, forwarded to the SMS
proxy (`POST /send-emergency-sms`) and recorded in `emergency_alerts`.
"""
import json
import logging
from typing import Any, Dict, Optional

import arrow
import httpx

from .sms import SMS_TIMEOUT, SmsDeliveryError
from ..entities.emergency import AlertLocation, AlertSeverity, EmergencyAlert
from ..entities.user import User
from ..repositories.emergency import EmergencyAlertRepository
from ..utils import DEFAULT_TIMEZONE, format_timestamp, now_ms

logger = logging.getLogger(__name__)

SMS_TIMESTAMP_FORMAT = "MMM DD, YYYY [at] h:mm A"
UNKNOWN_LOCATION = "Current Location of the Senior User"
DEFAULT_SENIOR_NAME = "Senior User"
DEFAULT_CONTACT_NAME = "Emergency Contact"
DEFAULT_SERVICE_NAME = "SOS Emergency"
NO_CONTACT_PHONE = "No emergency contact phone number available"

# First substring match of the emergency type wins.
EMERGENCY_TYPE_DISPLAY = (
    ("SOS", "SOS Button"),
    ("Davao Doctors", "Davao Doctors Hospital"),
    ("SPMC", "Southern Philippines Medical Center (SPMC)"),
    ("DCPO", "Davao City Police Office (DCPO)"),
    ("Fire Station", "Davao City Central Fire Station"),
    ("Emergency Response", "Central 911 Davao"),
    ("Ambulance", "Davao City Ambulance Service"),
)


def display_emergency_type(emergency_type: str, service_name: Optional[str] = None) -> str:
    if service_name:
        return service_name
    for needle, display in EMERGENCY_TYPE_DISPLAY:
        if needle in emergency_type:
            return display
    return emergency_type


def build_sms_message(
        emergency_type: str,
        senior_name: str,
        location: Optional[AlertLocation] = None,
        service_name: Optional[str] = None,
        timestamp_ms: Optional[int] = None,
        tz: str = DEFAULT_TIMEZONE,
) -> str:
    has_coordinates = location is not None and location.latitude is not None and location.longitude is not None
    location_text = f"Lat: {location.latitude}, Lng: {location.longitude}" if has_coordinates else UNKNOWN_LOCATION
    timestamp = format_timestamp(timestamp_ms or now_ms(), SMS_TIMESTAMP_FORMAT, "", tz)

    lines = [
        "🚨 SOS ALERT 🚨",
        f"Emergency Alert: {senior_name} may need immediate help. Please Try To Reach her/him.",
        "",
        f"📍 Location: {location_text}",
        f"🩺 Emergency Type: {display_emergency_type(emergency_type, service_name)}",
        f"⏰ Timestamp: {timestamp}",
    ]
    if has_coordinates:
        lines += ["", "🗺️ Click this Google Maps link for exact location:", location.maps_link()]
    return "\n".join(lines) + "\n"


def log_emergency_alert(alert_data: Dict[str, Any], message_id: str) -> Dict[str, Any]:
    """Emit the `EMERGENCY_ALERT_LOG` audit entry for a delivered alert."""
    entry = {
        "timestamp": arrow.utcnow().isoformat(),
        "type": "EMERGENCY_ALERT",
        "data": {
            "seniorName": alert_data.get("seniorName"),
            "emergencyType": alert_data.get("emergencyType"),
            "emergencyContactPhone": alert_data.get("emergencyContactPhone"),
            "emergencyContactName": alert_data.get("emergencyContactName"),
            "location": alert_data.get("location"),
            "serviceName": alert_data.get("serviceName"),
            "servicePhone": alert_data.get("servicePhone"),
            "timestamp": alert_data.get("timestamp"),
            "smsMessageId": message_id,
        },
    }
    logger.info("EMERGENCY_ALERT_LOG: %s", json.dumps(entry, indent=2, default=str, ensure_ascii=False))
    return entry


class EmergencyAlertService:
    """Sends SOS alerts through the SMS proxy and keeps a record of each one."""

    def __init__(
            self,
            alerts: EmergencyAlertRepository,
            proxy_url: str,
            timezone: str = DEFAULT_TIMEZONE,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.alerts = alerts
        self.proxy_url = proxy_url.rstrip("/")
        self.timezone = timezone
        self.transport = transport

    async def send_emergency_alert(
            self,
            user: Optional[User],
            emergency_type: str,
            location: Optional[AlertLocation] = None,
            phone: Optional[str] = None,
            senior_name: str = "",
    ) -> EmergencyAlert:
        """
        Alert the senior's emergency contact.

        Args:
            user (User): The senior raising the alert, if known.
            emergency_type (str): What happened, e.g. "SOS Button".
            location (AlertLocation): Where the senior is, when a fix is available.
            phone (str): Contact number overriding the primary emergency contact.
            senior_name (str): Name overriding the profile name.

        Returns:
            EmergencyAlert: The recorded alert.

        Raises:
            ValueError: If no contact phone number is available.
            SmsDeliveryError: If the proxy could not deliver the SMS.
        """
        return await self._dispatch(user, emergency_type, location, phone, senior_name, alert_type="SOS")

    async def send_emergency_service_alert(
            self,
            user: Optional[User],
            service_name: str,
            service_phone: str,
            location: Optional[AlertLocation] = None,
            phone: Optional[str] = None,
            senior_name: str = "",
    ) -> EmergencyAlert:
        """Alert the emergency contact that the senior is calling an emergency service."""
        return await self._dispatch(
            user,
            f"Emergency Service Call: {service_name}",
            location,
            phone,
            senior_name,
            alert_type="SERVICE_CALL",
            service_name=service_name,
            service_phone=service_phone,
        )

    def build_alert_data(
            self,
            user: Optional[User],
            emergency_type: str,
            senior_name: str,
            contact_phone: str,
            location: Optional[AlertLocation] = None,
            service_name: Optional[str] = None,
            service_phone: Optional[str] = None,
            timestamp_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Payload forwarded to the SMS proxy."""
        stamp = timestamp_ms or now_ms()
        contact = user.primary_emergency_contact() if user else None
        location_data = None
        if location is not None:
            address = user.formatted_address() if user else ""
            location_data = {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "address": location.address or address or "Address not available",
            }
        return {
            "seniorId": user.id if user else "",
            "seniorName": senior_name,
            "emergencyType": emergency_type,
            "timestamp": stamp,
            "emergencyContactPhone": contact_phone,
            "emergencyContactName": contact.name if contact and contact.name else DEFAULT_CONTACT_NAME,
            "location": location_data,
            "serviceName": service_name or DEFAULT_SERVICE_NAME,
            "servicePhone": service_phone or "N/A",
            "smsMessage": build_sms_message(
                emergency_type, senior_name, location, service_name, stamp, self.timezone
            ),
            "createdAt": stamp,
            "status": "pending",
            "smsSent": False,
        }

    async def _dispatch(
            self,
            user: Optional[User],
            emergency_type: str,
            location: Optional[AlertLocation],
            phone: Optional[str],
            senior_name: str,
            alert_type: str,
            service_name: Optional[str] = None,
            service_phone: Optional[str] = None,
    ) -> EmergencyAlert:
        contact = user.primary_emergency_contact() if user else None
        contact_phone = phone or (contact.phone_number if contact else "")
        name = senior_name or (user.full_name() if user else "") or DEFAULT_SENIOR_NAME

        if not contact_phone:
            logger.warning(f"[send_emergency_alert] {NO_CONTACT_PHONE}")
            raise ValueError(NO_CONTACT_PHONE)

        alert_data = self.build_alert_data(
            user, emergency_type, name, contact_phone, location, service_name, service_phone
        )

        error = None
        message_id = ""
        try:
            message_id = await self._post(alert_data)
        except SmsDeliveryError as e:
            error = e

        alert = EmergencyAlert(
            user_id=alert_data["seniorId"],
            senior_id=alert_data["seniorId"],
            senior_name=name,
            type=alert_type,
            emergency_type=emergency_type,
            severity=AlertSeverity.HIGH.value,
            description=display_emergency_type(emergency_type, service_name),
            location=location,
            triggered_by="user",
            emergency_contact_name=alert_data["emergencyContactName"],
            emergency_contact_phone=contact_phone,
            service_name=alert_data["serviceName"],
            service_phone=alert_data["servicePhone"],
            sms_message=alert_data["smsMessage"],
            sms_sent=error is None,
            message_id=message_id,
            timestamp=alert_data["timestamp"],
        )
        # Anonymous alerts are delivered but not recorded
        if alert.user_id:
            alert = self.alerts.add_alert(alert)

        if error is not None:
            logger.error(f"[send_emergency_alert] SMS for alert {alert.id} failed: {error.message}")
            raise error
        logger.info(f"[send_emergency_alert] Alert {alert.id} delivered to {contact_phone} <{message_id}>")
        return alert

    async def _post(self, alert_data: Dict[str, Any]) -> str:
        url = f"{self.proxy_url}/send-emergency-sms"
        try:
            async with httpx.AsyncClient(timeout=SMS_TIMEOUT, transport=self.transport) as client:
                response = await client.post(url, json=alert_data)
                body = response.json()
        except httpx.RequestError as req_err:
            raise SmsDeliveryError(str(req_err) or "Network error", cause=req_err)
        except ValueError as parse_err:
            raise SmsDeliveryError("Unknown API error", cause=parse_err)

        if not isinstance(body, dict):
            raise SmsDeliveryError("Unknown API error")
        if response.status_code == 200 and body.get("success"):
            return str(body.get("messageId") or "")
        raise SmsDeliveryError(str(body.get("error") or "Unknown API error"))


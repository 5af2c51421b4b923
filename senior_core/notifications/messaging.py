"""
'notifications/messaging.py': maps Cloud Messaging payloads to notifications and sends pushes
through `firebase_admin.messaging`.
"""
import logging
from typing import Dict, List, Optional

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging
from pydantic import BaseModel, Field

from ..datastore.base import BaseDatastore
from ..datastore.exceptions import DatastoreError, DocumentNotFoundError
from ..datastore.firestore.constants import FCM_TOKENS_COLLECTION

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "seniorhub_notifications"
EMERGENCY_CHANNEL = "emergency_notifications"
REMINDER_CHANNEL = "reminder_channel"

EMERGENCY_TITLES = {
    "emergency": "🚨 Emergency Alert",
    "sos": "🚨 SOS Emergency",
}


class NotificationContent(BaseModel):
    """What the device shows for one message."""
    title: str
    body: str
    channel_id: str = DEFAULT_CHANNEL
    icon: str = "ic_notification"
    emergency: bool = False
    data: Dict[str, str] = Field(default_factory=dict)


def emergency_body(message: str, senior_name: str, location: str = "") -> str:
    lines = ["🚨 EMERGENCY ALERT 🚨", "", f"Senior: {senior_name}", "", message]
    if location:
        lines += ["", f"Location: {location}"]
    lines += ["", "Tap to open SeniorHub app"]
    return "\n".join(lines)


def map_remote_message(
        data: Optional[Dict[str, str]] = None,
        notification: Optional[Dict[str, Optional[str]]] = None,
) -> List[NotificationContent]:
    """
    Turn an incoming message into the notifications to display.

    A data payload and a notification payload each produce one notification, data first.
    """
    shown = []
    if data:
        message_type = data.get("type", "")
        message = data.get("message") or "Emergency alert"
        if message_type in EMERGENCY_TITLES:
            shown.append(NotificationContent(
                title=EMERGENCY_TITLES[message_type],
                body=emergency_body(message, data.get("seniorName") or "Unknown", data.get("location", "")),
                channel_id=EMERGENCY_CHANNEL,
                emergency=True,
                data=dict(data),
            ))
        else:
            shown.append(NotificationContent(title="SeniorHub Notification", body=message, data=dict(data)))
    if notification:
        shown.append(NotificationContent(
            title=notification.get("title") or "SeniorHub",
            body=notification.get("body") or "You have a new notification",
        ))
    return shown


class MessagingService:
    def __init__(self, datastore: BaseDatastore, app=None, dry_run: bool = False):
        self.datastore = datastore
        self._app = app
        self.dry_run = dry_run

    def register_token(self, user_id: str, token: str) -> None:
        """Store a device token under `fcm_tokens/<uid>`."""
        if not user_id.strip() or not token.strip():
            raise ValueError("User ID and token are required")
        tokens = self.get_tokens(user_id)
        if token not in tokens:
            tokens.append(token)
        self.datastore.set_document(FCM_TOKENS_COLLECTION, user_id, {"userId": user_id, "tokens": tokens}, merge=True)
        logger.info(f"[register_token] Registered device token for {user_id} ({len(tokens)} total)")

    def get_tokens(self, user_id: str) -> List[str]:
        try:
            doc = self.datastore.get_document(FCM_TOKENS_COLLECTION, user_id)
        except DocumentNotFoundError:
            return []
        return list(doc.get("tokens") or [])

    def send(self, token: str, content: NotificationContent) -> str:
        """
        Send one notification to a device.

        Returns:
            str: The message ID assigned by Cloud Messaging.

        Raises:
            DatastoreError: If Cloud Messaging rejects the message.
        """
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=content.title, body=content.body),
            data=content.data or None,
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(channel_id=content.channel_id, icon=content.icon),
            ),
        )
        try:
            return messaging.send(message, dry_run=self.dry_run, app=self._app)
        except firebase_exceptions.FirebaseError as e:
            logger.error(f"[send] Cloud Messaging error: {e}")
            raise DatastoreError("Failed to send push notification", cause=e)

    def send_to_user(self, user_id: str, content: NotificationContent) -> int:
        """Send to every registered device of the user. Returns how many sends succeeded."""
        sent = 0
        for token in self.get_tokens(user_id):
            try:
                self.send(token, content)
                sent += 1
            except DatastoreError as e:
                logger.warning(f"[send_to_user] Delivery to one device of {user_id} failed: {e}")
        return sent

    def send_emergency_alert(self, user_id: str, senior_name: str, message: str, location: str = "") -> int:
        content = NotificationContent(
            title=EMERGENCY_TITLES["emergency"],
            body=emergency_body(message, senior_name, location),
            channel_id=EMERGENCY_CHANNEL,
            emergency=True,
            data={"type": "emergency", "seniorName": senior_name, "message": message, "location": location},
        )
        return self.send_to_user(user_id, content)

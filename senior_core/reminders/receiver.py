"""
'reminders/receiver.py': ReminderReceiver reacts to fired reminders and to the snooze and
done actions of a reminder notification.
"""
import logging
from typing import Dict, Optional

from ..datastore.exceptions import DatastoreError
from ..datastore.firestore.constants import REMINDERS_COLLECTION
from ..entities.reminder import Reminder, ReminderAction, ReminderStatus
from ..notifications.messaging import REMINDER_CHANNEL, MessagingService, NotificationContent
from ..utils import now_ms
from .scheduler import ReminderScheduler, is_repeating

logger = logging.getLogger(__name__)

CATEGORY_ICONS = {
    "medication": "ic_medication",
    "appointment": "ic_calendar",
    "health": "ic_heart",
}
DEFAULT_ICON = "ic_reminder"


def build_notification(reminder: Reminder, overrides: Optional[Dict[str, str]] = None) -> NotificationContent:
    overrides = overrides or {}
    category = overrides.get("type") or reminder.notification_category()
    return NotificationContent(
        title=overrides.get("title") or reminder.title or "Reminder",
        body=overrides.get("message", reminder.body()),
        channel_id=REMINDER_CHANNEL,
        icon=CATEGORY_ICONS.get(category, DEFAULT_ICON),
        data={"reminderId": reminder.id, "type": category},
    )


class ReminderReceiver:
    def __init__(self, scheduler: ReminderScheduler, messaging: Optional[MessagingService] = None):
        self.scheduler = scheduler
        self.datastore = scheduler.datastore
        self.messaging = messaging
        scheduler.trigger_handler = self.on_trigger

    def on_trigger(self, reminder: Reminder, overrides: Optional[Dict[str, str]] = None) -> NotificationContent:
        """Build the notification for a fired reminder, push it and record the trigger."""
        notification = build_notification(reminder, overrides)
        if self.messaging is not None and reminder.user_id:
            self.messaging.send_to_user(reminder.user_id, notification)

        stamp = now_ms()
        updated = reminder.with_history(ReminderAction.TRIGGERED).model_copy(update={
            "last_triggered": stamp,
            "trigger_count": reminder.trigger_count + 1,
            "reminder_status": ReminderStatus.ACTIVE,
        })
        self._save(updated, "on_trigger")
        logger.info(f"[on_trigger] Reminder {reminder.id} fired for {reminder.user_id}")
        return notification

    def snooze(self, reminder_id: str, now: Optional[int] = None) -> int:
        """
        Re-fire the reminder after its snooze interval.

        Returns:
            int: When the snoozed reminder fires, epoch milliseconds.

        Raises:
            ValueError: When the reminder has used all its snoozes.
        """
        reminder = self.scheduler.get_reminder(reminder_id)
        if not reminder.can_snooze():
            raise ValueError(f"Reminder can only be snoozed {reminder.max_snoozes} times")

        now = now_ms() if now is None else now
        fire_at = now + reminder.snooze_interval_ms()
        self.scheduler.schedule_once(reminder_id, fire_at, {
            "title": "Snoozed Reminder",
            "message": f"This reminder was snoozed for {reminder.snooze_interval} minutes",
            "type": "general",
        })
        updated = reminder.with_history(ReminderAction.SNOOZED).model_copy(update={
            "snooze_count": reminder.snooze_count + 1,
            "reminder_status": ReminderStatus.SNOOZED,
            "next_reminder_time": fire_at,
        })
        self._save(updated, "snooze")
        return fire_at

    def complete(self, reminder_id: str) -> Reminder:
        """Mark the reminder done. One-shot reminders are also unscheduled and deactivated."""
        reminder = self.scheduler.get_reminder(reminder_id)
        changes = {
            "is_completed": True,
            "completed_at": now_ms(),
            "reminder_status": ReminderStatus.COMPLETED,
            "snooze_count": 0,
        }
        if is_repeating(reminder):
            self.scheduler.remove_jobs(reminder_id, snooze_only=True)
        else:
            self.scheduler.remove_jobs(reminder_id)
            changes["is_active"] = False
        updated = reminder.with_history(ReminderAction.COMPLETED).model_copy(update=changes)
        self._save(updated, "complete")
        return updated

    def _save(self, reminder: Reminder, operation: str) -> None:
        try:
            self.datastore.set_document(REMINDERS_COLLECTION, reminder.id, reminder.to_map())
        except DatastoreError as e:
            logger.error(f"[{operation}] Failed to save reminder {reminder.id}: {e}")

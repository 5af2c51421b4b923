"""
'reminders/scheduler.py': ReminderScheduler turns reminders into APScheduler jobs and keeps the
`reminders` collection in step so jobs can be restored after a restart.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import arrow
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from ..datastore.base import BaseDatastore
from ..datastore.exceptions import DatastoreError, DocumentNotFoundError
from ..datastore.firestore.constants import REMINDERS_COLLECTION
from ..entities.reminder import RecurrencePattern, Reminder, ReminderStatus
from ..utils import DAY_MS, DEFAULT_TIMEZONE, now_ms

logger = logging.getLogger(__name__)

# Approximate repeat periods in days
PERIOD_DAYS = {
    RecurrencePattern.DAILY: 1,
    RecurrencePattern.WEEKLY: 7,
    RecurrencePattern.MONTHLY: 30,
    RecurrencePattern.YEARLY: 365,
    RecurrencePattern.CUSTOM: 1,
}

SNOOZE_SUFFIX = ":snooze"

TriggerHandler = Callable[[Reminder, Optional[Dict[str, str]]], Any]


def sunday_weekday(moment: arrow.Arrow) -> int:
    """Day of week with 0 = Sunday."""
    return moment.isoweekday() % 7


def next_weekday_time(scheduled_ms: int, recurrence_days: List[int], tz: str = DEFAULT_TIMEZONE) -> int:
    """The first time on or after `scheduled_ms` that falls on one of `recurrence_days` (0 = Sunday)."""
    moment = arrow.get(scheduled_ms / 1000).to(tz)
    current = sunday_weekday(moment)
    days = sorted(set(d % 7 for d in recurrence_days))
    target = next((d for d in days if d >= current), days[0])
    return scheduled_ms + ((target - current) % 7) * DAY_MS


def is_repeating(reminder: Reminder) -> bool:
    return reminder.is_recurring and reminder.recurrence_pattern in PERIOD_DAYS


def uses_weekdays(reminder: Reminder) -> bool:
    return (
        reminder.is_recurring
        and reminder.recurrence_pattern == RecurrencePattern.WEEKLY
        and bool(reminder.recurrence_days)
    )


def next_occurrence(reminder: Reminder, now: int, tz: str = DEFAULT_TIMEZONE) -> int:
    """
    Next fire time strictly after `now` for a repeating reminder, keeping its time of day.
    Weekday-bound weekly reminders step a day at a time until a listed weekday is reached.
    """
    step = DAY_MS if uses_weekdays(reminder) else PERIOD_DAYS[reminder.recurrence_pattern] * DAY_MS
    fire_at = reminder.scheduled_time
    if fire_at <= now:
        fire_at += ((now - fire_at) // step + 1) * step
    if uses_weekdays(reminder):
        fire_at = next_weekday_time(fire_at, reminder.recurrence_days, tz)
    return fire_at


def plan_trigger(reminder: Reminder, tz: str = DEFAULT_TIMEZONE) -> Tuple[str, Dict[str, Any]]:
    """
    APScheduler trigger name and arguments for a reminder.

    DAILY and CUSTOM repeat every day, WEEKLY every 7 days, MONTHLY every 30 and YEARLY every 365.
    WEEKLY with `recurrence_days` fires once on the next listed weekday; the scheduler
    plans the following weekday after each run. Everything else fires once.
    """
    start = arrow.get(reminder.scheduled_time / 1000).to(tz).datetime
    if uses_weekdays(reminder):
        run_at = next_weekday_time(reminder.scheduled_time, reminder.recurrence_days, tz)
        return "date", {"run_date": arrow.get(run_at / 1000).to(tz).datetime}
    if is_repeating(reminder):
        return "interval", {"days": PERIOD_DAYS[reminder.recurrence_pattern], "start_date": start}
    return "date", {"run_date": start}


class ReminderScheduler:
    def __init__(
            self,
            datastore: BaseDatastore,
            scheduler: Optional[BackgroundScheduler] = None,
            timezone: str = DEFAULT_TIMEZONE,
            misfire_grace_time: int = 300,
    ):
        self.datastore = datastore
        self.timezone = timezone
        self.misfire_grace_time = misfire_grace_time
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone)
        self.trigger_handler: Optional[TriggerHandler] = None

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("[start] Reminder scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("[shutdown] Reminder scheduler stopped")

    def schedule(self, reminder: Reminder, now: Optional[int] = None, persist: bool = True) -> bool:
        """
        Register the job for a reminder and persist it.

        Returns:
            bool: False when the reminder time has already passed and nothing was scheduled.
        """
        if not reminder.id.strip():
            raise ValueError("Reminder ID cannot be empty")
        now = now_ms() if now is None else now
        if reminder.scheduled_time <= now:
            logger.warning(f"[schedule] Reminder {reminder.id} is in the past, not scheduling")
            return False

        trigger, trigger_args = plan_trigger(reminder, self.timezone)
        self.scheduler.add_job(
            self._fire,
            trigger,
            id=reminder.id,
            args=[reminder.id],
            replace_existing=True,
            misfire_grace_time=self.misfire_grace_time,
            **trigger_args,
        )
        logger.info(f"[schedule] Scheduled reminder {reminder.id} ({trigger}, {reminder.recurrence_pattern.value})")

        if persist:
            try:
                self.datastore.set_document(
                    REMINDERS_COLLECTION, reminder.id, {**reminder.to_map(), **reminder.schedule_document()},
                )
            except DatastoreError as e:
                logger.error(f"[schedule] Reminder {reminder.id} scheduled but not persisted: {e}")
        return True

    def schedule_once(self, reminder_id: str, run_at_ms: int, overrides: Dict[str, str]) -> None:
        """One-shot job for an existing reminder, shown with `overrides` for title and message."""
        self.scheduler.add_job(
            self._fire,
            "date",
            id=f"{reminder_id}{SNOOZE_SUFFIX}",
            args=[reminder_id, overrides],
            replace_existing=True,
            misfire_grace_time=self.misfire_grace_time,
            run_date=arrow.get(run_at_ms / 1000).to(self.timezone).datetime,
        )

    def remove_jobs(self, reminder_id: str, snooze_only: bool = False) -> None:
        job_ids = [f"{reminder_id}{SNOOZE_SUFFIX}"] if snooze_only else [reminder_id, f"{reminder_id}{SNOOZE_SUFFIX}"]
        for job_id in job_ids:
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                logger.debug(f"[remove_jobs] No job {job_id}")

    def cancel(self, reminder_id: str) -> None:
        """Remove the reminder's jobs and its persisted document."""
        self.remove_jobs(reminder_id)
        self.datastore.delete_document(REMINDERS_COLLECTION, reminder_id)
        logger.info(f"[cancel] Cancelled reminder {reminder_id}")

    def update(self, reminder: Reminder, now: Optional[int] = None) -> bool:
        self.cancel(reminder.id)
        return self.schedule(reminder, now=now)

    def get_reminder(self, reminder_id: str, user_id: Optional[str] = None) -> Reminder:
        """
        Load a persisted reminder.

        Raises:
            DocumentNotFoundError: If it does not exist, or belongs to someone other than `user_id`.
        """
        reminder = Reminder.from_map(self.datastore.get_document(REMINDERS_COLLECTION, reminder_id))
        if user_id is not None and reminder.user_id != user_id:
            raise DocumentNotFoundError(REMINDERS_COLLECTION, reminder_id)
        return reminder

    def list_reminders(self, user_id: str) -> List[Reminder]:
        docs = self.datastore.list_documents(REMINDERS_COLLECTION, where=[("userId", "==", user_id)])
        reminders = [Reminder.from_map(doc) for doc in docs]
        reminders.sort(key=lambda r: r.scheduled_time)
        return reminders

    def restore(self, user_id: Optional[str] = None, now: Optional[int] = None) -> int:
        """
        Reschedule persisted active reminders after a restart. Repeating reminders move to
        their next occurrence, future one-shots keep their time, expired one-shots are deactivated.

        Returns:
            int: Number of reminders scheduled.
        """
        now = now_ms() if now is None else now
        where = [("isActive", "==", True)]
        if user_id:
            where.append(("userId", "==", user_id))

        restored = 0
        for doc in self.datastore.list_documents(REMINDERS_COLLECTION, where=where):
            reminder = Reminder.from_map(doc)
            if is_repeating(reminder):
                fire_at = next_occurrence(reminder, now, self.timezone)
                reminder = reminder.model_copy(update={"scheduled_time": fire_at})
                restored += self.schedule(reminder, now=now, persist=fire_at != doc.get("scheduledTime"))
            elif reminder.scheduled_time > now:
                restored += self.schedule(reminder, now=now, persist=False)
            else:
                self.datastore.update_document(REMINDERS_COLLECTION, reminder.id, {
                    "isActive": False,
                    "reminderStatus": ReminderStatus.EXPIRED.value,
                })
                logger.info(f"[restore] Reminder {reminder.id} expired while offline")
        logger.info(f"[restore] Restored {restored} reminders")
        return restored

    def _fire(self, reminder_id: str, overrides: Optional[Dict[str, str]] = None) -> None:
        try:
            reminder = self.get_reminder(reminder_id)
        except DocumentNotFoundError:
            logger.warning(f"[_fire] Reminder {reminder_id} no longer exists")
            self.remove_jobs(reminder_id)
            return

        if self.trigger_handler is not None:
            self.trigger_handler(reminder, overrides)
            # The handler records the trigger on the stored document
            try:
                reminder = self.get_reminder(reminder_id)
            except DocumentNotFoundError:
                return

        if overrides is None and uses_weekdays(reminder):
            following = next_occurrence(reminder, max(now_ms(), reminder.scheduled_time), self.timezone)
            self.schedule(reminder.model_copy(update={"scheduled_time": following}), persist=True)

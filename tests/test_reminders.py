from unittest.mock import MagicMock

import arrow
import pytest
from apscheduler.jobstores.base import JobLookupError

from senior_core.datastore.exceptions import DocumentNotFoundError
from senior_core.entities.reminder import RecurrencePattern, Reminder, ReminderStatus, ReminderType
from senior_core.reminders.receiver import ReminderReceiver, build_notification
from senior_core.reminders.scheduler import (
    SNOOZE_SUFFIX,
    next_occurrence,
    next_weekday_time,
    plan_trigger,
)
from senior_core.utils import DAY_MS

TZ = "Asia/Manila"
# Monday 2025-03-10 08:00 Manila
MONDAY = int(arrow.get("2025-03-10T08:00:00+08:00").timestamp() * 1000)
NOW = MONDAY - 60 * 60 * 1000


def make_reminder(**kwargs) -> Reminder:
    defaults = dict(id="r1", user_id="u1", title="Take medicine", message="Metformin 500mg", scheduled_time=MONDAY)
    defaults.update(kwargs)
    return Reminder(**defaults)


def test_plan_one_shot():
    trigger, args = plan_trigger(make_reminder(), TZ)

    assert trigger == "date"
    assert args["run_date"] == arrow.get(MONDAY / 1000).to(TZ).datetime


def test_plan_daily_interval():
    trigger, args = plan_trigger(make_reminder(is_recurring=True, recurrence_pattern=RecurrencePattern.DAILY), TZ)

    assert trigger == "interval"
    assert args["days"] == 1


def test_plan_weekly_on_listed_weekday():
    # 3 = Wednesday
    reminder = make_reminder(is_recurring=True, recurrence_pattern=RecurrencePattern.WEEKLY, recurrence_days=[3])

    trigger, args = plan_trigger(reminder, TZ)

    assert trigger == "date"
    assert args["run_date"] == arrow.get((MONDAY + 2 * DAY_MS) / 1000).to(TZ).datetime


def test_next_weekday_wraps_to_next_week():
    # 0 = Sunday
    assert next_weekday_time(MONDAY, [0], TZ) == MONDAY + 6 * DAY_MS
    assert next_weekday_time(MONDAY, [1, 5], TZ) == MONDAY


def test_next_occurrence_keeps_time_of_day():
    reminder = make_reminder(is_recurring=True, recurrence_pattern=RecurrencePattern.DAILY)

    assert next_occurrence(reminder, MONDAY + 3 * DAY_MS + 1, TZ) == MONDAY + 4 * DAY_MS


def test_schedule_registers_job_and_persists(reminder_scheduler, job_scheduler, datastore):
    reminder = make_reminder()

    assert reminder_scheduler.schedule(reminder, now=NOW)

    args, kwargs = job_scheduler.add_job.call_args
    assert args == (reminder_scheduler._fire, "date")
    assert kwargs["id"] == "r1"
    assert kwargs["args"] == ["r1"]
    assert kwargs["replace_existing"] is True
    assert kwargs["misfire_grace_time"] == 300
    stored = datastore.get_document("reminders", "r1")
    assert stored["userId"] == "u1"
    assert stored["scheduledTime"] == MONDAY


def test_schedule_in_the_past_is_skipped(reminder_scheduler, job_scheduler):
    assert not reminder_scheduler.schedule(make_reminder(), now=MONDAY + 1)
    job_scheduler.add_job.assert_not_called()


def test_schedule_requires_id(reminder_scheduler):
    with pytest.raises(ValueError):
        reminder_scheduler.schedule(make_reminder(id=""), now=NOW)


def test_cancel_removes_jobs_and_document(reminder_scheduler, job_scheduler, datastore):
    reminder_scheduler.schedule(make_reminder(), now=NOW)
    job_scheduler.remove_job.side_effect = [None, JobLookupError("r1:snooze")]

    reminder_scheduler.cancel("r1")

    assert [c.args[0] for c in job_scheduler.remove_job.call_args_list] == ["r1", f"r1{SNOOZE_SUFFIX}"]
    assert datastore.list_documents("reminders") == []


def test_list_reminders_by_user(reminder_scheduler):
    reminder_scheduler.schedule(make_reminder(id="r2", scheduled_time=MONDAY + DAY_MS), now=NOW)
    reminder_scheduler.schedule(make_reminder(id="r1"), now=NOW)
    reminder_scheduler.schedule(make_reminder(id="r3", user_id="u2"), now=NOW)

    assert [r.id for r in reminder_scheduler.list_reminders("u1")] == ["r1", "r2"]


def test_restore_after_restart(reminder_scheduler, job_scheduler, datastore):
    reminder_scheduler.schedule(make_reminder(id="future", scheduled_time=MONDAY + DAY_MS), now=NOW)
    reminder_scheduler.schedule(make_reminder(id="expired"), now=NOW)
    reminder_scheduler.schedule(
        make_reminder(id="daily", is_recurring=True, recurrence_pattern=RecurrencePattern.DAILY), now=NOW
    )
    job_scheduler.add_job.reset_mock()
    datastore.update_document("reminders", "expired", {"scheduledTime": NOW - DAY_MS})

    restored = reminder_scheduler.restore(now=MONDAY + DAY_MS // 2)

    assert restored == 2
    assert [c.kwargs["id"] for c in job_scheduler.add_job.call_args_list] == ["daily", "future"]
    assert datastore.get_document("reminders", "daily")["scheduledTime"] == MONDAY + DAY_MS
    expired = datastore.get_document("reminders", "expired")
    assert expired["isActive"] is False
    assert expired["reminderStatus"] == ReminderStatus.EXPIRED.value
    assert datastore.get_document("reminders", "future")["isActive"] is True


def test_fire_calls_handler(reminder_scheduler):
    reminder_scheduler.schedule(make_reminder(), now=NOW)
    handler = MagicMock()
    reminder_scheduler.trigger_handler = handler

    reminder_scheduler._fire("r1")

    fired, overrides = handler.call_args.args
    assert fired.id == "r1"
    assert overrides is None


def test_fire_missing_reminder_drops_jobs(reminder_scheduler, job_scheduler):
    handler = MagicMock()
    reminder_scheduler.trigger_handler = handler

    reminder_scheduler._fire("gone")

    handler.assert_not_called()
    assert job_scheduler.remove_job.call_args_list[0].args[0] == "gone"


def test_build_notification_icons():
    medication = build_notification(make_reminder(type=ReminderType.MEDICATION))
    walking = build_notification(make_reminder(type=ReminderType.WALKING, title=""))

    assert medication.icon == "ic_medication"
    assert medication.body == "Metformin 500mg"
    assert medication.data == {"reminderId": "r1", "type": "medication"}
    assert walking.icon == "ic_reminder"
    assert walking.title == "Reminder"


def test_trigger_records_history(reminder_scheduler, datastore):
    reminder_scheduler.schedule(make_reminder(), now=NOW)
    messaging = MagicMock()
    ReminderReceiver(reminder_scheduler, messaging)

    reminder_scheduler._fire("r1")

    messaging.send_to_user.assert_called_once()
    stored = reminder_scheduler.get_reminder("r1")
    assert stored.trigger_count == 1
    assert stored.reminder_history[-1].action.value == "TRIGGERED"


def test_weekday_reminder_keeps_trigger_history(reminder_scheduler, job_scheduler):
    reminder = make_reminder(
        is_recurring=True, recurrence_pattern=RecurrencePattern.WEEKLY, recurrence_days=[0, 1, 2, 3, 4, 5, 6],
    )
    reminder_scheduler.schedule(reminder, now=NOW)
    ReminderReceiver(reminder_scheduler, MagicMock())

    reminder_scheduler._fire("r1")

    stored = reminder_scheduler.get_reminder("r1")
    assert stored.trigger_count == 1
    assert stored.last_triggered > 0
    assert [h.action.value for h in stored.reminder_history] == ["TRIGGERED"]
    assert stored.scheduled_time > MONDAY
    assert job_scheduler.add_job.call_count == 2


def test_get_reminder_scoped_to_owner(reminder_scheduler):
    reminder_scheduler.schedule(make_reminder(), now=NOW)

    assert reminder_scheduler.get_reminder("r1", "u1").id == "r1"
    with pytest.raises(DocumentNotFoundError):
        reminder_scheduler.get_reminder("r1", "u2")


def test_snooze_schedules_one_shot(reminder_scheduler, job_scheduler):
    reminder_scheduler.schedule(make_reminder(snooze_interval=10), now=NOW)
    receiver = ReminderReceiver(reminder_scheduler)

    fire_at = receiver.snooze("r1", now=MONDAY)

    assert fire_at == MONDAY + 10 * 60 * 1000
    kwargs = job_scheduler.add_job.call_args.kwargs
    assert kwargs["id"] == f"r1{SNOOZE_SUFFIX}"
    assert kwargs["args"][1]["title"] == "Snoozed Reminder"
    stored = reminder_scheduler.get_reminder("r1")
    assert stored.snooze_count == 1
    assert stored.reminder_status is ReminderStatus.SNOOZED


def test_snooze_limit(reminder_scheduler):
    reminder_scheduler.schedule(make_reminder(snooze_count=3, max_snoozes=3), now=NOW)

    with pytest.raises(ValueError):
        ReminderReceiver(reminder_scheduler).snooze("r1", now=MONDAY)


def test_complete_one_shot_deactivates(reminder_scheduler, job_scheduler):
    reminder_scheduler.schedule(make_reminder(), now=NOW)

    completed = ReminderReceiver(reminder_scheduler).complete("r1")

    assert completed.is_completed
    assert not completed.is_active
    assert {c.args[0] for c in job_scheduler.remove_job.call_args_list} == {"r1", f"r1{SNOOZE_SUFFIX}"}


def test_complete_recurring_keeps_schedule(reminder_scheduler, job_scheduler):
    reminder_scheduler.schedule(
        make_reminder(is_recurring=True, recurrence_pattern=RecurrencePattern.DAILY), now=NOW
    )

    completed = ReminderReceiver(reminder_scheduler).complete("r1")

    assert completed.is_active
    assert [c.args[0] for c in job_scheduler.remove_job.call_args_list] == [f"r1{SNOOZE_SUFFIX}"]

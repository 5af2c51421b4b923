"""senior_core/entities/appointment.py"""
import sys
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import Entity
from ..utils import DEFAULT_TIMEZONE, days_between, format_timestamp, now_ms

DATE_FORMAT = "MMM DD, YYYY"
TIME_FORMAT = "h:mm A"
NOT_SCHEDULED = "Not scheduled"


class AppointmentType(str, Enum):
    CHECKUP = "checkup"
    SPECIALIST = "specialist"
    EMERGENCY = "emergency"
    FOLLOW_UP = "follow_up"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"


STATUS_COLORS = {
    AppointmentStatus.CONFIRMED.value: "green",
    AppointmentStatus.COMPLETED.value: "gray",
    AppointmentStatus.CANCELLED.value: "orange",
    AppointmentStatus.MISSED.value: "red",
}


class Appointment(Entity):
    """A medical appointment of a senior. `date_time` is epoch milliseconds, 0 when unset."""
    id: str = ""
    user_id: str = ""
    title: str = ""
    description: str = ""
    appointment_type: str = ""
    status: str = AppointmentStatus.SCHEDULED.value

    doctor_name: str = ""
    doctor_specialty: str = ""
    facility_name: str = ""
    facility_address: str = ""
    facility_phone: str = ""
    doctor_notes: str = ""

    date_time: int = 0
    duration: int = 30
    time_zone: str = ""
    is_recurring: bool = False
    recurring_pattern: str = ""
    recurring_end_date: Optional[datetime] = None

    room_number: str = ""
    department: str = ""
    parking_info: str = ""
    special_instructions: str = ""
    preparation_notes: str = ""

    insurance_required: bool = True
    copay_amount: float = 0.0
    authorization_number: str = ""
    referral_required: bool = False

    reminder_enabled: bool = True
    reminder_time: List[int] = Field(default_factory=lambda: [1440, 60], description="Minutes before the appointment")
    notification_sent: bool = False
    confirmation_required: bool = False
    confirmed: bool = False
    confirmation_deadline: Optional[datetime] = None

    transportation_needed: bool = False
    transportation_type: str = ""
    transportation_booked: bool = False
    transportation_notes: str = ""

    follow_up_required: bool = False
    follow_up_date: Optional[datetime] = None
    results_pending: bool = False
    results_received: bool = False
    results_summary: str = ""

    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_active: bool = True
    is_synced: bool = False

    def formatted_date(self, tz: str = DEFAULT_TIMEZONE) -> str:
        return format_timestamp(self.date_time, DATE_FORMAT, NOT_SCHEDULED, tz)

    def formatted_time(self, tz: str = DEFAULT_TIMEZONE) -> str:
        return format_timestamp(self.date_time, TIME_FORMAT, NOT_SCHEDULED, tz)

    def formatted_date_time(self, tz: str = DEFAULT_TIMEZONE) -> str:
        if not self.date_time:
            return NOT_SCHEDULED
        return f"{self.formatted_date(tz)} at {self.formatted_time(tz)}"

    def is_upcoming(self, now: Optional[int] = None) -> bool:
        now = now_ms() if now is None else now
        return self.date_time > now and self.status == AppointmentStatus.SCHEDULED.value

    def is_missed(self, now: Optional[int] = None) -> bool:
        now = now_ms() if now is None else now
        return self.date_time < now and self.status == AppointmentStatus.SCHEDULED.value

    def days_until(self, now: Optional[int] = None, tz: str = DEFAULT_TIMEZONE) -> int:
        """Calendar days until the appointment, negative when past, `sys.maxsize` when unscheduled."""
        if not self.date_time:
            return sys.maxsize
        now = now_ms() if now is None else now
        return days_between(now, self.date_time, tz)

    def status_color(self, now: Optional[int] = None) -> str:
        status = self.status.lower()
        if status == AppointmentStatus.SCHEDULED.value:
            return "blue" if self.is_upcoming(now) else "red"
        return STATUS_COLORS.get(status, "gray")

    def priority(self, now: Optional[int] = None, tz: str = DEFAULT_TIMEZONE) -> str:
        """One of `urgent`, `high`, `medium`, `low`."""
        if self.appointment_type.lower() == AppointmentType.EMERGENCY.value or self.is_missed(now):
            return "urgent"
        days = self.days_until(now, tz)
        if days in (0, 1):
            return "high"
        if days <= 7:
            return "medium"
        return "low"

    def should_send_reminder(self, now: Optional[int] = None) -> bool:
        if not self.reminder_enabled or self.notification_sent:
            return False
        now = now_ms() if now is None else now
        return any(
            self.date_time - minutes * 60 * 1000 <= now < self.date_time
            for minutes in self.reminder_time
        )

    def summary(self, tz: str = DEFAULT_TIMEZONE) -> str:
        location = self.facility_name if self.facility_name.strip() else "Location TBD"
        doctor = f"with Dr. {self.doctor_name}" if self.doctor_name.strip() else ""
        headline = f"{self.title} {doctor}".strip()
        return f"{headline}\n{self.formatted_date_time(tz)}\n{location}"

    def validation_errors(self, now: Optional[int] = None) -> List[str]:
        now = now_ms() if now is None else now
        errors = []
        if not self.user_id.strip():
            errors.append("User ID is required")
        if not self.title.strip():
            errors.append("Appointment title is required")
        if not self.date_time:
            errors.append("Appointment date and time is required")
        if not self.doctor_name.strip():
            errors.append("Doctor name is required")
        if not self.facility_name.strip():
            errors.append("Facility name is required")
        if self.date_time < now and self.status == AppointmentStatus.SCHEDULED.value:
            errors.append("Cannot schedule appointment in the past")
        return errors

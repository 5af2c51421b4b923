"""senior_core/entities/reminder.py"""
from typing import Dict, List

from pydantic import Field

from .base import Entity, LenientEnum
from ..utils import now_ms

MINUTE_MS = 60 * 1000


class ReminderType(LenientEnum):
    MEDICATION = "MEDICATION"
    APPOINTMENT = "APPOINTMENT"
    BIRTHDAY = "BIRTHDAY"
    EXERCISE = "EXERCISE"
    MEAL = "MEAL"
    HYDRATION = "HYDRATION"
    BLOOD_PRESSURE_CHECK = "BLOOD_PRESSURE_CHECK"
    BLOOD_SUGAR_CHECK = "BLOOD_SUGAR_CHECK"
    WEIGHT_CHECK = "WEIGHT_CHECK"
    VITAMIN = "VITAMIN"
    DOCTOR_VISIT = "DOCTOR_VISIT"
    PHARMACY_PICKUP = "PHARMACY_PICKUP"
    BILL_PAYMENT = "BILL_PAYMENT"
    SOCIAL_ACTIVITY = "SOCIAL_ACTIVITY"
    FAMILY_CALL = "FAMILY_CALL"
    FRIEND_VISIT = "FRIEND_VISIT"
    RELIGIOUS_SERVICE = "RELIGIOUS_SERVICE"
    COMMUNITY_EVENT = "COMMUNITY_EVENT"
    BENEFIT_CLAIM = "BENEFIT_CLAIM"
    ID_RENEWAL = "ID_RENEWAL"
    VACCINATION = "VACCINATION"
    HEALTH_CHECKUP = "HEALTH_CHECKUP"
    EYE_EXAM = "EYE_EXAM"
    DENTAL_CHECKUP = "DENTAL_CHECKUP"
    HEARING_TEST = "HEARING_TEST"
    PHYSICAL_THERAPY = "PHYSICAL_THERAPY"
    OCCUPATIONAL_THERAPY = "OCCUPATIONAL_THERAPY"
    COUNSELING = "COUNSELING"
    SUPPORT_GROUP = "SUPPORT_GROUP"
    VOLUNTEER_WORK = "VOLUNTEER_WORK"
    HOBBY_TIME = "HOBBY_TIME"
    READING_TIME = "READING_TIME"
    GARDENING = "GARDENING"
    WALKING = "WALKING"
    OTHER = "OTHER"

    @classmethod
    def default(cls):
        return cls.OTHER


class ReminderPriority(LenientEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def default(cls):
        return cls.MEDIUM


class RecurrencePattern(LenientEnum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"

    @classmethod
    def default(cls):
        return cls.NONE


class ReminderStatus(LenientEnum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    SNOOZED = "SNOOZED"
    EXPIRED = "EXPIRED"
    DISABLED = "DISABLED"

    @classmethod
    def default(cls):
        return cls.ACTIVE


class ReminderMethod(LenientEnum):
    NOTIFICATION = "NOTIFICATION"
    SMS = "SMS"
    EMAIL = "EMAIL"
    PHONE_CALL = "PHONE_CALL"
    VOICE_MESSAGE = "VOICE_MESSAGE"
    PUSH_NOTIFICATION = "PUSH_NOTIFICATION"

    @classmethod
    def default(cls):
        return cls.NOTIFICATION


class ReminderAction(LenientEnum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    SNOOZED = "SNOOZED"
    TRIGGERED = "TRIGGERED"
    DISABLED = "DISABLED"
    ENABLED = "ENABLED"
    DELETED = "DELETED"


# Notification category of each reminder type; anything unlisted is "general"
TYPE_CATEGORIES = {
    ReminderType.MEDICATION: "medication",
    ReminderType.VITAMIN: "medication",
    ReminderType.PHARMACY_PICKUP: "medication",
    ReminderType.APPOINTMENT: "appointment",
    ReminderType.DOCTOR_VISIT: "appointment",
    ReminderType.BLOOD_PRESSURE_CHECK: "health",
    ReminderType.BLOOD_SUGAR_CHECK: "health",
    ReminderType.WEIGHT_CHECK: "health",
    ReminderType.HEALTH_CHECKUP: "health",
}


class ReminderHistory(Entity):
    id: str = ""
    reminder_id: str = ""
    action: ReminderAction = ReminderAction.CREATED
    timestamp: int = Field(default_factory=now_ms)
    notes: str = ""
    user_id: str = ""


class Reminder(Entity):
    """
    A scheduled reminder of a senior. All times are epoch milliseconds.
    `recurrence_days` holds weekdays with 0 = Sunday.
    """
    id: str = ""
    user_id: str = ""
    senior_user_name: str = ""
    title: str = ""
    description: str = ""
    message: str = ""
    type: ReminderType = ReminderType.MEDICATION
    priority: ReminderPriority = ReminderPriority.MEDIUM
    scheduled_time: int = Field(default_factory=now_ms)
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    recurrence_interval: int = 1
    recurrence_days: List[int] = Field(default_factory=list)
    is_alarm: bool = False
    is_active: bool = True
    is_completed: bool = False
    completed_at: int = 0
    snooze_count: int = 0
    max_snoozes: int = 3
    snooze_interval: int = Field(default=15, description="Minutes")
    next_reminder_time: int = 0
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    created_by: str = Field(default="user", description='"user", "family", "doctor" or "system"')
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    location: str = ""
    sound_enabled: bool = True
    vibration_enabled: bool = True
    voice_reminder: bool = False
    voice_message: str = ""
    reminder_data: Dict[str, str] = Field(default_factory=dict)
    medicine_name: str = ""
    medicine_frequency: str = ""
    doctor_name: str = ""
    person_name: str = ""
    relationship: str = ""
    exercise_activity: str = ""
    exercise_duration: str = ""
    reminder_status: ReminderStatus = ReminderStatus.ACTIVE
    last_triggered: int = 0
    trigger_count: int = 0
    is_enabled: bool = True
    notes: str = ""
    is_urgent: bool = False
    reminder_method: ReminderMethod = ReminderMethod.NOTIFICATION
    family_notification: bool = False
    family_members: List[str] = Field(default_factory=list)
    reminder_history: List[ReminderHistory] = Field(default_factory=list)

    def notification_category(self) -> str:
        return TYPE_CATEGORIES.get(self.type, "general")

    def body(self) -> str:
        return self.message or self.description

    def can_snooze(self) -> bool:
        return self.snooze_count < self.max_snoozes

    def snooze_interval_ms(self) -> int:
        return self.snooze_interval * MINUTE_MS

    def with_history(self, action: ReminderAction, notes: str = "") -> "Reminder":
        entry = ReminderHistory(
            id=f"{self.id}-{action.value.lower()}-{now_ms()}",
            reminder_id=self.id,
            action=action,
            notes=notes,
            user_id=self.user_id,
        )
        return self.model_copy(update={"reminder_history": [*self.reminder_history, entry], "updated_at": now_ms()})

    def schedule_document(self) -> Dict:
        """The persisted scheduling record of this reminder."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "message": self.body(),
            "scheduledTime": self.scheduled_time,
            "type": self.type.value,
            "isRecurring": self.is_recurring,
            "recurrencePattern": self.recurrence_pattern.value,
            "recurrenceDays": list(self.recurrence_days),
            "isAlarm": self.is_alarm,
            "isActive": self.is_active,
            "createdAt": self.created_at,
        }

"""senior_core/entities/user.py"""
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import Field, field_validator

from .base import Entity, LenientEnum
from ..utils import DEFAULT_TIMEZONE, to_arrow


class UserRole(LenientEnum):
    SENIOR_CITIZEN = "senior_citizen"
    FAMILY_MEMBER = "family_member"
    ADMIN = "admin"

    @classmethod
    def default(cls):
        return cls.SENIOR_CITIZEN


class ContactType(LenientEnum):
    FAMILY = "FAMILY"
    FRIEND = "FRIEND"
    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    CAREGIVER = "CAREGIVER"
    POLICE = "POLICE"
    HOSPITAL = "HOSPITAL"
    FIRE_DEPARTMENT = "FIRE_DEPARTMENT"
    SOCIAL_WELFARE = "SOCIAL_WELFARE"
    OTHER = "OTHER"

    @classmethod
    def default(cls):
        return cls.OTHER

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class ContactMethod(LenientEnum):
    PHONE = "PHONE"
    SMS = "SMS"
    EMAIL = "EMAIL"
    VIDEO_CALL = "VIDEO_CALL"

    @classmethod
    def default(cls):
        return cls.PHONE

    @property
    def display_name(self) -> str:
        return "SMS" if self is ContactMethod.SMS else self.value.replace("_", " ").title()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EmergencyContact(Entity):
    """Person to reach in an emergency. Priority 1 is the highest."""
    id: str = ""
    name: str = ""
    phone_number: str = ""
    relationship: str = ""
    is_primary: bool = True
    is_active: bool = True
    email: str = ""
    address: str = ""
    notes: str = ""
    contact_type: ContactType = ContactType.FAMILY
    priority: int = 1
    is_available24x7: bool = True
    preferred_contact_method: ContactMethod = ContactMethod.PHONE
    last_contacted: int = 0
    response_time: int = Field(default=0, description="Minutes")

    def full_contact_info(self) -> str:
        lines = [self.name + (f" ({self.relationship})" if self.relationship else ""), self.phone_number]
        if self.email:
            lines.append(self.email)
        if self.address:
            lines.append(self.address)
        return "\n".join(lines)

    def is_high_priority(self) -> bool:
        return self.priority <= 2


class Medication(Entity):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    dosage: str = ""
    frequency: str = ""
    time_of_day: List[str] = Field(default_factory=list, description='e.g. ["08:00", "20:00"]')
    instructions: str = ""
    prescribed_by: str = ""
    prescription_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    reminder_enabled: bool = True
    is_active: bool = True
    side_effects: List[str] = Field(default_factory=list)
    notes: str = ""

    def is_currently_active(self, now: Optional[datetime] = None) -> bool:
        now = now or _now()
        started = self.start_date is None or now > self.start_date
        not_ended = self.end_date is None or now < self.end_date
        return self.is_active and started and not_ended

    def summary(self) -> str:
        return f"{self.name} - {self.dosage} ({self.frequency})"

    def next_scheduled_time(self, now: Optional[datetime] = None, tz: str = DEFAULT_TIMEZONE) -> Optional[str]:
        """Earliest `HH:MM` slot later today, or None."""
        current = to_arrow(now or _now(), tz).format("HH:mm")
        upcoming = [slot for slot in self.time_of_day if slot > current]
        return min(upcoming) if upcoming else None


class User(Entity):
    """A SeniorHub account: senior citizen, family member or admin."""
    id: str = ""
    first_name: str = ""
    last_name: str = ""
    birth_date: Optional[datetime] = None
    gender: str = ""
    profile_image_url: str = ""
    username: str = ""
    age: int = 0
    phone_number: str = ""
    email: str = ""
    house_number_and_street: str = ""
    barangay: str = ""
    city: str = "Davao City"
    province: str = "Davao Del Sur"
    zip_code: str = "8000"
    marital_status: str = ""
    sss_number: str = ""
    gsis_number: str = ""
    osca_number: str = ""
    phil_health_number: str = ""
    emergency_contacts: List[EmergencyContact] = Field(default_factory=list)
    medications: List[Medication] = Field(default_factory=list)
    medical_conditions: List[str] = Field(default_factory=list)
    preferred_language: str = "en"
    text_size: float = 18.0
    high_contrast_mode: bool = False
    voice_assistance_enabled: bool = True
    notifications_enabled: bool = True
    large_buttons_enabled: bool = True
    offline_mode_enabled: bool = False
    created_at: Optional[datetime] = Field(default_factory=_now)
    updated_at: Optional[datetime] = Field(default_factory=_now)
    last_login: Optional[datetime] = Field(default_factory=_now)
    is_active: bool = True
    account_verified: bool = False
    is_email_verified: bool = False
    language: str = "en"
    is_verified: bool = False
    medical_history: str = ""
    role: UserRole = UserRole.SENIOR_CITIZEN
    last_updated_by: str = Field(default="user", description='"user" or "admin"')

    @field_validator("medical_conditions", mode="before")
    @classmethod
    def _split_conditions(cls, value):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def computed_age(self, today: Optional[date] = None) -> Optional[int]:
        if self.birth_date is None:
            return None
        today = today or date.today()
        born = self.birth_date.date()
        return today.year - born.year - ((today.month, today.day) < (born.month, born.day))

    def primary_emergency_contact(self) -> Optional[EmergencyContact]:
        for contact in self.emergency_contacts:
            if contact.is_primary:
                return contact
        return self.emergency_contacts[0] if self.emergency_contacts else None

    def missing_required_fields(self) -> List[str]:
        missing = []
        if not self.first_name.strip():
            missing.append("First Name")
        if not self.last_name.strip():
            missing.append("Last Name")
        if not self.email.strip():
            missing.append("Email")
        if not self.phone_number.strip():
            missing.append("Phone Number")
        return missing

    def formatted_address(self) -> str:
        parts = (self.house_number_and_street, self.barangay, self.city, self.province, self.zip_code)
        return ", ".join(part for part in parts if part.strip())

    def is_profile_complete(self) -> bool:
        return (
            not self.missing_required_fields()
            and bool(self.house_number_and_street.strip())
            and bool(self.emergency_contacts)
        )

    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

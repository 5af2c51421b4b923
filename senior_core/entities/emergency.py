"""senior_core/entities/emergency.py"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from .base import Entity
from ..utils import now_ms, to_millis


class ServiceType(str, Enum):
    EMERGENCY = "EMERGENCY"
    MEDICAL = "MEDICAL"
    POLICE = "POLICE"
    FIRE = "FIRE"
    SENIOR = "SENIOR"


SERVICE_TYPE_DISPLAY = {
    ServiceType.EMERGENCY.value: "Emergency Services",
    ServiceType.MEDICAL.value: "Medical Services",
    ServiceType.POLICE.value: "Police Services",
    ServiceType.FIRE.value: "Fire Services",
    ServiceType.SENIOR.value: "Senior Services",
}


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CANCELLED = "CANCELLED"
    FALSE_ALARM = "FALSE_ALARM"


class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
    LIFE_THREATENING = "LIFE_THREATENING"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EmergencyService(Entity):
    """A hotline in the emergency directory. Higher priority sorts first."""
    id: str = ""
    name: str = ""
    description: str = ""
    phone_number: str = ""
    address: str = ""
    service_type: str = ServiceType.EMERGENCY.value
    priority: int = 0
    is_active: bool = True
    office_hours: str = ""
    website: str = ""
    notes: str = ""
    created_by: str = ""
    created_at: Optional[datetime] = Field(default_factory=_now)
    updated_at: Optional[datetime] = Field(default_factory=_now)

    def formatted_phone_number(self) -> str:
        return self.phone_number or "Not available"

    def has_phone_number(self) -> bool:
        return bool(self.phone_number) and self.phone_number != "Not available"

    def has_address(self) -> bool:
        return bool(self.address)

    def service_type_display(self) -> str:
        return SERVICE_TYPE_DISPLAY.get(self.service_type, self.service_type)

    def priority_display(self) -> str:
        if self.priority >= 100:
            return "Critical"
        if self.priority >= 50:
            return "High"
        if self.priority >= 10:
            return "Medium"
        return "Low"


class AlertLocation(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: str = ""
    city: str = ""
    province: str = ""

    def display(self) -> str:
        if self.address:
            return self.address
        if self.city and self.province:
            return f"{self.city}, {self.province}"
        if self.latitude is not None and self.longitude is not None:
            return f"Lat: {self.latitude}, Lng: {self.longitude}"
        return "N/A"

    def maps_link(self) -> str:
        if self.latitude is None or self.longitude is None:
            return ""
        return f"https://maps.google.com/?q={self.latitude},{self.longitude}"


class EmergencyAlert(Entity):
    """
    An emergency raised by a senior (SOS button, service call) or created by an admin.
    Timestamps are epoch milliseconds.
    """
    id: str = ""
    user_id: str = ""
    senior_id: str = ""
    senior_name: str = ""
    type: str = "OTHER"
    emergency_type: str = ""
    severity: str = AlertSeverity.MEDIUM.value
    status: str = AlertStatus.ACTIVE.value
    description: str = ""
    location: Union[AlertLocation, str, None] = None
    triggered_by: str = "user"
    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""
    service_name: str = ""
    service_phone: str = ""
    sms_message: str = ""
    sms_sent: bool = False
    message_id: str = ""
    timestamp: int = Field(default_factory=now_ms)
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    resolved_at: Optional[int] = None
    resolved_by: str = ""
    resolution_notes: str = ""

    @field_validator("timestamp", "created_at", "updated_at", "resolved_at", mode="before")
    @classmethod
    def _millis(cls, value):
        if value is None:
            return value
        return to_millis(value)

    def location_display(self) -> str:
        if self.location is None:
            return "N/A"
        if isinstance(self.location, str):
            return self.location or "N/A"
        return self.location.display()

    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE.value

    def is_resolved(self) -> bool:
        return self.status == AlertStatus.RESOLVED.value

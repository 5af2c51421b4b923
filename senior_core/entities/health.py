"""senior_core/entities/health.py"""
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from .base import Entity
from ..utils import DAY_MS, DEFAULT_TIMEZONE, format_timestamp, now_ms, to_millis


class HealthType(str, Enum):
    BLOOD_PRESSURE = "blood_pressure"
    BLOOD_SUGAR = "blood_sugar"
    WEIGHT = "weight"
    HEART_RATE = "heart_rate"


TYPE_DISPLAY_NAMES = {
    HealthType.BLOOD_PRESSURE.value: "Blood Pressure",
    HealthType.BLOOD_SUGAR.value: "Blood Sugar",
    HealthType.WEIGHT.value: "Weight",
    HealthType.HEART_RATE.value: "Heart Rate",
}

TYPE_ICONS = {
    HealthType.BLOOD_PRESSURE.value: "🩸",
    HealthType.BLOOD_SUGAR.value: "🍯",
    HealthType.WEIGHT.value: "⚖️",
    HealthType.HEART_RATE.value: "❤️",
}

DEFAULT_UNITS = {
    HealthType.BLOOD_PRESSURE.value: "mmHg",
    HealthType.BLOOD_SUGAR.value: "mg/dL",
    HealthType.WEIGHT.value: "kg",
    HealthType.HEART_RATE.value: "bpm",
}

RECORDED_BY_LABELS = {
    "admin": "Administrator",
    "user": "Senior User",
    "family": "Family Member",
}

BLOOD_PRESSURE_PATTERN = re.compile(r"^\d+/\d+$")
NUMERIC_PATTERN = re.compile(r"^\d+(\.\d+)?$")


def validate_health_value(record_type: str, value: str) -> Optional[str]:
    """Admin-side value check. Returns an error message, or None when the value is acceptable."""
    value = (value or "").strip()
    if not value:
        return "Value is required"
    if record_type == HealthType.BLOOD_PRESSURE.value:
        if not BLOOD_PRESSURE_PATTERN.match(value):
            return "Blood pressure must be in the format systolic/diastolic (e.g. 120/80)"
    elif record_type in DEFAULT_UNITS and not NUMERIC_PATTERN.match(value):
        return f"{TYPE_DISPLAY_NAMES[record_type]} must be a number"
    return None


def type_display_name(record_type: str) -> str:
    if record_type in TYPE_DISPLAY_NAMES:
        return TYPE_DISPLAY_NAMES[record_type]
    return " ".join(word.capitalize() for word in record_type.replace("_", " ").split(" "))


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthRecord(Entity):
    """A single vital-sign measurement of a senior."""
    id: str = ""
    senior_id: str = ""
    senior_name: str = ""
    type: str = Field(default="", description="blood_pressure, blood_sugar, weight or heart_rate")
    value: str = ""
    unit: str = ""
    notes: str = ""
    recorded_by: str = "user"
    timestamp: datetime = Field(default_factory=_now)
    created_at: Optional[datetime] = Field(default_factory=_now)
    updated_at: Optional[datetime] = Field(default_factory=_now)

    def formatted_value(self) -> str:
        if not self.value:
            return "N/A"
        if not self.unit:
            return self.value
        return f"{self.value} {self.unit}"

    def type_display(self) -> str:
        return type_display_name(self.type)

    def type_icon(self) -> str:
        return TYPE_ICONS.get(self.type, "📊")

    def display_value(self) -> str:
        record_type = self.type.lower()
        if record_type == HealthType.BLOOD_PRESSURE.value:
            return f"{self.value} mmHg"
        if record_type == HealthType.HEART_RATE.value:
            return f"{self.value} bpm"
        if record_type == HealthType.BLOOD_SUGAR.value:
            return f"{self.value} mg/dL"
        if record_type == HealthType.WEIGHT.value:
            return f"{self.value} {self.unit}"
        return f"{self.value} {self.unit}" if self.unit.strip() else self.value

    def recorded_by_label(self) -> str:
        return RECORDED_BY_LABELS.get(self.recorded_by, self.recorded_by or "Unknown")

    def formatted_time(self, tz: str = DEFAULT_TIMEZONE) -> str:
        return format_timestamp(self.timestamp, "HH:mm", "", tz)

    def formatted_date(self, tz: str = DEFAULT_TIMEZONE) -> str:
        return format_timestamp(self.timestamp, "M/D/YYYY", "", tz)

    def timestamp_ms(self) -> int:
        return to_millis(self.timestamp)

    def is_recent(self, now: Optional[int] = None) -> bool:
        now = now_ms() if now is None else now
        return now - self.timestamp_ms() <= DAY_MS

    def is_valid(self) -> bool:
        return all(field.strip() for field in (self.id, self.senior_id, self.type, self.value))

    def age_in_days(self, now: Optional[int] = None) -> int:
        now = now_ms() if now is None else now
        return (now - self.timestamp_ms()) // DAY_MS


EXCELLENT_COMPLIANCE = 95.0
GOOD_COMPLIANCE = 85.0
FAIR_COMPLIANCE = 70.0
POOR_COMPLIANCE = 50.0

VERY_ACTIVE_RECORDS = 7
ACTIVE_RECORDS = 4
MODERATE_RECORDS = 2
LIGHT_RECORDS = 1

DAYS_IN_WEEK = 7
DAYS_IN_MONTH = 30
DAYS_IN_YEAR = 365
CHECKUP_OVERDUE_DAYS = 90

STATUS_COLORS = {
    "excellent": "green", "good": "green",
    "fair": "yellow", "moderate": "yellow",
    "poor": "orange", "concerning": "orange",
    "critical": "red", "emergency": "red",
}

RISK_COLORS = {"low": "green", "moderate": "yellow", "high": "orange", "critical": "red"}


class HealthSummary(Entity):
    """Aggregated view of a senior's latest vitals, compliance and activity."""
    user_id: str = ""
    blood_pressure: str = "N/A"
    heart_rate: str = "N/A"
    blood_sugar: str = "N/A"
    weight: str = "N/A"
    temperature: str = "N/A"
    overall_status: str = "Unknown"
    risk_level: str = "Low"
    alerts_count: int = 0
    critical_alerts_count: int = 0
    medication_compliance: float = 0.0
    appointments_upcoming: int = 0
    appointments_overdue: int = 0
    last_checkup_days: int = -1
    blood_pressure_trend: str = "stable"
    heart_rate_trend: str = "stable"
    weight_trend: str = "stable"
    blood_sugar_trend: str = "stable"
    last_record_date: Optional[datetime] = None
    records_this_week: int = 0
    records_this_month: int = 0
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_valid: bool = True

    def status_color(self) -> str:
        return STATUS_COLORS.get(self.overall_status.lower(), "gray")

    def risk_color(self) -> str:
        return RISK_COLORS.get(self.risk_level.lower(), "gray")

    def needs_immediate_attention(self) -> bool:
        return self.critical_alerts_count > 0 or self.risk_level.lower() == "critical"

    def _compliance_band(self) -> int:
        for band, threshold in enumerate((EXCELLENT_COMPLIANCE, GOOD_COMPLIANCE, FAIR_COMPLIANCE, POOR_COMPLIANCE)):
            if self.medication_compliance >= threshold:
                return band
        return 4

    def compliance_status(self) -> str:
        return ("Excellent", "Good", "Fair", "Poor", "Critical")[self._compliance_band()]

    def compliance_color(self) -> str:
        return ("green", "lightgreen", "yellow", "orange", "red")[self._compliance_band()]

    def _activity_band(self) -> int:
        for band, threshold in enumerate((VERY_ACTIVE_RECORDS, ACTIVE_RECORDS, MODERATE_RECORDS, LIGHT_RECORDS)):
            if self.records_this_week >= threshold:
                return band
        return 4

    def activity_summary(self) -> str:
        return ("Very Active", "Active", "Moderate", "Light", "Inactive")[self._activity_band()]

    def activity_color(self) -> str:
        return ("green", "lightgreen", "yellow", "orange", "red")[self._activity_band()]

    def days_since_last_record(self, now: Optional[int] = None) -> int:
        if self.last_record_date is None:
            return -1
        now = now_ms() if now is None else now
        return (now - to_millis(self.last_record_date)) // DAY_MS

    def last_checkup_status(self) -> str:
        days = self.last_checkup_days
        if days < 0:
            return "No checkup recorded"
        if days == 0:
            return "Today"
        if days == 1:
            return "Yesterday"
        if days <= DAYS_IN_WEEK:
            return f"{days} days ago"
        if days <= DAYS_IN_MONTH:
            return f"{days // DAYS_IN_WEEK} weeks ago"
        if days <= DAYS_IN_YEAR:
            return f"{days // DAYS_IN_MONTH} months ago"
        return "Over a year ago"

    def is_checkup_overdue(self) -> bool:
        return self.last_checkup_days > CHECKUP_OVERDUE_DAYS

    def checkup_color(self) -> str:
        days = self.last_checkup_days
        if days < 0:
            return "gray"
        if days <= 30:
            return "green"
        if days <= 60:
            return "yellow"
        if days <= CHECKUP_OVERDUE_DAYS:
            return "orange"
        return "red"

    def health_concerns(self, now: Optional[int] = None) -> List[str]:
        concerns = []
        if self.critical_alerts_count > 0:
            plural = "s" if self.critical_alerts_count > 1 else ""
            concerns.append(f"{self.critical_alerts_count} critical health alert{plural}")
        if self.medication_compliance < FAIR_COMPLIANCE:
            concerns.append(f"Low medication compliance ({int(self.medication_compliance)}%)")
        if self.appointments_overdue > 0:
            plural = "s" if self.appointments_overdue > 1 else ""
            concerns.append(f"{self.appointments_overdue} overdue appointment{plural}")
        if self.is_checkup_overdue():
            concerns.append("Regular checkup overdue")
        if self.days_since_last_record(now) > DAYS_IN_WEEK:
            concerns.append("No recent health records")
        return concerns

    def health_stats(self) -> Dict[str, str]:
        return {
            "Overall Status": self.overall_status,
            "Risk Level": self.risk_level,
            "Medication Compliance": f"{int(self.medication_compliance)}%",
            "Activity Level": self.activity_summary(),
            "Last Checkup": self.last_checkup_status(),
            "Critical Alerts": str(self.critical_alerts_count),
            "Upcoming Appointments": str(self.appointments_upcoming),
            "Records This Week": str(self.records_this_week),
            "Records This Month": str(self.records_this_month),
        }

    def health_score(self) -> int:
        """0-100 score from compliance, activity, alerts and overdue items."""
        score = 50
        score += int((self.medication_compliance - 50) / 2)
        score += (15, 10, 5, 0, -10)[self._activity_band()]
        score -= self.critical_alerts_count * 10
        score -= self.alerts_count * 2
        score -= self.appointments_overdue * 5
        if self.is_checkup_overdue():
            score -= 10
        return max(0, min(100, score))

    def health_score_color(self) -> str:
        score = self.health_score()
        if score >= 80:
            return "green"
        if score >= 60:
            return "lightgreen"
        if score >= 40:
            return "yellow"
        if score >= 20:
            return "orange"
        return "red"

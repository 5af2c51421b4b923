"""
'admin/dashboard.py': Admin dashboard statistics.

All statistics are computed client-side from whole collections, the way the dashboard
reads them. `watch()` keeps the figures fresh from real-time listeners, debounced so a
burst of writes triggers one refresh.
"""
import logging
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

import arrow

from ..datastore.base import BaseDatastore
from ..datastore.firestore.constants import (
    ACTIVITIES_COLLECTION,
    ADMIN_ROLES,
    APPOINTMENTS_COLLECTION,
    BENEFITS_COLLECTION,
    CLAIMED_BENEFITS_COLLECTION,
    EMERGENCY_ALERTS_COLLECTION,
    FACILITATOR_ROLE,
    HEALTH_RECORDS_COLLECTION,
    SUPER_ADMIN_ROLE,
    USERS_COLLECTION,
)
from ..entities.appointment import AppointmentStatus
from ..entities.benefit import BenefitStatus
from ..entities.emergency import AlertStatus
from ..entities.user import UserRole
from ..utils import DAY_MS, DEFAULT_TIMEZONE, debounce, now_ms, to_millis

logger = logging.getLogger(__name__)

SENIOR_ROLE = UserRole.SENIOR_CITIZEN.value
AGE_GROUPS = ("60-69", "70-79", "80-89", "90+")
REFRESH_DEBOUNCE_SECONDS = 2.0
WATCHED_COLLECTIONS = (USERS_COLLECTION, BENEFITS_COLLECTION, EMERGENCY_ALERTS_COLLECTION, ACTIVITIES_COLLECTION)


def age_group(age: Any) -> Optional[str]:
    try:
        age = int(age or 0)
    except (TypeError, ValueError):
        return None
    if 60 <= age <= 69:
        return "60-69"
    if 70 <= age <= 79:
        return "70-79"
    if 80 <= age <= 89:
        return "80-89"
    if age >= 90:
        return "90+"
    return None


def is_verified(user: Dict[str, Any]) -> bool:
    return user.get("accountVerified") is True or user.get("isVerified") is True


def is_new_this_month(created_at: Any, now: int, tz: str = DEFAULT_TIMEZONE) -> bool:
    millis = to_millis(created_at)
    if not millis:
        return False
    created = arrow.get(millis / 1000).to(tz)
    current = arrow.get(now / 1000).to(tz)
    return (created.year, created.month) == (current.year, current.month)


class DashboardService:
    """Aggregates the figures shown on the admin dashboard."""

    def __init__(self, datastore: BaseDatastore, timezone: str = DEFAULT_TIMEZONE):
        self.datastore = datastore
        self.timezone = timezone
        self._handles: List[Any] = []
        self._refreshers: List[Callable] = []

    def _all(self, collection: str) -> List[Dict[str, Any]]:
        return self.datastore.list_documents(collection)

    def _seniors(self) -> List[Dict[str, Any]]:
        return [user for user in self._all(USERS_COLLECTION) if user.get("role") == SENIOR_ROLE]

    def user_stats(self, admin_role: str = "", now: Optional[int] = None) -> Dict[str, int]:
        """Facilitators and super admins count every account; other admins count seniors only."""
        now = now_ms() if now is None else now
        users = self._all(USERS_COLLECTION)
        seniors = [user for user in users if user.get("role") == SENIOR_ROLE]
        stats = {"newThisMonth": sum(1 for s in seniors if is_new_this_month(s.get("createdAt"), now, self.timezone))}
        if admin_role in (FACILITATOR_ROLE, SUPER_ADMIN_ROLE):
            stats["totalSeniors"] = len(users)
            stats["verifiedAccounts"] = sum(1 for user in users if is_verified(user))
        else:
            stats["totalSeniors"] = len(seniors)
            stats["activeSeniors"] = sum(1 for senior in seniors if senior.get("isActive"))
        return stats

    def benefit_stats(self) -> Dict[str, int]:
        benefits = self._all(BENEFITS_COLLECTION)
        return {
            "totalBenefits": len(benefits),
            "availableBenefits": sum(
                1 for b in benefits if b.get("status") == BenefitStatus.AVAILABLE.value and b.get("isActive")
            ),
            "totalClaimed": len(self._all(CLAIMED_BENEFITS_COLLECTION)),
        }

    def emergency_stats(self, now: Optional[int] = None) -> Dict[str, int]:
        now = now_ms() if now is None else now
        alerts = self._all(EMERGENCY_ALERTS_COLLECTION)
        # Alerts without a timestamp count as just raised
        recent = [a for a in alerts if (to_millis(a.get("timestamp")) or now) >= now - DAY_MS]
        return {
            "emergencyAlerts": len(alerts),
            "recentEmergencies": len(recent),
            "activeEmergencies": sum(1 for a in alerts if a.get("status") == AlertStatus.ACTIVE.value),
        }

    def recent_activities(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Latest 10 activities and 5 appointments, merged newest first."""
        activities = self.datastore.list_documents(
            ACTIVITIES_COLLECTION, order_by="timestamp", descending=True, limit=10
        )
        appointments = self.datastore.list_documents(
            APPOINTMENTS_COLLECTION, order_by="dateTime", descending=True, limit=5
        )
        merged = [
            {
                "type": "activity",
                "title": activity.get("title") or "Activity",
                "description": activity.get("description") or "",
                "timestamp": to_millis(activity.get("timestamp")),
                "icon": "fas fa-user",
            }
            for activity in activities
        ] + [
            {
                "type": "appointment",
                "title": appointment.get("title") or "Appointment",
                "description": f"With {appointment.get('doctorName') or 'Doctor'}",
                "timestamp": to_millis(appointment.get("dateTime")),
                "icon": "fas fa-calendar",
            }
            for appointment in appointments
        ]
        merged.sort(key=lambda item: item["timestamp"], reverse=True)
        return merged[:limit]

    def appointment_stats(self, now: Optional[int] = None) -> Dict[str, int]:
        now = now_ms() if now is None else now
        appointments = self._all(APPOINTMENTS_COLLECTION)
        horizon = now + 7 * DAY_MS
        return {
            "totalAppointments": len(appointments),
            "upcomingAppointments": sum(
                1 for a in appointments if now <= to_millis(a.get("dateTime")) <= horizon
            ),
            "completedAppointments": sum(
                1 for a in appointments if a.get("status") == AppointmentStatus.COMPLETED.value
            ),
        }

    def demographics(self) -> Dict[str, Any]:
        seniors = self._seniors()
        ages = {group: 0 for group in AGE_GROUPS}
        genders = {"Male": 0, "Female": 0}
        cities: Counter = Counter()
        for senior in seniors:
            group = age_group(senior.get("age"))
            if group:
                ages[group] += 1
            gender = str(senior.get("gender") or "").lower()
            if gender == "male":
                genders["Male"] += 1
            elif gender == "female":
                genders["Female"] += 1
            cities[senior.get("city") or "Unknown"] += 1
        return {
            "ageGroups": ages,
            "genderDistribution": genders,
            "locationDistribution": dict(cities),
            "totalSeniors": len(seniors),
            "verifiedAccounts": sum(1 for senior in seniors if is_verified(senior)),
        }

    def health_analytics(self, now: Optional[int] = None) -> Dict[str, Any]:
        now = now_ms() if now is None else now
        records = self._all(HEALTH_RECORDS_COLLECTION)
        since = now - 30 * DAY_MS
        conditions: Counter = Counter()
        for record in records:
            conditions.update(record.get("conditions") or [])
        return {
            "healthRecords": len(records),
            "recentHealthUpdates": sum(
                1 for r in records if (to_millis(r.get("updatedAt")) or now) >= since
            ),
            "topHealthConditions": conditions.most_common(5),
        }

    def load(self, admin_role: str = "", now: Optional[int] = None) -> Dict[str, Any]:
        """Everything the dashboard shows, keyed by panel."""
        now = now_ms() if now is None else now
        data = {
            "users": self.user_stats(admin_role, now),
            "benefits": self.benefit_stats(),
            "emergencies": self.emergency_stats(now),
            "appointments": self.appointment_stats(now),
            "recentActivities": self.recent_activities(),
            "healthAnalytics": self.health_analytics(now),
        }
        if admin_role in ADMIN_ROLES:
            data["demographics"] = self.demographics()
        logger.info(f"[load] Dashboard loaded for role '{admin_role or 'unknown'}'")
        return data

    def watch(
            self,
            on_update: Callable[[str, Dict[str, Any]], None],
            admin_role: str = "",
            wait: float = REFRESH_DEBOUNCE_SECONDS,
    ) -> List[Any]:
        """
        Recompute a panel whenever its collection changes.

        Args:
            on_update: Called with the panel name and its fresh figures.
            admin_role (str): Role of the viewing admin.
            wait (float): Debounce window in seconds.

        Returns:
            List: Listener handles from the datastore.
        """
        panels = {
            USERS_COLLECTION: ("users", lambda: self.user_stats(admin_role)),
            BENEFITS_COLLECTION: ("benefits", self.benefit_stats),
            EMERGENCY_ALERTS_COLLECTION: ("emergencies", self.emergency_stats),
            ACTIVITIES_COLLECTION: ("recentActivities", self.recent_activities),
        }
        for collection in WATCHED_COLLECTIONS:
            panel, compute = panels[collection]

            @debounce(wait)
            def refresh(_docs, panel=panel, compute=compute):
                try:
                    on_update(panel, compute())
                except Exception as e:
                    logger.error(f"[watch] Failed to refresh '{panel}': {e}")

            self._refreshers.append(refresh)
            self._handles.append(self.datastore.on_snapshot(collection, refresh))
        return list(self._handles)

    def stop_watching(self) -> None:
        for refresh in self._refreshers:
            refresh.cancel()
        for handle in self._handles:
            unsubscribe = getattr(handle, "unsubscribe", None) or getattr(handle, "close", None)
            if unsubscribe:
                unsubscribe()
        self._refreshers.clear()
        self._handles.clear()

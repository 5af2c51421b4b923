"""
'repositories/health.py': HealthRepository stores vital-sign records and appointments and
derives the per-senior health summary.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..datastore.base import BaseDatastore
from ..datastore.exceptions import DatastoreError, DocumentNotFoundError
from ..datastore.firestore.constants import (
    APPOINTMENTS_COLLECTION,
    EMERGENCY_ALERTS_COLLECTION,
    HEALTH_RECORDS_COLLECTION,
)
from ..entities.appointment import Appointment, AppointmentStatus, AppointmentType
from ..entities.emergency import AlertSeverity, EmergencyAlert
from ..entities.health import HealthRecord, HealthSummary, HealthType
from ..utils import DAY_MS, now_ms

logger = logging.getLogger(__name__)

UPCOMING_APPOINTMENTS_LIMIT = 10
CRITICAL_SEVERITIES = (AlertSeverity.CRITICAL.value, AlertSeverity.LIFE_THREATENING.value)


class HealthRepository:
    def __init__(self, datastore: BaseDatastore):
        self.datastore = datastore
        self._records_cache: Dict[str, List[HealthRecord]] = {}
        self._appointments_cache: Dict[str, List[Appointment]] = {}

    def save_health_record(self, user_id: str, record: HealthRecord) -> HealthRecord:
        """
        Store a record for `user_id`. When the datastore write fails the record is kept
        in the local cache and still returned.
        """
        if not user_id.strip():
            raise ValueError("User ID cannot be empty")
        if not record.type.strip():
            raise ValueError("Health record type cannot be empty")
        if not record.value.strip():
            raise ValueError("Health record value cannot be empty")

        now = datetime.now(timezone.utc)
        saved = record.model_copy(update={
            "id": record.id or str(uuid.uuid4()),
            "senior_id": user_id,
            "created_at": record.created_at or now,
            "updated_at": now,
        })
        try:
            self.datastore.set_document(HEALTH_RECORDS_COLLECTION, saved.id, saved.to_map())
            logger.info(f"[save_health_record] Saved {saved.type} record {saved.id} for {user_id}")
        except DatastoreError as e:
            logger.error(f"[save_health_record] Datastore write failed, caching record {saved.id}: {e}")
            self._records_cache.setdefault(user_id, []).append(saved)
        return saved

    def get_health_records(self, user_id: str) -> List[HealthRecord]:
        """Records of a senior, newest first."""
        if not user_id.strip():
            raise ValueError("User ID cannot be empty")

        try:
            docs = self.datastore.list_documents(HEALTH_RECORDS_COLLECTION, where=[("seniorId", "==", user_id)])
        except DatastoreError as e:
            logger.error(f"[get_health_records] Failed to load records of {user_id}: {e}")
            if user_id in self._records_cache:
                return sorted(self._records_cache[user_id], key=HealthRecord.timestamp_ms, reverse=True)
            raise

        records = []
        for doc in docs:
            try:
                records.append(HealthRecord.from_map(doc))
            except ValueError as e:
                logger.warning(f"[get_health_records] Skipping malformed record {doc.get('id')}: {e}")
        records.sort(key=HealthRecord.timestamp_ms, reverse=True)
        return records

    def get_latest_health_records(self, user_id: str) -> Dict[str, HealthRecord]:
        """The newest record of each vital type, keyed by type."""
        latest: Dict[str, HealthRecord] = {}
        for record in self.get_health_records(user_id):
            record_type = record.type.lower()
            if record_type in {t.value for t in HealthType} and record_type not in latest:
                latest[record_type] = record
        return latest

    def get_health_summary(self, user_id: str, now: Optional[int] = None) -> HealthSummary:
        if not user_id.strip():
            raise ValueError("User ID cannot be empty")
        now = now_ms() if now is None else now

        try:
            records = self.get_health_records(user_id)
        except DatastoreError as e:
            logger.error(f"[get_health_summary] Using default summary for {user_id}: {e}")
            return HealthSummary(user_id=user_id, last_updated=datetime.now(timezone.utc))

        def latest_value(record_type: str) -> str:
            for record in records:
                if record.type.lower() == record_type:
                    return record.value
            return "N/A"

        summary = HealthSummary(
            user_id=user_id,
            blood_pressure=latest_value(HealthType.BLOOD_PRESSURE.value),
            heart_rate=latest_value(HealthType.HEART_RATE.value),
            blood_sugar=latest_value(HealthType.BLOOD_SUGAR.value),
            weight=latest_value(HealthType.WEIGHT.value),
            last_record_date=records[0].timestamp if records else None,
            records_this_week=sum(1 for r in records if now - r.timestamp_ms() <= 7 * DAY_MS),
            records_this_month=sum(1 for r in records if now - r.timestamp_ms() <= 30 * DAY_MS),
            last_updated=datetime.now(timezone.utc),
        )
        self._apply_appointments(summary, user_id, now)
        self._apply_alerts(summary, user_id)
        return summary

    def _apply_appointments(self, summary: HealthSummary, user_id: str, now: int) -> None:
        try:
            appointments = self._load_appointments(user_id)
        except DatastoreError as e:
            logger.warning(f"[get_health_summary] Appointments unavailable for {user_id}: {e}")
            return

        summary.appointments_upcoming = sum(1 for a in appointments if a.is_upcoming(now))
        summary.appointments_overdue = sum(1 for a in appointments if a.is_missed(now))
        checkups = [
            a.date_time for a in appointments
            if a.appointment_type == AppointmentType.CHECKUP.value
            and a.status == AppointmentStatus.COMPLETED.value
            and 0 < a.date_time <= now
        ]
        if checkups:
            summary.last_checkup_days = (now - max(checkups)) // DAY_MS

    def _apply_alerts(self, summary: HealthSummary, user_id: str) -> None:
        try:
            docs = self.datastore.list_documents(EMERGENCY_ALERTS_COLLECTION, where=[("userId", "==", user_id)])
        except DatastoreError as e:
            logger.warning(f"[get_health_summary] Alerts unavailable for {user_id}: {e}")
            return

        active = [alert for alert in map(EmergencyAlert.from_map, docs) if alert.is_active()]
        summary.alerts_count = len(active)
        summary.critical_alerts_count = sum(1 for alert in active if alert.severity in CRITICAL_SEVERITIES)

    def _load_appointments(self, user_id: str) -> List[Appointment]:
        try:
            docs = self.datastore.list_documents(APPOINTMENTS_COLLECTION, where=[("userId", "==", user_id)])
        except DatastoreError:
            if user_id in self._appointments_cache:
                return list(self._appointments_cache[user_id])
            raise
        appointments = [Appointment.from_map(doc) for doc in docs]
        self._appointments_cache[user_id] = appointments
        return appointments

    def get_upcoming_appointments(self, user_id: str, now: Optional[int] = None) -> List[Appointment]:
        """Future appointments, soonest first, at most ten."""
        if not user_id.strip():
            raise ValueError("User ID cannot be empty")
        now = now_ms() if now is None else now
        upcoming = [a for a in self._load_appointments(user_id) if a.date_time > now]
        upcoming.sort(key=lambda a: a.date_time)
        return upcoming[:UPCOMING_APPOINTMENTS_LIMIT]

    def save_appointment(self, user_id: str, appointment: Appointment) -> Appointment:
        if not user_id.strip():
            raise ValueError("User ID cannot be empty")

        now = datetime.now(timezone.utc)
        saved = appointment.model_copy(update={
            "id": appointment.id or str(uuid.uuid4()),
            "user_id": user_id,
            "created_at": appointment.created_at or now,
            "updated_at": now,
        })
        errors = saved.validation_errors()
        if errors:
            raise ValueError("; ".join(errors))

        self.datastore.set_document(APPOINTMENTS_COLLECTION, saved.id, saved.to_map())
        self._appointments_cache.setdefault(user_id, []).append(saved)
        logger.info(f"[save_appointment] Saved appointment {saved.id} for {user_id}")
        return saved

    def delete_health_record(self, record_id: str, senior_id: Optional[str] = None) -> None:
        """
        Delete a health record. With `senior_id`, only a record of that senior is deleted.

        Raises:
            ValueError: If the record does not exist.
            DocumentNotFoundError: If the record belongs to another senior.
        """
        try:
            doc = self.datastore.get_document(HEALTH_RECORDS_COLLECTION, record_id)
        except DocumentNotFoundError:
            raise ValueError("Health record not found")
        if senior_id is not None and doc.get("seniorId") != senior_id:
            logger.warning(f"[delete_health_record] Record {record_id} does not belong to {senior_id}")
            raise DocumentNotFoundError(HEALTH_RECORDS_COLLECTION, record_id)
        self.datastore.delete_document(HEALTH_RECORDS_COLLECTION, record_id)
        for records in self._records_cache.values():
            records[:] = [r for r in records if r.id != record_id]

    def get_health_statistics(self, user_id: str) -> Dict[str, int]:
        """Number of records per type, plus `total`."""
        stats: Dict[str, int] = {}
        records = self.get_health_records(user_id)
        for record in records:
            stats[record.type] = stats.get(record.type, 0) + 1
        stats["total"] = len(records)
        return stats

    def clear_cache(self) -> None:
        self._records_cache.clear()
        self._appointments_cache.clear()

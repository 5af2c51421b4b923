"""
'repositories/emergency.py': emergency hotline directory and emergency alert records.
"""
import logging
from typing import Any, Dict, List, Optional

from ..datastore.base import BaseDatastore
from ..datastore.firestore.constants import EMERGENCY_ALERTS_COLLECTION, EMERGENCY_SERVICES_COLLECTION
from ..entities.emergency import AlertStatus, EmergencyAlert, EmergencyService
from ..utils import now_ms

logger = logging.getLogger(__name__)


class EmergencyServiceRepository:
    """CRUD for `emergency_services`; listings are ordered by descending priority."""

    def __init__(self, datastore: BaseDatastore):
        self.datastore = datastore

    def list_services(self, active_only: bool = True) -> List[EmergencyService]:
        where = [("isActive", "==", True)] if active_only else None
        docs = self.datastore.list_documents(EMERGENCY_SERVICES_COLLECTION, where=where)
        services = [EmergencyService.from_map(doc) for doc in docs]
        services.sort(key=lambda s: (-s.priority, s.name))
        return services

    def get_service(self, service_id: str) -> EmergencyService:
        return EmergencyService.from_map(self.datastore.get_document(EMERGENCY_SERVICES_COLLECTION, service_id))

    def add_service(self, service: EmergencyService, admin_user_id: str = "") -> EmergencyService:
        if not service.name.strip():
            raise ValueError("Service name is required")
        data = service.to_map()
        data.pop("id", None)
        data["createdBy"] = admin_user_id or service.created_by
        service_id = self.datastore.add_document(EMERGENCY_SERVICES_COLLECTION, data)
        logger.info(f"[add_service] Added emergency service '{service.name}' <{service_id}>")
        return service.model_copy(update={"id": service_id, "created_by": data["createdBy"]})

    def update_service(self, service_id: str, updates: Dict[str, Any]) -> None:
        updates = {k: v for k, v in updates.items() if k not in ("id", "createdAt", "createdBy")}
        self.datastore.update_document(EMERGENCY_SERVICES_COLLECTION, service_id, updates)

    def delete_service(self, service_id: str) -> None:
        self.datastore.delete_document(EMERGENCY_SERVICES_COLLECTION, service_id)
        logger.info(f"[delete_service] Deleted emergency service {service_id}")


class EmergencyAlertRepository:
    """Emergency alerts raised by seniors or admins, newest first."""

    def __init__(self, datastore: BaseDatastore):
        self.datastore = datastore

    def add_alert(self, alert: EmergencyAlert) -> EmergencyAlert:
        if not (alert.user_id or alert.senior_id):
            raise ValueError("User ID is required")
        stamp = now_ms()
        alert = alert.model_copy(update={
            "status": alert.status or AlertStatus.ACTIVE.value,
            "timestamp": alert.timestamp or stamp,
        })
        data = alert.to_map()
        data.pop("id", None)
        alert_id = self.datastore.add_document(EMERGENCY_ALERTS_COLLECTION, data)
        logger.info(f"[add_alert] Recorded {alert.type} alert <{alert_id}> for {alert.user_id or alert.senior_id}")
        return alert.model_copy(update={"id": alert_id})

    def get_alert(self, alert_id: str) -> EmergencyAlert:
        return EmergencyAlert.from_map(self.datastore.get_document(EMERGENCY_ALERTS_COLLECTION, alert_id))

    def update_alert(self, alert_id: str, updates: Dict[str, Any], admin_user_id: str = "admin") -> None:
        """Apply admin edits; moving to RESOLVED stamps `resolvedAt` and `resolvedBy`."""
        updates = dict(updates)
        if updates.get("status") == AlertStatus.RESOLVED.value:
            updates["resolvedAt"] = now_ms()
            updates["resolvedBy"] = admin_user_id
        self.datastore.update_document(EMERGENCY_ALERTS_COLLECTION, alert_id, updates)
        logger.info(f"[update_alert] Alert {alert_id} updated by {admin_user_id}")

    def resolve_alert(self, alert_id: str, admin_user_id: str = "admin", notes: str = "") -> None:
        updates: Dict[str, Any] = {"status": AlertStatus.RESOLVED.value}
        if notes:
            updates["resolutionNotes"] = notes
        self.update_alert(alert_id, updates, admin_user_id)

    def list_alerts(
            self,
            status: Optional[str] = None,
            user_id: Optional[str] = None,
            limit: Optional[int] = None,
    ) -> List[EmergencyAlert]:
        where = []
        if status:
            where.append(("status", "==", status))
        if user_id:
            where.append(("userId", "==", user_id))
        docs = self.datastore.list_documents(EMERGENCY_ALERTS_COLLECTION, where=where or None)
        alerts = [EmergencyAlert.from_map(doc) for doc in docs]
        alerts.sort(key=lambda a: a.timestamp, reverse=True)
        return alerts[:limit] if limit else alerts

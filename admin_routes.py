"""
Admin dashboard routes: statistics, senior accounts, benefits, alerts, directories and reports.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from senior_core.admin.seniors import frame_to_csv
from senior_core.datastore.firestore.constants import ADMIN_ROLE
from senior_core.entities.base import Entity
from senior_core.entities.benefit import Benefit
from senior_core.entities.emergency import EmergencyService
from senior_core.entities.health import HealthRecord, validate_health_value
from senior_core.entities.social import SocialService
from senior_core.services import Services, get_services

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/admin", tags=["Admin"])


class DisbursementUpdate(Entity):
    next_disbursement_date: datetime
    disbursement_amount: str


class AlertResolution(Entity):
    notes: str = ""


class VerifyRequest(Entity):
    admin_email: str = ""


def get_admin_id(x_admin_id: Optional[str] = Header(default=None)) -> str:
    """The acting admin's uid, taken from the `X-Admin-Id` header."""
    if not x_admin_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Admin-Id header is required")
    return x_admin_id


def require_admin(admin_id: str = Depends(get_admin_id), services: Services = Depends(get_services)) -> str:
    if not services.benefits.is_user_admin(admin_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Current user is not an admin")
    return admin_id


# Dashboard

@admin_router.get("/dashboard")
async def dashboard(
    role: str = Query(default=ADMIN_ROLE),
    _: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return services.dashboard.load(role.lower())


# Seniors

@admin_router.get("/seniors")
async def list_seniors(
    include_deleted: bool = False, _: str = Depends(require_admin), services: Services = Depends(get_services)
):
    return services.seniors.list_seniors(include_deleted)


@admin_router.get("/seniors/export", response_class=PlainTextResponse)
async def export_seniors(
    save: bool = False, _: str = Depends(require_admin), services: Services = Depends(get_services)
):
    frame = services.seniors.export_frame()
    if frame.empty:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No data to export")
    if save:
        services.exporter.save_csv(frame)
    return PlainTextResponse(
        frame_to_csv(frame),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="senior_citizens_data.csv"'},
    )


@admin_router.get("/email-exists")
async def email_exists(email: str, services: Services = Depends(get_services)):
    return {"email": email, "exists": services.seniors.check_email_exists(email)}


@admin_router.delete("/seniors/{user_id}")
async def delete_senior(
    user_id: str, admin_id: str = Depends(get_admin_id), services: Services = Depends(get_services)
):
    deleted = services.seniors.delete_user_completely(user_id, admin_id)
    if not deleted:
        logger.warning(f"[delete_senior] User {user_id} could only be soft-deleted")
    return {"userId": user_id, "deleted": deleted, "softDeleted": not deleted}


@admin_router.post("/seniors/{user_id}/toggle-status")
async def toggle_senior_status(
    user_id: str, _: str = Depends(require_admin), services: Services = Depends(get_services)
):
    return {"userId": user_id, "isActive": services.seniors.toggle_status(user_id)}


@admin_router.post("/seniors/{user_id}/verify", status_code=status.HTTP_204_NO_CONTENT)
async def verify_senior(
    user_id: str,
    request: Optional[VerifyRequest] = None,
    _: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    services.seniors.verify_account(user_id, request.admin_email if request else "")


@admin_router.post("/seniors/{user_id}/verify-resident")
async def verify_resident(user_id: str, _: str = Depends(require_admin), services: Services = Depends(get_services)):
    return services.seniors.verify_resident(user_id)


@admin_router.post("/seniors/{user_id}/health-records", status_code=status.HTTP_201_CREATED)
async def add_senior_health_record(
    user_id: str,
    record: HealthRecord,
    admin_id: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    error = validate_health_value(record.type, record.value)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    record = record.model_copy(update={"recorded_by": "admin"})
    return services.health.save_health_record(user_id, record).to_map()


@admin_router.delete("/health-records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_health_record(
    record_id: str, _: str = Depends(require_admin), services: Services = Depends(get_services)
):
    services.health.delete_health_record(record_id)


# Benefits

@admin_router.post("/benefits", status_code=status.HTTP_201_CREATED)
async def save_benefit(
    benefit: Benefit, admin_id: str = Depends(require_admin), services: Services = Depends(get_services)
):
    return services.benefits.save_benefit(benefit, admin_id).to_map()


@admin_router.patch("/benefits/{benefit_id}/disbursement", status_code=status.HTTP_204_NO_CONTENT)
async def update_disbursement(
    benefit_id: str,
    update: DisbursementUpdate,
    admin_id: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    services.benefits.update_benefit_disbursement(
        benefit_id, update.next_disbursement_date, update.disbursement_amount, admin_id
    )


@admin_router.delete("/benefits/{benefit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_benefit(
    benefit_id: str, admin_id: str = Depends(require_admin), services: Services = Depends(get_services)
):
    services.benefits.delete_benefit(benefit_id, admin_id)


@admin_router.post("/benefits/seed")
async def seed_benefits(admin_id: str = Depends(require_admin), services: Services = Depends(get_services)):
    return {"seeded": services.benefits.seed_default_benefits(admin_id)}


# Emergency alerts

@admin_router.get("/alerts")
async def list_alerts(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    limit: Optional[int] = None,
    _: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return [a.to_map() for a in services.alerts.list_alerts(status_filter, user_id, limit)]


@admin_router.patch("/alerts/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_alert(
    alert_id: str,
    updates: Dict[str, Any] = Body(...),
    admin_id: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    services.alerts.update_alert(alert_id, updates, admin_id)


@admin_router.post("/alerts/{alert_id}/resolve", status_code=status.HTTP_204_NO_CONTENT)
async def resolve_alert(
    alert_id: str,
    request: Optional[AlertResolution] = None,
    admin_id: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    services.alerts.resolve_alert(alert_id, admin_id, request.notes if request else "")


# Directories

@admin_router.get("/emergency-services")
async def list_emergency_services(_: str = Depends(require_admin), services: Services = Depends(get_services)):
    return [s.to_map() for s in services.emergency_services.list_services(active_only=False)]


@admin_router.post("/emergency-services", status_code=status.HTTP_201_CREATED)
async def add_emergency_service(
    service: EmergencyService, admin_id: str = Depends(require_admin), services: Services = Depends(get_services)
):
    return services.emergency_services.add_service(service, admin_id).to_map()


@admin_router.patch("/emergency-services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_emergency_service(
    service_id: str,
    updates: Dict[str, Any] = Body(...),
    _: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    services.emergency_services.update_service(service_id, updates)


@admin_router.delete("/emergency-services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_emergency_service(
    service_id: str, _: str = Depends(require_admin), services: Services = Depends(get_services)
):
    services.emergency_services.delete_service(service_id)


@admin_router.get("/social-services")
async def list_social_services(_: str = Depends(require_admin), services: Services = Depends(get_services)):
    return [s.to_map() for s in services.social_services.list_services(active_only=False)]


@admin_router.post("/social-services", status_code=status.HTTP_201_CREATED)
async def add_social_service(
    service: SocialService, _: str = Depends(require_admin), services: Services = Depends(get_services)
):
    return services.social_services.add_service(service).to_map()


@admin_router.patch("/social-services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_social_service(
    service_id: str,
    updates: Dict[str, Any] = Body(...),
    _: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    services.social_services.update_service(service_id, updates)


@admin_router.delete("/social-services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_social_service(
    service_id: str, _: str = Depends(require_admin), services: Services = Depends(get_services)
):
    services.social_services.delete_service(service_id)


# Reports

@admin_router.get("/reports/{report_type}")
async def build_report(
    report_type: str,
    save: bool = False,
    _: str = Depends(require_admin),
    services: Services = Depends(get_services),
):
    report = services.reports.build(report_type)
    if save:
        report["savedTo"] = services.exporter.save_report(report, report_type)
    return report

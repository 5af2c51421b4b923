"""
Senior-facing routes: profile, benefits, health, appointments, reminders, SOS and social features.
"""
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from senior_core.entities.appointment import Appointment
from senior_core.entities.base import Entity
from senior_core.entities.emergency import AlertLocation
from senior_core.entities.health import HealthRecord
from senior_core.entities.reminder import Reminder
from senior_core.entities.user import EmergencyContact, User
from senior_core.services import Services, get_services

user_router = APIRouter(tags=["Seniors"])


class ClaimRequest(Entity):
    benefit_id: str
    benefit_title: str = ""


class SosRequest(Entity):
    emergency_type: str = "SOS Button"
    senior_name: str = ""
    phone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: str = ""

    def location(self) -> Optional[AlertLocation]:
        if self.latitude is None or self.longitude is None:
            return None
        return AlertLocation(latitude=self.latitude, longitude=self.longitude, address=self.address)


class ServiceCallRequest(SosRequest):
    service_name: str
    service_phone: str = ""


class TokenRequest(Entity):
    token: str


class FeatureUpdate(Entity):
    is_enabled: Optional[bool] = None
    unread_count: Optional[int] = None


# Profile

@user_router.get("/users/{user_id}")
async def get_profile(user_id: str, services: Services = Depends(get_services)):
    user = services.users.require_user(user_id)
    return {**user.to_map(), "fullName": user.full_name(), "profileComplete": user.is_profile_complete()}


@user_router.put("/users/{user_id}")
async def save_profile(user_id: str, profile: Dict[str, Any] = Body(...), services: Services = Depends(get_services)):
    user = services.users.save_user(User.from_map({**profile, "id": user_id}))
    return user.to_map()


@user_router.patch("/users/{user_id}")
async def update_profile(user_id: str, updates: Dict[str, Any] = Body(...), services: Services = Depends(get_services)):
    return services.users.update_user_fields(user_id, updates).to_map()


@user_router.post("/users/{user_id}/login", status_code=status.HTTP_204_NO_CONTENT)
async def record_login(user_id: str, services: Services = Depends(get_services)):
    services.users.update_last_login(user_id)


@user_router.post("/users/{user_id}/emergency-contacts")
async def add_emergency_contact(
    user_id: str, contact: EmergencyContact, services: Services = Depends(get_services)
):
    user = services.users.add_emergency_contact(user_id, contact)
    return [c.to_map() for c in user.emergency_contacts]


@user_router.delete("/users/{user_id}/emergency-contacts/{contact_key}")
async def remove_emergency_contact(user_id: str, contact_key: str, services: Services = Depends(get_services)):
    user = services.users.remove_emergency_contact(user_id, contact_key)
    return [c.to_map() for c in user.emergency_contacts]


# Benefits

@user_router.get("/benefits")
async def list_benefits(
    q: Optional[str] = None, category: Optional[str] = None, services: Services = Depends(get_services)
):
    if q:
        benefits = services.benefits.search_benefits(q)
    elif category:
        benefits = services.benefits.get_benefits_by_category(category)
    else:
        benefits = services.benefits.get_available_benefits()
    return [b.to_map() for b in benefits]


@user_router.get("/users/{user_id}/claims")
async def list_claims(user_id: str, services: Services = Depends(get_services)):
    return [c.to_map() for c in services.benefits.get_claimed_benefits(user_id)]


@user_router.post("/users/{user_id}/claims", status_code=status.HTTP_201_CREATED)
async def claim_benefit(user_id: str, request: ClaimRequest, services: Services = Depends(get_services)):
    return services.benefits.claim_benefit(user_id, request.benefit_id, request.benefit_title).to_map()


@user_router.get("/users/{user_id}/benefits-summary")
async def benefits_summary(user_id: str, services: Services = Depends(get_services)):
    available, next_disbursement = services.benefits.get_benefits_summary(user_id)
    return {"availableBenefits": available, "nextDisbursement": next_disbursement}


# Health

@user_router.get("/users/{user_id}/health-records")
async def list_health_records(user_id: str, services: Services = Depends(get_services)):
    return [r.to_map() for r in services.health.get_health_records(user_id)]


@user_router.post("/users/{user_id}/health-records", status_code=status.HTTP_201_CREATED)
async def add_health_record(user_id: str, record: HealthRecord, services: Services = Depends(get_services)):
    return services.health.save_health_record(user_id, record).to_map()


@user_router.delete("/users/{user_id}/health-records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_health_record(user_id: str, record_id: str, services: Services = Depends(get_services)):
    services.health.delete_health_record(record_id, user_id)


@user_router.get("/users/{user_id}/health-summary")
async def health_summary(user_id: str, services: Services = Depends(get_services)):
    summary = services.health.get_health_summary(user_id)
    return {
        **summary.to_map(),
        "healthScore": summary.health_score(),
        "healthConcerns": summary.health_concerns(),
        "healthStats": summary.health_stats(),
    }


@user_router.get("/users/{user_id}/health-statistics")
async def health_statistics(user_id: str, services: Services = Depends(get_services)):
    return services.health.get_health_statistics(user_id)


@user_router.get("/users/{user_id}/appointments")
async def upcoming_appointments(user_id: str, services: Services = Depends(get_services)):
    tz = services.config.timezone
    return [
        {**a.to_map(), "formattedDateTime": a.formatted_date_time(tz), "priorityLevel": a.priority(tz=tz)}
        for a in services.health.get_upcoming_appointments(user_id)
    ]


@user_router.post("/users/{user_id}/appointments", status_code=status.HTTP_201_CREATED)
async def add_appointment(user_id: str, appointment: Appointment, services: Services = Depends(get_services)):
    return services.health.save_appointment(user_id, appointment).to_map()


# Reminders

@user_router.get("/users/{user_id}/reminders")
async def list_reminders(user_id: str, services: Services = Depends(get_services)):
    return [r.to_map() for r in services.scheduler.list_reminders(user_id)]


@user_router.post("/users/{user_id}/reminders", status_code=status.HTTP_201_CREATED)
async def schedule_reminder(user_id: str, reminder: Reminder, services: Services = Depends(get_services)):
    reminder = reminder.model_copy(update={"id": reminder.id or str(uuid.uuid4()), "user_id": user_id})
    scheduled = services.scheduler.schedule(reminder)
    return {"scheduled": scheduled, "reminder": reminder.to_map()}


@user_router.put("/users/{user_id}/reminders/{reminder_id}")
async def update_reminder(
    user_id: str, reminder_id: str, reminder: Reminder, services: Services = Depends(get_services)
):
    services.scheduler.get_reminder(reminder_id, user_id)
    reminder = reminder.model_copy(update={"id": reminder_id, "user_id": user_id})
    return {"scheduled": services.scheduler.update(reminder), "reminder": reminder.to_map()}


@user_router.delete("/users/{user_id}/reminders/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_reminder(user_id: str, reminder_id: str, services: Services = Depends(get_services)):
    services.scheduler.get_reminder(reminder_id, user_id)
    services.scheduler.cancel(reminder_id)


@user_router.post("/users/{user_id}/reminders/{reminder_id}/snooze")
async def snooze_reminder(user_id: str, reminder_id: str, services: Services = Depends(get_services)):
    services.scheduler.get_reminder(reminder_id, user_id)
    return {"reminderId": reminder_id, "firesAt": services.receiver.snooze(reminder_id)}


@user_router.post("/users/{user_id}/reminders/{reminder_id}/complete")
async def complete_reminder(user_id: str, reminder_id: str, services: Services = Depends(get_services)):
    services.scheduler.get_reminder(reminder_id, user_id)
    return services.receiver.complete(reminder_id).to_map()


# Emergency

@user_router.post("/users/{user_id}/sos", status_code=status.HTTP_201_CREATED)
async def send_sos(user_id: str, request: SosRequest, services: Services = Depends(get_services)):
    user = services.users.require_user(user_id)
    alert = await services.alert_service.send_emergency_alert(
        user, request.emergency_type, request.location(), request.phone, request.senior_name,
    )
    return alert.to_map()


@user_router.post("/users/{user_id}/emergency-service-call", status_code=status.HTTP_201_CREATED)
async def emergency_service_call(
    user_id: str, request: ServiceCallRequest, services: Services = Depends(get_services)
):
    user = services.users.require_user(user_id)
    alert = await services.alert_service.send_emergency_service_alert(
        user, request.service_name, request.service_phone, request.location(), request.phone, request.senior_name,
    )
    return alert.to_map()


@user_router.get("/emergency-services")
async def emergency_directory(services: Services = Depends(get_services)):
    return [
        {**s.to_map(), "formattedPhoneNumber": s.formatted_phone_number(), "priorityLevel": s.priority_display()}
        for s in services.emergency_services.list_services()
    ]


@user_router.post("/users/{user_id}/device-tokens", status_code=status.HTTP_204_NO_CONTENT)
async def register_device_token(user_id: str, request: TokenRequest, services: Services = Depends(get_services)):
    services.messaging.register_token(user_id, request.token)


# Social

@user_router.get("/social-services")
async def social_directory(services: Services = Depends(get_services)):
    return [s.to_map() for s in services.social_services.list_services()]


@user_router.get("/users/{user_id}/social-features")
async def social_features(user_id: str, services: Services = Depends(get_services)):
    return [f.to_map() for f in services.social_features.get_features(user_id)]


@user_router.patch("/users/{user_id}/social-features/{feature_id}")
async def update_social_feature(
    user_id: str, feature_id: str, update: FeatureUpdate, services: Services = Depends(get_services)
):
    if update.is_enabled is None and update.unread_count is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")
    feature = None
    if update.is_enabled is not None:
        feature = services.social_features.set_enabled(user_id, feature_id, update.is_enabled)
    if update.unread_count is not None:
        feature = services.social_features.set_unread_count(user_id, feature_id, update.unread_count)
    return feature.to_map()


@user_router.post("/users/{user_id}/social-features/{feature_id}/interaction")
async def record_social_interaction(user_id: str, feature_id: str, services: Services = Depends(get_services)):
    return services.social_features.record_interaction(user_id, feature_id).to_map()

from datetime import datetime, timedelta, timezone

import pytest

from senior_core.datastore.exceptions import DatastoreError, DocumentNotFoundError
from senior_core.entities.appointment import Appointment
from senior_core.entities.benefit import Benefit
from senior_core.entities.emergency import EmergencyAlert, EmergencyService
from senior_core.entities.health import HealthRecord
from senior_core.entities.social import SocialService
from senior_core.entities.user import EmergencyContact, User
from senior_core.repositories.benefits import DEFAULT_BENEFITS, BenefitsRepository
from senior_core.repositories.emergency import EmergencyAlertRepository, EmergencyServiceRepository
from senior_core.repositories.health import HealthRepository
from senior_core.repositories.social import SocialFeatureRepository, SocialServiceRepository
from senior_core.repositories.users import UserRepository
from senior_core.utils import DAY_MS, now_ms


class FailingWrites:
    """Wraps a datastore so that writes fail."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def set_document(self, *args, **kwargs):
        raise DatastoreError("offline")


# Users

def test_save_and_get_user(datastore):
    repo = UserRepository(datastore)
    repo.save_user(User(id="u1", first_name="Maria", last_name="Santos", email="maria@example.com"))
    repo.clear_cache()

    user = repo.get_user("u1")

    assert user.full_name() == "Maria Santos"
    assert datastore.get_document("users", "u1")["email"] == "maria@example.com"


def test_get_missing_user_is_none(datastore):
    repo = UserRepository(datastore)

    assert repo.get_user("nobody") is None
    assert not repo.user_exists("nobody")
    with pytest.raises(DocumentNotFoundError):
        repo.require_user("nobody")


def test_save_user_requires_id(datastore):
    with pytest.raises(ValueError):
        UserRepository(datastore).save_user(User(id=" "))


def test_save_user_keeps_cache_when_datastore_fails(datastore):
    repo = UserRepository(FailingWrites(datastore))

    repo.save_user(User(id="u1", first_name="Offline"))

    assert repo.get_user("u1").first_name == "Offline"


def test_update_user_fields_ignores_unknown_keys(datastore):
    repo = UserRepository(datastore)
    repo.save_user(User(id="u1", first_name="Old"))

    user = repo.update_user_fields("u1", {"firstName": "New", "role": "admin"})

    assert user.first_name == "New"
    stored = datastore.get_document("users", "u1")
    assert stored["firstName"] == "New"
    assert stored["role"] == "senior_citizen"


def test_update_user_fields_without_editable_fields(datastore):
    repo = UserRepository(datastore)
    repo.save_user(User(id="u1"))

    with pytest.raises(ValueError, match="No editable fields"):
        repo.update_user_fields("u1", {"role": "admin"})


def test_new_primary_contact_demotes_existing(datastore):
    repo = UserRepository(datastore)
    repo.save_user(User(id="u1", emergency_contacts=[EmergencyContact(name="Ana", phone_number="0917")]))

    user = repo.add_emergency_contact("u1", EmergencyContact(name="Ben", phone_number="0918", is_primary=True))

    assert [c.is_primary for c in user.emergency_contacts] == [False, True]
    assert user.primary_emergency_contact().name == "Ben"


def test_remove_emergency_contact_by_phone(datastore):
    repo = UserRepository(datastore)
    repo.save_user(User(id="u1", emergency_contacts=[
        EmergencyContact(name="Ana", phone_number="0917"),
        EmergencyContact(name="Ben", phone_number="0918"),
    ]))

    user = repo.remove_emergency_contact("u1", "0917")

    assert [c.name for c in user.emergency_contacts] == ["Ben"]


def test_get_user_by_email(datastore):
    datastore.set_document("users", "u1", User(id="u1", email="a@example.com").to_map())
    repo = UserRepository(datastore)

    assert repo.get_user_by_email("a@example.com").id == "u1"
    assert repo.get_user_by_email("b@example.com") is None


def test_update_profile_image_without_storage(datastore):
    repo = UserRepository(datastore)
    repo.save_user(User(id="u1"))

    with pytest.raises(DatastoreError):
        repo.update_profile_image("u1", b"png", "image/png")


# Benefits

def test_seed_and_list_benefits(datastore):
    repo = BenefitsRepository(datastore)

    assert repo.seed_default_benefits() == len(DEFAULT_BENEFITS)
    assert repo.seed_default_benefits() == 0

    titles = [b.title for b in repo.get_available_benefits()]
    assert titles == sorted(titles)
    assert len(titles) == len(DEFAULT_BENEFITS)


def test_search_and_category(datastore):
    repo = BenefitsRepository(datastore)
    repo.seed_default_benefits()

    assert [b.id for b in repo.search_benefits("pension")] == ["dswd_social_pension"]
    assert {b.id for b in repo.get_benefits_by_category("Financial Support")} == {
        "dswd_social_pension", "annual_financial_assistance",
    }


def test_inactive_benefits_are_hidden(datastore):
    repo = BenefitsRepository(datastore)
    repo.save_benefit(Benefit(id="b1", title="Old", is_active=False), "admin1")

    assert repo.get_available_benefits() == []


def test_claim_benefit(datastore):
    repo = BenefitsRepository(datastore)

    claim = repo.claim_benefit("u1", "b1", "Pension")

    assert claim.status == "Processing"
    assert claim.application_number.startswith("APP-")
    assert [c.id for c in repo.get_claimed_benefits("u1")] == [claim.id]


def test_claim_requires_ids(datastore):
    with pytest.raises(ValueError):
        BenefitsRepository(datastore).claim_benefit("", "b1", "Pension")


def test_benefits_summary_uses_soonest_active_claim(datastore):
    repo = BenefitsRepository(datastore)
    repo.seed_default_benefits()
    soon = datetime(2025, 4, 5, 4, tzinfo=timezone.utc)
    later = soon + timedelta(days=10)
    for claim_id, status, date in (("c1", "Approved", later), ("c2", "Active", soon), ("c3", "Processing", None)):
        datastore.set_document("claimed_benefits", claim_id, {
            "userId": "u1", "status": status, "nextDisbursementDate": date,
        })

    assert repo.get_benefits_summary("u1") == (len(DEFAULT_BENEFITS), "5")
    assert repo.get_benefits_summary("u2") == (len(DEFAULT_BENEFITS), "TBD")


def test_update_disbursement_and_delete(datastore):
    repo = BenefitsRepository(datastore)
    saved = repo.save_benefit(Benefit(title="Pension"), "admin1")

    repo.update_benefit_disbursement(saved.id, datetime(2025, 5, 1, tzinfo=timezone.utc), "1000", "admin1")
    assert datastore.get_document("benefits", saved.id)["disbursementAmount"] == "1000"

    repo.delete_benefit(saved.id, "admin1")
    assert datastore.list_documents("benefits") == []


def test_is_user_admin(datastore):
    datastore.set_document("admin_users", "a1", {"email": "a@x.ph"})
    datastore.set_document("admin_users", "f1", {"role": "facilitator"})
    datastore.set_document("admin_users", "v1", {"role": "viewer"})
    datastore.set_document("users", "u1", {"role": "admin"})
    datastore.set_document("users", "s1", {"role": "senior_citizen"})
    repo = BenefitsRepository(datastore)

    assert repo.is_user_admin("a1")
    assert repo.is_user_admin("f1")
    assert repo.is_user_admin("u1")
    assert not repo.is_user_admin("v1")
    assert not repo.is_user_admin("s1")
    assert not repo.is_user_admin("nobody")


# Health

def test_health_records_newest_first(datastore):
    repo = HealthRepository(datastore)
    base = datetime(2025, 3, 1, tzinfo=timezone.utc)
    for day, value in ((1, "120/80"), (3, "130/85"), (2, "125/82")):
        repo.save_health_record("s1", HealthRecord(
            type="blood_pressure", value=value, timestamp=base + timedelta(days=day),
        ))

    assert [r.value for r in repo.get_health_records("s1")] == ["130/85", "125/82", "120/80"]
    assert repo.get_latest_health_records("s1")["blood_pressure"].value == "130/85"
    assert repo.get_health_statistics("s1") == {"blood_pressure": 3, "total": 3}


def test_health_record_requires_value(datastore):
    with pytest.raises(ValueError):
        HealthRepository(datastore).save_health_record("s1", HealthRecord(type="weight", value=" "))


def test_health_record_cached_when_write_fails(datastore):
    repo = HealthRepository(FailingWrites(datastore))

    saved = repo.save_health_record("s1", HealthRecord(type="weight", value="60"))

    assert saved.senior_id == "s1"
    assert repo._records_cache["s1"] == [saved]


def test_delete_health_record(datastore):
    repo = HealthRepository(datastore)
    saved = repo.save_health_record("s1", HealthRecord(type="weight", value="60"))

    repo.delete_health_record(saved.id)

    assert repo.get_health_records("s1") == []
    with pytest.raises(ValueError, match="Health record not found"):
        repo.delete_health_record(saved.id)


def test_delete_health_record_of_another_senior(datastore):
    repo = HealthRepository(datastore)
    saved = repo.save_health_record("s1", HealthRecord(type="weight", value="60"))

    with pytest.raises(DocumentNotFoundError):
        repo.delete_health_record(saved.id, "s2")

    assert [r.id for r in repo.get_health_records("s1")] == [saved.id]
    repo.delete_health_record(saved.id, "s1")
    assert repo.get_health_records("s1") == []


def test_health_summary(datastore):
    repo = HealthRepository(datastore)
    now = now_ms()
    stamp = datetime.fromtimestamp((now - DAY_MS) / 1000, tz=timezone.utc)
    repo.save_health_record("s1", HealthRecord(type="heart_rate", value="72", timestamp=stamp))
    repo.save_health_record("s1", HealthRecord(type="weight", value="58", timestamp=stamp))
    datastore.set_document("appointments", "a1", Appointment(
        user_id="s1", title="Checkup", appointment_type="checkup", status="completed",
        date_time=now - 10 * DAY_MS,
    ).to_map())
    datastore.set_document("appointments", "a2", Appointment(
        user_id="s1", title="Dentist", date_time=now + 2 * DAY_MS,
    ).to_map())
    datastore.set_document("emergency_alerts", "e1", {"userId": "s1", "status": "ACTIVE", "severity": "CRITICAL"})

    summary = repo.get_health_summary("s1", now)

    assert summary.heart_rate == "72"
    assert summary.weight == "58"
    assert summary.blood_pressure == "N/A"
    assert summary.records_this_week == 2
    assert summary.appointments_upcoming == 1
    assert summary.last_checkup_days == 10
    assert summary.alerts_count == 1
    assert summary.critical_alerts_count == 1


def test_save_appointment_validates(datastore):
    repo = HealthRepository(datastore)

    with pytest.raises(ValueError) as exc:
        repo.save_appointment("s1", Appointment(date_time=now_ms() + DAY_MS))

    assert "Appointment title is required; Doctor name is required; Facility name is required" == str(exc.value)


def test_upcoming_appointments_sorted(datastore):
    repo = HealthRepository(datastore)
    now = now_ms()
    for offset in (3, 1, 2):
        repo.save_appointment("s1", Appointment(
            title=f"Visit {offset}", doctor_name="Reyes", facility_name="SPMC", date_time=now + offset * DAY_MS,
        ))

    assert [a.title for a in repo.get_upcoming_appointments("s1", now)] == ["Visit 1", "Visit 2", "Visit 3"]


# Emergency

def test_emergency_services_sorted_by_priority(datastore):
    repo = EmergencyServiceRepository(datastore)
    repo.add_service(EmergencyService(name="Fire", priority=10), "admin1")
    repo.add_service(EmergencyService(name="911", priority=100), "admin1")
    hidden = repo.add_service(EmergencyService(name="Closed", priority=50, is_active=False), "admin1")

    assert [s.name for s in repo.list_services()] == ["911", "Fire"]
    assert len(repo.list_services(active_only=False)) == 3

    repo.update_service(hidden.id, {"isActive": True})
    assert [s.name for s in repo.list_services()] == ["911", "Closed", "Fire"]

    repo.delete_service(hidden.id)
    with pytest.raises(DocumentNotFoundError):
        repo.get_service(hidden.id)


def test_alert_requires_user(datastore):
    with pytest.raises(ValueError, match="User ID is required"):
        EmergencyAlertRepository(datastore).add_alert(EmergencyAlert())


def test_resolve_alert(datastore):
    repo = EmergencyAlertRepository(datastore)
    alert = repo.add_alert(EmergencyAlert(user_id="s1", type="SOS"))

    repo.resolve_alert(alert.id, "admin1", "Family reached the senior")

    stored = repo.get_alert(alert.id)
    assert stored.is_resolved()
    assert stored.resolved_by == "admin1"
    assert stored.resolved_at
    assert stored.resolution_notes == "Family reached the senior"


def test_list_alerts_filters(datastore):
    repo = EmergencyAlertRepository(datastore)
    repo.add_alert(EmergencyAlert(user_id="s1", timestamp=1000))
    repo.add_alert(EmergencyAlert(user_id="s2", timestamp=3000))
    latest = repo.add_alert(EmergencyAlert(user_id="s1", timestamp=2000))

    assert [a.timestamp for a in repo.list_alerts()] == [3000, 2000, 1000]
    assert [a.id for a in repo.list_alerts(user_id="s1", limit=1)] == [latest.id]
    assert repo.list_alerts(status="RESOLVED") == []


# Social

def test_social_services_crud(datastore):
    repo = SocialServiceRepository(datastore)
    saved = repo.add_service(SocialService(name="OSCA", phone_number="(082) 222-1234"))

    assert [s.name for s in repo.list_services()] == ["OSCA"]
    repo.update_service(saved.id, {"isActive": False})
    assert repo.list_services() == []
    repo.delete_service(saved.id)
    assert repo.list_services(active_only=False) == []


def test_social_features_defaults_and_updates(datastore):
    repo = SocialFeatureRepository(datastore)

    features = repo.get_features("u1")
    assert features
    feature_id = features[0].id

    repo.set_enabled("u1", feature_id, False)
    assert repo.enabled_count("u1") == len(features) - 1

    updated = repo.set_unread_count("u1", feature_id, 4)
    assert updated.has_unread_messages()
    assert repo.record_interaction("u1", feature_id).last_interaction > 0

    with pytest.raises(ValueError):
        repo.set_unread_count("u1", feature_id, -1)

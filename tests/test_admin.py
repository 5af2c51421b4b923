import csv
import io
import json
import threading
import time
from unittest.mock import MagicMock

import arrow
import pandas as pd
import pytest

from senior_core.admin.dashboard import DashboardService, age_group
from senior_core.admin.reports import ReportBuilder, ReportExporter
from senior_core.admin.seniors import CSV_COLUMNS, SeniorAdminService, verify_resident_or_senior
from senior_core.datastore.exceptions import DatastoreError, DocumentNotFoundError
from senior_core.utils import DAY_MS

TZ = "Asia/Manila"
NOW = int(arrow.get("2025-03-10T08:00:00+08:00").timestamp() * 1000)


@pytest.fixture
def populated(datastore):
    datastore.set_document("users", "s1", {
        "role": "senior_citizen", "firstName": "Nena", "lastName": "Reyes", "email": "nena@example.com",
        "createdAt": NOW - DAY_MS, "isActive": True, "accountVerified": True, "age": 65, "gender": "Male",
        "city": "Davao City", "barangay": "Bajada", "houseNumberAndStreet": "12 Rizal St",
        "medicalConditions": ["Diabetes", "Hypertension"], "medications": [{"name": "Metformin"}],
    })
    datastore.set_document("users", "s2", {
        "role": "senior_citizen", "firstName": "Pedro", "lastName": "Abad", "email": "pedro@example.com",
        "createdAt": "2025-01-05T00:00:00+00:00", "isActive": False, "age": 82, "gender": "female",
        "medicalConditions": ["Diabetes"],
    })
    datastore.set_document("users", "a1", {"role": "admin", "isVerified": True, "email": "admin@example.com"})
    datastore.set_document("admin_users", "a1", {"role": "admin", "email": "admin@example.com"})
    datastore.set_document("admin_users", "f1", {"role": "facilitator"})

    datastore.set_document("benefits", "b1", {"status": "Available", "isActive": True, "category": "Pension"})
    datastore.set_document("benefits", "b2", {"status": "Available", "isActive": False, "category": "Health"})
    datastore.set_document("benefits", "b3", {"status": "Pending", "isActive": True})
    datastore.set_document("claimed_benefits", "c1", {"userId": "s1"})

    datastore.set_document("emergency_alerts", "e1", {
        "seniorId": "s1", "type": "SOS", "status": "ACTIVE", "timestamp": NOW - 60 * 1000,
    })
    datastore.set_document("emergency_alerts", "e2", {
        "seniorId": "s2", "type": "SOS", "status": "RESOLVED", "timestamp": NOW - 3 * DAY_MS,
    })
    datastore.set_document("appointments", "p1", {
        "title": "Checkup", "doctorName": "Dr. Cruz", "dateTime": NOW + 2 * DAY_MS, "status": "scheduled",
    })
    datastore.set_document("appointments", "p2", {
        "title": "Dental", "dateTime": NOW - 2 * DAY_MS, "status": "completed",
    })
    datastore.set_document("activities", "act1", {"title": "Login", "timestamp": NOW - 60 * 60 * 1000})
    datastore.set_document("health_records", "h1", {"seniorId": "s1", "conditions": ["Diabetes"]})
    datastore.set_document("data_collection", "d1", {"seniorId": "s1"})
    return datastore


@pytest.mark.parametrize("age, group", [(59, None), (60, "60-69"), (79, "70-79"), (85, "80-89"), (101, "90+"),
                                        ("abc", None)])
def test_age_group(age, group):
    assert age_group(age) == group


def test_user_stats_for_admin_counts_seniors(populated):
    stats = DashboardService(populated, TZ).user_stats("admin", now=NOW)

    assert stats == {"newThisMonth": 1, "totalSeniors": 2, "activeSeniors": 1}


def test_user_stats_for_facilitator_counts_everyone(populated):
    stats = DashboardService(populated, TZ).user_stats("facilitator", now=NOW)

    assert stats == {"newThisMonth": 1, "totalSeniors": 3, "verifiedAccounts": 2}


def test_benefit_emergency_and_appointment_stats(populated):
    dashboard = DashboardService(populated, TZ)

    assert dashboard.benefit_stats() == {"totalBenefits": 3, "availableBenefits": 1, "totalClaimed": 1}
    assert dashboard.emergency_stats(NOW) == {"emergencyAlerts": 2, "recentEmergencies": 1, "activeEmergencies": 1}
    assert dashboard.appointment_stats(NOW) == {
        "totalAppointments": 2, "upcomingAppointments": 1, "completedAppointments": 1,
    }


def test_demographics(populated):
    data = DashboardService(populated, TZ).demographics()

    assert data["ageGroups"] == {"60-69": 1, "70-79": 0, "80-89": 1, "90+": 0}
    assert data["genderDistribution"] == {"Male": 1, "Female": 1}
    assert data["locationDistribution"] == {"Davao City": 1, "Unknown": 1}
    assert data["verifiedAccounts"] == 1


def test_recent_activities_newest_first(populated):
    items = DashboardService(populated, TZ).recent_activities()

    assert [(i["type"], i["title"]) for i in items] == [
        ("appointment", "Checkup"), ("activity", "Login"), ("appointment", "Dental"),
    ]
    assert items[0]["description"] == "With Dr. Cruz"
    assert items[2]["description"] == "With Doctor"


def test_load_includes_demographics_for_admin_roles(populated):
    dashboard = DashboardService(populated, TZ)

    assert "demographics" in dashboard.load("super_admin", now=NOW)
    assert "demographics" not in dashboard.load("", now=NOW)
    assert dashboard.load("admin", now=NOW)["healthAnalytics"]["topHealthConditions"] == [("Diabetes", 1)]


@pytest.mark.parametrize("data, passed", [
    ({"city": "Davao City", "barangay": "Bajada", "age": 40}, True),
    ({"city": "Davao City", "barangay": "", "age": 40}, False),
    ({"city": "Cebu", "age": 60}, True),
    ({"city": "Cebu", "age": "sixty"}, False),
    (None, False),
])
def test_verify_resident_or_senior(data, passed):
    assert verify_resident_or_senior(data)["passed"] is passed


def test_delete_user_requires_admin_role(populated):
    admin = SeniorAdminService(populated, TZ)

    with pytest.raises(PermissionError, match="Current role: facilitator"):
        admin.delete_user_completely("s1", "f1")
    with pytest.raises(PermissionError):
        admin.delete_user_completely("s1", "nobody")


def test_delete_user_removes_related_documents(populated):
    assert SeniorAdminService(populated, TZ).delete_user_completely("s1", "a1")

    with pytest.raises(DocumentNotFoundError):
        populated.get_document("users", "s1")
    assert populated.list_documents("health_records") == []
    assert populated.list_documents("data_collection") == []
    assert [a["id"] for a in populated.list_documents("emergency_alerts")] == ["e2"]
    record = populated.get_document("deleted_users", "s1")
    assert record["email"] == "nena@example.com"
    assert record["deletedBy"] == "a1"


def test_delete_user_falls_back_to_soft_delete(populated, monkeypatch):
    real_delete = populated.delete_document

    def failing_delete(collection, document_id):
        if collection == "users":
            raise DatastoreError("permission denied")
        real_delete(collection, document_id)

    monkeypatch.setattr(populated, "delete_document", failing_delete)

    assert SeniorAdminService(populated, TZ).delete_user_completely("s1", "a1") is False

    user = populated.get_document("users", "s1")
    assert user["isDeleted"] is True
    assert user["deleteError"] == "permission denied"


def test_list_seniors_hides_deleted(populated):
    populated.update_document("users", "s2", {"isDeleted": True})
    admin = SeniorAdminService(populated, TZ)

    assert [s["id"] for s in admin.list_seniors()] == ["s1"]
    assert [s["id"] for s in admin.list_seniors(include_deleted=True)] == ["s2", "s1"]


def test_toggle_and_verify(populated):
    admin = SeniorAdminService(populated, TZ)

    assert admin.toggle_status("s1") is False
    assert admin.toggle_status("s1") is True

    admin.verify_account("s2")
    user = populated.get_document("users", "s2")
    assert user["accountVerified"] is True
    assert user["accountVerifiedBy"] == "Unknown Admin"


def test_verify_resident_marks_profile(populated):
    verdict = SeniorAdminService(populated, TZ).verify_resident("s1")

    assert verdict == {"resident": True, "senior": True, "passed": True}
    assert populated.get_document("users", "s1")["isVerifiedResident"] is True


def test_check_email_exists(populated):
    admin = SeniorAdminService(populated, TZ)

    assert admin.check_email_exists("pedro@example.com")
    assert admin.check_email_exists("admin@example.com")
    assert not admin.check_email_exists("stranger@example.com")


def test_export_csv(populated):
    text = SeniorAdminService(populated, TZ).export_seniors_csv()

    rows = list(csv.DictReader(io.StringIO(text)))
    assert text.startswith('"Full Name","Email"')
    assert [r["Full Name"] for r in rows] == ["Pedro Abad", "Nena Reyes"]
    assert rows[1]["Address"] == "12 Rizal St, Bajada, Davao City"
    assert rows[1]["Status"] == "Active"
    assert rows[1]["Verification"] == "Verified"
    assert rows[1]["Created"] == "3/9/2025"
    assert SeniorAdminService(populated, TZ).export_seniors_csv([]) == ""


def test_reports(populated):
    builder = ReportBuilder(populated, DashboardService(populated, TZ))

    demographics = builder.build("demographics")
    health = builder.build("health")
    benefits = builder.build("benefits")
    full = builder.build("comprehensive", now=NOW)

    assert demographics["title"] == "Senior Citizens Demographics Report"
    assert demographics["data"]["totalSeniors"] == 2
    assert health["data"]["healthConditions"] == {"Diabetes": 2, "Hypertension": 1}
    assert health["data"]["medicationUsage"] == {"Metformin": 1}
    assert health["data"]["emergencyTypes"] == {"SOS": 2}
    assert benefits["data"]["benefitsByCategory"] == {"Pension": 1, "Health": 1, "Other": 1}
    assert benefits["data"]["benefitsByStatus"]["Available"] == 2
    assert full["activity"]["activityTrends"] == {"2025-03-09": 1}
    assert full["activity"]["appointmentTrends"] == {"2025-03-08": 1, "2025-03-12": 1}


def test_unknown_report_type(populated):
    with pytest.raises(ValueError, match="Invalid report type"):
        ReportBuilder(populated).build("finance")


def test_exporter_writes_files(config, tmp_path, populated):
    exporter = ReportExporter(config)
    frame = SeniorAdminService(populated, TZ).export_frame()

    json_path = exporter.save_report({"title": "T"}, "health")
    csv_path = exporter.save_csv(frame)

    assert json_path.startswith(str(tmp_path / "reports"))
    assert json_path.endswith(".json")
    with open(json_path, encoding="utf-8") as f:
        assert json.load(f) == {"title": "T"}
    with open(csv_path, encoding="utf-8") as f:
        saved = f.read()
    assert saved == SeniorAdminService(populated, TZ).export_seniors_csv()
    assert list(pd.read_csv(csv_path, dtype=str)["Full Name"]) == ["Pedro Abad", "Nena Reyes"]


def test_export_frame_columns_and_blanks(populated):
    populated.update_document("users", "s1", {"age": None})

    frame = SeniorAdminService(populated, TZ).export_frame()

    assert list(frame.columns) == list(CSV_COLUMNS)
    assert len(frame) == 2
    assert frame.loc[frame["Full Name"] == "Nena Reyes", "Age"].item() == ""
    assert SeniorAdminService(populated, TZ).export_frame([]).empty


def test_watch_refreshes_changed_panel(populated, monkeypatch):
    listeners = {}

    def on_snapshot(collection, callback):
        listeners[collection] = callback
        return MagicMock()

    monkeypatch.setattr(populated, "on_snapshot", on_snapshot)
    updates = []
    refreshed = threading.Event()

    def on_update(panel, figures):
        updates.append((panel, figures))
        refreshed.set()

    dashboard = DashboardService(populated, TZ)
    handles = dashboard.watch(on_update, "admin", wait=0.01)

    assert sorted(listeners) == ["activities", "benefits", "emergency_alerts", "users"]
    listeners["users"]([])
    listeners["users"]([])
    assert refreshed.wait(2)
    time.sleep(0.05)

    assert [panel for panel, _ in updates] == ["users"]
    assert updates[0][1]["totalSeniors"] == 2

    dashboard.stop_watching()
    for handle in handles:
        handle.unsubscribe.assert_called_once_with()


def test_watch_needs_listener_support(datastore):
    with pytest.raises(NotImplementedError):
        DashboardService(datastore, TZ).watch(lambda panel, figures: None)

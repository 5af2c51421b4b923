"""
'admin/reports.py': Analytics reports and their JSON and CSV export.
"""
import csv
import json
import logging
import os
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Optional

import arrow
import pandas as pd

from .dashboard import DashboardService
from ..config import Config
from ..datastore.base import BaseDatastore
from ..datastore.firestore.constants import (
    ACTIVITIES_COLLECTION,
    APPOINTMENTS_COLLECTION,
    BENEFITS_COLLECTION,
    CLAIMED_BENEFITS_COLLECTION,
    EMERGENCY_ALERTS_COLLECTION,
    USERS_COLLECTION,
)
from ..entities.benefit import BenefitStatus
from ..entities.user import UserRole
from ..utils import DAY_MS, now_ms, to_millis

logger = logging.getLogger(__name__)

REPORT_TITLES = {
    "demographics": "Senior Citizens Demographics Report",
    "health": "Senior Citizens Health Report",
    "benefits": "Benefits Distribution Report",
    "comprehensive": "Comprehensive Senior Citizens Report",
}

TREND_DAYS = 30


class ReportBuilder:
    """Builds the analytics reports offered to admins."""

    def __init__(self, datastore: BaseDatastore, dashboard: Optional[DashboardService] = None):
        self.datastore = datastore
        self.dashboard = dashboard or DashboardService(datastore)

    def demographics_data(self) -> Dict[str, Any]:
        return self.dashboard.demographics()

    def health_data(self) -> Dict[str, Any]:
        seniors = self.datastore.list_documents(
            USERS_COLLECTION, where=[("role", "==", UserRole.SENIOR_CITIZEN.value)]
        )
        conditions: Counter = Counter()
        medications: Counter = Counter()
        for senior in seniors:
            if isinstance(senior.get("medicalConditions"), list):
                conditions.update(senior["medicalConditions"])
            if isinstance(senior.get("medications"), list):
                medications.update((med or {}).get("name") or "Unknown" for med in senior["medications"])

        alerts = self.datastore.list_documents(EMERGENCY_ALERTS_COLLECTION)
        alert_types = Counter(alert.get("type") or "Unknown" for alert in alerts)
        return {
            "healthConditions": dict(conditions),
            "medicationUsage": dict(medications),
            "emergencyTypes": dict(alert_types),
            "totalEmergencies": len(alerts),
        }

    def benefits_data(self) -> Dict[str, Any]:
        benefits = self.datastore.list_documents(BENEFITS_COLLECTION)
        by_category: Counter = Counter()
        by_status = {status.value: 0 for status in BenefitStatus}
        for benefit in benefits:
            by_category[benefit.get("category") or "Other"] += 1
            status = benefit.get("status") or BenefitStatus.AVAILABLE.value
            by_status[status] = by_status.get(status, 0) + 1
        return {
            "benefitsByCategory": dict(by_category),
            "benefitsByStatus": by_status,
            "totalBenefits": len(benefits),
            "totalClaimed": len(self.datastore.list_documents(CLAIMED_BENEFITS_COLLECTION)),
        }

    def activity_data(self, now: Optional[int] = None) -> Dict[str, Any]:
        """Per-day counts (UTC date keys) of activities and appointments over the last 30 days."""
        now = now_ms() if now is None else now
        since = now - TREND_DAYS * DAY_MS
        activities = self.datastore.list_documents(ACTIVITIES_COLLECTION)
        appointments = self.datastore.list_documents(APPOINTMENTS_COLLECTION)

        def trend(docs, field):
            counts: Counter = Counter()
            for doc in docs:
                millis = to_millis(doc.get(field)) or now
                if millis >= since:
                    counts[arrow.get(millis / 1000).format("YYYY-MM-DD")] += 1
            return dict(sorted(counts.items()))

        return {
            "activityTrends": trend(activities, "timestamp"),
            "appointmentTrends": trend(appointments, "dateTime"),
            "totalActivities": len(activities),
            "totalAppointments": len(appointments),
        }

    def build(self, report_type: str, now: Optional[int] = None) -> Dict[str, Any]:
        """
        Build a report.

        Args:
            report_type (str): `demographics`, `health`, `benefits` or `comprehensive`.

        Returns:
            Dict[str, Any]: Report with `title`, `generatedAt` and its figures.

        Raises:
            ValueError: On an unknown report type.
        """
        if report_type not in REPORT_TITLES:
            raise ValueError("Invalid report type")

        report: Dict[str, Any] = {
            "title": REPORT_TITLES[report_type],
            "generatedAt": arrow.utcnow().isoformat(),
        }
        if report_type == "demographics":
            data = self.demographics_data()
            report["data"] = {
                "totalSeniors": data["totalSeniors"],
                "ageDistribution": data["ageGroups"],
                "genderDistribution": data["genderDistribution"],
                "locationDistribution": data["locationDistribution"],
            }
        elif report_type == "health":
            report["data"] = self.health_data()
        elif report_type == "benefits":
            report["data"] = self.benefits_data()
        else:
            report.update({
                "demographics": self.demographics_data(),
                "health": self.health_data(),
                "benefits": self.benefits_data(),
                "activity": self.activity_data(now),
            })
        logger.info(f"[build] Built '{report_type}' report")
        return report


class ReportExporter:
    """Writes reports to the configured reports directory."""

    def __init__(self, config: Config):
        """
        Initialize ReportExporter with configuration.

        Args:
            config: Configuration object with output settings
        """
        self.config = config
        self.logger = logger

    def export_to_json(self, report: Dict[str, Any], output_file: str) -> str:
        os.makedirs(os.path.dirname(output_file) or ".", exist_ok=True)
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)
        self.logger.info(f"[export_to_json] Report saved to: {output_file}")
        return output_file

    def save_report(self, report: Dict[str, Any], report_type: str) -> str:
        """
        Save a report as `<type>_report_<YYYY-MM-DD>.json` under the reports directory.

        Returns:
            Path to the saved file
        """
        output_dir = self.config.reports_output_dir
        os.makedirs(output_dir, exist_ok=True)
        filename = f"{report_type}_report_{datetime.now().strftime('%Y-%m-%d')}.json"
        return self.export_to_json(report, os.path.join(output_dir, filename))

    def save_csv(self, frame: pd.DataFrame, filename: str = "senior_citizens_data.csv") -> str:
        output_dir = self.config.reports_output_dir
        os.makedirs(output_dir, exist_ok=True)
        filepath = os.path.join(output_dir, filename)
        frame.to_csv(filepath, index=False, encoding="utf-8", quoting=csv.QUOTE_ALL, lineterminator="\n")
        self.logger.info(f"[save_csv] CSV saved to: {filepath}")
        return filepath

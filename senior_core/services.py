"""
'services.py': Wires repositories and services onto one datastore.

The HTTP app and the reminder worker each build one `Services` at startup; route handlers
reach it through `get_services`.
"""
import logging
from typing import Optional

from .admin.dashboard import DashboardService
from .admin.reports import ReportBuilder, ReportExporter
from .admin.seniors import SeniorAdminService
from .config import Config
from .datastore.base import BaseDatastore
from .datastore.registry import get_datastore
from .datastore.storage import ProfileImageStorage
from .emergency.alerts import EmergencyAlertService
from .emergency.sms import SemaphoreClient
from .notifications.messaging import MessagingService
from .reminders.receiver import ReminderReceiver
from .reminders.scheduler import ReminderScheduler
from .repositories.benefits import BenefitsRepository
from .repositories.emergency import EmergencyAlertRepository, EmergencyServiceRepository
from .repositories.health import HealthRepository
from .repositories.social import SocialFeatureRepository, SocialServiceRepository
from .repositories.users import UserRepository

logger = logging.getLogger(__name__)


class Services:
    def __init__(
            self,
            config: Config,
            datastore: BaseDatastore,
            scheduler: Optional[ReminderScheduler] = None,
            messaging: Optional[MessagingService] = None,
            image_storage: Optional[ProfileImageStorage] = None,
            sms_client: Optional[SemaphoreClient] = None,
            alert_service: Optional[EmergencyAlertService] = None,
    ):
        self.config = config
        self.datastore = datastore

        self.users = UserRepository(datastore, image_storage)
        self.benefits = BenefitsRepository(datastore)
        self.health = HealthRepository(datastore)
        self.emergency_services = EmergencyServiceRepository(datastore)
        self.alerts = EmergencyAlertRepository(datastore)
        self.social_services = SocialServiceRepository(datastore)
        self.social_features = SocialFeatureRepository(datastore)

        # Tokens are registered even when pushes are not configured
        self.messaging = messaging or MessagingService(datastore)
        self.scheduler = scheduler or ReminderScheduler(datastore, timezone=config.timezone)
        self.receiver = ReminderReceiver(self.scheduler, messaging)

        self.sms = sms_client or SemaphoreClient(
            api_key=config.semaphore_api_key,
            sender_name=config.semaphore_sender_name,
            test_mode=config.sms_test_mode,
        )
        self.alert_service = alert_service or EmergencyAlertService(
            self.alerts, config.sms_api_base_url, timezone=config.timezone
        )

        self.dashboard = DashboardService(datastore, timezone=config.timezone)
        self.seniors = SeniorAdminService(datastore, timezone=config.timezone)
        self.reports = ReportBuilder(datastore, self.dashboard)
        self.exporter = ReportExporter(config)

    @classmethod
    def from_config(cls, config: Config, reminders: Optional[dict] = None) -> "Services":
        """
        Build every service for the configured backend.

        Args:
            config (Config): Runtime configuration.
            reminders (dict): The `reminders` block of config.yaml (timezone, misfire grace time).
        """
        config.validate()
        datastore = get_datastore(config.datastore_backend, config.database_config())
        reminders = reminders or {}
        scheduler = ReminderScheduler(
            datastore,
            timezone=reminders.get("timezone") or config.timezone,
            misfire_grace_time=int(reminders.get("misfire_grace_time") or 300),
        )

        messaging = None
        image_storage = None
        if config.datastore_backend != "filesystem":
            from .datastore.firebase import get_firebase_app

            app = get_firebase_app(
                credentials_path=config.firebase_credentials_path or None,
                database_url=config.firebase_database_url or None,
                storage_bucket=config.storage_bucket or None,
            )
            messaging = MessagingService(datastore, app=app)
            if config.storage_bucket:
                image_storage = ProfileImageStorage(config.storage_bucket)

        logger.info(f"[from_config] Services ready on '{config.datastore_backend}'")
        return cls(config, datastore, scheduler=scheduler, messaging=messaging, image_storage=image_storage)


_services: Optional[Services] = None


def set_services(services: Optional[Services]) -> None:
    global _services
    _services = services


def get_services() -> Services:
    if _services is None:
        raise RuntimeError("Services not initialized. Server may need restart.")
    return _services

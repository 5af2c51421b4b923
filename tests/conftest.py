from unittest.mock import MagicMock

import pytest

from senior_core.config import Config
from senior_core.datastore.fss.service import FileSystemService
from senior_core.reminders.scheduler import ReminderScheduler
from senior_core.services import Services, set_services


@pytest.fixture
def datastore(tmp_path):
    return FileSystemService(base_path=str(tmp_path / "data"))


@pytest.fixture
def config(tmp_path):
    return Config(
        datastore_backend="filesystem",
        data_dir=str(tmp_path / "data"),
        semaphore_api_key="",
        sms_api_base_url="http://sms-proxy.test",
        reports_output_dir=str(tmp_path / "reports"),
        timezone="Asia/Manila",
        allowed_origins=[],
    )


@pytest.fixture
def job_scheduler():
    scheduler = MagicMock()
    scheduler.running = False
    return scheduler


@pytest.fixture
def reminder_scheduler(datastore, job_scheduler):
    return ReminderScheduler(datastore, scheduler=job_scheduler, timezone="Asia/Manila")


@pytest.fixture
def services(config, datastore, reminder_scheduler):
    services = Services(config, datastore, scheduler=reminder_scheduler)
    set_services(services)
    yield services
    set_services(None)

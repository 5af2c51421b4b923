"""
Reminder worker: restores persisted reminders and keeps their jobs running without the HTTP API.
"""
import argparse
import logging
import time

from dotenv import load_dotenv

from config.loader import get_database_config, get_reminders_config
from senior_core.config import Config
from senior_core.services import Services
from senior_core.utils import setup_logging

logger = logging.getLogger("senior_core.worker")


def build_services(config_path: str) -> Services:
    config = Config.from_env().with_database(get_database_config(config_path))
    setup_logging(config.log_level, config.log_file or None)
    return Services.from_config(config, get_reminders_config(config_path))


def run(services: Services, user_id: str = None, poll_seconds: float = 60.0) -> None:
    services.scheduler.start()
    restored = services.scheduler.restore(user_id)
    logger.info(f"[run] Reminder worker started with {restored} reminder(s)")
    try:
        while True:
            time.sleep(poll_seconds)
    except KeyboardInterrupt:
        logger.info("[run] Interrupted, stopping reminder worker")
    finally:
        services.scheduler.shutdown()


if __name__ == "__main__":
    load_dotenv()  # Load environment variables from .env file

    parser = argparse.ArgumentParser(description="SeniorHub reminder worker")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--user", default=None, help="Only restore reminders of this user")
    args = parser.parse_args()

    run(build_services(args.config), args.user)

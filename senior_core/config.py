"""
Configuration management for SeniorHub.
Handles environment variables, Firebase settings, SMS gateway settings and defaults.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Configuration class for the SeniorHub backend."""

    # Datastore Configuration
    datastore_backend: str = os.getenv("DATASTORE_BACKEND", "firestore")
    firebase_project_id: str = os.getenv("FIREBASE_PROJECT_ID", "")
    firebase_credentials_path: str = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")
    firebase_database_url: str = os.getenv("FIREBASE_DATABASE_URL", "")
    storage_bucket: str = os.getenv("FIREBASE_STORAGE_BUCKET", "")
    data_dir: str = os.getenv("SENIORHUB_DATA_DIR", "data")

    # SMS Configuration
    semaphore_api_key: str = os.getenv("SEMAPHORE_API_KEY", "")
    semaphore_sender_name: str = os.getenv("SEMAPHORE_SENDER_NAME", "SeniorHub")
    sms_api_base_url: str = os.getenv("SMS_API_BASE_URL", "")
    sms_test_mode: bool = _env_flag("SMS_TEST_MODE")

    # Runtime Configuration
    api_host: str = os.getenv("SENIORHUB_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("SENIORHUB_PORT", "8080"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    reports_output_dir: str = os.getenv("REPORTS_OUTPUT_DIR", "reports")
    timezone: str = os.getenv("SENIORHUB_TIMEZONE", "Asia/Manila")
    allowed_origins: List[str] = field(default_factory=lambda: [
        origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "").split(",") if origin.strip()
    ])

    def __post_init__(self):
        """Post-initialization setup."""
        self.datastore_backend = self.datastore_backend.lower()
        # Without a gateway key there is nothing to send through
        if not self.semaphore_api_key:
            self.sms_test_mode = True
        # The SMS proxy is served by this same app unless configured otherwise
        if not self.sms_api_base_url:
            self.sms_api_base_url = f"http://127.0.0.1:{self.api_port}"
        self.sms_api_base_url = self.sms_api_base_url.rstrip("/")

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls()

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "Config":
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config_dict.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def database_config(self) -> Dict[str, Any]:
        """The `database` block understood by `get_datastore`."""
        return {
            "type": self.datastore_backend,
            "project_id": self.firebase_project_id,
            "credentials_path": self.firebase_credentials_path,
            "database_url": self.firebase_database_url,
            "base_path": self.data_dir,
        }

    def with_database(self, block: Dict[str, Any]) -> "Config":
        """Overlay the `database` block of config.yaml; unset entries keep the current values."""
        mapping = {
            "type": "datastore_backend",
            "project_id": "firebase_project_id",
            "credentials_path": "firebase_credentials_path",
            "database_url": "firebase_database_url",
            "base_path": "data_dir",
        }
        overrides = {mapping[k]: v for k, v in (block or {}).items() if k in mapping and v}
        return Config.from_dict({**self.to_dict(), **overrides})

    def validate(self) -> bool:
        """Validate configuration."""
        if self.datastore_backend not in ("firestore", "rtdb", "filesystem"):
            raise ValueError(f"Unsupported datastore backend '{self.datastore_backend}'")

        if self.datastore_backend == "firestore" and not (self.firebase_project_id or self.firebase_credentials_path):
            raise ValueError("Configuration field 'firebase_project_id' is required for Firestore")

        if self.datastore_backend == "rtdb" and not self.firebase_database_url:
            raise ValueError("Configuration field 'firebase_database_url' is required for the Realtime Database")

        return True

"""
'datastore/registry.py': Builds the configured datastore backend.
"""
import logging
from typing import Any, Dict, Optional

from .base import BaseDatastore

logger = logging.getLogger(__name__)

BACKENDS = ("firestore", "rtdb", "filesystem")


def get_datastore(backend: str = "firestore", config: Optional[Dict[str, Any]] = None) -> BaseDatastore:
    """
    Create a datastore for the given backend.

    Args:
        backend (str): One of `firestore`, `rtdb` or `filesystem`.
        config (Dict[str, Any]): The `database` configuration block.

    Returns:
        BaseDatastore: The datastore instance.
    """
    config = dict(config or {})
    logger.info(f"[get_datastore] Using '{backend}' datastore")

    if backend == "firestore":
        from .firestore.service import FirestoreService

        credentials_path = config.get("credentials_path")
        if credentials_path:
            return FirestoreService(credentials_path=credentials_path)
        return FirestoreService(config=config)

    if backend == "rtdb":
        from .firebase import get_firebase_app
        from .rtdb.service import RealtimeDatabaseService

        app = get_firebase_app(
            credentials_path=config.get("credentials_path"),
            database_url=config.get("database_url"),
        )
        return RealtimeDatabaseService(app=app, root=config.get("root", ""))

    if backend == "filesystem":
        from .fss.service import FileSystemService

        return FileSystemService(base_path=config.get("base_path", "data/"))

    raise ValueError(f"Unknown datastore backend: {backend}. Expected one of {BACKENDS}")

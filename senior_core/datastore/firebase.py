"""
'datastore/firebase.py': Firebase Admin SDK initialization shared by RTDB, Storage and Cloud Messaging.
"""
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials

logger = logging.getLogger(__name__)


def get_firebase_app(
        credentials_path: Optional[str] = None,
        database_url: Optional[str] = None,
        storage_bucket: Optional[str] = None,
) -> firebase_admin.App:
    """
    Return the default Firebase app, initializing it on first use.

    Args:
        credentials_path (str): Service-account JSON. Falls back to Application Default Credentials.
        database_url (str): Realtime Database URL.
        storage_bucket (str): Default Cloud Storage bucket.

    Returns:
        firebase_admin.App: The initialized default app.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if credentials_path:
        cred = credentials.Certificate(credentials_path)
    else:
        # will use GOOGLE_APPLICATION_CREDENTIALS env var
        cred = credentials.ApplicationDefault()

    options = {}
    if database_url:
        options["databaseURL"] = database_url
    if storage_bucket:
        options["storageBucket"] = storage_bucket

    app = firebase_admin.initialize_app(cred, options or None)
    logger.info("[get_firebase_app] Firebase Admin initialized")
    return app

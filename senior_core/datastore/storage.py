"""
'datastore/storage.py': ProfileImageStorage uploads user profile pictures to Cloud Storage.
"""
import logging
from typing import Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import storage

from .exceptions import ERROR_MESSAGES, DatastoreError

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class ProfileImageStorage:
    def __init__(self, bucket_name: str, client: Optional[storage.Client] = None):
        if not bucket_name:
            raise ValueError("`bucket_name` is required for profile image storage.")
        self._storage_client = client or storage.Client()
        self.bucket_name = bucket_name

    @staticmethod
    def blob_name(user_id: str, content_type: str) -> str:
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type)
        if not extension:
            raise ValueError(f"Unsupported image type: {content_type}")
        return f"users/{user_id}/profile.{extension}"

    def upload_profile_image(self, user_id: str, data: bytes, content_type: str) -> str:
        """
        Upload a profile image and make it publicly readable.

        Args:
            user_id (str): Owner of the image.
            data (bytes): Raw image content.
            content_type (str): MIME type (jpeg, png or webp).

        Returns:
            str: Public URL of the uploaded image.

        Raises:
            ValueError: If the image is empty or of an unsupported type.
            DatastoreError: If Cloud Storage is unavailable.
        """
        if not user_id.strip() or not data:
            raise ValueError(ERROR_MESSAGES["invalid_input"])

        name = self.blob_name(user_id, content_type)
        try:
            bucket = self._storage_client.bucket(self.bucket_name)
            blob = bucket.blob(name)
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
            logger.info(f"[upload_profile_image] Uploaded {name} to {self.bucket_name}")
            return blob.public_url

        except GoogleAPIError as e:
            logger.error(f"[upload_profile_image] Google API error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

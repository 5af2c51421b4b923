"""
'repositories/users.py': UserRepository reads and writes senior profiles, answering from an
in-memory cache when the datastore is unreachable.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..datastore.base import BaseDatastore
from ..datastore.exceptions import DatastoreError, DocumentNotFoundError
from ..datastore.firestore.constants import USERS_COLLECTION
from ..datastore.storage import ProfileImageStorage
from ..entities.user import EmergencyContact, User

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found"

# Profile fields a senior may edit directly
EDITABLE_FIELDS = (
    "firstName", "lastName", "phoneNumber", "email", "houseNumberAndStreet", "barangay",
    "city", "province", "zipCode", "maritalStatus", "sssNumber", "gsisNumber", "oscaNumber",
    "philHealthNumber", "textSize", "highContrastMode", "voiceAssistanceEnabled",
    "profileImageUrl", "preferredLanguage", "notificationsEnabled", "largeButtonsEnabled",
)


class UserRepository:
    def __init__(self, datastore: BaseDatastore, image_storage: Optional[ProfileImageStorage] = None):
        self.datastore = datastore
        self.image_storage = image_storage
        self._cache: Dict[str, User] = {}

    def save_user(self, user: User) -> User:
        """
        Persist the full profile. A datastore failure is logged and the user is kept in the cache.
        """
        if not user.id.strip():
            raise ValueError("User ID cannot be empty")

        user.updated_at = datetime.now(timezone.utc)
        try:
            self.datastore.set_document(USERS_COLLECTION, user.id, user.to_map())
            logger.info(f"[save_user] Saved user {user.id}")
        except DatastoreError as e:
            logger.error(f"[save_user] Failed to save user {user.id}, keeping cached copy: {e}")
        self._cache[user.id] = user
        return user

    update_user = save_user

    def get_user(self, user_id: str) -> Optional[User]:
        """
        Return the user, or None when no such document exists.

        Raises:
            DatastoreError: When the datastore fails and no cached copy exists.
        """
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        try:
            data = self.datastore.get_document(USERS_COLLECTION, user_id)
        except DocumentNotFoundError:
            return None
        except DatastoreError as e:
            logger.error(f"[get_user] Failed to load user {user_id}: {e}")
            cached = self._cache.get(user_id)
            if cached is not None:
                return cached
            raise

        user = User.from_map(data)
        self._cache[user_id] = user
        return user

    def require_user(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise DocumentNotFoundError(USERS_COLLECTION, user_id)
        return user

    def update_user_fields(self, user_id: str, updates: Dict[str, Any]) -> User:
        """Apply a partial profile update. Unknown keys are ignored."""
        changes = {key: value for key, value in updates.items() if key in EDITABLE_FIELDS}
        if not changes:
            raise ValueError("No editable fields to update")

        user = self.require_user(user_id)
        merged = User.from_map({**user.to_map(), **changes})
        merged.updated_at = datetime.now(timezone.utc)
        self.datastore.update_document(USERS_COLLECTION, user_id, changes)
        self._cache[user_id] = merged
        logger.info(f"[update_user_fields] Updated {sorted(changes)} for user {user_id}")
        return merged

    def delete_user(self, user_id: str) -> None:
        self._cache.pop(user_id, None)
        self.datastore.delete_document(USERS_COLLECTION, user_id)

    def user_exists(self, user_id: str) -> bool:
        return self.get_user(user_id) is not None

    def add_emergency_contact(self, user_id: str, contact: EmergencyContact) -> User:
        """Append a contact; a new primary contact demotes the existing ones."""
        user = self.require_user(user_id)
        contacts: List[EmergencyContact] = list(user.emergency_contacts)
        if contact.is_primary:
            contacts = [existing.model_copy(update={"is_primary": False}) for existing in contacts]
        contacts.append(contact)
        user.emergency_contacts = contacts
        return self._store(user)

    def remove_emergency_contact(self, user_id: str, contact_key: str) -> User:
        """Remove contacts whose phone number or name equals `contact_key`."""
        user = self.require_user(user_id)
        user.emergency_contacts = [
            contact for contact in user.emergency_contacts
            if contact.phone_number != contact_key and contact.name != contact_key
        ]
        return self._store(user)

    def get_user_by_email(self, email: str) -> Optional[User]:
        for user in self._cache.values():
            if user.email == email:
                return user
        docs = self.datastore.list_documents(USERS_COLLECTION, where=[("email", "==", email)], limit=1)
        if not docs:
            return None
        user = User.from_map(docs[0])
        self._cache[user.id] = user
        return user

    def update_last_login(self, user_id: str) -> None:
        now = datetime.now(timezone.utc)
        self.datastore.update_document(USERS_COLLECTION, user_id, {"lastLogin": now})
        if user_id in self._cache:
            self._cache[user_id].last_login = now

    def update_profile_image(self, user_id: str, data: bytes, content_type: str) -> str:
        """Upload a new profile picture and store its public URL on the profile."""
        if self.image_storage is None:
            raise DatastoreError("Profile image storage is not configured")
        url = self.image_storage.upload_profile_image(user_id, data, content_type)
        self.datastore.update_document(USERS_COLLECTION, user_id, {"profileImageUrl": url})
        if user_id in self._cache:
            self._cache[user_id].profile_image_url = url
        return url

    def clear_cache(self) -> None:
        self._cache.clear()

    def _store(self, user: User) -> User:
        user.updated_at = datetime.now(timezone.utc)
        self.datastore.set_document(USERS_COLLECTION, user.id, user.to_map())
        self._cache[user.id] = user
        return user

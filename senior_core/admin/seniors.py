"""
'admin/seniors.py': Senior account administration.
"""
import csv
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from ..datastore.base import BaseDatastore
from ..datastore.exceptions import DatastoreError, DocumentNotFoundError
from ..datastore.firestore.constants import (
    ADMIN_ROLE,
    ADMIN_USERS_COLLECTION,
    DELETED_USERS_COLLECTION,
    USER_RELATED_COLLECTIONS,
    USERS_COLLECTION,
)
from ..entities.user import UserRole
from ..utils import DEFAULT_TIMEZONE, format_timestamp

logger = logging.getLogger(__name__)

RESIDENT_CITY = "davao city"
SENIOR_AGE = 60

CSV_COLUMNS = (
    "Full Name", "Email", "Phone", "Age", "Address", "OSCA Number", "Status", "Verification", "Created",
)


def frame_to_csv(frame: pd.DataFrame) -> str:
    """Quote every value; an empty table gives an empty string."""
    if frame.empty:
        return ""
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def is_resident(data: Dict[str, Any]) -> bool:
    city = str(data.get("city") or "").strip().lower()
    barangay = str(data.get("barangay") or "").strip()
    return bool(barangay) and city == RESIDENT_CITY


def is_senior(data: Dict[str, Any]) -> bool:
    try:
        return float(data.get("age") or 0) >= SENIOR_AGE
    except (TypeError, ValueError):
        return False


def verify_resident_or_senior(data: Optional[Dict[str, Any]]) -> Dict[str, bool]:
    """A Davao City resident (city and barangay given) or anyone aged 60 and over passes."""
    if not data:
        return {"resident": False, "senior": False, "passed": False}
    resident = is_resident(data)
    senior = is_senior(data)
    return {"resident": resident, "senior": senior, "passed": resident or senior}


class SeniorAdminService:
    """Admin operations on senior accounts in `users`."""

    def __init__(self, datastore: BaseDatastore, timezone: str = DEFAULT_TIMEZONE):
        self.datastore = datastore
        self.timezone = timezone

    def list_seniors(self, include_deleted: bool = False) -> List[Dict[str, Any]]:
        seniors = self.datastore.list_documents(
            USERS_COLLECTION, where=[("role", "==", UserRole.SENIOR_CITIZEN.value)]
        )
        if not include_deleted:
            seniors = [senior for senior in seniors if not senior.get("isDeleted")]
        return sorted(seniors, key=lambda s: (s.get("lastName") or "", s.get("firstName") or ""))

    def _admin_role(self, admin_uid: str) -> str:
        try:
            admin = self.datastore.get_document(ADMIN_USERS_COLLECTION, admin_uid)
        except DocumentNotFoundError:
            raise PermissionError("Current user is not an admin")
        return str(admin.get("role") or "").strip().lower()

    def delete_user_completely(self, user_id: str, admin_uid: str) -> bool:
        """
        Remove a senior and the documents keyed to them.

        Related documents are deleted best-effort, one collection at a time. When the user
        document itself cannot be deleted it is marked `isDeleted` instead.

        Returns:
            bool: True when the user document was deleted, False when it was soft-deleted.

        Raises:
            PermissionError: If `admin_uid` is not an admin.
            DocumentNotFoundError: If the user does not exist.
        """
        role = self._admin_role(admin_uid)
        if role != ADMIN_ROLE:
            raise PermissionError(f"Insufficient permissions. Required role: admin. Current role: {role}")

        user = self.datastore.get_document(USERS_COLLECTION, user_id)
        email = user.get("email")

        for collection in USER_RELATED_COLLECTIONS:
            try:
                deleted = self.datastore.delete_where(collection, "seniorId", user_id)
                logger.info(f"[delete_user_completely] Deleted {deleted} document(s) from '{collection}'")
            except DatastoreError as e:
                logger.warning(f"[delete_user_completely] Failed to delete from '{collection}': {e}")

        now = datetime.now(timezone.utc)
        if email:
            self.datastore.set_document(DELETED_USERS_COLLECTION, user_id, {
                "originalUserId": user_id,
                "email": email,
                "deletedAt": now,
                "deletedBy": admin_uid,
                "reason": "Admin deletion",
            })

        try:
            self.datastore.delete_document(USERS_COLLECTION, user_id)
        except DatastoreError as delete_error:
            logger.error(f"[delete_user_completely] Delete failed, marking {user_id} as deleted: {delete_error}")
            try:
                self.datastore.update_document(USERS_COLLECTION, user_id, {
                    "isDeleted": True,
                    "deletedAt": now,
                    "deletedBy": admin_uid,
                    "originalEmail": email,
                    "deleteError": delete_error.message,
                })
            except DatastoreError as update_error:
                raise DatastoreError(
                    f"Both delete and update failed. Delete error: {delete_error.message}. "
                    f"Update error: {update_error.message}",
                    cause=update_error,
                )
            return False

        logger.info(f"[delete_user_completely] User {user_id} deleted by {admin_uid}")
        return True

    def toggle_status(self, user_id: str) -> bool:
        """Flip `isActive`. Returns the new status."""
        user = self.datastore.get_document(USERS_COLLECTION, user_id)
        status = not bool(user.get("isActive", True))
        self.datastore.update_document(USERS_COLLECTION, user_id, {"isActive": status})
        logger.info(f"[toggle_status] User {user_id} {'activated' if status else 'deactivated'}")
        return status

    def verify_account(self, user_id: str, admin_email: str = "") -> None:
        self.datastore.update_document(USERS_COLLECTION, user_id, {
            "accountVerified": True,
            "accountVerifiedAt": datetime.now(timezone.utc),
            "accountVerifiedBy": admin_email or "Unknown Admin",
            "verificationStatus": "verified",
        })
        logger.info(f"[verify_account] User {user_id} verified by {admin_email or 'Unknown Admin'}")

    def verify_resident(self, user_id: str) -> Dict[str, bool]:
        """Run the residency check on a stored profile; a pass marks it `isVerifiedResident`."""
        verdict = verify_resident_or_senior(self.datastore.get_document(USERS_COLLECTION, user_id))
        if verdict["passed"]:
            self.datastore.update_document(USERS_COLLECTION, user_id, {
                "isVerifiedResident": True,
                "verifiedAt": datetime.now(timezone.utc),
            })
        return verdict

    def check_email_exists(self, email: str) -> bool:
        """True when `email` belongs to a user or an admin account."""
        for collection in (USERS_COLLECTION, ADMIN_USERS_COLLECTION):
            try:
                if self.datastore.list_documents(collection, where=[("email", "==", email)], limit=1):
                    return True
            except DatastoreError as e:
                # An unreadable collection must not block registration
                logger.error(f"[check_email_exists] Error checking '{collection}': {e}")
        return False

    def export_rows(self, seniors: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        seniors = self.list_seniors() if seniors is None else seniors
        rows = []
        for senior in seniors:
            address = ", ".join(
                str(senior.get(key) or "") for key in ("houseNumberAndStreet", "barangay", "city")
            )
            rows.append({
                "Full Name": f"{senior.get('firstName', '')} {senior.get('lastName', '')}",
                "Email": senior.get("email", ""),
                "Phone": senior.get("phoneNumber", ""),
                "Age": senior.get("age", ""),
                "Address": address,
                "OSCA Number": senior.get("oscaNumber", ""),
                "Status": "Active" if senior.get("isActive") else "Inactive",
                "Verification": "Verified" if senior.get("accountVerified") else "Unverified",
                "Created": format_timestamp(senior.get("createdAt"), "M/D/YYYY", "", self.timezone),
            })
        return rows

    def export_frame(self, seniors: Optional[List[Dict[str, Any]]] = None) -> pd.DataFrame:
        """The export table, one row per senior in `CSV_COLUMNS` order."""
        rows = [{k: ("" if v is None else v) for k, v in row.items()} for row in self.export_rows(seniors)]
        return pd.DataFrame(rows, columns=list(CSV_COLUMNS), dtype=object)

    def export_seniors_csv(self, seniors: Optional[List[Dict[str, Any]]] = None) -> str:
        """CSV text with every value quoted; empty when there are no seniors."""
        return frame_to_csv(self.export_frame(seniors))

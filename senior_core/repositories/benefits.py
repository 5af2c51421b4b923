"""
'repositories/benefits.py': BenefitsRepository lists, claims and administers government benefits.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from ..datastore.base import BaseDatastore
from ..datastore.exceptions import DatastoreError, DocumentNotFoundError
from ..datastore.firestore.constants import (
    ADMIN_ROLE,
    ADMIN_ROLES,
    ADMIN_USERS_COLLECTION,
    BENEFITS_COLLECTION,
    CLAIMED_BENEFITS_COLLECTION,
    USERS_COLLECTION,
)
from ..entities.benefit import Benefit, ClaimStatus, ClaimedBenefit
from ..utils import now_ms, to_millis

logger = logging.getLogger(__name__)

DEFAULT_BENEFITS = [
    {
        "id": "medical_service_assistance",
        "title": "Medical Service Assistance",
        "category": "Medical Assistance",
        "amount": "Free",
        "description": "Free medical consultation and healthcare services for senior citizens in Davao City",
        "requirements": "Senior Citizen ID, valid ID, proof of residence in Davao City",
        "applicationProcess": "Visit DCMC or any participating health center with required documents",
        "contactInfo": "DCMC: (082) 227-2731, JP Laurel Ave, Bajada",
        "disbursementAmount": "0",
    },
    {
        "id": "dswd_social_pension",
        "title": "DSWD Social Pension",
        "category": "Financial Support",
        "amount": "500",
        "description": "₱500 monthly cash assistance for indigent senior citizens",
        "requirements": "Senior Citizen ID, valid ID, proof of indigency, barangay certification",
        "applicationProcess": "Submit application at DSWD Field Office XI with required documents",
        "contactInfo": "DSWD Field Office XI: (082) 224-1234, JP Laurel Ave, Bajada",
        "website": "https://www.dswd.gov.ph",
        "disbursementAmount": "500",
        "disbursementInDays": 15,
    },
    {
        "id": "dswd_food_assistance",
        "title": "DSWD Food Assistance Program",
        "category": "Food Assistance",
        "amount": "Monthly Food Pack",
        "description": "Monthly food packs and nutritional support for senior citizens",
        "requirements": "Senior Citizen ID, valid ID, proof of need, barangay certification",
        "applicationProcess": "Register at DSWD Field Office XI or through barangay",
        "contactInfo": "DSWD Field Office XI: (082) 224-1234, JP Laurel Ave, Bajada",
        "website": "https://www.dswd.gov.ph",
        "disbursementAmount": "0",
        "disbursementInDays": 7,
    },
    {
        "id": "davao_housing_program",
        "title": "Davao City Housing Program for Seniors",
        "category": "Housing Support",
        "amount": "Varies",
        "description": "Housing assistance and emergency shelter for senior citizens",
        "requirements": "Senior Citizen ID, valid ID, proof of housing need, income certificate",
        "applicationProcess": "Submit application at City Housing Office with required documents",
        "contactInfo": "City Housing Office: (082) 222-1234, City Hall",
        "disbursementAmount": "0",
    },
    {
        "id": "annual_financial_assistance",
        "title": "Annual Financial Assistance",
        "category": "Financial Support",
        "amount": "3000",
        "description": "₱3,000 yearly cash assistance during Christmas season",
        "requirements": "Senior Citizen ID, valid ID, proof of residence in Davao City",
        "applicationProcess": "Register at OSCA Davao during application period",
        "contactInfo": "OSCA Davao: (082) 222-1234, City Hall Ground Floor",
        "disbursementAmount": "3000",
    },
    {
        "id": "senior_citizen_discount",
        "title": "Senior Citizen Discount",
        "category": "Utility Discounts",
        "amount": "20%",
        "description": "20% discount on utilities, medicines, and transportation for senior citizens",
        "requirements": "Senior Citizen ID, valid ID",
        "applicationProcess": "Present Senior Citizen ID at participating establishments",
        "contactInfo": "OSCA Davao: (082) 222-1234, City Hall Ground Floor",
        "disbursementAmount": "0",
    },
]


class BenefitsRepository:
    def __init__(self, datastore: BaseDatastore):
        self.datastore = datastore
        self._benefits_cache: List[Benefit] = []
        self._claims_cache: Dict[str, List[ClaimedBenefit]] = {}

    def get_available_benefits(self) -> List[Benefit]:
        """Active benefits ordered by title. Falls back to the last successful listing."""
        try:
            docs = self.datastore.list_documents(BENEFITS_COLLECTION, where=[("isActive", "==", True)])
        except DatastoreError as e:
            logger.error(f"[get_available_benefits] Failed to load benefits: {e}")
            if self._benefits_cache:
                return list(self._benefits_cache)
            raise

        benefits = []
        for doc in docs:
            try:
                benefits.append(Benefit.from_map(doc))
            except ValueError as e:
                logger.warning(f"[get_available_benefits] Skipping malformed benefit {doc.get('id')}: {e}")
        benefits.sort(key=lambda b: b.title)
        self._benefits_cache = benefits
        return benefits

    def search_benefits(self, query: str) -> List[Benefit]:
        needle = query.strip().lower()
        return [
            benefit for benefit in self.get_available_benefits()
            if needle in benefit.title.lower()
            or needle in benefit.description.lower()
            or needle in benefit.category.lower()
        ]

    def get_benefits_by_category(self, category: str) -> List[Benefit]:
        return [benefit for benefit in self.get_available_benefits() if benefit.category == category]

    def get_claimed_benefits(self, user_id: str) -> List[ClaimedBenefit]:
        try:
            docs = self.datastore.list_documents(CLAIMED_BENEFITS_COLLECTION, where=[("userId", "==", user_id)])
        except DatastoreError as e:
            logger.error(f"[get_claimed_benefits] Failed to load claims of {user_id}: {e}")
            if user_id in self._claims_cache:
                return list(self._claims_cache[user_id])
            raise

        claims = [ClaimedBenefit.from_map(doc) for doc in docs]
        claims.sort(key=lambda c: to_millis(c.claim_date), reverse=True)
        self._claims_cache[user_id] = claims
        return claims

    def claim_benefit(self, user_id: str, benefit_id: str, benefit_title: str) -> ClaimedBenefit:
        """Record a claim with status Processing and an `APP-<ms>` application number."""
        if not user_id.strip() or not benefit_id.strip():
            raise ValueError("User ID and benefit ID are required")

        claim = ClaimedBenefit(
            id=str(uuid.uuid4()),
            user_id=user_id,
            benefit_id=benefit_id,
            benefit_title=benefit_title,
            status=ClaimStatus.PROCESSING.value,
            application_number=f"APP-{now_ms()}",
        )
        self.datastore.set_document(CLAIMED_BENEFITS_COLLECTION, claim.id, claim.to_map())
        self._claims_cache.setdefault(user_id, []).insert(0, claim)
        logger.info(f"[claim_benefit] User {user_id} claimed benefit {benefit_id} ({claim.application_number})")
        return claim

    def save_benefit(self, benefit: Benefit, admin_user_id: str) -> Benefit:
        saved = benefit.model_copy(update={
            "id": benefit.id or str(uuid.uuid4()),
            "created_by": admin_user_id,
            "updated_at": datetime.now(timezone.utc),
        })
        self.datastore.set_document(BENEFITS_COLLECTION, saved.id, saved.to_map())
        logger.info(f"[save_benefit] Benefit '{saved.title}' saved by admin {admin_user_id}")
        return saved

    def update_benefit_disbursement(
            self,
            benefit_id: str,
            next_disbursement_date: datetime,
            disbursement_amount: str,
            admin_user_id: str,
    ) -> None:
        self.datastore.update_document(BENEFITS_COLLECTION, benefit_id, {
            "nextDisbursementDate": next_disbursement_date,
            "disbursementAmount": disbursement_amount,
        })
        logger.info(f"[update_benefit_disbursement] Benefit {benefit_id} updated by admin {admin_user_id}")

    def delete_benefit(self, benefit_id: str, admin_user_id: str) -> None:
        self.datastore.delete_document(BENEFITS_COLLECTION, benefit_id)
        self._benefits_cache = [b for b in self._benefits_cache if b.id != benefit_id]
        logger.info(f"[delete_benefit] Benefit {benefit_id} deleted by admin {admin_user_id}")

    def get_benefits_summary(self, user_id: str) -> Tuple[int, str]:
        """
        Returns:
            Tuple[int, str]: Number of available benefits and the day of the soonest
            disbursement among approved or active claims ("TBD" when none).
        """
        try:
            available = self.get_available_benefits()
            claims = self.get_claimed_benefits(user_id)
        except DatastoreError as e:
            logger.error(f"[get_benefits_summary] {e}")
            return 0, "TBD"

        scheduled = [c for c in claims if c.is_approved_and_active()]
        if not scheduled:
            return len(available), "TBD"
        soonest = min(scheduled, key=lambda c: to_millis(c.next_disbursement_date) or float("inf"))
        return len(available), soonest.formatted_next_disbursement()

    def is_user_admin(self, user_id: str) -> bool:
        """An admin has an `admin_users` record with an admin role, or the admin role on the profile."""
        for collection, allowed in ((ADMIN_USERS_COLLECTION, ADMIN_ROLES), (USERS_COLLECTION, (ADMIN_ROLE,))):
            try:
                doc = self.datastore.get_document(collection, user_id)
            except DocumentNotFoundError:
                continue
            role = str(doc.get("role", ADMIN_ROLE if collection == ADMIN_USERS_COLLECTION else "")).lower()
            if role in allowed:
                return True
        return False

    def seed_default_benefits(self, admin_user_id: str = "admin") -> int:
        """Write the default Davao City benefits when the collection is empty. Returns the count written."""
        if self.datastore.list_documents(BENEFITS_COLLECTION, limit=1):
            return 0

        now = datetime.now(timezone.utc)
        for entry in DEFAULT_BENEFITS:
            data = dict(entry)
            days = data.pop("disbursementInDays", None)
            next_date: Optional[datetime] = now + timedelta(days=days) if days else None
            benefit = Benefit.from_map({**data, "nextDisbursementDate": next_date, "createdBy": admin_user_id})
            self.datastore.set_document(BENEFITS_COLLECTION, benefit.id, benefit.to_map())
        logger.info(f"[seed_default_benefits] Seeded {len(DEFAULT_BENEFITS)} default benefits")
        return len(DEFAULT_BENEFITS)

"""senior_core/entities/benefit.py"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import Entity
from ..utils import DEFAULT_TIMEZONE, format_amount, format_timestamp


class BenefitStatus(str, Enum):
    AVAILABLE = "Available"
    ACTIVE = "Active"
    PENDING = "Pending"
    DISCONTINUED = "Discontinued"


class ClaimStatus(str, Enum):
    CLAIMED = "Claimed"
    PROCESSING = "Processing"
    APPROVED = "Approved"
    DENIED = "Denied"
    ACTIVE = "Active"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Benefit(Entity):
    """A government benefit senior citizens can claim."""
    id: str = ""
    title: str = ""
    description: str = ""
    category: str = Field(default="", description="Social Security, Medicare, Housing, Food, Transportation, ...")
    status: str = BenefitStatus.AVAILABLE.value
    amount: str = Field(default="", description="Monthly amount or benefit value")
    requirements: str = ""
    application_process: str = ""
    contact_info: str = ""
    website: str = ""
    is_active: bool = True
    created_by: str = Field(default="", description="Admin user ID who created this benefit")
    created_at: Optional[datetime] = Field(default_factory=_now)
    updated_at: Optional[datetime] = Field(default_factory=_now)
    next_disbursement_date: Optional[datetime] = None
    disbursement_amount: str = ""

    def formatted_amount(self) -> str:
        return format_amount(self.amount, "Contact for details")

    def formatted_disbursement_amount(self) -> str:
        return format_amount(self.disbursement_amount, "TBD")

    def formatted_next_disbursement(self, tz: str = DEFAULT_TIMEZONE) -> str:
        """Day of month of the next disbursement, or TBD."""
        return format_timestamp(self.next_disbursement_date, "D", "TBD", tz)

    def is_claimable(self) -> bool:
        return self.status == BenefitStatus.AVAILABLE.value and self.is_active

    def is_currently_active(self) -> bool:
        return self.status == BenefitStatus.ACTIVE.value and self.is_active


class ClaimedBenefit(Entity):
    """A benefit claimed by a senior; `benefit_title` is cached for display."""
    id: str = ""
    user_id: str = ""
    benefit_id: str = ""
    benefit_title: str = ""
    claim_date: Optional[datetime] = Field(default_factory=_now)
    status: str = ClaimStatus.CLAIMED.value
    amount: str = ""
    notes: str = ""
    application_number: str = ""
    next_disbursement_date: Optional[datetime] = None
    disbursement_amount: str = ""
    is_active: bool = True
    created_at: Optional[datetime] = Field(default_factory=_now)
    updated_at: Optional[datetime] = Field(default_factory=_now)

    def formatted_claim_date(self, tz: str = DEFAULT_TIMEZONE) -> str:
        return format_timestamp(self.claim_date, "M/D/YYYY", "", tz)

    def formatted_amount(self) -> str:
        return format_amount(self.amount, "TBD")

    def formatted_disbursement_amount(self) -> str:
        return format_amount(self.disbursement_amount, "TBD")

    def formatted_next_disbursement(self, tz: str = DEFAULT_TIMEZONE) -> str:
        return format_timestamp(self.next_disbursement_date, "D", "TBD", tz)

    def is_approved_and_active(self) -> bool:
        return self.status in (ClaimStatus.APPROVED.value, ClaimStatus.ACTIVE.value)

    def is_processing(self) -> bool:
        return self.status in (ClaimStatus.PROCESSING.value, ClaimStatus.CLAIMED.value)

    def status_color(self) -> str:
        if self.is_approved_and_active():
            return "green"
        if self.is_processing():
            return "orange"
        if self.status == ClaimStatus.DENIED.value:
            return "red"
        return "gray"

"""senior_core/entities/social.py"""
import re
from typing import List

from pydantic import Field

from .base import Entity, LenientEnum
from ..utils import DAY_MS, now_ms

PHONE_PATTERN = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


class SocialFeatureType(LenientEnum):
    MESSAGES = "MESSAGES"
    VIDEO_CALL = "VIDEO_CALL"
    EVENTS = "EVENTS"
    GROUPS = "GROUPS"
    PHOTOS = "PHOTOS"
    MEMORIES = "MEMORIES"
    EMERGENCY = "EMERGENCY"
    SUPPORT = "SUPPORT"

    @classmethod
    def default(cls):
        return cls.MESSAGES

    @property
    def display_name(self) -> str:
        return _FEATURE_INFO[self][0]

    @property
    def description(self) -> str:
        return _FEATURE_INFO[self][1]

    @property
    def requires_internet(self) -> bool:
        return self not in (SocialFeatureType.MESSAGES, SocialFeatureType.EMERGENCY, SocialFeatureType.SUPPORT)


_FEATURE_INFO = {
    SocialFeatureType.MESSAGES: ("Messages", "Stay in touch with family and friends through simple messaging"),
    SocialFeatureType.VIDEO_CALL: ("Video Calls", "See and talk to your loved ones face-to-face"),
    SocialFeatureType.EVENTS: ("Community Events", "Find and join community activities and events"),
    SocialFeatureType.GROUPS: ("Groups", "Connect with other seniors in your area"),
    SocialFeatureType.PHOTOS: ("Photo Sharing", "Share and view photos with your family"),
    SocialFeatureType.MEMORIES: ("Memories", "Share stories and memories with loved ones"),
    SocialFeatureType.EMERGENCY: ("Emergency Contacts", "Quick access to emergency contacts and family"),
    SocialFeatureType.SUPPORT: ("Support Groups", "Get support from peers and community members"),
}


class SocialFeature(Entity):
    """A social feature tile of a user. Timestamps are epoch milliseconds."""
    id: str = ""
    title: str = ""
    description: str = ""
    type: SocialFeatureType = SocialFeatureType.MESSAGES
    last_interaction: int = 0
    unread_count: int = 0
    is_enabled: bool = True
    participants: List[str] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    @classmethod
    def for_type(cls, feature_type: SocialFeatureType) -> "SocialFeature":
        return cls(
            id=feature_type.value.lower(),
            title=feature_type.display_name,
            description=feature_type.description,
            type=feature_type,
        )

    def participant_count(self) -> int:
        return len(self.participants)

    def has_unread_messages(self) -> bool:
        return self.unread_count > 0

    def is_recently_active(self, now=None) -> bool:
        now = now_ms() if now is None else now
        return self.last_interaction > now - DAY_MS

    def with_updated_interaction(self) -> "SocialFeature":
        stamp = now_ms()
        return self.model_copy(update={"last_interaction": stamp, "updated_at": stamp})

    def with_unread_count(self, count: int) -> "SocialFeature":
        return self.model_copy(update={"unread_count": count, "updated_at": now_ms()})


class SocialService(Entity):
    """A community or government social service; `contact` is free text."""
    id: str = ""
    name: str = ""
    address: str = ""
    contact: str = ""
    phone_number: str = ""
    email: str = ""
    services_offered: str = Field(default="", description="One service per line")
    service_type: str = "GOVERNMENT"
    office_hours: str = ""
    notes: str = ""
    website: str = ""
    is_active: bool = True
    priority: int = 0

    def formatted_phone_number(self) -> str:
        if self.phone_number.strip():
            return self.phone_number
        match = PHONE_PATTERN.search(self.contact)
        return match.group(0) if match else ""

    def formatted_email(self) -> str:
        if self.email.strip():
            return self.email
        match = EMAIL_PATTERN.search(self.contact)
        return match.group(0) if match else ""

    def has_phone_number(self) -> bool:
        return bool(self.formatted_phone_number().strip())

    def has_email(self) -> bool:
        return bool(self.formatted_email().strip())

    def has_address(self) -> bool:
        return bool(self.address.strip())

    def services_list(self) -> List[str]:
        return [line.strip() for line in self.services_offered.split("\n") if line.strip()]

"""
'repositories/social.py': social service directory and per-user social features.
"""
import logging
from typing import Any, Dict, List

from ..datastore.base import BaseDatastore
from ..datastore.firestore.constants import SOCIAL_FEATURES_COLLECTION, SOCIAL_SERVICES_COLLECTION
from ..entities.social import SocialFeature, SocialFeatureType, SocialService
from ..utils import now_ms

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = (
    (SocialFeatureType.MESSAGES, "Messages", "Chat with family and friends"),
    (SocialFeatureType.VIDEO_CALL, "Video Calls", "Make video calls to your loved ones"),
    (SocialFeatureType.EVENTS, "Events", "View and manage upcoming events"),
    (SocialFeatureType.GROUPS, "Groups", "Join community groups"),
)


class SocialServiceRepository:
    def __init__(self, datastore: BaseDatastore):
        self.datastore = datastore

    def list_services(self, active_only: bool = True) -> List[SocialService]:
        """Services ordered by descending priority, then name."""
        where = [("isActive", "==", True)] if active_only else None
        services = [SocialService.from_map(doc) for doc in self.datastore.list_documents(SOCIAL_SERVICES_COLLECTION, where=where)]
        services.sort(key=lambda s: (-s.priority, s.name))
        return services

    def get_service(self, service_id: str) -> SocialService:
        return SocialService.from_map(self.datastore.get_document(SOCIAL_SERVICES_COLLECTION, service_id))

    def add_service(self, service: SocialService) -> SocialService:
        if not service.name.strip():
            raise ValueError("Service name is required")
        data = service.to_map()
        data.pop("id", None)
        service_id = self.datastore.add_document(SOCIAL_SERVICES_COLLECTION, data)
        logger.info(f"[add_service] Added social service '{service.name}' <{service_id}>")
        return service.model_copy(update={"id": service_id})

    def update_service(self, service_id: str, updates: Dict[str, Any]) -> None:
        updates = {k: v for k, v in updates.items() if k != "id"}
        self.datastore.update_document(SOCIAL_SERVICES_COLLECTION, service_id, updates)

    def delete_service(self, service_id: str) -> None:
        self.datastore.delete_document(SOCIAL_SERVICES_COLLECTION, service_id)


class SocialFeatureRepository:
    """Social features of a user, stored as `social_features/<userId>_<featureId>`."""

    def __init__(self, datastore: BaseDatastore):
        self.datastore = datastore

    @staticmethod
    def _doc_id(user_id: str, feature_id: str) -> str:
        return f"{user_id}_{feature_id}"

    def get_features(self, user_id: str) -> List[SocialFeature]:
        """The user's features; the defaults are created on first access."""
        docs = self.datastore.list_documents(SOCIAL_FEATURES_COLLECTION, where=[("userId", "==", user_id)])
        if not docs:
            return self._create_defaults(user_id)
        features = [SocialFeature.from_map({**doc, "id": doc.get("featureId", doc["id"])}) for doc in docs]
        features.sort(key=lambda f: list(SocialFeatureType).index(f.type))
        return features

    def _create_defaults(self, user_id: str) -> List[SocialFeature]:
        features = []
        for feature_type, title, description in DEFAULT_FEATURES:
            feature = SocialFeature(
                id=feature_type.value.lower(), title=title, description=description, type=feature_type,
            )
            self._save(user_id, feature)
            features.append(feature)
        logger.info(f"[get_features] Created default social features for {user_id}")
        return features

    def _save(self, user_id: str, feature: SocialFeature) -> None:
        data = {**feature.to_map(), "userId": user_id, "featureId": feature.id}
        data.pop("id")
        self.datastore.set_document(SOCIAL_FEATURES_COLLECTION, self._doc_id(user_id, feature.id), data)

    def _get(self, user_id: str, feature_id: str) -> SocialFeature:
        doc = self.datastore.get_document(SOCIAL_FEATURES_COLLECTION, self._doc_id(user_id, feature_id))
        return SocialFeature.from_map({**doc, "id": feature_id})

    def set_enabled(self, user_id: str, feature_id: str, enabled: bool) -> SocialFeature:
        feature = self._get(user_id, feature_id).model_copy(update={"is_enabled": enabled, "updated_at": now_ms()})
        self._save(user_id, feature)
        return feature

    def record_interaction(self, user_id: str, feature_id: str) -> SocialFeature:
        feature = self._get(user_id, feature_id).with_updated_interaction()
        self._save(user_id, feature)
        return feature

    def set_unread_count(self, user_id: str, feature_id: str, count: int) -> SocialFeature:
        if count < 0:
            raise ValueError("Unread count cannot be negative")
        feature = self._get(user_id, feature_id).with_unread_count(count)
        self._save(user_id, feature)
        return feature

    def enabled_count(self, user_id: str) -> int:
        return sum(1 for feature in self.get_features(user_id) if feature.is_enabled)

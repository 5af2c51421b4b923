USERS_COLLECTION = "users"
SENIORS_COLLECTION = "seniors"
BENEFITS_COLLECTION = "benefits"
CLAIMED_BENEFITS_COLLECTION = "claimed_benefits"
APPOINTMENTS_COLLECTION = "appointments"
EMERGENCY_ALERTS_COLLECTION = "emergency_alerts"
EMERGENCY_SERVICES_COLLECTION = "emergency_services"
HEALTH_RECORDS_COLLECTION = "health_records"
ADMIN_USERS_COLLECTION = "admin_users"
DATA_COLLECTION_COLLECTION = "data_collection"
ACTIVITIES_COLLECTION = "activities"
DELETED_USERS_COLLECTION = "deleted_users"
SOCIAL_SERVICES_COLLECTION = "social_services"
SOCIAL_FEATURES_COLLECTION = "social_features"
REMINDERS_COLLECTION = "reminders"
FCM_TOKENS_COLLECTION = "fcm_tokens"

# Collections holding documents keyed to a senior through `seniorId`.
USER_RELATED_COLLECTIONS = (
    HEALTH_RECORDS_COLLECTION,
    EMERGENCY_ALERTS_COLLECTION,
    DATA_COLLECTION_COLLECTION,
    ACTIVITIES_COLLECTION,
)

ADMIN_ROLE = "admin"
FACILITATOR_ROLE = "facilitator"
SUPER_ADMIN_ROLE = "super_admin"
ADMIN_ROLES = (ADMIN_ROLE, FACILITATOR_ROLE, SUPER_ADMIN_ROLE)

CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"

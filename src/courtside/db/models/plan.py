from enum import StrEnum


class Plan(StrEnum):
    """Subscription tiers that govern quotas."""

    FREE = "FREE"
    PREMIUM = "PREMIUM"

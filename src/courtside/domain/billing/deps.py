"""Billing dependency providers."""

from __future__ import annotations

from courtside.domain.billing.services import EntitlementService, SubscriptionService
from courtside.lib.deps import create_service_provider

provide_subscription_service = create_service_provider(
    SubscriptionService,
    error_messages={"duplicate_key": "This subscription already exists.",
                    "integrity": "Subscription operation failed."},
)

provide_entitlement_service = create_service_provider(
    EntitlementService,
    error_messages={"duplicate_key": "This entitlement already exists.",
                    "integrity": "Entitlement operation failed."},
)

from courtside.domain.billing.plans import PlanLimits, get_plan_limits, resolve_plan_from_subscription_status
from courtside.domain.billing.services import EntitlementService, SubscriptionService

__all__ = (
    "EntitlementService",
    "PlanLimits",
    "SubscriptionService",
    "get_plan_limits",
    "resolve_plan_from_subscription_status",
)

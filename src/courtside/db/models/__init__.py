from .entitlement import Entitlement
from .plan import Plan
from .query_history import QueryHistory
from .subscription import Subscription
from .usage_daily import UsageDaily
from .user import User

__all__ = (
    "Entitlement",
    "Plan",
    "QueryHistory",
    "Subscription",
    "UsageDaily",
    "User",
)

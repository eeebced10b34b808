"""Daily usage metering."""

from .middleware import UsageRecorder, UsageTrackingMiddleware
from .services import UsageDailyService, today_key

__all__ = ("UsageDailyService", "UsageRecorder", "UsageTrackingMiddleware", "today_key")

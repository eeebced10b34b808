"""Dependency providers for quota domain."""

from __future__ import annotations

from courtside.domain.quota.services import UsageDailyService
from courtside.lib.deps import create_service_provider

__all__ = ("provide_usage_service",)

# Daily usage service provider
provide_usage_service = create_service_provider(
    UsageDailyService,
    error_messages={
        "duplicate_key": "Usage record for this user and day already exists.",
        "integrity": "Usage operation failed.",
    },
)

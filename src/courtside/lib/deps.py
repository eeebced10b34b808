"""Application dependency providers generators.

Thin re-export of the advanced-alchemy provider factory so every domain builds
its service providers the same way.
"""

from __future__ import annotations

from advanced_alchemy.extensions.litestar.providers import create_service_provider

__all__ = ("create_service_provider",)

from __future__ import annotations

from . import base
from .base import get_settings

__all__ = (
    "base",
    "get_settings",
)

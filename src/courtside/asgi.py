# pylint: disable=[invalid-name,import-outside-toplevel]
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from litestar import Litestar


def create_app() -> Litestar:
    """Create ASGI application."""

    from litestar import Litestar

    from courtside.server import plugins
    from courtside.server.core import ApplicationCore

    # Litestar only drops its default PydanticPlugin when one is passed at construction
    return Litestar(plugins=[plugins.pydantic, ApplicationCore()])

from __future__ import annotations

import os
import sys
from pathlib import Path


def setup_environment() -> None:
    """Configure the environment variables and path."""
    current_path = Path(__file__).parent.parent.resolve()
    sys.path.append(str(current_path))
    os.environ.setdefault("LITESTAR_APP", "courtside.asgi:create_app")
    os.environ.setdefault("LITESTAR_APP_NAME", "Courtside API")


def run_cli() -> None:
    """Application Entrypoint."""
    setup_environment()

    try:
        from litestar.cli.main import litestar_group as cli
    except ImportError as exc:
        print(  # noqa: T201
            "Could not load required libraries. "
            "Please check your installation and make sure you activated any necessary virtual environment",
        )
        print(exc)  # noqa: T201
        sys.exit(1)
    cli()


if __name__ == "__main__":
    run_cli()

# pylint: disable=[invalid-name,import-outside-toplevel]
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from litestar.config.response_cache import ResponseCacheConfig, default_cache_key_builder
from litestar.di import Provide
from litestar.openapi.config import OpenAPIConfig
from litestar.openapi.plugins import ScalarRenderPlugin
from litestar.plugins import CLIPluginProtocol, InitPluginProtocol

if TYPE_CHECKING:
    from click import Group
    from litestar import Litestar, Request
    from litestar.config.app import AppConfig

    from courtside.domain.qa.analytics import AnalyticsSource
    from courtside.lib.rate_limit_store import RateLimitStore


class ApplicationCore(InitPluginProtocol, CLIPluginProtocol):
    """Application core configuration plugin.

    This class is responsible for configuring the main Litestar application with our routes, the request
    pipeline (identity, rate limiting, usage metering) and various plugins.

    Args:
        rate_limit_store: Counter backend to use instead of the one built from settings.
        analytics_source: Analytics data source to use instead of the application database.
    """

    __slots__ = ("analytics_source", "app_slug", "rate_limit_store")
    app_slug: str

    def __init__(
        self,
        *,
        rate_limit_store: RateLimitStore | None = None,
        analytics_source: AnalyticsSource | None = None,
    ) -> None:
        self.rate_limit_store = rate_limit_store
        self.analytics_source = analytics_source

    def on_cli_init(self, cli: Group) -> None:
        from courtside.cli.commands import user_management_group
        from courtside.config import get_settings

        settings = get_settings()
        self.app_slug = settings.app.slug
        cli.add_command(user_management_group)

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Configure application for use with SQLAlchemy.

        Args:
            app_config: The :class:`AppConfig <litestar.config.app.AppConfig>` instance.
        """

        from uuid import UUID

        from advanced_alchemy.exceptions import RepositoryError
        from litestar.datastructures import State
        from litestar.exceptions import HTTPException
        from sqlalchemy.ext.asyncio import AsyncSession

        from courtside.__about__ import __version__ as current_version
        from courtside.config import app as config
        from courtside.config import get_settings
        from courtside.config.base import settings_as_dict
        from courtside.db import models as m
        from courtside.domain.accounts.controllers import AccountController
        from courtside.domain.accounts.deps import provide_actor, provide_user
        from courtside.domain.accounts.identity import ActorIdentity
        from courtside.domain.accounts.services import UserService
        from courtside.domain.billing.services import EntitlementService, SubscriptionService
        from courtside.domain.qa.analytics import AnalyticsSource
        from courtside.domain.qa.controllers import QaController
        from courtside.domain.qa.services import QaService, QueryHistoryService
        from courtside.domain.quota.middleware import UsageRecorder
        from courtside.domain.quota.services import UsageDailyService
        from courtside.domain.system.controllers import SystemController
        from courtside.lib.exceptions import ApplicationError, exception_to_http_response
        from courtside.lib.rate_limit_service import RateLimitService
        from courtside.lib.rate_limit_store import build_rate_limit_store
        from courtside.server import plugins
        from courtside.server.middleware import build_request_pipeline

        settings = get_settings()
        self.app_slug = settings.app.slug
        app_config.debug = settings.app.DEBUG
        # openapi
        app_config.openapi_config = OpenAPIConfig(
            title=settings.app.NAME,
            version=current_version,
            use_handler_docstrings=True,
            render_plugins=[ScalarRenderPlugin(version="latest")],
        )
        # response cache keys
        app_config.response_cache_config = ResponseCacheConfig(key_builder=self._cache_key_builder)
        # security
        app_config.cors_config = config.cors
        # plugins
        app_config.plugins.extend(
            [
                plugins.structlog,
                plugins.alchemy,
            ],
        )

        # request pipeline
        store = self.rate_limit_store or build_rate_limit_store(
            settings.redis.URL or None,
            socket_connect_timeout=settings.redis.SOCKET_CONNECT_TIMEOUT,
        )
        rate_limiter = RateLimitService(
            store,
            max_per_window=settings.rate_limit.REQUESTS_PER_MINUTE,
            window_ms=settings.rate_limit.WINDOW_MS,
        )
        usage_recorder = UsageRecorder(config.alchemy.get_session)
        app_config.middleware.extend(
            build_request_pipeline(
                settings,
                session_factory=config.alchemy.get_session,
                rate_limiter=rate_limiter,
                usage_recorder=usage_recorder,
            ),
        )
        app_config.state.update(
            {
                "rate_limiter": rate_limiter,
                "usage_recorder": usage_recorder,
                "analytics_source": self.analytics_source,
                "qa_query_timeout_ms": settings.quota.QA_QUERY_TIMEOUT_MS,
            },
        )

        # routes
        app_config.route_handlers.extend(
            [
                SystemController,
                AccountController,
                QaController,
            ],
        )
        # signatures
        app_config.signature_namespace.update(
            {
                "m": m,
                "UUID": UUID,
                "State": State,
                "AsyncSession": AsyncSession,
                "ActorIdentity": ActorIdentity,
                "AnalyticsSource": AnalyticsSource,
                "UserService": UserService,
                "EntitlementService": EntitlementService,
                "SubscriptionService": SubscriptionService,
                "UsageDailyService": UsageDailyService,
                "QueryHistoryService": QueryHistoryService,
                "QaService": QaService,
            },
        )
        # exception handling
        app_config.exception_handlers = {
            ApplicationError: exception_to_http_response,
            RepositoryError: exception_to_http_response,
            HTTPException: exception_to_http_response,
            Exception: exception_to_http_response,
        }
        # dependencies
        dependencies = {
            "current_user": Provide(provide_user),
            "actor": Provide(provide_actor),
        }
        app_config.dependencies.update(dependencies)

        # lifecycle
        async def log_startup(app: Litestar) -> None:
            from structlog import get_logger

            await get_logger().ainfo("Application started", **settings_as_dict(settings))

        async def close_request_pipeline(app: Litestar) -> None:
            await usage_recorder.drain()
            await rate_limiter.close()

        app_config.on_startup.append(log_startup)
        app_config.on_shutdown.append(close_request_pipeline)
        return app_config

    def _cache_key_builder(self, request: Request[Any, Any, Any]) -> str:
        """App name prefixed cache key builder.

        Args:
            request (Request): Current request instance.

        Returns:
            str: App slug prefixed cache key.
        """

        return f"{self.app_slug}:{default_cache_key_builder(request)}"

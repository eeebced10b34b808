from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar, cast

from advanced_alchemy.utils.text import slugify
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


TRUE_VALUES = {"True", "true", "1", "yes", "Y", "T", "on"}

T = TypeVar("T")


def get_env(key: str, default: T, type_hint: type[T] | None = None) -> T:
    """Read an environment variable and coerce it to the type of ``default``.

    Args:
        key: Environment variable name.
        default: Value used when the variable is unset.
        type_hint: Explicit type to coerce into when ``default`` is ``None``.

    Returns:
        The coerced value.
    """
    value = os.getenv(key)
    if value is None:
        return default
    target = type_hint or type(default)
    if target is bool:
        return cast("T", value in TRUE_VALUES)
    if target is int:
        return cast("T", int(value))
    if target is float:
        return cast("T", float(value))
    if target is list:
        return cast("T", [item.strip() for item in value.split(",") if item.strip()])
    return cast("T", value)


@dataclass
class DatabaseSettings:
    ECHO: bool = field(default_factory=lambda: get_env("DATABASE_ECHO", False))
    """Enable SQLAlchemy engine logs."""
    POOL_DISABLED: bool = field(default_factory=lambda: get_env("DATABASE_POOL_DISABLED", False))
    """Disable SQLAlchemy pool configuration."""
    POOL_MAX_OVERFLOW: int = field(default_factory=lambda: get_env("DATABASE_MAX_POOL_OVERFLOW", 10))
    POOL_SIZE: int = field(default_factory=lambda: get_env("DATABASE_POOL_SIZE", 5))
    POOL_TIMEOUT: int = field(default_factory=lambda: get_env("DATABASE_POOL_TIMEOUT", 30))
    POOL_RECYCLE: int = field(default_factory=lambda: get_env("DATABASE_POOL_RECYCLE", 300))
    URL: str = field(default_factory=lambda: get_env("DATABASE_URL", "sqlite+aiosqlite:///courtside.sqlite3"))
    """SQLAlchemy database URL."""
    CREATE_ALL: bool = field(default_factory=lambda: get_env("DATABASE_CREATE_ALL", True))
    """Create tables on startup. Off when migrations own the schema."""
    _engine_instance: AsyncEngine | None = None

    @property
    def engine(self) -> AsyncEngine:
        return self.get_engine()

    def get_engine(self) -> AsyncEngine:
        if self._engine_instance is not None:
            return self._engine_instance
        if self.URL.startswith("sqlite"):
            engine = create_async_engine(
                url=self.URL,
                future=True,
                echo=self.ECHO,
                connect_args={"timeout": self.POOL_TIMEOUT},
            )
        elif self.POOL_DISABLED:
            engine = create_async_engine(url=self.URL, future=True, echo=self.ECHO, poolclass=NullPool)
        else:
            engine = create_async_engine(
                url=self.URL,
                future=True,
                echo=self.ECHO,
                max_overflow=self.POOL_MAX_OVERFLOW,
                pool_size=self.POOL_SIZE,
                pool_timeout=self.POOL_TIMEOUT,
                pool_recycle=self.POOL_RECYCLE,
                pool_pre_ping=True,
            )
        self._engine_instance = engine
        return self._engine_instance


@dataclass
class RedisSettings:
    URL: str = field(default_factory=lambda: get_env("REDIS_URL", ""))
    """Shared store for rate-limit windows. Empty means the in-process store."""
    SOCKET_CONNECT_TIMEOUT: float = field(default_factory=lambda: get_env("REDIS_CONNECT_TIMEOUT", 1.0))


@dataclass
class RateLimitSettings:
    REQUESTS_PER_MINUTE: int = field(default_factory=lambda: get_env("REQUESTS_PER_MINUTE", 120))
    WINDOW_MS: int = field(default_factory=lambda: get_env("RATE_LIMIT_WINDOW_MS", 60_000))
    EXEMPT_PATHS: list[str] = field(
        default_factory=lambda: get_env("RATE_LIMIT_EXEMPT_PATHS", ["/health", "/billing/webhook"])
    )


@dataclass
class QuotaSettings:
    FREE_QA_DAILY_LIMIT: int = field(default_factory=lambda: get_env("FREE_QA_DAILY_LIMIT", 5))
    PREMIUM_QA_DAILY_LIMIT: int = field(default_factory=lambda: get_env("PREMIUM_QA_DAILY_LIMIT", 5000))
    FREE_QA_ROW_LIMIT: int = field(default_factory=lambda: get_env("FREE_QA_ROW_LIMIT", 50))
    PREMIUM_QA_ROW_LIMIT: int = field(default_factory=lambda: get_env("PREMIUM_QA_ROW_LIMIT", 500))
    QA_QUERY_TIMEOUT_MS: int = field(default_factory=lambda: get_env("QA_QUERY_TIMEOUT_MS", 2500))
    USAGE_EXEMPT_PATHS: list[str] = field(
        default_factory=lambda: get_env("USAGE_EXEMPT_PATHS", ["/health", "/billing/webhook", "/auth/"])
    )

    def __post_init__(self) -> None:
        for name, value in (
            ("FREE_QA_DAILY_LIMIT", self.FREE_QA_DAILY_LIMIT),
            ("PREMIUM_QA_DAILY_LIMIT", self.PREMIUM_QA_DAILY_LIMIT),
            ("FREE_QA_ROW_LIMIT", self.FREE_QA_ROW_LIMIT),
            ("PREMIUM_QA_ROW_LIMIT", self.PREMIUM_QA_ROW_LIMIT),
            ("QA_QUERY_TIMEOUT_MS", self.QA_QUERY_TIMEOUT_MS),
        ):
            if value <= 0:
                msg = f"{name} must be a positive integer"
                raise ValueError(msg)
        if self.PREMIUM_QA_DAILY_LIMIT < self.FREE_QA_DAILY_LIMIT:
            msg = "PREMIUM_QA_DAILY_LIMIT must be greater than or equal to FREE_QA_DAILY_LIMIT"
            raise ValueError(msg)
        if self.PREMIUM_QA_ROW_LIMIT < self.FREE_QA_ROW_LIMIT:
            msg = "PREMIUM_QA_ROW_LIMIT must be greater than or equal to FREE_QA_ROW_LIMIT"
            raise ValueError(msg)


@dataclass
class LogSettings:
    LEVEL: int = field(default_factory=lambda: get_env("LOG_LEVEL", 20))
    """Stdlib log level for the structlog bridge."""
    OBFUSCATE_HEADERS: set[str] = field(default_factory=lambda: {"Authorization", "X-API-KEY"})
    REQUEST_FIELDS: list[str] = field(default_factory=lambda: ["path", "method", "query", "path_params"])
    RESPONSE_FIELDS: list[str] = field(default_factory=lambda: ["status_code"])
    SQLALCHEMY_LEVEL: int = field(default_factory=lambda: get_env("SQLALCHEMY_LOG_LEVEL", 30))


@dataclass
class AppSettings:
    NAME: str = field(default_factory=lambda: "Courtside API")
    ENVIRONMENT: str = field(default_factory=lambda: get_env("APP_ENVIRONMENT", "development"))
    DEBUG: bool = field(default_factory=lambda: get_env("APP_DEBUG", False))
    JWT_SECRET: str = field(default_factory=lambda: get_env("JWT_SECRET", "dev-secret"))
    JWT_ALGORITHM: str = field(default_factory=lambda: get_env("JWT_ALGORITHM", "HS256"))
    JWT_TTL_MINUTES: int = field(default_factory=lambda: get_env("JWT_TTL_MINUTES", 60 * 24 * 7))
    CORS_ALLOWED_ORIGINS: list[str] = field(
        default_factory=lambda: get_env("CORS_ALLOWED_ORIGINS", ["http://localhost:3000", "http://127.0.0.1:3000"])
    )
    DEV_PREMIUM_BYPASS: bool = field(default_factory=lambda: get_env("DEV_PREMIUM_BYPASS", False))
    """Force PREMIUM for every authenticated user. Ignored in production."""
    SYSTEM_PATHS: dict[str, str] = field(
        default_factory=lambda: {"/billing/webhook": "stripe-webhook", "/health": "healthcheck"}
    )
    """Path prefixes that resolve to a fixed ``system:<name>`` actor."""

    def __post_init__(self) -> None:
        if self.is_production:
            self.DEV_PREMIUM_BYPASS = False

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def slug(self) -> str:
        return slugify(self.NAME)


@dataclass
class Settings:
    app: AppSettings = field(default_factory=AppSettings)
    db: DatabaseSettings = field(default_factory=DatabaseSettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)
    quota: QuotaSettings = field(default_factory=QuotaSettings)
    log: LogSettings = field(default_factory=LogSettings)

    @classmethod
    def from_env(cls, dotenv_filename: str = ".env") -> Settings:
        from litestar.cli._utils import console

        env_file = Path(f"{os.curdir}/{dotenv_filename}")
        if env_file.is_file():
            from dotenv import load_dotenv

            console.print(f"[yellow]Loading environment configuration from {dotenv_filename}[/]")
            load_dotenv(env_file, override=False)
        return Settings()


@lru_cache(maxsize=1, typed=False)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Drop the cached settings so the next ``get_settings`` call re-reads the environment."""
    get_settings.cache_clear()


def settings_as_dict(settings: Settings) -> dict[str, Any]:
    return {
        "environment": settings.app.ENVIRONMENT,
        "requests_per_minute": settings.rate_limit.REQUESTS_PER_MINUTE,
        "qa_query_timeout_ms": settings.quota.QA_QUERY_TIMEOUT_MS,
        "shared_rate_limit_store": bool(settings.redis.URL),
        "dev_premium_bypass": settings.app.DEV_PREMIUM_BYPASS,
    }

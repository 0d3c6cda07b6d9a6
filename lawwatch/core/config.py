"""
Configuration Management

One pydantic-settings section per concern, each read from its own
environment prefix:

    DB_*             snapshot store (PostgreSQL via asyncpg, or any async URL)
    REDIS_*          Celery broker host
    CELERY_*         worker behaviour and the scan schedule
    EGOV_*           upstream e-Gov law API client and its rate limit
    NOTIFY_*         notification channels and SMTP delivery
    OBSERVABILITY_*  logging
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

# ======================== STORE ========================

class DatabaseSettings(BaseSettings):
    """Snapshot store connection. ``url`` wins over the individual parts."""
    model_config = SettingsConfigDict(env_prefix="DB_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="lawwatch", description="PostgreSQL role")
    password: SecretStr = Field(default=SecretStr("lawwatch"), description="PostgreSQL password")
    name: str = Field(default="lawwatch", description="Database holding the snapshot tables")
    url: Optional[str] = Field(None, description="Full SQLAlchemy URL, e.g. sqlite+aiosqlite:///lawwatch.db")

    # Ignored for SQLite URLs
    pool_size: int = Field(default=5, description="Persistent connections per process")
    max_overflow: int = Field(default=10, description="Extra connections allowed under load")
    pool_timeout: int = Field(default=30, description="Seconds to wait for a free connection")
    pool_recycle: int = Field(default=1800, description="Seconds before a connection is replaced")
    pool_pre_ping: bool = Field(default=True, description="Ping connections on checkout")

    @property
    def async_database_url(self) -> str:
        """SQLAlchemy async URL; a bare ``postgresql://`` URL is switched to asyncpg."""
        if self.url:
            url = self.url
        else:
            url = f"postgresql://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.name}"
        if url.startswith("postgresql://"):
            url = "postgresql+asyncpg://" + url[len("postgresql://"):]
        return url

# ======================== SCHEDULING ========================

class RedisSettings(BaseSettings):
    """Broker location for Celery."""
    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost")
    port: int = Field(default=6379)
    password: Optional[SecretStr] = Field(None)
    url: Optional[str] = Field(None, description="Full redis:// URL without database index")

    def database_url(self, index: int) -> str:
        if self.url:
            return f"{self.url.rstrip('/')}/{index}"
        auth = f":{self.password.get_secret_value()}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{index}"


class CelerySettings(BaseSettings):
    """Worker options and the scan schedule (Asia/Tokyo wall clock)."""
    model_config = SettingsConfigDict(env_prefix="CELERY_")

    broker_url: Optional[str] = Field(None, description="Defaults to Redis database 0")
    result_backend: Optional[str] = Field(None, description="Defaults to Redis database 1")
    timezone: str = Field(default="Asia/Tokyo")

    # A scan holds the store for minutes; one task per worker at a time
    worker_prefetch_multiplier: int = Field(default=1)
    worker_max_tasks_per_child: int = Field(default=50)
    task_time_limit: int = Field(default=1800, description="Hard limit for one scan (seconds)")
    task_soft_time_limit: int = Field(default=1700, description="Soft limit for one scan (seconds)")
    result_expires: int = Field(default=7 * 86400, description="Scan summaries kept for a week (seconds)")

    daily_scan_hour: int = Field(default=3, ge=0, le=23, description="Hour of the daily full scan")
    daily_scan_minute: int = Field(default=0, ge=0, le=59, description="Minute of the daily full scan")
    registry_check_hours: int = Field(default=6, ge=1, le=24, description="Hours between registry checksum checks")

    def get_celery_config(self, redis: Optional[RedisSettings] = None) -> Dict[str, Any]:
        """Celery ``config_from_object`` mapping."""
        redis = redis or RedisSettings()
        return {
            'broker_url': self.broker_url or redis.database_url(0),
            'result_backend': self.result_backend or redis.database_url(1),
            'broker_connection_retry_on_startup': True,
            'task_serializer': 'json',
            'result_serializer': 'json',
            'accept_content': ['json'],
            'timezone': self.timezone,
            'enable_utc': True,
            'worker_prefetch_multiplier': self.worker_prefetch_multiplier,
            'worker_max_tasks_per_child': self.worker_max_tasks_per_child,
            'task_acks_late': True,
            'task_track_started': True,
            'task_time_limit': self.task_time_limit,
            'task_soft_time_limit': self.task_soft_time_limit,
            'result_expires': self.result_expires,
            'task_routes': {'lawwatch.tasks.scan_tasks.*': {'queue': 'scans'}},
        }

# ======================== UPSTREAM ========================

class EGovSettings(BaseSettings):
    """e-Gov law API (version 1, XML) client."""
    model_config = SettingsConfigDict(env_prefix="EGOV_")

    base_url: str = Field(default="https://laws.e-gov.go.jp/api/1", description="API root, no trailing slash")
    timeout_seconds: float = Field(default=10.0, description="Per-request timeout (seconds)")
    rate_limit_max_requests: int = Field(default=100, description="Requests allowed per window")
    rate_limit_window_ms: int = Field(default=60_000, description="Rate limit window (milliseconds)")
    user_agent: str = Field(default="LawWatch/1.0.0")
    default_category: str = Field(default="憲法・法律", description="Category assigned to law-list entries")

    @field_validator('rate_limit_max_requests', 'rate_limit_window_ms')
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError('Rate limit values must be positive')
        return v

# ======================== NOTIFICATIONS ========================

class NotificationSettings(BaseSettings):
    """Channels every qualifying notification is sent on."""
    model_config = SettingsConfigDict(env_prefix="NOTIFY_")

    enabled_channels: List[str] = Field(default=["LOG"], description="Any of LOG, EMAIL")
    smtp_host: str = Field(default="localhost")
    smtp_port: int = Field(default=587)
    smtp_user: Optional[str] = Field(None)
    smtp_password: Optional[SecretStr] = Field(None)
    smtp_use_tls: bool = Field(default=True, description="Issue STARTTLS before login")
    smtp_timeout_seconds: float = Field(default=10.0)
    from_address: str = Field(default="noreply@lawwatch.jp")

# ======================== OBSERVABILITY ========================

class ObservabilitySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_level: LogLevel = LogLevel.INFO
    log_format: str = Field(default="text", description="text or json; production always logs json")
    enable_request_logging: bool = True

# ======================== ROOT ========================

class Settings(BaseSettings):
    """Application settings; sections are read from their own prefixes."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    project_name: str = Field(default="LawWatch")
    version: str = Field(default="1.0.0")
    description: str = Field(
        default="Legal instrument registry tracking with snapshot-based change detection"
    )
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    debug: bool = Field(default=False, description="Echo SQL and keep access logs")

    api_v1_prefix: str = Field(default="/api/v1")
    docs_enabled: bool = Field(default=True, description="Serve /docs and /redoc")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    celery: CelerySettings = Field(default_factory=CelerySettings)
    egov: EGovSettings = Field(default_factory=EGovSettings)
    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def to_dict(self) -> Dict[str, Any]:
        """Non-secret summary logged at startup."""
        return {
            "environment": self.environment.value,
            "version": self.version,
            "database": f"{self.database.host}:{self.database.port}/{self.database.name}",
            "egov": {
                "base_url": self.egov.base_url,
                "rate_limit": f"{self.egov.rate_limit_max_requests}/{self.egov.rate_limit_window_ms}ms",
            },
            "notification_channels": self.notification.enabled_channels,
            "daily_scan": f"{self.celery.daily_scan_hour:02d}:{self.celery.daily_scan_minute:02d}",
        }


settings = Settings()

"""TokenGate configuration management."""

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "0.1.0"


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreBackendKind(str, Enum):
    """Lease store backend."""

    REDIS = "redis"
    MEMORY = "memory"


class Settings(BaseSettings):
    """TokenGate configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="TOKENGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    # General
    env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"
    debug: bool = False

    # Store
    store_backend: StoreBackendKind = Field(
        default=StoreBackendKind.REDIS,
        description="Lease store backend: redis or memory (memory is dev/test only)",
    )
    redis_host: str = Field(
        default="localhost",
        validation_alias=AliasChoices("TOKENGATE_REDIS_HOST", "REDIS_HOST"),
    )
    redis_port: int = Field(
        default=6379,
        validation_alias=AliasChoices("TOKENGATE_REDIS_PORT", "REDIS_PORT"),
    )
    redis_db: int = 0
    redis_password: Optional[str] = None
    redis_max_connections: int = Field(default=100, description="Connection pool size")
    redis_socket_timeout: float = Field(default=2.0, description="Per-command timeout (seconds)")
    redis_socket_connect_timeout: float = Field(
        default=2.0, description="Connect timeout (seconds)"
    )

    # Lease behavior
    lease_ttl_seconds: int = Field(default=300, description="Lease TTL (5 min)")
    blocking_ttl_seconds: int = Field(
        default=30, description="Blocking marker TTL set on checkout"
    )
    sweep_interval_seconds: float = Field(default=5, description="Expiry sweep cadence")
    sweep_batch_size: int = Field(
        default=100, description="Max expired ids read from the index per query"
    )
    requeue_on_release: bool = Field(
        default=False,
        description="Return released leases to the availability queue",
    )

    # CORS configuration (explicit allowlist)
    cors_allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins",
    )
    cors_allowed_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods",
    )
    cors_allowed_headers: list[str] = Field(
        default=["Content-Type", "X-Trace-ID"],
        description="Allowed request headers",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 5000

    @property
    def redis_url(self) -> str:
        """Connection URL for the Redis store."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Validators
    @field_validator("port", "redis_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    @field_validator(
        "lease_ttl_seconds",
        "blocking_ttl_seconds",
        "sweep_interval_seconds",
        "sweep_batch_size",
        "redis_max_connections",
        "redis_socket_timeout",
        "redis_socket_connect_timeout",
    )
    @classmethod
    def validate_positive(cls, v, info):
        """TTLs, intervals and pool sizes must be > 0."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0, got {v}")
        return v


settings = Settings()

"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults for the deletion lifecycle (grace period, sweep cadence,
    purge retry bound) and the audit pipeline

Collaborators:
  - container.py: picks adapters (memory/postgres) and wires use cases
  - api/main.py: pool lifecycle and startup logging
  - worker/*: queue name, sweep interval, health port

Constraints:
  - Lives in API/infrastructure layer, NOT in domain/application
  - No business logic, configuration only

Notes:
  - Singleton via lru_cache
  - STORE_BACKEND=postgres requires DATABASE_URL
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_STORE_BACKENDS = {"memory", "postgres"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: PostgreSQL connection string (required for postgres backend)
        store_backend: memory|postgres (default: memory)
        redis_url: Redis connection string for the sweep queue (optional)
        deletion_grace_period_days: Days between request and execution (default: 30)
        deletion_reason_max_chars: Maximum length of the free-text reason
        deletion_sweep_interval_seconds: Sweep cadence (default: hourly)
        deletion_sweep_batch_size: Max due requests handled per sweep
        deletion_claim_ttl_seconds: Lease held by a sweep while purging
        purge_timeout_seconds: Deadline for one purge call
        purge_max_attempts: Failed purges before a request is flagged for review
        audit_async_writes: Buffer audit writes on a background thread
        audit_buffer_size: Max queued audit entries before dropping
        deletion_queue_name: RQ queue consumed by the worker
        worker_http_port: Port for worker /healthz /readyz /metrics
    """

    # Database
    database_url: str = ""
    store_backend: str = "memory"

    # Environment
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Observability
    otel_enabled: bool = False

    # Redis
    redis_url: str = ""

    # Security - API Keys (JSON: {"key": ["scope1", "scope2"], ...})
    api_keys_config: str = ""
    metrics_require_auth: bool = False

    # Deletion lifecycle
    deletion_grace_period_days: int = 30
    deletion_reason_max_chars: int = 500
    deletion_sweep_interval_seconds: int = 3600
    deletion_sweep_batch_size: int = 100
    deletion_claim_ttl_seconds: int = 300

    # Purge
    purge_timeout_seconds: float = 30.0
    purge_max_attempts: int = 3

    # Audit
    audit_async_writes: bool = True
    audit_buffer_size: int = 1000

    # Retry/Resilience (audit writes)
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 10.0

    # Database - Connection Pool
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds

    # Worker
    deletion_queue_name: str = "deletions"
    worker_http_port: int = 8001

    @field_validator(
        "deletion_grace_period_days",
        "deletion_sweep_interval_seconds",
        "deletion_sweep_batch_size",
        "deletion_claim_ttl_seconds",
        "purge_max_attempts",
        "audit_buffer_size",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("purge_timeout_seconds")
    @classmethod
    def purge_timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("purge_timeout_seconds must be greater than 0")
        return v

    @field_validator("store_backend")
    @classmethod
    def store_backend_valid(cls, v: str) -> str:
        backend = (v or "memory").strip().lower()
        if backend not in _STORE_BACKENDS:
            raise ValueError("store_backend must be memory or postgres")
        return backend

    @model_validator(mode="after")
    def validate_database_requirements(self):
        if self.store_backend == "postgres" and not self.database_url.strip():
            raise ValueError("DATABASE_URL is required when STORE_BACKEND=postgres")
        return self

    @model_validator(mode="after")
    def validate_claim_outlives_purge(self):
        # A lease shorter than the purge deadline lets two sweeps purge at once.
        if self.deletion_claim_ttl_seconds <= self.purge_timeout_seconds:
            raise ValueError(
                "DELETION_CLAIM_TTL_SECONDS must exceed PURGE_TIMEOUT_SECONDS"
            )
        return self

    def uses_postgres(self) -> bool:
        return self.store_backend == "postgres"

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()

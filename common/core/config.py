from typing import Optional, List
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "Billing Engine API"
    api_version: str = "1.0.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "billing"
    db_use_nullpool: bool = (
        False  # True for workers (sequential), False for API (concurrent)
    )
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @property
    def redis_connection_url(self) -> str:
        """Construct Redis URL from components."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # OpenTelemetry
    otel_service_name: str = "billing-engine"
    otel_service_version: str = "1.0.0"

    # Axiom (exporters are skipped when no token is configured)
    axiom_token: str = ""
    axiom_dataset: str = ""

    # Auth
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"

    # Internal key for scheduler-triggered endpoints (X-API-Key)
    billing_internal_api_key: str = ""

    # Billing - Stripe (payments)
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    payment_processor_timeout_seconds: float = 20.0
    pending_reconciliation_timeout_minutes: int = 15

    # Billing - pricing, all amounts in minor currency units
    billing_base_fee_cents: int = 300
    billing_pack_fee_cents: int = 100
    billing_currency: str = "aud"
    billing_free_allowance_gb: int = 10
    billing_pack_size_gb: int = 2

    # Billing - lifecycle
    billing_trial_days: int = 20
    billing_cycle_days: int = 30
    billing_failure_threshold: int = Field(default=3, ge=1)
    billing_restricted_mode_days: int = 30
    billing_pay_now_window_days: int = 7
    billing_permanent_horizon_years: int = 50
    billing_history_default_limit: int = 12

    # Reminders
    billing_reminder_offsets_days: List[int] = [5, 1]
    notification_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 10.0

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return []

    @field_validator("billing_reminder_offsets_days")
    @classmethod
    def _offsets_are_positive(cls, offsets: List[int]) -> List[int]:
        if any(offset <= 0 for offset in offsets):
            raise ValueError("Reminder offsets must be whole days before the due date")
        return sorted(set(offsets), reverse=True)

    @model_validator(mode="after")
    def _require_secrets_outside_local(self) -> "Settings":
        if self.environment != Environment.LOCAL and self.jwt_secret_key == "change-me":
            raise ValueError("JWT_SECRET_KEY must be set outside local environments")
        return self


settings = Settings()

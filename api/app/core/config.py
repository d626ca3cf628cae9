"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "CourtSlot"
    debug: bool = True
    secret_key: str = "dev-secret-change-in-production"
    api_prefix: str = "/api/v1"

    # Database
    database_url: str = "postgresql+asyncpg://courtslot:courtslot@db:5432/courtslot"
    database_echo: bool = False

    # Redis (Celery broker for the expiry sweep)
    redis_url: str = "redis://redis:6379/0"
    expiry_sweep_minutes: int = 15

    # Auth
    access_token_expire_minutes: int = 60
    jwt_algorithm: str = "HS256"

    # Wall clock the facilities live in; times of day are local to it
    timezone: str = "Europe/London"

    # Booking grid
    slot_granularity_minutes: int = 30
    past_slot_buffer_minutes: int = 60
    max_range_days: int = 31

    # System policy defaults (used when neither court nor facility sets a value)
    default_max_advance_days: int = 30
    default_min_duration_minutes: int = 30
    default_max_duration_minutes: int = 480
    default_buffer_minutes: int = 0
    default_min_advance_notice_minutes: int = 0
    default_pending_expiration_hours: int = 24
    default_cancellation_cutoff_hours: int = 0

    model_config = {"env_prefix": "CS_", "env_file": ".env", "extra": "ignore"}


settings = Settings()

"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "ArenaOne"
    debug: bool = True
    secret_key: str = "dev-secret-change-in-production"
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://arena:arena@db:5432/arena"
    database_echo: bool = False

    # Redis (Celery broker + result backend)
    redis_url: str = "redis://redis:6379/0"

    # Auth (tokens are issued by the identity service; we only verify them)
    access_token_expire_minutes: int = 60
    jwt_algorithm: str = "HS256"

    # Clubs
    default_club_timezone: str = "UTC"
    default_currency: str = "UAH"

    # Availability
    slot_minutes: int = 60
    availability_default_days: int = 7
    availability_max_days: int = 31

    # Statistics job (UTC wall-clock)
    statistics_nightly_hour: int = 0
    statistics_nightly_minute: int = 30
    statistics_fallback_hour: int = 6
    # Longest booking (in club-local dates) the booking hook will recompute
    statistics_max_booking_days: int = 31

    model_config = {"env_prefix": "AR_", "env_file": ".env", "extra": "ignore"}


settings = Settings()

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql+asyncpg://paintops:paintops_dev@db:5432/paintops"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Security
    SECRET_KEY: str = "dev-secret-key-not-for-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ALLOWED_ORIGINS: str = "*"

    # SendGrid
    SENDGRID_API_KEY: str = "mock_sendgrid_key"
    FROM_EMAIL: str = "no-reply@paintops.app"
    FROM_NAME: str = "JG Painting Pros"

    # Storage
    STORAGE_LOCAL_PATH: str = "/app/storage"
    STORAGE_URL_TTL_SECONDS: int = 3600

    # Approvals
    APPROVAL_TOKEN_TTL_DAYS: int = 7
    APPROVAL_PREVIEW_TTL_MINUTES: int = 10

    # Realtime
    REALTIME_MIN_INTERVAL_SECONDS: float = 5.0

    # Daily agenda
    COMPANY_TIMEZONE: str = "America/New_York"
    DAILY_AGENDA_RECIPIENTS: str = ""

    # App
    APP_ENV: str = "development"
    APP_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()

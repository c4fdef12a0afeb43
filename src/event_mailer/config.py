from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_COMMAND_TIMEOUT: float = 15.0

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    CRON_SECRET: str = ""

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 465
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_START_TLS: bool = False
    SMTP_TIMEOUT: float = 30.0
    MAIL_FROM: str = "Events <no-reply@example.com>"
    MAIL_ORGANISATION: str = "Events"

    SITE_URL: str = "http://localhost:3000"
    CERTIFICATE_SERVICE_URL: str = "http://localhost:3000"
    CERTIFICATE_TIMEOUT: float = 30.0

    QUEUE_EVALUATION_DAILY_CAP: int = 40
    QUEUE_CERTIFICATE_DAILY_CAP: int = 80
    QUEUE_TOTAL_DAILY_CAP: int = 100
    QUEUE_MAX_ATTEMPTS: int = 3
    QUEUE_SEND_DELAY_SECONDS: float = 0.5
    QUEUE_SEND_TIMEOUT_SECONDS: float = 30.0
    QUEUE_TIMEZONE: str = "UTC"
    QUEUE_DRAIN_LOCK_TTL: int = 900

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    database_echo: bool = Field(False, alias="DATABASE_ECHO")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Year-end promotion check. Runs once a day at the configured local time.
    promotion_scheduler_enabled: bool = Field(True, alias="PROMOTION_SCHEDULER_ENABLED")
    promotion_scheduler_hour: int = Field(2, alias="PROMOTION_SCHEDULER_HOUR")
    promotion_scheduler_minute: int = Field(0, alias="PROMOTION_SCHEDULER_MINUTE")
    promotion_scheduler_timezone: Optional[str] = Field(None, alias="PROMOTION_SCHEDULER_TIMEZONE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

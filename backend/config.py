from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./fuel.db"
    SQL_ECHO: bool = False

    SECRET_KEY: str = "FUEL_SUPER_SECRET_KEY_CHANGE_THIS"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12  # 12 hours token

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"

    # fuel consistency
    CONSISTENCY_TOLERANCE_LITERS: float = 0.1
    CONSISTENCY_CRITICAL_LITERS: float = 50.0
    OVERRIDE_TOKEN_TTL_SECONDS: int = 300

    # scheduled jobs
    SCHEDULER_ENABLED: bool = True
    DAILY_CHECK_ENABLED: bool = True
    DAILY_CHECK_TIME: str = "01:00"
    WEEKLY_SYNC_ENABLED: bool = False
    WEEKLY_SYNC_DAY: str = "sun"
    WEEKLY_SYNC_TIME: str = "03:00"

    class Config:
        env_file = ".env"


settings = Settings()

from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Attempt Session API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 2  # 2 days

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./attempts.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Links handed out to participants and owners
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # Background sweep that materialises expiry of overdue attempts
    EXPIRY_SWEEP_INTERVAL_SEC: int = 60

    LOG_DIR: str = "logs"
    TESTING: bool = False

    class Config:
        env_file = ".env"

settings = Settings()

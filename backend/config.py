# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_inventory.db"

    # Optional CORS origin of the deployed frontend
    FRONTEND_URL: Optional[str] = None

    # Product identifier generation
    SKU_PREFIX: str = "SKU"
    SKU_MAX_ATTEMPTS: int = 10

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()

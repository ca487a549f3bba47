"""
Application configuration for Himalayan Rides backend
Loaded from environment variables and an optional .env file
"""
import logging
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Runtime settings (env vars take precedence over .env)"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Himalayan Rides API"
    LOG_LEVEL: str = "INFO"

    # Firebase
    USE_MOCK_FIREBASE: bool = False
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    FIREBASE_CREDENTIALS_JSON: Optional[str] = None

    # Data layer
    CACHE_DEFAULT_TTL_SECONDS: float = Field(default=300.0, gt=0)
    REMOTE_TIMEOUT_SECONDS: Optional[float] = Field(default=10.0, gt=0)
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    RETRY_INITIAL_BACKOFF_SECONDS: float = Field(default=0.5, ge=0)
    RETRY_MAX_BACKOFF_SECONDS: float = Field(default=8.0, ge=0)

    # HTTP
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])


settings = Settings()


def configure_logging(level: Optional[str] = None):
    """Configure root logging once for CLI workers and the API process"""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

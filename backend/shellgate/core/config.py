"""
Shellgate - Configuration
"""

from typing import Optional, List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application
    APP_NAME: str = "Shellgate"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # API
    API_V1_PREFIX: str = "/api/v1"
    SECRET_KEY: str = Field(...)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_COOKIE: str = "access_token"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Database (connection profiles)
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/connections.db"

    # Secret encryption for stored profile fields
    ENCRYPTION_KEY: str = Field(...)

    # SSH client
    SSH_CONNECT_TIMEOUT: float = 20.0  # seconds
    SSH_TERM_TYPE: str = "xterm-256color"
    SSH_KNOWN_HOSTS: Optional[str] = None
    # Number of extra candidates tried after the first failure; -1 tries all
    SSH_MAX_FALLBACK_ATTEMPTS: int = 1
    SSH_FALLBACK_ON_AUTH_ONLY: bool = False

    # Sessions
    MAX_SESSIONS_PER_USER: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "/var/log/shellgate/app.log"


# Global settings instance
settings = Settings()

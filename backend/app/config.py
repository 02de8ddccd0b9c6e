"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

# Base directory: backend/
_BASE_DIR = Path(__file__).resolve().parent.parent

_DEV_SECRET = "dev-jwt-secret-change-in-production-use-openssl-rand-hex-32"


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "Residence Auth"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database (PostgreSQL)
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "residence_db"
    POSTGRES_USER: str = "residence"
    POSTGRES_PASSWORD: str = "residence"
    DATABASE_POOL_SIZE: int = 30
    DATABASE_MAX_OVERFLOW: int = 20

    # Tokens
    JWT_SECRET: str = _DEV_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_EXPIRATION_MINUTES: int = 30
    JWT_REFRESH_EXPIRATION_DAYS: int = 30
    JWT_RESET_PASSWORD_EXPIRATION_MINUTES: int = 10
    REFRESH_COOKIE_NAME: str = "refreshToken"

    # Rate Limiting
    LOGIN_RATE_LIMIT_PER_MINUTE: int = 10
    LOGIN_RATE_LIMIT_PER_HOUR: int = 50
    FORGOT_PASSWORD_RATE_LIMIT_PER_HOUR: int = 5
    RESET_PASSWORD_RATE_LIMIT_PER_HOUR: int = 10
    LOGOUT_RATE_LIMIT_PER_MINUTE: int = 20

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    # Admin bootstrap
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "admin123"

    # Database initialization discipline
    DB_INIT_MODE: str = "migrate"  # migrate | create_all | off
    DB_REQUIRE_HEAD: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> Any:
        """
        Accept JSON array or comma-separated origins from env.

        Examples:
            CORS_ORIGINS=["http://localhost:3000","http://example.com"]
            CORS_ORIGINS=http://localhost:3000,http://example.com
        """
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, str):
            return [parsed]
        if isinstance(parsed, list):
            return [str(origin).strip() for origin in parsed if str(origin).strip()]

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def get_log_file(self) -> str:
        p = self.LOG_FILE
        if not p or p.startswith(".."):
            return str(_BASE_DIR.parent / "logs" / "app.log")
        return p

    def get_database_url(self) -> str:
        """
        Resolve database URL.

        Priority:
          1) Explicit DATABASE_URL
          2) Construct from POSTGRES_* parts with safe URL encoding
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        user = quote_plus(self.POSTGRES_USER)
        password = quote_plus(self.POSTGRES_PASSWORD)
        return (
            f"postgresql://{user}:{password}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_security_settings(self) -> None:
        """
        Validate token lifetimes always, and secrets in production.

        Raises:
            ValueError: If the configuration is unsafe.
        """
        access_seconds = self.JWT_ACCESS_EXPIRATION_MINUTES * 60
        refresh_seconds = self.JWT_REFRESH_EXPIRATION_DAYS * 86400
        if access_seconds <= 0 or self.JWT_RESET_PASSWORD_EXPIRATION_MINUTES <= 0:
            raise ValueError("Token lifetimes must be positive.")
        if access_seconds >= refresh_seconds:
            raise ValueError(
                "JWT_ACCESS_EXPIRATION_MINUTES must be shorter than JWT_REFRESH_EXPIRATION_DAYS."
            )

        if not self.is_production:
            return

        insecure_secret_markers = {
            "",
            _DEV_SECRET,
            "change-me",
        }
        insecure_admin_passwords = {
            "",
            "admin123",
        }

        if self.JWT_SECRET in insecure_secret_markers or len(self.JWT_SECRET) < 32:
            raise ValueError(
                "Insecure JWT_SECRET for production. Use a strong key (e.g. `openssl rand -hex 32`)."
            )

        if self.ADMIN_PASSWORD in insecure_admin_passwords or len(self.ADMIN_PASSWORD) < 10:
            raise ValueError(
                "Insecure ADMIN_PASSWORD for production. Set a strong admin password before startup."
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

# Base directory: backend/
_BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "EduSpark Auth"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database
    DATABASE_URL: str = ""
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DB_INIT_MODE: str = "create_all"  # create_all | off

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production-use-openssl-rand-hex-32"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 1
    REMEMBER_ME_REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS: int = 24
    PASSWORD_RESET_TOKEN_EXPIRE_MINUTES: int = 60
    CSRF_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12

    # Failed sign-in throttling
    LOGIN_MAX_FAILED_ATTEMPTS: int = 5
    LOGIN_LOCKOUT_MINUTES: int = 15

    # Frontend (email links, redirects)
    FRONTEND_URL: str = "http://localhost:3000"

    # Email
    EMAIL_BACKEND: str = "console"  # console | memory | smtp
    EMAIL_FROM: str = "EduSpark <no-reply@eduspark.local>"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    # Demo accounts
    SEED_DEMO_USERS: bool = False

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
          2) SQLite file next to the backend directory
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{_BASE_DIR.parent / 'eduspark.db'}"

    def validate_security_settings(self) -> None:
        """
        Validate runtime security defaults in production.

        Raises:
            ValueError: If insecure defaults are detected.
        """
        if not self.is_production:
            return

        insecure_secret_markers = {
            "",
            "dev-secret-key-change-in-production-use-openssl-rand-hex-32",
            "fallback-secret",
            "change-me",
        }

        if self.SECRET_KEY in insecure_secret_markers or len(self.SECRET_KEY) < 32:
            raise ValueError(
                "Insecure SECRET_KEY for production. Use a strong key (e.g. `openssl rand -hex 32`)."
            )

        if self.EMAIL_BACKEND == "memory":
            raise ValueError("EMAIL_BACKEND=memory is for tests only and cannot be used in production.")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

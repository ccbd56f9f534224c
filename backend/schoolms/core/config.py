from pydantic_settings import BaseSettings
from typing import List, Any
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "School Management System"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./school.db"
    DB_ECHO: bool = False

    # ==========================================
    # Security
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # one school day
    BCRYPT_ROUNDS: int = 12  # 4 for tests, 12 for prod

    # Identity policy
    PASSWORD_MIN_LENGTH: int = 6
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    TEMP_PASSWORD_PREFIX: str = "Ab3!"

    # ==========================================
    # Password Recovery
    # ==========================================
    FRONTEND_URL: str = "http://localhost:3000"
    RESET_PASSWORD_PATH: str = "/account/reset-password"
    # Recovery on an unknown email answers with a distinct message
    RECOVERY_REVEAL_UNKNOWN_EMAIL: bool = True

    # ==========================================
    # Email (SMTP)
    # ==========================================
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_START_TLS: bool = True
    EMAIL_FROM: str = "noreply@school.com"
    EMAIL_FROM_NAME: str = "School Management System"
    MAIL_SUBJECT_PREFIX: str = "School Management System"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    # ==========================================
    # Bootstrap
    # ==========================================
    SEED_ON_STARTUP: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG

    def get_reset_password_url(self) -> str:
        """Base URL of the reset-password page (token and email are appended as query params)"""
        return f"{self.FRONTEND_URL.rstrip('/')}{self.RESET_PASSWORD_PATH}"


# Create settings instance
settings = Settings()

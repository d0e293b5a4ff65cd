"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, secrets, image host, SMTP)
- Validates configuration on startup
- Built once by create_app() and injected into handlers and clients
"""

from functools import lru_cache

from fastapi import Request
from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="shop",
        description="MongoDB database name"
    )

    # Frontend (password reset links point here)
    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        description="Frontend base URL used to build reset links"
    )

    # Session tokens
    JWT_SECRET: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to sign session tokens"
    )
    JWT_EXPIRE_DAYS: int = Field(
        default=5,
        description="Session token lifetime in days"
    )
    COOKIE_NAME: str = Field(
        default="token",
        description="Name of the HTTP-only session cookie"
    )
    COOKIE_EXPIRE_DAYS: int = Field(
        default=5,
        description="Session cookie lifetime in days"
    )
    COOKIE_SECURE: bool = Field(
        default=False,
        description="Send the session cookie over HTTPS only"
    )

    # Passwords
    RESET_PASSWORD_TOKEN_TTL_MINUTES: int = Field(
        default=15,
        description="Lifetime of a password reset token in minutes"
    )
    BCRYPT_ROUNDS: int = Field(
        default=10,
        description="bcrypt cost factor"
    )

    # Image host (Cloudinary)
    CLOUDINARY_CLOUD_NAME: Optional[str] = Field(default=None)
    CLOUDINARY_API_KEY: Optional[str] = Field(default=None)
    CLOUDINARY_API_SECRET: Optional[str] = Field(default=None)
    CLOUDINARY_BASE_URL: str = Field(
        default="https://api.cloudinary.com/v1_1",
        description="Image host API base URL"
    )
    AVATAR_FOLDER: str = Field(default="avatars")
    AVATAR_WIDTH: int = Field(default=150)
    AVATAR_CROP: str = Field(default="scale")
    IMAGE_SERVICE_TIMEOUT: int = Field(
        default=30,
        description="Image host request timeout in seconds"
    )

    # Email (SMTP)
    SMTP_HOST: Optional[str] = Field(default=None)
    SMTP_PORT: int = Field(default=465)
    SMTP_USER: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[str] = Field(default=None)
    SMTP_FROM: Optional[str] = Field(default=None)
    RESET_EMAIL_SUBJECT: str = Field(default="Ecommerce Password Recovery")

    # Admin maintenance
    RELEASE_AVATAR_ON_DELETE: bool = Field(
        default=False,
        description="Destroy the hosted avatar when an admin deletes a user"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str, info: ValidationInfo) -> str:
        """Ensure the signing secret is changed in production."""
        if info.data.get("ENVIRONMENT") == "production" and v == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be changed in production environment")
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def image_host_configured(self) -> bool:
        return bool(
            self.CLOUDINARY_CLOUD_NAME
            and self.CLOUDINARY_API_KEY
            and self.CLOUDINARY_API_SECRET
        )

    @property
    def smtp_configured(self) -> bool:
        return bool(
            self.SMTP_HOST
            and self.SMTP_USER
            and self.SMTP_PASSWORD
            and self.SMTP_FROM
        )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Builds the process settings from the environment (once)."""
    return Settings()


def get_settings(request: Request) -> Settings:
    """
    FastAPI dependency returning the settings the app was created with.
    """
    return request.app.state.settings


def validate_settings(settings: Settings) -> bool:
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.FRONTEND_URL:
        errors.append("FRONTEND_URL is required")

    # Production-specific validations
    if settings.is_production:
        if not settings.image_host_configured:
            errors.append("CLOUDINARY_* credentials are required in production")
        if not settings.smtp_configured:
            errors.append("SMTP_* settings are required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True

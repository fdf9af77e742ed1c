"""
Configuration management for Hope Pharmacy IMS Backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="PostgreSQL database URL")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key for token signing")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=480, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Timezone used for display only; timestamps are stored in UTC
    TZ: str = Field(default="Europe/London", description="Timezone for display (code uses UTC)")

    # Geofencing
    DEFAULT_BRANCH_RADIUS_METERS: int = Field(
        default=50, description="Allowed clock-in radius when a branch location has none set"
    )
    LOCATION_ACCESS_TIMEOUT_MS: int = Field(
        default=20000, description="Timeout for a fresh, high-accuracy location request (mobile GPS)"
    )
    LOCATION_POSITION_TIMEOUT_MS: int = Field(
        default=15000, description="Timeout for a position request once permission is established"
    )
    LOCATION_POSITION_MAX_AGE_MS: int = Field(
        default=60000, description="Maximum age of a cached position accepted by get_current_position"
    )
    LOCATION_REPORT_MAX_AGE_SECONDS: int = Field(
        default=300, description="Device-reported fixes older than this are treated as unavailable"
    )

    # Post-mutation refresh of the open time entry
    CLOCK_REFRESH_MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Refresh attempts after clock in/out")
    CLOCK_REFRESH_BASE_DELAY_SECONDS: float = Field(
        default=1.0, ge=0, description="Linear backoff step between refresh attempts"
    )

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    # Initial admin bootstrap settings
    INITIAL_ADMIN_EMAIL: str = Field(
        default="admin@hopepharmacy.local",
        description="Email for initial administrator (used when no administrator exists)"
    )
    INITIAL_ADMIN_PASSWORD: str = Field(
        default="Admin@12345",
        description="Password for initial administrator (used when no administrator exists)"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("DEFAULT_BRANCH_RADIUS_METERS")
    @classmethod
    def validate_default_radius(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("DEFAULT_BRANCH_RADIUS_METERS must be positive")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # JWT_SECRET_KEY must be at least 32 characters in production
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()

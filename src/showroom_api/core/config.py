"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # JWT
    jwt_secret_key: str = Field(min_length=32, description="Secret key for verifying JWTs (minimum 32 characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for diagnostic log files (enables file logging with 24h rotation when set)",
    )

    # Audit log
    audit_log_dir: str = Field(
        default="./logs/audit",
        description="Directory holding the daily audit-YYYY-MM-DD.log partitions",
    )
    audit_max_files: int = Field(
        default=30,
        description="Number of audit partitions kept after each rotation",
        gt=0,
    )
    audit_rotation_interval_hours: float = Field(
        default=24.0,
        description="Hours between audit partition rotation checks",
        gt=0,
    )
    audit_console_output: bool = Field(
        default=False,
        description="Echo every audit record through the diagnostic logger",
    )
    audit_purge_default_days: int = Field(
        default=30,
        description="Default age in days for the administrative audit log purge",
        gt=0,
    )

    # Uploads
    upload_root: str = Field(
        default="./uploads",
        description="Root directory for uploaded files (one subdirectory per category)",
    )
    upload_filename_max_length: int = Field(
        default=255,
        description="Maximum accepted length of an uploaded file's original name",
        gt=0,
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )
    rate_limit_per_minute: int = Field(
        default=200,
        description="Maximum API requests per minute per IP address",
        gt=0,
    )
    trusted_proxy_headers: str = Field(
        default="CF-Connecting-IP,X-Forwarded-For,X-Real-IP",
        description="Comma-separated list of HTTP headers to check for real client IP, in priority order",
    )

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Parse trusted proxy headers string into a list."""
        if not self.trusted_proxy_headers.strip():
            return []
        return [h.strip() for h in self.trusted_proxy_headers.split(",") if h.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def audit_rotation_interval_seconds(self) -> float:
        """Rotation period converted to seconds."""
        return self.audit_rotation_interval_hours * 3600


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]

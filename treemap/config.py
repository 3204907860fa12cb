"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # External API Configuration
    external_api_base_url: str = Field(
        default="https://api.example.com",
        description="Base URL for the tree inventory API"
    )
    external_api_key: str = Field(
        default="",
        description="API key for authentication"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for API calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Map View
    map_center_longitude: float = Field(
        default=-71.09299151011383,
        description="Initial viewport centre longitude"
    )
    map_center_latitude: float = Field(
        default=42.38245089323975,
        description="Initial viewport centre latitude"
    )
    map_zoom: float = Field(
        default=18.0,
        description="Initial viewport zoom level"
    )
    map_width: int = Field(
        default=1280,
        description="Viewport width in pixels"
    )
    map_height: int = Field(
        default=800,
        description="Viewport height in pixels"
    )
    cluster_radius: int = Field(
        default=50,
        description="Clustering radius in pixels"
    )
    cluster_max_zoom: int = Field(
        default=16,
        description="Highest zoom level at which points are clustered"
    )

    # Interaction Timing
    long_press_dwell_ms: int = Field(
        default=1000,
        description="Sustained press duration that opens the new tree form"
    )
    viewport_debounce_ms: int = Field(
        default=300,
        description="Quiet window before a pan/zoom triggers a sidebar refresh"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Tree Map View Service",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()

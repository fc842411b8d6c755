from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings

from backend.common.constants import (
    DEFAULT_DUPLICATE_CANDIDATES_LIMIT,
    DEFAULT_DUPLICATE_LIST_LIMIT,
    DEFAULT_SCAN_INTERVAL_SECONDS,
    DEFAULT_SIMILAR_MATCHES_LIMIT,
)


class Settings(BaseSettings):
    """Application-wide settings loaded from environment variables."""

    service_name: str = Field(
        default="catalogue_api",
        description="Friendly name of the running service for logging.",
        validation_alias="SERVICE_NAME",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level.",
        validation_alias="LOG_LEVEL",
    )

    # API Key for authentication
    catalogue_api_key: str = Field(
        default="",
        description="API key for authenticating requests to protected endpoints.",
        validation_alias="CATALOGUE_API_KEY",
    )

    # Duplicate detection
    duplicate_candidates_limit: int = Field(
        default=DEFAULT_DUPLICATE_CANDIDATES_LIMIT,
        description="Maximum number of candidates returned for a single device.",
        validation_alias="DUPLICATE_CANDIDATES_LIMIT",
    )
    similar_matches_limit: int = Field(
        default=DEFAULT_SIMILAR_MATCHES_LIMIT,
        description="Maximum number of matches returned by the similar-name lookup.",
        validation_alias="SIMILAR_MATCHES_LIMIT",
    )
    duplicate_list_limit: int = Field(
        default=DEFAULT_DUPLICATE_LIST_LIMIT,
        description="Default page size when listing devices by duplicate status.",
        validation_alias="DUPLICATE_LIST_LIMIT",
    )
    scan_interval_seconds: int = Field(
        default=DEFAULT_SCAN_INTERVAL_SECONDS,
        description="Seconds between two passes of the duplicate scan worker.",
        validation_alias="SCAN_INTERVAL_SECONDS",
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    # Validate that CATALOGUE_API_KEY is set
    settings = Settings()
    if not settings.catalogue_api_key:
        raise RuntimeError("CATALOGUE_API_KEY is not set. Please check your .env file.")
    return settings

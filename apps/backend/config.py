"""
Zen AI Fax - Configuration
==========================
Environment-based settings using pydantic-settings.

Every cloud setting is optional. Leaving one unset selects the local or
mock strategy for the component it configures.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Azure Blob Storage
    # ==========================================================================
    azure_storage_connection_string: Optional[str] = Field(
        default=None,
        description="Azure Storage connection string (unset = local storage)"
    )
    azure_storage_container: str = Field(
        default="faxes",
        description="Blob container receiving uploaded files"
    )

    # ==========================================================================
    # Azure Document Intelligence (Form Recognizer)
    # ==========================================================================
    form_recognizer_endpoint: Optional[str] = Field(default=None)
    form_recognizer_key: Optional[str] = Field(default=None)
    analysis_model_id: str = Field(
        default="prebuilt-layout",
        description="Document Intelligence model used for analysis"
    )

    # ==========================================================================
    # Persistence
    # ==========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/zenfax.db",
        description="SQLAlchemy async database URL"
    )
    upload_dir: str = Field(
        default="./uploads",
        description="Directory where uploaded files land first"
    )

    # ==========================================================================
    # Runtime Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    @field_validator(
        "azure_storage_connection_string",
        "form_recognizer_endpoint",
        "form_recognizer_key",
        mode="before",
    )
    @classmethod
    def blank_as_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty or whitespace-only values as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("azure_storage_container")
    @classmethod
    def validate_container(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("AZURE_STORAGE_CONTAINER must not be empty")
        return v.strip()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is a usable TCP port."""
        if v < 1 or v > 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def blob_storage_enabled(self) -> bool:
        """Azure Blob Storage is used only when a connection string is set."""
        return self.azure_storage_connection_string is not None

    @property
    def cloud_analysis_enabled(self) -> bool:
        """Document Intelligence needs both an endpoint and a key."""
        return (
            self.form_recognizer_endpoint is not None
            and self.form_recognizer_key is not None
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment on every call.
    """
    return Settings()

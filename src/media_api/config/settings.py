# src/media_api/config/settings.py
from functools import lru_cache
from typing import Iterator, List, Optional, Tuple

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STORAGE_BACKENDS = ("local", "cloudinary")
DEFAULT_MAX_UPLOAD_BYTES = 500 * 1024 * 1024
MASK = "*****"


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from media_api.config.settings import get_settings
        settings = get_settings()
        upload_dir = settings.upload_dir
    """

    # Application Settings
    app_name: str = Field(
        default="wedding-media-api",
        description="Application name"
    )

    # Storage backend selection
    storage_backend: str = Field(
        default="local",
        description="Where uploaded media lives: local or cloudinary"
    )

    # Cloudinary credentials
    cloud_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CLOUD_NAME", "cloud_name"),
    )

    cloud_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CLOUD_API_KEY", "cloud_api_key"),
    )

    cloud_api_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CLOUD_API_SECRET", "cloud_api_secret"),
    )

    cloudinary_folder: str = Field(
        default="wedding-memories",
        description="Cloudinary folder uploads are grouped under"
    )

    cloudinary_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout in seconds for a single Cloudinary API call"
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001, description="Listening port")

    client_origins: List[str] = Field(
        default=["http://localhost:5173"],
        description="Origins allowed by CORS"
    )

    # Local storage
    upload_dir: str = Field(
        default="uploads",
        description="Directory holding locally stored media"
    )

    temp_dir: str = Field(
        default="temp-uploads",
        description="Directory for in-flight upload artifacts"
    )

    public_url_prefix: str = Field(
        default="/uploads",
        description="URL prefix locally stored media is served under"
    )

    max_upload_bytes: int = Field(
        default=DEFAULT_MAX_UPLOAD_BYTES,
        gt=0,
        description="Largest accepted upload in bytes"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v):
        """Validate the storage backend is one of the allowed values."""
        v = (v or "").strip().lower()
        if v not in STORAGE_BACKENDS:
            raise ValueError(f"Invalid storage_backend: {v}. Must be one of {list(STORAGE_BACKENDS)}")
        return v

    @field_validator("public_url_prefix")
    @classmethod
    def normalize_public_url_prefix(cls, v: str) -> str:
        return "/" + v.strip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def cloudinary_configured(self) -> bool:
        """True when every Cloudinary credential is present."""
        return all([self.cloud_name, self.cloud_api_key, self.cloud_api_secret])

    def masked_items(self) -> Iterator[Tuple[str, object]]:
        """Yield (name, value) pairs with secrets masked, for logs and `show-config`."""
        for key, value in self.model_dump().items():
            if value is not None and ("secret" in key or "api_key" in key):
                value = MASK
            yield key, value

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()

"""Store configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Required fields (STORAGE_SECRET, and S3_BUCKET for the
s3 backend) are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from objectstore.core.constants import DEFAULT_SNIFF_BYTES, MIN_SECRET_LENGTH


class Settings(BaseSettings):
    """Store settings loaded from environment and .env.

    All settings are optional with defaults except storage_secret, and the
    bucket when storage_backend is 's3'.
    """

    # App
    app_name: str = "objectstore"
    debug: bool = False

    # Storage
    storage_backend: str = "local"
    storage_root: str = "/var/objectstore/storage"
    # Keys record placement; never persisted or logged.
    storage_secret: SecretStr = SecretStr("")
    storage_chunk_size: int = 64 * 1024  # 64KB
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None

    # Listing
    list_default_limit: int = 10
    list_max_limit: int = 100

    # Model
    content_sniff_bytes: int = DEFAULT_SNIFF_BYTES
    password_bcrypt_rounds: int = 12

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required_and_storage(self) -> "Settings":
        """Validate the storage secret, backend and numeric limits."""
        if len(self.storage_secret.get_secret_value()) < MIN_SECRET_LENGTH:
            raise ValueError(
                f"STORAGE_SECRET is required and must be at least {MIN_SECRET_LENGTH} "
                "characters. Generate with: openssl rand -hex 32."
            )
        backend = self.storage_backend.lower()
        if backend == "s3":
            if not self.s3_bucket:
                raise ValueError(
                    "s3_bucket is required when storage_backend is 's3'. "
                    "Set S3_BUCKET environment variable or update .env file."
                )
        elif backend == "local":
            if not self.storage_root:
                raise ValueError("STORAGE_ROOT required for local backend")
        else:
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. "
                "Must be one of: 'local', 's3'"
            )
        if self.list_default_limit < 0 or self.list_max_limit < 1:
            raise ValueError("List limits must be positive")
        if self.list_default_limit > self.list_max_limit:
            raise ValueError("list_default_limit cannot exceed list_max_limit")
        if self.storage_chunk_size < 1 or self.content_sniff_bytes < 1:
            raise ValueError("storage_chunk_size and content_sniff_bytes must be positive")
        if not 4 <= self.password_bcrypt_rounds <= 31:
            raise ValueError("password_bcrypt_rounds must be between 4 and 31")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()

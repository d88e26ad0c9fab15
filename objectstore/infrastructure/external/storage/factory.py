"""Storage service factory: creates local or S3 backend from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from objectstore.infrastructure.external.storage.protocol import StorageProtocol

if TYPE_CHECKING:
    from objectstore.application.services.type_registry import TypeRegistry
    from objectstore.core.config import Settings


class StorageFactory:
    """Factory for storage service instances based on configuration."""

    @staticmethod
    def create_storage_service(
        settings: "Settings | None" = None,
        types: "TypeRegistry | None" = None,
    ) -> StorageProtocol:
        """Create storage service from settings.

        Args:
            settings: Store settings; if None, uses get_settings().
            types: Type registry to share; a fresh one (with a password hasher
                using settings.password_bcrypt_rounds) when None.

        Returns:
            LocalStorageService or S3StorageService.

        Raises:
            ValueError: Unknown backend or missing required config.
        """
        from objectstore.application.services.type_registry import TypeRegistry
        from objectstore.core.config import get_settings
        from objectstore.infrastructure.security.password import BcryptPasswordHasher

        s = settings or get_settings()
        backend = s.storage_backend.lower()
        secret = s.storage_secret.get_secret_value()
        if types is None:
            types = TypeRegistry(
                password_hasher=BcryptPasswordHasher(rounds=s.password_bcrypt_rounds)
            )

        if backend == "local":
            from objectstore.infrastructure.external.storage.local_storage import (
                LocalStorageService,
            )

            if not s.storage_root:
                raise ValueError("STORAGE_ROOT required for local backend")
            return LocalStorageService(
                storage_root=s.storage_root,
                secret=secret,
                types=types,
                default_limit=s.list_default_limit,
                max_limit=s.list_max_limit,
                chunk_size=s.storage_chunk_size,
                sniff_bytes=s.content_sniff_bytes,
            )
        if backend == "s3":
            if not s.s3_bucket:
                raise ValueError("S3_BUCKET required for s3 backend")
            try:
                from objectstore.infrastructure.external.storage.s3_storage import (
                    S3StorageService,
                )
            except ImportError as e:
                raise ValueError(
                    "S3 backend requires boto3. Install with: pip install 'objectstore[storage]'"
                ) from e
            return S3StorageService(
                bucket=s.s3_bucket,
                secret=secret,
                region=s.s3_region,
                endpoint_url=s.s3_endpoint_url,
                access_key=s.s3_access_key,
                secret_key=s.s3_secret_key.get_secret_value() if s.s3_secret_key else None,
                types=types,
                default_limit=s.list_default_limit,
                max_limit=s.list_max_limit,
                chunk_size=s.storage_chunk_size,
                sniff_bytes=s.content_sniff_bytes,
            )
        raise ValueError(
            f"Unknown storage backend: {backend}. Supported: 'local', 's3'"
        )

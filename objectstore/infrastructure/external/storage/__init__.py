"""Storage: local filesystem and S3-compatible backends.

Factory creates backend from objectstore.core.config. Implementations are
loaded lazily inside StorageFactory.create_storage_service() so that:
- Default (local) only requires aiofiles (main dependency).
- S3 backend only loads boto3 when used; install with the 'storage' extra.

Implementations implement StorageProtocol (create, get, patch, remove, list).
"""

from objectstore.infrastructure.external.storage.factory import StorageFactory
from objectstore.infrastructure.external.storage.placement import RecordPlacement
from objectstore.infrastructure.external.storage.protocol import StorageProtocol

__all__ = [
    "RecordPlacement",
    "StorageFactory",
    "StorageProtocol",
]

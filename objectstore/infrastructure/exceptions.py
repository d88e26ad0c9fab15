"""Infrastructure exceptions for storage operations.

Storage errors extend ObjectStoreException so callers can handle every
store error uniformly, while StorageException separates "the store is
unavailable" from "my data is bad". A missing record is not an error:
storage backends return None for it.
"""

from objectstore.domain.exceptions import ObjectStoreException


class StorageException(ObjectStoreException):
    """Base exception for storage-medium failures."""


class StorageUploadError(StorageException):
    """Writing a record or its content failed."""

    def __init__(self, storage_ref: str, reason: str) -> None:
        super().__init__(
            f"Failed to write object: {storage_ref}",
            "STORAGE_UPLOAD_ERROR",
            {"storage_ref": storage_ref, "reason": reason},
        )


class StorageDownloadError(StorageException):
    """Reading a record or its content failed."""

    def __init__(self, storage_ref: str, reason: str) -> None:
        super().__init__(
            f"Failed to read object: {storage_ref}",
            "STORAGE_DOWNLOAD_ERROR",
            {"storage_ref": storage_ref, "reason": reason},
        )


class StorageDeleteError(StorageException):
    """Removing a record or its content failed."""

    def __init__(self, storage_ref: str, reason: str) -> None:
        super().__init__(
            f"Failed to delete object: {storage_ref}",
            "STORAGE_DELETE_ERROR",
            {"storage_ref": storage_ref, "reason": reason},
        )


class StorageCorruptedError(StorageException):
    """Stored metadata cannot be decoded."""

    def __init__(self, storage_ref: str, reason: str) -> None:
        super().__init__(
            f"Corrupted object metadata: {storage_ref}",
            "STORAGE_CORRUPTED",
            {"storage_ref": storage_ref, "reason": reason},
        )


class StorageAlreadyExistsError(StorageException):
    """A record already exists under the key of a new object."""

    def __init__(self, storage_ref: str) -> None:
        super().__init__(
            f"Object already exists: {storage_ref}",
            "STORAGE_EXISTS_ERROR",
            {"storage_ref": storage_ref},
        )


class StoragePermissionError(StorageException):
    """Path escapes the storage root or the medium denied access."""

    def __init__(self, storage_ref: str, operation: str) -> None:
        super().__init__(
            f"Permission denied for {operation} on {storage_ref}",
            "STORAGE_PERMISSION_ERROR",
            {"storage_ref": storage_ref, "operation": operation},
        )

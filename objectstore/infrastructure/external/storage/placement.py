"""Secret-keyed placement of records on the storage medium.

Keys are HMAC-SHA256 digests of (namespace, id), so a leaked id reveals
nothing about where its record lives without the secret, and ids can never
smuggle path segments into the store.
"""

import hashlib
import hmac


class RecordPlacement:
    """Maps (namespace, id) to opaque storage keys."""

    NAMESPACE_PREFIX_LENGTH = 32
    FANOUT_LENGTH = 2
    METADATA_SUFFIX = ".meta.json"
    CONTENT_SUFFIX = ".data"

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Storage secret is required")
        self._key = secret.encode("utf-8")

    def _digest(self, message: str) -> str:
        return hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def namespace_prefix(self, namespace: str) -> str:
        """Directory (or key prefix) grouping every record of a namespace."""
        return self._digest(f"ns:{namespace}")[: self.NAMESPACE_PREFIX_LENGTH]

    def record_key(self, namespace: str, object_id: str) -> str:
        """Opaque key for one record."""
        return self._digest(f"{namespace}\0{object_id}")

    def record_ref(self, namespace: str, object_id: str) -> str:
        """Relative location of a record (without suffix)."""
        key = self.record_key(namespace, object_id)
        return f"{self.namespace_prefix(namespace)}/{key[: self.FANOUT_LENGTH]}/{key}"

    def metadata_ref(self, namespace: str, object_id: str) -> str:
        return self.record_ref(namespace, object_id) + self.METADATA_SUFFIX

    def content_ref(self, namespace: str, object_id: str) -> str:
        return self.record_ref(namespace, object_id) + self.CONTENT_SUFFIX

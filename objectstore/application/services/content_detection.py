"""Content-type detection from leading payload bytes.

Detection is by magic bytes only, never by extension or declared type.
Plain text has no signature, so it is reported as undetected.
"""

from typing import Protocol

import filetype


class ContentSniffer(Protocol):
    """Capability mapping leading bytes to a MIME type, or None."""

    def sniff(self, head: bytes) -> str | None: ...


class FiletypeSniffer:
    """Signature-based sniffing backed by the filetype library."""

    def sniff(self, head: bytes) -> str | None:
        if not head:
            return None
        return filetype.guess_mime(head)

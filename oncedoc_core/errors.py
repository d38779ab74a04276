"""
oncedoc_core.errors
-------------------
Error taxonomy for the one-time-access document lifecycle.

Registry and crypto errors are surfaced to the caller unchanged. Access
failures share the `AccessDenied` base so a transport layer can report a
plain reason without revealing whether a code ever existed.
"""

from __future__ import annotations
from typing import Optional


class OnceDocError(Exception):
    pass


# --------- Registry ----------
class RegistryError(OnceDocError):
    pass


class AccessDenied(RegistryError):
    public_reason = "access denied"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_reason)


class InvalidCode(AccessDenied):
    public_reason = "invalid code"


class Expired(AccessDenied):
    public_reason = "expired"


class AlreadyConsumed(AccessDenied):
    public_reason = "already used"


class NotYetConsumed(RegistryError):
    pass


class CodeSpaceExhausted(RegistryError):
    """Raised when no free access code could be found; an operational alarm."""


# --------- Blob store ----------
class BlobStoreError(OnceDocError):
    pass


class StoreUnavailable(BlobStoreError):
    pass


class NotFound(BlobStoreError):
    pass


# --------- Crypto / watermark ----------
class DecryptionError(OnceDocError):
    pass


class WatermarkError(OnceDocError):
    pass


# --------- Lifecycle ----------
class UploadRejected(OnceDocError):
    pass


class DocumentUnreadable(OnceDocError):
    """The access code was burned but the document could not be produced."""

    public_reason = "document unreadable"

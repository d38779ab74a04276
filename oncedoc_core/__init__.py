"""
OnceDoc Core Package
====================
One-time-access document sharing: encrypt a document, deposit the ciphertext
in a blob store, and hand the recipient a short numeric code that opens it
exactly once before it is deleted.

Provides:
- AES-256-GCM document encryption with a per-document key
- Access-code registry with atomic single-use consume (memory / SQLite)
- Blob store adapters (memory / filesystem / Pinata IPFS)
- Audit sinks (log / memory / SQLite / Kafka)
- DocumentLifecycleService and a background expiry sweeper
"""

from oncedoc_core.lifecycle import DocumentLifecycleService
from oncedoc_core.config import LifecycleConfig
from oncedoc_core.crypto import CryptoEngine
from oncedoc_core.models import (
    AccessResult, AuditAction, AuditEvent, DocumentDraft, DocumentRecord,
    DocumentState, UploadReceipt, ViewerContext,
)
from oncedoc_core.sweeper import ExpirySweeper
from oncedoc_core.errors import (
    OnceDocError,
    AccessDenied,
    InvalidCode,
    Expired,
    AlreadyConsumed,
    NotYetConsumed,
    CodeSpaceExhausted,
    DecryptionError,
    StoreUnavailable,
    NotFound,
    WatermarkError,
    UploadRejected,
    DocumentUnreadable,
)

__version__ = "0.1.0"
__all__ = [
    # Core
    "DocumentLifecycleService",
    "LifecycleConfig",
    "CryptoEngine",
    "ExpirySweeper",
    # Models
    "AccessResult",
    "AuditAction",
    "AuditEvent",
    "DocumentDraft",
    "DocumentRecord",
    "DocumentState",
    "UploadReceipt",
    "ViewerContext",
    # Exceptions
    "OnceDocError",
    "AccessDenied",
    "InvalidCode",
    "Expired",
    "AlreadyConsumed",
    "NotYetConsumed",
    "CodeSpaceExhausted",
    "DecryptionError",
    "StoreUnavailable",
    "NotFound",
    "WatermarkError",
    "UploadRejected",
    "DocumentUnreadable",
]

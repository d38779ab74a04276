# oncedoc_core/models.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from .utils import to_iso, utcnow


class DocumentState(str, Enum):
    ACTIVE = "active"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    DELETED = "deleted"


class AuditAction(str, Enum):
    UPLOAD = "upload"
    ACCESS = "access"
    PRINT = "print"
    EXPIRE = "expire"


@dataclass(frozen=True)
class DocumentDraft:
    """
    What the lifecycle service hands to the registry once the encrypted blob
    has been stored. The registry turns it into an `Active` DocumentRecord.
    """
    blob_id: str
    encryption_key: bytes = field(repr=False)
    file_name: str
    mime_type: str
    recipient_name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class DocumentRecord:
    """
    Registry-level representation of one shared document.

    Records are immutable values: state transitions produce a new record via
    `with_state()`, so a copy handed to a caller never changes underneath it.
    `encryption_key` is excluded from repr and from `public_dict()`.
    """
    id: str
    access_code: str
    encryption_key: bytes = field(repr=False)
    file_name: str
    mime_type: str
    created_at: datetime
    expiry_time: datetime
    state: DocumentState = DocumentState.ACTIVE
    recipient_name: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_draft(cls, draft: DocumentDraft, access_code: str,
                   created_at: datetime, expiry_time: datetime) -> "DocumentRecord":
        return cls(
            id=draft.blob_id,
            access_code=access_code,
            encryption_key=draft.encryption_key,
            file_name=draft.file_name,
            mime_type=draft.mime_type,
            created_at=created_at,
            expiry_time=expiry_time,
            state=DocumentState.ACTIVE,
            recipient_name=draft.recipient_name,
            notes=draft.notes,
        )

    def with_state(self, state: DocumentState) -> "DocumentRecord":
        return replace(self, state=state)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expiry_time

    def public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "access_code": self.access_code,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "created_at": to_iso(self.created_at),
            "expiry_time": to_iso(self.expiry_time),
            "state": self.state.value,
            "recipient_name": self.recipient_name,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class AuditEvent:
    action: AuditAction
    access_code: str
    blob_id: str
    timestamp: datetime = field(default_factory=utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso(self.timestamp),
            "action": self.action.value,
            "access_code": self.access_code,
            "blob_id": self.blob_id,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class UploadReceipt:
    access_code: str
    expiry_time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"access_code": self.access_code, "expiry_time": to_iso(self.expiry_time)}


@dataclass
class AccessResult:
    file_name: str
    mime_type: str
    content: bytes = field(repr=False)
    watermarked: bool = False
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ViewerContext:
    """Device metadata embedded by the watermark stage."""
    browser: str = "unknown"
    ip: str = "unknown"
    time: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["time"] = to_iso(self.time)
        return d

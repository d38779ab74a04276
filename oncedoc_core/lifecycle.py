"""
oncedoc_core.lifecycle
----------------------
DocumentLifecycleService orchestrates the one-time-access flow:

    upload   : encrypt -> BlobStore.put -> registry.issue -> audit(upload)
    access   : registry.consume -> BlobStore.get -> decrypt -> audit(access)
    finalize : registry.finalize -> BlobStore.delete -> audit(print)
    sweep    : registry.sweep_expired -> BlobStore.delete -> audit(expire)

Registry and crypto errors reach the caller unchanged. Once consume() has
succeeded the code is burned: later failures surface as DocumentUnreadable
and the blob is discarded, never restored. Compensating deletes that hit
StoreUnavailable are retried on the CleanupQueue so they never block the
caller.
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Tuple
import time
from .audit import BaseAuditLog, LoggerAuditLog, audit_factory
from .blobstore import BaseBlobStore, InMemoryBlobStore, blobstore_factory
from .cleanup import CleanupQueue
from .codes import validate_access_code
from .config import LifecycleConfig
from .crypto import CryptoEngine
from .errors import (
    DecryptionError, DocumentUnreadable, InvalidCode, NotFound, RegistryError,
    StoreUnavailable, UploadRejected, WatermarkError,
)
from .logger import get_logger
from .models import (
    AccessResult, AuditAction, AuditEvent, DocumentDraft, DocumentRecord,
    DocumentState, UploadReceipt, ViewerContext,
)
from .registry import AccessCodeRegistry, load_registry
from .utils import to_iso
from .watermark import PassthroughWatermark, WatermarkStage

log = get_logger("OnceDoc.Lifecycle")


class DocumentLifecycleService:
    def __init__(
        self,
        registry: Optional[AccessCodeRegistry] = None,
        blobstore: Optional[BaseBlobStore] = None,
        audit: Optional[BaseAuditLog] = None,
        crypto: Optional[CryptoEngine] = None,
        watermark: Optional[WatermarkStage] = None,
        config: Optional[LifecycleConfig] = None,
        cleanup: Optional[CleanupQueue] = None,
        sleep=time.sleep,
    ):
        # Injected stores may define __len__, so test against None rather than truthiness
        self.config = config if config is not None else LifecycleConfig()
        self.registry = registry if registry is not None else load_registry({"provider": "memory"}, lifecycle=self.config)
        self.blobstore = blobstore if blobstore is not None else InMemoryBlobStore()
        self.audit = audit if audit is not None else LoggerAuditLog()
        self.crypto = crypto if crypto is not None else CryptoEngine()
        self.watermark = watermark if watermark is not None else PassthroughWatermark()
        self.cleanup = cleanup if cleanup is not None else CleanupQueue(self.blobstore, delay_base=self.config.retry_delay_base)
        self._sleep = sleep

    @classmethod
    def from_env(cls, **overrides) -> "DocumentLifecycleService":
        config = overrides.pop("config", None) or LifecycleConfig.from_env()
        overrides.setdefault("registry", load_registry(lifecycle=config))
        overrides.setdefault("blobstore", blobstore_factory())
        overrides.setdefault("audit", audit_factory())
        return cls(config=config, **overrides)

    @property
    def clock(self):
        return self.registry.clock

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------
    def upload(self, data: bytes, file_name: str, mime_type: str = "application/octet-stream",
               recipient_name: Optional[str] = None, notes: Optional[str] = None) -> UploadReceipt:
        if not isinstance(data, (bytes, bytearray)):
            raise UploadRejected("document must be bytes")
        if len(data) == 0:
            raise UploadRejected("document is empty")
        if len(data) > self.config.max_upload_bytes:
            raise UploadRejected(f"document exceeds {self.config.max_upload_bytes} bytes")
        if not file_name or not isinstance(file_name, str):
            raise UploadRejected("file_name is required")

        ciphertext, key = self.crypto.encrypt(bytes(data))
        blob_id = self.blobstore.put(ciphertext, {
            "file_name": file_name,
            "mime_type": mime_type,
            "size": len(ciphertext),
        })

        # No code may outlive a failed issue, and no blob may outlive a missing code.
        try:
            code = self.registry.issue(DocumentDraft(
                blob_id=blob_id,
                encryption_key=key,
                file_name=file_name,
                mime_type=mime_type,
                recipient_name=recipient_name,
                notes=notes,
            ))
        except BaseException:
            log.warning(f"[UPLOAD] issue failed, discarding orphan blob={blob_id}")
            self._discard_blob(blob_id)
            raise

        record = self.registry.get(code)
        expiry = record.expiry_time if record else self.clock() + self.config.validity_window
        self._emit(AuditAction.UPLOAD, code, blob_id,
                   file_name=file_name, mime_type=mime_type, expiry_time=to_iso(expiry))
        log.info(f"[UPLOAD] blob={blob_id} bytes={len(data)} expires={to_iso(expiry)}")
        return UploadReceipt(access_code=code, expiry_time=expiry)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def access(self, access_code: str) -> AccessResult:
        """
        Burn the code and return the decrypted document. The caller is
        expected to run the result through a WatermarkStage (see view()).
        """
        record, result = self._open(access_code)
        self._emit_access(record, "ok")
        return result

    def view(self, access_code: str, viewer: Optional[ViewerContext] = None) -> AccessResult:
        """
        access() followed by the watermark stage. With fail_closed_watermark
        (default) a WatermarkError aborts the view and the document is retired;
        otherwise the unwatermarked content is returned with a warning.
        """
        record, result = self._open(access_code)
        viewer = viewer or ViewerContext(time=self.clock())
        outcome = "ok"
        try:
            result.content = self.watermark.apply(result.content, result.mime_type, viewer)
            result.watermarked = True
        except WatermarkError as e:
            if self.config.fail_closed_watermark:
                log.error(f"[VIEW] watermark failed, withholding blob={record.id}: {e}")
                self._fail_access(record, "withheld", e)
                raise
            log.warning(f"[VIEW] serving unwatermarked blob={record.id}: {e}")
            result.warnings.append(f"watermark not applied: {e}")
            outcome = "unwatermarked"
        except BaseException as e:
            self._fail_access(record, "error", e)
            raise
        self._emit_access(record, outcome)
        return result

    def _open(self, access_code: str) -> Tuple[DocumentRecord, AccessResult]:
        """Consume the code and decrypt. Any failure past consume retires the document."""
        if not validate_access_code(access_code, self.config.code_digits):
            raise InvalidCode()

        record = self.registry.consume(access_code)

        try:
            ciphertext = self._get_with_retry(record.id)
            plaintext = self.crypto.decrypt(ciphertext, record.encryption_key)
        except (NotFound, StoreUnavailable, DecryptionError) as e:
            log.error(f"[ACCESS] blob={record.id} unreadable: {type(e).__name__}")
            self._fail_access(record, "unreadable", e)
            raise DocumentUnreadable("document could not be read; request a new upload") from e
        except BaseException as e:
            log.error(f"[ACCESS] blob={record.id} aborted: {type(e).__name__}")
            self._fail_access(record, "error", e)
            raise

        log.info(f"[ACCESS] blob={record.id} bytes={len(plaintext)}")
        return record, AccessResult(file_name=record.file_name, mime_type=record.mime_type, content=plaintext)

    def _emit_access(self, record: DocumentRecord, outcome: str) -> None:
        self._emit(AuditAction.ACCESS, record.access_code, record.id,
                   outcome=outcome, file_name=record.file_name, mime_type=record.mime_type)

    def _fail_access(self, record: DocumentRecord, outcome: str, error: BaseException) -> None:
        self._emit(AuditAction.ACCESS, record.access_code, record.id,
                   outcome=outcome, error=type(error).__name__)
        self._retire(record)

    def _get_with_retry(self, blob_id: str) -> bytes:
        attempts = self.config.read_retries
        for attempt in range(attempts):
            try:
                return self.blobstore.get(blob_id)
            except StoreUnavailable as e:
                if attempt + 1 >= attempts:
                    raise
                delay = self.config.retry_delay_base * (2 ** attempt)
                log.warning(f"[ACCESS] get blob={blob_id} unavailable ({e}), retry in {delay:.2f}s")
                self._sleep(delay)

    def _retire(self, record: DocumentRecord) -> None:
        """Drop a burned record and its blob after a failed read or view."""
        try:
            self.registry.finalize(record.access_code)
        except RegistryError as e:
            # Already reclaimed by a concurrent sweep
            log.info(f"[RETIRE] registry entry for blob={record.id} gone: {type(e).__name__}")
        self._discard_blob(record.id)

    # ------------------------------------------------------------------
    # Print / finalize
    # ------------------------------------------------------------------
    def finalize_after_print(self, access_code: str) -> None:
        if not validate_access_code(access_code, self.config.code_digits):
            raise InvalidCode()
        record = self.registry.finalize(access_code)
        deleted = self._discard_blob(record.id)
        self._emit(AuditAction.PRINT, record.access_code, record.id, file_name=record.file_name)
        log.info(f"[PRINT] blob={record.id} {'deleted' if deleted else 'delete deferred'}")

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------
    def sweep(self, now=None) -> int:
        reclaimed = self.registry.sweep_expired(now)
        for record in reclaimed:
            self._discard_blob(record.id)
            self._emit(AuditAction.EXPIRE, record.access_code, record.id,
                       expiry_time=to_iso(record.expiry_time))
        return len(reclaimed)

    # ------------------------------------------------------------------
    # Operator helpers
    # ------------------------------------------------------------------
    def status(self, access_code: str) -> Dict[str, Any]:
        """Non-mutating lookup; never exposes key material."""
        record = self.registry.get(access_code) if validate_access_code(access_code, self.config.code_digits) else None
        if record is None:
            raise InvalidCode()
        state = record.state
        if state in (DocumentState.ACTIVE, DocumentState.CONSUMED) and record.is_expired(self.clock()):
            state = DocumentState.EXPIRED
        return {"state": state.value, "expiry_time": to_iso(record.expiry_time), "file_name": record.file_name}

    def healthz(self) -> Dict[str, Any]:
        return {
            "registry": self.registry.healthz(),
            "blobstore": self.blobstore.healthz(),
            "cleanup_pending": self.cleanup.pending(),
        }

    def close(self, timeout: float = 10.0) -> None:
        if not self.cleanup.drain(timeout):
            log.error(f"[CLOSE] {self.cleanup.pending()} blob deletes still pending after {timeout}s")
        self.cleanup.close()
        self.registry.close()
        self.blobstore.close()
        self.audit.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _discard_blob(self, blob_id: str) -> bool:
        """Delete now if possible; returns False when the delete went to the cleanup queue."""
        try:
            self.blobstore.delete(blob_id)
            return True
        except StoreUnavailable as e:
            log.warning(f"[DISCARD] blob={blob_id} delete deferred: {e}")
            self.cleanup.submit(blob_id)
            return False

    def _emit(self, action: AuditAction, access_code: str, blob_id: str, **metadata) -> None:
        event = AuditEvent(action=action, access_code=access_code, blob_id=blob_id,
                           timestamp=self.clock(), metadata=metadata)
        try:
            self.audit.record(event)
        except Exception:
            log.exception(f"[AUDIT] failed to record {action.value} for blob={blob_id}")

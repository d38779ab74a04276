from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional
import threading
from oncedoc_core.logger import get_logger
from oncedoc_core.models import DocumentDraft, DocumentRecord, DocumentState
from oncedoc_core.registry.provider import AccessCodeRegistry

log = get_logger("OnceDoc.Registry.Memory")


class InMemoryRegistry(AccessCodeRegistry):
    """
    Single-writer in-process index. Every read-check-write on the index
    happens under one lock, so consume/finalize/sweep on the same code are
    totally ordered. Critical sections are dict operations only.
    """

    name = "memory"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.records: Dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()

    def issue(self, draft: DocumentDraft) -> str:
        with self._lock:
            code = self._pick_code(lambda c: c in self.records, len(self.records))
            self.records[code] = self._new_record(draft, code)
        log.debug(f"[ISSUE] blob={draft.blob_id}")
        return code

    def consume(self, access_code: str) -> DocumentRecord:
        with self._lock:
            rec, err = self._on_consume(self.records.get(access_code), self.clock())
            if rec is not None:
                self.records[access_code] = rec
        if err:
            raise err
        return rec

    def finalize(self, access_code: str) -> DocumentRecord:
        with self._lock:
            current = self.records.get(access_code)
            rec, err = self._on_finalize(current, self.clock())
            if err is None:
                del self.records[access_code]
            elif rec is not None:
                self.records[access_code] = rec
        if err:
            raise err
        return current.with_state(DocumentState.DELETED)

    def sweep_expired(self, now: Optional[datetime] = None) -> List[DocumentRecord]:
        now = now or self.clock()
        with self._lock:
            stale = [code for code, rec in self.records.items() if rec.is_expired(now)]
            reclaimed = [self.records.pop(code).with_state(DocumentState.EXPIRED) for code in stale]
        if reclaimed:
            log.info(f"[SWEEP] reclaimed={len(reclaimed)}")
        return reclaimed

    def get(self, access_code: str) -> Optional[DocumentRecord]:
        with self._lock:
            return self.records.get(access_code)

    def count(self) -> int:
        with self._lock:
            return len(self.records)

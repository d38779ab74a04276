# oncedoc_core/registry/provider.py
"""
AccessCodeRegistry contract.

The registry is the single owner of the code -> record index and the only
place one-time access is enforced. Providers must run the checks and the
state transition of consume()/finalize()/sweep_expired() for a given code as
one indivisible unit; the transition rules themselves live here so every
backend applies them identically.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
from oncedoc_core.codes import code_space_size, generate_access_code
from oncedoc_core.constants import DEFAULT_CODE_DIGITS, DEFAULT_MAX_CODE_ATTEMPTS, DEFAULT_VALIDITY_MINUTES
from oncedoc_core.errors import (
    AlreadyConsumed, CodeSpaceExhausted, Expired, InvalidCode, NotYetConsumed, RegistryError,
)
from oncedoc_core.models import DocumentDraft, DocumentRecord, DocumentState
from oncedoc_core.utils import utcnow

Clock = Callable[[], datetime]


class AccessCodeRegistry:
    name: str = "base"

    def __init__(
        self,
        validity_window: timedelta = timedelta(minutes=DEFAULT_VALIDITY_MINUTES),
        code_digits: int = DEFAULT_CODE_DIGITS,
        max_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS,
        clock: Clock = utcnow,
        code_generator: Callable[[int], str] = generate_access_code,
    ):
        self.validity_window = validity_window
        self.code_digits = code_digits
        self.max_attempts = max_attempts
        self.clock = clock
        self.code_generator = code_generator

    # Interface
    def issue(self, draft: DocumentDraft) -> str: raise NotImplementedError
    def consume(self, access_code: str) -> DocumentRecord: raise NotImplementedError
    def finalize(self, access_code: str) -> DocumentRecord: raise NotImplementedError
    def sweep_expired(self, now: Optional[datetime] = None) -> List[DocumentRecord]: raise NotImplementedError
    def get(self, access_code: str) -> Optional[DocumentRecord]: raise NotImplementedError
    def count(self) -> int: raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "registry": self.name, "records": self.count()}

    def close(self) -> None:
        return

    # ---------------------------
    # Shared transition rules
    # ---------------------------
    def _pick_code(self, is_taken: Callable[[str], bool], in_use: int) -> str:
        if in_use >= code_space_size(self.code_digits):
            raise CodeSpaceExhausted(f"all {self.code_digits}-digit codes are in use")
        for _ in range(self.max_attempts):
            code = self.code_generator(self.code_digits)
            if not is_taken(code):
                return code
        raise CodeSpaceExhausted(
            f"no free code after {self.max_attempts} attempts ({in_use} codes in use)"
        )

    def _new_record(self, draft: DocumentDraft, code: str) -> DocumentRecord:
        created = self.clock()
        return DocumentRecord.from_draft(draft, code, created, created + self.validity_window)

    @staticmethod
    def _on_consume(rec: Optional[DocumentRecord], now: datetime) -> Tuple[Optional[DocumentRecord], Optional[RegistryError]]:
        """
        Returns (record to store, error to raise). Checks run in order:
        unknown code, expiry, state. An expired record is stored as Expired so
        later attempts keep failing with Expired until the sweep reclaims it.
        """
        if rec is None:
            return None, InvalidCode()
        if rec.is_expired(now):
            return rec.with_state(DocumentState.EXPIRED), Expired()
        if rec.state != DocumentState.ACTIVE:
            return rec, AlreadyConsumed()
        return rec.with_state(DocumentState.CONSUMED), None

    @staticmethod
    def _on_finalize(rec: Optional[DocumentRecord], now: datetime) -> Tuple[Optional[DocumentRecord], Optional[RegistryError]]:
        """
        Returns (record to store or None to remove, error to raise).
        A Consumed record may be finalized even after its expiry time.
        """
        if rec is None:
            return None, InvalidCode()
        if rec.state == DocumentState.EXPIRED:
            return rec, Expired()
        if rec.state == DocumentState.ACTIVE:
            if rec.is_expired(now):
                return rec.with_state(DocumentState.EXPIRED), Expired()
            return rec, NotYetConsumed("document has not been accessed yet")
        return None, None

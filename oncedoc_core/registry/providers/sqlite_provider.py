from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional
import sqlite3, os, threading
from oncedoc_core.logger import get_logger
from oncedoc_core.errors import AlreadyConsumed
from oncedoc_core.models import DocumentDraft, DocumentRecord, DocumentState
from oncedoc_core.registry.provider import AccessCodeRegistry

log = get_logger("OnceDoc.Registry.SQLite")

_COLUMNS = (
    "access_code, blob_id, encryption_key, file_name, mime_type, "
    "created_ts, expiry_ts, state, recipient_name, notes"
)


def _ts(dt: datetime) -> float:
    return dt.timestamp()


def _dt(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class SQLiteRegistry(AccessCodeRegistry):
    """
    Durable registry backed by SQLite.

    Every mutating operation runs inside BEGIN IMMEDIATE, which takes the
    database write lock up front, so two processes sharing the file cannot
    both pass the checks for one code. State updates are additionally
    guarded by `WHERE state = <expected>` as a compare-and-swap.
    """

    name = "sqlite"

    def __init__(self, path="db/oncedoc_registry.db", **kwargs):
        super().__init__(**kwargs)
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False, isolation_level=None, timeout=30)
        self._lock = threading.Lock()
        self._init()

    def _init(self) -> None:
        self.db.execute("""CREATE TABLE IF NOT EXISTS documents(
            access_code TEXT PRIMARY KEY,
            blob_id TEXT NOT NULL,
            encryption_key BLOB NOT NULL,
            file_name TEXT NOT NULL,
            mime_type TEXT NOT NULL,
            created_ts REAL NOT NULL,
            expiry_ts REAL NOT NULL,
            state TEXT NOT NULL,
            recipient_name TEXT,
            notes TEXT
        )""")
        self.db.execute("CREATE INDEX IF NOT EXISTS ix_documents_expiry ON documents(expiry_ts)")

    @contextmanager
    def _tx(self):
        with self._lock:
            self.db.execute("BEGIN IMMEDIATE")
            try:
                yield self.db
            except BaseException:
                self.db.execute("ROLLBACK")
                raise
            else:
                self.db.execute("COMMIT")

    @staticmethod
    def _row_to_record(row) -> DocumentRecord:
        (code, blob_id, key, file_name, mime_type,
         created_ts, expiry_ts, state, recipient_name, notes) = row
        return DocumentRecord(
            id=blob_id,
            access_code=code,
            encryption_key=bytes(key),
            file_name=file_name,
            mime_type=mime_type,
            created_at=_dt(created_ts),
            expiry_time=_dt(expiry_ts),
            state=DocumentState(state),
            recipient_name=recipient_name,
            notes=notes,
        )

    def _fetch(self, db, access_code: str) -> Optional[DocumentRecord]:
        row = db.execute(f"SELECT {_COLUMNS} FROM documents WHERE access_code=?", (access_code,)).fetchone()
        return self._row_to_record(row) if row else None

    @staticmethod
    def _set_state(db, access_code: str, expected: DocumentState, new: DocumentState) -> None:
        cur = db.execute(
            "UPDATE documents SET state=? WHERE access_code=? AND state=?",
            (new.value, access_code, expected.value),
        )
        if cur.rowcount != 1:
            raise AlreadyConsumed()

    # --- Registry operations ---

    def issue(self, draft: DocumentDraft) -> str:
        with self._tx() as db:
            in_use = db.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
            taken = lambda c: db.execute("SELECT 1 FROM documents WHERE access_code=?", (c,)).fetchone() is not None
            code = self._pick_code(taken, in_use)
            rec = self._new_record(draft, code)
            db.execute(
                f"INSERT INTO documents({_COLUMNS}) VALUES(?,?,?,?,?,?,?,?,?,?)",
                (rec.access_code, rec.id, rec.encryption_key, rec.file_name, rec.mime_type,
                 _ts(rec.created_at), _ts(rec.expiry_time), rec.state.value,
                 rec.recipient_name, rec.notes),
            )
        log.debug(f"[ISSUE] blob={draft.blob_id}")
        return code

    def consume(self, access_code: str) -> DocumentRecord:
        with self._tx() as db:
            current = self._fetch(db, access_code)
            rec, err = self._on_consume(current, self.clock())
            if rec is not None and rec.state != current.state:
                self._set_state(db, access_code, current.state, rec.state)
        if err:
            raise err
        return rec

    def finalize(self, access_code: str) -> DocumentRecord:
        with self._tx() as db:
            current = self._fetch(db, access_code)
            rec, err = self._on_finalize(current, self.clock())
            if err is None:
                db.execute("DELETE FROM documents WHERE access_code=? AND state=?",
                           (access_code, DocumentState.CONSUMED.value))
            elif rec is not None and rec.state != current.state:
                self._set_state(db, access_code, current.state, rec.state)
        if err:
            raise err
        return current.with_state(DocumentState.DELETED)

    def sweep_expired(self, now: Optional[datetime] = None) -> List[DocumentRecord]:
        now = now or self.clock()
        with self._tx() as db:
            rows = db.execute(f"SELECT {_COLUMNS} FROM documents WHERE expiry_ts < ?", (_ts(now),)).fetchall()
            db.execute("DELETE FROM documents WHERE expiry_ts < ?", (_ts(now),))
        reclaimed = [self._row_to_record(r).with_state(DocumentState.EXPIRED) for r in rows]
        if reclaimed:
            log.info(f"[SWEEP] reclaimed={len(reclaimed)}")
        return reclaimed

    def get(self, access_code: str) -> Optional[DocumentRecord]:
        with self._lock:
            return self._fetch(self.db, access_code)

    def count(self) -> int:
        with self._lock:
            return self.db.execute("SELECT COUNT(*) FROM documents").fetchone()[0]

    def close(self):
        self.db.close()

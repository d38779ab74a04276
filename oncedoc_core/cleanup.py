# oncedoc_core/cleanup.py
from __future__ import annotations
from typing import List, Optional
import queue, threading, time
from .blobstore.blobstore_base import BaseBlobStore
from .errors import StoreUnavailable
from .logger import get_logger

log = get_logger("OnceDoc.Cleanup")


class CleanupQueue:
    """
    Retries compensating blob deletes on a daemon thread.

    A delete that failed with StoreUnavailable on the request path is handed
    here and retried with exponential backoff (delay_base * 2**attempt). After
    max_attempts the blob id is logged and kept in `failed` for operators.
    """

    def __init__(self, store: BaseBlobStore, max_attempts: int = 5, delay_base: float = 1.0):
        self.store = store
        self.max_attempts = max_attempts
        self.delay_base = delay_base
        self.failed: List[str] = []
        self._q: "queue.Queue[tuple[str, int]]" = queue.Queue()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    def _ensure_started(self) -> None:
        with self._start_lock:
            if self._thread is None or not self._thread.is_alive():
                self._stop.clear()
                self._thread = threading.Thread(target=self._run, name="oncedoc-cleanup", daemon=True)
                self._thread.start()

    def submit(self, blob_id: str) -> None:
        log.info(f"[CLEANUP] queued blob={blob_id}")
        self._q.put((blob_id, 0))
        self._ensure_started()

    def pending(self) -> int:
        return self._q.unfinished_tasks

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                blob_id, attempt = self._q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                if self._stop.wait(self.delay_base * (2 ** attempt)):
                    self._abandon(blob_id)
                    return
                self.store.delete(blob_id)
                log.info(f"[CLEANUP] deleted blob={blob_id} attempt={attempt + 1}")
            except StoreUnavailable as e:
                if attempt + 1 < self.max_attempts:
                    log.warning(f"[CLEANUP] retry blob={blob_id} attempt={attempt + 1}: {e}")
                    self._q.put((blob_id, attempt + 1))
                else:
                    log.error(f"[CLEANUP] giving up on blob={blob_id} after {self.max_attempts} attempts")
                    self.failed.append(blob_id)
            except Exception:
                log.exception(f"[CLEANUP] unexpected error deleting blob={blob_id}")
                self.failed.append(blob_id)
            finally:
                self._q.task_done()

    def drain(self, timeout: float = 10.0) -> bool:
        """Wait until every queued delete has succeeded or been given up on."""
        deadline = time.monotonic() + timeout
        while self._q.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def _abandon(self, blob_id: str) -> None:
        log.error(f"[CLEANUP] shutdown abandoned delete of blob={blob_id}")
        self.failed.append(blob_id)

    def close(self, timeout: float = 1.0) -> None:
        """
        Stop the worker. Deletes still queued are not retried; they are
        logged and moved to `failed` so an operator can reclaim them.
        Call drain() first to give them a chance to complete.
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        while True:
            try:
                blob_id, _ = self._q.get_nowait()
            except queue.Empty:
                break
            self._abandon(blob_id)
            self._q.task_done()

# oncedoc_core/sweeper.py
from __future__ import annotations
from typing import Optional
import threading
from .logger import get_logger

log = get_logger("OnceDoc.Sweeper")


class ExpirySweeper:
    """Background thread that calls service.sweep() every `interval` seconds."""

    def __init__(self, service, interval: Optional[float] = None):
        self.service = service
        self.interval = interval if interval is not None else service.config.sweep_interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> int:
        reclaimed = self.service.sweep()
        if reclaimed:
            log.info(f"[SWEEP] reclaimed={reclaimed}")
        return reclaimed

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                log.exception("[SWEEP] pass failed")

    def start(self) -> "ExpirySweeper":
        if self._thread is None or not self._thread.is_alive():
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name="oncedoc-sweeper", daemon=True)
            self._thread.start()
        return self

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc):
        self.stop()

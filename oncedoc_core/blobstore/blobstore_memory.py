from __future__ import annotations
from typing import Dict, Optional
import threading
from oncedoc_core.blobstore.blobstore_base import BaseBlobStore, Metadata
from oncedoc_core.errors import NotFound
from oncedoc_core.logger import get_logger
from oncedoc_core.utils import sha256

log = get_logger("OnceDoc.Blob.Memory")


class InMemoryBlobStore(BaseBlobStore):
    name = "memory"

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.metadata: Dict[str, Metadata] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, metadata: Optional[Metadata] = None) -> str:
        blob_id = sha256(data)
        with self._lock:
            self.blobs[blob_id] = bytes(data)
            self.metadata[blob_id] = dict(metadata or {})
        log.debug(f"[MEM PUT] {blob_id} bytes={len(data)}")
        return blob_id

    def get(self, blob_id: str) -> bytes:
        with self._lock:
            data = self.blobs.get(blob_id)
        if data is None:
            raise NotFound(blob_id)
        return data

    def delete(self, blob_id: str) -> None:
        with self._lock:
            self.blobs.pop(blob_id, None)
            self.metadata.pop(blob_id, None)
        log.debug(f"[MEM DEL] {blob_id}")

    def __contains__(self, blob_id: str) -> bool:
        with self._lock:
            return blob_id in self.blobs

    def __len__(self) -> int:
        with self._lock:
            return len(self.blobs)

from __future__ import annotations
from pathlib import Path
from typing import Optional
import json, os, re, tempfile
from oncedoc_core.blobstore.blobstore_base import BaseBlobStore, Metadata
from oncedoc_core.errors import NotFound, StoreUnavailable
from oncedoc_core.logger import get_logger
from oncedoc_core.utils import sha256

log = get_logger("OnceDoc.Blob.FS")

_BLOB_ID = re.compile(r"[0-9a-f]{64}")


class FileSystemBlobStore(BaseBlobStore):
    """
    Local-disk store, content-addressed by the SHA-256 of the ciphertext.

    Layout: <root>/<id[:2]>/<id>.bin plus a <id>.json sidecar holding the
    display metadata. Writes go to a temp file in the same directory and are
    moved into place with os.replace, so readers never see a partial blob.
    """

    name = "fs"

    def __init__(self, root="db/blobs"):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _paths(self, blob_id: str):
        if not _BLOB_ID.fullmatch(blob_id or ""):
            raise NotFound(blob_id)
        d = self.root / blob_id[:2]
        return d, d / f"{blob_id}.bin", d / f"{blob_id}.json"

    @staticmethod
    def _atomic_write(directory: Path, target: Path, data: bytes) -> None:
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, target)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def put(self, data: bytes, metadata: Optional[Metadata] = None) -> str:
        blob_id = sha256(data)
        directory, blob_path, meta_path = self._paths(blob_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            self._atomic_write(directory, blob_path, bytes(data))
            self._atomic_write(directory, meta_path, json.dumps(metadata or {}, sort_keys=True).encode("utf-8"))
        except OSError as e:
            log.error(f"[FS PUT] {blob_id} failed: {e}")
            raise StoreUnavailable(str(e)) from e
        log.debug(f"[FS PUT] {blob_id} bytes={len(data)}")
        return blob_id

    def get(self, blob_id: str) -> bytes:
        _, blob_path, _ = self._paths(blob_id)
        try:
            return blob_path.read_bytes()
        except FileNotFoundError:
            raise NotFound(blob_id) from None
        except OSError as e:
            raise StoreUnavailable(str(e)) from e

    def delete(self, blob_id: str) -> None:
        try:
            _, blob_path, meta_path = self._paths(blob_id)
        except NotFound:
            return
        try:
            blob_path.unlink(missing_ok=True)
            meta_path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreUnavailable(str(e)) from e
        log.debug(f"[FS DEL] {blob_id}")

    def healthz(self) -> dict:
        ok = os.access(self.root, os.W_OK)
        return {"status": "ok" if ok else "degraded", "blobstore": self.name, "root": str(self.root)}

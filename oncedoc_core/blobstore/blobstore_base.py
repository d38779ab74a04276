from __future__ import annotations
from typing import Any, Dict, Optional

Metadata = Dict[str, Any]


class BaseBlobStore:
    """
    Content-addressed storage for encrypted document bytes.

    Contract:
    - put() returns an opaque blob id; StoreUnavailable means nothing was committed.
    - get() raises NotFound for unknown ids, StoreUnavailable on transport failure.
    - delete() is idempotent; deleting an unknown id is not an error.

    Stores only ever see ciphertext and non-secret display metadata.
    """
    name: str = "base"

    def put(self, data: bytes, metadata: Optional[Metadata] = None) -> str:
        raise NotImplementedError

    def get(self, blob_id: str) -> bytes:
        raise NotImplementedError

    def delete(self, blob_id: str) -> None:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "blobstore": self.name}

    def close(self) -> None:
        return

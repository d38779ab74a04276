# oncedoc_core/blobstore/__init__.py
import os
from oncedoc_core.blobstore.blobstore_base import BaseBlobStore
from oncedoc_core.blobstore.blobstore_memory import InMemoryBlobStore
from oncedoc_core.blobstore.blobstore_fs import FileSystemBlobStore
from oncedoc_core.blobstore.blobstore_pinata import PinataBlobStore, PINATA_API_URL, PINATA_GATEWAY_URL


def blobstore_factory() -> BaseBlobStore:
    """
    ONCEDOC_BLOBSTORE:
      - "memory" → in-process store (default)
      - "fs"     → local disk under ONCEDOC_BLOB_DIR
      - "pinata" → IPFS via the Pinata pinning API
    """
    mode = os.getenv("ONCEDOC_BLOBSTORE", "memory").lower()

    if mode == "pinata":
        return PinataBlobStore(
            api_key=os.getenv("PINATA_API_KEY", ""),
            api_secret=os.getenv("PINATA_API_SECRET", ""),
            api_url=os.getenv("PINATA_API_URL", PINATA_API_URL),
            gateway_url=os.getenv("PINATA_GATEWAY_URL", PINATA_GATEWAY_URL),
        )

    if mode == "fs":
        return FileSystemBlobStore(os.getenv("ONCEDOC_BLOB_DIR", "db/blobs"))

    if mode == "memory":
        return InMemoryBlobStore()

    raise ValueError(f"Unknown blob store: {mode}")


__all__ = [
    "BaseBlobStore",
    "InMemoryBlobStore",
    "FileSystemBlobStore",
    "PinataBlobStore",
    "blobstore_factory",
]

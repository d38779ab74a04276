# oncedoc_core/blobstore/blobstore_pinata.py
import requests, json
from typing import Optional
from oncedoc_core.blobstore.blobstore_base import BaseBlobStore, Metadata
from oncedoc_core.errors import NotFound, StoreUnavailable
from oncedoc_core.logger import get_logger

log = get_logger("OnceDoc.Blob.Pinata")

PINATA_API_URL = "https://api.pinata.cloud"
PINATA_GATEWAY_URL = "https://gateway.pinata.cloud/ipfs"


class PinataBlobStore(BaseBlobStore):
    """
    IPFS blob store backed by the Pinata pinning API.

    - put() pins the ciphertext with pinFileToIPFS; the returned CID is the blob id.
    - get() reads the CID back through the gateway.
    - delete() unpins the CID; an unknown CID counts as already deleted.

    Only display metadata (name, type, size) is attached to the pin. Every
    request is bounded by `timeout` seconds.
    """

    name = "pinata"

    def __init__(self, api_key: str, api_secret: str,
                 api_url: str = PINATA_API_URL, gateway_url: str = PINATA_GATEWAY_URL,
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        if not api_key or not api_secret:
            raise ValueError("Pinata API credentials not configured (PINATA_API_KEY / PINATA_API_SECRET)")
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "pinata_api_key": api_key,
            "pinata_secret_api_key": api_secret,
        })

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(f"[PINATA {method}] {url} transport error: {e}")
            raise StoreUnavailable(str(e)) from e

    # ------------------------------------------------------------------
    # Blob operations
    # ------------------------------------------------------------------
    def put(self, data: bytes, metadata: Optional[Metadata] = None) -> str:
        metadata = metadata or {}
        name = metadata.get("file_name", "document")
        keyvalues = {k: str(v) for k, v in metadata.items() if v is not None}
        res = self._request(
            "POST",
            f"{self.api_url}/pinning/pinFileToIPFS",
            files={"file": (name, bytes(data), "application/octet-stream")},
            data={
                "pinataMetadata": json.dumps({"name": f"{name}_encrypted", "keyvalues": keyvalues}),
                "pinataOptions": json.dumps({"cidVersion": 1, "wrapWithDirectory": False}),
            },
        )
        if not res.ok:
            log.error(f"[PINATA PUT] {res.status_code}: {res.text}")
            raise StoreUnavailable(f"pin failed with status {res.status_code}")
        try:
            cid = res.json()["IpfsHash"]
        except (ValueError, KeyError) as e:
            raise StoreUnavailable("pin response carried no IpfsHash") from e
        log.info(f"[PINATA PUT] cid={cid} bytes={len(data)}")
        return cid

    def get(self, blob_id: str) -> bytes:
        res = self._request("GET", f"{self.gateway_url}/{blob_id}")
        if res.status_code == 404:
            raise NotFound(blob_id)
        if not res.ok:
            log.error(f"[PINATA GET] {blob_id} {res.status_code}")
            raise StoreUnavailable(f"gateway returned {res.status_code}")
        return res.content

    def delete(self, blob_id: str) -> None:
        res = self._request("DELETE", f"{self.api_url}/pinning/unpin/{blob_id}")
        if res.status_code == 404:
            log.info(f"[PINATA DEL] {blob_id} already unpinned")
            return
        if not res.ok:
            log.error(f"[PINATA DEL] {blob_id} {res.status_code}: {res.text}")
            raise StoreUnavailable(f"unpin failed with status {res.status_code}")
        log.info(f"[PINATA DEL] {blob_id}")

    def healthz(self) -> dict:
        try:
            res = self._request("GET", f"{self.api_url}/data/testAuthentication")
        except StoreUnavailable as e:
            return {"status": "error", "blobstore": self.name, "error": str(e)}
        status = "ok" if res.ok else "error"
        return {"status": status, "blobstore": self.name, "code": res.status_code}

    def close(self) -> None:
        self.session.close()

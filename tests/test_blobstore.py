import json
import pytest
import requests
from oncedoc_core.blobstore import (
    FileSystemBlobStore, InMemoryBlobStore, PinataBlobStore, blobstore_factory,
)
from oncedoc_core.errors import NotFound, StoreUnavailable
from oncedoc_core.utils import sha256


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, content=b"", text=""):
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self.responses = list(responses)
        self.closed = False

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, timeout, kwargs))
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    def close(self):
        self.closed = True


def pinata(*responses):
    session = FakeSession(*responses)
    return PinataBlobStore("key", "secret", session=session, timeout=3), session


# --- memory ---

def test_memory_store_roundtrip():
    store = InMemoryBlobStore()
    blob_id = store.put(b"cipher", {"file_name": "a.pdf"})
    assert blob_id == sha256(b"cipher")
    assert store.get(blob_id) == b"cipher"
    assert store.metadata[blob_id] == {"file_name": "a.pdf"}
    store.delete(blob_id)
    store.delete(blob_id)
    assert blob_id not in store
    with pytest.raises(NotFound):
        store.get(blob_id)


# --- filesystem ---

def test_fs_store_roundtrip(tmp_path):
    store = FileSystemBlobStore(str(tmp_path / "blobs"))
    blob_id = store.put(b"\x01cipher-bytes", {"file_name": "a.pdf", "size": 13})
    assert store.get(blob_id) == b"\x01cipher-bytes"

    meta = json.loads((tmp_path / "blobs" / blob_id[:2] / f"{blob_id}.json").read_text())
    assert meta == {"file_name": "a.pdf", "size": 13}
    assert not [p for p in (tmp_path / "blobs" / blob_id[:2]).iterdir() if p.name.startswith(".tmp-")]

    store.delete(blob_id)
    store.delete(blob_id)
    with pytest.raises(NotFound):
        store.get(blob_id)
    assert store.healthz()["status"] == "ok"


def test_fs_store_rejects_foreign_ids(tmp_path):
    store = FileSystemBlobStore(str(tmp_path))
    with pytest.raises(NotFound):
        store.get("../../etc/passwd")
    store.delete("../../etc/passwd")


# --- pinata ---

def test_pinata_requires_credentials():
    with pytest.raises(ValueError):
        PinataBlobStore("", "")


def test_pinata_put_returns_cid():
    store, session = pinata(FakeResponse(200, {"IpfsHash": "bafyCID"}))
    cid = store.put(b"ciphertext", {"file_name": "a.pdf", "mime_type": "application/pdf", "size": 10})
    assert cid == "bafyCID"

    method, url, timeout, kwargs = session.calls[0]
    assert method == "POST"
    assert url.endswith("/pinning/pinFileToIPFS")
    assert timeout == 3
    assert session.headers["pinata_api_key"] == "key"
    meta = json.loads(kwargs["data"]["pinataMetadata"])
    assert meta["name"] == "a.pdf_encrypted"
    assert set(meta["keyvalues"]) == {"file_name", "mime_type", "size"}


def test_pinata_put_failures_are_store_unavailable():
    store, _ = pinata(FakeResponse(500, text="boom"))
    with pytest.raises(StoreUnavailable):
        store.put(b"x")

    store, _ = pinata(FakeResponse(200, {"unexpected": True}))
    with pytest.raises(StoreUnavailable):
        store.put(b"x")

    store, _ = pinata(requests.ConnectionError("down"))
    with pytest.raises(StoreUnavailable):
        store.put(b"x")


def test_pinata_get():
    store, session = pinata(FakeResponse(200, content=b"cipher"), FakeResponse(404), FakeResponse(502))
    assert store.get("bafyCID") == b"cipher"
    assert session.calls[0][1] == "https://gateway.pinata.cloud/ipfs/bafyCID"
    with pytest.raises(NotFound):
        store.get("bafyCID")
    with pytest.raises(StoreUnavailable):
        store.get("bafyCID")


def test_pinata_delete_is_idempotent():
    store, session = pinata(FakeResponse(200), FakeResponse(404), FakeResponse(500, text="err"))
    store.delete("bafyCID")
    assert session.calls[0][0] == "DELETE"
    assert session.calls[0][1].endswith("/pinning/unpin/bafyCID")
    store.delete("bafyCID")
    with pytest.raises(StoreUnavailable):
        store.delete("bafyCID")


def test_pinata_healthz_and_close():
    store, session = pinata(FakeResponse(200), requests.Timeout("slow"))
    assert store.healthz()["status"] == "ok"
    assert store.healthz()["status"] == "error"
    store.close()
    assert session.closed


# --- factory ---

def test_blobstore_factory_modes(monkeypatch, tmp_path):
    monkeypatch.delenv("ONCEDOC_BLOBSTORE", raising=False)
    assert isinstance(blobstore_factory(), InMemoryBlobStore)

    monkeypatch.setenv("ONCEDOC_BLOBSTORE", "fs")
    monkeypatch.setenv("ONCEDOC_BLOB_DIR", str(tmp_path / "b"))
    assert isinstance(blobstore_factory(), FileSystemBlobStore)

    monkeypatch.setenv("ONCEDOC_BLOBSTORE", "pinata")
    monkeypatch.setenv("PINATA_API_KEY", "k")
    monkeypatch.setenv("PINATA_API_SECRET", "s")
    assert isinstance(blobstore_factory(), PinataBlobStore)

    monkeypatch.setenv("ONCEDOC_BLOBSTORE", "s3")
    with pytest.raises(ValueError):
        blobstore_factory()

"""
oncedoc_core.utils
------------------
Lightweight helpers for UTC timestamping, hashing and canonical JSON serialization.
All timestamps are timezone-aware UTC so expiry comparisons never mix naive and aware datetimes.
"""

from __future__ import annotations
import json, hashlib
from datetime import datetime, timezone
from typing import Any, Dict

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def to_iso(ts: datetime) -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

def from_iso(s: str) -> datetime:
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    ts = datetime.fromisoformat(s)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts

def canonical_json(obj: Dict[str, Any]) -> bytes:
    # Deterministic, minimal JSON for audit payloads
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")

def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()

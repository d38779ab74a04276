"""
oncedoc_core.audit
------------------
Append-only audit sinks for lifecycle events (upload, access, print, expire).

Sinks only ever receive AuditEvent values: access code, blob id, timestamp and
non-secret metadata. There is no update or delete path.

- InMemoryAuditLog: list-backed, for tests and embedding
- LoggerAuditLog:   structured JSON lines through oncedoc_core.logger (default)
- SQLiteAuditLog:   durable local trail
- KafkaAuditLog:    one-way egress to a Kafka topic
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import json, os, sqlite3, threading
from .logger import get_logger
from .models import AuditAction, AuditEvent
from .utils import canonical_json, from_iso, to_iso


class BaseAuditLog:
    name: str = "base"

    def record(self, event: AuditEvent) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return


class InMemoryAuditLog(BaseAuditLog):
    name = "memory"

    def __init__(self):
        self._events: List[AuditEvent] = []
        self._lock = threading.Lock()

    def record(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)

    def actions(self, access_code: Optional[str] = None) -> List[AuditAction]:
        return [e.action for e in self.events if access_code is None or e.access_code == access_code]


class LoggerAuditLog(BaseAuditLog):
    name = "log"

    def __init__(self, logger_name: str = "OnceDoc.Audit"):
        self.log = get_logger(logger_name)

    def record(self, event: AuditEvent) -> None:
        self.log.info(canonical_json(event.to_dict()).decode("utf-8"))


class SQLiteAuditLog(BaseAuditLog):
    name = "sqlite"

    def __init__(self, path="db/oncedoc_audit.db"):
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()
        self.db.execute("""CREATE TABLE IF NOT EXISTS audit(
            ts TEXT NOT NULL,
            action TEXT NOT NULL,
            access_code TEXT NOT NULL,
            blob_id TEXT NOT NULL,
            payload TEXT
        )""")
        self.db.commit()

    def record(self, event: AuditEvent) -> None:
        with self._lock:
            self.db.execute(
                "INSERT INTO audit(ts,action,access_code,blob_id,payload) VALUES(?,?,?,?,?)",
                (to_iso(event.timestamp), event.action.value, event.access_code, event.blob_id,
                 json.dumps(event.metadata, separators=(",", ":"), sort_keys=True)),
            )
            self.db.commit()

    def events(self, access_code: Optional[str] = None) -> List[AuditEvent]:
        sql = "SELECT ts,action,access_code,blob_id,payload FROM audit"
        params: tuple = ()
        if access_code is not None:
            sql += " WHERE access_code=?"
            params = (access_code,)
        with self._lock:
            rows = self.db.execute(sql + " ORDER BY rowid", params).fetchall()
        return [
            AuditEvent(
                action=AuditAction(action),
                access_code=code,
                blob_id=blob_id,
                timestamp=from_iso(ts),
                metadata=json.loads(payload) if payload else {},
            )
            for ts, action, code, blob_id, payload in rows
        ]

    def close(self):
        self.db.close()


class KafkaAuditLog(BaseAuditLog):
    """
    Producer-only audit egress. Each event is published as canonical JSON,
    keyed by access code so all events of one document land on one partition.
    """

    name = "kafka"

    def __init__(self, brokers="localhost:9092", topic="oncedoc.audit", enabled=True, producer=None):
        self.brokers = brokers
        self.topic = topic
        self.enabled = enabled
        self.log = get_logger("OnceDoc.Audit.Kafka")
        self._producer = producer

        if not self.enabled or self._producer is not None:
            if not self.enabled:
                self.log.warning("[KAFKA] audit egress disabled")
            return

        try:
            from kafka import KafkaProducer

            self._producer = KafkaProducer(
                bootstrap_servers=self.brokers,
                linger_ms=5,
                acks="all",
            )
            self.log.info(f"[KAFKA] connected brokers={self.brokers}")

        except Exception:
            self.log.exception("[KAFKA] init failed, disabling audit egress")
            self.enabled = False

    def record(self, event: AuditEvent) -> None:
        if not self.enabled:
            self.log.info(f"[KAFKA-SKIP] {event.action.value}")
            return

        data = canonical_json(event.to_dict())
        try:
            self._producer.send(
                self.topic,
                value=data,
                key=event.access_code.encode("utf-8"),
                headers=[("action", event.action.value.encode("utf-8"))],
            )
            self._producer.flush(timeout=1.0)
            self.log.debug(f"[KAFKA PUB] topic={self.topic} action={event.action.value}")
        except Exception:
            self.log.exception(f"[KAFKA PUB ERROR] topic={self.topic}")

    def close(self) -> None:
        if self._producer is not None:
            self._producer.close()


def audit_factory(config: Optional[Dict[str, Any]] = None) -> BaseAuditLog:
    """
    ONCEDOC_AUDIT_SINK:
      - "log"    → structured log lines (default)
      - "memory" → in-process list
      - "sqlite" → ONCEDOC_AUDIT_DB
      - "kafka"  → KAFKA_BROKERS / ONCEDOC_AUDIT_TOPIC
    """
    config = config or {}
    mode = (config.get("sink") or os.getenv("ONCEDOC_AUDIT_SINK", "log")).lower()

    if mode == "log":
        return LoggerAuditLog()

    if mode == "memory":
        return InMemoryAuditLog()

    if mode == "sqlite":
        return SQLiteAuditLog(config.get("sqlite_path") or os.getenv("ONCEDOC_AUDIT_DB", "db/oncedoc_audit.db"))

    if mode == "kafka":
        return KafkaAuditLog(
            brokers=os.getenv("KAFKA_BROKERS", "localhost:9092"),
            topic=os.getenv("ONCEDOC_AUDIT_TOPIC", "oncedoc.audit"),
            enabled=os.getenv("KAFKA_ENABLED", "1") == "1",
        )

    raise ValueError(f"Unknown audit sink: {mode}")

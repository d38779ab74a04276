import json
import pytest
from oncedoc_core.audit import (
    InMemoryAuditLog, KafkaAuditLog, LoggerAuditLog, SQLiteAuditLog, audit_factory,
)
from oncedoc_core.models import AuditAction, AuditEvent


def event(action=AuditAction.UPLOAD, code="123456", **metadata):
    return AuditEvent(action=action, access_code=code, blob_id="blob-1", metadata=metadata)


class FakeProducer:
    def __init__(self):
        self.sent = []
        self.flushed = 0
        self.closed = False

    def send(self, topic, value=None, key=None, headers=None):
        self.sent.append((topic, value, key, headers))

    def flush(self, timeout=None):
        self.flushed += 1

    def close(self):
        self.closed = True


def test_memory_audit_appends():
    log = InMemoryAuditLog()
    log.record(event())
    log.record(event(AuditAction.ACCESS))
    log.record(event(AuditAction.UPLOAD, code="654321"))
    assert log.actions("123456") == [AuditAction.UPLOAD, AuditAction.ACCESS]
    assert len(log.events) == 3


def test_logger_audit_emits_json(caplog):
    LoggerAuditLog().record(event(file_name="a.pdf"))
    assert '"action":"upload"' in caplog.text
    assert '"file_name":"a.pdf"' in caplog.text


def test_sqlite_audit_roundtrip(tmp_path):
    log = SQLiteAuditLog(str(tmp_path / "audit.db"))
    log.record(event(expiry_time="2026-01-01T12:15:00Z"))
    log.record(event(AuditAction.PRINT))
    log.record(event(AuditAction.EXPIRE, code="654321"))

    events = log.events("123456")
    assert [e.action for e in events] == [AuditAction.UPLOAD, AuditAction.PRINT]
    assert events[0].metadata == {"expiry_time": "2026-01-01T12:15:00Z"}
    assert len(log.events()) == 3
    log.close()


def test_kafka_audit_publishes_keyed_by_code():
    producer = FakeProducer()
    log = KafkaAuditLog(topic="audit.t", producer=producer)
    log.record(event(AuditAction.ACCESS))

    topic, value, key, headers = producer.sent[0]
    assert topic == "audit.t"
    assert key == b"123456"
    assert headers == [("action", b"access")]
    assert json.loads(value)["action"] == "access"
    assert producer.flushed == 1
    log.close()
    assert producer.closed


def test_kafka_audit_disabled_skips(caplog):
    log = KafkaAuditLog(enabled=False)
    log.record(event())
    assert "KAFKA-SKIP" in caplog.text


def test_kafka_send_errors_are_logged(caplog):
    class Broken(FakeProducer):
        def send(self, *a, **kw):
            raise RuntimeError("broker gone")

    KafkaAuditLog(producer=Broken()).record(event())
    assert "KAFKA PUB ERROR" in caplog.text


def test_audit_factory_modes(monkeypatch, tmp_path):
    monkeypatch.delenv("ONCEDOC_AUDIT_SINK", raising=False)
    assert isinstance(audit_factory(), LoggerAuditLog)
    assert isinstance(audit_factory({"sink": "memory"}), InMemoryAuditLog)

    monkeypatch.setenv("ONCEDOC_AUDIT_SINK", "sqlite")
    monkeypatch.setenv("ONCEDOC_AUDIT_DB", str(tmp_path / "a.db"))
    sink = audit_factory()
    assert isinstance(sink, SQLiteAuditLog)
    sink.close()

    monkeypatch.setenv("ONCEDOC_AUDIT_SINK", "kafka")
    monkeypatch.setenv("KAFKA_ENABLED", "0")
    assert isinstance(audit_factory(), KafkaAuditLog)

    with pytest.raises(ValueError):
        audit_factory({"sink": "blockchain"})

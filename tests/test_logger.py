import json
import logging
from oncedoc_core.logger import REDACTED, get_logger


def test_log_level_from_env(monkeypatch):
    monkeypatch.setenv("ONCEDOC_LOG_LEVEL", "warning")
    assert get_logger("OnceDoc.Test.EnvLevel").level == logging.WARNING
    monkeypatch.setenv("ONCEDOC_LOG_LEVEL", "bogus")
    assert get_logger("OnceDoc.Test.BadLevel").level == logging.INFO


def test_file_target_from_env_writes_json_lines(monkeypatch, tmp_path):
    path = tmp_path / "logs" / "oncedoc.log"
    monkeypatch.setenv("ONCEDOC_LOG_FILE", str(path))
    log = get_logger("OnceDoc.Test.File")
    log.info('file "report.pdf"\nuploaded')
    for h in log.handlers:
        h.flush()

    entry = json.loads(path.read_text().splitlines()[0])
    assert entry["name"] == "OnceDoc.Test.File"
    assert entry["level"] == "INFO"
    assert entry["msg"] == 'file "report.pdf"\nuploaded'
    assert entry["ts"].endswith("Z")


def test_bytes_arguments_are_redacted(caplog):
    log = get_logger("OnceDoc.Test.Redact")
    key = bytes(range(32))
    with caplog.at_level(logging.INFO):
        log.info("key=%s size=%d", key, 32)
    assert REDACTED in caplog.text
    assert repr(key) not in caplog.text
    assert "size=32" in caplog.text

"""
oncedoc_core.logger
-------------------
JSON-line logging shared by every OnceDoc component.

ONCEDOC_LOG_LEVEL (name or number) and ONCEDOC_LOG_FILE override the level
and add a file target without touching call sites. Each record is encoded
with json.dumps so quotes and newlines in messages keep the line parseable.
Raw bytes passed as %-style arguments are redacted, so key material and
plaintext cannot reach a handler by accident.
"""

import logging, json, sys, time, os

REDACTED = "<redacted bytes>"


class JsonLineFormatter(logging.Formatter):
    converter = time.gmtime

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%SZ")

    def format(self, record):
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class RedactBytesFilter(logging.Filter):
    def filter(self, record):
        if isinstance(record.args, tuple):
            record.args = tuple(
                REDACTED if isinstance(a, (bytes, bytearray, memoryview)) else a
                for a in record.args
            )
        elif isinstance(record.args, dict):
            record.args = {
                k: REDACTED if isinstance(v, (bytes, bytearray, memoryview)) else v
                for k, v in record.args.items()
            }
        return True


def _level_from_env(default):
    raw = (os.getenv("ONCEDOC_LOG_LEVEL") or "").strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


def get_logger(name="oncedoc", level=logging.INFO, to_file=None):
    logger = logging.getLogger(name)
    logger.setLevel(_level_from_env(level))

    if not logger.handlers:
        formatter = JsonLineFormatter()
        redact = RedactBytesFilter()
        logger.addFilter(redact)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        to_file = to_file or os.getenv("ONCEDOC_LOG_FILE")
        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger

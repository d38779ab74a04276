# oncedoc_core/config.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
import os
from .constants import (
    DEFAULT_CODE_DIGITS, MIN_CODE_DIGITS, MAX_CODE_DIGITS, DEFAULT_MAX_CODE_ATTEMPTS,
    DEFAULT_VALIDITY_MINUTES, DEFAULT_MAX_UPLOAD_BYTES, DEFAULT_SWEEP_INTERVAL_SECONDS,
    DEFAULT_READ_RETRIES, DEFAULT_RETRY_DELAY_SECONDS,
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LifecycleConfig:
    validity_window_minutes: float = DEFAULT_VALIDITY_MINUTES
    code_digits: int = DEFAULT_CODE_DIGITS
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_code_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS
    read_retries: int = DEFAULT_READ_RETRIES
    retry_delay_base: float = DEFAULT_RETRY_DELAY_SECONDS
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS
    fail_closed_watermark: bool = True

    def __post_init__(self):
        if not MIN_CODE_DIGITS <= self.code_digits <= MAX_CODE_DIGITS:
            raise ValueError(f"code_digits must be between {MIN_CODE_DIGITS} and {MAX_CODE_DIGITS}")
        if self.validity_window_minutes <= 0:
            raise ValueError("validity_window_minutes must be positive")
        if self.max_upload_bytes <= 0:
            raise ValueError("max_upload_bytes must be positive")
        if self.max_code_attempts < 1:
            raise ValueError("max_code_attempts must be at least 1")
        if self.read_retries < 1:
            raise ValueError("read_retries must be at least 1")
        if self.retry_delay_base < 0 or self.sweep_interval_seconds <= 0:
            raise ValueError("retry and sweep intervals must be positive")

    @property
    def validity_window(self) -> timedelta:
        return timedelta(minutes=self.validity_window_minutes)

    @classmethod
    def from_env(cls) -> "LifecycleConfig":
        """Build a config from ONCEDOC_* environment variables, falling back to defaults."""
        return cls(
            validity_window_minutes=float(os.getenv("ONCEDOC_VALIDITY_MINUTES", DEFAULT_VALIDITY_MINUTES)),
            code_digits=int(os.getenv("ONCEDOC_CODE_DIGITS", DEFAULT_CODE_DIGITS)),
            max_upload_bytes=int(os.getenv("ONCEDOC_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
            max_code_attempts=int(os.getenv("ONCEDOC_MAX_CODE_ATTEMPTS", DEFAULT_MAX_CODE_ATTEMPTS)),
            read_retries=int(os.getenv("ONCEDOC_READ_RETRIES", DEFAULT_READ_RETRIES)),
            retry_delay_base=float(os.getenv("ONCEDOC_RETRY_DELAY", DEFAULT_RETRY_DELAY_SECONDS)),
            sweep_interval_seconds=float(os.getenv("ONCEDOC_SWEEP_INTERVAL", DEFAULT_SWEEP_INTERVAL_SECONDS)),
            fail_closed_watermark=_env_bool("ONCEDOC_WATERMARK_FAIL_CLOSED", True),
        )

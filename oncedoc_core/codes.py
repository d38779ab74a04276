# oncedoc_core/codes.py
from __future__ import annotations
import re, secrets
from .constants import DEFAULT_CODE_DIGITS


def code_bounds(digits: int = DEFAULT_CODE_DIGITS) -> tuple[int, int]:
    """Inclusive numeric range of codes with exactly `digits` digits (no leading zero)."""
    return 10 ** (digits - 1), 10 ** digits - 1


def code_space_size(digits: int = DEFAULT_CODE_DIGITS) -> int:
    low, high = code_bounds(digits)
    return high - low + 1


def generate_access_code(digits: int = DEFAULT_CODE_DIGITS) -> str:
    # Uniform over [low, high] using the OS CSPRNG
    low, high = code_bounds(digits)
    return str(low + secrets.randbelow(high - low + 1))


def validate_access_code(code, digits: int = DEFAULT_CODE_DIGITS) -> bool:
    if not isinstance(code, str):
        return False
    return re.fullmatch(rf"[0-9]{{{digits}}}", code) is not None and code[0] != "0"

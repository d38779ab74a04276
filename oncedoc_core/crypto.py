"""
oncedoc_core.crypto
-------------------
Symmetric document encryption for OnceDoc:

- AES-256-GCM authenticated encryption with a fresh random key per document
- Framed ciphertext: version byte | 12-byte nonce | ciphertext+tag
- The version byte is bound as associated data, so a tampered header,
  truncated body, or wrong key all fail as DecryptionError.

The caller never supplies a key to encrypt(); keys come back to the caller
only to be placed inside the registry record.
"""

from __future__ import annotations
from typing import Optional, Tuple
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
import os
from .constants import CIPHER_FORMAT_V1, KEY_BYTES, NONCE_BYTES, TAG_BYTES
from .errors import DecryptionError

KeyMaterial = bytes

_HEADER = bytes([CIPHER_FORMAT_V1])


# --------- AES-GCM primitives ----------
def generate_key() -> KeyMaterial:
    return AESGCM.generate_key(bit_length=KEY_BYTES * 8)

def aead_encrypt(key: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> Tuple[bytes, bytes]:
    aes = AESGCM(key)
    nonce = os.urandom(NONCE_BYTES)
    ct = aes.encrypt(nonce, plaintext, aad)
    return nonce, ct

def aead_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    aes = AESGCM(key)
    return aes.decrypt(nonce, ciphertext, aad)


# --------- Document engine ----------
class CryptoEngine:
    """
    Stateless engine; safe to share across threads since every call works
    on its own key.
    """

    def encrypt(self, plaintext: bytes) -> Tuple[bytes, KeyMaterial]:
        key = generate_key()
        nonce, ct = aead_encrypt(key, bytes(plaintext), aad=_HEADER)
        return _HEADER + nonce + ct, key

    def decrypt(self, ciphertext: bytes, key: KeyMaterial) -> bytes:
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_BYTES:
            raise DecryptionError("invalid key material")
        if len(ciphertext) < 1 + NONCE_BYTES + TAG_BYTES:
            raise DecryptionError("ciphertext truncated")
        if ciphertext[:1] != _HEADER:
            raise DecryptionError(f"unsupported ciphertext format {ciphertext[0]}")

        nonce = ciphertext[1:1 + NONCE_BYTES]
        body = ciphertext[1 + NONCE_BYTES:]
        try:
            return aead_decrypt(bytes(key), nonce, body, aad=_HEADER)
        except InvalidTag:
            raise DecryptionError("integrity check failed") from None

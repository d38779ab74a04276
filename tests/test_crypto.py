import pytest
from oncedoc_core.crypto import CryptoEngine, aead_decrypt, aead_encrypt, generate_key
from oncedoc_core.errors import DecryptionError


@pytest.mark.parametrize("payload", [b"", b"x", b"hello one-time world", bytes(range(256)) * 40])
def test_encrypt_decrypt_roundtrip(payload):
    engine = CryptoEngine()
    ct, key = engine.encrypt(payload)
    assert engine.decrypt(ct, key) == payload


def test_fresh_key_per_document():
    engine = CryptoEngine()
    ct1, k1 = engine.encrypt(b"same bytes")
    ct2, k2 = engine.encrypt(b"same bytes")
    assert len(k1) == 32 and len(k2) == 32
    assert k1 != k2
    assert ct1 != ct2
    assert b"same bytes" not in ct1


def test_wrong_key_fails():
    engine = CryptoEngine()
    ct, _ = engine.encrypt(b"secret")
    with pytest.raises(DecryptionError):
        engine.decrypt(ct, generate_key())


def test_tampered_ciphertext_fails():
    engine = CryptoEngine()
    ct, key = engine.encrypt(b"secret document")
    tampered = bytearray(ct)
    tampered[-1] ^= 0x01
    with pytest.raises(DecryptionError):
        engine.decrypt(bytes(tampered), key)


def test_truncated_and_malformed_ciphertext_fail():
    engine = CryptoEngine()
    ct, key = engine.encrypt(b"secret document")
    with pytest.raises(DecryptionError):
        engine.decrypt(ct[:10], key)
    with pytest.raises(DecryptionError):
        engine.decrypt(ct[:-4], key)
    with pytest.raises(DecryptionError):
        engine.decrypt(b"\x09" + ct[1:], key)


def test_invalid_key_material():
    engine = CryptoEngine()
    ct, _ = engine.encrypt(b"data")
    with pytest.raises(DecryptionError):
        engine.decrypt(ct, b"short")
    with pytest.raises(DecryptionError):
        engine.decrypt(ct, "not-bytes")


def test_aead_primitives_with_aad():
    key = generate_key()
    nonce, ct = aead_encrypt(key, b"payload", aad=b"ctx")
    assert aead_decrypt(key, nonce, ct, aad=b"ctx") == b"payload"

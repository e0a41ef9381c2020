import base64
from concurrent.futures import ThreadPoolExecutor

import pytest

from cipherlog import string_cipher
from cipherlog.string_cipher import (
    IV_SIZE,
    SALT_SIZE,
    DecryptionFailed,
    InvalidEnvelope,
    StringCipher,
    StringCipherError,
    decrypt,
    encrypt,
)


@pytest.fixture
def fast_cipher():
    return StringCipher(iterations=1000)


def _raw(envelope):
    return base64.b64decode(envelope)


def _pack(raw):
    return base64.b64encode(raw).decode("ascii")


def test_hello_scenario():
    envelope = encrypt("hello", "password")
    assert envelope != "hello"
    assert decrypt(envelope, "password") == "hello"
    with pytest.raises(DecryptionFailed):
        decrypt(envelope, "")
    with pytest.raises(DecryptionFailed):
        decrypt(envelope, "wrongpassword")


def test_ten_megabytes_of_digits():
    plaintext = "0123456789" * 1000000
    envelope = encrypt(plaintext, "password")
    assert envelope != plaintext
    assert decrypt(envelope, "password") == plaintext
    with pytest.raises(DecryptionFailed):
        decrypt(envelope, "")
    with pytest.raises(DecryptionFailed):
        decrypt(envelope, "wrongpassword")


def test_non_ascii_with_empty_password():
    plaintext = "foo@éóüö"
    envelope = encrypt(plaintext, "")
    assert envelope != plaintext
    assert decrypt(envelope, "") == plaintext
    with pytest.raises(DecryptionFailed):
        decrypt(envelope, "wrongpassword")


@pytest.mark.parametrize("plaintext", [
    "",
    "a",
    "exactly sixteen!",
    "line one\nline two\r\n\ttabbed",
    "日本語のテキスト 🔐 ünïcödé",
])
@pytest.mark.parametrize("password", ["", "password", "pässwörd ✓"])
def test_round_trip(fast_cipher, plaintext, password):
    assert fast_cipher.decrypt(fast_cipher.encrypt(plaintext, password), password) == plaintext


def test_same_input_gives_different_envelopes(fast_cipher):
    first = fast_cipher.encrypt("hello", "password")
    second = fast_cipher.encrypt("hello", "password")
    assert first != second
    assert _raw(first)[:SALT_SIZE] != _raw(second)[:SALT_SIZE]
    assert fast_cipher.decrypt(first, "password") == "hello"
    assert fast_cipher.decrypt(second, "password") == "hello"


def test_envelope_layout(fast_cipher):
    for plaintext, blocks in [("", 1), ("a" * 15, 1), ("a" * 16, 2), ("a" * 40, 3)]:
        raw = _raw(fast_cipher.encrypt(plaintext, "pw"))
        assert len(raw) == SALT_SIZE + IV_SIZE + 16 * blocks


def test_envelope_never_contains_comma(fast_cipher):
    for i in range(50):
        assert "," not in fast_cipher.encrypt("entry %d" % i, "pw")


def test_envelope_iv_matches_derivation(fast_cipher):
    raw = _raw(fast_cipher.encrypt("hello", "pw"))
    salt = raw[:SALT_SIZE]
    iv = raw[SALT_SIZE:SALT_SIZE + IV_SIZE]
    _, derived_iv = fast_cipher.derive_key("pw", salt)
    assert iv == derived_iv


def test_decrypt_uses_iv_from_envelope(fast_cipher):
    raw = bytearray(_raw(fast_cipher.encrypt("x" * 64, "pw")))
    # CBC: flipping an IV bit flips the same bit of the first plaintext block
    raw[SALT_SIZE] ^= 0x01
    assert fast_cipher.decrypt(_pack(bytes(raw)), "pw") == "y" + "x" * 63


def test_derive_key_is_deterministic(fast_cipher):
    salt = b"\x00" * SALT_SIZE
    assert fast_cipher.derive_key("pw", salt) == fast_cipher.derive_key("pw", salt)
    key, iv = fast_cipher.derive_key("pw", salt)
    assert len(key) == 32
    assert len(iv) == 16
    assert fast_cipher.derive_key("pw", b"\x01" * SALT_SIZE) != (key, iv)


def test_iteration_count_changes_key():
    salt = b"\x07" * SALT_SIZE
    assert StringCipher(iterations=1000).derive_key("pw", salt) != StringCipher(iterations=2000).derive_key("pw", salt)


def test_rejects_low_iteration_count():
    with pytest.raises(ValueError):
        StringCipher(iterations=999)


@pytest.mark.parametrize("envelope", ["not base64!", "abc", "####", "é"])
def test_malformed_base64(fast_cipher, envelope):
    with pytest.raises(InvalidEnvelope):
        fast_cipher.decrypt(envelope, "pw")


def test_empty_envelope(fast_cipher):
    with pytest.raises(InvalidEnvelope):
        fast_cipher.decrypt("", "pw")


def test_too_short_for_salt_and_iv(fast_cipher):
    with pytest.raises(InvalidEnvelope):
        fast_cipher.decrypt(_pack(b"\x00" * (SALT_SIZE + IV_SIZE - 1)), "pw")


def test_salt_and_iv_without_ciphertext(fast_cipher):
    with pytest.raises(DecryptionFailed):
        fast_cipher.decrypt(_pack(b"\x00" * (SALT_SIZE + IV_SIZE)), "pw")


def test_truncated_ciphertext(fast_cipher):
    raw = _raw(fast_cipher.encrypt("some log entry text", "pw"))
    with pytest.raises(DecryptionFailed):
        fast_cipher.decrypt(_pack(raw[:-3]), "pw")


def test_truncated_envelope_text(fast_cipher):
    envelope = fast_cipher.encrypt("some log entry text", "pw")
    with pytest.raises(StringCipherError):
        fast_cipher.decrypt(envelope[:-1], "pw")


def test_flipped_salt_byte(fast_cipher):
    raw = bytearray(_raw(fast_cipher.encrypt("z" * 64, "pw")))
    raw[0] ^= 0xFF
    with pytest.raises(DecryptionFailed):
        fast_cipher.decrypt(_pack(bytes(raw)), "pw")


def test_errors_are_value_errors():
    assert issubclass(InvalidEnvelope, ValueError)
    assert issubclass(DecryptionFailed, ValueError)


def test_decryption_failure_chains_cause(fast_cipher):
    envelope = fast_cipher.encrypt("z" * 64, "right")
    with pytest.raises(DecryptionFailed) as info:
        fast_cipher.decrypt(envelope, "wrong")
    assert info.value.__cause__ is not None


@pytest.mark.parametrize("args", [(b"bytes", "pw"), ("text", None), (None, "pw")])
def test_encrypt_requires_text(fast_cipher, args):
    with pytest.raises(TypeError):
        fast_cipher.encrypt(*args)


def test_decrypt_requires_text(fast_cipher):
    with pytest.raises(TypeError):
        fast_cipher.decrypt(b"AAAA", "pw")


def test_randomness_failure_propagates(fast_cipher, monkeypatch):
    def broken(n):
        raise OSError("entropy source unavailable")

    monkeypatch.setattr(string_cipher.os, "urandom", broken)
    with pytest.raises(OSError):
        fast_cipher.encrypt("hello", "pw")


def test_concurrent_use(fast_cipher):
    def round_trip(i):
        text = "message %d" % i
        return fast_cipher.decrypt(fast_cipher.encrypt(text, "pw%d" % i), "pw%d" % i) == text

    with ThreadPoolExecutor(max_workers=8) as pool:
        assert all(pool.map(round_trip, range(32)))

"""
Password-based string cipher.

Envelope layout (base64 of the raw bytes):

    salt[16] || iv[16] || AES-256-CBC ciphertext (PKCS#7, whole blocks)

The key and IV are derived together with PBKDF2-HMAC-SHA256 from the password
and a fresh salt. The IV written into the envelope is the one used at
encryption time, and decryption always takes the IV from the envelope, never
from the derivation.
"""

import base64
import binascii
import os

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_SIZE = 16
IV_SIZE = 16
KEY_SIZE = 32
BLOCK_SIZE = 128
ITERATIONS = 200000


class StringCipherError(ValueError):
    """Base error for envelope decryption."""


class InvalidEnvelope(StringCipherError):
    """The envelope is not valid base64 or is too short for salt and IV."""


class DecryptionFailed(StringCipherError):
    """Wrong password or corrupted ciphertext; the two cannot be told apart."""


class StringCipher:
    def __init__(self, iterations=ITERATIONS):
        if iterations < 1000:
            raise ValueError("iterations must be at least 1000")
        self.iterations = iterations

    def derive_key(self, password: str, salt: bytes):
        """Return (key, iv) for the password and salt."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE + IV_SIZE,
            salt=salt,
            iterations=self.iterations,
        )
        material = kdf.derive(password.encode("utf-8"))
        return material[:KEY_SIZE], material[KEY_SIZE:]

    def encrypt(self, plaintext: str, password: str) -> str:
        _require_text(plaintext, "plaintext")
        _require_text(password, "password")

        salt = os.urandom(SALT_SIZE)
        key, iv = self.derive_key(password, salt)

        padder = padding.PKCS7(BLOCK_SIZE).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ct = encryptor.update(padded) + encryptor.finalize()

        return base64.b64encode(salt + iv + ct).decode("ascii")

    def decrypt(self, envelope: str, password: str) -> str:
        _require_text(envelope, "envelope")
        _require_text(password, "password")

        try:
            raw = base64.b64decode(envelope, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidEnvelope(f"envelope is not valid base64: {exc}") from exc
        if len(raw) < SALT_SIZE + IV_SIZE:
            raise InvalidEnvelope(
                f"envelope holds {len(raw)} bytes, need at least {SALT_SIZE + IV_SIZE}"
            )

        salt = raw[:SALT_SIZE]
        iv = raw[SALT_SIZE:SALT_SIZE + IV_SIZE]
        ct = raw[SALT_SIZE + IV_SIZE:]
        key, _ = self.derive_key(password, salt)

        try:
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ct) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise DecryptionFailed("wrong password or corrupted ciphertext") from exc

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionFailed("wrong password or corrupted ciphertext") from exc


def _require_text(value, name):
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, got {type(value).__name__}")


_default = StringCipher()


def encrypt(plaintext: str, password: str) -> str:
    return _default.encrypt(plaintext, password)


def decrypt(envelope: str, password: str) -> str:
    return _default.decrypt(envelope, password)

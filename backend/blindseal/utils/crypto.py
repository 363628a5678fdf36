"""Low-level cryptographic primitives for blindseal.

Pure functions with no domain knowledge: reusable building blocks for the
encryption service and the blind index.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from blindseal.config import ConfigurationError

KEY_LENGTH = 32
IV_LENGTH = 12
TAG_LENGTH = 16
PBKDF2_ITERATIONS = 100_000


def _as_bytes(value: str | bytes) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def derive_user_key(
    master_secret: str | bytes | None,
    key_salt: str | bytes | None,
    user_id: int,
) -> bytes:
    """Derive the 256-bit key of one user with PBKDF2-HMAC-SHA256.

    password = master secret, salt = key_salt || decimal(user_id),
    100,000 iterations. Deterministic, and slow on purpose.

    Raises ConfigurationError if the master secret or salt is missing, and
    TypeError if user_id is not an int.
    """
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise TypeError(f"user_id must be an int, got {type(user_id).__name__}")
    if not master_secret:
        raise ConfigurationError("Encryption master secret is not configured")
    if not key_salt:
        raise ConfigurationError("Encryption key salt is not configured")

    kdf = PBKDF2HMAC(
        algorithm=SHA256(),
        length=KEY_LENGTH,
        salt=_as_bytes(key_salt) + str(user_id).encode("ascii"),
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(_as_bytes(master_secret))


def aes_gcm_seal(key: bytes, plaintext: bytes, aad: bytes) -> tuple[bytes, bytes, bytes]:
    """Encrypt plaintext with AES-256-GCM under a fresh random IV.

    Returns (ciphertext, iv, tag) as three separate values.
    """
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext, aad)
    return sealed[:-TAG_LENGTH], iv, sealed[-TAG_LENGTH:]


def aes_gcm_open(key: bytes, ciphertext: bytes, iv: bytes, tag: bytes, aad: bytes) -> bytes:
    """Decrypt the output of aes_gcm_seal.

    Raises cryptography.exceptions.InvalidTag on tampered data, and
    ValueError on an IV or tag of the wrong length.
    """
    if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
        raise ValueError("Invalid IV or tag length")
    return AESGCM(key).decrypt(iv, ciphertext + tag, aad)


def hmac_sha256_b64(key: bytes, data: bytes) -> str:
    """Compute HMAC-SHA256(key, data). Returns the base64-encoded digest."""
    return base64.b64encode(hmac.new(key, data, hashlib.sha256).digest()).decode("ascii")


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str | bytes) -> bytes:
    """Strict base64 decode. Raises ValueError on malformed input."""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, TypeError) as exc:
        raise ValueError("Malformed base64") from exc


def secret_fingerprint(master_secret: str | bytes, key_salt: str | bytes) -> str:
    """Short, non-reversible identifier of a (master secret, key salt) pair.

    Namespaces cached keys so services built on different secrets never
    share cache entries.
    """
    salt = _as_bytes(key_salt)
    message = b"key-cache\x00" + len(salt).to_bytes(4, "big") + salt
    return hmac.new(_as_bytes(master_secret), message, hashlib.sha256).hexdigest()[:32]

"""
AES-256-GCM encryption for sensitive onboarding answers.

The key is SHA-256 of a configured secret, so every process holding the same
secret derives the same 32-byte key without the key itself ever being stored.
Each value gets a unique 12-byte nonce prepended to the ciphertext + tag, and
the whole blob is base64-encoded for storage in a text column.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from onboarding_vault.errors import ConfigurationError, IntegrityError

NONCE_SIZE = 12
TAG_SIZE = 16
MIN_BLOB_SIZE = NONCE_SIZE + TAG_SIZE


class KeyDeriver:
    """Turns one long-lived secret into a fixed-size AES-256 key."""

    def __init__(self, secret: str | None) -> None:
        if not secret or not secret.strip():
            raise ConfigurationError("ONBOARDING_ENCRYPTION_KEY not configured")
        self._secret = secret

    def __repr__(self) -> str:
        return "KeyDeriver(secret=<redacted>)"

    def derive_key(self) -> bytes:
        """Return the 32-byte key for the configured secret."""
        return hashlib.sha256(self._secret.encode("utf-8")).digest()


class FieldCipher:
    """Authenticated encryption of single values under the derived key.

    Stateless apart from the key deriver, so one instance is safe to share
    between concurrent requests.
    """

    def __init__(self, key_deriver: KeyDeriver) -> None:
        self._key_deriver = key_deriver

    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext. Returns base64(nonce (12) + ciphertext + tag (16))."""
        nonce = secrets.token_bytes(NONCE_SIZE)
        aesgcm = AESGCM(self._key_deriver.derive_key())
        ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """Decrypt a blob produced by encrypt().

        Raises IntegrityError for anything that does not authenticate: bad
        encoding, truncated data, tampered bytes, or a different key.
        """
        data = _decode(blob)
        if len(data) < MIN_BLOB_SIZE:
            raise IntegrityError()
        nonce, ciphertext = data[:NONCE_SIZE], data[NONCE_SIZE:]
        aesgcm = AESGCM(self._key_deriver.derive_key())
        try:
            plaintext = aesgcm.decrypt(nonce, ciphertext, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError):
            raise IntegrityError() from None


def _decode(blob: str) -> bytes:
    """Strict base64 decode; only the canonical encoding of some bytes is accepted."""
    if not isinstance(blob, str):
        raise IntegrityError()
    try:
        data = base64.b64decode(blob.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        raise IntegrityError() from None
    # Reject blobs that differ only in the unused low bits of the last char
    if base64.b64encode(data).decode("ascii") != blob:
        raise IntegrityError()
    return data

"""
Onboarding vault crypto: SHA-256 key derivation + AES-256-GCM field cipher.

Public API:
    KeyDeriver(secret).derive_key()   → 32-byte key
    FieldCipher(deriver).encrypt(s)   → base64(nonce + ciphertext + tag)
    FieldCipher(deriver).decrypt(b)   → plaintext, or IntegrityError
"""

from __future__ import annotations

from onboarding_vault.vault.crypto import FieldCipher, KeyDeriver

__all__ = ["FieldCipher", "KeyDeriver"]

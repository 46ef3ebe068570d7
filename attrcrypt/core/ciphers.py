"""
Authenticated cipher used to seal attribute values.

AES-256-GCM with a 96-bit random nonce and a 128-bit tag. The tag is returned
separately from the ciphertext because the envelope stores them in different
segments.
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import ConfigurationError, IntegrityError


class AES256GCM:
    """AES-256 in Galois/Counter Mode (NIST standard)."""

    alg_tag = "aes-256-gcm"
    key_size = 32
    nonce_size = 12
    tag_size = 16

    def _check_key(self, key: bytes) -> None:
        if len(key) != self.key_size:
            raise ConfigurationError(
                f"Key must be {self.key_size} bytes (got {len(key)})"
            )

    def generate_nonce(self) -> bytes:
        """Fresh random nonce. Never derived from the key or plaintext."""
        return os.urandom(self.nonce_size)

    def encrypt(self, key: bytes, nonce: bytes, aad: bytes, plaintext: bytes) -> tuple[bytes, bytes]:
        """Encrypt plaintext, returning (ciphertext, tag)."""
        self._check_key(key)
        sealed = AESGCM(bytes(key)).encrypt(nonce, plaintext, aad)
        return sealed[:-self.tag_size], sealed[-self.tag_size:]

    def decrypt(self, key: bytes, nonce: bytes, aad: bytes, ciphertext: bytes, tag: bytes) -> bytes:
        """Decrypt and verify. Raises IntegrityError on any failure."""
        self._check_key(key)
        if len(nonce) != self.nonce_size:
            raise IntegrityError(
                f"Nonce must be {self.nonce_size} bytes (got {len(nonce)})"
            )
        if len(tag) != self.tag_size:
            raise IntegrityError(
                f"Authentication tag must be {self.tag_size} bytes (got {len(tag)})"
            )
        try:
            return AESGCM(bytes(key)).decrypt(nonce, ciphertext + tag, aad)
        except InvalidTag as exc:
            raise IntegrityError(
                "Authentication failed: envelope is corrupted or was tampered with"
            ) from exc


DEFAULT_CIPHER = AES256GCM()

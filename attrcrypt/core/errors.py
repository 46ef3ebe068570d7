"""Structured error types for attrcrypt.

Every error inherits from ``AttrCryptError`` and from the builtin it most
resembles, so code that catches ``ValueError`` or ``TypeError`` keeps working.

Hierarchy::

    AttrCryptError (Exception)
    +-- ConfigurationError    invalid keys, key id or identity binding
    +-- TypeMismatchError     tried to encrypt a non-string value
    +-- MissingIdentityError  identity binding on, identity attribute absent
    +-- IdentityMismatchError envelope bound to a different record
    +-- UnknownKeyError       envelope names a key id not in the key map
    +-- IntegrityError        malformed envelope or AEAD tag mismatch
"""

from __future__ import annotations


class AttrCryptError(Exception):
    """Base class for all attrcrypt errors."""


class ConfigurationError(AttrCryptError, ValueError):
    """Encryption configuration is malformed (missing key, bad key length)."""


class TypeMismatchError(AttrCryptError, TypeError):
    """Encrypted attribute must be a string."""


class MissingIdentityError(AttrCryptError, ValueError):
    """Identity binding is enabled but the record has no identity value."""

    def __init__(self, attribute: str, operation: str = "encrypt"):
        self.attribute = attribute
        super().__init__(f"Cannot {operation} without '{attribute}'")


class IdentityMismatchError(AttrCryptError, ValueError):
    """Envelope was bound to another record's identity."""

    def __init__(self, attribute: str | None = None):
        self.attribute = attribute
        if attribute:
            super().__init__(f"Encrypted attribute has invalid '{attribute}'")
        else:
            super().__init__("Encrypted attribute is bound to a different identity")


class UnknownKeyError(AttrCryptError, ValueError):
    """Envelope references a key id that is not configured."""

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__(f"Encrypted attribute has unknown key id {key_id!r}")


class IntegrityError(AttrCryptError, ValueError):
    """Envelope is malformed or failed authentication."""

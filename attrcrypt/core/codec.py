"""
Attribute encryption: seals values into envelopes and opens them again.

``encode``/``decode`` work on single values. ``EncryptedAttributes`` applies
them to a fixed list of attribute paths on a record, reading the record's
identity when identity binding is enabled.

Values that are ``None`` pass through untouched, as do already-encrypted
values on encode and non-envelope values on decode, so both directions are
safe to apply repeatedly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from . import paths
from .ciphers import DEFAULT_CIPHER
from .config import EncryptionConfig, decode_key
from .errors import (
    ConfigurationError,
    IdentityMismatchError,
    IntegrityError,
    MissingIdentityError,
    TypeMismatchError,
    UnknownKeyError,
)
from .formats import Envelope, build_aad, deserialize, is_envelope, parse_aad, serialize

logger = logging.getLogger(__name__)


def encode(plaintext: Any, key: str | bytes, key_id: str, identity: str | None = None) -> Any:
    """
    Encrypt a string into an envelope.

    ``key`` is raw key bytes or the base64 string form used in key maps.

    ``None`` and existing envelopes are returned unchanged. Any other
    non-string raises TypeMismatchError.
    """
    if plaintext is None or is_envelope(plaintext):
        return plaintext
    if not isinstance(plaintext, str):
        raise TypeMismatchError(
            f"Encrypted attribute must be a string (got {type(plaintext).__name__})"
        )

    aad = build_aad(identity, key_id)
    if isinstance(key, str):
        key = decode_key(key_id, key)
    nonce = DEFAULT_CIPHER.generate_nonce()
    ciphertext, tag = DEFAULT_CIPHER.encrypt(key, nonce, aad, plaintext.encode("utf-8"))
    return serialize(Envelope(aad, nonce, ciphertext, tag))


def decode(
    envelope: Any,
    keys: EncryptionConfig | Mapping[str, str | bytes],
    expected_identity: str | None = None,
) -> Any:
    """
    Decrypt an envelope back to its plaintext string.

    ``keys`` is an EncryptionConfig or a mapping of key id to a base64 key
    string (or raw key bytes).
    When ``expected_identity`` is given the envelope must have been bound to
    it. Anything that is not an envelope is returned unchanged.
    """
    if not is_envelope(envelope):
        return envelope

    parts = deserialize(envelope)
    identity, key_id = parse_aad(parts.aad)

    if isinstance(keys, EncryptionConfig):
        key = keys.key_for(key_id)
    else:
        key = keys.get(key_id)
        if key is None:
            raise UnknownKeyError(key_id)
        if isinstance(key, str):
            key = decode_key(key_id, key)

    if expected_identity is not None and identity != expected_identity:
        raise IdentityMismatchError()

    plaintext = DEFAULT_CIPHER.decrypt(key, parts.nonce, parts.aad, parts.ciphertext, parts.tag)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise IntegrityError("Decrypted attribute is not UTF-8 text") from exc


class EncryptedAttributes:
    """
    Encrypts and decrypts a fixed set of attributes on records.

    ``config`` is an EncryptionConfig or an options mapping accepted by
    ``EncryptionConfig.from_options``. Batch operations mutate and return
    the record they are given. They are not atomic: if one attribute fails,
    attributes processed before it stay changed.
    """

    def __init__(self, attributes: Iterable[str], config: EncryptionConfig | Mapping[str, Any]):
        if isinstance(attributes, str):
            attributes = [attributes]
        self._attributes = tuple(attributes)
        for path in self._attributes:
            if not isinstance(path, str) or not path:
                raise ConfigurationError(f"Attribute path must be a non-empty string (got {path!r})")
        if not isinstance(config, EncryptionConfig):
            config = EncryptionConfig.from_options(config)
        self._config = config

    def __repr__(self) -> str:
        return f"EncryptedAttributes({list(self._attributes)!r}, {self._config!r})"

    @property
    def attributes(self) -> tuple[str, ...]:
        return self._attributes

    @property
    def config(self) -> EncryptionConfig:
        return self._config

    def with_config(self, config: EncryptionConfig) -> EncryptedAttributes:
        """Same attributes under a new (e.g. rotated) configuration."""
        return EncryptedAttributes(self._attributes, config)

    def _identity(self, record: Any, operation: str) -> str | None:
        attribute = self._config.verify_id
        if attribute is None:
            return None
        value = paths.get(record, attribute)
        if value is None or value == "":
            raise MissingIdentityError(attribute, operation)
        return str(value)

    def encrypt_attribute(self, record: Any, value: Any) -> Any:
        if value is None or is_envelope(value):
            return value
        if not isinstance(value, str):
            raise TypeMismatchError(
                f"Encrypted attribute must be a string (got {type(value).__name__})"
            )
        identity = self._identity(record, "encrypt")
        return encode(value, self._config.current_key, self._config.current_key_id, identity)

    def decrypt_attribute(self, record: Any, value: Any) -> Any:
        if not is_envelope(value):
            return value
        identity = self._identity(record, "decrypt")
        try:
            return decode(value, self._config, identity)
        except IdentityMismatchError as exc:
            raise IdentityMismatchError(self._config.verify_id) from exc

    def encrypt_all(self, record: Any) -> Any:
        for path in self._attributes:
            value = paths.get(record, path)
            if value is not None:
                paths.set(record, path, self.encrypt_attribute(record, value))
                logger.debug("Encrypted %s with key %s", path, self._config.current_key_id)
        return record

    def decrypt_all(self, record: Any) -> Any:
        for path in self._attributes:
            value = paths.get(record, path)
            if value is not None:
                paths.set(record, path, self.decrypt_attribute(record, value))
                logger.debug("Decrypted %s", path)
        return record
